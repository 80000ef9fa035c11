"""
Core data models.

A ``TranslationString`` is one translatable unit of UI text, identified by a
stable key. Each has at most one ``Translation`` per language.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from uitranslate.core.utils import element_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class TranslationSource(str, Enum):
    """How a translation was produced."""

    MANUAL = "manual"
    AI_GENERATED = "ai_generated"
    IMPORTED = "imported"


# =============================================================================
# Stored Records
# =============================================================================


class Translation(BaseModel):
    """Stored text for a (key, language) pair."""

    translation_string_id: int = 0
    language_code: str
    translated_text: str

    source: TranslationSource = TranslationSource.MANUAL
    ai_model: str | None = None
    is_approved: bool = False

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TranslationString(BaseModel):
    """
    A translatable UI string.

    ``default_text`` is the canonical source-language text. It is updated in
    place when it changes; records are never deleted.
    """

    id: int = 0
    key: str
    default_text: str
    category: str | None = None
    context: str | None = None  # Hint for LLM prompts only

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    translations: list[Translation] = Field(default_factory=list)

    def get_translation(self, language_code: str) -> Translation | None:
        for translation in self.translations:
            if translation.language_code == language_code:
                return translation
        return None


# =============================================================================
# Views / DTOs
# =============================================================================


class TranslationStringView(BaseModel):
    """A key with its default text and (optional) translation for one language."""

    key: str
    default_text: str
    translated_text: str | None = None


class TranslationProgress(BaseModel):
    """Progress report for bulk translation."""

    total: int
    completed: int
    current_key: str | None = None

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 100.0
        return self.completed / self.total * 100.0


class TranslationStats(BaseModel):
    """Translation coverage for a language."""

    language_code: str
    total_strings: int
    translated_strings: int
    pending_strings: int
    completion_percentage: float


class Fragment(BaseModel):
    """A ready-to-render (key, text) pair."""

    key: str
    text: str
    element_id: str = ""

    @classmethod
    def for_key(cls, key: str, text: str) -> Fragment:
        return cls(key=key, text=text, element_id=element_id(key))


class SwitchResponse(BaseModel):
    """
    Result of switching a page to a language.

    ``language`` is the current-language indicator and is always present.
    ``job_id`` is set when a background job was submitted for ``missing_keys``.
    """

    language: str
    fragments: list[Fragment] = Field(default_factory=list)
    missing_keys: list[str] = Field(default_factory=list)
    job_id: str | None = None
