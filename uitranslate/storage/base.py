"""
Storage abstraction layer.

All persistence goes through these interfaces so backends can be swapped
(in-memory, JSON file, ...) without changing the orchestration code.

A ``TranslationStore`` is a *handle*: cheap to construct, bound to a shared
backend. Background jobs get a fresh handle from a ``StoreFactory`` instead of
borrowing the one that belongs to an HTTP request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from uitranslate.core.models import Translation, TranslationSource, TranslationString


# =============================================================================
# Storage Interfaces
# =============================================================================


class TranslationStore(ABC):
    """
    Key and translation records.

    Upserts are keyed by the natural unique key (``key`` for strings,
    ``(translation_string_id, language_code)`` for translations), so two
    writers racing on the same record converge on one row.
    """

    default_language: str = "en"

    @abstractmethod
    async def get_key(self, key: str) -> TranslationString | None:
        """Get a key record (with its translations) or None."""
        pass

    @abstractmethod
    async def upsert_key(
        self,
        key: str,
        default_text: str,
        category: str | None = None,
        context: str | None = None,
    ) -> int:
        """Create or update a key record, return its id."""
        pass

    @abstractmethod
    async def get_translation(self, key: str, language_code: str) -> Translation | None:
        """Get the translation of ``key`` for a language, or None."""
        pass

    @abstractmethod
    async def upsert_translation(
        self,
        translation_string_id: int,
        language_code: str,
        translated_text: str,
        source: TranslationSource = TranslationSource.AI_GENERATED,
        ai_model: str | None = None,
        is_approved: bool = False,
    ) -> bool:
        """
        Insert or update the translation for (string id, language).

        Returns:
            False if no key record has that id, True otherwise
        """
        pass

    @abstractmethod
    async def list_all_keys(self) -> list[TranslationString]:
        """All key records, in insertion order."""
        pass

    @abstractmethod
    async def list_translations(self, language_code: str) -> list[Translation]:
        """All translations stored for a language."""
        pass

    async def list_languages(self) -> list[str]:
        """
        Distinct languages across all translations plus the default language.

        Sorted, with the default language first.
        """
        languages: set[str] = set()
        for record in await self.list_all_keys():
            languages.update(t.language_code for t in record.translations)
        languages.discard(self.default_language)
        return [self.default_language, *sorted(languages)]


StoreFactory = Callable[[], TranslationStore]


class CacheStorage(ABC):
    """
    Fast key-value cache shared by the whole process.

    Local Implementation: In-memory dict with per-entry expiry
    """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value with optional TTL in seconds."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get a value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key."""
        pass
