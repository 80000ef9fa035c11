"""
In-memory storage implementations.

Volatile, no persistence. Great for development, tests and CI.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from uitranslate.core.models import Translation, TranslationSource, TranslationString
from uitranslate.core.utils import utc_now
from uitranslate.storage.base import CacheStorage, TranslationStore

logger = logging.getLogger(__name__)


# =============================================================================
# In-Memory Translation Storage
# =============================================================================


class MemoryBackend:
    """Shared state behind every ``InMemoryTranslationStore`` handle."""

    def __init__(self):
        self.strings: dict[str, TranslationString] = {}
        self.next_id = 1
        self.lock = asyncio.Lock()

    def find_by_id(self, translation_string_id: int) -> TranslationString | None:
        for record in self.strings.values():
            if record.id == translation_string_id:
                return record
        return None


class InMemoryTranslationStore(TranslationStore):
    """
    Store handle over a ``MemoryBackend``.

    Records are copied on the way out so callers cannot change stored state
    without going through an upsert.
    """

    def __init__(self, backend: MemoryBackend | None = None, default_language: str = "en"):
        self.backend = backend or MemoryBackend()
        self.default_language = default_language

    def _persist(self) -> None:
        """Called with the backend lock held after every write."""
        pass

    def _commit(self, record: TranslationString, previous: TranslationString | None) -> None:
        """Swap ``record`` in and persist; put ``previous`` back if persisting fails."""
        next_id = self.backend.next_id
        if previous is None:
            self.backend.next_id = max(next_id, record.id + 1)
        self.backend.strings[record.key] = record
        try:
            self._persist()
        except Exception:
            if previous is None:
                del self.backend.strings[record.key]
            else:
                self.backend.strings[record.key] = previous
            self.backend.next_id = next_id
            raise

    async def get_key(self, key: str) -> TranslationString | None:
        async with self.backend.lock:
            record = self.backend.strings.get(key)
            return record.model_copy(deep=True) if record else None

    async def upsert_key(
        self,
        key: str,
        default_text: str,
        category: str | None = None,
        context: str | None = None,
    ) -> int:
        async with self.backend.lock:
            now = utc_now()
            existing = self.backend.strings.get(key)
            if existing is not None:
                record = existing.model_copy(deep=True)
                record.default_text = default_text
                if category is not None:
                    record.category = category
                if context is not None:
                    record.context = context
                record.updated_at = now
            else:
                record = TranslationString(
                    id=self.backend.next_id,
                    key=key,
                    default_text=default_text,
                    category=category,
                    context=context,
                    created_at=now,
                    updated_at=now,
                )
            self._commit(record, existing)
            return record.id

    async def get_translation(self, key: str, language_code: str) -> Translation | None:
        async with self.backend.lock:
            record = self.backend.strings.get(key)
            if record is None:
                return None
            translation = record.get_translation(language_code)
            return translation.model_copy() if translation else None

    async def upsert_translation(
        self,
        translation_string_id: int,
        language_code: str,
        translated_text: str,
        source: TranslationSource = TranslationSource.AI_GENERATED,
        ai_model: str | None = None,
        is_approved: bool = False,
    ) -> bool:
        async with self.backend.lock:
            existing = self.backend.find_by_id(translation_string_id)
            if existing is None:
                logger.warning("Translation string with id %s not found", translation_string_id)
                return False

            now = utc_now()
            record = existing.model_copy(deep=True)
            translation = record.get_translation(language_code)
            if translation is not None:
                translation.translated_text = translated_text
                translation.source = source
                translation.ai_model = ai_model
                translation.is_approved = is_approved
                translation.updated_at = now
            else:
                record.translations.append(Translation(
                    translation_string_id=translation_string_id,
                    language_code=language_code,
                    translated_text=translated_text,
                    source=source,
                    ai_model=ai_model,
                    is_approved=is_approved,
                    created_at=now,
                    updated_at=now,
                ))
            self._commit(record, existing)
            return True

    async def list_all_keys(self) -> list[TranslationString]:
        async with self.backend.lock:
            return [r.model_copy(deep=True) for r in self.backend.strings.values()]

    async def list_translations(self, language_code: str) -> list[Translation]:
        async with self.backend.lock:
            return [
                t.model_copy()
                for r in self.backend.strings.values()
                for t in r.translations
                if t.language_code == language_code
            ]


# =============================================================================
# In-Memory Cache Storage
# =============================================================================


class InMemoryCacheStorage(CacheStorage):
    """In-memory cache with per-entry expiry."""

    def __init__(self):
        self._cache: dict[str, tuple[Any, float | None]] = {}

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = None
        if ttl:
            expires_at = datetime.now(timezone.utc).timestamp() + ttl
        self._cache[key] = (value, expires_at)

    async def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None

        value, expires_at = self._cache[key]
        if expires_at and datetime.now(timezone.utc).timestamp() > expires_at:
            del self._cache[key]
            return None

        return value

    async def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            return True
        return False
