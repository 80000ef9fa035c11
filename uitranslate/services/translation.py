"""
Translation orchestration.

``TranslationService`` answers "what text should be shown for this key in
this language" through the cache tier and the store, registers keys, and runs
bulk translation passes. The language is always an explicit argument.

Usage:
    service = TranslationService(store, provider, cache, default_language="en")

    await service.ensure_key("home.title", "Welcome")
    await service.resolve("home.title", "fr")              # "Welcome" until translated
    await service.translate_all("fr")                      # -> 1
    await service.resolve("home.title", "fr")              # "Bienvenue"
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Callable

from uitranslate.cache import RequestTranslationCache, TranslationCache
from uitranslate.core.models import (
    TranslationProgress,
    TranslationSource,
    TranslationStats,
    TranslationStringView,
)
from uitranslate.providers.base import TranslationProvider
from uitranslate.storage.base import TranslationStore

if TYPE_CHECKING:
    from uitranslate.services.jobs import TranslationJobRunner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TranslationProgress], None]


class KeyLocks:
    """One ``asyncio.Lock`` per translation key, shared across services."""

    def __init__(self):
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def for_key(self, key: str) -> asyncio.Lock:
        return self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class TranslationService:
    """
    Resolves, registers and bulk-translates UI strings.

    The store is the source of truth. The process-wide cache entry for
    (language, key) is evicted on every write that changes what ``resolve``
    would return for it.
    """

    def __init__(
        self,
        store: TranslationStore,
        provider: TranslationProvider,
        cache: TranslationCache,
        default_language: str = "en",
        job_runner: TranslationJobRunner | None = None,
        key_locks: KeyLocks | None = None,
    ):
        self.store = store
        self.provider = provider
        self.cache = cache
        self.default_language = default_language.lower()
        self.job_runner = job_runner
        self.key_locks = key_locks or KeyLocks()

    def is_default_language(self, language_code: str) -> bool:
        return language_code.lower() == self.default_language

    # =========================================================================
    # Lookup
    # =========================================================================

    async def resolve(
        self,
        key: str,
        language_code: str,
        default_text: str | None = None,
        request_cache: RequestTranslationCache | None = None,
    ) -> str:
        """
        Get the text to display for ``key`` in a language.

        Falls back to the default text when no translation exists and to the
        key itself when the key is unknown. When ``default_text`` is given and
        differs from the stored value, the key is updated in the background.
        """
        language_code = language_code.lower()

        cached = await self.cache.get(language_code, key, request_cache)
        checked = default_text is None or (
            request_cache is not None and request_cache.is_checked(key, default_text)
        )
        if cached is not None and checked:
            return cached

        record = await self.store.get_key(key)

        if not checked:
            if request_cache is not None:
                request_cache.mark_checked(key, default_text)
            if record is None or record.default_text != default_text:
                self._schedule_ensure_key(key, default_text)

        if cached is not None:
            return cached

        if record is None:
            logger.debug("Translation string not found for key %s", key)
            if request_cache is not None:
                request_cache.set(language_code, key, key)
            return key

        if self.is_default_language(language_code):
            await self.cache.set(language_code, key, record.default_text, request_cache)
            return record.default_text

        translation = record.get_translation(language_code)
        if translation is None:
            # Fallbacks stay out of the process-wide cache
            if request_cache is not None:
                request_cache.set(language_code, key, record.default_text)
            return record.default_text

        await self.cache.set(language_code, key, translation.translated_text, request_cache)
        return translation.translated_text

    def _schedule_ensure_key(self, key: str, default_text: str) -> None:
        if self.job_runner is None:
            logger.debug("No job runner, not registering key %s", key)
            return

        async def register(job_id, deps) -> None:
            service = TranslationService(
                deps.store,
                deps.provider,
                deps.cache,
                default_language=deps.default_language,
                key_locks=deps.key_locks,
            )
            await service.ensure_key(key, default_text)

        self.job_runner.submit(register, dedupe_key=f"ensure:{key}")

    # =========================================================================
    # Registration
    # =========================================================================

    async def ensure_key(
        self,
        key: str,
        default_text: str,
        category: str | None = None,
        context: str | None = None,
    ) -> int:
        """
        Create the key record or update its default text.

        Idempotent: identical text leaves the record (and its ``updated_at``)
        untouched. Calls for the same key are serialised.

        Returns:
            The key record's id
        """
        async with self.key_locks.for_key(key):
            existing = await self.store.get_key(key)
            if existing is not None and existing.default_text == default_text:
                return existing.id

            key_id = await self.store.upsert_key(key, default_text, category=category, context=context)

            if existing is not None:
                logger.info("Default text changed for %s", key)
                await self.cache.invalidate(self.default_language, key)
            return key_id

    async def set_translation(
        self,
        key: str,
        language_code: str,
        translated_text: str,
        source: TranslationSource = TranslationSource.MANUAL,
        ai_model: str | None = None,
        is_approved: bool = False,
    ) -> bool:
        """
        Store a translation for an existing key.

        Returns:
            False if the key is unknown
        """
        language_code = language_code.lower()
        record = await self.store.get_key(key)
        if record is None:
            logger.warning("Cannot store %s translation for unknown key %s", language_code, key)
            return False

        stored = await self.store.upsert_translation(
            record.id,
            language_code,
            translated_text,
            source=source,
            ai_model=ai_model,
            is_approved=is_approved,
        )
        if stored:
            await self.cache.invalidate(language_code, key)
        return stored

    # =========================================================================
    # Bulk Translation
    # =========================================================================

    async def translate_all(
        self,
        language_code: str,
        overwrite_existing: bool = False,
        progress: ProgressCallback | None = None,
    ) -> int:
        """
        Translate every key into a language, one AI call per key.

        Keys that already have a translation are skipped unless
        ``overwrite_existing``. A key whose translation cannot be stored is
        logged and skipped.

        Returns:
            Number of keys (re)translated
        """
        language_code = language_code.lower()
        records = await self.store.list_all_keys()
        total = len(records)
        translated = 0

        for completed, record in enumerate(records, start=1):
            if overwrite_existing or record.get_translation(language_code) is None:
                text = await self.provider.translate(
                    record.default_text,
                    language_code,
                    self.default_language,
                    context=record.context,
                )
                if text and text.strip() and await self._store_ai_translation(record.id, record.key, language_code, text):
                    translated += 1

            if progress is not None:
                progress(TranslationProgress(total=total, completed=completed, current_key=record.key))

        logger.info("Translated %d of %d strings to %s", translated, total, language_code)
        return translated

    async def _store_ai_translation(self, key_id: int, key: str, language_code: str, text: str) -> bool:
        try:
            stored = await self.store.upsert_translation(
                key_id,
                language_code,
                text,
                source=TranslationSource.AI_GENERATED,
                ai_model=self.provider.model_name,
            )
        except Exception:
            logger.exception("Failed to store %s translation for %s, skipping", language_code, key)
            return False

        if stored:
            await self.cache.invalidate(language_code, key)
        return stored

    # =========================================================================
    # Reporting
    # =========================================================================

    async def list_languages(self) -> list[str]:
        """Languages with at least one translation, default language first."""
        return await self.store.list_languages()

    async def get_stats(self, language_code: str) -> TranslationStats:
        language_code = language_code.lower()
        records = await self.store.list_all_keys()
        total = len(records)

        # The default language is complete by definition
        if self.is_default_language(language_code):
            translated = total
            percentage = 100.0
        else:
            translated = len(await self.store.list_translations(language_code))
            percentage = 0.0 if total == 0 else translated / total * 100.0

        return TranslationStats(
            language_code=language_code,
            total_strings=total,
            translated_strings=translated,
            pending_strings=max(0, total - translated),
            completion_percentage=percentage,
        )

    async def get_all_strings(self, language_code: str) -> list[TranslationStringView]:
        language_code = language_code.lower()
        views = []
        for record in await self.store.list_all_keys():
            if self.is_default_language(language_code):
                translated_text = record.default_text
            else:
                translation = record.get_translation(language_code)
                translated_text = translation.translated_text if translation else None
            views.append(TranslationStringView(
                key=record.key,
                default_text=record.default_text,
                translated_text=translated_text,
            ))
        return views
