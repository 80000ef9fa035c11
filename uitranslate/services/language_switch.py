"""
Page language switching.

``build_switch_response`` answers immediately with every fragment whose
translation already exists and hands the rest to a background job. The job
translates the missing strings in one batch, stores them and broadcasts each
one so connected pages can patch themselves.

Event order for one job:

    progress(0)
    for each missing key:
        progress(current_key=key)
        string_translated(key)
        progress(completed + 1)
    complete(translated_count)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from uitranslate.core.models import Fragment, SwitchResponse, TranslationSource
from uitranslate.core.utils import content_hash
from uitranslate.services.jobs import JobDependencies, TranslationJobRunner
from uitranslate.storage.base import TranslationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissingString:
    """A key without a translation, captured when the switch was requested."""

    id: int
    key: str
    default_text: str


class LanguageSwitchService:
    """
    Builds switch responses and submits background translation jobs.

    Usage:
        switcher = LanguageSwitchService(store, job_runner, default_language="en")
        response = await switcher.build_switch_response("fr", ["home.title", "home.lead"])
        # response.fragments -> ready now
        # response.job_id    -> background job translating response.missing_keys
    """

    def __init__(
        self,
        store: TranslationStore,
        job_runner: TranslationJobRunner,
        default_language: str = "en",
    ):
        self.store = store
        self.job_runner = job_runner
        self.default_language = default_language.lower()

    async def build_switch_response(self, language_code: str, keys: list[str]) -> SwitchResponse:
        """
        Collect ready fragments for ``keys`` and start translating the rest.

        Keys are de-duplicated keeping request order. Unknown keys are
        ignored. Never waits for the background job.
        """
        language_code = language_code.lower()
        response = SwitchResponse(language=language_code)
        requested = list(dict.fromkeys(keys))
        if not requested:
            return response

        is_default = language_code == self.default_language
        missing: list[MissingString] = []

        for key in requested:
            record = await self.store.get_key(key)
            if record is None:
                continue

            if is_default:
                response.fragments.append(Fragment.for_key(key, record.default_text))
                continue

            translation = record.get_translation(language_code)
            if translation is not None and translation.translated_text:
                response.fragments.append(Fragment.for_key(key, translation.translated_text))
            else:
                missing.append(MissingString(record.id, record.key, record.default_text))

        response.missing_keys = [m.key for m in missing]

        if missing and not is_default:
            response.job_id = self.submit_translation_job(language_code, missing)

        return response

    def submit_translation_job(self, language_code: str, missing: list[MissingString]) -> str:
        dedupe_key = f"{language_code}:{content_hash(chr(0).join(sorted(m.key for m in missing)))}"

        async def job(job_id: str, deps: JobDependencies) -> None:
            await translate_missing(job_id, deps, language_code, missing)

        return self.job_runner.submit(job, dedupe_key=dedupe_key)


async def translate_missing(
    job_id: str,
    deps: JobDependencies,
    language_code: str,
    missing: list[MissingString],
) -> int:
    """
    Background job body: translate, store and broadcast ``missing``.

    Returns:
        Number of strings stored
    """
    broadcaster = deps.broadcaster
    provider = deps.provider
    total = len(missing)
    completed = 0

    await broadcaster.progress(job_id, total, completed)

    try:
        batch = await provider.translate_batch(
            {m.key: m.default_text for m in missing},
            language_code,
            deps.default_language,
        )
    except Exception:
        logger.warning("Batch translation failed, falling back to per-item translation", exc_info=True)
        batch = {}

    for item in missing:
        await broadcaster.progress(job_id, total, completed, item.key)

        translated = batch.get(item.key)
        if not translated or not translated.strip():
            translated = await provider.translate(item.default_text, language_code, deps.default_language)

        try:
            stored = await deps.store.upsert_translation(
                item.id,
                language_code,
                translated,
                source=TranslationSource.AI_GENERATED,
                ai_model=provider.model_name,
            )
        except Exception:
            logger.warning("Failed to store translation for %s (%s)", item.key, language_code, exc_info=True)
            continue

        if not stored:
            logger.warning("Key %s disappeared before its %s translation was stored", item.key, language_code)
            continue

        await deps.cache.invalidate(language_code, item.key)
        await broadcaster.string_translated(item.key, language_code, translated)

        completed += 1
        await broadcaster.progress(job_id, total, completed, item.key)

    await broadcaster.complete(job_id, completed)
    logger.info("Job %s translated %d of %d strings to %s", job_id, completed, total, language_code)
    return completed
