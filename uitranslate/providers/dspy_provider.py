"""
LLM-powered translation adapter.

Uses DSPy signatures so the prompt and the structured (JSON) parsing of the
batch output are handled by the DSPy adapter layer.
"""

from __future__ import annotations

import asyncio
import logging

import dspy

from uitranslate.languages import get_language_name, normalize_language_code
from uitranslate.providers.base import TranslationProvider

logger = logging.getLogger(__name__)


# =============================================================================
# DSPy Signatures for Translation
# =============================================================================


class TranslateText(dspy.Signature):
    """Translate UI text. Preserve placeholders like {0} or {name} and HTML tags as-is."""

    text: str = dspy.InputField(desc="Text to translate")
    source_language: str = dspy.InputField(desc="Source language name (e.g., 'English')")
    target_language: str = dspy.InputField(desc="Target language name (e.g., 'French')")
    context: str = dspy.InputField(desc="Where the text appears in the UI (optional)", default="")

    translated_text: str = dspy.OutputField(desc="Translated text only, no commentary")


class TranslateBatch(dspy.Signature):
    """Translate multiple UI texts. Preserve placeholders and HTML tags as-is."""

    texts: list[str] = dspy.InputField(desc="List of texts to translate")
    source_language: str = dspy.InputField(desc="Source language name")
    target_language: str = dspy.InputField(desc="Target language name")

    translated_texts: list[str] = dspy.OutputField(desc="List of translated texts in same order")


# =============================================================================
# Provider
# =============================================================================


class DSPyTranslationProvider(TranslationProvider):
    """
    Translation adapter backed by any DSPy language model.

    Usage:
        provider = DSPyTranslationProvider(get_lm("gemini"))

        fr = await provider.translate("Welcome", "fr")
        batch = await provider.translate_batch({"home.title": "Welcome"}, "fr")

    DSPy calls are blocking, so they run in a worker thread.
    """

    def __init__(self, lm: dspy.LM, model_name: str | None = None):
        self.lm = lm
        self.model_name = model_name or getattr(lm, "model", None) or self.model_name
        self.translate_module = dspy.Predict(TranslateText)
        self.batch_module = dspy.Predict(TranslateBatch)

    def _run(self, module: dspy.Predict, **kwargs) -> dspy.Prediction:
        with dspy.context(lm=self.lm):
            return module(**kwargs)

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = "en",
        context: str | None = None,
    ) -> str:
        if not text or not text.strip():
            return text

        target = normalize_language_code(target_language)
        source = normalize_language_code(source_language or "en")
        if source == target:
            return text

        try:
            result = await asyncio.to_thread(
                self._run,
                self.translate_module,
                text=text,
                source_language=get_language_name(source),
                target_language=get_language_name(target),
                context=context or "user interface text",
            )
            translation = (result.translated_text or "").strip()
            return translation or text
        except Exception:
            logger.exception("Translation to %s failed, returning original text", target)
            return text

    async def translate_batch(
        self,
        items: dict[str, str],
        target_language: str,
        source_language: str | None = "en",
    ) -> dict[str, str]:
        """
        Translate all items in one LLM call.

        A response that does not parse, or has the wrong number of entries,
        falls back to one ``translate`` call per item.
        """
        if not items:
            return {}

        target = normalize_language_code(target_language)
        source = normalize_language_code(source_language or "en")
        if source == target:
            return dict(items)

        keys = list(items)
        texts = [items[k] for k in keys]

        try:
            result = await asyncio.to_thread(
                self._run,
                self.batch_module,
                texts=texts,
                source_language=get_language_name(source),
                target_language=get_language_name(target),
            )
            translations = list(result.translated_texts or [])
        except Exception:
            logger.warning("Batch translation to %s failed, translating one by one", target, exc_info=True)
            translations = []

        if len(translations) != len(texts):
            logger.info("Batch returned %d of %d items, falling back per item", len(translations), len(texts))
            return {
                key: await self.translate(items[key], target_language, source_language)
                for key in keys
            }

        return {key: str(translation).strip() for key, translation in zip(keys, translations)}
