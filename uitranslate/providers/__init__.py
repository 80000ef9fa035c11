"""
AI translation adapters.

- DSPyTranslationProvider -> Gemini / OpenAI / Anthropic via DSPy
- OllamaTranslationProvider -> Ollama HTTP API
- ChunkingTranslationProvider -> decorator splitting long inputs
"""

from __future__ import annotations

from uitranslate.config import Settings
from uitranslate.providers.base import ProviderFactory, TranslationProvider
from uitranslate.providers.chunking import ChunkingTranslationProvider, split_into_chunks
from uitranslate.providers.client import get_lm
from uitranslate.providers.dspy_provider import DSPyTranslationProvider
from uitranslate.providers.ollama import OllamaTranslationProvider


def create_provider_factory(settings: Settings) -> ProviderFactory:
    """
    Return a factory producing a fresh provider per call.

    Model configuration is resolved here, so missing credentials raise
    ``ConfigurationError`` at startup rather than on the first translation.
    """
    if settings.ai_provider == "ollama":
        def build_inner() -> TranslationProvider:
            return OllamaTranslationProvider(
                base_url=settings.ollama_base_url,
                model=settings.ollama_model,
                timeout=settings.ollama_timeout_seconds,
            )
    else:
        lm = get_lm(
            settings.llm_provider,
            model=settings.llm_model or None,
            api_key=settings.llm_api_key or None,
        )

        def build_inner() -> TranslationProvider:
            return DSPyTranslationProvider(lm)

    if not settings.chunking_enabled:
        return build_inner

    def build_chunking() -> TranslationProvider:
        return ChunkingTranslationProvider(
            build_inner(),
            chunk_length=settings.chunk_length,
            overlap=settings.chunk_overlap,
            lookback=settings.chunk_lookback,
            min_fragment=settings.chunk_min_fragment,
        )

    return build_chunking


__all__ = [
    "ProviderFactory",
    "TranslationProvider",
    "ChunkingTranslationProvider",
    "DSPyTranslationProvider",
    "OllamaTranslationProvider",
    "create_provider_factory",
    "get_lm",
    "split_into_chunks",
]
