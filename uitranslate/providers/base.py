"""
AI translation adapter interface.

Adapters must fail soft: on any error ``translate`` returns the original text
and ``translate_batch`` returns whatever it managed (possibly nothing). The
caller falls back per key, so a partial batch result is never an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class TranslationProvider(ABC):
    """
    Translates text given a language pair.

    ``model_name`` is recorded on the translations a provider produces.
    """

    model_name: str = "Translation AI"

    @abstractmethod
    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = "en",
        context: str | None = None,
    ) -> str:
        """Translate one text. Never raises; returns ``text`` on failure."""
        pass

    async def translate_batch(
        self,
        items: dict[str, str],
        target_language: str,
        source_language: str | None = "en",
    ) -> dict[str, str]:
        """
        Translate several texts keyed by an opaque id.

        The default implementation translates one item at a time.
        """
        return {
            key: await self.translate(text, target_language, source_language)
            for key, text in items.items()
        }

    async def aclose(self) -> None:
        """Release network clients and similar resources."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(model={self.model_name})>"


ProviderFactory = Callable[[], TranslationProvider]
