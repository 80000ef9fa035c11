"""
Chunking decorator for translation adapters.

Long texts are split into segments of at most ``chunk_length`` characters,
preferably at whitespace, translated independently and joined back in order.
"""

from __future__ import annotations

from uitranslate.providers.base import TranslationProvider

WHITESPACE = " \n\r\t"


def split_into_chunks(
    text: str,
    chunk_length: int,
    overlap: int = 0,
    lookback: int = 40,
    min_fragment: int = 10,
) -> list[str]:
    """
    Split text into segments no longer than ``chunk_length``.

    A segment that stops short of the end of the text is cut just after the
    last whitespace found within the final ``min(lookback, segment length)``
    characters, provided that whitespace sits more than ``min_fragment``
    characters past the segment start. The next segment starts ``overlap``
    characters before the previous end.
    """
    chunk_length = max(1, chunk_length)
    overlap = max(0, overlap)

    if not text or len(text) <= chunk_length:
        return [text]

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_length, len(text))

        if end < len(text):
            window = min(lookback, end - start)
            last_space = -1
            for i in range(end - 1, end - 1 - window, -1):
                if text[i] in WHITESPACE:
                    last_space = i
                    break
            if last_space > start + min_fragment:
                end = last_space + 1

        chunks.append(text[start:end])
        if end >= len(text):
            break

        next_start = max(0, end - overlap)
        start = next_start if next_start > start else end

    return chunks


class ChunkingTranslationProvider(TranslationProvider):
    """
    Wraps another provider and feeds it bounded-size inputs.

    Usage:
        provider = ChunkingTranslationProvider(OllamaTranslationProvider(), chunk_length=800)
    """

    def __init__(
        self,
        inner: TranslationProvider,
        chunk_length: int = 800,
        overlap: int = 0,
        lookback: int = 40,
        min_fragment: int = 10,
    ):
        self.inner = inner
        self.chunk_length = max(1, chunk_length)
        self.overlap = max(0, overlap)
        self.lookback = max(1, lookback)
        self.min_fragment = max(0, min_fragment)
        self.model_name = inner.model_name

    def split(self, text: str) -> list[str]:
        return split_into_chunks(
            text,
            self.chunk_length,
            overlap=self.overlap,
            lookback=self.lookback,
            min_fragment=self.min_fragment,
        )

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = "en",
        context: str | None = None,
    ) -> str:
        if not text or len(text) <= self.chunk_length:
            return await self.inner.translate(text, target_language, source_language, context)

        parts = [
            await self.inner.translate(chunk, target_language, source_language, context)
            for chunk in self.split(text)
        ]
        return "".join(parts)

    async def translate_batch(
        self,
        items: dict[str, str],
        target_language: str,
        source_language: str | None = "en",
    ) -> dict[str, str]:
        short = {k: v for k, v in items.items() if not v or len(v) <= self.chunk_length}
        results: dict[str, str] = {}

        if short:
            results.update(await self.inner.translate_batch(short, target_language, source_language))

        for key, text in items.items():
            if key not in short:
                results[key] = await self.translate(text, target_language, source_language)

        return results

    async def aclose(self) -> None:
        await self.inner.aclose()
