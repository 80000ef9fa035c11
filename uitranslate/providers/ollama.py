"""
Ollama translation adapter.

Calls ``POST {base_url}api/generate`` with ``stream: false`` and reads the
``response`` field. Transient transport errors and 5xx responses are retried
with tenacity before the adapter fails soft.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from uitranslate.languages import get_language_name
from uitranslate.providers.base import TranslationProvider

logger = logging.getLogger(__name__)


PROMPT_TEMPLATE = (
    "Translate the following text from {source} to {target}. "
    "Preserve placeholders like {{0}} or {{name}}, and preserve HTML tags as-is. "
    "Reply with the translation only.\n\n"
    "Text:\n{text}"
)


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


class OllamaTranslationProvider(TranslationProvider):
    """
    Translation adapter for a local or remote Ollama server.

    Usage:
        provider = OllamaTranslationProvider("http://localhost:11434/", "llama3.1")
        fr = await provider.translate("Welcome", "fr")
        await provider.aclose()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434/",
        model: str = "llama3.1",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not base_url.endswith("/"):
            base_url += "/"
        self.model = model
        self.model_name = f"ollama/{model}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._client.post(
            "api/generate",
            json={"model": self.model, "prompt": prompt, "stream": False},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected Ollama response: {data!r}")
        text = data.get("response")
        if text is None:
            return ""
        if not isinstance(text, str):
            raise ValueError(f"Unexpected Ollama response text: {text!r}")
        return text

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = "en",
        context: str | None = None,
    ) -> str:
        if not text or not text.strip():
            return text

        prompt = PROMPT_TEMPLATE.format(
            source=get_language_name(source_language or "en"),
            target=get_language_name(target_language),
            text=text,
        )
        if context:
            prompt = f"Context: {context}\n\n{prompt}"

        try:
            translation = (await self._generate(prompt)).strip()
        except (httpx.HTTPError, ValueError):
            logger.exception("Ollama translation to %s failed, returning original text", target_language)
            return text

        return translation or text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
