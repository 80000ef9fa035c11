"""
Tests for the AI translation adapters.

The Ollama adapter runs against ``httpx.MockTransport``; the DSPy adapter has
its model call replaced, so no network or API key is needed.
"""

import json
from types import SimpleNamespace

import dspy
import httpx
import pytest

from uitranslate.config import ConfigurationError, load_settings
from uitranslate.providers import (
    ChunkingTranslationProvider,
    DSPyTranslationProvider,
    OllamaTranslationProvider,
    create_provider_factory,
    get_lm,
)


# =============================================================================
# Ollama
# =============================================================================


def ollama_with(handler) -> tuple[OllamaTranslationProvider, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record), base_url="http://ollama.test/")
    return OllamaTranslationProvider(model="llama3.1", client=client), requests


class TestOllamaTranslationProvider:
    @pytest.mark.asyncio
    async def test_translate(self):
        provider, requests = ollama_with(lambda r: httpx.Response(200, json={"response": "  Bonjour le monde \n"}))

        assert await provider.translate("Hello world", "fr") == "Bonjour le monde"

        assert len(requests) == 1
        assert requests[0].url.path == "/api/generate"
        body = json.loads(requests[0].content)
        assert body["model"] == "llama3.1"
        assert body["stream"] is False
        assert "from English to French" in body["prompt"]
        assert "{0}" in body["prompt"]
        assert body["prompt"].endswith("Text:\nHello world")

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_fails_soft(self):
        provider, requests = ollama_with(lambda r: httpx.Response(503))

        assert await provider.translate("Hello", "fr") == "Hello"
        assert len(requests) == 3

    @pytest.mark.asyncio
    async def test_recovers_after_transient_error(self):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"response": "Salut"})])
        provider, requests = ollama_with(lambda r: next(responses))

        assert await provider.translate("Hi", "fr") == "Salut"
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        provider, requests = ollama_with(lambda r: httpx.Response(404, json={"error": "model not found"}))

        assert await provider.translate("Hello", "fr") == "Hello"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_connection_error_fails_soft(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider, requests = ollama_with(refuse)

        assert await provider.translate("Hello", "fr") == "Hello"
        assert len(requests) == 3

    @pytest.mark.asyncio
    async def test_malformed_body_fails_soft(self):
        provider, _ = ollama_with(lambda r: httpx.Response(200, content=b"<html>"))

        assert await provider.translate("Hello", "fr") == "Hello"

    @pytest.mark.asyncio
    async def test_non_string_response_fails_soft(self):
        for body in ({"response": 42}, {"response": ["Bonjour"]}, ["Bonjour"]):
            provider, requests = ollama_with(lambda r, body=body: httpx.Response(200, json=body))

            assert await provider.translate("Hello", "fr") == "Hello"
            assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_missing_response_returns_original(self):
        provider, _ = ollama_with(lambda r: httpx.Response(200, json={"done": True}))

        assert await provider.translate("Hello", "fr") == "Hello"

    @pytest.mark.asyncio
    async def test_empty_response_returns_original(self):
        provider, _ = ollama_with(lambda r: httpx.Response(200, json={"response": "   "}))

        assert await provider.translate("Hello", "fr") == "Hello"

    @pytest.mark.asyncio
    async def test_blank_text_skips_call(self):
        provider, requests = ollama_with(lambda r: httpx.Response(200, json={"response": "x"}))

        assert await provider.translate("   ", "fr") == "   "
        assert requests == []

    @pytest.mark.asyncio
    async def test_batch_translates_each_item(self):
        provider, requests = ollama_with(
            lambda r: httpx.Response(200, json={"response": json.loads(r.content)["prompt"].split("\n")[-1].upper()})
        )

        result = await provider.translate_batch({"a": "one", "b": "two"}, "de")

        assert result == {"a": "ONE", "b": "TWO"}
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_model_name(self):
        provider, _ = ollama_with(lambda r: httpx.Response(200))
        assert provider.model_name == "ollama/llama3.1"


# =============================================================================
# DSPy
# =============================================================================


@pytest.fixture
def dspy_provider():
    return DSPyTranslationProvider(SimpleNamespace(model="gemini/gemini-2.0-flash"))


def fake_run(dspy_provider, single=None, batch=None):
    calls = []

    def run(module, **kwargs):
        calls.append((module, kwargs))
        result = single if module is dspy_provider.translate_module else batch
        if isinstance(result, Exception):
            raise result
        return result(kwargs) if callable(result) else result

    dspy_provider._run = run
    return calls


class TestDSPyTranslationProvider:
    def test_model_name(self, dspy_provider):
        assert dspy_provider.model_name == "gemini/gemini-2.0-flash"

    @pytest.mark.asyncio
    async def test_translate(self, dspy_provider):
        calls = fake_run(dspy_provider, single=dspy.Prediction(translated_text=" Bienvenue "))

        assert await dspy_provider.translate("Welcome", "fr", context="page title") == "Bienvenue"

        kwargs = calls[0][1]
        assert kwargs["source_language"] == "English"
        assert kwargs["target_language"] == "French"
        assert kwargs["context"] == "page title"

    @pytest.mark.asyncio
    async def test_translate_failure_returns_original(self, dspy_provider):
        fake_run(dspy_provider, single=RuntimeError("quota exceeded"))

        assert await dspy_provider.translate("Welcome", "fr") == "Welcome"

    @pytest.mark.asyncio
    async def test_same_language_skips_call(self, dspy_provider):
        calls = fake_run(dspy_provider)

        assert await dspy_provider.translate("Welcome", "en") == "Welcome"
        assert await dspy_provider.translate_batch({"a": "A"}, "en") == {"a": "A"}
        assert calls == []

    @pytest.mark.asyncio
    async def test_batch(self, dspy_provider):
        calls = fake_run(dspy_provider, batch=dspy.Prediction(translated_texts=["Un", "Deux"]))

        result = await dspy_provider.translate_batch({"a": "One", "b": "Two"}, "fr")

        assert result == {"a": "Un", "b": "Deux"}
        assert calls[0][1]["texts"] == ["One", "Two"]

    @pytest.mark.asyncio
    async def test_batch_wrong_length_falls_back(self, dspy_provider):
        calls = fake_run(
            dspy_provider,
            single=lambda kwargs: dspy.Prediction(translated_text=kwargs["text"] + "!"),
            batch=dspy.Prediction(translated_texts=["Un"]),
        )

        result = await dspy_provider.translate_batch({"a": "One", "b": "Two"}, "fr")

        assert result == {"a": "One!", "b": "Two!"}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_batch_parse_failure_falls_back(self, dspy_provider):
        fake_run(
            dspy_provider,
            single=lambda kwargs: dspy.Prediction(translated_text=kwargs["text"] + "!"),
            batch=ValueError("could not parse output"),
        )

        result = await dspy_provider.translate_batch({"a": "One"}, "fr")

        assert result == {"a": "One!"}

    @pytest.mark.asyncio
    async def test_empty_batch(self, dspy_provider):
        calls = fake_run(dspy_provider)

        assert await dspy_provider.translate_batch({}, "fr") == {}
        assert calls == []


# =============================================================================
# Configuration
# =============================================================================


class TestGetLM:
    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            get_lm("mystery")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError):
            get_lm("openai")

    def test_explicit_key(self):
        lm = get_lm("openai", api_key="sk-test")

        assert lm.model == "openai/gpt-4o-mini"

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "g-test")

        assert get_lm("gemini", model="gemini-1.5-pro").model == "gemini/gemini-1.5-pro"


class TestCreateProviderFactory:
    @pytest.mark.asyncio
    async def test_ollama(self):
        factory = create_provider_factory(load_settings(ai_provider="ollama", ollama_model="mistral"))

        first, second = factory(), factory()
        try:
            assert isinstance(first, OllamaTranslationProvider)
            assert first is not second
            assert first.model_name == "ollama/mistral"
        finally:
            await first.aclose()
            await second.aclose()

    @pytest.mark.asyncio
    async def test_chunking_wraps_inner(self):
        settings = load_settings(ai_provider="ollama", chunking_enabled=True, chunk_length=100, chunk_overlap=5)

        provider = create_provider_factory(settings)()
        try:
            assert isinstance(provider, ChunkingTranslationProvider)
            assert isinstance(provider.inner, OllamaTranslationProvider)
            assert provider.chunk_length == 100
            assert provider.overlap == 5
        finally:
            await provider.aclose()

    def test_dspy_without_key_refuses(self, monkeypatch):
        for name in ("GOOGLE_API_KEY", "GEMINI_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ConfigurationError):
            create_provider_factory(load_settings(ai_provider="dspy", llm_provider="gemini"))

    def test_dspy(self):
        factory = create_provider_factory(load_settings(ai_provider="dspy", llm_provider="openai", llm_api_key="sk-test"))

        provider = factory()
        assert isinstance(provider, DSPyTranslationProvider)
        assert provider.model_name == "openai/gpt-4o-mini"
