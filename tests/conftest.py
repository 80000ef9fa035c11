"""
Shared fixtures.

``FakeProvider`` marks its output with ``<lang>`` so tests can tell
translated text from default text at a glance.
"""

from __future__ import annotations

import asyncio

import pytest

from uitranslate.cache import TranslationCache
from uitranslate.core.events import Event, TranslationBroadcaster
from uitranslate.core.models import TranslationString
from uitranslate.providers.base import TranslationProvider
from uitranslate.services import (
    KeyLocks,
    LanguageSwitchService,
    TranslationJobRunner,
    TranslationService,
    create_dependency_factory,
)
from uitranslate.storage import InMemoryTranslationStore, MemoryBackend


# =============================================================================
# Fakes
# =============================================================================


class FakeProvider(TranslationProvider):
    """Appends ``<lang>`` to every text it translates."""

    model_name = "fake-model"

    def __init__(self, batch_result: dict[str, str] | None = None, fail_batch: bool = False):
        self.batch_result = batch_result
        self.fail_batch = fail_batch
        self.calls: list[tuple[str, str]] = []
        self.batch_calls: list[dict[str, str]] = []
        self.closed = False

    async def translate(self, text, target_language, source_language="en", context=None):
        self.calls.append((text, target_language))
        return f"{text}<{target_language}>"

    async def translate_batch(self, items, target_language, source_language="en"):
        self.batch_calls.append(dict(items))
        if self.fail_batch:
            raise RuntimeError("batch backend down")
        if self.batch_result is not None:
            return dict(self.batch_result)
        return {key: f"{text}<{target_language}>" for key, text in items.items()}

    async def aclose(self):
        self.closed = True


class GatedProvider(FakeProvider):
    """Blocks every batch call until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def translate_batch(self, items, target_language, source_language="en"):
        await self.gate.wait()
        return await super().translate_batch(items, target_language, source_language)


class EventRecorder:
    """Collects every broadcast event."""

    def __init__(self, broadcaster: TranslationBroadcaster):
        self.events: list[Event] = []
        broadcaster.subscribe(self.record)

    async def record(self, event: Event) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.event_type for e in self.events]

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.event_type == event_type]


def seed(backend: MemoryBackend, strings: dict[str, str]) -> None:
    """Insert key records directly into a backend."""
    for key, text in strings.items():
        backend.strings[key] = TranslationString(id=backend.next_id, key=key, default_text=text)
        backend.next_id += 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return InMemoryTranslationStore(backend)


@pytest.fixture
def store_factory(backend):
    return lambda: InMemoryTranslationStore(backend)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def provider_factory(provider):
    """Hands the same fake to every job so tests can inspect its calls."""
    return lambda: provider


@pytest.fixture
def cache():
    return TranslationCache(ttl_seconds=3600)


@pytest.fixture
def broadcaster():
    return TranslationBroadcaster()


@pytest.fixture
def recorder(broadcaster):
    return EventRecorder(broadcaster)


@pytest.fixture
def key_locks():
    return KeyLocks()


@pytest.fixture
def job_runner(store_factory, provider_factory, cache, broadcaster, key_locks):
    return TranslationJobRunner(
        create_dependency_factory(store_factory, provider_factory, cache, broadcaster, key_locks),
    )


@pytest.fixture
def service(store, provider, cache, job_runner, key_locks):
    return TranslationService(store, provider, cache, default_language="en", job_runner=job_runner, key_locks=key_locks)


@pytest.fixture
def switcher(store, job_runner):
    return LanguageSwitchService(store, job_runner, default_language="en")
