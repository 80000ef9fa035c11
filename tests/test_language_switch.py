"""
Tests for page language switching and its background job.
"""

import pytest

from conftest import FakeProvider, GatedProvider, seed
from uitranslate.core.events import EventTypes
from uitranslate.core.utils import element_id
from uitranslate.services import (
    KeyLocks,
    LanguageSwitchService,
    TranslationJobRunner,
    create_dependency_factory,
)
from uitranslate.storage import InMemoryTranslationStore


def make_switcher(backend, provider, cache, broadcaster, store_cls=InMemoryTranslationStore):
    runner = TranslationJobRunner(
        create_dependency_factory(
            lambda: store_cls(backend),
            lambda: provider,
            cache,
            broadcaster,
            KeyLocks(),
        ),
    )
    return LanguageSwitchService(InMemoryTranslationStore(backend), runner), runner


# =============================================================================
# Switch Response
# =============================================================================


class TestBuildSwitchResponse:
    @pytest.mark.asyncio
    async def test_empty_keys(self, switcher, job_runner):
        response = await switcher.build_switch_response("fr", [])

        assert response.language == "fr"
        assert response.fragments == []
        assert response.missing_keys == []
        assert response.job_id is None
        assert job_runner.pending_count == 0

    @pytest.mark.asyncio
    async def test_ready_and_missing(self, switcher, backend, store, job_runner):
        seed(backend, {"home.title": "Welcome", "home.lead": "Hello world"})
        record = await store.get_key("home.title")
        await store.upsert_translation(record.id, "fr", "Bienvenue")

        response = await switcher.build_switch_response("fr", ["home.title", "home.lead"])

        assert [(f.key, f.text) for f in response.fragments] == [("home.title", "Bienvenue")]
        assert response.fragments[0].element_id == element_id("home.title")
        assert response.missing_keys == ["home.lead"]
        assert response.job_id is not None
        await job_runner.join()

    @pytest.mark.asyncio
    async def test_dedupes_keys_and_ignores_unknown(self, switcher, backend, job_runner):
        seed(backend, {"a": "A", "b": "B"})

        response = await switcher.build_switch_response("fr", ["b", "a", "b", "nope"])

        assert response.missing_keys == ["b", "a"]
        await job_runner.join()

    @pytest.mark.asyncio
    async def test_default_language_needs_no_job(self, switcher, backend, job_runner):
        seed(backend, {"home.title": "Welcome"})

        response = await switcher.build_switch_response("en", ["home.title"])

        assert [(f.key, f.text) for f in response.fragments] == [("home.title", "Welcome")]
        assert response.missing_keys == []
        assert response.job_id is None
        assert job_runner.pending_count == 0

    @pytest.mark.asyncio
    async def test_does_not_wait_for_job(self, backend, cache, broadcaster):
        provider = GatedProvider()
        switcher, runner = make_switcher(backend, provider, cache, broadcaster)
        seed(backend, {"a": "A"})

        response = await switcher.build_switch_response("fr", ["a"])

        assert runner.is_running(response.job_id)
        provider.gate.set()
        await runner.join()
        assert not runner.is_running(response.job_id)


# =============================================================================
# Background Job
# =============================================================================


class TestBackgroundJob:
    @pytest.mark.asyncio
    async def test_event_order(self, switcher, backend, job_runner, recorder):
        seed(backend, {"k1": "One", "k2": "Two"})

        response = await switcher.build_switch_response("fr", ["k1", "k2"])
        await job_runner.join()

        assert recorder.types == [
            EventTypes.PROGRESS,
            EventTypes.PROGRESS, EventTypes.STRING_TRANSLATED, EventTypes.PROGRESS,
            EventTypes.PROGRESS, EventTypes.STRING_TRANSLATED, EventTypes.PROGRESS,
            EventTypes.COMPLETE,
        ]
        progress = recorder.of_type(EventTypes.PROGRESS)
        assert [p.payload["current_key"] for p in progress] == [None, "k1", "k1", "k2", "k2"]
        assert all(p.payload["job_id"] == response.job_id for p in progress)

        translated = recorder.of_type(EventTypes.STRING_TRANSLATED)
        assert [e.payload for e in translated] == [
            {"key": "k1", "language_code": "fr", "translated_text": "One<fr>"},
            {"key": "k2", "language_code": "fr", "translated_text": "Two<fr>"},
        ]
        assert recorder.of_type(EventTypes.COMPLETE)[0].payload == {
            "job_id": response.job_id,
            "translated_count": 2,
        }

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, switcher, backend, job_runner, recorder):
        seed(backend, {f"k{i}": f"Text {i}" for i in range(5)})

        await switcher.build_switch_response("de", [f"k{i}" for i in range(5)])
        await job_runner.join()

        completed = [e.payload["completed"] for e in recorder.of_type(EventTypes.PROGRESS)]
        assert completed == sorted(completed)
        assert completed[0] == 0
        assert completed[-1] == 5
        assert recorder.of_type(EventTypes.PROGRESS)[-1].payload["percentage"] == 100.0

    @pytest.mark.asyncio
    async def test_stores_translations(self, switcher, backend, store, job_runner, service):
        seed(backend, {"home.lead": "Hello world"})

        await switcher.build_switch_response("fr", ["home.lead"])
        await job_runner.join()

        translation = await store.get_translation("home.lead", "fr")
        assert translation.translated_text == "Hello world<fr>"
        assert translation.ai_model == "fake-model"
        assert await service.resolve("home.lead", "fr") == "Hello world<fr>"

    @pytest.mark.asyncio
    async def test_evicts_stale_cache(self, switcher, backend, job_runner, cache, service):
        seed(backend, {"home.lead": "Hello world"})
        await cache.set("fr", "home.lead", "stale")

        await switcher.build_switch_response("fr", ["home.lead"])
        await job_runner.join()

        assert await service.resolve("home.lead", "fr") == "Hello world<fr>"

    @pytest.mark.asyncio
    async def test_falls_back_for_omitted_and_blank_items(self, backend, cache, broadcaster, recorder):
        provider = FakeProvider(batch_result={"a": "A-batch", "b": "   "})
        switcher, runner = make_switcher(backend, provider, cache, broadcaster)
        seed(backend, {"a": "A", "b": "B", "c": "C"})

        await switcher.build_switch_response("fr", ["a", "b", "c"])
        await runner.join()

        texts = {e.payload["key"]: e.payload["translated_text"] for e in recorder.of_type(EventTypes.STRING_TRANSLATED)}
        assert texts == {"a": "A-batch", "b": "B<fr>", "c": "C<fr>"}
        assert provider.calls == [("B", "fr"), ("C", "fr")]

    @pytest.mark.asyncio
    async def test_batch_failure_translates_one_by_one(self, backend, cache, broadcaster, recorder):
        provider = FakeProvider(fail_batch=True)
        switcher, runner = make_switcher(backend, provider, cache, broadcaster)
        seed(backend, {"a": "A", "b": "B"})

        await switcher.build_switch_response("fr", ["a", "b"])
        await runner.join()

        assert len(provider.calls) == 2
        assert recorder.of_type(EventTypes.COMPLETE)[0].payload["translated_count"] == 2

    @pytest.mark.asyncio
    async def test_store_failure_skips_key(self, backend, cache, broadcaster, recorder):
        class FailingStore(InMemoryTranslationStore):
            async def upsert_translation(self, translation_string_id, *args, **kwargs):
                if translation_string_id == 1:
                    raise OSError("disk full")
                return await super().upsert_translation(translation_string_id, *args, **kwargs)

        switcher, runner = make_switcher(backend, FakeProvider(), cache, broadcaster, store_cls=FailingStore)
        seed(backend, {"a": "A", "b": "B"})

        await switcher.build_switch_response("fr", ["a", "b"])
        await runner.join()

        assert [e.payload["key"] for e in recorder.of_type(EventTypes.STRING_TRANSLATED)] == ["b"]
        assert recorder.of_type(EventTypes.COMPLETE)[0].payload["translated_count"] == 1

    @pytest.mark.asyncio
    async def test_uses_fresh_dependencies(self, backend, cache, broadcaster):
        built = []

        def provider_factory():
            provider = FakeProvider()
            built.append(provider)
            return provider

        runner = TranslationJobRunner(
            create_dependency_factory(
                lambda: InMemoryTranslationStore(backend),
                provider_factory,
                cache,
                broadcaster,
                KeyLocks(),
            ),
        )
        request_provider = FakeProvider()
        switcher = LanguageSwitchService(InMemoryTranslationStore(backend), runner)
        seed(backend, {"a": "A"})

        await switcher.build_switch_response("fr", ["a"])
        await runner.join()

        assert len(built) == 1
        assert built[0].batch_calls == [{"a": "A"}]
        assert built[0].closed
        assert request_provider.batch_calls == []


# =============================================================================
# Deduplication
# =============================================================================


class TestJobDeduplication:
    @pytest.mark.asyncio
    async def test_same_missing_set_shares_job(self, backend, cache, broadcaster):
        provider = GatedProvider()
        switcher, runner = make_switcher(backend, provider, cache, broadcaster)
        seed(backend, {"a": "A", "b": "B"})

        first = await switcher.build_switch_response("fr", ["a", "b"])
        second = await switcher.build_switch_response("fr", ["b", "a"])
        other_language = await switcher.build_switch_response("de", ["a", "b"])

        assert first.job_id == second.job_id
        assert other_language.job_id != first.job_id

        provider.gate.set()
        await runner.join()

        third = await switcher.build_switch_response("es", ["a", "b"])
        assert third.job_id not in (first.job_id, other_language.job_id)
        await runner.join()
