"""
Background job runner.

Jobs run as ``asyncio`` tasks owned by the runner, not by the request that
submitted them: a request that finishes or is cancelled does not affect its
jobs. Each job gets a freshly built ``JobDependencies`` bundle (new store
handle, new provider) and releases it when done. Nothing a job raises reaches
the submitter; errors are reported through ``capture_exception``.

Usage:
    runner = TranslationJobRunner(dependency_factory)

    async def job(job_id: str, deps: JobDependencies) -> None:
        ...

    job_id = runner.submit(job, dedupe_key="fr:ab12cd")
    await runner.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from uitranslate.cache import TranslationCache
from uitranslate.core.events import TranslationBroadcaster
from uitranslate.core.utils import generate_id
from uitranslate.integrations.sentry import capture_exception
from uitranslate.providers.base import ProviderFactory, TranslationProvider
from uitranslate.services.translation import KeyLocks
from uitranslate.storage.base import StoreFactory, TranslationStore

logger = logging.getLogger(__name__)


@dataclass
class JobDependencies:
    """Everything a background job may touch, built for that job alone."""

    store: TranslationStore
    provider: TranslationProvider
    cache: TranslationCache
    broadcaster: TranslationBroadcaster
    key_locks: KeyLocks
    default_language: str = "en"

    async def aclose(self) -> None:
        await self.provider.aclose()


DependencyFactory = Callable[[], JobDependencies]
Job = Callable[[str, JobDependencies], Awaitable[Any]]


def create_dependency_factory(
    store_factory: StoreFactory,
    provider_factory: ProviderFactory,
    cache: TranslationCache,
    broadcaster: TranslationBroadcaster,
    key_locks: KeyLocks,
    default_language: str = "en",
) -> DependencyFactory:
    """Bundle per-job handles with the process-wide cache, broadcaster and locks."""

    def build() -> JobDependencies:
        return JobDependencies(
            store=store_factory(),
            provider=provider_factory(),
            cache=cache,
            broadcaster=broadcaster,
            key_locks=key_locks,
            default_language=default_language,
        )

    return build


class TranslationJobRunner:
    """
    Owns in-flight background jobs.

    With ``dedupe`` on, submitting a job whose ``dedupe_key`` matches one
    still running returns the running job's id instead of starting another.
    """

    def __init__(self, dependency_factory: DependencyFactory, dedupe: bool = True):
        self._dependency_factory = dependency_factory
        self.dedupe = dedupe
        self._tasks: dict[str, asyncio.Task] = {}
        self._dedupe_index: dict[str, str] = {}
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    def submit(self, job: Job, dedupe_key: str | None = None) -> str:
        """
        Start a job in the background and return its id immediately.

        Raises:
            RuntimeError: if the runner has been shut down
        """
        if self._closed:
            raise RuntimeError("Job runner is shut down")

        if self.dedupe and dedupe_key is not None:
            existing = self._dedupe_index.get(dedupe_key)
            if existing is not None:
                logger.info("Job %s already running for %s", existing, dedupe_key)
                return existing

        job_id = generate_id("job")
        task = asyncio.create_task(self._run(job_id, job), name=f"translation-{job_id}")
        self._tasks[job_id] = task
        if self.dedupe and dedupe_key is not None:
            self._dedupe_index[dedupe_key] = job_id
        task.add_done_callback(lambda _: self._finished(job_id, dedupe_key))
        return job_id

    async def _run(self, job_id: str, job: Job) -> None:
        deps: JobDependencies | None = None
        try:
            deps = self._dependency_factory()
            await job(job_id, deps)
        except asyncio.CancelledError:
            logger.warning("Job %s cancelled", job_id)
            raise
        except Exception as e:
            capture_exception(e, job_id=job_id)
        finally:
            if deps is not None:
                try:
                    await deps.aclose()
                except Exception:
                    logger.exception("Failed to release resources of job %s", job_id)

    def _finished(self, job_id: str, dedupe_key: str | None) -> None:
        self._tasks.pop(job_id, None)
        if dedupe_key is not None and self._dedupe_index.get(dedupe_key) == job_id:
            del self._dedupe_index[dedupe_key]

    async def wait(self, job_id: str) -> None:
        """Wait for one job (no-op if it already finished)."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)

    async def join(self) -> None:
        """Wait until no job is in flight, including jobs started meanwhile."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop accepting jobs, let running ones finish, cancel stragglers."""
        self._closed = True
        tasks = list(self._tasks.values())
        if not tasks:
            return

        logger.info("Waiting for %d translation jobs", len(tasks))
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Cancelled %d translation jobs at shutdown", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
