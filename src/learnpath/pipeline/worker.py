"""Bounded background execution for path-generation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Hashable
from contextlib import asynccontextmanager, nullcontext

from learnpath.storage.interfaces import JobLedger

logger = logging.getLogger(__name__)

ORPHANED_ERROR = "Job orphaned: no worker was running it (process restarted?)"


class JobRunner:
    """Runs job coroutines with a concurrency bound and keeps a task registry.

    Also hands out per-key locks so two runs for the same learner and
    target never overlap. Locks are process-local.
    """

    def __init__(self, max_concurrent_jobs: int = 4):
        self._semaphore = asyncio.Semaphore(max_concurrent_jobs)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._lock_users: dict[Hashable, int] = {}

    @property
    def active_job_ids(self) -> set[str]:
        return {job_id for job_id, task in self._tasks.items() if not task.done()}

    def submit(
        self, job_id: str, coro: Awaitable[None], lock_key: Hashable | None = None
    ) -> asyncio.Task[None]:
        """Schedule ``coro`` for ``job_id`` and return immediately.

        With ``lock_key``, the run waits for that key before taking a pool
        slot, so queued runs for a busy key do not starve other jobs.
        """
        task = asyncio.create_task(self._bounded(coro, lock_key), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        logger.debug("Submitted job %s (%d active)", job_id, len(self.active_job_ids))
        return task

    async def _bounded(self, coro: Awaitable[None], lock_key: Hashable | None) -> None:
        async with self.lock_for(lock_key) if lock_key is not None else nullcontext():
            async with self._semaphore:
                await coro

    def _on_done(self, job_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if task.cancelled():
            logger.warning("Job task %s was cancelled", job_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Job task %s failed: %s", job_id, exc, exc_info=exc)

    @asynccontextmanager
    async def lock_for(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key``; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    def has_lock(self, key: Hashable) -> bool:
        return key in self._locks

    async def join(self) -> None:
        """Wait for every submitted job to finish."""
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def reconcile_orphans(self, ledger: JobLedger) -> list[str]:
        """Fail non-terminal jobs that no live task in this process is running."""
        live = self.active_job_ids
        orphaned = []
        for job in await ledger.list_by_status(("pending", "processing")):
            if job.id in live:
                continue
            await ledger.update(job.id, {"status": "failed", "error": ORPHANED_ERROR})
            orphaned.append(job.id)
        if orphaned:
            logger.warning("Marked %d orphaned job(s) as failed: %s", len(orphaned), ", ".join(orphaned))
        return orphaned
