"""
backend/oddscron/services/run_guard.py

Purpose:
    At-most-one-run-in-flight guard per job type. Scheduled and manually
    triggered runs of the same job share one guard, so a second invocation
    is refused instead of overlapping the first.

Dependencies:
    - asyncio
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class JobAlreadyRunningError(RuntimeError):
    """Raised when a job is requested while another run of it is active."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"{job_id} already running")
        self.job_id = job_id


class RunGuard:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        if job_id not in self._locks:
            self._locks[job_id] = asyncio.Lock()
        return self._locks[job_id]

    def is_running(self, job_id: str) -> bool:
        lock = self._locks.get(job_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, job_id: str) -> AsyncIterator[None]:
        lock = self._lock_for(job_id)
        # Single event loop: checking then acquiring has no await in between.
        if lock.locked():
            raise JobAlreadyRunningError(job_id)
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()


run_guard = RunGuard()
