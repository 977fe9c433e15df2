"""
backend/tests/test_run_guard.py

Purpose:
    At-most-one-run-in-flight semantics per job id.
"""

from __future__ import annotations

import asyncio

import pytest

from oddscron.services.run_guard import JobAlreadyRunningError, RunGuard


@pytest.mark.asyncio
async def test_second_hold_on_same_job_is_refused():
    guard = RunGuard()

    async with guard.hold("odds_fetch"):
        assert guard.is_running("odds_fetch")
        with pytest.raises(JobAlreadyRunningError) as excinfo:
            async with guard.hold("odds_fetch"):
                pass

    assert str(excinfo.value) == "odds_fetch already running"
    assert not guard.is_running("odds_fetch")


@pytest.mark.asyncio
async def test_different_jobs_do_not_block_each_other():
    guard = RunGuard()

    async with guard.hold("odds_fetch"):
        async with guard.hold("settlement"):
            assert guard.is_running("settlement")


@pytest.mark.asyncio
async def test_guard_released_after_failure():
    guard = RunGuard()

    with pytest.raises(RuntimeError):
        async with guard.hold("odds_fetch"):
            raise RuntimeError("boom")

    async with guard.hold("odds_fetch"):
        pass


@pytest.mark.asyncio
async def test_concurrent_runs_only_one_proceeds():
    guard = RunGuard()
    started = asyncio.Event()
    release = asyncio.Event()
    outcomes: list[str] = []

    async def _first():
        async with guard.hold("odds_fetch"):
            started.set()
            await release.wait()
            outcomes.append("first")

    async def _second():
        await started.wait()
        try:
            async with guard.hold("odds_fetch"):
                outcomes.append("second")
        except JobAlreadyRunningError:
            outcomes.append("refused")
        release.set()

    await asyncio.gather(_first(), _second())

    assert outcomes == ["refused", "first"]
