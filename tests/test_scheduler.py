"""
Scheduler wiring tests.
"""

import pytest

from locates.infrastructure import LocateScheduler


async def _noop():
    pass


@pytest.mark.asyncio
async def test_start_registers_tick_and_refresh_jobs():
    scheduler = LocateScheduler(tick_seconds=1, refresh_seconds=300)

    await scheduler.start(_noop, _noop)
    try:
        assert scheduler.is_running
        assert sorted(scheduler.job_ids()) == ["clock_tick", "locate_refresh"]
    finally:
        await scheduler.stop()

    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_refresh_disabled_with_zero_interval():
    scheduler = LocateScheduler(tick_seconds=1, refresh_seconds=0)

    await scheduler.start(_noop, _noop)
    try:
        assert scheduler.job_ids() == ["clock_tick"]
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_before_start_is_noop():
    scheduler = LocateScheduler()
    await scheduler.stop()
    assert scheduler.job_ids() == []
