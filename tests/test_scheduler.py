from unittest.mock import AsyncMock, MagicMock

import pytest

from core.scheduler import JOB_ID, Scheduler


def _monitor(side_effect=None):
    monitor = MagicMock()
    monitor.check_and_notify = AsyncMock(side_effect=side_effect)
    return monitor


@pytest.mark.asyncio
async def test_run_cycle_calls_monitor():
    monitor = _monitor()
    await Scheduler(monitor).run_cycle()
    monitor.check_and_notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_cycle_swallows_failures(caplog):
    monitor = _monitor(side_effect=RuntimeError("upstream down"))
    scheduler = Scheduler(monitor)

    await scheduler.run_cycle()
    await scheduler.run_cycle()

    assert monitor.check_and_notify.await_count == 2
    assert "Scheduled check failed" in caplog.text


@pytest.mark.asyncio
async def test_start_registers_cron_job():
    scheduler = Scheduler(_monitor(), "*/15 * * * *", "Europe/Kyiv")
    scheduler.start()
    try:
        job = scheduler._scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.next_run_time.minute % 15 == 0
        assert job.next_run_time.second == 0
    finally:
        scheduler.shutdown()


def test_invalid_cron_rejected():
    with pytest.raises(ValueError):
        Scheduler(_monitor(), "not a cron")
