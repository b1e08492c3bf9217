from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from core.monitor import ShutdownMonitor

log = logging.getLogger(__name__)

DEFAULT_CRON_SCHEDULE = "*/30 * * * *"
DEFAULT_TIMEZONE = "Europe/Kyiv"

JOB_ID = "check-and-notify"


class Scheduler:
    """Cron-driven trigger for the monitor's check cycle.

    Wraps an APScheduler ``AsyncIOScheduler`` running on the current event
    loop. A failed cycle is logged and swallowed here so the next tick still
    fires; ``max_instances=1`` keeps ticks from overlapping.
    """

    def __init__(
        self,
        monitor: ShutdownMonitor,
        cron_schedule: str = DEFAULT_CRON_SCHEDULE,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self._monitor = monitor
        self._cron_schedule = cron_schedule
        self._trigger = CronTrigger.from_crontab(cron_schedule, timezone=timezone)
        self._scheduler = AsyncIOScheduler(timezone=timezone)

    async def run_cycle(self) -> None:
        """One scheduled tick; never raises."""
        log.info("Scheduled check triggered")
        try:
            await self._monitor.check_and_notify()
        except Exception:
            log.exception("Scheduled check failed")

    def start(self) -> None:
        """Register the job and start ticking. Must run inside the event loop."""
        self._scheduler.add_job(
            self.run_cycle,
            self._trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        log.info("Scheduler started (schedule=%r)", self._cron_schedule)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log.info("Scheduler stopped")
