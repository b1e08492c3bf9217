from __future__ import annotations

import asyncio
import logging

from core.dedup import content_hash, hashes_equal
from core.dispatcher import NotificationDispatcher
from core.formatter import format_shutdown_message
from core.state_store import StateStore
from models.event import ShutdownCheckResult
from providers.base import ShutdownProvider

log = logging.getLogger(__name__)


class ShutdownMonitor:
    """Runs the check cycle: fetch -> format -> hash -> compare -> notify -> persist.

    Scheduled and forced cycles share one lock, so at most one cycle is in
    flight per monitor. A failed cycle sends a best-effort error notice to
    the default chat and then re-raises to the caller.
    """

    def __init__(
        self,
        provider: ShutdownProvider,
        store: StateStore,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._provider = provider
        self._store = store
        self._dispatcher = dispatcher
        self._cycle_lock = asyncio.Lock()

    async def check(self) -> ShutdownCheckResult:
        log.info("Checking for shutdown events via %s", self._provider.name)
        events = await self._provider.fetch_events()

        message = format_shutdown_message(events)
        result = ShutdownCheckResult(
            has_events=bool(events),
            events=tuple(events),
            formatted_message=message,
            content_hash=content_hash(message),
        )
        log.info("Shutdown check completed: %d event(s)", len(events))
        return result

    async def check_and_notify(self) -> bool:
        """Notify only if the rendered schedule changed.

        Returns True when a broadcast happened, False when skipped.
        """
        async with self._cycle_lock:
            try:
                result = await self.check()
                last_hash = await self._store.get_last_hash()
                if last_hash is not None and hashes_equal(last_hash, result.content_hash):
                    log.info("No changes detected, skipping notification")
                    return False

                await self._publish(result)
                return True
            except Exception as exc:
                log.exception("Check cycle failed")
                await self._dispatcher.send_error_notification(exc)
                raise

    async def force_notify(self) -> None:
        """Broadcast the current schedule even if it matches the stored hash."""
        async with self._cycle_lock:
            try:
                result = await self.check()
                await self._publish(result)
            except Exception as exc:
                log.exception("Forced check failed")
                await self._dispatcher.send_error_notification(exc)
                raise

    async def _publish(self, result: ShutdownCheckResult) -> None:
        report = await self._dispatcher.broadcast(result.formatted_message)
        await self._store.update_last_hash(result.content_hash, result.event_ids)
        log.info(
            "Notification sent: has_events=%s events=%d delivered=%d/%d",
            result.has_events,
            len(result.events),
            report.succeeded,
            report.total,
        )
