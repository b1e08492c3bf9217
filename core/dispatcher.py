from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from html import escape

from core.state_store import StateStore
from notifiers.base import Messenger

log = logging.getLogger(__name__)

ERROR_TITLE = "⚠️ <b>Помилка отримання даних з hoe.com.ua</b>"


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of one broadcast: per-recipient results, never all-or-nothing."""

    succeeded: int = 0
    failed: int = 0
    errors: dict[int, BaseException] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class NotificationDispatcher:
    """Fans a message out to every subscriber plus the default chat.

    Sends run concurrently and independently: one recipient failing does not
    stop delivery to the others, and the broadcast itself never raises for
    delivery errors. Retrying an individual send is the messenger's job.
    """

    def __init__(
        self,
        messenger: Messenger,
        store: StateStore,
        default_chat_id: int | None = None,
    ) -> None:
        self._messenger = messenger
        self._store = store
        self._default_chat_id = default_chat_id

    async def recipients(self) -> list[int]:
        chat_ids = await self._store.list_subscribers()
        if self._default_chat_id is not None and self._default_chat_id not in chat_ids:
            chat_ids.append(self._default_chat_id)
        return chat_ids

    async def broadcast(self, text: str) -> DeliveryReport:
        chat_ids = await self.recipients()
        if not chat_ids:
            log.warning("No subscribers to send message to")
            return DeliveryReport()

        log.info("Sending message to %d recipient(s)", len(chat_ids))
        results = await asyncio.gather(
            *(self._messenger.send(chat_id, text) for chat_id in chat_ids),
            return_exceptions=True,
        )

        errors = {
            chat_id: result
            for chat_id, result in zip(chat_ids, results)
            if isinstance(result, BaseException)
        }
        report = DeliveryReport(
            succeeded=len(chat_ids) - len(errors),
            failed=len(errors),
            errors=errors,
        )

        log.info(
            "Broadcast completed: %d succeeded, %d failed, %d total",
            report.succeeded,
            report.failed,
            report.total,
        )
        for chat_id, exc in errors.items():
            log.warning("Delivery to %s failed: %s", chat_id, exc)
        return report

    async def send_error_notification(self, error: BaseException) -> None:
        """Best-effort alert to the default chat; never raises."""
        if self._default_chat_id is None:
            log.warning("No default chat configured for error notifications")
            return

        text = f"{ERROR_TITLE}\n\n{escape(str(error), quote=False)}"
        try:
            await self._messenger.send(self._default_chat_id, text)
        except Exception:
            log.exception("Failed to send error notification")
