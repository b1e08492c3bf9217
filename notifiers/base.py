from __future__ import annotations

from abc import ABC, abstractmethod


class Messenger(ABC):
    """Outbound text channel keyed by an integer chat id.

    Implementations deliver one message to one recipient and raise if the
    delivery ultimately fails. Fan-out and failure accounting live in
    ``core.dispatcher.NotificationDispatcher``.
    """

    @abstractmethod
    async def send(self, chat_id: int, text: str) -> None:
        """Deliver ``text`` (Telegram HTML markup) to ``chat_id``."""
