from __future__ import annotations

import pytest

from core.dispatcher import NotificationDispatcher
from core.state_store import StateStore
from models.event import ShutdownEvent
from notifiers.base import Messenger
from providers.base import ShutdownProvider

DEFAULT_CHAT_ID = 1000


class FakeMessenger(Messenger):
    """Records every delivery; chat ids in ``failing`` raise instead."""

    def __init__(self, failing: set[int] | None = None) -> None:
        self.sent: list[tuple[int, str]] = []
        self.failing = failing or set()

    async def send(self, chat_id: int, text: str) -> None:
        if chat_id in self.failing:
            raise RuntimeError(f"chat {chat_id} unreachable")
        self.sent.append((chat_id, text))


class FakeProvider(ShutdownProvider):
    """Serves canned event lists, or raises ``error`` when set."""

    def __init__(self, events: list[ShutdownEvent] | None = None) -> None:
        super().__init__(client=None)
        self.events = events or []
        self.error: Exception | None = None
        self.calls = 0

    @property
    def name(self) -> str:
        return "Fake"

    async def fetch_events(self) -> list[ShutdownEvent]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.events)


def make_event(n: int = 1, **overrides) -> ShutdownEvent:
    fields = dict(
        id=str(n),
        date_start="2026-10-18T08:00:00",
        date_end="2026-10-18T17:00:00",
        work_type=f"Планові роботи {n}",
        shutdown_type="Планове",
        queue_gpv="1.1",
        queue_gav="2",
        status="Заплановано",
    )
    fields.update(overrides)
    return ShutdownEvent(**fields)


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "state" / "state.json")


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def provider():
    return FakeProvider([make_event(1), make_event(2)])


@pytest.fixture
def dispatcher(messenger, store):
    return NotificationDispatcher(messenger, store, default_chat_id=DEFAULT_CHAT_ID)
