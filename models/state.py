from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class StateData:
    """Durable process state, persisted as a single JSON snapshot.

    ``subscribers`` keeps insertion order and never holds duplicates.
    """

    last_message_hash: str | None = None
    last_check_time: datetime | None = None
    last_event_ids: list[str] = field(default_factory=list)
    subscribers: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastMessageHash": self.last_message_hash,
            "lastCheckTime": (
                self.last_check_time.isoformat() if self.last_check_time else None
            ),
            "lastEventIds": list(self.last_event_ids),
            "subscribers": list(self.subscribers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StateData:
        """Build state from the on-disk mapping.

        Missing keys fall back to defaults. Raises ``TypeError`` or
        ``ValueError`` on values of the wrong shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"state must be a JSON object, got {type(data).__name__}")

        raw_time = data.get("lastCheckTime")
        subscribers: list[int] = []
        for raw_id in data.get("subscribers") or []:
            chat_id = int(raw_id)
            if chat_id not in subscribers:
                subscribers.append(chat_id)

        return cls(
            last_message_hash=data.get("lastMessageHash"),
            last_check_time=datetime.fromisoformat(raw_time) if raw_time else None,
            last_event_ids=[str(i) for i in data.get("lastEventIds") or []],
            subscribers=subscribers,
        )
