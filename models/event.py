from __future__ import annotations

from dataclasses import dataclass

STATUS_EMERGENCY = "Аварійне"
STATUS_PLANNED = "Заплановано"
UNKNOWN_WORK_TYPE = "Невідомо"


@dataclass(frozen=True)
class ShutdownEvent:
    """One scheduled or emergency outage window reported by HOE.

    Fields:
        id:            Identifier, only stable within a single fetch.
        date_start:    Start time as sent upstream (free-form string).
        date_end:      End time as sent upstream (free-form string).
        work_type:     Work category ("Вид робіт").
        shutdown_type: Planned / emergency indicator as sent upstream.
        queue_gpv:     GPV queue group, "-" when absent.
        queue_gav:     GAV queue group, "-" when absent.
        status:        Derived display status.
        comment:       Optional free text.
        address:       Optional free text.
    """

    id: str
    date_start: str
    date_end: str
    work_type: str
    shutdown_type: str = ""
    queue_gpv: str = "-"
    queue_gav: str = "-"
    status: str = STATUS_PLANNED
    comment: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class ShutdownCheckResult:
    """Output of one fetch-and-format pass."""

    has_events: bool
    events: tuple[ShutdownEvent, ...]
    formatted_message: str
    content_hash: str

    @property
    def event_ids(self) -> list[str]:
        return [event.id for event in self.events]
