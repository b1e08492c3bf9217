from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from html import escape
from zoneinfo import ZoneInfo

from models.event import ShutdownEvent

POWER_AVAILABLE_MESSAGE = "✅ Електрохарчування є"
UNKNOWN_DATE = "Невідомо"

# Fixed display zone; the host's local timezone is never consulted.
DISPLAY_TZ = ZoneInfo("Europe/Kyiv")
DISPLAY_FORMAT = "%d.%m.%Y, %H:%M"

_FALLBACK_FORMATS = (
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
)


def _parse_datetime(raw: str) -> datetime | None:
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    return None


def format_datetime(raw: str) -> str:
    """Render an upstream timestamp as ``dd.mm.YYYY, HH:MM``.

    Aware values are shown in Kyiv time, naive ones as-is. Anything that
    does not parse is returned untouched.
    """
    raw = raw.strip()
    if not raw:
        return UNKNOWN_DATE

    parsed = _parse_datetime(raw)
    if parsed is None:
        return raw
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(DISPLAY_TZ)
    return parsed.strftime(DISPLAY_FORMAT)


def format_event(event: ShutdownEvent, index: int) -> str:
    # Upstream text goes into HTML parse mode, so it is escaped here.
    lines = [
        f"<b>{index + 1}. {escape(event.work_type, quote=False)}</b>",
        f"📅 Початок: {escape(format_datetime(event.date_start), quote=False)}",
        f"📅 Кінець: {escape(format_datetime(event.date_end), quote=False)}",
    ]
    if event.status:
        lines.append(f"📋 Статус: {escape(event.status, quote=False)}")
    if event.address:
        lines.append(f"📍 Адреса: {escape(event.address, quote=False)}")
    if event.comment:
        lines.append(f"💬 Коментар: {escape(event.comment, quote=False)}")
    return "\n".join(lines)


def format_shutdown_message(events: Sequence[ShutdownEvent]) -> str:
    """Render the whole event list into one Telegram HTML message.

    Output depends only on ``events``; equal input gives byte-identical
    text, which the change detector relies on.
    """
    if not events:
        return POWER_AVAILABLE_MESSAGE

    header = f"⚡ <b>Заплановані відключення ({len(events)})</b>\n"
    body = "\n\n".join(format_event(event, i) for i, event in enumerate(events))
    return header + "\n" + body
