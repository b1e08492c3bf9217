"""Interpretation of HOE outage responses.

The endpoint is a scraped website, not a documented API, and has been seen
answering with:

* an HTML fragment holding a ``table-shutdowns`` table,
* an HTML ``alert-info`` banner saying no outage is registered,
* JSON: a bare list, an object with a ``data`` list, or ``{"success": true}``.

``parse_response`` classifies the payload, extracts rows and normalises them
into ``ShutdownEvent`` objects. It never raises: anything it cannot make
sense of degrades to an empty list plus a warning.
"""
from __future__ import annotations

import json
import logging
from html.parser import HTMLParser
from typing import Any

from models.event import (
    STATUS_EMERGENCY,
    STATUS_PLANNED,
    UNKNOWN_WORK_TYPE,
    ShutdownEvent,
)

log = logging.getLogger(__name__)

TABLE_CLASS = "table-shutdowns"
NO_SHUTDOWNS_CLASS = "alert-info"
NO_SHUTDOWNS_TEXT = "відсутнє зареєстроване відключення"

# Вид робіт, Тип відключення, Черга (ГПВ), Черга (ГАВ), Початок, Кінець
MIN_ROW_CELLS = 6

_HTML_MARKERS = ("<div", "<html", "<table")
_PREVIEW_CHARS = 200


class _ShutdownTableExtractor(HTMLParser):
    """Collects cell text for every ``<tr>`` in the tbody of the outage table.

    The outage table is a ``<table>`` carrying ``TABLE_CLASS`` (class or id)
    or any table nested in an element that carries it. Only the first level
    of that table is read;
    markup nested inside a cell contributes its text to that cell.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.found_table = False
        self.rows: list[list[str]] = []
        self._table_depth = 0
        # Open elements (tag, nesting count) that carry the marker themselves.
        self._wrappers: list[list] = []
        self._in_tbody = False
        self._row: list[str] | None = None
        self._cell: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "table":
            if self._table_depth:
                self._table_depth += 1
            elif self._wrappers or _has_marker(attrs):
                self.found_table = True
                self._table_depth = 1
            return

        if not self._table_depth:
            if self._wrappers and tag == self._wrappers[-1][0]:
                self._wrappers[-1][1] += 1
            elif _has_marker(attrs):
                self._wrappers.append([tag, 1])
            return

        if self._table_depth != 1:
            return

        if tag == "tbody":
            self._in_tbody = True
        elif tag == "tr" and self._in_tbody:
            self._close_row()
            self._row = []
        elif tag == "td" and self._row is not None:
            self._close_cell()
            self._cell = []

    def handle_endtag(self, tag: str) -> None:
        if tag == "table" and self._table_depth:
            self._table_depth -= 1
            if not self._table_depth:
                self._close_row()
                self._in_tbody = False
            return

        if not self._table_depth:
            if self._wrappers and tag == self._wrappers[-1][0]:
                self._wrappers[-1][1] -= 1
                if not self._wrappers[-1][1]:
                    self._wrappers.pop()
            return

        if self._table_depth != 1:
            return

        if tag == "td":
            self._close_cell()
        elif tag == "tr":
            self._close_row()
        elif tag == "tbody":
            self._close_row()
            self._in_tbody = False

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)

    def _close_cell(self) -> None:
        if self._cell is not None and self._row is not None:
            self._row.append(" ".join("".join(self._cell).split()))
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None:
            self.rows.append(self._row)
        self._row = None


def _has_marker(attrs: list[tuple[str, str | None]]) -> bool:
    for key, value in attrs:
        if not value:
            continue
        if key == "class" and TABLE_CLASS in value.split():
            return True
        if key == "id" and value == TABLE_CLASS:
            return True
    return False


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    return text[:limit]


def is_html_response(text: str) -> bool:
    trimmed = text.strip()
    return trimmed.startswith("<") or any(marker in trimmed for marker in _HTML_MARKERS)


def is_no_shutdowns_alert(text: str) -> bool:
    return NO_SHUTDOWNS_CLASS in text and NO_SHUTDOWNS_TEXT in text


def parse_html_table(html: str) -> list[ShutdownEvent]:
    """Extract events from the ``table-shutdowns`` table.

    Rows with fewer than ``MIN_ROW_CELLS`` cells are dropped; ids are
    assigned sequentially from 1 over the kept rows.
    """
    extractor = _ShutdownTableExtractor()
    extractor.feed(html)
    extractor.close()
    if not extractor.found_table:
        log.debug("No %s table in HTML response", TABLE_CLASS)
        return []

    events: list[ShutdownEvent] = []
    for cells in extractor.rows:
        if len(cells) < MIN_ROW_CELLS:
            continue
        work_type, shutdown_type, queue_gpv, queue_gav, start, end = cells[:MIN_ROW_CELLS]
        events.append(ShutdownEvent(
            id=str(len(events) + 1),
            date_start=start,
            date_end=end,
            work_type=work_type,
            shutdown_type=shutdown_type,
            queue_gpv=queue_gpv,
            queue_gav=queue_gav,
            status=STATUS_EMERGENCY if shutdown_type == STATUS_EMERGENCY else STATUS_PLANNED,
        ))
    return events


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _text(raw: dict[str, Any], *keys: str, default: str = "") -> str:
    value = _first(raw, *keys)
    return default if value is None else str(value)


def _optional_text(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return str(value) if value else None


def normalize_event(raw: dict[str, Any]) -> ShutdownEvent:
    """Map one JSON record onto ``ShutdownEvent``, accepting known aliases."""
    return ShutdownEvent(
        id=_text(raw, "id", "eventId"),
        date_start=_text(raw, "dateStart", "date_start", "startDate"),
        date_end=_text(raw, "dateEnd", "date_end", "endDate"),
        work_type=_text(raw, "type", "eventType", default=UNKNOWN_WORK_TYPE),
        shutdown_type=_text(raw, "shutdownType", "shutdown_type"),
        queue_gpv=_text(raw, "queueGpv", "queue_gpv", default="-"),
        queue_gav=_text(raw, "queueGav", "queue_gav", default="-"),
        status=_text(raw, "status", default=STATUS_PLANNED),
        comment=_optional_text(raw, "comment"),
        address=_optional_text(raw, "address"),
    )


def _normalize_all(items: list[Any]) -> list[ShutdownEvent]:
    events: list[ShutdownEvent] = []
    for item in items:
        if not isinstance(item, dict):
            log.warning("Skipping non-object event entry: %r", item)
            continue
        events.append(normalize_event(item))
    return events


def parse_json_payload(data: Any) -> list[ShutdownEvent]:
    if isinstance(data, list):
        return _normalize_all(data)

    if isinstance(data, dict):
        items = data.get("data")
        if isinstance(items, list):
            return _normalize_all(items)
        if data.get("success") and not items:
            return []

    log.warning("Unexpected HOE response format: %s", _preview(repr(data)))
    return []


def parse_response(payload: str | bytes) -> list[ShutdownEvent]:
    """Classify an upstream payload and return the events it describes."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")

    if is_html_response(payload):
        if is_no_shutdowns_alert(payload):
            log.info("No registered shutdowns for the configured address")
            return []

        events = parse_html_table(payload)
        if events:
            log.info("Parsed %d shutdown event(s) from HTML table", len(events))
            return events

        log.warning("Could not parse HTML response: %s", _preview(payload))
        return []

    try:
        data = json.loads(payload)
    except ValueError:
        log.warning("Failed to parse HOE response as JSON: %s", _preview(payload, 100))
        return []

    return parse_json_payload(data)
