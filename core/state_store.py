from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from models.state import StateData

log = logging.getLogger(__name__)

DEFAULT_STATE_PATH = Path(".state/state.json")

T = TypeVar("T")


class StateStore:
    """JSON-file snapshot of the monitor's durable state.

    ``load()`` never fails observably: a missing file is a first run, a
    broken one is logged and replaced by defaults. ``save()`` writes through
    a temporary file and ``os.replace`` so a crash never leaves a half-written
    snapshot, and it raises on failure so callers can react.

    Every read-modify-write helper holds the store's lock for the whole
    load/modify/save sequence, so concurrent updates within the process are
    serialised instead of overwriting each other.
    """

    def __init__(self, path: str | Path = DEFAULT_STATE_PATH) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> StateData:
        return await asyncio.to_thread(self._read)

    async def save(self, state: StateData) -> None:
        try:
            await asyncio.to_thread(self._write, state)
        except Exception:
            log.exception("Failed to save state to %s", self._path)
            raise
        log.debug("State saved to %s", self._path)

    def _read(self) -> StateData:
        try:
            with self._path.open(encoding="utf-8") as fh:
                return StateData.from_dict(json.load(fh))
        except FileNotFoundError:
            return StateData()
        except (OSError, ValueError, TypeError) as exc:
            log.warning("Failed to load state from %s, using defaults: %s", self._path, exc)
            return StateData()

    def _write(self, state: StateData) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    async def _update(self, mutate: Callable[[StateData], T]) -> T:
        """Apply ``mutate`` to a fresh snapshot and persist it atomically.

        ``mutate`` edits the state in place. Returning ``False`` means nothing
        changed and skips the save; the return value is passed back as-is.
        """
        async with self._lock:
            state = await self.load()
            result = mutate(state)
            if result is not False:
                await self.save(state)
            return result

    async def get_last_hash(self) -> str | None:
        state = await self.load()
        return state.last_message_hash

    async def update_last_hash(
        self,
        message_hash: str,
        event_ids: list[str] | None = None,
    ) -> None:
        def mutate(state: StateData) -> None:
            state.last_message_hash = message_hash
            state.last_check_time = datetime.now(timezone.utc)
            if event_ids is not None:
                state.last_event_ids = list(event_ids)

        await self._update(mutate)

    async def list_subscribers(self) -> list[int]:
        state = await self.load()
        return list(state.subscribers)

    async def is_subscribed(self, chat_id: int) -> bool:
        return chat_id in await self.list_subscribers()

    async def add_subscriber(self, chat_id: int) -> bool:
        """Register ``chat_id``; returns False if it was already subscribed."""

        def mutate(state: StateData) -> bool:
            if chat_id in state.subscribers:
                return False
            state.subscribers.append(chat_id)
            return True

        added = await self._update(mutate)
        if added:
            log.info("Subscriber added: %s", chat_id)
        return added

    async def remove_subscriber(self, chat_id: int) -> bool:
        """Drop ``chat_id``; returns False if it was not subscribed."""

        def mutate(state: StateData) -> bool:
            if chat_id not in state.subscribers:
                return False
            state.subscribers.remove(chat_id)
            return True

        removed = await self._update(mutate)
        if removed:
            log.info("Subscriber removed: %s", chat_id)
        return removed
