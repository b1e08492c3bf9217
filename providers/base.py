from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from models.event import ShutdownEvent


class UpstreamError(Exception):
    """The outage endpoint answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShutdownProvider(ABC):
    """Abstract base for outage-schedule sources.

    A concrete provider fetches its upstream payload and normalises it into
    ``ShutdownEvent`` objects. A shared ``httpx.AsyncClient`` is injected at
    construction time so the process reuses one connection pool.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. 'HOE')."""

    @abstractmethod
    async def fetch_events(self) -> list[ShutdownEvent]:
        """Fetch the current outage schedule.

        An empty list is a valid "no outages" answer. Transport failures and
        non-2xx responses raise once retries are exhausted; unparseable
        payloads degrade to an empty list.
        """
