from __future__ import annotations

import logging

import httpx

from core.retry import with_retry
from models.event import ShutdownEvent
from providers.base import ShutdownProvider, UpstreamError
from providers.hoe_parser import parse_response

DEFAULT_API_URL = "https://hoe.com.ua/shutdown-events"

_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}

log = logging.getLogger(__name__)


class HoeProvider(ShutdownProvider):
    """Provider adapter for the HOE (Khmelnytskoblenergo) shutdown lookup.

    Each fetch POSTs the configured street id and house number and hands
    the body to ``parse_response``. Timeouts, transport errors and non-2xx
    statuses are retried with a constant delay; the last failure is raised
    once attempts run out.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        street_id: int,
        house: str,
        api_url: str = DEFAULT_API_URL,
        retry_attempts: int = 3,
        retry_delay_ms: int = 5000,
        request_timeout_ms: int = 30000,
    ) -> None:
        super().__init__(client)
        self._api_url = api_url
        self._street_id = street_id
        self._house = house
        self._retry_attempts = retry_attempts
        self._retry_delay_ms = retry_delay_ms
        self._timeout = httpx.Timeout(request_timeout_ms / 1000)

    @property
    def name(self) -> str:
        return "HOE"

    async def fetch_events(self) -> list[ShutdownEvent]:
        return await with_retry(
            self._fetch_once,
            attempts=self._retry_attempts,
            delay_ms=self._retry_delay_ms,
            on_retry=self._log_retry,
        )

    async def _fetch_once(self) -> list[ShutdownEvent]:
        form = {"streetId": str(self._street_id), "house": self._house}
        resp = await self._client.post(
            self._api_url,
            data=form,
            headers=_HEADERS,
            timeout=self._timeout,
        )

        if not resp.is_success:
            raise UpstreamError(
                f"HOE API returned status {resp.status_code}",
                status_code=resp.status_code,
            )

        events = parse_response(resp.text)
        log.debug(
            "[%s] street=%s house=%s -> %d event(s)",
            self.name,
            self._street_id,
            self._house,
            len(events),
        )
        return events

    def _log_retry(self, exc: Exception, attempt: int) -> None:
        log.warning("[%s] request failed on attempt %d: %s", self.name, attempt, exc)
