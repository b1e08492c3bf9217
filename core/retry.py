from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY_MS = 5000


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    delay_ms: int = DEFAULT_DELAY_MS,
    on_retry: Callable[[Exception, int], None] | None = None,
) -> T:
    """Await ``operation()`` up to ``attempts`` times with a constant delay.

    Before each retry ``on_retry(exc, attempt)`` is invoked (when given) and
    the caller sleeps ``delay_ms`` milliseconds. Once attempts are exhausted
    the last exception is re-raised unchanged.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == attempts:
                raise
            log.warning(
                "Attempt %d/%d failed (%s), retrying in %dms",
                attempt,
                attempts,
                exc,
                delay_ms,
            )
            if on_retry is not None:
                on_retry(exc, attempt)
            await asyncio.sleep(delay_ms / 1000)

    raise AssertionError("unreachable")
