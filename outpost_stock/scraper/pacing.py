"""
Outpost Stock — Request Pacing

Keeps a minimum gap between consecutive requests to the storefront, which
has no published rate limit but tolerates roughly one page per second.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from outpost_stock.config import settings

logger = structlog.get_logger(__name__)


class RequestPacer:
    """
    Enforces DELAY_BETWEEN_REQUESTS_MS between requests.

    Usage:
        pacer = RequestPacer()
        await pacer.wait()   # sleeps only if the last request was too recent
        ...request...
    """

    def __init__(self, min_interval_ms: int | None = None) -> None:
        if min_interval_ms is None:
            min_interval_ms = settings.DELAY_BETWEEN_REQUESTS_MS
        self._min_interval: float = max(0, min_interval_ms) / 1000
        self._last_request: float | None = None
        self._requests_made: int = 0

    def seconds_until_ready(self) -> float:
        """Remaining wait before the next request may go out."""
        if self._last_request is None:
            return 0.0
        elapsed = time.monotonic() - self._last_request
        return max(0.0, self._min_interval - elapsed)

    async def wait(self) -> None:
        """Sleep out the remaining interval, then mark a request as sent."""
        delay = self.seconds_until_ready()
        if delay > 0:
            logger.debug("request_pacing_delay", delay_seconds=round(delay, 3), source="pacing")
            await asyncio.sleep(delay)
        self._last_request = time.monotonic()
        self._requests_made += 1

    @property
    def requests_made(self) -> int:
        return self._requests_made
