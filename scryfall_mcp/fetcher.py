"""
Rate-limited HTTP fetcher shared by every upstream client.

Scryfall asks for 50-100ms between requests. Rather than sprinkling sleeps
around the clients, all outbound GETs go through one RateLimitedFetcher
instance that remembers when it last dispatched a request.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from scryfall_mcp import config

logger = logging.getLogger(__name__)

# Sent with every request (Scryfall requires a User-Agent)
DEFAULT_HEADERS = {
    "User-Agent": config.USER_AGENT,
    "Accept": "application/json"
}


class RateLimitedFetcher:
    """
    Issues GET requests no closer together than `rate_limit_ms`.

    The spacing is measured from one dispatch to the next, and it holds even
    when many coroutines call fetch() at once: the wait-and-stamp step runs
    under a lock, so a burst turns into a steady drip. The request itself is
    sent outside the lock.

    Status codes aren't inspected and nothing is retried; callers decide
    what a non-2xx response means.
    """

    def __init__(
        self,
        rate_limit_ms: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable = asyncio.sleep,
    ):
        if rate_limit_ms is None:
            rate_limit_ms = config.get_rate_limit_ms()
        if timeout is None:
            timeout = config.get_timeout()

        self.min_interval = rate_limit_ms / 1000.0
        self.timeout = timeout
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self._last_fetch_time: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def last_fetch_time(self) -> Optional[float]:
        return self._last_fetch_time

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            if self._last_fetch_time is not None:
                elapsed = self._clock() - self._last_fetch_time
                if elapsed < self.min_interval:
                    await self._sleep(self.min_interval - elapsed)
            self._last_fetch_time = self._clock()

    async def fetch(self, url: str) -> httpx.Response:
        """
        GETs `url` once the rate limit allows it.

        Raises whatever httpx raises for transport failures (connection
        errors, timeouts); HTTP error statuses are returned as-is.
        """
        await self._wait_for_slot()
        logger.debug("GET %s", url)

        if self._client is not None:
            return await self._client.get(url, headers=DEFAULT_HEADERS, timeout=self.timeout)

        async with httpx.AsyncClient() as client:
            return await client.get(url, headers=DEFAULT_HEADERS, timeout=self.timeout)
