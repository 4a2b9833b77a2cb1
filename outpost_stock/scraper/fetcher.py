"""
Outpost Stock — Collection Fetcher

Fetches catalog and collection pages over HTTP with a browser User-Agent,
a per-request timeout and request pacing. The fetcher does not retry; the
orchestrator wraps fetch_collection() in retry_async().
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from outpost_stock.config import settings
from outpost_stock.scraper import CollectionRef
from outpost_stock.scraper.extractor import count_card_containers
from outpost_stock.scraper.pacing import RequestPacer

logger = structlog.get_logger(__name__)


class CollectionFetcher:
    """
    Async HTTP client for the Outpost storefront.

    Usage:
        async with CollectionFetcher() as fetcher:
            html = await fetcher.fetch_collection(ref)
    """

    def __init__(
        self,
        user_agent: str | None = None,
        timeout_ms: int | None = None,
        empty_check_timeout_ms: int | None = None,
        delay_between_requests_ms: int | None = None,
        catalog_url: str | None = None,
    ):
        self._user_agent = user_agent or settings.OUTPOST_USER_AGENT
        self._timeout_ms = timeout_ms or settings.TIMEOUT_MS
        self._empty_check_timeout_ms = empty_check_timeout_ms or settings.EMPTY_CHECK_TIMEOUT_MS
        self._catalog_url = catalog_url or settings.OUTPOST_CATALOG_URL
        self.pacer = RequestPacer(delay_between_requests_ms)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> CollectionFetcher:
        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": self._user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
            timeout=self._timeout_ms / 1000,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def fetch(self, url: str, timeout_ms: int | None = None) -> str:
        """
        GET a page and return its body.

        Raises:
            httpx.HTTPStatusError: Non-2xx response.
            httpx.RequestError: Timeout or network failure.
        """
        assert self._client is not None, "Fetcher not initialized. Use 'async with'."

        await self.pacer.wait()
        timeout = (timeout_ms or self._timeout_ms) / 1000
        response = await self._client.get(url, timeout=timeout)
        response.raise_for_status()
        return response.text

    async def fetch_catalog(self) -> str:
        logger.info("catalog_fetch", url=self._catalog_url, source="fetcher")
        return await self.fetch(self._catalog_url)

    async def fetch_collection(self, collection: CollectionRef) -> str:
        """Fetch one collection's product list page (single attempt)."""
        logger.info(
            "collection_fetch",
            collection=collection.name,
            collection_id=collection.id,
            source="fetcher",
        )
        return await self.fetch(collection.url)

    async def has_cards(self, collection: CollectionRef) -> bool:
        """
        Quick check whether a collection lists any cards.

        Any HTTP failure counts as empty: the collection is skipped for this
        run rather than aborting it.
        """
        try:
            html = await self.fetch(collection.url, timeout_ms=self._empty_check_timeout_ms)
        except httpx.HTTPError as e:
            logger.warning(
                "collection_empty_check_failed",
                collection=collection.name,
                collection_id=collection.id,
                error=str(e),
                source="fetcher",
            )
            return False

        count = count_card_containers(html)
        logger.debug(
            "collection_empty_check",
            collection_id=collection.id,
            card_containers=count,
            source="fetcher",
        )
        return count > 0
