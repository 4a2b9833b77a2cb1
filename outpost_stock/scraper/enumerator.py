"""
Outpost Stock — Collection Enumerator

Discovers sellable collections from the catalog page, either fetched live or
read from a saved HTML snapshot, and orders them so priority sets are
scraped first.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

import structlog
from bs4 import BeautifulSoup

from outpost_stock.config import settings
from outpost_stock.scraper import CollectionRef
from outpost_stock.scraper.fetcher import CollectionFetcher

logger = structlog.get_logger(__name__)

COLLECTION_LINK_SELECTOR = 'a[href*="collectionid="]'
COLLECTION_ID_RE = re.compile(r"collectionid=(\d+)")

# Shorter link texts are pager digits and arrows, not collection names
MIN_COLLECTION_NAME_LENGTH = 3


def collection_url(collection_id: str, base_url: str | None = None) -> str:
    """Product-list URL for a collection id."""
    base_url = base_url or settings.OUTPOST_BASE_URL
    return (
        f"{base_url}index.php?option=com_outpostshop&Itemid=4"
        f"&view=productlist&catalogid=1&collectionid={collection_id}"
    )


def parse_collections(html: str, base_url: str | None = None) -> list[CollectionRef]:
    """
    Find every collection link in a catalog page.

    Links are deduplicated on (id, name) and returned in document order.
    """
    soup = BeautifulSoup(html, "lxml")
    collections: list[CollectionRef] = []
    seen: set[tuple[str, str]] = set()

    for link in soup.select(COLLECTION_LINK_SELECTOR):
        href = link.get("href") or ""
        name = link.get_text(strip=True)
        match = COLLECTION_ID_RE.search(href)
        if not match or len(name) < MIN_COLLECTION_NAME_LENGTH:
            continue

        collection_id = match.group(1)
        key = (collection_id, name)
        if key in seen:
            continue
        seen.add(key)
        collections.append(
            CollectionRef(id=collection_id, name=name, url=collection_url(collection_id, base_url))
        )

    logger.info("collections_parsed", count=len(collections), source="enumerator")
    return collections


async def enumerate_from_catalog(fetcher: CollectionFetcher) -> list[CollectionRef]:
    """Fetch the live catalog page and parse its collection links."""
    html = await fetcher.fetch_catalog()
    return parse_collections(html)


def enumerate_from_snapshot(path: Path) -> list[CollectionRef]:
    """
    Parse collections from a saved catalog page.

    A missing snapshot yields an empty list; the caller treats that as
    nothing to do.
    """
    if not path.exists():
        logger.error("collection_snapshot_missing", path=str(path), source="enumerator")
        return []

    logger.info("collection_snapshot_loading", path=str(path), source="enumerator")
    return parse_collections(path.read_text(encoding="utf-8"))


def _priority_index(name: str, priority: Sequence[str]) -> int:
    for index, term in enumerate(priority):
        if term in name:
            return index
    return len(priority)


def prioritize(
    collections: Sequence[CollectionRef],
    priority: Sequence[str],
) -> list[CollectionRef]:
    """
    Move priority collections to the front.

    A collection matches the first priority term contained in its name and is
    ordered by that term's position. Everything else keeps discovery order
    (sorted() is stable).
    """
    return sorted(collections, key=lambda c: _priority_index(c.name, priority))
