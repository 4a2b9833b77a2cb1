"""
Outpost Stock — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Storefront HTML builders (card containers, sale rows, catalog pages)
- Fast settings (no delays) pointing at tmp_path files
- A scripted fake fetcher for orchestrator runs
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import httpx
import pytest

from outpost_stock.config import Settings
from outpost_stock.models.card import ConditionOffer, ListingRecord
from outpost_stock.pipeline.checkpoint import CheckpointStore
from outpost_stock.pipeline.output import OutputStore
from outpost_stock.scraper import CollectionRef
from outpost_stock.scraper.extractor import count_card_containers


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)

BASE_URL = "https://www.outpost.be/website/"


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------

Sale = tuple[str, int | None, str, str | None]  # (condition, stock, price text, outpost id)


def sale_html(condition: str, stock: int | None, price: str, outpost_id: str | None = "1") -> str:
    stock_el = ""
    if outpost_id is not None:
        stock_el = f'<span id="ostk{outpost_id}">{"" if stock is None else stock}</span>'
    return (
        '<div class="outpost_sli_sale">'
        f'<span class="outpost_sli_quality">{condition}</span>'
        f"{stock_el}"
        f'<span class="outpost_sli_price">{price}</span>'
        "</div>"
    )


def card_html(
    name: str = "Sol Ring",
    *,
    rarity: str = "U",
    foil: bool = False,
    colors: Iterable[str] = (),
    sales: Iterable[Sale] = (("NM/M", 3, "1.50 €", "101"),),
    set_label: str | None = "Commander Masters",
    legacy_price: int | None = None,
    image: str | None = "images/cards/sol-ring.jpg",
    detail: str | None = "index.php?option=com_outpostshop&view=detail&id=42",
) -> str:
    color_flags = " ".join(
        f'{attr}="{1 if attr in set(colors) else 0}"'
        for attr in ("cw", "cu", "cb", "cr", "cg", "cnocol")
    )
    price_attr = f' price="{legacy_price}"' if legacy_price is not None else ""
    parts = [
        f'<div class="outpost_shop_list_item_mtg" elnm="{name}" alphabet="{name[:1]}" '
        f'magicrarity="{rarity}" foil="{1 if foil else 0}" {color_flags}{price_attr}>'
    ]
    if image:
        parts.append(f'<img src="{image}">')
    if detail:
        parts.append(f'<a href="{detail}">{name}</a>')
    if set_label is not None:
        parts.append(f'<span class="outpost_sli_set_mtg">{set_label}</span>')
    parts.extend(sale_html(*sale) for sale in sales)
    parts.append("</div>")
    return "".join(parts)


def page_html(*cards: str) -> str:
    return f"<html><body><div class='outpost_list'>{''.join(cards)}</div></body></html>"


def catalog_html(collections: Iterable[tuple[str, str]]) -> str:
    links = "".join(
        '<li class="catalog_list_element">'
        f'<a href="index.php?option=com_outpostshop&view=productlist&collectionid={cid}">{name}</a>'
        "</li>"
        for cid, name in collections
    )
    return f"<html><body><ul>{links}</ul></body></html>"


def listing(
    name: str,
    price: int,
    stock: int,
    *,
    foil: bool = False,
    collection: str = "Foundations",
    collection_id: str = "1",
) -> ListingRecord:
    """A ListingRecord with a single NM/M condition."""
    conditions = [ConditionOffer(condition="NM/M", price_cents=price, stock=stock)] if price or stock else []
    return ListingRecord(
        name=name,
        foil=foil,
        collection_name=collection,
        collection_id=collection_id,
        set_label=collection,
        conditions=conditions,
        cheapest_price_cents=price,
        total_stock=stock,
    )


# ---------------------------------------------------------------------------
# Fake fetcher
# ---------------------------------------------------------------------------


class FakeFetcher:
    """
    Stands in for CollectionFetcher in orchestrator runs.

    pages maps collection id -> HTML, or an exception instance to raise on
    every fetch of that collection.
    """

    def __init__(self, catalog: str = "", pages: dict[str, str | Exception] | None = None) -> None:
        self.catalog = catalog
        self.pages = pages or {}
        self.fetch_calls: list[str] = []
        self.empty_checks: list[str] = []

    async def fetch_catalog(self) -> str:
        return self.catalog

    async def fetch_collection(self, collection: CollectionRef) -> str:
        self.fetch_calls.append(collection.id)
        page = self.pages.get(collection.id, page_html())
        if isinstance(page, Exception):
            raise page
        return page

    async def has_cards(self, collection: CollectionRef) -> bool:
        self.empty_checks.append(collection.id)
        page = self.pages.get(collection.id, page_html())
        if isinstance(page, Exception):
            return False
        return count_card_containers(page) > 0


def connect_error(url: str = "https://www.outpost.be/website/") -> httpx.ConnectError:
    return httpx.ConnectError("connection refused", request=httpx.Request("GET", url))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def collection() -> CollectionRef:
    return CollectionRef(
        id="310",
        name="Commander Masters",
        url=f"{BASE_URL}index.php?option=com_outpostshop&view=productlist&collectionid=310",
    )


@pytest.fixture
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with no delays and files under tmp_path."""
    return Settings(
        _env_file=None,
        DELAY_BETWEEN_REQUESTS_MS=0,
        DELAY_BETWEEN_COLLECTIONS_MS=0,
        CHECKPOINT_BATCH_SIZE=2,
        MAX_RETRIES=3,
        CHECKPOINT_PATH=tmp_path / "scrape-progress.json",
        OUTPUT_PATH=tmp_path / "public" / "outpost-stock.json",
        PRIORITY_COLLECTIONS=["Bloomburrow", "Commander"],
    )


@pytest.fixture
def checkpoint_store(fast_settings: Settings) -> CheckpointStore:
    return CheckpointStore(fast_settings.CHECKPOINT_PATH)


@pytest.fixture
def output_store(fast_settings: Settings) -> OutputStore:
    return OutputStore(fast_settings.OUTPUT_PATH)
