"""
Outpost Stock — HTML Card Extractor

Parses one collection's product-list page into ListingRecords.

Structured attributes on each card container (name, rarity, foil, colors)
are authoritative. Each ".outpost_sli_sale" row inside a container is one
condition with its own stock counter and price. Extraction never raises on
bad markup: a malformed card is rejected and counted, the page goes on.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, Tag

from outpost_stock.config import settings
from outpost_stock.models.card import (
    CardColors,
    ConditionOffer,
    ListingRecord,
    cheapest_price,
)
from outpost_stock.scraper import CollectionRef, RejectionTally

logger = structlog.get_logger(__name__)

CARD_SELECTOR = ".outpost_shop_list_item_mtg"
SALE_SELECTOR = ".outpost_sli_sale"
QUALITY_SELECTOR = ".outpost_sli_quality"
PRICE_SELECTOR = ".outpost_sli_price"
STOCK_SELECTOR = '[id^="ostk"]'
SET_SELECTOR = ".outpost_sli_set_mtg"
DETAIL_LINK_SELECTOR = 'a[href*="view=detail"]'

STOCK_ID_PREFIX = "ostk"

# Container attribute -> CardColors field
_COLOR_ATTRIBUTES = {
    "cw": "white",
    "cu": "blue",
    "cb": "black",
    "cr": "red",
    "cg": "green",
    "cnocol": "colorless",
}

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


class ExtractionResult(NamedTuple):
    """Accepted listings in page order plus the rejection tally."""
    records: list[ListingRecord]
    rejections: RejectionTally


def _parse_price_cents(text: str | None) -> int:
    """
    Parse a storefront price like '0.26 €' or '12,50 €' to integer cents.

    Returns 0 when no number can be found.
    """
    if not text:
        return 0
    cleaned = text.replace("€", "").replace("$", "").strip()
    if "," in cleaned and "." in cleaned:
        cleaned = cleaned.replace(",", "")   # '1,234.50' thousands separator
    else:
        cleaned = cleaned.replace(",", ".")
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return 0
    try:
        cents = (Decimal(match.group()) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0
    return int(cents)


def _parse_int(text: str | None) -> int:
    """Parse a stock counter; 0 when absent or unparseable."""
    if not text:
        return 0
    match = re.search(r"\d+", text)
    if match:
        return int(match.group())
    return 0


def _flag(element: Tag, attribute: str) -> bool:
    return element.get(attribute) == "1"


def _text(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    if found is None:
        return ""
    return found.get_text(strip=True)


def _absolute_url(url: str | None, base_url: str) -> str | None:
    if not url:
        return None
    if url.startswith("http"):
        return url
    return urljoin(base_url, url)


def _parse_sale(sale: Tag) -> ConditionOffer | None:
    """Parse one sale row. Returns None for placeholders and unlabeled rows."""
    condition = _text(sale, QUALITY_SELECTOR)
    stock_element = sale.select_one(STOCK_SELECTOR)
    stock = _parse_int(stock_element.get_text(strip=True)) if stock_element else 0
    price_text = _text(sale, PRICE_SELECTOR)
    price_cents = _parse_price_cents(price_text)

    source_id = None
    if stock_element is not None:
        element_id = stock_element.get("id") or ""
        source_id = element_id.removeprefix(STOCK_ID_PREFIX) or None

    if not condition or (price_cents <= 0 and stock <= 0):
        return None

    return ConditionOffer(
        condition=condition,
        price_cents=price_cents,
        stock=stock,
        price_formatted=price_text,
        source_id=source_id,
    )


def parse_card(
    element: Tag,
    collection: CollectionRef,
    base_url: str | None = None,
) -> ListingRecord:
    """
    Build a ListingRecord from one card container, without acceptance checks.

    Args:
        element: The ".outpost_shop_list_item_mtg" container.
        collection: Collection the page belongs to.
        base_url: Site base used to absolutize image/detail links.
    """
    base_url = base_url or settings.OUTPOST_BASE_URL

    conditions: list[ConditionOffer] = []
    for sale in element.select(SALE_SELECTOR):
        offer = _parse_sale(sale)
        if offer is not None:
            conditions.append(offer)

    legacy_price = _parse_int(element.get("price"))
    price_cents, price_formatted = cheapest_price(conditions, fallback_cents=legacy_price)

    set_label = _text(element, SET_SELECTOR) or None

    image = element.select_one("img")
    detail_link = element.select_one(DETAIL_LINK_SELECTOR)

    return ListingRecord(
        name=element.get("elnm") or "",
        alphabet=element.get("alphabet") or "",
        rarity=element.get("magicrarity") or "",
        foil=_flag(element, "foil"),
        colors=CardColors(**{
            field: _flag(element, attribute)
            for attribute, field in _COLOR_ATTRIBUTES.items()
        }),
        collection_name=collection.name,
        collection_id=collection.id,
        set_label=set_label,
        image_url=_absolute_url(image.get("src") if image else None, base_url),
        detail_url=_absolute_url(detail_link.get("href") if detail_link else None, base_url),
        conditions=conditions,
        cheapest_price_cents=price_cents,
        total_stock=sum(c.stock for c in conditions),
        price_formatted=price_formatted,
    )


def rejection_reasons(record: ListingRecord) -> list[str]:
    """Names of the acceptance checks a record fails (empty = accepted)."""
    reasons = []
    if not record.name.strip():
        reasons.append("no_name")
    if record.cheapest_price_cents <= 0:
        reasons.append("no_price")
    if not record.conditions:
        reasons.append("no_conditions")
    if not (record.set_label or "").strip():
        reasons.append("no_set")
    if not record.collection_name.strip():
        reasons.append("no_collection")
    return reasons


def extract_listings(
    page: str | BeautifulSoup,
    collection: CollectionRef,
    *,
    max_cards: int | None = None,
    base_url: str | None = None,
) -> ExtractionResult:
    """
    Extract every accepted card listing from a collection page.

    Args:
        page: Raw HTML or an already parsed document.
        collection: Collection the page belongs to.
        max_cards: Stop after this many accepted cards (None = no limit).
        base_url: Site base for relative links.

    Returns:
        ExtractionResult with records in document order.
    """
    soup = page if isinstance(page, BeautifulSoup) else BeautifulSoup(page, "lxml")
    records: list[ListingRecord] = []
    tally = RejectionTally()

    for element in soup.select(CARD_SELECTOR):
        if max_cards is not None and len(records) >= max_cards:
            break

        try:
            record = parse_card(element, collection, base_url)
        except (AttributeError, TypeError, ValueError) as e:
            tally.rejected += 1
            tally.malformed += 1
            logger.debug(
                "card_container_malformed",
                collection_id=collection.id,
                error=str(e),
                source="extractor",
            )
            continue

        reasons = rejection_reasons(record)
        if reasons:
            tally.rejected += 1
            for reason in reasons:
                setattr(tally, reason, getattr(tally, reason) + 1)
            continue

        records.append(record)

    logger.info(
        "collection_extracted",
        collection=collection.name,
        collection_id=collection.id,
        accepted=len(records),
        rejected=tally.rejected,
        zero_price=tally.no_price,
        missing_set=tally.no_set,
        missing_name=tally.no_name,
        no_conditions=tally.no_conditions,
        source="extractor",
    )
    return ExtractionResult(records=records, rejections=tally)


def count_card_containers(page: str) -> int:
    """Number of card containers on a page; used by the empty-collection check."""
    return len(BeautifulSoup(page, "lxml").select(CARD_SELECTOR))
