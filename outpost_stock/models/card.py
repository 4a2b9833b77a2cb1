"""
Outpost Stock — Card Listing Models

One ListingRecord per card per collection/printing/foil variant, each with a
per-condition stock and price breakdown. All prices are integer euro cents.

JSON field names are camelCase (the shape the deck-matching UI reads);
Python attributes are snake_case. Always dump with by_alias=True.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConditionOffer(CamelModel):
    """One purchasable grade of a listing (one "sale" row on the page)."""

    condition: str
    price_cents: int = Field(default=0, ge=0, alias="price")
    stock: int = Field(default=0, ge=0)
    price_formatted: str = ""
    source_id: str | None = Field(default=None, alias="outpostId")

    @property
    def is_placeholder(self) -> bool:
        """All-zero rows carry no information and are never kept."""
        return self.price_cents <= 0 and self.stock <= 0


class CardColors(CamelModel):
    white: bool = False
    blue: bool = False
    black: bool = False
    red: bool = False
    green: bool = False
    colorless: bool = False


class CardBase(CamelModel):
    """Identity fields shared by every stored card shape."""

    name: str
    alphabet: str = ""
    rarity: str = ""
    foil: bool = False
    colors: CardColors = Field(default_factory=CardColors)
    collection_name: str = Field(default="", alias="collection")
    collection_id: str = ""
    set_label: str | None = Field(default=None, alias="set")
    image_url: str | None = None
    detail_url: str | None = None


class ListingRecord(CardBase):
    """
    One card as listed within one collection.

    `cheapest_price_cents` and `total_stock` are derived from `conditions`
    (see cheapest_price) and cached for single-price consumers.
    """

    conditions: list[ConditionOffer] = Field(default_factory=list)
    cheapest_price_cents: int = Field(default=0, alias="price")
    total_stock: int = Field(default=0, alias="stock")
    price_formatted: str = "0.00 €"


# Consolidation picks one ListingRecord per name; the shape does not change.
CanonicalCard = ListingRecord


class LegacyCard(CardBase):
    """Card written by the old single-price scraper (no conditions array)."""

    price_cents: int = Field(default=0, alias="price")
    stock: int = 0
    price_formatted: str | None = None


def _stored_card_shape(value: Any) -> str:
    if isinstance(value, dict):
        return "conditioned" if isinstance(value.get("conditions"), list) else "legacy"
    return "conditioned" if isinstance(value, ListingRecord) else "legacy"


# Cards as found in an output file: either shape, told apart by `conditions`.
StoredCard = Annotated[
    Union[
        Annotated[ListingRecord, Tag("conditioned")],
        Annotated[LegacyCard, Tag("legacy")],
    ],
    Discriminator(_stored_card_shape),
]


def format_price_cents(price_cents: int) -> str:
    """Render cents the way the storefront prints prices: '12.50 €'."""
    euros = (Decimal(price_cents) / Decimal(100)).quantize(Decimal("0.01"))
    return f"{euros} €"


def cheapest_price(
    conditions: list[ConditionOffer],
    fallback_cents: int = 0,
) -> tuple[int, str]:
    """
    Pick the single price shown for a listing.

    Order of preference:
    1. cheapest condition that is in stock and priced
    2. cheapest priced condition, regardless of stock
    3. the legacy single-price value (fallback_cents)
    4. 0

    Returns:
        (price_cents, price_formatted)
    """
    available = [c for c in conditions if c.stock > 0 and c.price_cents > 0]
    priced = [c for c in conditions if c.price_cents > 0]

    for pool in (available, priced):
        if pool:
            best = min(pool, key=lambda c: c.price_cents)
            return best.price_cents, best.price_formatted or format_price_cents(best.price_cents)

    if fallback_cents > 0:
        return fallback_cents, format_price_cents(fallback_cents)
    return 0, format_price_cents(0)


def normalize_card(card: ListingRecord | LegacyCard) -> ListingRecord:
    """
    Convert any stored card shape into a ListingRecord.

    A legacy card becomes one NM/M condition carrying its price and stock,
    or no condition at all when both are zero.
    """
    if isinstance(card, ListingRecord):
        return card

    formatted = card.price_formatted or format_price_cents(card.price_cents)
    offer = ConditionOffer(
        condition="NM/M",
        price_cents=card.price_cents,
        stock=card.stock,
        price_formatted=formatted,
    )
    identity = card.model_dump(include=set(CardBase.model_fields))
    return ListingRecord(
        **identity,
        conditions=[] if offer.is_placeholder else [offer],
        cheapest_price_cents=card.price_cents,
        total_stock=card.stock,
        price_formatted=formatted,
    )
