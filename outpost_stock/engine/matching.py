"""
Outpost Stock — Deck Matching

Read-side helpers over the scraped card list: find the listings for a
requested card name, choose the best offer by quality tier, and summarize
availability for a whole deck.

Matching order for a requested name:
1. exact case-insensitive name
2. listings whose name contains the request
3. listings whose name is contained in the request
Listings without any positively priced condition never match.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Sequence

import structlog
from pydantic import BaseModel, Field

from outpost_stock.models.card import ConditionOffer, ListingRecord
from outpost_stock.utils.condition_map import QUALITY_ORDER, parse_grade

logger = structlog.get_logger(__name__)


class DeckCard(BaseModel):
    """One entry of a deck list, already parsed."""
    name: str
    quantity: int = Field(default=1, ge=1)
    set_code: str | None = None


class BestOffer(NamedTuple):
    card: ListingRecord
    offer: ConditionOffer


class CardAvailability(BaseModel):
    card_name: str
    requested_quantity: int
    available_cards: list[ListingRecord] = Field(default_factory=list)
    total_available: int = 0
    cheapest_price_cents: int = 0
    cheapest_condition: str | None = None
    average_price_cents: Decimal = Decimal("0")
    is_fully_available: bool = False


class DeckAnalysis(BaseModel):
    total_cards: int
    available_cards: int
    missing_cards: int
    total_cost_cents: int
    card_availability: list[CardAvailability]


def _has_price(card: ListingRecord) -> bool:
    return any(c.price_cents > 0 for c in card.conditions)


def find_matches(cards: Sequence[ListingRecord], name: str) -> list[ListingRecord]:
    """Listings matching a requested card name (see module docstring)."""
    query = name.strip().lower()
    if not query:
        return []

    matches = [c for c in cards if c.name.lower() == query]
    if not matches:
        matches = [c for c in cards if query in c.name.lower()]
    if not matches:
        matches = [c for c in cards if c.name and c.name.lower() in query]

    return [c for c in matches if _has_price(c)]


def _set_matches(card: ListingRecord, set_code: str) -> bool:
    wanted = set_code.lower()
    label = (card.set_label or "").lower()
    if not label:
        return True
    return wanted in label or label in wanted


def _cheapest_in_tiers(cards: Sequence[ListingRecord], require_stock: bool) -> BestOffer | None:
    for grade in QUALITY_ORDER:
        candidates = [
            BestOffer(card, offer)
            for card in cards
            for offer in card.conditions
            if parse_grade(offer.condition) == grade
            and offer.price_cents > 0
            and (offer.stock > 0 or not require_stock)
        ]
        if candidates:
            return min(candidates, key=lambda c: c.offer.price_cents)
    return None


def best_offer(cards: Sequence[ListingRecord]) -> BestOffer | None:
    """
    Cheapest offer in the best quality tier that has stock.

    Falls back to the cheapest priced offer (still walking tiers best-first)
    when nothing is in stock.
    """
    return _cheapest_in_tiers(cards, require_stock=True) or _cheapest_in_tiers(
        cards, require_stock=False
    )


def check_availability(
    cards: Sequence[ListingRecord],
    deck_card: DeckCard,
    match_set: bool = False,
) -> CardAvailability:
    """Availability of one deck entry against the scraped listings."""
    available = find_matches(cards, deck_card.name)

    if match_set and deck_card.set_code:
        same_set = [c for c in available if _set_matches(c, deck_card.set_code)]
        if same_set:
            available = same_set

    priced_offers = [o for c in available for o in c.conditions if o.price_cents > 0]
    total_available = sum(o.stock for o in priced_offers)
    average = (
        Decimal(sum(o.price_cents for o in priced_offers)) / len(priced_offers)
        if priced_offers
        else Decimal("0")
    )

    best = best_offer(available)
    return CardAvailability(
        card_name=deck_card.name,
        requested_quantity=deck_card.quantity,
        available_cards=available,
        total_available=total_available,
        cheapest_price_cents=best.offer.price_cents if best else 0,
        cheapest_condition=best.offer.condition if best else None,
        average_price_cents=average.quantize(Decimal("0.01")),
        is_fully_available=total_available >= deck_card.quantity,
    )


def analyze_deck(
    cards: Sequence[ListingRecord],
    deck: Sequence[DeckCard],
    match_set: bool = False,
) -> DeckAnalysis:
    """
    Check every deck entry against the scraped listings.

    Args:
        cards: Listings read from the output file.
        deck: Parsed deck entries.
        match_set: Prefer listings from the deck entry's set when any exist.
    """
    availability = [check_availability(cards, entry, match_set) for entry in deck]
    available = sum(1 for a in availability if a.is_fully_available)

    analysis = DeckAnalysis(
        total_cards=len(deck),
        available_cards=available,
        missing_cards=len(deck) - available,
        total_cost_cents=sum(a.cheapest_price_cents * a.requested_quantity for a in availability),
        card_availability=availability,
    )
    logger.info(
        "deck_analyzed",
        total_cards=analysis.total_cards,
        available_cards=analysis.available_cards,
        missing_cards=analysis.missing_cards,
        total_cost_cents=analysis.total_cost_cents,
    )
    return analysis


def search_cards(cards: Sequence[ListingRecord], term: str) -> list[ListingRecord]:
    """
    Free-text filter over the card list.

    "@query" searches collection and set labels only; anything else also
    searches card names.
    """
    if not term:
        return list(cards)

    if term.startswith("@"):
        query = term[1:].lower()
        return [
            c for c in cards
            if query in c.collection_name.lower() or query in (c.set_label or "").lower()
        ]

    query = term.lower()
    return [
        c for c in cards
        if query in c.name.lower()
        or query in c.collection_name.lower()
        or query in (c.set_label or "").lower()
    ]
