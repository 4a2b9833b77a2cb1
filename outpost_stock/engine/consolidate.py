"""
Outpost Stock — Consolidation Engine

Reduces every listing of the same card name (across collections, printings,
foil variants) to the single best currently purchasable offer.

Selection per name:
1. listings in stock with a positive price, else
2. listings with a positive price regardless of stock, else
3. nothing: the name is dropped.
Within the chosen pool the cheapest wins, non-foil before foil on a price
tie. Remaining ties go to the first listing encountered, which is collection
priority order then page order. Changing the scrape order can therefore
change which printing represents a name.

Pure functions: no I/O, no logging.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Sequence

from outpost_stock.models.card import CanonicalCard, ListingRecord


class ConsolidationSummary(NamedTuple):
    variants: int
    unique_cards: int
    with_stock: int
    dropped_names: int


def card_key(name: str) -> str:
    """Grouping key: trimmed, case-insensitive name."""
    return name.strip().lower()


def _rank(record: ListingRecord) -> tuple[int, bool]:
    return record.cheapest_price_cents, record.foil


def select_best_variant(variants: Sequence[ListingRecord]) -> ListingRecord | None:
    """Pick the canonical listing among same-name variants (None if none is priced)."""
    in_stock = [v for v in variants if v.total_stock > 0 and v.cheapest_price_cents > 0]
    if in_stock:
        return min(in_stock, key=_rank)

    priced = [v for v in variants if v.cheapest_price_cents > 0]
    if priced:
        return min(priced, key=_rank)

    return None


def group_by_name(records: Iterable[ListingRecord]) -> dict[str, list[ListingRecord]]:
    """Group listings by card_key, groups and members in first-seen order."""
    groups: dict[str, list[ListingRecord]] = {}
    for record in records:
        groups.setdefault(card_key(record.name), []).append(record)
    return groups


def consolidate(records: Iterable[ListingRecord]) -> list[CanonicalCard]:
    """
    One CanonicalCard per distinct card name with at least one priced listing.

    Output order follows the first appearance of each name in `records`.
    """
    canonical: list[CanonicalCard] = []
    for variants in group_by_name(records).values():
        best = select_best_variant(variants)
        if best is not None:
            canonical.append(best)
    return canonical


def summarize(records: Sequence[ListingRecord], canonical: Sequence[CanonicalCard]) -> ConsolidationSummary:
    names = len(group_by_name(records))
    return ConsolidationSummary(
        variants=len(records),
        unique_cards=len(canonical),
        with_stock=sum(1 for card in canonical if card.total_stock > 0),
        dropped_names=names - len(canonical),
    )
