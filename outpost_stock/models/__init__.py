"""
Models package — export the card, checkpoint and output models.
"""

from outpost_stock.models.card import (
    CanonicalCard,
    CardColors,
    ConditionOffer,
    LegacyCard,
    ListingRecord,
    cheapest_price,
    format_price_cents,
    normalize_card,
)
from outpost_stock.models.progress import (
    PartialScrapeOutput,
    ScrapeOutput,
    ScrapeProgress,
    StoredOutput,
)

__all__ = [
    "CanonicalCard",
    "CardColors",
    "ConditionOffer",
    "LegacyCard",
    "ListingRecord",
    "PartialScrapeOutput",
    "ScrapeOutput",
    "ScrapeProgress",
    "StoredOutput",
    "cheapest_price",
    "format_price_cents",
    "normalize_card",
]
