"""
Outpost Stock — Checkpoint & Output Models

ScrapeProgress is the resumable checkpoint written during a run.
ScrapeOutput is the final artifact read by the deck-matching UI; on an
aborted run the reduced PartialScrapeOutput is written instead.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from outpost_stock.models.card import CamelModel, ListingRecord, StoredCard


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeProgress(CamelModel):
    """Accumulated state of an unfinished run."""

    timestamp: datetime = Field(default_factory=_utcnow)
    collections_processed: int = 0
    collections_skipped: int = 0
    total_cards: int = 0
    processed_collection_ids: list[str] = Field(default_factory=list)
    skipped_collection_ids: list[str] = Field(default_factory=list)
    cards: list[ListingRecord] = Field(default_factory=list)


class CollectionSummary(CamelModel):
    name: str
    id: str


class OutputMetadata(CamelModel):
    scrape_config: dict[str, Any] = Field(default_factory=dict)
    skipped_collections: list[CollectionSummary] = Field(default_factory=list)
    processed_collections_sample: list[CollectionSummary] = Field(default_factory=list)


class ScrapeOutput(CamelModel):
    """Final artifact of a completed run: one consolidated card per name."""

    last_updated: datetime = Field(default_factory=_utcnow)
    total_cards: int
    collections_processed: int
    collections_skipped: int
    total_collections: int
    completion_percentage: str
    cards: list[ListingRecord]
    metadata: OutputMetadata = Field(default_factory=OutputMetadata)


class PartialScrapeOutput(CamelModel):
    """Best-effort dump of raw, unconsolidated cards after an aborted run."""

    last_updated: datetime = Field(default_factory=_utcnow)
    total_cards: int
    collections_processed: int
    is_partial: Literal[True] = True
    cards: list[ListingRecord]


class StoredOutput(CamelModel):
    """
    Any output file as read back by consumers.

    Accepts full, partial and legacy single-price files; cards are left in
    their stored shape until normalize_card() is applied.
    """

    last_updated: datetime | None = None
    total_cards: int = 0
    collections_processed: int = 0
    is_partial: bool = False
    cards: list[StoredCard] = Field(default_factory=list)


def completion_percentage(processed: int, total: int) -> str:
    """One-decimal percentage string, e.g. '87.5'."""
    if total <= 0:
        return "0.0"
    return f"{processed / total * 100:.1f}"
