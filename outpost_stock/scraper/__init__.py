"""Outpost Stock — Scraper Layer"""

from __future__ import annotations

from pydantic import BaseModel


class CollectionRef(BaseModel):
    """A sellable collection discovered on the catalog page."""
    id: str
    name: str
    url: str


class RejectionTally(BaseModel):
    """
    Why listings were dropped during extraction.

    A single card can fail several checks, so the per-reason counters may add
    up to more than `rejected`.
    """
    rejected: int = 0
    no_name: int = 0
    no_price: int = 0
    no_conditions: int = 0
    no_set: int = 0
    no_collection: int = 0
    malformed: int = 0

    def merge(self, other: RejectionTally) -> None:
        """Add another tally's counts into this one."""
        for field in type(self).model_fields:
            setattr(self, field, getattr(self, field) + getattr(other, field))
