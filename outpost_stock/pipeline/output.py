"""
Outpost Stock — Output Store

Writes the final stock file consumed by the deck-matching UI, or a partial
file after an aborted run, and reads either back. Files from the old
single-price scraper are normalized into ListingRecords on read.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from outpost_stock.config import settings
from outpost_stock.models.card import ListingRecord, normalize_card
from outpost_stock.models.progress import PartialScrapeOutput, ScrapeOutput, StoredOutput
from outpost_stock.pipeline.checkpoint import write_json_atomic

logger = structlog.get_logger(__name__)


class OutputStore:
    """Reads and writes the stock output file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.OUTPUT_PATH)

    def write(self, output: ScrapeOutput | PartialScrapeOutput) -> None:
        write_json_atomic(self.path, output.model_dump_json(by_alias=True, indent=2))
        logger.info(
            "output_written",
            path=str(self.path),
            total_cards=output.total_cards,
            is_partial=isinstance(output, PartialScrapeOutput),
        )

    def read(self) -> StoredOutput:
        """Parse the output file as stored (cards may be legacy-shaped)."""
        return StoredOutput.model_validate_json(self.path.read_bytes())

    def read_cards(self) -> list[ListingRecord]:
        """All cards from the output file, normalized to ListingRecord."""
        stored = self.read()
        cards = [normalize_card(card) for card in stored.cards]
        logger.info(
            "output_loaded",
            path=str(self.path),
            total_cards=len(cards),
            is_partial=stored.is_partial,
        )
        return cards
