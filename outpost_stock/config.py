"""
Outpost Stock — Configuration & Constants

Every delay, retry budget, path and storefront URL lives here. No hardcoded
values in scraping logic.

"Complete mode" (every card of every collection, empty collections skipped,
resumable checkpoints) is the default. The old quick mode is only a
configuration change, e.g. MAX_CARDS_PER_COLLECTION=100.

Usage:
    from outpost_stock.config import settings
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for the Outpost scraper.

    Loads from environment variables (and a local .env file) with fallback
    defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Storefront
    # -----------------------------------------------------------------------
    OUTPOST_BASE_URL: str = "https://www.outpost.be/website/"
    OUTPOST_CATALOG_URL: str = (
        "https://www.outpost.be/website/index.php"
        "?option=com_outpostshop&view=catalog&catalogid=1&Itemid=4"
    )
    OUTPOST_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )

    # -----------------------------------------------------------------------
    # Scrape limits & pacing
    # -----------------------------------------------------------------------
    MAX_CARDS_PER_COLLECTION: int | None = None   # None = every card on the page
    DELAY_BETWEEN_REQUESTS_MS: int = 1000         # Minimum gap between two HTTP requests
    DELAY_BETWEEN_COLLECTIONS_MS: int = 1500
    MAX_RETRIES: int = 3                          # Attempts per collection fetch
    TIMEOUT_MS: int = 30000
    EMPTY_CHECK_TIMEOUT_MS: int = 10000           # Lightweight has-cards pre-check
    SKIP_EMPTY_COLLECTIONS: bool = True

    # -----------------------------------------------------------------------
    # Progress checkpoints & output
    # -----------------------------------------------------------------------
    ENABLE_PROGRESS_SAVING: bool = True
    RESUME_FROM_PROGRESS: bool = True
    CHECKPOINT_BATCH_SIZE: int = 25               # Save every N processed+skipped collections
    CHECKPOINT_PATH: Path = Path("scrape-progress.json")
    OUTPUT_PATH: Path = Path("public/outpost-stock.json")
    SNAPSHOT_PATH: Path | None = None             # Saved catalog HTML; None = fetch live

    # -----------------------------------------------------------------------
    # Collection priority (newest sets and popular formats first)
    # -----------------------------------------------------------------------
    PRIORITY_COLLECTIONS: list[str] = [
        "Final Fantasy",
        "Foundations",
        "Duskmourn",
        "Bloomburrow",
        "Modern Horizons 3",
        "Outlaws of Thunder Junction",
        "Murders at Karlov Manor",
        "Commander",
        "Secret Lair Drop Series",
    ]

    # -----------------------------------------------------------------------
    # Scryfall card metadata
    # -----------------------------------------------------------------------
    SCRYFALL_BASE_URL: str = "https://api.scryfall.com"
    SCRYFALL_MIN_DELAY_MS: int = 75
    SCRYFALL_CACHE_TTL_SECONDS: int = 1800

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"

    def scrape_config(self) -> dict[str, Any]:
        """The recognized scrape options, as recorded in the output metadata."""
        return {
            "maxCardsPerCollection": self.MAX_CARDS_PER_COLLECTION,
            "delayBetweenRequestsMs": self.DELAY_BETWEEN_REQUESTS_MS,
            "delayBetweenCollectionsMs": self.DELAY_BETWEEN_COLLECTIONS_MS,
            "checkpointBatchSize": self.CHECKPOINT_BATCH_SIZE,
            "maxRetries": self.MAX_RETRIES,
            "timeoutMs": self.TIMEOUT_MS,
            "skipEmptyCollections": self.SKIP_EMPTY_COLLECTIONS,
        }


# Singleton instance
settings = Settings()
