"""
Outpost Stock — Progress Checkpoint Store

Persists the accumulated state of a run so an interrupted scrape can resume
where it stopped. Writes go to a temp file in the same directory and are then
renamed over the checkpoint, so a crash mid-write leaves the previous
checkpoint intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from outpost_stock.config import settings
from outpost_stock.models.progress import ScrapeProgress

logger = structlog.get_logger(__name__)


def write_json_atomic(path: Path, payload: str) -> None:
    """Write text to `path` via temp file + os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CheckpointStore:
    """
    Save/load/clear for the scrape checkpoint file.

    Usage:
        store = CheckpointStore()
        progress = store.load()   # None if there is nothing to resume
        store.save(progress)
        store.clear()             # after a successful run only
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.CHECKPOINT_PATH)

    def save(self, progress: ScrapeProgress) -> None:
        """Overwrite the checkpoint with the current progress."""
        progress.total_cards = len(progress.cards)
        write_json_atomic(
            self.path,
            progress.model_dump_json(by_alias=True, indent=2),
        )
        logger.info(
            "checkpoint_saved",
            path=str(self.path),
            collections_processed=progress.collections_processed,
            collections_skipped=progress.collections_skipped,
            total_cards=progress.total_cards,
        )

    def load(self) -> ScrapeProgress | None:
        """
        Read the checkpoint.

        Returns None when there is no checkpoint, or when it cannot be parsed
        (logged; the run then starts from scratch).
        """
        if not self.path.exists():
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            progress = ScrapeProgress.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "checkpoint_unreadable",
                path=str(self.path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        logger.info(
            "checkpoint_loaded",
            path=str(self.path),
            collections_processed=progress.collections_processed,
            collections_skipped=progress.collections_skipped,
            total_cards=len(progress.cards),
        )
        return progress

    def clear(self) -> None:
        """Delete the checkpoint file if present."""
        if self.path.exists():
            self.path.unlink()
            logger.info("checkpoint_cleared", path=str(self.path))
