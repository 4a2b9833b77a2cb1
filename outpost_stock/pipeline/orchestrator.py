"""
Outpost Stock — Scrape Orchestrator

Drives one scrape run:

    INIT -> ENUMERATING -> per pending collection:
        [CHECKING_EMPTY] -> FETCHING -> EXTRACTING -> ACCUMULATING -> [CHECKPOINTING]
    -> CONSOLIDATING -> WRITING_OUTPUT -> DONE

Collections are processed strictly one at a time in priority order. A
collection that looks empty, yields no accepted cards, or exhausts its fetch
retries is recorded as skipped and the run moves on. An unexpected error
aborts the run after a best-effort dump of the raw cards collected so far.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

import httpx
import structlog
from pydantic import BaseModel, Field

from outpost_stock.config import Settings, settings
from outpost_stock.engine.consolidate import consolidate, summarize
from outpost_stock.models.card import ListingRecord
from outpost_stock.models.progress import (
    CollectionSummary,
    OutputMetadata,
    PartialScrapeOutput,
    ScrapeOutput,
    ScrapeProgress,
    completion_percentage,
)
from outpost_stock.pipeline.checkpoint import CheckpointStore
from outpost_stock.pipeline.output import OutputStore
from outpost_stock.scraper import CollectionRef, RejectionTally
from outpost_stock.scraper.enumerator import (
    enumerate_from_catalog,
    enumerate_from_snapshot,
    prioritize,
)
from outpost_stock.scraper.extractor import extract_listings
from outpost_stock.scraper.fetcher import CollectionFetcher
from outpost_stock.scraper.retry import RetryExhausted, linear_backoff, retry_async

logger = structlog.get_logger(__name__)

# Collections listed in the output metadata samples
METADATA_SAMPLE_SIZE = 10


class ScrapeState(str, Enum):
    INIT = "init"
    ENUMERATING = "enumerating"
    CHECKING_EMPTY = "checking_empty"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    ACCUMULATING = "accumulating"
    CHECKPOINTING = "checkpointing"
    CONSOLIDATING = "consolidating"
    WRITING_OUTPUT = "writing_output"
    DONE = "done"
    NO_WORK = "no_work"
    CANCELLED = "cancelled"
    ABORTED = "aborted"


class ScrapeAbortedError(RuntimeError):
    """A run hit an unrecoverable error. Raised after the partial dump."""

    def __init__(self, message: str, partial_written: bool) -> None:
        super().__init__(message)
        self.partial_written = partial_written


class RunReport(BaseModel):
    """Operator-facing summary of one run."""
    state: ScrapeState
    collections_processed: int = 0
    collections_skipped: int = 0
    total_collections: int = 0
    card_variants: int = 0
    unique_cards: int = 0
    completion_percentage: str = "0.0"
    duration_seconds: float = 0.0
    rejections: RejectionTally = Field(default_factory=RejectionTally)


class ScrapeOrchestrator:
    """
    Runs enumeration, fetching, extraction, checkpointing and consolidation.

    Usage:
        async with CollectionFetcher() as fetcher:
            orchestrator = ScrapeOrchestrator(fetcher)
            report = await orchestrator.run()
    """

    def __init__(
        self,
        fetcher: CollectionFetcher,
        checkpoints: CheckpointStore | None = None,
        outputs: OutputStore | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or settings
        self.fetcher = fetcher
        self.checkpoints = checkpoints or CheckpointStore(self.config.CHECKPOINT_PATH)
        self.outputs = outputs or OutputStore(self.config.OUTPUT_PATH)
        self.state = ScrapeState.INIT
        self._rejections = RejectionTally()

    def _transition(self, state: ScrapeState, **context: object) -> None:
        self.state = state
        logger.debug("scrape_state_changed", state=state.value, **context)

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    async def _enumerate(self, snapshot_path: Path | None) -> list[CollectionRef]:
        if snapshot_path is not None:
            collections = enumerate_from_snapshot(snapshot_path)
        else:
            try:
                collections = await retry_async(
                    lambda: enumerate_from_catalog(self.fetcher),
                    attempts=self.config.MAX_RETRIES,
                    backoff=linear_backoff(self.config.DELAY_BETWEEN_REQUESTS_MS / 1000),
                    retry_on=(httpx.HTTPError,),
                    label="catalog",
                )
            except RetryExhausted as e:
                logger.error("catalog_unavailable", error=str(e))
                collections = []
        return prioritize(collections, self.config.PRIORITY_COLLECTIONS)

    def _mark_skipped(self, progress: ScrapeProgress, collection: CollectionRef, reason: str) -> None:
        if collection.id not in progress.skipped_collection_ids:
            progress.skipped_collection_ids.append(collection.id)
        progress.collections_skipped += 1
        logger.info(
            "collection_skipped",
            collection=collection.name,
            collection_id=collection.id,
            reason=reason,
        )

    async def _process_collection(self, collection: CollectionRef, progress: ScrapeProgress) -> None:
        if self.config.SKIP_EMPTY_COLLECTIONS:
            self._transition(ScrapeState.CHECKING_EMPTY, collection_id=collection.id)
            if not await self.fetcher.has_cards(collection):
                self._mark_skipped(progress, collection, reason="empty")
                return

        self._transition(ScrapeState.FETCHING, collection_id=collection.id)
        try:
            html = await retry_async(
                lambda: self.fetcher.fetch_collection(collection),
                attempts=self.config.MAX_RETRIES,
                backoff=linear_backoff(self.config.DELAY_BETWEEN_REQUESTS_MS / 1000),
                retry_on=(httpx.HTTPError,),
                label=f"collection {collection.id}",
            )
        except RetryExhausted as e:
            logger.warning(
                "collection_fetch_exhausted",
                collection=collection.name,
                collection_id=collection.id,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            self._mark_skipped(progress, collection, reason="fetch_failed")
            return

        self._transition(ScrapeState.EXTRACTING, collection_id=collection.id)
        result = extract_listings(
            html,
            collection,
            max_cards=self.config.MAX_CARDS_PER_COLLECTION,
            base_url=self.config.OUTPOST_BASE_URL,
        )
        self._rejections.merge(result.rejections)

        if not result.records:
            self._mark_skipped(progress, collection, reason="no_cards")
            return

        self._transition(ScrapeState.ACCUMULATING, collection_id=collection.id)
        progress.cards.extend(result.records)
        progress.total_cards = len(progress.cards)
        if collection.id not in progress.processed_collection_ids:
            progress.processed_collection_ids.append(collection.id)
        progress.collections_processed += 1
        logger.info(
            "collection_added",
            collection=collection.name,
            collection_id=collection.id,
            cards=len(result.records),
            total_cards=progress.total_cards,
        )

    def _checkpoint(self, progress: ScrapeProgress) -> None:
        if not self.config.ENABLE_PROGRESS_SAVING:
            return
        self._transition(ScrapeState.CHECKPOINTING)
        progress.timestamp = datetime.now(timezone.utc)
        self.checkpoints.save(progress)

    def _write_partial(self, progress: ScrapeProgress) -> bool:
        """Dump raw cards after an abort. Returns True if a file was written."""
        if not progress.cards:
            return False
        try:
            self.outputs.write(
                PartialScrapeOutput(
                    total_cards=len(progress.cards),
                    collections_processed=progress.collections_processed,
                    cards=progress.cards,
                )
            )
        except OSError as e:
            logger.error("partial_output_write_failed", error=str(e), error_type=type(e).__name__)
            return False
        return True

    # -----------------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------------

    def _report(
        self,
        progress: ScrapeProgress,
        total_collections: int,
        canonical: list[ListingRecord],
        started: float,
    ) -> RunReport:
        return RunReport(
            state=self.state,
            collections_processed=progress.collections_processed,
            collections_skipped=progress.collections_skipped,
            total_collections=total_collections,
            card_variants=len(progress.cards),
            unique_cards=len(canonical),
            completion_percentage=completion_percentage(
                progress.collections_processed, total_collections
            ),
            duration_seconds=round(time.monotonic() - started, 2),
            rejections=self._rejections,
        )

    def _build_output(
        self,
        progress: ScrapeProgress,
        collections: list[CollectionRef],
        canonical: list[ListingRecord],
    ) -> ScrapeOutput:
        names = {}
        for collection in collections:
            names.setdefault(collection.id, collection.name)

        skipped = [
            CollectionSummary(name=names.get(cid, ""), id=cid)
            for cid in progress.skipped_collection_ids[:METADATA_SAMPLE_SIZE]
        ]
        processed_ids = set(progress.processed_collection_ids)
        processed_sample = [
            CollectionSummary(name=c.name, id=c.id)
            for c in collections
            if c.id in processed_ids
        ][:METADATA_SAMPLE_SIZE]

        return ScrapeOutput(
            total_cards=len(canonical),
            collections_processed=progress.collections_processed,
            collections_skipped=progress.collections_skipped,
            total_collections=len(collections),
            completion_percentage=completion_percentage(
                progress.collections_processed, len(collections)
            ),
            cards=canonical,
            metadata=OutputMetadata(
                scrape_config=self.config.scrape_config(),
                skipped_collections=skipped,
                processed_collections_sample=processed_sample,
            ),
        )

    async def run(
        self,
        *,
        resume: bool | None = None,
        snapshot_path: Path | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> RunReport:
        """
        Execute one scrape run.

        Args:
            resume: Seed the run from an existing checkpoint
                (default: RESUME_FROM_PROGRESS).
            snapshot_path: Enumerate collections from a saved catalog page
                instead of the live site.
            cancel_event: When set, the run checkpoints and stops before the
                next collection.

        Returns:
            RunReport; its state is DONE, NO_WORK or CANCELLED.

        Raises:
            ScrapeAbortedError: On any unexpected error, after the partial dump.
        """
        started = time.monotonic()
        if resume is None:
            resume = self.config.RESUME_FROM_PROGRESS
        self._rejections = RejectionTally()
        self._transition(ScrapeState.INIT)

        progress = ScrapeProgress()
        collections: list[CollectionRef] = []

        try:
            self._transition(ScrapeState.ENUMERATING)
            collections = await self._enumerate(snapshot_path)
            if not collections:
                logger.warning("scrape_no_collections")
                self._transition(ScrapeState.NO_WORK)
                return self._report(progress, 0, [], started)

            if resume:
                progress = self.checkpoints.load() or progress

            # one id listed under two names is still one collection
            done = set(progress.processed_collection_ids) | set(progress.skipped_collection_ids)
            pending = []
            for collection in collections:
                if collection.id not in done:
                    done.add(collection.id)
                    pending.append(collection)
            logger.info(
                "scrape_started",
                total_collections=len(collections),
                already_done=len(collections) - len(pending),
                remaining=len(pending),
                resumed_cards=len(progress.cards),
            )

            delay = self.config.DELAY_BETWEEN_COLLECTIONS_MS / 1000
            batch_size = max(1, self.config.CHECKPOINT_BATCH_SIZE)
            for index, collection in enumerate(pending):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(
                        "scrape_cancelled",
                        remaining=len(pending) - index,
                        collections_processed=progress.collections_processed,
                    )
                    self._checkpoint(progress)
                    self._transition(ScrapeState.CANCELLED)
                    return self._report(progress, len(collections), [], started)

                logger.info(
                    "collection_processing",
                    position=f"{index + 1}/{len(pending)}",
                    percent=f"{(index + 1) / len(pending) * 100:.1f}",
                    collection=collection.name,
                )
                await self._process_collection(collection, progress)

                handled = progress.collections_processed + progress.collections_skipped
                if handled % batch_size == 0:
                    self._checkpoint(progress)

                if index < len(pending) - 1 and delay > 0:
                    await asyncio.sleep(delay)

            self._transition(ScrapeState.CONSOLIDATING)
            canonical = consolidate(progress.cards)
            summary = summarize(progress.cards, canonical)
            logger.info(
                "cards_consolidated",
                variants=summary.variants,
                unique_cards=summary.unique_cards,
                with_stock=summary.with_stock,
                dropped_names=summary.dropped_names,
            )

            self._transition(ScrapeState.WRITING_OUTPUT)
            output = self._build_output(progress, collections, canonical)
            self.outputs.write(output)
            try:
                self.checkpoints.clear()
            except OSError as e:
                # output is already final
                logger.warning("checkpoint_clear_failed", error=str(e), error_type=type(e).__name__)

            self._transition(ScrapeState.DONE)
            report = self._report(progress, len(collections), canonical, started)
            logger.info(
                "scrape_complete",
                collections_processed=report.collections_processed,
                collections_skipped=report.collections_skipped,
                total_collections=report.total_collections,
                completion_percentage=report.completion_percentage,
                card_variants=report.card_variants,
                unique_cards=report.unique_cards,
                rejected_cards=report.rejections.rejected,
                duration_seconds=report.duration_seconds,
            )
            return report

        except Exception as e:
            self._transition(ScrapeState.ABORTED)
            logger.error(
                "scrape_aborted",
                error=str(e),
                error_type=type(e).__name__,
                collections_processed=progress.collections_processed,
                cards=len(progress.cards),
            )
            partial_written = self._write_partial(progress)
            raise ScrapeAbortedError(str(e), partial_written) from e
