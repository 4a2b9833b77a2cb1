"""
Outpost Stock — Command Line Entrypoint

Configures structlog and runs the scraper.

Run via:
    python -m outpost_stock.main run                 # fresh run unless a checkpoint exists
    python -m outpost_stock.main resume              # continue from scrape-progress.json
    python -m outpost_stock.main run --fresh         # ignore any checkpoint
    python -m outpost_stock.main run --snapshot outpost.html
    python -m outpost_stock.main lookup "Sol Ring" "Counterspell"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from outpost_stock.config import settings
from outpost_stock.engine.matching import DeckCard, analyze_deck
from outpost_stock.models.card import format_price_cents
from outpost_stock.pipeline.orchestrator import ScrapeAbortedError, ScrapeOrchestrator, ScrapeState
from outpost_stock.pipeline.output import OutputStore
from outpost_stock.scraper.fetcher import CollectionFetcher


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="outpost-stock",
        description="Scrape the Outpost card inventory into a consolidated stock file.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help=f"DEBUG | INFO | WARNING | ERROR (default: {settings.LOG_LEVEL}).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("run", "Scrape every collection (resumes a checkpoint unless --fresh)."),
        ("resume", "Continue an interrupted run from its checkpoint."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument(
            "--snapshot",
            type=Path,
            default=settings.SNAPSHOT_PATH,
            help="Read collections from a saved catalog HTML page instead of the live site.",
        )
        if name == "run":
            command.add_argument(
                "--fresh",
                action="store_true",
                help="Ignore any existing checkpoint.",
            )

    lookup = commands.add_parser("lookup", help="Check card names against the stock file.")
    lookup.add_argument("names", nargs="+", help="Card names to look up.")
    lookup.add_argument("--output", type=Path, default=settings.OUTPUT_PATH)

    return parser.parse_args(argv)


async def run_scrape(resume: bool, snapshot_path: Path | None) -> int:
    """
    Run one scrape. SIGINT/SIGTERM request an orderly checkpoint-then-stop.

    Returns:
        Process exit code.
    """
    logger = structlog.get_logger(__name__)
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    try:
        async with CollectionFetcher() as fetcher:
            orchestrator = ScrapeOrchestrator(fetcher)
            report = await orchestrator.run(
                resume=resume,
                snapshot_path=snapshot_path,
                cancel_event=cancel_event,
            )
    except ScrapeAbortedError as e:
        logger.error(
            "outpost_stock_run_failed",
            error=str(e),
            partial_output_written=e.partial_written,
        )
        return 1
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    logger.info("outpost_stock_run_finished", **report.model_dump(mode="json"))
    if report.state == ScrapeState.CANCELLED:
        logger.info("outpost_stock_resume_hint", command="python -m outpost_stock.main resume")
    return 0


def lookup_cards(names: list[str], output_path: Path) -> int:
    """Print availability for each requested name from the stock file."""
    logger = structlog.get_logger(__name__)
    try:
        cards = OutputStore(output_path).read_cards()
    except (OSError, ValidationError) as e:
        logger.error("output_unreadable", path=str(output_path), error=str(e))
        return 1

    analysis = analyze_deck(cards, [DeckCard(name=name) for name in names])

    for availability in analysis.card_availability:
        if availability.cheapest_price_cents > 0:
            print(
                f"{availability.card_name}: {availability.total_available} in stock, "
                f"from {format_price_cents(availability.cheapest_price_cents)} "
                f"({availability.cheapest_condition})"
            )
        else:
            print(f"{availability.card_name}: not available")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(log_level=args.log_level)
    logger = structlog.get_logger(__name__)

    if args.command == "lookup":
        return lookup_cards(args.names, args.output)

    resume = args.command == "resume" or (settings.RESUME_FROM_PROGRESS and not args.fresh)
    logger.info(
        "outpost_stock_startup",
        command=args.command,
        resume=resume,
        snapshot=str(args.snapshot) if args.snapshot else None,
        **settings.scrape_config(),
    )
    return asyncio.run(run_scrape(resume=resume, snapshot_path=args.snapshot))


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    sys.exit(main())
