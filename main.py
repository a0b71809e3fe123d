"""Command-line entry point for the listings ingestion pipeline."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from config import Settings, load_settings
from database.connection import Database
from database.enrich import enrich_properties
from database.ingest import seed_regions
from errors import IngestError
from runner import IngestionRunner, RunOptions
from sources import SOURCE_REGISTRY
from sources.base import CrawlToolkit
from utils.fetcher import PageFetcher
from utils.translator import Translator

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Per-request lines from httpx drown the progress output
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ingest Italian agency property listings into the database."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_options = argparse.ArgumentParser(add_help=False)
    run_options.add_argument(
        "--dry-run", action="store_true", default=None, help="Scrape without writing to the database"
    )
    run_options.add_argument("--regions", type=_csv, help="Comma-separated region slugs")
    run_options.add_argument("--max-pages", type=int, help="Override every source's page cap")

    all_parser = subparsers.add_parser(
        "all", parents=[run_options], help="Run every active source"
    )
    all_parser.add_argument("--sources", type=_csv, help="Comma-separated source ids")

    for source_id in sorted(SOURCE_REGISTRY):
        subparsers.add_parser(source_id, parents=[run_options], help=f"Run the {source_id} source only")

    enrich_parser = subparsers.add_parser(
        "enrich", help="Extract features from stored descriptions"
    )
    enrich_parser.add_argument("--dry-run", action="store_true", help="Show changes without writing")
    enrich_parser.add_argument("--limit", type=int, help="Process at most N properties")

    subparsers.add_parser("init-db", help="Create tables and seed regions")
    return parser


def build_run_options(args: argparse.Namespace, settings: Settings) -> RunOptions:
    """Merge CLI flags over environment settings."""
    if args.command == "all":
        sources = args.sources if args.sources is not None else settings.sources
    else:
        sources = [args.command]

    return RunOptions(
        dry_run=args.dry_run if args.dry_run is not None else settings.dry_run,
        regions=args.regions if args.regions is not None else settings.regions,
        sources=sources,
        max_pages=args.max_pages if args.max_pages is not None else settings.max_pages,
    )


async def run_ingestion(db: Database, settings: Settings, options: RunOptions) -> int:
    translator = None
    if settings.translation_enabled:
        translator = Translator(
            url=settings.translation_url,
            timeout=settings.request_timeout,
            max_retries=settings.translation_max_retries,
        )
    else:
        logger.info("Translation disabled")

    async with PageFetcher(timeout=settings.request_timeout) as fetcher:
        toolkit = CrawlToolkit(
            fetcher,
            translator=translator,
            translation_delay=settings.translation_delay,
        )
        summary = await IngestionRunner(db, options, toolkit).run()

    return 1 if summary.has_errors else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)
    db = Database(settings.database_url, echo=settings.echo_sql)

    try:
        if args.command == "init-db":
            db.create_all()
            seed_regions(db)
            return 0

        if args.command == "enrich":
            result = enrich_properties(db, dry_run=args.dry_run, limit=args.limit)
            return 1 if result.errors else 0

        return asyncio.run(run_ingestion(db, settings, build_run_options(args, settings)))
    except IngestError as e:
        logger.error(f"Fatal error during ingestion: {e}")
        return 1
    finally:
        db.dispose()


if __name__ == "__main__":
    sys.exit(main())
