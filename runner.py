"""
Run orchestration across sources and regions.

Sources and regions are processed strictly one after another. A failure
in one source+region unit is recorded in the run summary and never stops
the remaining units.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from database.connection import Database
from database.ingest import (
    get_existing_urls,
    get_or_create_source,
    get_region_by_slug,
    ingest_properties,
    remove_stale_listings,
)
from database.models import Region, Source
from errors import UnknownRegionError
from models.listing import NormalizedListing
from models.results import IngestionResult, RunSummary, ScraperResult
from sources import create_adapter, validate_registry
from sources.base import CrawlToolkit
from sources.config import SOURCES, SourceConfig, get_active_sources, get_source_by_id
from utils.parsing import utcnow

logger = logging.getLogger(__name__)

BANNER = "=" * 60


@dataclass
class RunOptions:
    dry_run: bool = False
    # Empty means "all"
    regions: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    # Replaces every source's page cap and disables archival
    max_pages: Optional[int] = None


class IngestionRunner:
    """
    Scrape, ingest and reconcile every selected source+region unit.

    Example:
        >>> runner = IngestionRunner(db, RunOptions(regions=["tuscany"]), toolkit)
        >>> summary = await runner.run()
        >>> sys.exit(1 if summary.has_errors else 0)
    """

    def __init__(
        self,
        db: Database,
        options: Optional[RunOptions],
        toolkit: CrawlToolkit,
        sources: Optional[Dict[str, SourceConfig]] = None,
    ):
        self.db = db
        self.options = options or RunOptions()
        self.toolkit = toolkit
        self.sources = SOURCES if sources is None else sources

    def resolve_sources(self, summary: Optional[RunSummary] = None) -> List[SourceConfig]:
        """
        Explicitly requested active sources, or every active source.

        Unknown source ids are recorded in ``summary`` as errors; inactive
        ones are only logged.
        """
        if not self.options.sources:
            return get_active_sources(self.sources)

        selected = []
        for source_id in self.options.sources:
            config = self.sources.get(source_id)
            if config is None:
                logger.error(f"Unknown source requested: {source_id}")
                if summary is not None:
                    summary.add_error(f"Unknown source: {source_id}")
            elif not config.is_active:
                logger.warning(f"Skipping inactive source: {source_id}")
            else:
                selected.append(config)
        return selected

    def resolve_regions(self, config: SourceConfig) -> List[str]:
        """Regions covered by a source, narrowed by the region filter."""
        if not self.options.regions:
            return list(config.regions)
        return [slug for slug in config.regions if slug in self.options.regions]

    def _get_region(self, slug: str) -> Region:
        region = get_region_by_slug(self.db, slug)
        if region is None:
            raise UnknownRegionError(f"Region not found in database: {slug}")
        return region

    async def run(self) -> RunSummary:
        """
        Execute the run.

        Returns:
            RunSummary; ``has_errors`` is the health signal

        Raises:
            RegistryError: If an active source has no registered adapter
        """
        opts = self.options
        summary = RunSummary(started_at=utcnow(), dry_run=opts.dry_run)

        logger.info(BANNER)
        logger.info("STARTING INGESTION RUN")
        logger.info(BANNER)
        logger.info(f"Time: {summary.started_at.isoformat()}")
        logger.info(f"Dry Run: {'Yes' if opts.dry_run else 'No'}")
        logger.info(f"Regions Filter: {', '.join(opts.regions) or 'All'}")
        logger.info(f"Sources Filter: {', '.join(opts.sources) or 'All Active'}")
        if opts.max_pages is not None:
            logger.info(f"Max Pages Override: {opts.max_pages} (archival disabled)")

        configs = self.resolve_sources(summary)
        validate_registry(configs)
        logger.info(f"Sources to run: {', '.join(c.name for c in configs) or 'none'}")

        regions_processed: Set[str] = set()

        for config in configs:
            summary.total_sources += 1
            config = config.with_max_pages(opts.max_pages)

            try:
                source = get_or_create_source(self.db, config.name, config.base_url)
            except Exception as e:
                logger.error(f"Failed to get/create source {config.name}: {e}")
                summary.add_error(f"{config.name}: source lookup failed: {e}")
                continue

            for region_slug in self.resolve_regions(config):
                try:
                    region = self._get_region(region_slug)
                except UnknownRegionError as e:
                    logger.error(str(e))
                    summary.add_error(str(e))
                    continue
                except Exception as e:
                    logger.error(f"Failed to look up region {region_slug}: {e}")
                    summary.add_error(f"{region_slug}: region lookup failed: {e}")
                    continue

                regions_processed.add(region_slug)
                await self.run_unit(config, source, region, summary)

        summary.total_regions = len(regions_processed)
        summary.completed_at = utcnow()
        self.log_summary(summary)
        return summary

    async def run_unit(
        self, config: SourceConfig, source: Source, region: Region, summary: RunSummary
    ) -> None:
        """Scrape one source+region, ingest it, then reconcile when safe."""
        logger.info(BANNER)
        logger.info(f"Scraping: {config.name} -> {region.name}")
        logger.info(BANNER)

        scraper_result = ScraperResult(
            source_id=config.id, region_slug=region.slug, started_at=utcnow()
        )
        summary.scraper_results.append(scraper_result)

        listings: List[NormalizedListing] = []
        adapter = None
        try:
            adapter = create_adapter(config, self.toolkit)
            listings = await adapter.scrape(region.id, source.id, region.slug)
        except Exception as e:
            message = f"Scraper error: {e}"
            logger.error(f"Scraper failed for {config.name}/{region.slug}: {e}")
            scraper_result.errors.append(message)
            summary.add_error(f"{config.name}/{region.slug}: {message}")

        scraper_result.properties = listings
        scraper_result.completed_at = utcnow()
        summary.total_properties_scraped += len(listings)

        if self.options.dry_run:
            self._report_dry_run(source, listings)
            return
        if not listings:
            return

        logger.info(f"Ingesting {len(listings)} properties into database...")
        ingestion = self._ingest(config, region, listings, summary)
        if ingestion is None:
            return

        if scraper_result.errors or (adapter is not None and adapter.incomplete):
            logger.info("Skipping archival: scrape did not complete")
            return
        if self.options.max_pages is not None:
            logger.info("Skipping archival: page cap override in effect")
            return

        try:
            archived = remove_stale_listings(
                self.db, source.id, region.id, (listing.listing_url for listing in listings)
            )
        except Exception as e:
            logger.error(f"Archival failed for {config.name}/{region.slug}: {e}")
            summary.add_error(f"{config.name}/{region.slug}: Archival error: {e}")
            return

        ingestion.archived_count = archived
        summary.total_archived_listings += archived
        logger.info(f"  Archived: {archived}")

    def _report_dry_run(self, source: Source, listings: List[NormalizedListing]) -> None:
        """Log how many listings a real run would insert and update."""
        try:
            existing = get_existing_urls(self.db, source.id)
        except SQLAlchemyError as e:
            logger.warning(f"[DRY RUN] Could not read stored listings: {e}")
            logger.info(f"[DRY RUN] Would ingest {len(listings)} properties")
            return

        new_count = sum(1 for listing in listings if listing.listing_url not in existing)
        logger.info(
            f"[DRY RUN] Would ingest {len(listings)} properties "
            f"({new_count} new, {len(listings) - new_count} updated)"
        )

    def _ingest(
        self,
        config: SourceConfig,
        region: Region,
        listings: List[NormalizedListing],
        summary: RunSummary,
    ) -> Optional[IngestionResult]:
        try:
            ingestion = ingest_properties(self.db, listings, config.name, region.slug)
        except Exception as e:
            logger.error(f"Ingestion failed for {config.name}/{region.slug}: {e}")
            summary.add_error(f"{config.name}/{region.slug}: Ingestion error: {e}")
            return None

        summary.ingestion_results.append(ingestion)
        summary.total_new_listings += ingestion.new_count
        summary.total_updated_listings += ingestion.updated_count
        for message in ingestion.errors:
            summary.add_error(f"{config.name}/{region.slug}: {message}")

        logger.info(f"  New: {ingestion.new_count}")
        logger.info(f"  Updated: {ingestion.updated_count}")
        logger.info(f"  Errors: {ingestion.error_count}")
        return ingestion

    async def run_source_ingestion(self, source_id: str) -> RunSummary:
        """Run a single source (raises UnknownSourceError if not configured)."""
        get_source_by_id(source_id, self.sources)
        self.options = replace(self.options, sources=[source_id])
        return await self.run()

    async def run_region_ingestion(self, region_slug: str) -> RunSummary:
        """Run every active source covering a single region."""
        self.options = replace(self.options, regions=[region_slug])
        return await self.run()

    @staticmethod
    def log_summary(summary: RunSummary) -> None:
        logger.info(BANNER)
        logger.info("INGESTION COMPLETE")
        logger.info(BANNER)
        logger.info(f"Duration: {summary.duration_seconds:.1f}s")
        logger.info(f"Sources: {summary.total_sources}")
        logger.info(f"Regions: {summary.total_regions}")
        logger.info(f"Properties Scraped: {summary.total_properties_scraped}")
        logger.info(f"New Listings: {summary.total_new_listings}")
        logger.info(f"Updated Listings: {summary.total_updated_listings}")
        logger.info(f"Archived Listings: {summary.total_archived_listings}")
        logger.info(f"Errors: {summary.total_errors}")
        for error in summary.errors:
            logger.info(f"  - {error}")
        logger.info(BANNER)
