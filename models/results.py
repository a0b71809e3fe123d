"""Reporting structures for scraper runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .listing import NormalizedListing


@dataclass
class ScraperResult:
    """Outcome of one extraction strategy run for a source+region pair."""

    source_id: str
    region_slug: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    properties: List[NormalizedListing] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class IngestionResult:
    """Counts reported by one ingestion batch and its reconciliation pass."""

    source_name: str
    region_slug: str
    total: int = 0
    new_count: int = 0
    updated_count: int = 0
    error_count: int = 0
    archived_count: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """Aggregated outcome of a full orchestrator run."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    scraper_results: List[ScraperResult] = field(default_factory=list)
    ingestion_results: List[IngestionResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    # Aggregated stats
    total_sources: int = 0
    total_regions: int = 0
    total_properties_scraped: int = 0
    total_new_listings: int = 0
    total_updated_listings: int = 0
    total_archived_listings: int = 0
    total_errors: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def has_errors(self) -> bool:
        """Binary health signal for callers (exit code, schedulers)."""
        return self.total_errors > 0

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.total_errors += 1
