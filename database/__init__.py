"""Persistent storage: schema, sessions, ingestion and enrichment."""

from .connection import Database
from .enrich import EnrichmentResult, enrich_properties
from .ingest import (
    get_existing_urls,
    get_or_create_source,
    get_region_by_slug,
    ingest_properties,
    remove_stale_listings,
    restore_archived_listing,
    seed_regions,
)
from .models import Base, Property, Region, Source

__all__ = [
    "Base",
    "Database",
    "EnrichmentResult",
    "Property",
    "Region",
    "Source",
    "enrich_properties",
    "get_existing_urls",
    "get_or_create_source",
    "get_region_by_slug",
    "ingest_properties",
    "remove_stale_listings",
    "restore_archived_listing",
    "seed_regions",
]
