"""
Listing ingestion: dedup by canonical URL, upsert, archival of stale rows.

Every listing is written in its own transaction so one bad row never
aborts the batch. The listing URL is the identity key.
"""

import logging
import uuid
from typing import Any, Iterable, List, Optional, Set

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from errors import StorageWriteError
from models.constants import FEATURE_FIELDS, REGIONS
from models.listing import NormalizedListing
from models.results import IngestionResult
from utils.parsing import utcnow

from .connection import Database
from .models import Property, Region, Source

logger = logging.getLogger(__name__)

# Always replaced by the latest scrape
OVERWRITE_COLUMNS = ("price_eur", "image_urls")

# Replaced only when the new scrape has a value
MERGE_COLUMNS = (
    "city",
    "address",
    "bedrooms",
    "bathrooms",
    "living_area_sqm",
    "property_type",
    "description_it",
    "description_en",
    *FEATURE_FIELDS,
    "source_updated_at",
)

DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _build_upsert(dialect: str, listing: NormalizedListing):
    """Build INSERT ... ON CONFLICT (listing_url) DO UPDATE for one listing."""
    insert = DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise StorageWriteError(f"Upsert not supported on dialect: {dialect}")

    now = utcnow()
    stmt = insert(Property).values(
        id=uuid.uuid4(),
        **listing.to_record(),
        is_archived=False,
        archived_at=None,
        last_seen_at=now,
        created_at=now,
        updated_at=now,
    )

    table = Property.__table__
    set_ = {column: stmt.excluded[column] for column in OVERWRITE_COLUMNS}
    for column in MERGE_COLUMNS:
        set_[column] = func.coalesce(stmt.excluded[column], table.c[column])
    set_.update(
        last_seen_at=now,
        updated_at=now,
        # Reappearing listings are restored
        is_archived=False,
        archived_at=None,
    )
    return stmt.on_conflict_do_update(index_elements=["listing_url"], set_=set_)


def upsert_listing(db: Database, listing: NormalizedListing) -> bool:
    """
    Insert or merge a single listing in its own transaction.

    Returns:
        True if the listing was new, False if an existing row was updated

    Raises:
        StorageWriteError: If the write fails
    """
    try:
        with db.session() as session:
            existed = (
                session.execute(
                    select(Property.id).where(Property.listing_url == listing.listing_url)
                ).first()
                is not None
            )
            session.execute(_build_upsert(db.dialect, listing))
    except SQLAlchemyError as e:
        raise StorageWriteError(f"Error writing {listing.listing_url}: {e}") from e
    return not existed


def ingest_properties(
    db: Database,
    listings: List[NormalizedListing],
    source_name: str,
    region_slug: str,
) -> IngestionResult:
    """
    Ingest a batch of normalized listings.

    Args:
        db: Storage handle
        listings: Listings produced by one strategy run
        source_name: Source name for reporting
        region_slug: Region slug for reporting

    Returns:
        IngestionResult with new/updated/error counts
    """
    result = IngestionResult(source_name=source_name, region_slug=region_slug, total=len(listings))

    for listing in listings:
        try:
            is_new = upsert_listing(db, listing)
        except StorageWriteError as e:
            logger.error(str(e))
            result.error_count += 1
            result.errors.append(str(e))
            continue

        if is_new:
            result.new_count += 1
        else:
            result.updated_count += 1

    logger.info(
        f"Ingested {result.total} listings for {source_name}/{region_slug}: "
        f"{result.new_count} new, {result.updated_count} updated, {result.error_count} errors"
    )
    return result


def remove_stale_listings(
    db: Database, source_id: Any, region_id: Any, scraped_urls: Iterable[str]
) -> int:
    """
    Archive active listings of one source+region that were not scraped.

    Only rows of exactly this source and region are considered, so a
    partial run never touches other units.

    Returns:
        Number of listings archived
    """
    scraped: Set[str] = set(scraped_urls)
    try:
        with db.session() as session:
            rows = session.execute(
                select(Property.id, Property.listing_url).where(
                    Property.source_id == source_id,
                    Property.region_id == region_id,
                    Property.is_archived.is_(False),
                )
            ).all()
            stale_ids = [row.id for row in rows if row.listing_url not in scraped]
            if not stale_ids:
                return 0

            now = utcnow()
            session.execute(
                update(Property)
                .where(Property.id.in_(stale_ids))
                .values(is_archived=True, archived_at=now, updated_at=now)
            )
    except SQLAlchemyError as e:
        raise StorageWriteError(f"Error archiving stale listings: {e}") from e

    logger.info(f"Archived {len(stale_ids)} stale listings")
    return len(stale_ids)


def restore_archived_listing(db: Database, url: str) -> bool:
    """Un-archive a listing by URL. Returns False if no archived row matched."""
    now = utcnow()
    with db.session() as session:
        restored = session.execute(
            update(Property)
            .where(Property.listing_url == url, Property.is_archived.is_(True))
            .values(is_archived=False, archived_at=None, last_seen_at=now, updated_at=now)
        ).rowcount
    if restored:
        logger.info(f"Restored archived listing: {url}")
    return bool(restored)


def get_or_create_source(db: Database, name: str, base_url: str) -> Source:
    """Find a source by name, creating it if missing."""
    with db.session() as session:
        source = session.execute(select(Source).where(Source.name == name)).scalar_one_or_none()
        if source is None:
            source = Source(name=name, base_url=base_url, is_active=True)
            session.add(source)
            session.flush()
            logger.info(f"Created new source: {name}")
    return source


def get_region_by_slug(db: Database, slug: str) -> Optional[Region]:
    with db.session() as session:
        return session.execute(select(Region).where(Region.slug == slug)).scalar_one_or_none()


def get_existing_urls(db: Database, source_id: Any) -> Set[str]:
    """All stored listing URLs for a source, archived ones included."""
    with db.session() as session:
        rows = session.execute(
            select(Property.listing_url).where(Property.source_id == source_id)
        ).scalars()
        return set(rows)


def seed_regions(db: Database) -> int:
    """Insert the covered regions that are missing. Returns how many were added."""
    added = 0
    with db.session() as session:
        existing = set(session.execute(select(Region.slug)).scalars())
        for slug, name in REGIONS.items():
            if slug not in existing:
                session.add(Region(slug=slug, name=name))
                added += 1
    if added:
        logger.info(f"Seeded {added} regions")
    return added
