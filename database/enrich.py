"""Retroactive feature extraction over stored listings."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from models.constants import FEATURE_FIELDS
from models.features import ExtractedFeatures
from utils.extractors import FeatureExtractor
from utils.parsing import utcnow

from .connection import Database
from .models import Property

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentResult:
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: List[str] = field(default_factory=list)


def enrich_properties(
    db: Database,
    dry_run: bool = False,
    limit: Optional[int] = None,
    extractor: Optional[FeatureExtractor] = None,
) -> EnrichmentResult:
    """
    Fill unknown feature columns from stored Italian descriptions.

    Stored non-null values always win; only columns whose value changes are
    written.

    Args:
        db: Storage handle
        dry_run: Log the changes without writing them
        limit: Process at most this many properties (newest first)
        extractor: Feature extractor to use (default: FeatureExtractor())

    Returns:
        EnrichmentResult with processed/updated/skipped/error counts
    """
    extractor = extractor or FeatureExtractor()
    result = EnrichmentResult()

    columns = [getattr(Property, name) for name in FEATURE_FIELDS]
    query = (
        select(Property.id, Property.city, Property.description_it, *columns)
        .where(Property.description_it.is_not(None), Property.description_it != "")
        .order_by(Property.created_at.desc())
    )
    if limit:
        query = query.limit(limit)

    with db.session() as session:
        rows = session.execute(query).all()

    logger.info(f"Found {len(rows)} properties with descriptions")

    for index, row in enumerate(rows):
        result.processed += 1
        extracted = extractor.extract(row.description_it)
        if not extracted.has_any():
            result.skipped += 1
            continue

        existing = ExtractedFeatures(**{name: getattr(row, name) for name in FEATURE_FIELDS})
        merged = FeatureExtractor.merge_features(existing, extracted)
        changes = {
            name: value
            for name, value in merged.to_dict().items()
            if value != getattr(row, name)
        }
        if not changes:
            result.skipped += 1
            continue

        labels = FeatureExtractor.feature_summary(ExtractedFeatures.from_dict(changes))
        logger.info(f"[{index + 1}/{len(rows)}] {row.city}: {', '.join(labels) or ', '.join(changes)}")

        if dry_run:
            result.updated += 1
            continue

        try:
            with db.session() as session:
                session.execute(
                    update(Property)
                    .where(Property.id == row.id)
                    .values(**changes, updated_at=utcnow())
                )
        except SQLAlchemyError as e:
            logger.error(f"Error updating property {row.id}: {e}")
            result.errors += 1
            result.error_messages.append(str(e))
            continue
        result.updated += 1

    logger.info(
        f"Enrichment complete{' (dry run)' if dry_run else ''}: {result.processed} processed, "
        f"{result.updated} updated, {result.skipped} skipped, {result.errors} errors"
    )
    return result
