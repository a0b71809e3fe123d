"""Data models for Italian property listings."""

from .constants import AMENITY_FIELDS, FEATURE_FIELDS, MIN_PRICE_EUR, REGIONS
from .features import ExtractedFeatures
from .listing import NormalizedListing, PropertyType
from .results import IngestionResult, RunSummary, ScraperResult

__all__ = [
    "NormalizedListing",
    "PropertyType",
    "ExtractedFeatures",
    "ScraperResult",
    "IngestionResult",
    "RunSummary",
    "AMENITY_FIELDS",
    "FEATURE_FIELDS",
    "MIN_PRICE_EUR",
    "REGIONS",
]
