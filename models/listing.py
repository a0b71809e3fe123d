"""Normalized listing data model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import FEATURE_FIELDS
from .features import ExtractedFeatures


class PropertyType(str, Enum):
    """Closed set of property categories stored for every listing."""

    APARTMENT = "apartment"
    VILLA = "villa"
    FARMHOUSE = "farmhouse"
    TOWNHOUSE = "townhouse"
    PENTHOUSE = "penthouse"
    STUDIO = "studio"
    LAND = "land"
    COMMERCIAL = "commercial"
    OTHER = "other"


@dataclass
class NormalizedListing:
    """Canonical insert record produced by every extraction strategy.

    ``listing_url`` is the identity key: two listings with the same URL are
    the same property seen at different times.
    """

    # Core identifiers
    region_id: Any
    source_id: Any
    listing_url: str
    city: str
    price_eur: int

    # Location
    address: Optional[str] = None

    # Property specifications
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    living_area_sqm: Optional[int] = None
    property_type: PropertyType = PropertyType.OTHER

    # Media and text (first image is the thumbnail)
    image_urls: List[str] = field(default_factory=list)
    description_it: Optional[str] = None
    description_en: Optional[str] = None

    # Amenities
    has_sea_view: Optional[bool] = None
    has_garden: Optional[bool] = None
    has_pool: Optional[bool] = None
    has_terrace: Optional[bool] = None
    has_balcony: Optional[bool] = None
    has_parking: Optional[bool] = None
    has_garage: Optional[bool] = None
    has_fireplace: Optional[bool] = None
    has_air_conditioning: Optional[bool] = None
    has_elevator: Optional[bool] = None
    is_renovated: Optional[bool] = None
    has_mountain_view: Optional[bool] = None
    has_panoramic_view: Optional[bool] = None

    # Details
    floor_number: Optional[int] = None
    year_built: Optional[int] = None
    energy_class: Optional[str] = None

    # Source-reported (or synthesized) modification time
    source_updated_at: Optional[datetime] = None

    def apply_features(self, features: ExtractedFeatures) -> None:
        """Fill feature fields that are still unknown from extracted features."""
        for key, value in features.to_dict().items():
            if value is not None and getattr(self, key) is None:
                setattr(self, key, value)

    def to_record(self) -> Dict[str, Any]:
        """Convert to a column mapping for the properties table."""
        return {
            "region_id": self.region_id,
            "source_id": self.source_id,
            "listing_url": self.listing_url,
            "city": self.city,
            "address": self.address,
            "price_eur": self.price_eur,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "living_area_sqm": self.living_area_sqm,
            "property_type": PropertyType(self.property_type).value,
            "image_urls": list(self.image_urls),
            "description_it": self.description_it,
            "description_en": self.description_en,
            **{key: getattr(self, key) for key in FEATURE_FIELDS},
            "source_updated_at": self.source_updated_at,
        }
