"""Amenity and detail features inferred from free-text descriptions."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class ExtractedFeatures:
    """
    Features recovered from a listing description.

    Every field is always present; None means "not mentioned", which is
    different from an explicit False (e.g. "senza giardino").
    """

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
    floor_number: Optional[int] = None
    year_built: Optional[int] = None
    energy_class: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with every key present."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedFeatures":
        """Build from a mapping, ignoring keys that are not features."""
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})

    def has_any(self) -> bool:
        """Return True if at least one feature is known."""
        return any(value is not None for value in self.to_dict().values())
