"""Reference data and data-quality thresholds for Italian listings."""

from typing import Dict, List, Tuple

# Seeded region reference data (slug -> display name)
REGIONS: Dict[str, str] = {
    "tuscany": "Tuscany",
    "calabria": "Calabria",
    "puglia": "Puglia",
}

# Listings priced below this are placeholders ("trattativa riservata", €1, etc.)
MIN_PRICE_EUR = 1000

# Plausible habitable surface in square meters
LIVING_AREA_BOUNDS: Tuple[int, int] = (10, 1000)

# Plausible construction years start here; upper bound is the current year
MIN_YEAR_BUILT = 1800

# Boolean amenity columns, in display order
AMENITY_FIELDS: List[str] = [
    "has_sea_view",
    "has_garden",
    "has_pool",
    "has_terrace",
    "has_balcony",
    "has_parking",
    "has_garage",
    "has_fireplace",
    "has_air_conditioning",
    "has_elevator",
    "is_renovated",
    "has_mountain_view",
    "has_panoramic_view",
]

# Non-boolean fields produced by the feature extractor
DETAIL_FIELDS: List[str] = [
    "floor_number",
    "year_built",
    "energy_class",
]

FEATURE_FIELDS: List[str] = AMENITY_FIELDS + DETAIL_FIELDS

# Human-readable labels used in feature summaries
FEATURE_LABELS: Dict[str, str] = {
    "has_sea_view": "Sea View",
    "has_mountain_view": "Mountain View",
    "has_panoramic_view": "Panoramic View",
    "has_garden": "Garden",
    "has_pool": "Pool",
    "has_terrace": "Terrace",
    "has_balcony": "Balcony",
    "has_parking": "Parking",
    "has_garage": "Garage",
    "has_fireplace": "Fireplace",
    "has_air_conditioning": "A/C",
    "has_elevator": "Elevator",
    "is_renovated": "Renovated",
}

ENERGY_CLASSES: List[str] = ["A+", "A", "B", "C", "D", "E", "F", "G"]
