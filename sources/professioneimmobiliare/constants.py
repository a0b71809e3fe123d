"""Professione Immobiliare Italia site-specific constants."""

from typing import List, Tuple

from models.listing import PropertyType

# WordPress REST endpoints
ESTATES_API_PATH = "/wp-json/wp/v2/estate?per_page=100&page={page}"
CITIES_API_PATH = "/wp-json/wp/v2/citt?per_page=100"

# City archive page embedding the MyHome theme "estates" payload
CITY_ARCHIVE_PATH = "/citt/{slug}/"

# Hard stop for the estate date pagination
ESTATE_API_PAGE_LIMIT = 50

# Upper bound scanned when extracting the embedded array
EMBEDDED_SCAN_LIMIT = 200000

# Embedded attribute slugs
ATTR_CITY = "citt"
ATTR_TYPE = "tipo-propriet"
ATTR_BEDROOMS = "bedrooms"
ATTR_BATHROOMS = "bathrooms"
ATTR_SIZE = "property-size"
ATTR_FEATURES = "caratteristiche"

# "tipo-propriet" values -> property type, first hit wins
PROPERTY_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], PropertyType]] = [
    (("appartament",), PropertyType.APARTMENT),
    (("villa",), PropertyType.VILLA),
    (("indipendente", "bifamiliare"), PropertyType.TOWNHOUSE),
    (("rustico", "casale"), PropertyType.FARMHOUSE),
    (("attico", "penthouse"), PropertyType.PENTHOUSE),
    (("monolocale", "studio"), PropertyType.STUDIO),
    (("terreno",), PropertyType.LAND),
    (
        ("commerciale", "negozio", "locale", "capannone", "fabbricato", "magazzino"),
        PropertyType.COMMERCIAL,
    ),
]
