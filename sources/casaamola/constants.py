"""Casa Amola site-specific constants."""

from typing import Dict, List, Tuple

from models.listing import PropertyType

LISTINGS_PATH = "/immobili-disponibili/"

# Towns the agency covers, searched when the address has no comma
KNOWN_CITIES: List[str] = [
    "Mola di Bari",
    "Conversano",
    "Bari",
    "Noicattaro",
    "Rutigliano",
    "Polignano",
]
DEFAULT_CITY = "Mola di Bari"

# Misspellings found on the site
CITY_CORRECTIONS: Dict[str, str] = {
    "noiccataro": "Noicattaro",
}

# Card text markers of rentals
RENTAL_MARKERS: Tuple[str, ...] = ("mese", "in affitto")

GALLERY_SELECTORS = ", ".join([
    ".gallery img",
    ".property-gallery img",
    ".property-detail-slider img",
    ".rh_property__images img",
    "ul.slides img",
    ".flexslider img",
    "a[href*='wp-content/uploads'] img",
    ".property-detail-media img",
])

DESCRIPTION_SELECTORS: List[str] = [
    ".property-description",
    ".description",
    ".rh_content",
    "#property-description",
    ".property-content",
    ".entry-content",
]

UPLOADS_MARKER = "wp-content/uploads"
IMAGE_EXTENSIONS: Tuple[str, ...] = (".jpg", ".jpeg", ".png")

# Title + type keywords -> property type, first hit wins
PROPERTY_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], PropertyType]] = [
    (("appartament",), PropertyType.APARTMENT),
    (("villa",), PropertyType.VILLA),
    (("rustico", "casale", "masseria"), PropertyType.FARMHOUSE),
    (("indipendente", "bifamiliare"), PropertyType.TOWNHOUSE),
    (("attico", "mansard", "penthouse"), PropertyType.PENTHOUSE),
    (("monolocale", "studio"), PropertyType.STUDIO),
    (("terreno", "agricolo"), PropertyType.LAND),
    (("commerciale", "negozio", "ufficio", "magazzino", "locale"), PropertyType.COMMERCIAL),
]
