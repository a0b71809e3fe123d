"""Gesticasa Immobiliare site-specific constants."""

from typing import List, Tuple

from models.listing import PropertyType

# Single index page holding every listing (no pagination)
LISTINGS_PATH = "/index.php?action=immobili"
DETAIL_PATH = "/index.php?action=schedaImmobile&immobile={property_id}"

# Listing cards open the detail page from an onclick handler
PROPERTY_ID_PATTERN = r"card-box-a[^>]*onclick[^>]*immobile\.value\s*=\s*'(\d+)'"

# Reference code footer appended to every description
REFERENCE_CODE_PATTERN = r"CODICE DI RIFERIMENTO.*$"

# "Tipologia" values -> property type, first hit wins
PROPERTY_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], PropertyType]] = [
    (("appartament",), PropertyType.APARTMENT),
    (("villa",), PropertyType.VILLA),
    (("casa indipendente",), PropertyType.TOWNHOUSE),
    (("attico", "mansarda"), PropertyType.PENTHOUSE),
    (("rustico", "casale"), PropertyType.FARMHOUSE),
    (("monolocale", "studio"), PropertyType.STUDIO),
    (("terreno",), PropertyType.LAND),
    (("box", "garage"), PropertyType.OTHER),
    (("locale commerciale", "palazzo", "stabile"), PropertyType.COMMERCIAL),
]
