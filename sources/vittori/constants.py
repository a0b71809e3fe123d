"""Vittori Servizi Immobiliari site-specific constants."""

from typing import List, Tuple

from models.listing import PropertyType

# Sorted by "Più recente" so listing order reflects recency
LISTINGS_PATH = "/it/immobili-in-vendita?order_by=insert_ts_desc"

# Title keywords -> property type, first hit wins
PROPERTY_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], PropertyType]] = [
    (("appartament",), PropertyType.APARTMENT),
    (("villa",), PropertyType.VILLA),
    (("rustico", "casale", "podere"), PropertyType.FARMHOUSE),
    (("schiera", "bifamiliare"), PropertyType.TOWNHOUSE),
    (("attico", "mansard"), PropertyType.PENTHOUSE),
    (("monolocale", "studio"), PropertyType.STUDIO),
    (("terreno",), PropertyType.LAND),
    (("commerciale", "negozio", "ufficio", "magazzino", "fondo"), PropertyType.COMMERCIAL),
    (("casa singola", "villetta"), PropertyType.VILLA),
]

# Gallery images hosted by the gestionale platform
IMAGE_HOST = "gestionaleimmobiliare.it"
IMAGE_URL_PATTERN = r"https://images\.gestionaleimmobiliare\.it/foto/annunci/[^\"'\s)]+"
FULL_SIZE_MARKER = "1280x1280"
