"""Parsing helpers shared by all extraction strategies."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Pattern, Tuple

from models.constants import LIVING_AREA_BOUNDS
from models.listing import PropertyType

logger = logging.getLogger(__name__)

# Currency markers stripped before parsing a price
CURRENCY_PATTERN = re.compile(r"(?:€|\$|£|EUR|euro)", re.IGNORECASE)

# Integer part with optional European decimal suffix ("145000,00")
PRICE_PATTERN = re.compile(r"^(\d+)(?:,(\d+))?")

LEADING_INT_PATTERN = re.compile(r"^\s*(\d+)")

# Habitable-surface phrasings, most specific first
LIVING_AREA_PATTERNS: List[Pattern] = [
    # "superficie abitabile di circa 130 mq", "superficie calpestabile: 95 m²"
    re.compile(
        r"superficie\s+(?:interna\s+)?(?:abitabile|calpestabile|utile|netta)"
        r"\s*(?:di\s+|pari\s+a\s+|:\s*)?(?:circa\s+|ca\.?\s*)?(\d+(?:[.,]\d+)?)\s*(?:mq|m²|m2|metri\s+quadr)",
        re.IGNORECASE,
    ),
    # "130 mq abitabili", "95 m² calpestabili"
    re.compile(
        r"(\d+(?:[.,]\d+)?)\s*(?:mq|m²|m2)\s+(?:abitabili|calpestabili|utili|netti)",
        re.IGNORECASE,
    ),
    # "abitazione di 120 mq", "appartamento di circa 85 mq"
    re.compile(
        r"(?:abitazione|appartamento|alloggio)\s+di\s+(?:circa\s+)?(\d+(?:[.,]\d+)?)\s*(?:mq|m²|m2)",
        re.IGNORECASE,
    ),
    # English: "living area of 130 sqm", "habitable space of approx. 90 m²"
    re.compile(
        r"(?:living|habitable)\s+(?:area|space|surface)\s*(?:of\s+)?(?:approx\.?\s*|about\s+)?"
        r"(\d+(?:[.,]\d+)?)\s*(?:sqm|sq\.?\s*m|m²|m2)",
        re.IGNORECASE,
    ),
    # English: "130 sqm of living space"
    re.compile(
        r"(\d+(?:[.,]\d+)?)\s*(?:sqm|m²|m2)\s+of\s+(?:living|habitable)",
        re.IGNORECASE,
    ),
]

UPLOAD_PATH_PATTERN = re.compile(r"uploads/(\d{4})/(\d{2})/")


def parse_price(text: Optional[str]) -> Optional[int]:
    """
    Parse a European-formatted price string to whole euros.

    Dots are thousands separators and a comma introduces cents, which are
    rounded away.

    Examples:
        "€179.000" → 179000
        "€ 145.000,00" → 145000
        "Trattativa riservata" → None

    Args:
        text: Raw price text

    Returns:
        Integer price, or None if no number can be read
    """
    if not text:
        return None
    cleaned = CURRENCY_PATTERN.sub("", text)
    cleaned = re.sub(r"\s+", "", cleaned).replace(".", "")
    match = PRICE_PATTERN.match(cleaned)
    if not match:
        return None
    whole, cents = match.groups()
    if cents:
        return int(round(float(f"{whole}.{cents}")))
    return int(whole)


def parse_numeric(text: Optional[str]) -> Optional[int]:
    """Parse the leading integer of a field ("120 mq" → 120), or None."""
    if not text:
        return None
    match = LEADING_INT_PATTERN.match(str(text))
    if not match:
        return None
    return int(match.group(1))


def _parse_area(value: str) -> Optional[int]:
    # "1.200" is a thousands separator, "85,5" is a decimal
    if re.fullmatch(r"\d{1,3}\.\d{3}", value):
        value = value.replace(".", "")
    try:
        return int(round(float(value.replace(",", "."))))
    except ValueError:
        return None


def extract_living_area_from_description(text: Optional[str]) -> Optional[int]:
    """
    Recover the habitable surface stated in a description.

    Advertised totals often include cellars, garages and terraces; the
    description frequently states the narrower figure explicitly.

    Args:
        text: Description text (Italian or English)

    Returns:
        Living area in sqm within the plausible bounds, or None
    """
    if not text:
        return None

    min_area, max_area = LIVING_AREA_BOUNDS
    for pattern in LIVING_AREA_PATTERNS:
        for match in pattern.finditer(text):
            area = _parse_area(match.group(1))
            if area is None:
                continue
            if min_area <= area <= max_area:
                return area
            logger.debug(f"Rejected living area {area} (outside {min_area}-{max_area}) from '{match.group(0)}'")
    return None


def resolve_living_area(
    listed: Optional[int], description: Optional[str], log_prefix: str = ""
) -> Optional[int]:
    """Prefer the habitable surface from the description over the listed total."""
    from_description = extract_living_area_from_description(description)
    if from_description is not None and listed and from_description < listed:
        logger.info(f"{log_prefix}Living area: {from_description} mq (from description, listed: {listed} mq)")
    if from_description is not None:
        return from_description
    return listed


def infer_property_type(
    text: Optional[str], keywords: Iterable[Tuple[Tuple[str, ...], PropertyType]]
) -> PropertyType:
    """
    Map free text to a property type using an ordered keyword table.

    Args:
        text: Title or category text
        keywords: Ordered (keywords, type) pairs; the first hit wins

    Returns:
        Matching PropertyType, or OTHER when nothing matches
    """
    if not text:
        return PropertyType.OTHER
    lowered = text.lower()
    for words, property_type in keywords:
        if any(word in lowered for word in words):
            return property_type
    return PropertyType.OTHER


def collapse_whitespace(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    collapsed = re.sub(r"\s+", " ", text).strip()
    return collapsed or None


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ordered_timestamp(index: int, now: Optional[datetime] = None) -> datetime:
    """
    Synthesize a timestamp that preserves a site's "most recent first" order.

    Position 0 gets ``now``; each later position is one minute earlier. Only
    meaningful within a single run.
    """
    reference = now or utcnow()
    return reference - timedelta(minutes=index)


def date_from_upload_paths(urls: Iterable[str]) -> Optional[datetime]:
    """
    Derive a date from WordPress ``uploads/YYYY/MM/`` asset paths.

    Returns the latest month found, pinned to day 28, or None.
    """
    latest: Optional[datetime] = None
    for url in urls:
        match = UPLOAD_PATH_PATTERN.search(url)
        if not match:
            continue
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            continue
        candidate = datetime(year, month, 28)
        if latest is None or candidate > latest:
            latest = candidate
    return latest


def dedupe(items: Iterable[str]) -> List[str]:
    """Drop duplicates while keeping first-seen order."""
    seen = set()
    unique: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            unique.append(item)
    return unique
