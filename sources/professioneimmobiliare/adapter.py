"""Professione Immobiliare Italia (Calabria) adapter."""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import FetchError, ParseError
from models.listing import NormalizedListing
from sources.base import SourceAdapter
from sources.professioneimmobiliare.constants import (
    ATTR_BATHROOMS,
    ATTR_BEDROOMS,
    ATTR_CITY,
    ATTR_FEATURES,
    ATTR_SIZE,
    ATTR_TYPE,
    CITIES_API_PATH,
    CITY_ARCHIVE_PATH,
    EMBEDDED_SCAN_LIMIT,
    ESTATE_API_PAGE_LIMIT,
    ESTATES_API_PATH,
    PROPERTY_TYPE_KEYWORDS,
)
from utils.address_parser import ItalianLocationParser
from utils.parsing import (
    collapse_whitespace,
    dedupe,
    infer_property_type,
    parse_numeric,
    parse_price,
    resolve_living_area,
)

logger = logging.getLogger(__name__)


def extract_embedded_array(html: str, key: str = '"estates":', limit: int = EMBEDDED_SCAN_LIMIT) -> List[Any]:
    """
    Extract a JSON array embedded in server-rendered HTML.

    Scans from the first ``[`` after ``key`` to its matching ``]``, ignoring
    brackets inside JSON strings. Returns an empty list if the array is
    missing, unterminated within ``limit`` characters, or not valid JSON.
    """
    key_index = html.find(key)
    if key_index == -1:
        return []
    start = html.find("[", key_index)
    if start == -1:
        return []

    depth = 0
    in_string = False
    escaped = False
    end = None
    for index in range(start, min(len(html), start + limit)):
        char = html[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                end = index + 1
                break

    if end is None:
        logger.warning(f"Embedded {key} array not terminated within {limit} characters")
        return []

    try:
        data = json.loads(html[start:end])
    except json.JSONDecodeError as e:
        logger.warning(f"Embedded {key} array is not valid JSON: {e}")
        return []
    return data if isinstance(data, list) else []


class ProfessioneImmobiliareAdapter(SourceAdapter):
    """Adapter for the MyHome-themed WordPress site with a REST API."""

    default_listing_path = CITIES_API_PATH

    THUMBNAIL_SIZE_PATTERN = re.compile(r"-\d+x\d+\.")
    TRUNCATION_MARKER = "[&hellip;]"

    def __init__(self, config, toolkit):
        super().__init__(config, toolkit)
        self.location_parser = ItalianLocationParser()

    async def fetch_estate_modified_dates(self) -> Dict[int, datetime]:
        """
        Collect estate id -> last-modified date from the REST API.

        Pages are read until an empty page or an error (WordPress answers
        400 past the last page).
        """
        logger.info(f"[{self.config.name}] Fetching estate modified dates from REST API...")
        modified: Dict[int, datetime] = {}
        page_limit = min(self.config.max_pages, ESTATE_API_PAGE_LIMIT)

        for page in range(1, page_limit + 1):
            url = self.build_url(ESTATES_API_PATH.format(page=page))
            try:
                estates = await self.toolkit.fetch_json(url)
            except (FetchError, ParseError) as e:
                logger.debug(f"[{self.config.name}]   Estate pagination ended at page {page}: {e}")
                break

            if not isinstance(estates, list) or not estates:
                break

            for estate in estates:
                parsed = self._parse_date(estate.get("modified"))
                if estate.get("id") is not None and parsed is not None:
                    modified[estate["id"]] = parsed
            logger.info(f"[{self.config.name}]   Page {page}: fetched {len(estates)} estate dates")
        else:
            logger.info(f"[{self.config.name}]   Reached page limit of {page_limit}")

        logger.info(f"[{self.config.name}]   Total: {len(modified)} estate modified dates fetched")
        return modified

    @staticmethod
    def _parse_date(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    async def get_cities_with_properties(self, region_slug: str) -> List[Dict[str, Any]]:
        """Return city taxonomy terms that have at least one estate."""
        cities = await self.toolkit.fetch_json(self.listing_url_for(region_slug))
        if not isinstance(cities, list):
            raise ParseError(f"Unexpected city taxonomy payload from {self.config.base_url}")
        return [city for city in cities if city.get("count", 0) > 0]

    @staticmethod
    def get_attribute_value(estate: Dict[str, Any], slug: str) -> Optional[str]:
        for attribute in estate.get("attributes") or []:
            if attribute.get("slug") == slug:
                values = attribute.get("values") or []
                if values and values[0].get("value"):
                    return str(values[0]["value"])
        return None

    @staticmethod
    def parse_estate_price(estate: Dict[str, Any]) -> Optional[int]:
        prices = estate.get("price") or []
        if not prices:
            return None
        return parse_price(prices[0].get("price"))

    def get_image_urls(self, estate: Dict[str, Any]) -> List[str]:
        """Main image plus gallery, with thumbnail size suffixes removed."""
        images = []
        if estate.get("image"):
            images.append(estate["image"])
        for item in estate.get("gallery") or []:
            if item.get("image"):
                images.append(item["image"])
        return dedupe(self.THUMBNAIL_SIZE_PATTERN.sub(".", url, count=1) for url in images)

    @staticmethod
    def extract_features(estate: Dict[str, Any]) -> Dict[str, Optional[bool]]:
        """Read amenity flags from the "caratteristiche" attribute values."""
        values = []
        for attribute in estate.get("attributes") or []:
            if attribute.get("slug") == ATTR_FEATURES:
                values = [str(v.get("value", "")).lower() for v in attribute.get("values") or []]
        text = " ".join(values)

        has_garage = "garage" in text or "box" in text
        return {
            "has_garden": ("giardino" in text) or None,
            "has_terrace": ("terrazzo" in text or "terrazza" in text) or None,
            "has_balcony": ("balcon" in text) or None,
            "has_parking": ("parcheggio" in text or "posto auto" in text or has_garage) or None,
            "has_garage": has_garage or None,
            "has_sea_view": ("vista mare" in text or "fronte mare" in text) or None,
        }

    def parse_full_description(self, html: str) -> Optional[str]:
        """Read the full description; the embedded excerpt is truncated."""
        soup = self.toolkit.parse_html(html)
        section = soup.select_one(".mh-estate__section--description p")
        if section is not None:
            description = collapse_whitespace(section.get_text(" "))
            if description:
                return description

        meta = soup.select_one('meta[property="og:description"]')
        if meta is not None:
            content = meta.get("content") or ""
            if content and self.TRUNCATION_MARKER not in content and "…" not in content:
                return content.strip()
        return None

    async def fetch_full_description(self, url: str) -> Optional[str]:
        try:
            html = await self.toolkit.fetch_page(url)
        except FetchError as e:
            logger.error(f"[{self.config.name}] Error fetching detail page: {e}")
            return None
        return self.parse_full_description(html)

    async def scrape(
        self, region_id: Any, source_id: Any, region_slug: str
    ) -> List[NormalizedListing]:
        """Scrape every city archive and each estate's detail page."""
        logger.info(f"[{self.config.name}] Starting scrape for region: {region_slug}")
        self.incomplete = False

        modified_dates = await self.fetch_estate_modified_dates()

        logger.info(f"[{self.config.name}] Fetching cities from WordPress API...")
        cities = await self.get_cities_with_properties(region_slug)
        logger.info(f"[{self.config.name}] Found {len(cities)} cities with properties")

        listings: List[NormalizedListing] = []
        seen_ids = set()

        for city_index, city in enumerate(cities):
            logger.info(
                f"[{self.config.name}] [{city_index + 1}/{len(cities)}] "
                f"Fetching {city.get('name')} ({city.get('count')} properties)..."
            )
            try:
                html = await self.toolkit.fetch_page(
                    self.build_url(CITY_ARCHIVE_PATH.format(slug=city.get("slug", "")))
                )
            except FetchError as e:
                self.mark_incomplete(f"city {city.get('name')} unavailable ({e})")
                continue

            estates = extract_embedded_array(html)
            logger.info(f"[{self.config.name}]   Extracted {len(estates)} properties from page")
            # The taxonomy says this city has estates, so an empty result is a parse failure
            if not estates and city.get("count", 0) > 0:
                self.mark_incomplete(f"city {city.get('name')}: no embedded estates payload")
                continue

            # Filter duplicates and invalid prices before any detail fetch
            to_process = []
            for estate in estates:
                if estate.get("id") in seen_ids:
                    continue
                seen_ids.add(estate.get("id"))

                if not estate.get("link"):
                    logger.info(f"[{self.config.name}]   Skipping estate {estate.get('id')} without link")
                    continue
                price = self.parse_estate_price(estate)
                city_name = self.get_attribute_value(estate, ATTR_CITY) or city.get("name")
                if not self.accept_listing(price, city_name, (estate.get("name") or "")[:30]):
                    continue
                to_process.append((estate, price, city_name))

            for index, (estate, price, city_name) in enumerate(to_process):
                logger.info(
                    f"[{self.config.name}]     [{index + 1}/{len(to_process)}] "
                    f"Fetching details: {(estate.get('name') or '')[:40]}..."
                )
                full_description = await self.fetch_full_description(estate.get("link", ""))

                excerpt = collapse_whitespace(estate.get("excerpt"))
                if excerpt:
                    excerpt = re.sub(r"(?:\.\.\.|…)$", "", excerpt).strip() or None
                description_it = full_description or excerpt
                description_en = await self.toolkit.translate_description(description_it)

                living_area = resolve_living_area(
                    parse_numeric(self.get_attribute_value(estate, ATTR_SIZE)),
                    description_it,
                    log_prefix=f"[{self.config.name}]     ",
                )

                listing = NormalizedListing(
                    region_id=region_id,
                    source_id=source_id,
                    listing_url=estate.get("link", ""),
                    city=self.location_parser.normalize_city_name(city_name),
                    price_eur=price,
                    bedrooms=parse_numeric(self.get_attribute_value(estate, ATTR_BEDROOMS)),
                    bathrooms=parse_numeric(self.get_attribute_value(estate, ATTR_BATHROOMS)),
                    living_area_sqm=living_area,
                    property_type=infer_property_type(
                        self.get_attribute_value(estate, ATTR_TYPE), PROPERTY_TYPE_KEYWORDS
                    ),
                    image_urls=self.get_image_urls(estate),
                    description_it=description_it,
                    description_en=description_en,
                    source_updated_at=modified_dates.get(estate.get("id")),
                    **self.extract_features(estate),
                )
                listing.apply_features(self.extractor.extract(description_it))
                listings.append(listing)

        logger.info(f"[{self.config.name}] Total unique properties: {len(listings)}")
        return listings
