"""Gesticasa Immobiliare (Calabria) adapter."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from errors import FetchError
from models.listing import NormalizedListing
from sources.base import SourceAdapter
from sources.gesticasa.constants import (
    DETAIL_PATH,
    LISTINGS_PATH,
    PROPERTY_ID_PATTERN,
    PROPERTY_TYPE_KEYWORDS,
    REFERENCE_CODE_PATTERN,
)
from utils.address_parser import ItalianLocationParser
from utils.parsing import collapse_whitespace, dedupe, infer_property_type, parse_numeric, parse_price

logger = logging.getLogger(__name__)


@dataclass
class GesticasaDetail:
    """Everything read from a property sheet (the index holds only ids)."""

    property_id: str
    price: Optional[int] = None
    city: Optional[str] = None
    address: Optional[str] = None
    property_type: Optional[str] = None
    sqm: Optional[int] = None
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor: Optional[str] = None
    description: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)


class GesticasaAdapter(SourceAdapter):
    """Adapter for the Gesticasa single-page catalogue."""

    default_listing_path = LISTINGS_PATH

    def __init__(self, config, toolkit):
        super().__init__(config, toolkit)
        self.location_parser = ItalianLocationParser()
        self.id_pattern = re.compile(PROPERTY_ID_PATTERN)
        self.reference_pattern = re.compile(REFERENCE_CODE_PATTERN, re.IGNORECASE)

    def detail_url(self, property_id: str) -> str:
        return self.build_url(DETAIL_PATH.format(property_id=property_id))

    def extract_property_ids(self, html: str) -> List[str]:
        """Extract property ids from the cards' onclick handlers."""
        return dedupe(self.id_pattern.findall(html))

    def parse_detail_page(self, html: str, property_id: str) -> GesticasaDetail:
        """Parse a property sheet."""
        soup = self.toolkit.parse_html(html)
        detail = GesticasaDetail(property_id=property_id)

        # "€145.000,00"
        price_el = soup.select_one(".property-price .title-c")
        if price_el is not None:
            detail.price = parse_price(price_el.get_text())

        heading = soup.find(lambda tag: tag.name == "h3" and "ubicazione" in tag.get_text().lower())
        location_el = heading.find_next("p") if heading is not None else None
        if location_el is not None:
            location = self.location_parser.parse_location(location_el.get_text(" "))
            detail.city = location["city"]
            detail.address = location["address"]

        for item in soup.select(".summary-list .list li"):
            label_el = item.find("strong")
            value_el = item.find("span")
            label = label_el.get_text().lower() if label_el else ""
            value = value_el.get_text(strip=True) if value_el else ""

            if "tipologia" in label:
                detail.property_type = value
            elif "superfic" in label:
                detail.sqm = self._first_number(value)
            elif "locali" in label:
                detail.rooms = self._first_number(value)
            elif "bagn" in label:
                detail.bathrooms = self._first_number(value)
            elif "piano" in label:
                detail.floor = value

        description_el = soup.select_one(".property-description .description")
        if description_el is not None:
            description = collapse_whitespace(description_el.get_text(" "))
            if description:
                description = self.reference_pattern.sub("", description).strip()
            detail.description = description or None

        image_pattern = re.compile(
            rf"img/immobili/{re.escape(property_id)}_[^\"']+\.(?:jpg|jpeg|png)", re.IGNORECASE
        )
        detail.image_urls = dedupe(self.build_url(path) for path in image_pattern.findall(html))
        return detail

    @staticmethod
    def _first_number(text: str) -> Optional[int]:
        match = re.search(r"(\d+)", text)
        return int(match.group(1)) if match else None

    def parse_floor(self, floor_text: Optional[str]) -> Optional[int]:
        """Convert a floor value ("2", "Terra", "primo") to a number."""
        if not floor_text:
            return None
        number = parse_numeric(floor_text)
        if number is not None:
            return number
        return self.extractor.FLOOR_WORDS.get(floor_text.strip().lower().split(" ")[0])

    async def fetch_property_detail(self, property_id: str) -> Optional[GesticasaDetail]:
        try:
            html = await self.toolkit.fetch_page(self.detail_url(property_id))
        except FetchError as e:
            logger.error(f"[{self.config.name}] Error fetching property {property_id}: {e}")
            return None
        return self.parse_detail_page(html, property_id)

    async def scrape(
        self, region_id: Any, source_id: Any, region_slug: str
    ) -> List[NormalizedListing]:
        """Scrape the catalogue page and every property sheet."""
        logger.info(f"[{self.config.name}] Starting scrape for region: {region_slug}")
        self.incomplete = False

        listings_url = self.listing_url_for(region_slug)
        logger.info(f"[{self.config.name}] Fetching listings: {listings_url}")
        html = await self.toolkit.fetch_page(listings_url)

        property_ids = self.extract_property_ids(html)
        logger.info(f"[{self.config.name}] Found {len(property_ids)} properties")
        if not property_ids:
            logger.warning(f"[{self.config.name}] No properties found. The page structure may have changed.")
            return []

        listings: List[NormalizedListing] = []
        for index, property_id in enumerate(property_ids):
            logger.info(f"[{self.config.name}] [{index + 1}/{len(property_ids)}] Fetching property {property_id}...")
            detail = await self.fetch_property_detail(property_id)

            # No card data to fall back on
            if detail is None:
                self.mark_incomplete(f"property {property_id} skipped, detail page unavailable")
                continue

            if not self.accept_listing(detail.price, detail.city, f"property {property_id}"):
                continue

            description_en = await self.toolkit.translate_description(detail.description)

            listing = NormalizedListing(
                region_id=region_id,
                source_id=source_id,
                listing_url=self.detail_url(property_id),
                city=self.location_parser.normalize_city_name(detail.city),
                address=detail.address,
                price_eur=detail.price,
                # "Locali" counts rooms, used as the closest bedroom figure
                bedrooms=detail.rooms,
                bathrooms=detail.bathrooms,
                living_area_sqm=detail.sqm,
                property_type=infer_property_type(detail.property_type, PROPERTY_TYPE_KEYWORDS),
                image_urls=detail.image_urls,
                description_it=detail.description,
                description_en=description_en,
                floor_number=self.parse_floor(detail.floor),
            )
            listing.apply_features(self.extractor.extract(detail.description))
            if listing.has_garage and listing.has_parking is None:
                listing.has_parking = True

            listings.append(listing)
            logger.info(
                f"[{self.config.name}]   Added: {listing.city} - €{detail.price:,} - "
                f"{len(detail.image_urls)} images"
            )

        logger.info(f"[{self.config.name}] Total properties: {len(listings)}")
        return listings
