"""Casa Amola (Puglia) adapter."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from errors import FetchError
from models.listing import NormalizedListing
from sources.base import SourceAdapter
from sources.casaamola.constants import (
    CITY_CORRECTIONS,
    DEFAULT_CITY,
    DESCRIPTION_SELECTORS,
    GALLERY_SELECTORS,
    IMAGE_EXTENSIONS,
    KNOWN_CITIES,
    LISTINGS_PATH,
    PROPERTY_TYPE_KEYWORDS,
    RENTAL_MARKERS,
    UPLOADS_MARKER,
)
from utils.address_parser import ItalianLocationParser
from utils.parsing import (
    collapse_whitespace,
    date_from_upload_paths,
    dedupe,
    infer_property_type,
    parse_numeric,
    parse_price,
    resolve_living_area,
)

logger = logging.getLogger(__name__)


@dataclass
class CasaAmolaCard:
    """Listing card from the WordPress catalogue page."""

    title: str
    url: str
    city: str
    image_url: Optional[str] = None
    price_text: str = ""
    address: Optional[str] = None
    sqm_text: Optional[str] = None
    bedrooms_text: Optional[str] = None
    bathrooms_text: Optional[str] = None
    garage_text: Optional[str] = None
    property_type: str = ""


@dataclass
class CasaAmolaDetail:
    """Data only available on the property page."""

    image_urls: List[str] = field(default_factory=list)
    full_description: Optional[str] = None
    address: Optional[str] = None
    has_garden: Optional[bool] = None
    has_terrace: Optional[bool] = None
    has_balcony: Optional[bool] = None
    has_parking: Optional[bool] = None
    has_garage: Optional[bool] = None


class CasaAmolaAdapter(SourceAdapter):
    """Adapter for the Casa Amola WordPress real estate theme."""

    default_listing_path = LISTINGS_PATH

    # Card meta line: "Area 120", "Camere da letto 3", "Bagni 2", "Garage 1"
    AREA_PATTERN = re.compile(r"Area\s*(\d+)", re.IGNORECASE)
    BEDROOMS_PATTERN = re.compile(r"Camere\s*(?:da\s*letto)?\s*(\d+)", re.IGNORECASE)
    BATHROOMS_PATTERN = re.compile(r"Bagn[oi]\s*(\d+)", re.IGNORECASE)
    GARAGE_PATTERN = re.compile(r"Garage\s*(\d+)", re.IGNORECASE)
    DESCRIPTION_FALLBACK_PATTERN = re.compile(r"Descrizione[^<]*<[^>]*>([^<]+)", re.IGNORECASE)

    def __init__(self, config, toolkit):
        super().__init__(config, toolkit)
        self.location_parser = ItalianLocationParser(
            known_cities=KNOWN_CITIES,
            corrections=CITY_CORRECTIONS,
            default_city=DEFAULT_CITY,
        )

    @staticmethod
    def _match(pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        return match.group(1) if match else None

    def extract_listings(self, html: str) -> List[CasaAmolaCard]:
        """Extract sale listings from the catalogue page, skipping rentals."""
        soup = self.toolkit.parse_html(html)
        articles = soup.select("article.property-listing-simple")
        logger.info(f"[{self.config.name}] Found {len(articles)} property cards on page")

        cards: List[CasaAmolaCard] = []
        for article in articles:
            link = article.select_one("h3.entry-title a")
            if link is None:
                continue
            href = link.get("href", "")
            title = link.get_text(strip=True)
            if not href or not title or "immobili-disponibili" in href:
                continue

            card_text = article.get_text(" ")
            if any(marker in card_text.lower() for marker in RENTAL_MARKERS):
                logger.info(f"[{self.config.name}] Skipping rental: {title}")
                continue

            price_el = article.select_one("span.price")
            image_el = article.select_one(".property-thumbnail img")
            location_el = article.select_one("p.property-address")
            location_text = location_el.get_text(" ") if location_el else ""
            type_el = article.select_one(".meta-property-type")

            cards.append(CasaAmolaCard(
                title=title,
                url=self.build_url(href),
                city=self.location_parser.city_from_location(location_text),
                image_url=image_el.get("src") if image_el else None,
                price_text=price_el.get_text(strip=True) if price_el else "",
                address=self.location_parser.clean_location(location_text),
                sqm_text=self._match(self.AREA_PATTERN, card_text),
                bedrooms_text=self._match(self.BEDROOMS_PATTERN, card_text),
                bathrooms_text=self._match(self.BATHROOMS_PATTERN, card_text),
                garage_text=self._match(self.GARAGE_PATTERN, card_text),
                property_type=type_el.get_text(strip=True) if type_el else "",
            ))

        return cards

    def parse_detail_page(self, html: str) -> CasaAmolaDetail:
        """Extract gallery, description, address and amenity keywords."""
        soup = self.toolkit.parse_html(html)
        detail = CasaAmolaDetail()

        images: List[str] = []
        for img in soup.select(GALLERY_SELECTORS):
            src = img.get("data-src") or img.get("src")
            parent_link = img.find_parent("a")
            full_src = (parent_link.get("href") if parent_link is not None else None) or src
            if full_src and UPLOADS_MARKER in full_src:
                images.append(full_src)

        for link in soup.select(f"a[href*='{UPLOADS_MARKER}']"):
            href = link.get("href", "")
            if href.lower().endswith(IMAGE_EXTENSIONS):
                images.append(href)
        detail.image_urls = dedupe(images)

        for selector in DESCRIPTION_SELECTORS:
            description_el = soup.select_one(selector)
            if description_el is not None:
                detail.full_description = collapse_whitespace(description_el.get_text(" "))
                if detail.full_description:
                    break
        if not detail.full_description:
            fallback = self.DESCRIPTION_FALLBACK_PATTERN.search(html)
            if fallback:
                detail.full_description = collapse_whitespace(fallback.group(1))

        address_el = soup.select_one("p.property-address, .property-address")
        if address_el is not None:
            detail.address = self.location_parser.clean_location(address_el.get_text(" "))
        if not detail.address:
            meta = soup.select_one('meta[property="og:street-address"]')
            detail.address = meta.get("content") if meta is not None else None

        page_text = html.lower()
        detail.has_garden = ("giardino" in page_text and "senza giardino" not in page_text) or None
        detail.has_terrace = ("terrazza" in page_text or "terrazzo" in page_text) or None
        detail.has_balcony = ("balcon" in page_text) or None
        detail.has_parking = ("parcheggio" in page_text or "posto auto" in page_text) or None
        detail.has_garage = ("garage" in page_text or "box auto" in page_text) or None
        return detail

    async def fetch_detail_page(self, url: str) -> Optional[CasaAmolaDetail]:
        try:
            html = await self.toolkit.fetch_page(url)
        except FetchError as e:
            logger.error(f"[{self.config.name}] Error fetching detail page: {e}")
            return None
        return self.parse_detail_page(html)

    async def scrape(
        self, region_id: Any, source_id: Any, region_slug: str
    ) -> List[NormalizedListing]:
        """Scrape the catalogue page and every sale listing's detail page."""
        logger.info(f"[{self.config.name}] Starting scrape for region: {region_slug}")
        self.incomplete = False

        listings_url = self.listing_url_for(region_slug)
        logger.info(f"[{self.config.name}] Fetching listings: {listings_url}")
        html = await self.toolkit.fetch_page(listings_url)

        cards = self.extract_listings(html)
        logger.info(f"[{self.config.name}] Found {len(cards)} raw listings")
        if not cards:
            logger.warning(f"[{self.config.name}] No listings found. The page structure may have changed.")
            return []

        listings: List[NormalizedListing] = []
        for index, card in enumerate(cards):
            price = parse_price(card.price_text)
            if not self.accept_listing(price, card.city, card.title):
                continue

            logger.info(
                f"[{self.config.name}]   [{index + 1}/{len(cards)}] Fetching details: "
                f"{card.city} - {card.title[:40]}..."
            )
            detail = await self.fetch_detail_page(card.url) or CasaAmolaDetail()

            if detail.image_urls:
                image_urls = detail.image_urls
            else:
                image_urls = [card.image_url] if card.image_url else []
            logger.info(f"[{self.config.name}]     Found {len(image_urls)} images")

            description_it = detail.full_description
            description_en = await self.toolkit.translate_description(description_it)
            living_area = resolve_living_area(
                parse_numeric(card.sqm_text), description_it, log_prefix=f"[{self.config.name}]     "
            )
            has_garage = detail.has_garage or (True if parse_numeric(card.garage_text) else None)

            listing = NormalizedListing(
                region_id=region_id,
                source_id=source_id,
                listing_url=card.url,
                city=card.city,
                address=card.address or detail.address,
                price_eur=price,
                bedrooms=parse_numeric(card.bedrooms_text),
                bathrooms=parse_numeric(card.bathrooms_text),
                living_area_sqm=living_area,
                property_type=infer_property_type(
                    f"{card.title} {card.property_type}", PROPERTY_TYPE_KEYWORDS
                ),
                image_urls=image_urls,
                description_it=description_it,
                description_en=description_en,
                has_garden=detail.has_garden,
                has_terrace=detail.has_terrace,
                has_balcony=detail.has_balcony,
                has_parking=(detail.has_parking or has_garage) or None,
                has_garage=has_garage,
                # WordPress upload folders give month precision
                source_updated_at=date_from_upload_paths(image_urls),
            )
            listing.apply_features(self.extractor.extract(description_it))
            listings.append(listing)

        logger.info(f"[{self.config.name}] Normalized properties: {len(listings)}")
        return listings
