"""Vittori Servizi Immobiliari (Tuscany) adapter."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from errors import FetchError
from models.listing import NormalizedListing
from sources.base import SourceAdapter
from sources.vittori.constants import (
    FULL_SIZE_MARKER,
    IMAGE_HOST,
    IMAGE_URL_PATTERN,
    LISTINGS_PATH,
    PROPERTY_TYPE_KEYWORDS,
)
from utils.address_parser import ItalianLocationParser
from utils.parsing import (
    collapse_whitespace,
    dedupe,
    infer_property_type,
    ordered_timestamp,
    parse_numeric,
    parse_price,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class VittoriCard:
    """Listing card as shown on the paginated index grid."""

    title: str
    url: str
    image_url: Optional[str] = None
    price_text: str = ""
    description: str = ""
    sqm_text: Optional[str] = None
    bedrooms_text: Optional[str] = None
    bathrooms_text: Optional[str] = None


@dataclass
class VittoriDetail:
    """Data only available on the detail page."""

    image_urls: List[str] = field(default_factory=list)
    full_description: Optional[str] = None
    has_garden: Optional[bool] = None
    has_terrace: Optional[bool] = None
    has_balcony: Optional[bool] = None
    has_parking: Optional[bool] = None
    has_garage: Optional[bool] = None


class VittoriAdapter(SourceAdapter):
    """Adapter for the gestionaleimmobiliare-powered Vittori listing grid."""

    default_listing_path = LISTINGS_PATH

    PAGE_PARAM_PATTERN = re.compile(r"page=(\d+)")
    STYLE_URL_PATTERN = re.compile(r"url\(([^)]+)\)")
    NUMBER_PATTERN = re.compile(r"(\d+)")

    def __init__(self, config, toolkit):
        super().__init__(config, toolkit)
        self.location_parser = ItalianLocationParser()
        self.image_pattern = re.compile(IMAGE_URL_PATTERN)

    def build_page_url(self, region_slug: str, page: int) -> str:
        """Build the index URL for a page, keeping the sort parameter."""
        base = self.listing_url_for(region_slug)
        if page == 1:
            return base
        separator = "&" if "?" in base else "?"
        return f"{base}{separator}page={page}"

    def extract_listings(self, html: str) -> List[VittoriCard]:
        """Extract listing cards from one index page."""
        soup = self.toolkit.parse_html(html)
        cards: List[VittoriCard] = []

        for container in soup.select(".property-container"):
            link = container.select_one(".property-text h3 a")
            if link is None:
                continue
            href = link.get("href")
            if not href:
                continue
            title = link.get("title") or link.get_text(strip=True)

            image_url = None
            wrapper = container.select_one(".image-wrapper")
            if wrapper is not None:
                style_match = self.STYLE_URL_PATTERN.search(wrapper.get("style", ""))
                if style_match:
                    image_url = style_match.group(1).strip("'\" ")

            price_el = container.select_one(".property-text h4 span")
            desc_el = container.select_one(".property-text p.line-clamp")

            card = VittoriCard(
                title=title.strip(),
                url=self.build_url(href),
                image_url=image_url,
                price_text=price_el.get_text() if price_el else "",
                description=(collapse_whitespace(desc_el.get_text()) or "") if desc_el else "",
            )

            # Icons identify which number is which
            for feature in container.select(".property-features span"):
                feature_html = str(feature)
                number_match = self.NUMBER_PATTERN.search(feature.get_text(" ", strip=True))
                number = number_match.group(1) if number_match else None
                if "fa-ruler-combined" in feature_html:
                    card.sqm_text = number
                elif "fa-bed" in feature_html:
                    card.bedrooms_text = number
                elif "fa-bath" in feature_html:
                    card.bathrooms_text = number

            cards.append(card)

        return cards

    def get_max_page_number(self, html: str) -> int:
        """Read the highest page number linked from the pagination bar."""
        soup = self.toolkit.parse_html(html)
        max_page = 1
        for link in soup.select(".pagination a"):
            match = self.PAGE_PARAM_PATTERN.search(link.get("href", ""))
            if match:
                max_page = max(max_page, int(match.group(1)))
        return max_page

    def parse_detail_page(self, html: str) -> VittoriDetail:
        """Extract the full gallery, description and amenity keywords."""
        soup = self.toolkit.parse_html(html)
        detail = VittoriDetail()

        for link in soup.select("#slider-property .rsImg, .royalSlider .rsImg"):
            # html.parser lowercases attribute names (data-rsBigImg)
            image_url = link.get("data-rsbigimg") or link.get("href") or link.get("src")
            if image_url and IMAGE_HOST in image_url:
                detail.image_urls.append(image_url)

        if not detail.image_urls:
            detail.image_urls = [
                url for url in self.image_pattern.findall(html) if FULL_SIZE_MARKER in url
            ]
        detail.image_urls = dedupe(detail.image_urls)

        description_el = soup.select_one(".description-wrapper")
        if description_el is not None:
            detail.full_description = collapse_whitespace(description_el.get_text(" "))

        page_text = html.lower()
        detail.has_garden = ("giardino" in page_text and "senza giardino" not in page_text) or None
        detail.has_terrace = ("terrazza" in page_text or "terrazzo" in page_text) or None
        detail.has_balcony = ("balcon" in page_text) or None
        detail.has_parking = ("parcheggio" in page_text or "posto auto" in page_text) or None
        detail.has_garage = ("garage" in page_text or "box auto" in page_text) or None
        return detail

    async def fetch_detail_page(self, url: str) -> Optional[VittoriDetail]:
        """Fetch a detail page; None means fall back to card data."""
        try:
            html = await self.toolkit.fetch_page(url)
        except FetchError as e:
            logger.error(f"[{self.config.name}] Error fetching detail page: {e}")
            return None
        return self.parse_detail_page(html)

    async def collect_cards(self, region_slug: str) -> List[VittoriCard]:
        """Walk the paginated index, stopping at the page cap or an empty page."""
        first_url = self.build_page_url(region_slug, 1)
        logger.info(f"[{self.config.name}] Fetching page 1: {first_url}")
        first_html = await self.toolkit.fetch_page(first_url)

        cards = self.extract_listings(first_html)
        logger.info(f"[{self.config.name}]   Found {len(cards)} listings on page 1")
        if not cards:
            logger.info(f"[{self.config.name}]   Empty page, stopping pagination")
            return cards

        total_pages = min(self.get_max_page_number(first_html), self.config.max_pages)
        logger.info(f"[{self.config.name}]   Total pages to scrape: {total_pages}")

        for page in range(2, total_pages + 1):
            page_url = self.build_page_url(region_slug, page)
            logger.info(f"[{self.config.name}] Fetching page {page}: {page_url}")
            try:
                html = await self.toolkit.fetch_page(page_url)
            except FetchError as e:
                self.mark_incomplete(f"page {page} unavailable ({e})")
                break

            page_cards = self.extract_listings(html)
            logger.info(f"[{self.config.name}]   Found {len(page_cards)} listings on page {page}")
            if not page_cards:
                logger.info(f"[{self.config.name}]   Empty page, stopping pagination")
                break
            cards.extend(page_cards)

        # Listings can shift between pages while crawling
        unique: List[VittoriCard] = []
        seen = set()
        for card in cards:
            if card.url not in seen:
                seen.add(card.url)
                unique.append(card)
        return unique

    async def scrape(
        self, region_id: Any, source_id: Any, region_slug: str
    ) -> List[NormalizedListing]:
        """Scrape the Vittori grid and every listing's detail page."""
        logger.info(f"[{self.config.name}] Starting scrape for region: {region_slug}")
        self.incomplete = False

        cards = await self.collect_cards(region_slug)
        logger.info(f"[{self.config.name}] Total raw listings collected: {len(cards)}")

        # The site exposes no dates; keep its recency order instead
        now = utcnow()
        listings: List[NormalizedListing] = []

        for index, card in enumerate(cards):
            price = parse_price(card.price_text)
            city = self.location_parser.city_from_title(card.title)
            if not self.accept_listing(price, city, card.title):
                continue

            logger.info(f"[{self.config.name}]   [{index + 1}/{len(cards)}] Fetching details: {city}")
            detail = await self.fetch_detail_page(card.url)

            if detail and detail.image_urls:
                image_urls = detail.image_urls
            else:
                image_urls = [card.image_url] if card.image_url else []
            logger.info(f"[{self.config.name}]     Found {len(image_urls)} images")

            description_it = (detail.full_description if detail else None) or card.description or None
            description_en = await self.toolkit.translate_description(description_it)

            listing = NormalizedListing(
                region_id=region_id,
                source_id=source_id,
                listing_url=card.url,
                city=city,
                price_eur=price,
                bedrooms=parse_numeric(card.bedrooms_text),
                bathrooms=parse_numeric(card.bathrooms_text),
                living_area_sqm=parse_numeric(card.sqm_text),
                property_type=infer_property_type(card.title, PROPERTY_TYPE_KEYWORDS),
                image_urls=image_urls,
                description_it=description_it,
                description_en=description_en,
                source_updated_at=ordered_timestamp(index, now),
            )
            if detail:
                listing.has_garden = detail.has_garden
                listing.has_terrace = detail.has_terrace
                listing.has_balcony = detail.has_balcony
                listing.has_parking = detail.has_parking
                listing.has_garage = detail.has_garage
            listing.apply_features(self.extractor.extract(description_it))
            listings.append(listing)

        logger.info(f"[{self.config.name}] Normalized properties: {len(listings)}")
        return listings
