"""Shared crawl capabilities and the abstract extraction strategy."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from bs4 import BeautifulSoup

from models.constants import MIN_PRICE_EUR
from models.listing import NormalizedListing
from sources.config import SourceConfig
from utils.extractors import FeatureExtractor
from utils.fetcher import PageFetcher
from utils.translator import Translator

logger = logging.getLogger(__name__)


class CrawlToolkit:
    """
    Network capabilities injected into every extraction strategy.

    Fetches are strictly sequential: every fetch after the first waits for
    the source's request delay first.
    """

    DEFAULT_TRANSLATION_DELAY = 5.0

    def __init__(
        self,
        fetcher: PageFetcher,
        translator: Optional[Translator] = None,
        request_delay: float = 1.0,
        translation_delay: float = DEFAULT_TRANSLATION_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the toolkit.

        Args:
            fetcher: Shared page fetcher
            translator: Translator, or None to skip translation
            request_delay: Seconds to wait between page fetches
            translation_delay: Seconds to wait before each translation call
            sleep: Coroutine used for waits
        """
        self.fetcher = fetcher
        self.translator = translator
        self.request_delay = request_delay
        self.translation_delay = translation_delay
        self.sleep = sleep
        self.request_count = 0

    def for_source(self, config: SourceConfig) -> "CrawlToolkit":
        """Return a toolkit paced for one source's request delay."""
        return CrawlToolkit(
            fetcher=self.fetcher,
            translator=self.translator,
            request_delay=config.request_delay,
            translation_delay=self.translation_delay,
            sleep=self.sleep,
        )

    async def delay(self) -> None:
        """Pause for the configured inter-request interval."""
        if self.request_delay > 0:
            await self.sleep(self.request_delay)

    async def fetch_page(self, url: str) -> str:
        """Fetch a page, pausing first unless this is the first request."""
        if self.request_count > 0:
            await self.delay()
        self.request_count += 1
        return await self.fetcher.fetch_page(url)

    async def fetch_json(self, url: str) -> Any:
        """Fetch and decode a JSON document, with the same pacing as pages."""
        if self.request_count > 0:
            await self.delay()
        self.request_count += 1
        return await self.fetcher.fetch_json(url)

    @staticmethod
    def parse_html(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    async def translate_description(self, text: Optional[str]) -> Optional[str]:
        """
        Translate an Italian description to English.

        Failure degrades to None; the Italian text is kept by the caller.
        """
        if not text or not text.strip() or self.translator is None:
            return None

        if self.translation_delay > 0:
            await self.sleep(self.translation_delay)

        result = await self.translator.translate(text, "it", "en")
        if result.ok:
            return result.text

        if result.rate_limited:
            logger.warning("    Translation rate limited - skipping")
        else:
            logger.warning(f"    Translation failed: {(result.error or '')[:50]}")
        return None


class SourceAdapter(ABC):
    """
    Abstract base class for agency extraction strategies.

    Each agency site gets one adapter that turns its index pages, detail
    pages or API into NormalizedListing records. Network access goes through
    the injected CrawlToolkit; parsing helpers are shared module functions.
    """

    # Index path used when the config has no per-region override
    default_listing_path = "/"

    def __init__(self, config: SourceConfig, toolkit: CrawlToolkit):
        """
        Initialize adapter with configuration.

        Args:
            config: Source configuration
            toolkit: Network capabilities for this source
        """
        self.config = config
        self.toolkit = toolkit
        self.extractor = FeatureExtractor()
        # Set when part of the index could not be read; the listing set is
        # then not a complete picture of the site and must not drive archival
        self.incomplete = False

    def mark_incomplete(self, reason: str) -> None:
        logger.warning(f"[{self.config.name}] Partial scrape: {reason}")
        self.incomplete = True

    @property
    def source_id(self) -> str:
        return self.config.id

    def build_url(self, path: str) -> str:
        """Join a site-relative path onto the source base URL."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def listing_url_for(self, region_slug: str) -> str:
        """Return the index URL for a region."""
        return self.build_url(self.config.listing_path(region_slug, self.default_listing_path))

    def accept_listing(self, price: Optional[int], city: Optional[str], label: str) -> bool:
        """
        Apply the data-quality floor shared by every source.

        Drops are logged, never counted as errors.
        """
        if price is None:
            logger.info(f"[{self.config.name}] Skipping listing without valid price: {label}")
            return False
        if price < MIN_PRICE_EUR:
            logger.info(f"[{self.config.name}] Skipping listing with implausible price €{price}: {label}")
            return False
        if not city:
            logger.info(f"[{self.config.name}] Skipping listing without city: {label}")
            return False
        return True

    @abstractmethod
    async def scrape(
        self, region_id: Any, source_id: Any, region_slug: str
    ) -> List[NormalizedListing]:
        """
        Scrape all listings of this source for one region.

        Args:
            region_id: Stored region id
            source_id: Stored source id
            region_slug: Region slug (e.g. "tuscany")

        Returns:
            Normalized listings ready for ingestion

        Raises:
            FetchError: If the index page (or listing API) is unreachable
        """
        pass
