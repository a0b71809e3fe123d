"""HTTP page fetching tolerant of legacy agency web servers."""

import json
import logging
import ssl
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx

from errors import FetchError, ParseError

logger = logging.getLogger(__name__)


def build_legacy_ssl_context() -> ssl.SSLContext:
    """
    Build a TLS context that accepts weak server configurations.

    Several regional agency sites still serve small DH keys or broken
    certificate chains; the lowered security level and disabled verification
    are limited to this fetcher.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.set_ciphers("DEFAULT:@SECLEVEL=1")
    return context


class PageFetcher:
    """Sequential page fetcher backed by a single httpx.AsyncClient."""

    USER_AGENT = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    DEFAULT_HEADERS: Dict[str, str] = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "it-IT,it;q=0.9,en;q=0.8",
    }
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional transport override (e.g. httpx.MockTransport)
        """
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            headers=self.DEFAULT_HEADERS,
            timeout=httpx.Timeout(timeout, connect=10.0),
            follow_redirects=False,
            verify=build_legacy_ssl_context(),
            transport=transport,
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_page(self, url: str) -> str:
        """
        Fetch a page and return its body text.

        One level of 3xx redirect is followed, whether the Location header
        is absolute or site-relative.

        Args:
            url: Absolute URL to fetch

        Returns:
            Response body decoded as text

        Raises:
            FetchError: On transport failure or a non-2xx final status
        """
        response = await self._get(url)

        if response.is_redirect:
            location = response.headers.get("location")
            if location:
                redirect_url = urljoin(url, location)
                logger.debug(f"Following redirect {response.status_code}: {url} -> {redirect_url}")
                url = redirect_url
                response = await self._get(url)

        if not response.is_success:
            raise FetchError(url, response.status_code, response.reason_phrase)

        return response.text

    async def fetch_json(self, url: str) -> Any:
        """Fetch a URL and decode its body as JSON."""
        text = await self.fetch_page(url)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON from {url}: {e}") from e

    async def _get(self, url: str) -> httpx.Response:
        try:
            return await self.client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, None, f"timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchError(url, None, str(e) or e.__class__.__name__) from e
