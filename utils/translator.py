"""Best-effort machine translation over HTTP."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """Value-or-error outcome of a translation call."""

    text: Optional[str] = None
    error: Optional[str] = None
    rate_limited: bool = False
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


class Translator:
    """Translator for the public Google Translate web endpoint."""

    DEFAULT_URL = "https://translate.googleapis.com/translate_a/single"
    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3
    BACKOFF_BASE = 2.0

    # Cache key uses a text prefix plus total length
    CACHE_KEY_CHARS = 100

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the translator.

        Args:
            url: Translation endpoint URL
            timeout: Request timeout in seconds
            max_retries: Attempts before giving up on retryable failures
            backoff_base: Base delay in seconds, doubled after each failed attempt
            transport: Optional transport override (e.g. httpx.MockTransport)
            sleep: Coroutine used for backoff waits
        """
        self.url = url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base
        self.transport = transport
        self.sleep = sleep
        self._cache: Dict[str, str] = {}

    def _cache_key(self, text: str, source_lang: str, target_lang: str) -> str:
        return f"{source_lang}:{target_lang}:{text[:self.CACHE_KEY_CHARS]}:{len(text)}"

    async def translate(
        self, text: str, source_lang: str = "it", target_lang: str = "en"
    ) -> TranslationResult:
        """
        Translate text, retrying rate-limit, server and timeout failures.

        Args:
            text: Text to translate
            source_lang: Source language code
            target_lang: Target language code

        Returns:
            TranslationResult with either ``text`` or ``error`` set
        """
        if not text or not text.strip():
            return TranslationResult(error="empty text")

        key = self._cache_key(text, source_lang, target_lang)
        if key in self._cache:
            return TranslationResult(text=self._cache[key], cached=True)

        last_error = "no attempt made"
        rate_limited = False

        for attempt in range(self.max_retries):
            if attempt > 0:
                wait = self.backoff_base * (2 ** (attempt - 1))
                logger.debug(f"Translation retry {attempt + 1}/{self.max_retries} in {wait:.1f}s")
                await self.sleep(wait)

            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout, connect=10.0),
                    transport=self.transport,
                ) as client:
                    response = await client.post(
                        self.url,
                        params={"client": "gtx", "sl": source_lang, "tl": target_lang, "dt": "t"},
                        data={"q": text},
                    )
            except httpx.TimeoutException as e:
                last_error = f"timeout: {e}"
                logger.warning(f"Translation timeout on attempt {attempt + 1}/{self.max_retries}")
                continue
            except httpx.TransportError as e:
                last_error = f"transport error: {e}"
                logger.warning(f"Translation connection error on attempt {attempt + 1}/{self.max_retries}: {e}")
                continue

            if response.status_code == 429:
                rate_limited = True
                last_error = "Too Many Requests"
                logger.warning(f"Translation rate limited (attempt {attempt + 1}/{self.max_retries})")
                continue

            if response.status_code >= 500:
                last_error = f"server error {response.status_code}"
                logger.warning(f"Translation server error {response.status_code} (attempt {attempt + 1}/{self.max_retries})")
                continue

            if response.status_code != 200:
                return TranslationResult(error=f"HTTP {response.status_code}")

            translated = self._parse_response(response)
            if translated is None:
                return TranslationResult(error="unexpected response format")

            self._cache[key] = translated
            return TranslationResult(text=translated)

        return TranslationResult(error=last_error, rate_limited=rate_limited)

    def _parse_response(self, response: httpx.Response) -> Optional[str]:
        """Join translated segments from ``[[["Hello", "Ciao", ...], ...], ...]``."""
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            return None
        segments = [
            segment[0]
            for segment in data[0]
            if isinstance(segment, list) and segment and isinstance(segment[0], str)
        ]
        if not segments:
            return None
        return "".join(segments).strip()
