"""Test page fetching, request pacing and translation fallback."""

import sys
from pathlib import Path

# Add parent directory to path to import project modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

import httpx
import pytest

from conftest import FakeSite
from errors import FetchError, ParseError
from sources.base import CrawlToolkit
from utils.fetcher import PageFetcher
from utils.translator import TranslationResult


def fetch(site: FakeSite, url: str, as_json: bool = False):
    async def run():
        async with PageFetcher(transport=site.transport()) as fetcher:
            if as_json:
                return await fetcher.fetch_json(url)
            return await fetcher.fetch_page(url)

    return asyncio.run(run())


class TestPageFetcher:
    """Test PageFetcher against a mocked transport."""

    def test_returns_body(self):
        site = FakeSite({"https://agency.example/": "<html>ok</html>"})
        assert fetch(site, "https://agency.example/") == "<html>ok</html>"

    def test_sends_browser_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, text="ok")

        async def run():
            async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
                await fetcher.fetch_page("https://agency.example/")

        asyncio.run(run())
        assert "Mozilla/5.0" in seen["user-agent"]
        assert seen["accept-language"].startswith("it-IT")

    def test_non_2xx_raises_with_status(self):
        site = FakeSite()
        site.add("https://agency.example/missing", "gone", status=410)
        with pytest.raises(FetchError) as exc_info:
            fetch(site, "https://agency.example/missing")
        assert exc_info.value.status_code == 410

    def test_follows_one_relative_redirect(self):
        site = FakeSite()
        site.add("https://agency.example/old", "", status=301, headers={"Location": "/new"})
        site.add("https://agency.example/new", "moved here")
        assert fetch(site, "https://agency.example/old") == "moved here"

    def test_follows_one_absolute_redirect_only(self):
        site = FakeSite()
        site.add("https://agency.example/a", "", status=302, headers={"Location": "https://agency.example/b"})
        site.add("https://agency.example/b", "", status=302, headers={"Location": "https://agency.example/c"})
        site.add("https://agency.example/c", "too far")
        with pytest.raises(FetchError) as exc_info:
            fetch(site, "https://agency.example/a")
        assert exc_info.value.status_code == 302

    def test_transport_error_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def run():
            async with PageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
                await fetcher.fetch_page("https://agency.example/")

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code is None

    def test_fetch_json(self):
        site = FakeSite({"https://agency.example/api": [{"id": 1}]})
        assert fetch(site, "https://agency.example/api", as_json=True) == [{"id": 1}]

    def test_fetch_json_invalid_payload(self):
        site = FakeSite({"https://agency.example/api": "<html>not json</html>"})
        with pytest.raises(ParseError):
            fetch(site, "https://agency.example/api", as_json=True)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class StubTranslator:
    def __init__(self, result: TranslationResult):
        self.result = result
        self.calls = 0

    async def translate(self, text, source_lang="it", target_lang="en"):
        self.calls += 1
        return self.result


class TestCrawlToolkit:
    """Test request pacing and translation degradation."""

    def test_delay_before_every_fetch_after_the_first(self):
        site = FakeSite({"https://agency.example/1": "a", "https://agency.example/2": "b", "https://agency.example/3": "c"})
        sleep = RecordingSleep()

        async def run():
            async with PageFetcher(transport=site.transport()) as fetcher:
                toolkit = CrawlToolkit(fetcher, request_delay=1.5, sleep=sleep)
                for page in (1, 2, 3):
                    await toolkit.fetch_page(f"https://agency.example/{page}")

        asyncio.run(run())
        assert sleep.calls == [1.5, 1.5]

    def test_translation_failure_degrades_to_none(self):
        translator = StubTranslator(TranslationResult(error="Too Many Requests", rate_limited=True))
        sleep = RecordingSleep()

        async def run():
            async with PageFetcher(transport=FakeSite().transport()) as fetcher:
                toolkit = CrawlToolkit(fetcher, translator=translator, translation_delay=5.0, sleep=sleep)
                return await toolkit.translate_description("Bella casa in collina")

        assert asyncio.run(run()) is None
        assert translator.calls == 1
        assert sleep.calls == [5.0]

    def test_translation_success(self):
        translator = StubTranslator(TranslationResult(text="Beautiful house"))

        async def run():
            async with PageFetcher(transport=FakeSite().transport()) as fetcher:
                toolkit = CrawlToolkit(fetcher, translator=translator, translation_delay=0)
                return await toolkit.translate_description("Bella casa")

        assert asyncio.run(run()) == "Beautiful house"

    def test_empty_text_skips_translator(self):
        translator = StubTranslator(TranslationResult(text="unused"))

        async def run():
            async with PageFetcher(transport=FakeSite().transport()) as fetcher:
                toolkit = CrawlToolkit(fetcher, translator=translator, translation_delay=0)
                return await toolkit.translate_description("   ")

        assert asyncio.run(run()) is None
        assert translator.calls == 0
