"""Shared fixtures: in-memory storage and a fake agency website."""

import sys
from pathlib import Path

# Add parent directory to path to import project modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from database.connection import Database
from database.ingest import get_or_create_source, get_region_by_slug, seed_regions
from sources.base import CrawlToolkit
from utils.fetcher import PageFetcher


class FakeSite:
    """Serves canned responses keyed by absolute URL; anything else is a 404."""

    def __init__(self, pages: Optional[Dict[str, Any]] = None):
        self.pages: Dict[str, Tuple[int, Any, Dict[str, str]]] = {}
        self.requested: List[str] = []
        for url, body in (pages or {}).items():
            self.add(url, body)

    def add(self, url: str, body: Any = "", status: int = 200, headers: Optional[Dict[str, str]] = None):
        self.pages[url] = (status, body, headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if url not in self.pages:
            return httpx.Response(404, text="not found")
        status, body, headers = self.pages[url]
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body, headers=headers)
        return httpx.Response(status, text=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


async def no_sleep(seconds: float) -> None:
    return None


def make_toolkit(fetcher: PageFetcher, translator=None) -> CrawlToolkit:
    """Toolkit with all waits disabled."""
    return CrawlToolkit(
        fetcher,
        translator=translator,
        request_delay=0,
        translation_delay=0,
        sleep=no_sleep,
    )


async def scrape_with(adapter_class, config, site: FakeSite, region_slug: str, translator=None):
    """Run one adapter against a fake site and return (adapter, listings)."""
    async with PageFetcher(transport=site.transport()) as fetcher:
        toolkit = make_toolkit(fetcher, translator).for_source(config)
        adapter = adapter_class(config, toolkit)
        listings = await adapter.scrape("region-id", "source-id", region_slug)
    return adapter, listings


@pytest.fixture
def db():
    """Fresh in-memory database with the regions seeded."""
    database = Database("sqlite://")
    database.create_all()
    seed_regions(database)
    yield database
    database.dispose()


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def tuscany(db):
    return get_region_by_slug(db, "tuscany")


@pytest.fixture
def calabria(db):
    return get_region_by_slug(db, "calabria")


@pytest.fixture
def source(db):
    return get_or_create_source(db, "Test Agency", "https://agency.example")
