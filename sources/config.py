"""Static configuration for every agency source."""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from errors import UnknownSourceError

DEFAULT_MAX_PAGES = 10
DEFAULT_REQUEST_DELAY = 1.0


@dataclass(frozen=True)
class SourceConfig:
    """Crawl settings for one agency website."""

    id: str
    name: str
    base_url: str
    regions: Tuple[str, ...]
    is_active: bool = True
    max_pages: int = DEFAULT_MAX_PAGES
    request_delay: float = DEFAULT_REQUEST_DELAY
    # Optional region slug -> index path override
    listing_paths: Dict[str, str] = field(default_factory=dict)

    def listing_path(self, region_slug: str, default: str) -> str:
        """Return the index path for a region, falling back to ``default``."""
        return self.listing_paths.get(region_slug, default)

    def with_max_pages(self, max_pages: Optional[int]) -> "SourceConfig":
        """Return a copy with the page cap overridden (None keeps it)."""
        if max_pages is None:
            return self
        return replace(self, max_pages=max_pages)


SOURCES: Dict[str, SourceConfig] = {
    # Tuscany
    "vittori": SourceConfig(
        id="vittori",
        name="Vittori Servizi Immobiliari",
        base_url="https://www.vittoriserviziimmobiliari.it",
        regions=("tuscany",),
        max_pages=20,
        request_delay=1.0,
    ),
    # Calabria
    "gesticasa": SourceConfig(
        id="gesticasa",
        name="Gesticasa Immobiliare",
        base_url="https://www.gesticasaimmobiliare.it",
        regions=("calabria",),
        max_pages=1,
        request_delay=1.0,
    ),
    "professioneimmobiliare": SourceConfig(
        id="professioneimmobiliare",
        name="Professione Immobiliare Italia",
        base_url="https://www.professioneimmobiliareitalia.it",
        regions=("calabria",),
        max_pages=50,
        request_delay=1.0,
    ),
    # Puglia
    "casaamola": SourceConfig(
        id="casaamola",
        name="Casa Amola",
        base_url="https://casaamola.it",
        regions=("puglia",),
        max_pages=1,
        request_delay=1.0,
    ),
}


def get_active_sources(sources: Optional[Dict[str, SourceConfig]] = None) -> List[SourceConfig]:
    """Return all active sources."""
    catalog = SOURCES if sources is None else sources
    return [source for source in catalog.values() if source.is_active]


def get_sources_for_region(
    region_slug: str, sources: Optional[Dict[str, SourceConfig]] = None
) -> List[SourceConfig]:
    """Return active sources that cover a region."""
    return [s for s in get_active_sources(sources) if region_slug in s.regions]


def get_source_by_id(
    source_id: str, sources: Optional[Dict[str, SourceConfig]] = None
) -> SourceConfig:
    """
    Look up a source configuration.

    Raises:
        UnknownSourceError: If the id is not configured
    """
    catalog = SOURCES if sources is None else sources
    try:
        return catalog[source_id]
    except KeyError:
        raise UnknownSourceError(
            f"Unknown source: {source_id}. Configured sources: {', '.join(sorted(catalog))}"
        ) from None


def get_active_regions(sources: Optional[Dict[str, SourceConfig]] = None) -> List[str]:
    """Return the unique regions covered by active sources, in first-seen order."""
    regions: List[str] = []
    for source in get_active_sources(sources):
        for region in source.regions:
            if region not in regions:
                regions.append(region)
    return regions
