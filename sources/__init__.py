"""Source adapter registry and factory."""

import logging
from typing import Dict, Iterable, Type

from errors import RegistryError, UnknownSourceError
from sources.base import CrawlToolkit, SourceAdapter
from sources.casaamola.adapter import CasaAmolaAdapter
from sources.config import SOURCES, SourceConfig
from sources.gesticasa.adapter import GesticasaAdapter
from sources.professioneimmobiliare.adapter import ProfessioneImmobiliareAdapter
from sources.vittori.adapter import VittoriAdapter

logger = logging.getLogger(__name__)

# Source id -> extraction strategy, built once at import time
SOURCE_REGISTRY: Dict[str, Type[SourceAdapter]] = {
    "vittori": VittoriAdapter,
    "gesticasa": GesticasaAdapter,
    "casaamola": CasaAmolaAdapter,
    "professioneimmobiliare": ProfessioneImmobiliareAdapter,
}


def validate_registry(configs: Iterable[SourceConfig]) -> None:
    """
    Check that every active configured source has an adapter.

    Raises:
        RegistryError: If any active source is missing from the registry
    """
    missing = [c.id for c in configs if c.is_active and c.id not in SOURCE_REGISTRY]
    if missing:
        raise RegistryError(
            f"No adapter registered for active source(s): {', '.join(missing)}. "
            f"Registered: {', '.join(sorted(SOURCE_REGISTRY))}"
        )


def create_adapter(config: SourceConfig, toolkit: CrawlToolkit) -> SourceAdapter:
    """
    Factory function to get the adapter for a source.

    Args:
        config: Source configuration
        toolkit: Shared crawl capabilities (paced per source)

    Returns:
        Adapter instance for the source

    Raises:
        UnknownSourceError: If no adapter is registered for the source id

    Example:
        >>> adapter = create_adapter(SOURCES["vittori"], toolkit)
        >>> await adapter.scrape(region.id, source.id, "tuscany")
    """
    adapter_class = SOURCE_REGISTRY.get(config.id)
    if adapter_class is None:
        raise UnknownSourceError(
            f"Unsupported source: {config.id}. "
            f"Supported sources: {', '.join(sorted(SOURCE_REGISTRY))}"
        )
    logger.info(f"Initializing {adapter_class.__name__} for {config.name}")
    return adapter_class(config, toolkit.for_source(config))


__all__ = [
    "SOURCE_REGISTRY",
    "SOURCES",
    "CrawlToolkit",
    "SourceAdapter",
    "SourceConfig",
    "create_adapter",
    "validate_registry",
]
