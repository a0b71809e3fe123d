"""Exception types raised across the ingestion pipeline."""

from typing import Optional


class IngestError(Exception):
    """Base class for pipeline exceptions."""


class FetchError(IngestError):
    """Raised when a page cannot be fetched or answers with a non-2xx status."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Request failed for {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ParseError(IngestError):
    """Raised when an expected page or payload structure is missing."""


class UnknownSourceError(IngestError):
    """Raised when a source id has no configuration entry."""


class UnknownRegionError(IngestError):
    """Raised when a region slug is not present in storage."""


class StorageWriteError(IngestError):
    """Raised when a listing cannot be written to storage."""


class RegistryError(IngestError):
    """Raised when an active source has no extraction strategy registered."""
