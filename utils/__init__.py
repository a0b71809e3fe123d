"""Shared crawl, parsing and extraction utilities."""

from .address_parser import ItalianLocationParser
from .extractors import FeatureExtractor
from .fetcher import PageFetcher
from .translator import TranslationResult, Translator

__all__ = [
    "FeatureExtractor",
    "ItalianLocationParser",
    "PageFetcher",
    "TranslationResult",
    "Translator",
]
