"""Core engine components."""

from .dedup import (
    BatchAddResult,
    DeduplicationStore,
    FilterResult,
    NewsRecord,
    StoreStats,
    fingerprint,
)
from .extractor import SourceExtractionEngine, parse_document, strip_noise, text_excerpt
from .fetcher import FetchResponse, Fetcher
from .results import FetchFailure, FetchSuccess, SourceFetchResult
from .strategies import (
    AlternateLinkStrategy,
    ArticleCandidate,
    ExtractionStrategy,
    GenericStrategy,
    MetaTagStrategy,
)
from .urls import normalize_url

__all__ = [
    "AlternateLinkStrategy",
    "ArticleCandidate",
    "BatchAddResult",
    "DeduplicationStore",
    "ExtractionStrategy",
    "FetchFailure",
    "FetchResponse",
    "FetchSuccess",
    "Fetcher",
    "FilterResult",
    "GenericStrategy",
    "MetaTagStrategy",
    "NewsRecord",
    "SourceExtractionEngine",
    "SourceFetchResult",
    "StoreStats",
    "fingerprint",
    "normalize_url",
    "parse_document",
    "strip_noise",
    "text_excerpt",
]
