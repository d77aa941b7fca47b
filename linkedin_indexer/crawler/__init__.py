from linkedin_indexer.crawler.base import (
    BaseContentSource,
    ContentDetails,
    ContentSourceError,
    RateLimitedError,
    SearchResult,
)
from linkedin_indexer.crawler.registry import available_sources, get_source, register_source

__all__ = [
    "BaseContentSource",
    "ContentDetails",
    "ContentSourceError",
    "RateLimitedError",
    "SearchResult",
    "available_sources",
    "get_source",
    "register_source",
]
