"""External evidence sources: article corpus and document fetcher."""

from .corpus import DEFAULT_QUALITY_TIER, InMemoryCorpus
from .fetcher import DEFAULT_USER_AGENT, DocumentFetcher, FetchResponse, HttpxDocumentFetcher

__all__ = [
    "DEFAULT_QUALITY_TIER",
    "DEFAULT_USER_AGENT",
    "DocumentFetcher",
    "FetchResponse",
    "HttpxDocumentFetcher",
    "InMemoryCorpus",
]
