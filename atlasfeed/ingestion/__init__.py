"""Feed fetching, parsing and fallback aggregation."""

from .fallback import FallbackProvider
from .fetcher import FeedFetcher
from .models import Candidate, FeedEntry, FetchResult
from .normalize import normalize_title_key, normalize_url
from .parser import parse_feed

__all__ = [
    "Candidate",
    "FallbackProvider",
    "FeedEntry",
    "FeedFetcher",
    "FetchResult",
    "normalize_title_key",
    "normalize_url",
    "parse_feed",
]
