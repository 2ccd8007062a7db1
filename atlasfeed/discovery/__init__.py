"""Multi-provider discovery path."""

from .keywords import SECTION_KEYWORDS, YOUTUBE_CATEGORY_IDS, matches_keywords, section_query
from .pipeline import DiscoveryPipeline, dedup_entries, discover_once, pick_per_provider
from .providers import (
    DiscoveredEntry,
    DiscoveryProvider,
    GitHubProvider,
    XProvider,
    YouTubeProvider,
    build_providers,
    parse_iso_duration,
)

__all__ = [
    "DiscoveredEntry",
    "DiscoveryPipeline",
    "DiscoveryProvider",
    "GitHubProvider",
    "SECTION_KEYWORDS",
    "XProvider",
    "YOUTUBE_CATEGORY_IDS",
    "YouTubeProvider",
    "build_providers",
    "dedup_entries",
    "discover_once",
    "matches_keywords",
    "parse_iso_duration",
    "pick_per_provider",
    "section_query",
]
