"""Data models for AtlasFeed."""

from .item import Item
from .run import IngestRun
from .source import SOURCE_TYPE_DISCOVERY, SOURCE_TYPE_FALLBACK, SOURCE_TYPE_RSS, Source

__all__ = [
    "IngestRun",
    "Item",
    "SOURCE_TYPE_DISCOVERY",
    "SOURCE_TYPE_FALLBACK",
    "SOURCE_TYPE_RSS",
    "Source",
]
