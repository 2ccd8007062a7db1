"""Configuration management for AtlasFeed."""

from .loader import Config, load_config, load_sources, save_config, save_sources
from .models import (
    BOT_UA,
    DEFAULT_BROWSER_UA,
    ConfigModel,
    DiscoveryConfig,
    IngestConfig,
    PostgresConfig,
    RetentionConfig,
    ScoringConfig,
    SourceConfig,
    YouTubeFilters,
)
from .policies import KeywordBoost, SectionPolicy, default_section_policies

__all__ = [
    "BOT_UA",
    "DEFAULT_BROWSER_UA",
    "Config",
    "ConfigModel",
    "DiscoveryConfig",
    "IngestConfig",
    "KeywordBoost",
    "PostgresConfig",
    "RetentionConfig",
    "ScoringConfig",
    "SectionPolicy",
    "SourceConfig",
    "YouTubeFilters",
    "default_section_policies",
    "load_config",
    "load_sources",
    "save_config",
    "save_sources",
]
