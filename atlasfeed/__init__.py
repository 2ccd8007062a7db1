"""AtlasFeed - section-based feed ingestion, ranking and admission engine."""

__version__ = "0.1.0"
