"""Error taxonomy for ingestion and discovery runs."""

from typing import Optional


class AtlasFeedError(Exception):
    """Base class for all atlasfeed errors."""


class FetchError(AtlasFeedError):
    """A remote request timed out or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(AtlasFeedError):
    """Fetched bytes could not be parsed as an RSS/Atom feed."""


class PersistenceError(AtlasFeedError):
    """A storage write or read failed."""


class PersistenceConflict(PersistenceError):
    """A unique constraint (item url, source url) rejected an insert."""


class BudgetExceeded(AtlasFeedError):
    """The run deadline's safety margin has been reached."""


class RegistryUnavailable(AtlasFeedError):
    """The source registry could not be read at run start."""
