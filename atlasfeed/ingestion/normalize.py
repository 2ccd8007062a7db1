"""URL and title normalization used for dedup."""

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from bs4 import BeautifulSoup

_TRACKING_PREFIXES = ("utm_", "mc_")
_TRACKING_KEYS = {"fbclid", "gclid", "igshid"}


def normalize_url(url: str) -> str:
    """Drop tracking parameters and fragments; lowercase scheme and host.

    Returns an empty string for anything that is not an http(s) URL.
    """
    raw = (url or "").strip()
    if not raw:
        return ""

    parts = urlsplit(raw)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return ""

    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith(_TRACKING_PREFIXES) and k.lower() not in _TRACKING_KEYS
    ]
    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            parts.path,
            urlencode(query, doseq=True),
            "",
        )
    )


def normalize_title_key(title: str) -> str:
    """Lowercased, punctuation-free title prefix for near-duplicate matching."""
    key = (title or "").lower()
    key = re.sub(r"[^\w\s]", " ", key)
    key = re.sub(r"\s+", " ", key).strip()
    return key[:80]


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def strip_html(text: str) -> str:
    """Remove markup tags and decode entities."""
    if not text:
        return ""
    return collapse_whitespace(BeautifulSoup(text, "html.parser").get_text(" ", strip=True))
