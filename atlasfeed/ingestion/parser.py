"""Feed parser: raw RSS/Atom bytes to normalized entries."""

import calendar
from datetime import datetime
from typing import Any, List, Optional, Union

import feedparser
import pendulum

from ..errors import ParseError
from .models import FeedEntry
from .normalize import collapse_whitespace, strip_html

MAX_SNIPPET_CHARS = 480


def _entry_text(value: Any) -> str:
    """Coerce the shapes feedparser hands back (str, dict, list of dicts) to text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return _entry_text(value[0]) if value else ""
    if isinstance(value, dict):
        for key in ("value", "href", "url", "term"):
            if isinstance(value.get(key), str):
                return value[key]
        return ""
    return str(value)


def _entry_url(entry: Any) -> str:
    for candidate in (entry.get("link"), entry.get("id")):
        url = _entry_text(candidate).strip()
        if url.startswith("http"):
            return url
    return ""


def _entry_date(entry: Any, now: datetime) -> datetime:
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return pendulum.from_timestamp(calendar.timegm(parsed), tz="UTC")
            except (TypeError, ValueError, OverflowError):
                continue
    return now


def _entry_snippet(entry: Any) -> str:
    raw = entry.get("summary") or entry.get("description") or _entry_text(entry.get("content"))
    return strip_html(_entry_text(raw))[:MAX_SNIPPET_CHARS]


def parse_feed(
    data: Union[bytes, str],
    content_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[FeedEntry]:
    """Parse a feed document into entries.

    Entries without a title or an http(s) link are dropped. Missing or
    unparseable dates fall back to ``now``.

    Raises:
        ParseError: The document is not a recognizable feed.
    """
    now = now or pendulum.now("UTC")
    headers = {"content-type": content_type} if content_type else None
    feed = feedparser.parse(data, response_headers=headers)

    entries = feed.get("entries") or []
    if not entries:
        if feed.get("bozo"):
            raise ParseError(f"Malformed feed: {feed.get('bozo_exception')}")
        if not feed.get("version"):
            raise ParseError("Document is not an RSS or Atom feed")
        return []

    result = []
    for entry in entries:
        title = collapse_whitespace(strip_html(_entry_text(entry.get("title"))))
        url = _entry_url(entry)
        if not title or not url:
            continue

        categories = [
            collapse_whitespace(_entry_text(tag))
            for tag in entry.get("tags") or []
            if _entry_text(tag).strip()
        ]

        result.append(
            FeedEntry(
                title=title,
                url=url,
                snippet=_entry_snippet(entry),
                published_at=_entry_date(entry, now),
                categories=categories,
            )
        )

    return result
