"""Test helpers: fake clock, feed rendering and mock HTTP routing."""

from datetime import datetime
from typing import Callable, Dict, List, Optional
from xml.sax.saxutils import escape

import httpx
import pendulum

from atlasfeed.db import MemoryStore
from atlasfeed.ingestion import FeedFetcher
from atlasfeed.models import Source

NOW = pendulum.datetime(2024, 6, 1, 12, 0, 0, tz="UTC")


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def rss_feed(entries: List[Dict], title: str = "Test Feed") -> bytes:
    """Render a minimal RSS 2.0 document.

    Each entry dict takes ``title``, ``link`` and optional ``description``,
    ``published`` (datetime) and ``categories``.
    """
    items = []
    for entry in entries:
        parts = [f"<title>{escape(entry['title'])}</title>"]
        if entry.get("link"):
            parts.append(f"<link>{escape(entry['link'])}</link>")
        if entry.get("description"):
            parts.append(f"<description>{escape(entry['description'])}</description>")
        if entry.get("published"):
            published: datetime = entry["published"]
            parts.append(f"<pubDate>{published.strftime('%a, %d %b %Y %H:%M:%S +0000')}</pubDate>")
        for category in entry.get("categories", []):
            parts.append(f"<category>{escape(category)}</category>")
        items.append("<item>" + "".join(parts) + "</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{escape(title)}</title><link>https://example.com/</link>"
        "<description>test</description>"
        + "".join(items)
        + "</channel></rss>"
    ).encode("utf-8")


def make_fetcher(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> FeedFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FeedFetcher(client=client, **kwargs)


def route(responses: Dict[str, httpx.Response], default_status: int = 404) -> Callable[[httpx.Request], httpx.Response]:
    """Handler answering by URL without query string."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = str(request.url).split("?")[0]
        if key in responses:
            canned = responses[key]
            return httpx.Response(canned.status_code, content=canned.content, headers=canned.headers)
        return httpx.Response(default_status)

    return handler


def rss_response(entries: List[Dict]) -> httpx.Response:
    return httpx.Response(200, content=rss_feed(entries), headers={"content-type": "application/rss+xml"})


async def add_source(
    store: MemoryStore,
    url: str,
    section: str = "global",
    trust_score: int = 80,
    source_type: str = "rss",
    name: Optional[str] = None,
    **fields,
) -> Source:
    source = await store.upsert_source(
        Source(
            url=url,
            section=section,
            name=name or url,
            type=source_type,
            trust_score=trust_score,
        )
    )
    if fields:
        await store.update_source(source.id, **fields)
        source = store.sources[source.id].model_copy()
    return source
