"""Fallback pool provider for sections with an empty month window."""

from datetime import datetime
from typing import Any, Dict, List, Optional

import pendulum
from rich.console import Console

from ..errors import FetchError, ParseError
from .fetcher import FeedFetcher, json_records
from .models import FeedEntry
from .normalize import collapse_whitespace
from .parser import parse_feed

console = Console()

GDELT_URL = "https://api.gdeltproject.org/api/v2/doc/doc"
GOOGLE_NEWS_URL = "https://news.google.com/rss/search"

GDELT_QUERIES: Dict[str, str] = {
    "global": "global OR conflict OR election OR economy",
    "tech": "technology OR cybersecurity OR AI OR semiconductor",
    "innovators": "robotics OR aerospace OR hardware prototype",
    "early": "patent OR preprint OR arXiv OR filing",
    "creators": "open-source OR tutorial OR course OR community",
    "universe": "NASA OR telescope OR exoplanet OR galaxy",
    "history": "islamic history OR ottoman OR andalus OR caliphate",
    "faith": "Quran OR Hadith OR sunnah OR fiqh",
}

GOOGLE_NEWS_QUERIES: Dict[str, str] = {
    "global": "global news OR world news",
    "tech": "technology news OR cybersecurity OR AI",
    "innovators": "startup funding OR robotics OR aerospace",
    "early": "arXiv OR preprint OR patent filing",
    "creators": "open source release OR tutorial OR new library",
    "universe": "NASA OR telescope OR exoplanet",
    "history": "history archaeology empire",
    "faith": "quran OR hadith OR fiqh",
}

GOOGLE_NEWS_SNIPPET_CHARS = 240


def _parse_seendate(value: Any, now: datetime) -> datetime:
    """GDELT dates look like ``20240101T120000Z``."""
    if not value:
        return now
    try:
        return pendulum.from_format(str(value), "YYYYMMDD[T]HHmmss[Z]", tz="UTC")
    except ValueError:
        return now


class FallbackProvider:
    """Query public aggregators: GDELT first, Google News RSS when GDELT is empty."""

    def __init__(self, fetcher: FeedFetcher, max_records: int = 25) -> None:
        self.fetcher = fetcher
        self.max_records = max_records

    async def gdelt_entries(self, section: str, now: Optional[datetime] = None) -> List[FeedEntry]:
        now = now or pendulum.now("UTC")
        payload = await self.fetcher.fetch_json(
            GDELT_URL,
            params={
                "query": GDELT_QUERIES.get(section, GDELT_QUERIES["global"]),
                "mode": "artlist",
                "format": "json",
                "maxrecords": self.max_records,
                "sort": "datedesc",
            },
        )

        entries = []
        for article in json_records(payload, "articles", GDELT_URL):
            title = collapse_whitespace(str(article.get("title") or ""))
            url = str(article.get("url") or "").strip()
            if not title or not url:
                continue
            entries.append(
                FeedEntry(
                    title=title,
                    url=url,
                    snippet=title,
                    published_at=_parse_seendate(article.get("seendate"), now),
                )
            )
        return entries

    async def google_news_entries(self, section: str, now: Optional[datetime] = None) -> List[FeedEntry]:
        response = await self.fetcher.fetch(
            GOOGLE_NEWS_URL,
            params={
                "q": GOOGLE_NEWS_QUERIES.get(section, "news"),
                "hl": "en-US",
                "gl": "US",
                "ceid": "US:en",
            },
        )
        entries = parse_feed(response.content, response.headers.get("content-type"), now=now)
        for entry in entries:
            entry.snippet = entry.snippet[:GOOGLE_NEWS_SNIPPET_CHARS] or entry.title
        return entries[:20]

    async def entries_for(self, section: str, limit: int = 3, now: Optional[datetime] = None) -> List[FeedEntry]:
        """Up to ``limit`` entries for ``section``; aggregator failures yield no entries."""
        try:
            entries = await self.gdelt_entries(section, now=now)
        except FetchError as e:
            console.print(f"[yellow]GDELT fallback failed for {section}: {e}[/yellow]")
            entries = []

        if not entries:
            try:
                entries = await self.google_news_entries(section, now=now)
            except (FetchError, ParseError) as e:
                console.print(f"[yellow]Google News fallback failed for {section}: {e}[/yellow]")
                entries = []

        return entries[:limit]
