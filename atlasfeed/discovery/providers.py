"""Discovery providers: code hosting, video platform, short-form social."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pendulum
from pydantic import Field

from ..config import YouTubeFilters
from ..errors import FetchError, ParseError
from ..ingestion import FeedEntry, FeedFetcher, parse_feed
from ..ingestion.fetcher import json_object, json_records
from ..ingestion.normalize import collapse_whitespace
from .keywords import YOUTUBE_CATEGORY_IDS, matches_keywords, section_query

MAX_PER_PROVIDER = 6
SNIPPET_CHARS = 400

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"
GITHUB_BLOG_FEED = "https://github.blog/feed/"
YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
X_SEARCH_URL = "https://api.x.com/2/tweets/search/recent"


class DiscoveredEntry(FeedEntry):
    """Entry found by a discovery provider."""

    provider: str = Field(..., description="Provider key: github, youtube or x")
    base_trust: float = Field(..., description="Provider trust, 0-1", ge=0.0, le=1.0)


def _parse_datetime(value: Any, now: datetime) -> datetime:
    if not value:
        return now
    try:
        parsed = pendulum.parse(str(value))
    except ValueError:
        return now
    return parsed if isinstance(parsed, datetime) else now


def parse_iso_duration(value: str) -> int:
    """Seconds in an ISO-8601 duration such as ``PT1H2M3S``; 0 when unparseable."""
    if not value:
        return 0
    try:
        parsed = pendulum.parse(str(value))
    except ValueError:
        return 0
    return int(parsed.total_seconds()) if isinstance(parsed, pendulum.Duration) else 0


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _strings(value: Any) -> List[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


class DiscoveryProvider(ABC):
    """Base class for discovery providers."""

    name: str = ""

    def __init__(self, fetcher: FeedFetcher) -> None:
        self.fetcher = fetcher

    @abstractmethod
    async def discover(self, section: str, now: Optional[datetime] = None) -> List[DiscoveredEntry]:
        """
        Find candidate entries for a section.

        Raises:
            FetchError: The provider could not be reached or answered with an unexpected document
        """
        pass


class GitHubProvider(DiscoveryProvider):
    """Repository search, falling back to the GitHub blog feed."""

    name = "github"
    SEARCH_TRUST = 0.70
    BLOG_TRUST = 0.68

    def __init__(self, fetcher: FeedFetcher, token: Optional[str] = None) -> None:
        super().__init__(fetcher)
        self.token = token

    async def search_repositories(self, section: str, now: datetime) -> List[DiscoveredEntry]:
        # GitHub search allows at most five boolean operators.
        query = f"{section_query(section, limit=6)} in:name,description"
        payload = await self.fetcher.fetch_json(
            GITHUB_SEARCH_URL,
            params={"q": query, "sort": "updated", "order": "desc", "per_page": 10},
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.token}",
            },
        )

        entries = []
        for repo in json_records(payload, "items", GITHUB_SEARCH_URL):
            title = str(repo.get("full_name") or repo.get("name") or "").strip()
            snippet = collapse_whitespace(str(repo.get("description") or ""))[:SNIPPET_CHARS]
            url = str(repo.get("html_url") or "").strip()
            if not title or not url or not matches_keywords(section, f"{title} {snippet}"):
                continue
            entries.append(
                DiscoveredEntry(
                    title=title,
                    url=url,
                    snippet=snippet,
                    published_at=_parse_datetime(repo.get("updated_at"), now),
                    categories=_strings(repo.get("topics")),
                    provider=self.name,
                    base_trust=self.SEARCH_TRUST,
                )
            )
        return entries

    async def blog_entries(self, section: str, now: datetime) -> List[DiscoveredEntry]:
        response = await self.fetcher.fetch(GITHUB_BLOG_FEED)
        try:
            feed_entries = parse_feed(response.content, response.headers.get("content-type"), now=now)
        except ParseError as e:
            raise FetchError(f"GitHub blog feed unreadable: {e}") from e

        return [
            DiscoveredEntry(
                **entry.model_dump(exclude={"snippet"}),
                snippet=entry.snippet[:SNIPPET_CHARS],
                provider=self.name,
                base_trust=self.BLOG_TRUST,
            )
            for entry in feed_entries
            if matches_keywords(section, f"{entry.title} {entry.snippet}")
        ]

    async def discover(self, section: str, now: Optional[datetime] = None) -> List[DiscoveredEntry]:
        now = now or pendulum.now("UTC")
        entries: List[DiscoveredEntry] = []
        if self.token:
            try:
                entries = await self.search_repositories(section, now)
            except FetchError:
                entries = []
        if not entries:
            entries = await self.blog_entries(section, now)

        seen = set()
        unique = []
        for entry in entries:
            if entry.url not in seen:
                seen.add(entry.url)
                unique.append(entry)
        return unique[:MAX_PER_PROVIDER]


class YouTubeProvider(DiscoveryProvider):
    """Video search plus details, filtered for long-form, engaged videos."""

    name = "youtube"
    TRUST = 0.60
    LONG_FORM_TRUST = 0.65
    LONG_FORM_EXTRA_SECONDS = 300

    def __init__(self, fetcher: FeedFetcher, api_key: str, filters: Optional[YouTubeFilters] = None) -> None:
        super().__init__(fetcher)
        self.api_key = api_key
        self.filters = filters or YouTubeFilters()

    def _headers(self) -> Optional[Dict[str, str]]:
        if not self.filters.referer:
            return None
        referer = self.filters.referer.rstrip("/")
        return {"Referer": referer, "Origin": referer}

    def passes_filters(self, section: str, video: Dict[str, Any], now: datetime) -> bool:
        """Apply duration, live, negative-keyword, topic and engagement gates."""
        snippet = json_object(video.get("snippet"))
        text = f"{snippet.get('title', '')} {snippet.get('description', '')}".lower()

        duration = parse_iso_duration(json_object(video.get("contentDetails")).get("duration", ""))
        min_duration = self.filters.min_duration_seconds.get(section, 180)
        if duration and duration < min_duration:
            return False
        if snippet.get("liveBroadcastContent") in ("live", "upcoming"):
            return False
        if any(k.lower() in text for k in self.filters.negative_keywords):
            return False
        if not matches_keywords(section, text):
            return False

        stats = json_object(video.get("statistics"))
        views = _count(stats.get("viewCount"))
        likes = _count(stats.get("likeCount"))
        published = _parse_datetime(snippet.get("publishedAt"), now)
        age_days = max(1.0, (now - published).total_seconds() / 86400)

        if views >= self.filters.min_views and likes >= self.filters.min_likes:
            return True
        return views / age_days >= self.filters.min_views_per_day

    async def discover(self, section: str, now: Optional[datetime] = None) -> List[DiscoveredEntry]:
        now = now or pendulum.now("UTC")
        published_after = now - timedelta(days=self.filters.published_days)
        params = {
            "part": "snippet",
            "type": "video",
            "maxResults": 12,
            "order": "relevance",
            "q": f"{section_query(section)} -shorts -short -reel -tiktok",
            "key": self.api_key,
            "videoEmbeddable": "true",
            "videoSyndicated": "true",
            "safeSearch": "moderate",
            "publishedAfter": published_after.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        if section in YOUTUBE_CATEGORY_IDS:
            params["videoCategoryId"] = YOUTUBE_CATEGORY_IDS[section]
        if self.filters.relevance_language:
            params["relevanceLanguage"] = self.filters.relevance_language
        if self.filters.region_code:
            params["regionCode"] = self.filters.region_code

        search = await self.fetcher.fetch_json(YOUTUBE_SEARCH_URL, params=params, headers=self._headers())
        ids = [
            str(json_object(item.get("id")).get("videoId") or "")
            for item in json_records(search, "items", YOUTUBE_SEARCH_URL)
        ]
        ids = [i for i in ids if i]
        if not ids:
            return []

        details = await self.fetcher.fetch_json(
            YOUTUBE_VIDEOS_URL,
            params={"part": "contentDetails,statistics,snippet", "id": ",".join(ids), "key": self.api_key},
            headers=self._headers(),
        )
        videos = {
            str(v.get("id")): v for v in json_records(details, "items", YOUTUBE_VIDEOS_URL) if v.get("id")
        }

        entries = []
        for video_id in ids:
            video = videos.get(video_id)
            if video is None or not self.passes_filters(section, video, now):
                continue
            snippet = json_object(video.get("snippet"))
            title = collapse_whitespace(str(snippet.get("title") or ""))
            if not title:
                continue
            duration = parse_iso_duration(json_object(video.get("contentDetails")).get("duration", ""))
            min_duration = self.filters.min_duration_seconds.get(section, 180)
            long_form = duration >= min_duration + self.LONG_FORM_EXTRA_SECONDS
            entries.append(
                DiscoveredEntry(
                    title=title,
                    url=f"https://www.youtube.com/watch?v={video_id}",
                    snippet=collapse_whitespace(str(snippet.get("description") or ""))[:SNIPPET_CHARS],
                    published_at=_parse_datetime(snippet.get("publishedAt"), now),
                    categories=_strings(snippet.get("tags")),
                    provider=self.name,
                    base_trust=self.LONG_FORM_TRUST if long_form else self.TRUST,
                )
            )
        return entries[:MAX_PER_PROVIDER]


class XProvider(DiscoveryProvider):
    """Recent-post search on X."""

    name = "x"
    TRUST = 0.50
    TITLE_CHARS = 110

    def __init__(self, fetcher: FeedFetcher, bearer_token: str) -> None:
        super().__init__(fetcher)
        self.bearer_token = bearer_token

    async def discover(self, section: str, now: Optional[datetime] = None) -> List[DiscoveredEntry]:
        now = now or pendulum.now("UTC")
        # Recent search caps queries at 512 characters.
        query = f"({section_query(section, limit=8)}) -is:retweet lang:en"[:512]
        payload = await self.fetcher.fetch_json(
            X_SEARCH_URL,
            params={
                "query": query,
                "max_results": 15,
                "tweet.fields": "created_at,author_id",
                "expansions": "author_id",
                "user.fields": "username",
            },
            headers={"Authorization": f"Bearer {self.bearer_token}"},
        )

        posts = json_records(payload, "data", X_SEARCH_URL)
        users = {
            str(u.get("id")): str(u.get("username") or "")
            for u in json_records(json_object(payload).get("includes"), "users", X_SEARCH_URL)
        }

        entries = []
        for post in posts:
            post_id = str(post.get("id") or "").strip()
            text = collapse_whitespace(str(post.get("text") or ""))
            if not post_id or not text:
                continue
            username = users.get(str(post.get("author_id"))) or "i"
            entries.append(
                DiscoveredEntry(
                    title=text[: self.TITLE_CHARS],
                    url=f"https://x.com/{username}/status/{post_id}",
                    snippet=text[:SNIPPET_CHARS],
                    published_at=_parse_datetime(post.get("created_at"), now),
                    provider=self.name,
                    base_trust=self.TRUST,
                )
            )
        return entries[:MAX_PER_PROVIDER]


def build_providers(
    fetcher: FeedFetcher,
    credentials: Dict[str, Optional[str]],
    filters: Optional[YouTubeFilters] = None,
) -> List[DiscoveryProvider]:
    """Providers enabled by the available credentials.

    GitHub runs whenever any credential is set, falling back to its public blog
    feed without a token.
    """
    if not any(credentials.values()):
        return []

    providers: List[DiscoveryProvider] = [GitHubProvider(fetcher, token=credentials.get("github_token"))]
    if credentials.get("youtube_api_key"):
        providers.append(YouTubeProvider(fetcher, credentials["youtube_api_key"], filters))
    if credentials.get("x_bearer_token"):
        providers.append(XProvider(fetcher, credentials["x_bearer_token"]))
    return providers
