from typing import List

import httpx
import pytest

from atlasfeed.config import YouTubeFilters
from atlasfeed.db import MemoryStore
from atlasfeed.discovery import (
    DiscoveredEntry,
    DiscoveryPipeline,
    DiscoveryProvider,
    GitHubProvider,
    XProvider,
    YouTubeProvider,
    build_providers,
    dedup_entries,
    discover_once,
    parse_iso_duration,
    section_query,
)
from atlasfeed.discovery.providers import (
    GITHUB_BLOG_FEED,
    GITHUB_SEARCH_URL,
    X_SEARCH_URL,
    YOUTUBE_SEARCH_URL,
    YOUTUBE_VIDEOS_URL,
)
from atlasfeed.errors import FetchError
from atlasfeed.models import SOURCE_TYPE_DISCOVERY

from .helpers import NOW, make_fetcher, route, rss_response


def _discovered(provider, url, title, trust=0.6, hours_old=2):
    return DiscoveredEntry(
        title=title,
        url=url,
        snippet=f"{title} explained",
        published_at=NOW.subtract(hours=hours_old),
        provider=provider,
        base_trust=trust,
    )


class StaticProvider(DiscoveryProvider):
    """Returns ``count`` section-specific entries."""

    def __init__(self, name: str, count: int = 2, trust: float = 0.6) -> None:
        super().__init__(fetcher=None)
        self.name = name
        self.count = count
        self.trust = trust

    async def discover(self, section: str, now=None) -> List[DiscoveredEntry]:
        return [
            _discovered(
                self.name,
                f"https://{self.name}.example/{section}/{n}",
                f"{self.name} {section} pick number {n}",
                trust=self.trust,
                hours_old=n + 1,
            )
            for n in range(self.count)
        ]


class FailingProvider(DiscoveryProvider):
    name = "broken"

    def __init__(self) -> None:
        super().__init__(fetcher=None)

    async def discover(self, section: str, now=None) -> List[DiscoveredEntry]:
        raise FetchError("HTTP 503", status_code=503)


def _pipeline(config, store, providers):
    return DiscoveryPipeline(config, store, providers, quiet=True)


async def test_one_item_per_provider(config, store):
    providers = [StaticProvider("github", count=3), StaticProvider("youtube", count=2)]

    result = await _pipeline(config, store, providers).discover_once(now=NOW)

    assert result.ok is True
    assert result.added == 16
    assert result.stats["by_provider"] == {"github": 8, "youtube": 8}
    tech = sorted(i.url for i in store.items.values() if i.section == "tech")
    assert tech == ["https://github.example/tech/0", "https://youtube.example/tech/0"]
    sources = [s for s in store.sources.values() if s.type == SOURCE_TYPE_DISCOVERY]
    assert len(sources) == 8
    assert all(s.last_fetched_at == NOW for s in sources)
    assert all(i.created_at == NOW for i in store.items.values())


async def test_per_run_cap(config, store):
    providers = [StaticProvider(name) for name in ("github", "youtube", "x", "extra")]

    result = await _pipeline(config, store, providers).discover_once(now=NOW)

    assert result.added == 8 * config.discovery.per_run_cap


async def test_not_due_sections_are_skipped(config, store):
    pipeline = _pipeline(config, store, [StaticProvider("github")])
    await pipeline.discover_once(now=NOW)

    result = await pipeline.discover_once(now=NOW.add(hours=1))

    assert result.added == 0
    assert result.stats["not_due"] == 8


async def test_daily_cap_blocks_section(config, store):
    config.discovery.daily_cap = 1
    pipeline = _pipeline(config, store, [StaticProvider("github"), StaticProvider("youtube")])

    first = await pipeline.discover_once(now=NOW)
    second = await pipeline.discover_once(now=NOW.add(hours=13))

    assert first.added == 8
    assert second.added == 0
    assert second.stats["daily_cap"] == 8


async def test_provider_errors_do_not_stop_the_run(config, store):
    pipeline = _pipeline(config, store, [FailingProvider(), StaticProvider("github")])

    result = await pipeline.discover_once(now=NOW)

    assert result.added == 8
    assert result.stats["provider_errors"] == 8


class BuggyProvider(DiscoveryProvider):
    name = "buggy"

    def __init__(self) -> None:
        super().__init__(fetcher=None)

    async def discover(self, section: str, now=None) -> List[DiscoveredEntry]:
        raise KeyError("missing field")


async def test_unexpected_provider_exception_is_a_provider_error(config, store):
    pipeline = _pipeline(config, store, [BuggyProvider(), StaticProvider("github")])

    result = await pipeline.discover_once(now=NOW)

    assert result.ok is True
    assert result.added == 8
    assert result.stats["provider_errors"] == 8
    assert store.runs[1].finished_at is not None


async def test_malformed_x_payload_is_a_provider_error(config, store):
    fetcher = make_fetcher(route({X_SEARCH_URL: httpx.Response(200, json={"data": ["oops"]})}))
    providers = [XProvider(fetcher, bearer_token="bearer"), StaticProvider("github")]

    result = await _pipeline(config, store, providers).discover_once(now=NOW)

    assert result.ok is True
    assert result.added == 8
    assert result.stats["provider_errors"] == 8
    run = store.runs[1]
    assert run.ok is True
    assert run.finished_at is not None


class ExplodingStore(MemoryStore):
    async def existing_urls(self, urls):
        raise RuntimeError("unexpected")


async def test_unexpected_error_still_finishes_the_run(config):
    store = ExplodingStore()

    with pytest.raises(RuntimeError):
        await _pipeline(config, store, [StaticProvider("github")]).discover_once(now=NOW)

    run = store.runs[1]
    assert run.ok is False
    assert run.finished_at is not None
    assert "aborted" in run.message


async def test_known_urls_are_not_readmitted(config, store):
    pipeline = _pipeline(config, store, [StaticProvider("github", count=1)])
    await pipeline.discover_once(now=NOW)

    result = await pipeline.discover_once(now=NOW.add(hours=13))

    assert result.added == 0
    assert result.stats["no_candidates"] == 8


async def test_no_credentials_skips_discovery(config, store):
    fetcher = make_fetcher(route({}))

    result = await discover_once(
        config,
        store,
        {"github_token": None, "youtube_api_key": None, "x_bearer_token": None},
        fetcher=fetcher,
        now=NOW,
        quiet=True,
    )

    assert result.ok is True
    assert result.added == 0
    assert "credentials" in result.stats["reason"]
    assert store.runs == {}


def test_build_providers():
    fetcher = make_fetcher(route({}))
    assert build_providers(fetcher, {"github_token": None}) == []

    providers = build_providers(fetcher, {"youtube_api_key": "key", "x_bearer_token": None})
    assert [p.name for p in providers] == ["github", "youtube"]
    assert providers[0].token is None


def test_dedup_entries():
    entries = [
        _discovered("github", "https://Repo.example/a?utm_source=feed", "Great Tool!"),
        _discovered("youtube", "https://repo.example/a", "Another title"),
        _discovered("x", "https://other.example/b", "great tool"),
        _discovered("x", "https://third.example/c", "Distinct"),
    ]

    unique = dedup_entries(entries)

    assert [e.url for e in unique] == ["https://repo.example/a", "https://third.example/c"]


def test_parse_iso_duration():
    assert parse_iso_duration("PT1H2M3S") == 3723
    assert parse_iso_duration("PT45S") == 45
    assert parse_iso_duration("P1D") == 86400
    assert parse_iso_duration("bogus") == 0
    assert parse_iso_duration("") == 0


def test_section_query():
    assert section_query("universe", limit=3) == "space OR nasa OR esa"
    assert section_query("unknown") == "news"


async def test_github_without_token_reads_blog():
    fetcher = make_fetcher(
        route(
            {
                GITHUB_BLOG_FEED: rss_response(
                    [
                        {"title": "NASA open sources flight software", "link": "https://github.blog/nasa"},
                        {"title": "Company picnic recap", "link": "https://github.blog/picnic"},
                    ]
                )
            }
        )
    )

    entries = await GitHubProvider(fetcher).discover("universe", now=NOW)

    assert [e.url for e in entries] == ["https://github.blog/nasa"]
    assert entries[0].base_trust == GitHubProvider.BLOG_TRUST


async def test_github_search_with_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["q"] = request.url.params["q"]
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "full_name": "org/telescope-toolkit",
                        "description": "Telescope data pipeline",
                        "html_url": "https://github.com/org/telescope-toolkit",
                        "updated_at": "2024-05-31T12:00:00Z",
                        "topics": ["astronomy"],
                    },
                    {"full_name": "org/cooking", "description": "Recipes", "html_url": "https://github.com/org/cooking"},
                ]
            },
        )

    entries = await GitHubProvider(make_fetcher(handler), token="tok").discover("universe", now=NOW)

    assert [e.url for e in entries] == ["https://github.com/org/telescope-toolkit"]
    assert entries[0].base_trust == GitHubProvider.SEARCH_TRUST
    assert entries[0].published_at == NOW.subtract(days=1)
    assert seen["q"].count(" OR ") <= 5
    assert seen["auth"] == "Bearer tok"


async def test_github_search_failure_falls_back_to_blog():
    fetcher = make_fetcher(
        route(
            {
                GITHUB_SEARCH_URL: httpx.Response(403),
                GITHUB_BLOG_FEED: rss_response([{"title": "Rocket launch tooling", "link": "https://github.blog/r"}]),
            }
        )
    )

    entries = await GitHubProvider(fetcher, token="tok").discover("universe", now=NOW)

    assert [e.url for e in entries] == ["https://github.blog/r"]


def _video(video_id, title, duration="PT20M", views=5000, likes=100, published="2024-05-20T00:00:00Z", live="none"):
    return {
        "id": video_id,
        "snippet": {
            "title": title,
            "description": f"{title} in depth",
            "publishedAt": published,
            "liveBroadcastContent": live,
        },
        "contentDetails": {"duration": duration},
        "statistics": {"viewCount": str(views), "likeCount": str(likes)},
    }


@pytest.mark.parametrize(
    "video,expected",
    [
        (_video("a", "Kubernetes deep dive"), True),
        (_video("b", "Kubernetes deep dive", duration="PT2M"), False),
        (_video("c", "Kubernetes deep dive", live="live"), False),
        (_video("d", "Kubernetes prank compilation"), False),
        (_video("e", "Gardening tips"), False),
        (_video("f", "Kubernetes news", views=600, likes=0, published="2024-05-30T12:00:00Z"), True),
        (_video("g", "Kubernetes news", views=200, likes=0, published="2024-05-22T12:00:00Z"), False),
    ],
)
def test_youtube_filters(video, expected):
    provider = YouTubeProvider(fetcher=None, api_key="key", filters=YouTubeFilters())
    assert provider.passes_filters("tech", video, NOW) is expected


def test_youtube_requires_statistics():
    provider = YouTubeProvider(fetcher=None, api_key="key")
    video = _video("a", "Kubernetes deep dive")
    del video["statistics"]
    assert provider.passes_filters("tech", video, NOW) is False


async def test_youtube_discover():
    search = {"items": [{"id": {"videoId": vid}} for vid in ("long", "short", "missing")]}
    details = {
        "items": [
            _video("long", "Kubernetes deep dive"),
            _video("short", "Kubernetes #shorts"),
        ]
    }
    fetcher = make_fetcher(
        route(
            {
                YOUTUBE_SEARCH_URL: httpx.Response(200, json=search),
                YOUTUBE_VIDEOS_URL: httpx.Response(200, json=details),
            }
        )
    )

    entries = await YouTubeProvider(fetcher, api_key="key").discover("tech", now=NOW)

    assert [e.url for e in entries] == ["https://www.youtube.com/watch?v=long"]
    assert entries[0].base_trust == YouTubeProvider.LONG_FORM_TRUST


async def test_x_discover():
    payload = {
        "data": [
            {"id": "111", "text": "New exoplanet found by JWST", "author_id": "9", "created_at": "2024-06-01T11:00:00Z"},
            {"id": "", "text": "no id"},
        ],
        "includes": {"users": [{"id": "9", "username": "astro"}]},
    }
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url).split("?")[0]
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json=payload)

    entries = await XProvider(make_fetcher(handler), bearer_token="bearer").discover("universe", now=NOW)

    assert seen == {"url": X_SEARCH_URL, "auth": "Bearer bearer"}
    assert [e.url for e in entries] == ["https://x.com/astro/status/111"]
    assert entries[0].published_at == NOW.subtract(hours=1)


@pytest.mark.parametrize(
    "payload",
    [
        {"data": ["oops"]},
        {"data": "oops"},
        {"data": [{"id": "1", "text": "Telescope news"}], "includes": {"users": "oops"}},
        ["oops"],
    ],
)
async def test_x_rejects_malformed_payload(payload):
    fetcher = make_fetcher(route({X_SEARCH_URL: httpx.Response(200, json=payload)}))

    with pytest.raises(FetchError):
        await XProvider(fetcher, bearer_token="bearer").discover("universe", now=NOW)


async def test_github_malformed_search_falls_back_to_blog():
    fetcher = make_fetcher(
        route(
            {
                GITHUB_SEARCH_URL: httpx.Response(200, json={"items": [1, 2]}),
                GITHUB_BLOG_FEED: rss_response([{"title": "Rocket launch tooling", "link": "https://github.blog/r"}]),
            }
        )
    )

    entries = await GitHubProvider(fetcher, token="tok").discover("universe", now=NOW)

    assert [e.url for e in entries] == ["https://github.blog/r"]


async def test_youtube_rejects_malformed_search():
    fetcher = make_fetcher(route({YOUTUBE_SEARCH_URL: httpx.Response(200, json={"items": {"id": "x"}})}))

    with pytest.raises(FetchError):
        await YouTubeProvider(fetcher, api_key="key").discover("tech", now=NOW)


def test_youtube_tolerates_odd_field_types():
    provider = YouTubeProvider(fetcher=None, api_key="key")
    video = _video("a", "Kubernetes deep dive", views="n/a")
    video["contentDetails"] = "PT20M"
    assert provider.passes_filters("tech", video, NOW) is False
