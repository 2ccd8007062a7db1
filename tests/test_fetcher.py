import httpx
import pytest

from atlasfeed.config import BOT_UA, DEFAULT_BROWSER_UA
from atlasfeed.errors import FetchError
from atlasfeed.ingestion import FallbackProvider
from atlasfeed.ingestion.fallback import GDELT_URL, GOOGLE_NEWS_URL

from .helpers import NOW, make_fetcher, route, rss_response


async def test_forbidden_is_retried_with_alternate_user_agent():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["user-agent"])
        if len(seen) == 1:
            return httpx.Response(403)
        return httpx.Response(200, content=b"ok")

    fetcher = make_fetcher(handler)
    response = await fetcher.fetch("https://feeds.example/rss")

    assert response.content == b"ok"
    assert seen == [DEFAULT_BROWSER_UA, BOT_UA]


async def test_custom_user_agent_falls_back_to_browser():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["user-agent"])
        return httpx.Response(429)

    fetcher = make_fetcher(handler, user_agent="custom/1.0")
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch("https://feeds.example/rss")

    assert exc.value.status_code == 429
    assert seen == ["custom/1.0", DEFAULT_BROWSER_UA]


async def test_server_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    fetcher = make_fetcher(handler)
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch("https://feeds.example/rss")

    assert exc.value.status_code == 500
    assert len(calls) == 1


async def test_transport_failure_becomes_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    fetcher = make_fetcher(handler)
    with pytest.raises(FetchError):
        await fetcher.fetch("https://feeds.example/rss")


async def test_timeout_becomes_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    fetcher = make_fetcher(handler)
    with pytest.raises(FetchError, match="timed out"):
        await fetcher.fetch("https://feeds.example/rss")


async def test_fallback_prefers_gdelt():
    payload = {
        "articles": [
            {"title": "Quake hits coast", "url": "https://news.example/quake", "seendate": "20240601T100000Z"},
            {"title": "", "url": "https://news.example/untitled"},
        ]
    }
    fetcher = make_fetcher(route({GDELT_URL: httpx.Response(200, json=payload)}))

    entries = await FallbackProvider(fetcher).entries_for("global", now=NOW)

    assert [e.url for e in entries] == ["https://news.example/quake"]
    assert entries[0].published_at == NOW.subtract(hours=2)


async def test_fallback_uses_google_news_when_gdelt_fails():
    fetcher = make_fetcher(
        route(
            {
                GDELT_URL: httpx.Response(503),
                GOOGLE_NEWS_URL: rss_response(
                    [{"title": f"Story {i}", "link": f"https://gn.example/{i}"} for i in range(5)]
                ),
            }
        )
    )

    entries = await FallbackProvider(fetcher).entries_for("tech", limit=3, now=NOW)

    assert [e.title for e in entries] == ["Story 0", "Story 1", "Story 2"]
    assert entries[0].snippet == "Story 0"


async def test_fallback_failures_yield_nothing():
    fetcher = make_fetcher(route({}, default_status=500))
    assert await FallbackProvider(fetcher).entries_for("faith", now=NOW) == []


@pytest.mark.parametrize(
    "payload",
    [{"articles": ["oops"]}, {"articles": "oops"}, ["oops"]],
)
async def test_malformed_gdelt_payload_falls_back_to_google_news(payload):
    fetcher = make_fetcher(
        route(
            {
                GDELT_URL: httpx.Response(200, json=payload),
                GOOGLE_NEWS_URL: rss_response([{"title": "Backup story", "link": "https://gn.example/backup"}]),
            }
        )
    )
    fallback = FallbackProvider(fetcher)

    with pytest.raises(FetchError):
        await fallback.gdelt_entries("global", now=NOW)
    entries = await fallback.entries_for("global", now=NOW)

    assert [e.url for e in entries] == ["https://gn.example/backup"]


async def test_empty_gdelt_payload_yields_no_articles():
    fetcher = make_fetcher(route({GDELT_URL: httpx.Response(200, json={})}))
    assert await FallbackProvider(fetcher).gdelt_entries("global", now=NOW) == []
