"""HTTP fetching for feeds and provider APIs."""

from typing import Any, Dict, List, Optional

import httpx

from ..config import BOT_UA, DEFAULT_BROWSER_UA
from ..errors import FetchError

FEED_ACCEPT = "application/rss+xml,application/atom+xml,application/xml,text/xml,*/*"
RETRY_STATUSES = (403, 429)


class FeedFetcher:
    """Fetch remote documents with a per-request timeout.

    A 403 or 429 is retried once with an alternate User-Agent: the browser UA
    when a custom UA is configured, otherwise the plain bot UA.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_BROWSER_UA,
        timeout: float = 12.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize feed fetcher."""
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def alternate_user_agent(self) -> str:
        return BOT_UA if self.user_agent == DEFAULT_BROWSER_UA else DEFAULT_BROWSER_UA

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get(self, url: str, user_agent: str, accept: str, params: Optional[Dict[str, Any]], headers: Optional[Dict[str, str]]) -> httpx.Response:
        request_headers = {"User-Agent": user_agent, "Accept": accept}
        if headers:
            request_headers.update(headers)
        try:
            return await self.client.get(url, params=params, headers=request_headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"HTTP error: {e}") from e

    async def fetch(
        self,
        url: str,
        accept: str = FEED_ACCEPT,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """GET ``url`` and return the successful response.

        Raises:
            FetchError: Timeout, transport failure or non-2xx status.
        """
        response = await self._get(url, self.user_agent, accept, params, headers)

        if response.status_code in RETRY_STATUSES:
            response = await self._get(url, self.alternate_user_agent, accept, params, headers)

        if not response.is_success:
            raise FetchError(f"HTTP {response.status_code}", status_code=response.status_code)

        return response

    async def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET a JSON document."""
        response = await self.fetch(url, accept="application/json", params=params, headers=headers)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}") from e


def json_records(payload: Any, key: str, url: str) -> List[Dict[str, Any]]:
    """
    Objects listed under ``key`` in a JSON document.

    A missing document or key yields an empty list.

    Raises:
        FetchError: The document does not have the expected shape
    """
    if payload is None:
        return []
    if not isinstance(payload, dict):
        raise FetchError(f"Unexpected JSON document from {url}")

    records = payload.get(key)
    if records is None:
        return []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise FetchError(f"Unexpected '{key}' records from {url}")
    return records


def json_object(value: Any) -> Dict[str, Any]:
    """``value`` when it is a JSON object, otherwise an empty one."""
    return value if isinstance(value, dict) else {}
