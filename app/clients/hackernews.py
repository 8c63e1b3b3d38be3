"""Client for the Hacker News (Algolia) search API."""

from __future__ import annotations

import time
from typing import Any

import httpx

from app.clients.base import JsonApiClient


class HackerNewsClient(JsonApiClient):
    """Searches recent stories; no API key required."""

    provider = "hackernews"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        base_url: str = "https://hn.algolia.com/api/v1",
        timeout: float = 10.0,
    ) -> None:
        super().__init__(http_client, timeout=timeout)
        self._base_url = base_url.rstrip("/")

    async def search_stories(self, *, query: str, days_back: int, limit: int = 30) -> list[dict[str, Any]]:
        since = int(time.time()) - max(days_back, 1) * 86_400
        params = {
            "query": query,
            "tags": "story",
            "numericFilters": f"created_at_i>{since}",
            "hitsPerPage": limit,
        }
        data = await self._request_json("GET", f"{self._base_url}/search_by_date", params=params)
        return self._require_list(data, "hits")
