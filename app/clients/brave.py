"""Client for the Brave Search news endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.base import JsonApiClient


def freshness_window(days_back: int) -> str:
    """Map a lookback in days onto Brave's coarse freshness buckets."""
    if days_back <= 1:
        return "pd"
    if days_back <= 7:
        return "pw"
    if days_back <= 31:
        return "pm"
    return "py"


class BraveClient(JsonApiClient):
    provider = "brave"

    def __init__(
        self,
        api_key: str,
        *,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.search.brave.com/res/v1",
        timeout: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("BRAVE_API_KEY is required to create a BraveClient.")
        super().__init__(http_client, timeout=timeout)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def search_news(self, *, query: str, days_back: int, count: int = 20) -> list[dict[str, Any]]:
        params = {"q": query, "count": count, "freshness": freshness_window(days_back)}
        headers = {"Accept": "application/json", "X-Subscription-Token": self._api_key}
        data = await self._request_json(
            "GET", f"{self._base_url}/news/search", params=params, headers=headers
        )
        return self._require_list(data, "results")
