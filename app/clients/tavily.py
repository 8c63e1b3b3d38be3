"""Client for interacting with the Tavily search API."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.base import JsonApiClient


class TavilyClient(JsonApiClient):
    """Minimal async Tavily API client wrapper."""

    provider = "tavily"

    def __init__(
        self,
        api_key: str,
        *,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.tavily.com",
        timeout: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("TAVILY_API_KEY is required to create a TavilyClient.")
        super().__init__(http_client, timeout=timeout)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def search(
        self,
        *,
        query: str,
        max_results: int = 10,
        days_limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a Tavily news search request."""
        if max_results <= 0:
            raise ValueError("max_results must be a positive integer.")

        payload: dict[str, Any] = {
            "query": query,
            "topic": "news",
            "search_depth": "basic",
            "max_results": max_results,
        }
        if days_limit:
            payload["days"] = days_limit

        data = await self._request_json(
            "POST",
            f"{self._base_url}/search",
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        return self._require_list(data, "results")
