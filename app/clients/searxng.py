"""Client for a self-hosted SearxNG metasearch instance."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.base import JsonApiClient


def time_range(days_back: int) -> str:
    if days_back <= 1:
        return "day"
    if days_back <= 7:
        return "week"
    if days_back <= 31:
        return "month"
    return "year"


class SearxNGClient(JsonApiClient):
    provider = "searxng"

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient,
        timeout: float = 15.0,
    ) -> None:
        if not base_url:
            raise ValueError("SEARXNG_URL is required to create a SearxNGClient.")
        super().__init__(http_client, timeout=timeout)
        self._base_url = base_url.rstrip("/")

    async def search(self, *, query: str, days_back: int) -> list[dict[str, Any]]:
        params = {
            "q": query,
            "format": "json",
            "categories": "news",
            "time_range": time_range(days_back),
        }
        data = await self._request_json("GET", f"{self._base_url}/search", params=params)
        return self._require_list(data, "results")
