"""Client for interacting with the Exa semantic search API."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from app.clients.base import JsonApiClient


class ExaClient(JsonApiClient):
    """Minimal async Exa API client."""

    provider = "exa"

    def __init__(
        self,
        api_key: str,
        *,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.exa.ai",
        timeout: float = 10.0,
    ) -> None:
        if not api_key:
            raise ValueError("EXA_API_KEY is required to create an ExaClient.")
        super().__init__(http_client, timeout=timeout)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def search_recent_funding(
        self,
        *,
        query: str,
        days_back: int,
        limit: int,
        autoprompt: bool = True,
    ) -> list[dict[str, Any]]:
        """Query Exa for announcements published within ``days_back`` days."""
        if limit <= 0:
            raise ValueError("limit must be a positive integer.")

        start = datetime.now(tz=UTC) - timedelta(days=max(days_back, 1))
        payload = {
            "query": query,
            "num_results": limit,
            "type": "neural",
            "use_autoprompt": autoprompt,
            "start_published_date": start.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            "contents": {
                "text": {"max_characters": 2000},
                "summary": True,
            },
        }
        data = await self._request_json(
            "POST",
            f"{self._base_url}/search",
            json=payload,
            headers={"X-API-KEY": self._api_key},
        )
        return self._require_list(data, "results")
