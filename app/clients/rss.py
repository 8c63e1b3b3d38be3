"""Client for RSS/Atom news feeds (TechCrunch, Crunchbase News, ...)."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

import feedparser
import httpx

from app.clients.base import JsonApiClient
from app.clients.errors import ProviderSchemaError

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"
TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE = re.compile(r"\s+")


def strip_markup(value: str | None) -> str:
    """Drop HTML tags from a feed summary and collapse whitespace."""
    return WHITESPACE.sub(" ", TAG_PATTERN.sub(" ", value or "")).strip()


def _entry_date(entry: Any) -> str | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if parsed:
        return date(parsed.tm_year, parsed.tm_mon, parsed.tm_mday).isoformat()
    return entry.get("published") or entry.get("updated")


class RssFeedClient(JsonApiClient):
    """Fetches one feed over the shared HTTP client and flattens its entries."""

    def __init__(
        self,
        feed_url: str,
        *,
        http_client: httpx.AsyncClient,
        provider: str = "rss",
        timeout: float = 10.0,
    ) -> None:
        super().__init__(http_client, timeout=timeout)
        self.provider = provider
        self._feed_url = feed_url

    @property
    def feed_url(self) -> str:
        return self._feed_url

    async def fetch_entries(self, *, limit: int = 15) -> list[dict[str, Any]]:
        response = await self._send("GET", self._feed_url, headers={"Accept": FEED_ACCEPT})
        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            raise ProviderSchemaError(
                self.provider, f"Could not parse {self.provider} feed: {feed.get('bozo_exception')}"
            )

        entries: list[dict[str, Any]] = []
        for entry in feed.entries[:limit]:
            link = entry.get("link")
            if not link:
                continue
            entries.append(
                {
                    "title": strip_markup(entry.get("title")),
                    "link": link,
                    "summary": strip_markup(entry.get("summary") or entry.get("description")),
                    "published": _entry_date(entry),
                }
            )
        return entries
