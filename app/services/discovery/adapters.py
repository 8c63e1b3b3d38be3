"""Source adapters: one per data source, each returning normalized RawRecords."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any, ClassVar, Protocol

from pydantic import ValidationError

from app.clients.brave import BraveClient
from app.clients.errors import ProviderSchemaError
from app.clients.exa import ExaClient
from app.clients.hackernews import HackerNewsClient
from app.clients.rss import RssFeedClient
from app.clients.searxng import SearxNGClient
from app.clients.tavily import TavilyClient
from app.models.startup import AggregatedRecord, RawRecord
from app.services.discovery.repositories import StartupRepository
from pipelines.normalize import build_raw_record, looks_like_funding, matches_query, parse_date

logger = logging.getLogger("app.services.discovery.adapters")

FUNDING_QUERY_SUFFIX = "startup funding round"
DEFAULT_FIXTURE_CONFIDENCE = 0.5


class SourceAdapter(Protocol):
    """Uniform fetch contract shared by every data source."""

    name: str
    kind: str
    confidence: float

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        ...


def funding_query(query: str) -> str:
    """Bias a free-text query towards funding announcements."""
    cleaned = " ".join((query or "").split())
    return f"{cleaned} {FUNDING_QUERY_SUFFIX}" if cleaned else FUNDING_QUERY_SUFFIX


def _today() -> date:
    return datetime.now(tz=UTC).date()


def _collect(source: str, hits: Iterable[RawRecord | None]) -> list[RawRecord]:
    records = [record for record in hits if record is not None]
    logger.debug("discovery.adapter.normalized", extra={"adapter": source, "count": len(records)})
    return records


class HackerNewsAdapter:
    name = "hackernews"
    kind = "api"
    confidence = 0.6

    LAUNCH_PREFIXES: ClassVar[tuple[str, ...]] = ("show hn:", "launch hn:")

    def __init__(self, client: HackerNewsClient, *, limit: int = 30) -> None:
        self._client = client
        self._limit = limit

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        hits = await self._client.search_stories(
            query=query.strip() or "startup", days_back=lookback_days, limit=self._limit
        )
        today = _today()
        return _collect(self.name, (self._to_record(hit, today) for hit in hits))

    def _to_record(self, hit: Mapping[str, Any], today: date) -> RawRecord | None:
        title = hit.get("title") or ""
        story_text = hit.get("story_text") or ""
        is_launch = title.lower().startswith(self.LAUNCH_PREFIXES)
        if not is_launch and not looks_like_funding(f"{title} {story_text}"):
            return None
        url = hit.get("url") or f"https://news.ycombinator.com/item?id={hit.get('objectID')}"
        return build_raw_record(
            source=self.name,
            title=title,
            url=url,
            snippet=story_text[:500],
            published=hit.get("created_at_i") or hit.get("created_at"),
            confidence=self.confidence,
            tags=("launch",) if is_launch else (),
            today=today,
        )


class ExaAdapter:
    name = "exa"
    kind = "api"
    confidence = 0.8

    def __init__(self, client: ExaClient, *, limit: int = 25) -> None:
        self._client = client
        self._limit = limit

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        hits = await self._client.search_recent_funding(
            query=funding_query(query), days_back=lookback_days, limit=self._limit
        )
        today = _today()
        return _collect(
            self.name,
            (
                build_raw_record(
                    source=self.name,
                    title=hit.get("title") or "",
                    url=hit.get("url"),
                    snippet=hit.get("summary") or (hit.get("text") or "")[:500],
                    published=hit.get("publishedDate") or hit.get("published_date"),
                    confidence=self.confidence,
                    today=today,
                )
                for hit in hits
            ),
        )


class TavilyAdapter:
    name = "tavily"
    kind = "api"
    confidence = 0.75

    def __init__(self, client: TavilyClient, *, max_results: int = 10) -> None:
        self._client = client
        self._max_results = max_results

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        hits = await self._client.search(
            query=funding_query(query), max_results=self._max_results, days_limit=lookback_days
        )
        today = _today()
        return _collect(
            self.name,
            (
                build_raw_record(
                    source=self.name,
                    title=hit.get("title") or "",
                    url=hit.get("url"),
                    snippet=hit.get("content") or "",
                    published=hit.get("published_date"),
                    confidence=self.confidence,
                    today=today,
                )
                for hit in hits
            ),
        )


class BraveAdapter:
    name = "brave"
    kind = "api"
    confidence = 0.7

    def __init__(self, client: BraveClient, *, count: int = 20) -> None:
        self._client = client
        self._count = count

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        hits = await self._client.search_news(
            query=funding_query(query), days_back=lookback_days, count=self._count
        )
        today = _today()
        return _collect(
            self.name,
            (
                build_raw_record(
                    source=self.name,
                    title=hit.get("title") or "",
                    url=hit.get("url"),
                    snippet=hit.get("description") or "",
                    published=hit.get("page_age"),
                    confidence=self.confidence,
                    today=today,
                )
                for hit in hits
            ),
        )


class SearxNGAdapter:
    name = "searxng"
    kind = "metasearch"
    confidence = 0.6

    def __init__(self, client: SearxNGClient) -> None:
        self._client = client

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        hits = await self._client.search(query=funding_query(query), days_back=lookback_days)
        today = _today()
        records = []
        for hit in hits:
            title = hit.get("title") or ""
            content = hit.get("content") or ""
            if not looks_like_funding(f"{title} {content}"):
                continue
            records.append(
                build_raw_record(
                    source=self.name,
                    title=title,
                    url=hit.get("url"),
                    snippet=content,
                    published=hit.get("publishedDate"),
                    confidence=self.confidence,
                    today=today,
                )
            )
        return _collect(self.name, records)


class RssFeedAdapter:
    """Funding announcements from a news feed; filtered locally by query and lookback."""

    kind = "rss"
    confidence = 0.65

    def __init__(
        self,
        client: RssFeedClient,
        *,
        name: str | None = None,
        limit: int = 15,
        today: date | None = None,
    ) -> None:
        self._client = client
        self.name = name or client.provider
        self._limit = limit
        self._today = today

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        entries = await self._client.fetch_entries(limit=self._limit)
        today = self._today or _today()
        cutoff = today - timedelta(days=lookback_days)
        records = []
        for entry in entries:
            title = entry.get("title") or ""
            summary = entry.get("summary") or ""
            if not looks_like_funding(f"{title} {summary}"):
                continue
            if not matches_query(query, title, summary):
                continue
            published = parse_date(entry.get("published"))
            if published is not None and published < cutoff:
                continue
            records.append(
                build_raw_record(
                    source=self.name,
                    title=title,
                    url=entry.get("link"),
                    snippet=summary[:500],
                    published=published,
                    confidence=self.confidence,
                    today=today,
                )
            )
        return _collect(self.name, records)


class LocalDbAdapter:
    """Replays previously persisted startups that match the query."""

    name = "local_db"
    kind = "database"
    confidence = 0.9

    def __init__(
        self,
        repository: StartupRepository,
        *,
        limit: int = 20,
        today: date | None = None,
    ) -> None:
        self._repository = repository
        self._limit = limit
        self._today = today

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        stored = await asyncio.to_thread(self._repository.search, query, limit=self._limit)
        today = self._today or _today()
        cutoff = today - timedelta(days=lookback_days)
        records = []
        for record in stored:
            announced = parse_date(record.date_announced)
            if announced is not None and announced < cutoff:
                continue
            records.append(self._to_record(record))
        return _collect(self.name, records)

    def _to_record(self, record: AggregatedRecord) -> RawRecord:
        url = record.website or next(iter(record.source_urls), None) or f"local://{record.name}"
        return RawRecord(
            name=record.name,
            description=record.description,
            website=record.website,
            funding_amount=record.funding_amount,
            location=record.location,
            date_announced=record.date_announced,
            tags=set(record.tags),
            sources=[self.name],
            source_urls=[url],
            confidence_score=record.confidence_score,
        )


class FixtureAdapter:
    """Serves records from a JSON file; used for offline runs and tests.

    The file holds ``{"source": ..., "confidence": ..., "records": [...]}``. Each
    entry carries RawRecord fields in camelCase plus ``url`` and optionally
    ``daysAgo``, which pins ``dateAnnounced`` relative to the run date.
    """

    kind = "fixture"

    def __init__(self, path: Path, *, today: date | None = None) -> None:
        self.path = path
        self._today = today
        payload = self._load()
        self.name = str(payload.get("source") or path.stem)
        self.confidence = float(payload.get("confidence", DEFAULT_FIXTURE_CONFIDENCE))
        self._entries: list[dict[str, Any]] = payload["records"]

    def _load(self) -> dict[str, Any]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ProviderSchemaError(self.path.stem, f"Unreadable fixture {self.path}: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("records"), list):
            raise ProviderSchemaError(self.path.stem, f"Fixture {self.path} must define a `records` list.")
        return payload

    async def search(self, query: str, lookback_days: int) -> list[RawRecord]:
        today = self._today or _today()
        cutoff = today - timedelta(days=lookback_days)
        records: list[RawRecord] = []
        for entry in self._entries:
            try:
                record = self._to_record(entry, today)
            except ValidationError as exc:
                logger.warning(
                    "discovery.fixture.invalid_entry",
                    extra={"adapter": self.name, "error": str(exc)},
                )
                continue
            announced = parse_date(record.date_announced)
            if announced is not None and announced < cutoff:
                continue
            if not matches_query(query, record.name, record.description, " ".join(record.tags)):
                continue
            records.append(record)
        return _collect(self.name, records)

    def _to_record(self, entry: Mapping[str, Any], today: date) -> RawRecord:
        announced = entry.get("dateAnnounced")
        if "daysAgo" in entry:
            announced = (today - timedelta(days=int(entry["daysAgo"]))).isoformat()
        url = entry.get("url") or f"fixture://{self.name}/{entry.get('name', '')}"
        return RawRecord(
            name=entry.get("name", ""),
            description=entry.get("description", ""),
            website=entry.get("website"),
            funding_amount=entry.get("fundingAmount"),
            location=entry.get("location"),
            date_announced=announced or today.isoformat(),
            tags=set(entry.get("tags", [])),
            sources=[self.name],
            source_urls=[url],
            confidence_score=float(entry.get("confidenceScore", self.confidence)),
        )
