"""Fan-out coordinator: runs every adapter concurrently and ranks the merged results."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from app.config import Settings, settings as default_settings
from app.models.query_intent import QueryIntent
from app.models.run_summary import AttemptOutcome, RunSummary, SearchResponse
from app.models.startup import AggregatedRecord, RawRecord
from app.observability.metrics import metrics
from app.services.discovery.adapters import SourceAdapter
from app.services.discovery.assembler import ResultAssembler
from app.services.discovery.dedup import DeduplicationEngine
from app.services.discovery.executor import RetryingExecutor
from app.services.discovery.filters import filter_by_intent
from app.services.discovery.intent import MAX_LOOKBACK_DAYS, parse_query_intent
from app.services.discovery.registry import AdapterRegistry, build_registry
from app.services.discovery.relevance import RelevanceScorer
from app.services.discovery.repositories import StartupRepository, build_startup_repository

logger = logging.getLogger("app.services.discovery.coordinator")


class FanOutCoordinator:
    """Orchestrates one discovery run across every registered adapter."""

    def __init__(
        self,
        registry: AdapterRegistry,
        *,
        executor: RetryingExecutor | None = None,
        dedup: DeduplicationEngine | None = None,
        scorer: RelevanceScorer | None = None,
        assembler: ResultAssembler | None = None,
        hard_filter: bool = False,
    ) -> None:
        self.registry = registry
        self.executor = executor or RetryingExecutor()
        self.dedup = dedup or DeduplicationEngine()
        self.scorer = scorer or RelevanceScorer()
        self.assembler = assembler or ResultAssembler()
        self._hard_filter = hard_filter

    async def run(
        self, query: str, lookback_days: int | None = None
    ) -> tuple[list[AggregatedRecord], RunSummary]:
        response = await self.search(query, lookback_days)
        return response.records, response.summary

    async def search(self, query: str | None, lookback_days: int | None = None) -> SearchResponse:
        """Run the full pipeline and return records, summary and the parsed intent."""
        start = time.perf_counter()
        query = query or ""
        intent = parse_query_intent(query)
        lookback = intent.lookback_days if lookback_days is None else lookback_days
        lookback = max(1, min(lookback, MAX_LOOKBACK_DAYS))

        outcomes = await self._fan_out(list(self.registry), query, lookback)

        combined: list[RawRecord] = []
        contributed: dict[str, int] = {}
        for outcome in outcomes:
            if not outcome.succeeded:
                continue
            valid = self._valid_records(outcome)
            capped = self.assembler.cap_contribution(valid)
            contributed[outcome.adapter_name] = len(capped)
            combined.extend(capped)

        unique = self.dedup.dedupe(combined)
        candidates = self._apply_filter(unique, intent)
        ranked = self.assembler.assemble(self.scorer.score(candidates, query))
        self.assembler.schedule_persistence(ranked)

        execution_ms = int(round((time.perf_counter() - start) * 1000))
        summary = RunSummary.from_outcomes(
            outcomes,
            contributed=contributed,
            unique_after_dedup=len(unique),
            execution_time_ms=execution_ms,
        )
        self._report(query, lookback, summary, len(ranked))
        return SearchResponse(records=ranked, summary=summary, intent=intent)

    async def _fan_out(
        self, adapters: Sequence[SourceAdapter], query: str, lookback: int
    ) -> list[AttemptOutcome]:
        tasks = [
            self.executor.execute(adapter.name, self._bind(adapter, query, lookback))
            for adapter in adapters
        ]
        return list(await asyncio.gather(*tasks))

    @staticmethod
    def _bind(adapter: SourceAdapter, query: str, lookback: int):
        async def call() -> list[RawRecord]:
            return await adapter.search(query, lookback)

        return call

    @staticmethod
    def _valid_records(outcome: AttemptOutcome) -> list[RawRecord]:
        records = outcome.records or []
        valid = [record for record in records if isinstance(record, RawRecord)]
        dropped = len(records) - len(valid)
        if dropped:
            logger.warning(
                "discovery.invalid_records",
                extra={"adapter": outcome.adapter_name, "dropped": dropped},
            )
        return valid

    def _apply_filter(
        self, records: list[AggregatedRecord], intent: QueryIntent
    ) -> list[AggregatedRecord]:
        if not self._hard_filter:
            return records
        return filter_by_intent(records, intent)

    def _report(self, query: str, lookback: int, summary: RunSummary, returned: int) -> None:
        logger.info(
            "discovery.run",
            extra={
                "query": query,
                "lookback_days": lookback,
                "total_sources": summary.total_sources,
                "successful_sources": summary.successful_sources,
                "failed_sources": summary.failed_sources,
                "total_found": summary.total_startups_found,
                "unique": summary.unique_after_dedup,
                "returned": returned,
                "execution_time_ms": summary.execution_time_ms,
            },
        )
        metrics.timing("discovery.run.latency", summary.execution_time_ms)
        metrics.gauge("discovery.run.failed_sources", summary.failed_sources)
        metrics.gauge("discovery.run.unique", summary.unique_after_dedup)


def build_coordinator(
    config: Settings | None = None,
    *,
    registry: AdapterRegistry | None = None,
    repository: StartupRepository | None = None,
) -> FanOutCoordinator:
    """Wire a coordinator from settings."""
    config = config or default_settings
    if repository is None:
        repository = build_startup_repository(config.database_url)
    return FanOutCoordinator(
        registry or build_registry(config, repository=repository),
        executor=RetryingExecutor(
            timeout_seconds=config.adapter_timeout_seconds,
            max_attempts=config.adapter_max_attempts,
            backoff_base_seconds=config.adapter_backoff_base_seconds,
            retry_non_transient=config.retry_non_transient,
        ),
        dedup=DeduplicationEngine(config.dedup_similarity_threshold),
        assembler=ResultAssembler(
            repository,
            per_source_cap=config.per_source_cap,
            result_cap=config.result_cap,
            persist_cap=config.persist_cap,
        ),
        hard_filter=config.hard_filter_results,
    )


_COORDINATOR_INSTANCE: FanOutCoordinator | None = None


def get_coordinator() -> FanOutCoordinator:
    """Singleton accessor used by API routes."""
    global _COORDINATOR_INSTANCE  # noqa: PLW0603
    if _COORDINATOR_INSTANCE is None:
        _COORDINATOR_INSTANCE = build_coordinator()
    return _COORDINATOR_INSTANCE


async def shutdown_coordinator() -> None:
    """Drain pending persistence and release the shared HTTP client."""
    global _COORDINATOR_INSTANCE  # noqa: PLW0603
    coordinator = _COORDINATOR_INSTANCE
    _COORDINATOR_INSTANCE = None
    if coordinator is None:
        return
    await coordinator.assembler.drain()
    await coordinator.registry.aclose()
