"""Caps per-source and final result sizes and hands top results to persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TypeVar

from app.models.startup import AggregatedRecord
from app.observability.metrics import metrics
from app.services.discovery.repositories import StartupRepository

logger = logging.getLogger("app.services.discovery.assembler")

DEFAULT_PER_SOURCE_CAP = 30
DEFAULT_RESULT_CAP = 100
DEFAULT_PERSIST_CAP = 50

T = TypeVar("T")


class ResultAssembler:
    """Applies the result caps and runs best-effort background persistence."""

    def __init__(
        self,
        repository: StartupRepository | None = None,
        *,
        per_source_cap: int = DEFAULT_PER_SOURCE_CAP,
        result_cap: int = DEFAULT_RESULT_CAP,
        persist_cap: int = DEFAULT_PERSIST_CAP,
    ) -> None:
        self._repository = repository
        self._per_source_cap = per_source_cap
        self._result_cap = result_cap
        self._persist_cap = persist_cap
        self._pending: set[asyncio.Task[int]] = set()

    @property
    def repository(self) -> StartupRepository | None:
        return self._repository

    def cap_contribution(self, records: Sequence[T]) -> list[T]:
        return list(records[: self._per_source_cap])

    def assemble(self, ranked: Sequence[AggregatedRecord]) -> list[AggregatedRecord]:
        return list(ranked[: self._result_cap])

    def schedule_persistence(self, records: Sequence[AggregatedRecord]) -> asyncio.Task[int] | None:
        """Persist the top records in a background task; returns the task, if any."""
        if self._repository is None or not records:
            return None
        batch = list(records[: self._persist_cap])
        task = asyncio.create_task(self._persist_batch(self._repository, batch))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled persistence task to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _persist_batch(
        self, repository: StartupRepository, batch: list[AggregatedRecord]
    ) -> int:
        persisted = 0
        for record in batch:
            try:
                await asyncio.to_thread(
                    repository.persist, record, record.origin_source, record.origin_url
                )
            except Exception as exc:
                metrics.increment("discovery.persist.failed")
                logger.warning(
                    "discovery.persist_failed",
                    extra={"startup": record.name, "error": str(exc) or type(exc).__name__},
                )
                continue
            persisted += 1
        metrics.increment("discovery.persist.completed", value=persisted)
        logger.info(
            "discovery.persist_completed",
            extra={"persisted": persisted, "attempted": len(batch)},
        )
        return persisted
