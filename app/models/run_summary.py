"""Per-adapter outcomes and the run summary returned with every search."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.query_intent import QueryIntent
from app.models.startup import AggregatedRecord, RawRecord


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of running one adapter through the retry/timeout executor."""

    adapter_name: str
    succeeded: bool
    records: list[RawRecord] | None
    error: str | None
    attempts: int
    elapsed_ms: int

    def to_report(self, count: int | None = None) -> SourceReport:
        """Summarize the outcome without its records."""
        if count is None:
            count = len(self.records or [])
        return SourceReport(
            success=self.succeeded,
            count=count if self.succeeded else 0,
            error=self.error,
            retry_attempts=self.attempts,
            execution_time_ms=self.elapsed_ms,
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceReport(_CamelModel):
    success: bool
    count: int = 0
    error: str | None = None
    retry_attempts: int | None = None
    execution_time_ms: int | None = None


class RunSummary(_CamelModel):
    """Aggregate statistics for one pipeline invocation."""

    total_sources: int = 0
    successful_sources: int = 0
    failed_sources: int = 0
    total_startups_found: int = 0
    unique_after_dedup: int = 0
    execution_time_ms: int = 0
    sources: dict[str, SourceReport] = Field(default_factory=dict)

    @classmethod
    def from_outcomes(
        cls,
        outcomes: Sequence[AttemptOutcome],
        *,
        contributed: dict[str, int],
        unique_after_dedup: int,
        execution_time_ms: int,
    ) -> RunSummary:
        """Build the summary from outcomes in submission order.

        ``contributed`` maps adapter name to the number of records it fed into
        deduplication after the per-source cap.
        """
        reports = {
            outcome.adapter_name: outcome.to_report(contributed.get(outcome.adapter_name, 0))
            for outcome in outcomes
        }
        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        return cls(
            total_sources=len(outcomes),
            successful_sources=succeeded,
            failed_sources=len(outcomes) - succeeded,
            total_startups_found=sum(contributed.values()),
            unique_after_dedup=unique_after_dedup,
            execution_time_ms=execution_time_ms,
            sources=reports,
        )


class SearchResponse(_CamelModel):
    """Caller-facing payload for a discovery run."""

    records: list[AggregatedRecord] = Field(default_factory=list)
    summary: RunSummary
    intent: QueryIntent | None = None
