"""Hard intent filter applied after deduplication when enabled in settings."""

from __future__ import annotations

from collections.abc import Sequence

from app.models.query_intent import QueryIntent
from app.models.startup import AggregatedRecord


def _haystack(record: AggregatedRecord) -> str:
    parts = [record.name, record.description, record.funding_amount, record.location, *record.tags]
    return " ".join(part for part in parts if part).lower()


def matches_intent(record: AggregatedRecord, intent: QueryIntent) -> bool:
    text = _haystack(record)
    if intent.domain and intent.domain.lower() not in text:
        return False
    if intent.funding_stage and intent.funding_stage.lower() not in text:
        return False
    if intent.location and intent.location.lower() not in (record.location or "").lower():
        return False
    if intent.search_terms and not any(term in text for term in intent.search_terms):
        return False
    return True


def filter_by_intent(records: Sequence[AggregatedRecord], intent: QueryIntent) -> list[AggregatedRecord]:
    """Keep only records that match every populated facet of the intent."""
    return [record for record in records if matches_intent(record, intent)]
