from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.models.run_summary import AttemptOutcome, RunSummary
from app.models.startup import AggregatedRecord, RawRecord
from app.models.startup_record import StartupRecord
from tests.utils import make_record


def test_raw_record_accepts_camel_case_and_trims_name():
    record = RawRecord.model_validate(
        {
            "name": "  Acme  ",
            "fundingAmount": "$5M",
            "dateAnnounced": "2024-06-01",
            "sources": ["exa"],
            "sourceUrls": ["https://exa.example.com/acme"],
            "confidenceScore": 0.8,
            "tags": ["b", "a"],
        }
    )

    assert record.name == "Acme"
    dumped = record.model_dump(by_alias=True)
    assert dumped["fundingAmount"] == "$5M"
    assert dumped["tags"] == ["a", "b"]
    assert record.origin_source == "exa"
    assert record.origin_url == "https://exa.example.com/acme"


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"sources": []},
        {"source_urls": []},
        {"confidence_score": 1.5},
    ],
)
def test_raw_record_invariants(overrides):
    payload = {
        "name": "Acme",
        "sources": ["exa"],
        "source_urls": ["https://exa.example.com/acme"],
        "confidence_score": 0.5,
    }
    payload.update(overrides)

    with pytest.raises(ValidationError):
        RawRecord(**payload)


def test_aggregated_from_raw_copies_collections():
    raw = make_record("Acme", tags={"ai"})
    aggregated = AggregatedRecord.from_raw(raw)

    aggregated.sources.append("tavily")
    aggregated.tags.add("seed")

    assert raw.sources == ["exa"]
    assert raw.tags == {"ai"}
    assert aggregated.relevance_score is None


def test_run_summary_from_outcomes_uses_contributed_counts():
    outcomes = [
        AttemptOutcome("exa", True, [make_record("Acme")] * 40, None, 1, 120),
        AttemptOutcome("brave", False, None, "boom", 3, 900),
    ]

    summary = RunSummary.from_outcomes(
        outcomes, contributed={"exa": 30}, unique_after_dedup=25, execution_time_ms=950
    )

    assert summary.total_sources == 2
    assert summary.successful_sources == 1
    assert summary.failed_sources == 1
    assert summary.total_startups_found == 30
    payload = summary.model_dump(by_alias=True, exclude_none=True)
    assert payload["sources"]["exa"] == {"success": True, "count": 30, "retryAttempts": 1, "executionTimeMs": 120}
    assert payload["sources"]["brave"]["error"] == "boom"
    assert payload["sources"]["brave"]["count"] == 0


def test_startup_record_round_trip():
    aggregated = AggregatedRecord.from_raw(make_record("Acme", tags={"b", "a"}))

    row = StartupRecord.from_aggregated(
        aggregated, normalized_name="acme", origin_source="exa", origin_url=aggregated.origin_url
    )

    assert row.tags == ["a", "b"]
    assert row.to_aggregated() == aggregated
