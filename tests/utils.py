"""Test helpers for building records and fixture files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

from app.models.startup import AggregatedRecord, RawRecord


def make_record(name: str, source: str = "exa", **overrides: Any) -> RawRecord:
    """Build a single-source RawRecord with sensible defaults."""
    payload: dict[str, Any] = {
        "name": name,
        "description": f"{name} builds software.",
        "sources": [source],
        "source_urls": [f"https://{source}.example.com/{name.lower().replace(' ', '-')}"],
        "confidence_score": 0.5,
    }
    payload.update(overrides)
    return RawRecord(**payload)


def make_aggregated(name: str, source: str = "exa", **overrides: Any) -> AggregatedRecord:
    relevance_score = overrides.pop("relevance_score", None)
    record = AggregatedRecord.from_raw(make_record(name, source, **overrides))
    if relevance_score is None:
        return record
    return record.model_copy(update={"relevance_score": relevance_score})


def write_fixture(
    directory: Path,
    source: str,
    records: Sequence[dict[str, Any]],
    *,
    confidence: float | None = None,
) -> Path:
    """Write a fixture adapter file and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = {"source": source, "records": list(records)}
    if confidence is not None:
        payload["confidence"] = confidence
    path = directory / f"{source}.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path
