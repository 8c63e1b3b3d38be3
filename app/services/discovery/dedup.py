"""Fuzzy name deduplication for records gathered from several sources."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from rapidfuzz.distance import Levenshtein

from app.models.startup import AggregatedRecord, RawRecord

logger = logging.getLogger("app.services.discovery.dedup")

DEFAULT_SIMILARITY_THRESHOLD = 0.85
MERGE_CONFIDENCE_STEP = 0.1
GENERIC_VALUES = frozenset({"undisclosed", "remote"})

LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")
TRAILING_SUFFIX = re.compile(r"[\s,]+(?:inc|llc|ltd|corp|co|company|corporation)\.?$")
PUNCTUATION = re.compile(r"[^\w\s]")
WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Canonical dedup key: no article, corporate suffix or punctuation."""
    trimmed = (name or "").strip().lower()
    value = LEADING_ARTICLE.sub("", trimmed)
    while True:
        stripped = TRAILING_SUFFIX.sub("", value)
        if stripped == value:
            break
        value = stripped
    value = PUNCTUATION.sub("", value)
    value = WHITESPACE.sub(" ", value).strip()
    return value or trimmed


def name_similarity(left: str, right: str) -> float:
    """Length-normalized Levenshtein similarity in [0, 1]."""
    if not left and not right:
        return 1.0
    return Levenshtein.normalized_similarity(left, right)


def _is_generic(value: str | None) -> bool:
    return not value or value.strip().lower() in GENERIC_VALUES


def prefer_specific(existing: str | None, incoming: str | None) -> str | None:
    """Keep ``existing`` unless it is missing or generic and ``incoming`` is not."""
    if _is_generic(existing) and not _is_generic(incoming):
        return incoming
    return existing or incoming


def prefer_longer(existing: str | None, incoming: str | None) -> str:
    if len(incoming or "") > len(existing or ""):
        return incoming or ""
    return existing or ""


def _union(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    merged = list(existing)
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged


def merge_records(existing: AggregatedRecord, incoming: RawRecord) -> AggregatedRecord:
    """Fold ``incoming`` into ``existing`` and return the merged copy."""
    description = prefer_longer(existing.description, incoming.description)
    confidence = min(
        1.0,
        existing.confidence_score + MERGE_CONFIDENCE_STEP * len(incoming.sources),
    )
    return existing.model_copy(
        update={
            "description": description,
            "website": existing.website or incoming.website,
            "funding_amount": prefer_specific(existing.funding_amount, incoming.funding_amount),
            "location": prefer_specific(existing.location, incoming.location),
            "date_announced": existing.date_announced or incoming.date_announced,
            "tags": set(existing.tags) | set(incoming.tags),
            "sources": _union(existing.sources, incoming.sources),
            "source_urls": _union(existing.source_urls, incoming.source_urls),
            "confidence_score": round(confidence, 6),
        }
    )


class DeduplicationEngine:
    """Groups records into buckets keyed by normalized name."""

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> None:
        if not 0.0 < similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be in (0, 1]")
        self._threshold = similarity_threshold

    def dedupe(
        self,
        records: Sequence[RawRecord],
        similarity_threshold: float | None = None,
    ) -> list[AggregatedRecord]:
        threshold = self._threshold if similarity_threshold is None else similarity_threshold
        buckets: dict[str, AggregatedRecord] = {}

        for record in records:
            key = normalize_name(record.name)
            target = key if key in buckets else self._similar_bucket(key, buckets, threshold)
            if target is None:
                buckets[key] = AggregatedRecord.from_raw(record)
            else:
                buckets[target] = merge_records(buckets[target], record)

        logger.debug(
            "discovery.dedup",
            extra={"input": len(records), "unique": len(buckets), "threshold": threshold},
        )
        return list(buckets.values())

    @staticmethod
    def _similar_bucket(
        key: str,
        buckets: dict[str, AggregatedRecord],
        threshold: float,
    ) -> str | None:
        for existing_key in buckets:
            if name_similarity(key, existing_key) >= threshold:
                return existing_key
        return None
