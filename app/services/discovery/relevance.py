"""Heuristic relevance scoring for aggregated startup records."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime

from app.models.startup import AggregatedRecord
from pipelines.normalize import parse_date

NAME_MATCH = 10.0
NAME_PREFIX_BONUS = 5.0
DESCRIPTION_MATCH = 5.0
TAG_MATCH = 7.0
SOURCE_WEIGHT = 2.0
SOURCE_BONUS_CAP = 10.0
FRESHNESS_BANDS: tuple[tuple[int, float], ...] = ((7, 5.0), (30, 3.0), (90, 1.5))
FUNDING_BONUS = 3.0
WEBSITE_BONUS = 2.0

STOPWORDS = frozenset(
    {
        "the", "and", "for", "with", "from", "that", "this", "are", "was", "were",
        "startup", "startups", "company", "companies", "show", "find", "list", "all",
        "get", "give", "new", "recent", "latest", "top", "best", "about", "into",
        "what", "which", "who", "any", "some", "last", "past", "days", "weeks",
        "months",
    }
)
_PUNCTUATION = "\"'`.,;:!?()[]{}<>"

Clock = Callable[[], datetime]


def tokenize_query(query: str | None) -> list[str]:
    terms: list[str] = []
    for raw in (query or "").lower().split():
        token = raw.strip(_PUNCTUATION)
        if len(token) <= 2 or token in STOPWORDS or token in terms:
            continue
        terms.append(token)
    return terms


class RelevanceScorer:
    """Scores records against a query and sorts them best-first."""

    def __init__(self, now: Clock | None = None) -> None:
        self._now = now or (lambda: datetime.now(tz=UTC))

    def score(self, records: Sequence[AggregatedRecord], query: str | None) -> list[AggregatedRecord]:
        terms = tokenize_query(query)
        today = self._now().date()
        scored = [
            record.model_copy(update={"relevance_score": self.score_record(record, terms, today)})
            for record in records
        ]
        scored.sort(key=lambda record: (-(record.relevance_score or 0.0), record.name.lower(), record.name))
        return scored

    def score_record(self, record: AggregatedRecord, terms: Sequence[str], today: date) -> float:
        name = record.name.lower()
        description = (record.description or "").lower()
        tags = [tag.lower() for tag in record.tags]

        total = 0.0
        for term in terms:
            if term in name:
                total += NAME_MATCH
                if name == term or name.startswith(f"{term} "):
                    total += NAME_PREFIX_BONUS
            if term in description:
                total += DESCRIPTION_MATCH
            if any(term in tag for tag in tags):
                total += TAG_MATCH

        total += min(len(record.sources) * SOURCE_WEIGHT, SOURCE_BONUS_CAP)
        total += _freshness_bonus(record.date_announced, today)
        if record.funding_amount and record.funding_amount.strip().lower() != "undisclosed":
            total += FUNDING_BONUS
        if record.website:
            total += WEBSITE_BONUS
        return round(total, 2)


def _freshness_bonus(value: str | None, today: date) -> float:
    announced = parse_date(value)
    if announced is None:
        return 0.0
    age_days = (today - announced).days
    for limit, bonus in FRESHNESS_BANDS:
        if age_days < limit:
            return bonus
    return 0.0
