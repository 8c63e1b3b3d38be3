"""Domain models for discovered startup records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class RawRecord(BaseModel):
    """Candidate startup produced by a single source adapter invocation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    website: str | None = None
    funding_amount: str | None = Field(
        default=None,
        description="Free-form amount or stage label, e.g. '$2.5M' or 'Series A'.",
    )
    location: str | None = None
    date_announced: str | None = Field(default=None, description="ISO date of the announcement.")
    tags: set[str] = Field(default_factory=set)
    sources: list[str]
    source_urls: list[str]
    confidence_score: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be blank")
        return trimmed

    @field_validator("sources", "source_urls")
    @classmethod
    def _require_provenance(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("provenance lists must not be empty")
        return value

    @field_serializer("tags")
    def _serialize_tags(self, tags: set[str]) -> list[str]:
        return sorted(tags)

    @property
    def origin_source(self) -> str:
        return self.sources[0]

    @property
    def origin_url(self) -> str:
        return self.source_urls[0]


class AggregatedRecord(RawRecord):
    """Deduplicated record that may carry several sources and a relevance score."""

    relevance_score: float | None = None

    @classmethod
    def from_raw(cls, record: RawRecord) -> AggregatedRecord:
        """Start a dedup bucket from a raw (or already aggregated) record."""
        payload = record.model_dump()
        payload["tags"] = set(record.tags)
        payload["sources"] = list(record.sources)
        payload["source_urls"] = list(record.source_urls)
        return cls(**payload)
