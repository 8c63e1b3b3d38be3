"""SQLModel mapping for persisted startup records."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Float, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.startup import AggregatedRecord
from app.services.discovery.dedup import prefer_longer, prefer_specific


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class StartupRecord(SQLModel, table=True):
    """ORM model for persisted AggregatedRecord rows."""

    __tablename__ = "startups"
    __table_args__ = (
        sa.UniqueConstraint("normalized_name", name="uq_startups_normalized_name"),
        sa.Index("ix_startups_origin_source", "origin_source"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    normalized_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    website: str | None = Field(default=None, sa_column=Column(String(length=1024)))
    funding_amount: str | None = Field(default=None, sa_column=Column(String(length=255)))
    location: str | None = Field(default=None, sa_column=Column(String(length=255)))
    date_announced: str | None = Field(default=None, sa_column=Column(String(length=32)))
    tags: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    sources: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    source_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    confidence_score: float = Field(default=0.5, sa_column=Column(Float, nullable=False))
    relevance_score: float | None = Field(default=None, sa_column=Column(Float))
    origin_source: str = Field(sa_column=Column(String(length=255), nullable=False))
    origin_url: str = Field(sa_column=Column(String(length=1024), nullable=False))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
        ),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
            onupdate=UtcNow(),
        ),
    )

    @classmethod
    def from_aggregated(
        cls,
        record: AggregatedRecord,
        *,
        normalized_name: str,
        origin_source: str,
        origin_url: str,
    ) -> StartupRecord:
        """Convert an in-memory AggregatedRecord into a persistence row."""
        return cls(
            normalized_name=normalized_name,
            name=record.name,
            description=record.description,
            website=record.website,
            funding_amount=record.funding_amount,
            location=record.location,
            date_announced=record.date_announced,
            tags=sorted(record.tags),
            sources=list(record.sources),
            source_urls=list(record.source_urls),
            confidence_score=record.confidence_score,
            relevance_score=record.relevance_score,
            origin_source=origin_source,
            origin_url=origin_url,
        )

    def apply(self, other: StartupRecord) -> None:
        """Refresh mutable columns from a newer row for the same startup."""
        updates: dict[str, Any] = {
            "name": other.name,
            "description": prefer_longer(self.description, other.description),
            "website": other.website or self.website,
            "funding_amount": prefer_specific(self.funding_amount, other.funding_amount),
            "location": prefer_specific(self.location, other.location),
            "date_announced": other.date_announced or self.date_announced,
            "tags": sorted(set(self.tags) | set(other.tags)),
            "sources": list(dict.fromkeys([*self.sources, *other.sources])),
            "source_urls": list(dict.fromkeys([*self.source_urls, *other.source_urls])),
            "confidence_score": max(self.confidence_score, other.confidence_score),
            "relevance_score": other.relevance_score,
            "updated_at": _utcnow(),
        }
        for key, value in updates.items():
            setattr(self, key, value)

    def to_aggregated(self) -> AggregatedRecord:
        """Hydrate an AggregatedRecord domain model from the stored row."""
        return AggregatedRecord(
            name=self.name,
            description=self.description,
            website=self.website,
            funding_amount=self.funding_amount,
            location=self.location,
            date_announced=self.date_announced,
            tags=set(self.tags),
            sources=list(self.sources),
            source_urls=list(self.source_urls),
            confidence_score=self.confidence_score,
            relevance_score=self.relevance_score,
        )
