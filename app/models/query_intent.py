"""Structured interpretation of a free-text discovery query."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_LOOKBACK_DAYS = 7


class IntentClass(str, Enum):
    """Coarse classification of what the caller is asking for."""

    SEARCH = "search"
    LIST = "list"
    RECENT = "recent"
    FUNDED = "funded"


class QueryIntent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    search_terms: list[str] = Field(default_factory=list)
    domain: str | None = None
    funding_stage: str | None = None
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    location: str | None = None
    intent_class: IntentClass = IntentClass.SEARCH
