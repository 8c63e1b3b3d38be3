"""API endpoints for running startup discovery."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.run_summary import SearchResponse
from app.services.discovery.coordinator import FanOutCoordinator, get_coordinator

router = APIRouter()
logger = logging.getLogger(__name__)


class SearchRequest(BaseModel):
    """Request payload for a discovery run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = Field(default="", max_length=500)
    lookback_days: int | None = Field(
        default=None,
        ge=1,
        le=365,
        description="Override the lookback parsed from the query.",
    )


@router.post(
    "/search",
    response_model=SearchResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def search_startups(
    payload: SearchRequest,
    coordinator: FanOutCoordinator = Depends(get_coordinator),
) -> SearchResponse:
    """Fan the query out to every source and return ranked, deduplicated records."""
    response = await coordinator.search(payload.query, payload.lookback_days)
    logger.info(
        "search.api_completed",
        extra={
            "query": payload.query,
            "records": len(response.records),
            "failed_sources": response.summary.failed_sources,
        },
    )
    return response


@router.get("/sources")
async def list_sources(coordinator: FanOutCoordinator = Depends(get_coordinator)) -> dict:
    """Describe the registered source adapters and the runtime mode."""
    return {
        "mode": coordinator.registry.mode.value,
        "sources": coordinator.registry.describe(),
    }
