from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.services.discovery.coordinator import FanOutCoordinator, get_coordinator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(coordinator: FanOutCoordinator = Depends(get_coordinator)):
    """Readiness check: at least one source adapter must be registered."""
    adapter_count = len(coordinator.registry)
    if adapter_count == 0:
        logger.warning("health.no_adapters", extra={"mode": coordinator.registry.mode.value})
        raise HTTPException(status_code=503, detail="No source adapters configured")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "mode": coordinator.registry.mode.value,
        "adapters": adapter_count,
        "database": "connected" if settings.database_url else "not configured",
    }
