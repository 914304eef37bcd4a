"""Health and readiness check routes."""

import logging

from fastapi import APIRouter, Request

from config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ready")
async def ready() -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": "product-cache", "commit": settings.git_sha}


@router.get("/health")
async def health(request: Request) -> dict:
    """Reports the snapshot cache state without triggering a refresh."""
    result = {"status": "ok", "service": "product-cache", "commit": settings.git_sha}

    try:
        result["cache"] = request.app.state.catalog.cache.describe()
    except Exception as e:
        logger.exception("Cache health check failed")
        result["status"] = "degraded"
        result["cache_error"] = str(e)

    return result
