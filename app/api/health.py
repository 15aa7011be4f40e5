"""Health check API endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.config import config
from app.core.dependencies import get_catalog_cache

router = APIRouter(tags=["health"])


@router.get("/healthz")
def health_check(catalog_cache=Depends(get_catalog_cache)):
    """Basic health check endpoint."""
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "api_host_configured": bool(config.API_HOST),
        "cache": {"catalogs": catalog_cache.stats()},
        "http": {"timeout_seconds": config.PORTAL_HTTP_TIMEOUT},
    }
