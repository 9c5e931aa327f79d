"""
Health Check Routes
System status and diagnostics
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter

from leadsync.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "ok": True,
        "store": "postgres" if settings.database_url else "memory",
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Lead Sync API",
        "version": "1.0.0",
        "description": "Ingests Meta and Google lead form submissions into one deduplicated lead store",
        "endpoints": {
            "health": ["/health", "/api/health"],
            "leads": "/api/leads",
            "logs": "/api/logs",
            "sync": {
                "all": "/api/sync/all",
                "meta": "/api/sync/meta",
                "google": "/api/sync/google",
                "schedule": "/api/sync/schedule"
            }
        }
    }
