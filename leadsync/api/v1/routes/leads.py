"""
Lead & Audit Log Routes
Read-only views consumed by the dashboard
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from leadsync.core.dependencies import get_lead_store, get_run_store
from leadsync.models.schemas.leads import Platform
from leadsync.models.schemas.sync import SyncRun
from leadsync.services.sync.persistence import (
    DEFAULT_LOG_LIMIT,
    DEFAULT_PAGE_SIZE,
    MAX_LOG_LIMIT,
    MAX_PAGE_SIZE,
    LeadStore,
    SyncRunStore,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["leads"])


def parse_platform(platform: Optional[str]) -> Optional[Platform]:
    if not platform:
        return None
    try:
        return Platform(platform.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid platform. Must be one of: {', '.join(p.value for p in Platform)}"
        )


@router.get("/leads")
async def list_leads(
    page: int = Query(default=1, description="Clamped to >= 1"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, description=f"Clamped to 1..{MAX_PAGE_SIZE}"),
    platform: Optional[str] = Query(default=None, description="META or GOOGLE"),
    include_raw: bool = Query(default=False, description="Include the original provider payload"),
    store: LeadStore = Depends(get_lead_store)
):
    """
    Paged leads, most recent first.

    GET /api/leads?page=1&limit=20&platform=META
    """
    result = await store.list_leads(platform=parse_platform(platform), page=page, limit=limit)

    if include_raw:
        return result.model_dump(mode="json")
    return result.model_dump(mode="json", exclude={"items": {"__all__": {"raw_payload"}}})


@router.get("/logs", response_model=List[SyncRun])
async def list_sync_runs(
    limit: int = Query(default=DEFAULT_LOG_LIMIT, description=f"Clamped to 1..{MAX_LOG_LIMIT}"),
    platform: Optional[str] = Query(default=None, description="META or GOOGLE"),
    store: SyncRunStore = Depends(get_run_store)
):
    """Most recent sync runs first (audit trail)."""
    return await store.recent(limit=limit, platform=parse_platform(platform))
