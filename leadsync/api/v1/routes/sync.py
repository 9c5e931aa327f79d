"""
Sync Routes
Manual sync triggers and the periodic scheduler toggle
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from leadsync.core.dependencies import get_orchestrator, get_scheduler
from leadsync.middleware.rate_limit import SYNC_TRIGGER_LIMIT, limiter
from leadsync.models.schemas.sync import ScheduleRequest, ScheduleState, SyncSelector, SyncSummary
from leadsync.services.jobs.scheduler import SyncScheduler
from leadsync.services.sync.orchestration.lead_sync import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


# ============================================================================
# SCHEDULER TOGGLE (registered before /{selector} so "schedule" isn't a selector)
# ============================================================================

@router.get("/schedule", response_model=ScheduleState)
async def get_schedule(scheduler: SyncScheduler = Depends(get_scheduler)):
    """Current state of the periodic sync."""
    return scheduler.state()


@router.post("/schedule", response_model=ScheduleState)
async def set_schedule(
    body: ScheduleRequest,
    scheduler: SyncScheduler = Depends(get_scheduler)
):
    """
    Turn the periodic sync on or off.

    Turning it off never waits for (or aborts) a run that is already in flight.
    """
    if body.enabled:
        scheduler.start(body.interval_seconds)
    else:
        scheduler.stop()

    logger.info(f"Sync schedule set: enabled={body.enabled}, interval={scheduler.interval_seconds}s")
    return scheduler.state()


# ============================================================================
# MANUAL SYNC
# ============================================================================

@router.post("/{selector}", response_model=SyncSummary)
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync(
    selector: str,
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
):
    """
    Run a sync now and wait for the result.

    Supported selectors: meta, google, all

    Returns ok=false if any platform did not finish with SUCCESS, and
    skipped=true if another sync was already running.
    """
    try:
        resolved = SyncSelector(selector.upper())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid selector. Must be one of: {', '.join(s.value.lower() for s in SyncSelector)}"
        )

    logger.info(f"Manual sync requested: {resolved.value}")
    return await orchestrator.run_sync(resolved)
