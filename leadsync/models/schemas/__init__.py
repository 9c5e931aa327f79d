"""
Pydantic Schemas
Lead records, sync audit entries and API request/response models
"""

# Lead schemas
from .leads import Platform, LeadDraft, CanonicalLead, LeadPage

# Sync schemas
from .sync import (
    SyncSelector,
    SyncStatus,
    SyncRunRecord,
    SyncRun,
    PlatformResult,
    SyncSummary,
    ScheduleRequest,
    ScheduleState,
)

__all__ = [
    # Leads
    "Platform",
    "LeadDraft",
    "CanonicalLead",
    "LeadPage",
    # Sync
    "SyncSelector",
    "SyncStatus",
    "SyncRunRecord",
    "SyncRun",
    "PlatformResult",
    "SyncSummary",
    "ScheduleRequest",
    "ScheduleState",
]
