"""
Sync Schemas
Audit records and summaries for lead sync runs
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from leadsync.models.schemas.leads import Platform


class SyncSelector(str, Enum):
    """Which platforms a sync run covers."""
    META = "META"
    GOOGLE = "GOOGLE"
    ALL = "ALL"

    def platforms(self) -> List[Platform]:
        if self is SyncSelector.ALL:
            return list(Platform)
        return [Platform(self.value)]


class SyncStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    ERROR = "ERROR"


class SyncRunRecord(BaseModel):
    """
    Outcome of one adapter invocation, before it is appended to the audit log.
    """
    model_config = ConfigDict(frozen=True)

    platform: Platform
    fetched_count: int = Field(ge=0)
    imported_count: int = Field(ge=0)
    started_at: datetime
    finished_at: datetime
    status: SyncStatus
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_counts(self):
        if self.imported_count > self.fetched_count:
            raise ValueError("imported_count cannot exceed fetched_count")
        return self


class SyncRun(SyncRunRecord):
    """Immutable audit log entry."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    created_at: datetime


class PlatformResult(BaseModel):
    """Per-platform slice of a sync summary."""
    platform: Platform
    status: SyncStatus
    fetched: int
    imported: int
    ok: bool
    error: Optional[str] = None


class SyncSummary(BaseModel):
    """
    Response for a sync trigger.
    ok is True only if every requested platform finished with SUCCESS.
    skipped is True when the trigger collided with a run already in flight.
    imported (serialized) is the total of newly created leads across platforms.
    """
    per_platform: List[PlatformResult] = []
    ok: bool
    skipped: bool = False

    @computed_field
    @property
    def imported(self) -> int:
        return sum(r.imported for r in self.per_platform)


class ScheduleRequest(BaseModel):
    """Toggle for the periodic sync scheduler."""
    enabled: bool
    interval_seconds: Optional[float] = Field(default=None, gt=0)


class ScheduleState(BaseModel):
    enabled: bool
    interval_seconds: float
    sync_in_flight: bool
    last_triggered_at: Optional[datetime] = None
