"""
Lead Sync System
Provider adapters, record stores and orchestration for ad platform leads

The orchestrator lives in orchestration/lead_sync.py and is imported from
there directly (it depends on the identity engine, which depends on this package).
"""
from leadsync.services.sync.errors import (
    ContactConflictError,
    DuplicateIdentityError,
    FetchError,
    LeadSyncError,
    NormalizationError,
    PersistenceError,
)
from leadsync.services.sync.persistence import (
    InMemoryLeadStore,
    InMemorySyncRunStore,
    LeadStore,
    SyncRunStore,
)

__all__ = [
    "ContactConflictError",
    "DuplicateIdentityError",
    "FetchError",
    "LeadSyncError",
    "NormalizationError",
    "PersistenceError",
    "InMemoryLeadStore",
    "InMemorySyncRunStore",
    "LeadStore",
    "SyncRunStore",
]
