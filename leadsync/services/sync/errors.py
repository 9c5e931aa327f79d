"""
Sync error types
Every failure in the lead pipeline resolves to one of these
"""
from typing import Optional


class LeadSyncError(Exception):
    """Base exception for lead sync failures."""


class FetchError(LeadSyncError):
    """Provider feed could not be fetched (network, timeout, non-2xx, bad payload). Aborts the adapter run."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NormalizationError(LeadSyncError):
    """Raw provider object is structurally unusable. The item is dropped."""


class PersistenceError(LeadSyncError):
    """Unexpected record store failure. Marks the enclosing run ERROR."""


class DuplicateIdentityError(PersistenceError):
    """
    Insert collided on (platform, provider_lead_id).
    Resolved as an update by the identity engine, never surfaced.
    """


class ContactConflictError(PersistenceError):
    """Email or phone is already held by a different lead identity. The item is skipped."""

    def __init__(self, field: str, value: str):
        super().__init__(f"{field} {value!r} already belongs to another lead")
        self.field = field
        self.value = value
