"""
Lead persistence
Record store contract + in-memory engine

Every engine must enforce, at all times:
1. (platform, provider_lead_id) unique  -> DuplicateIdentityError on insert
2. email unique when not null          -> ContactConflictError
3. phone unique when not null          -> ContactConflictError

The PostgreSQL engine lives in database.py; the in-memory engine below is
used for local dev (no DATABASE_URL) and tests.
"""
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from leadsync.models.schemas.leads import CanonicalLead, LeadDraft, LeadPage, Platform
from leadsync.models.schemas.sync import SyncRun, SyncRunRecord
from leadsync.services.sync.canonical import get_canonical_id
from leadsync.services.sync.errors import ContactConflictError, DuplicateIdentityError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_LOG_LIMIT = 50
MAX_LOG_LIMIT = 100

# Fields refreshed when an existing identity is seen again (email is set on creation only)
MUTABLE_FIELDS = ("name", "phone", "campaign_id", "campaign_name", "ad_id", "form_id", "raw_payload")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_page(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to [1, MAX_PAGE_SIZE] (default DEFAULT_PAGE_SIZE)."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))
    return page, limit


def clamp_log_limit(limit: Optional[int]) -> int:
    return min(MAX_LOG_LIMIT, max(1, limit or DEFAULT_LOG_LIMIT))


# ============================================================================
# CONTRACTS
# ============================================================================

class LeadStore(ABC):
    """Persistence surface for canonical leads."""

    @abstractmethod
    async def insert(self, draft: LeadDraft) -> CanonicalLead:
        """
        Insert a new lead.

        Raises:
            DuplicateIdentityError: (platform, provider_lead_id) already stored
            ContactConflictError: email/phone held by another lead
            PersistenceError: any other store failure
        """

    @abstractmethod
    async def update(self, draft: LeadDraft) -> CanonicalLead:
        """
        Refresh the mutable fields of the lead with the draft's identity.

        Raises:
            ContactConflictError: new phone held by another lead
            PersistenceError: identity not found or any other store failure
        """

    @abstractmethod
    async def get(self, platform: Platform, provider_lead_id: str) -> Optional[CanonicalLead]:
        ...

    @abstractmethod
    async def list_leads(
        self,
        platform: Optional[Platform] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> LeadPage:
        """Leads ordered by recency (most recent first)."""

    async def close(self) -> None:
        return None


class SyncRunStore(ABC):
    """Append-only audit log of sync runs."""

    @abstractmethod
    async def append(self, record: SyncRunRecord) -> SyncRun:
        ...

    @abstractmethod
    async def recent(self, limit: int = DEFAULT_LOG_LIMIT, platform: Optional[Platform] = None) -> List[SyncRun]:
        """Most recent runs first, bounded by limit (capped at MAX_LOG_LIMIT)."""

    async def close(self) -> None:
        return None


# ============================================================================
# IN-MEMORY ENGINE
# ============================================================================

class InMemoryLeadStore(LeadStore):
    """
    Process-local lead store.
    Writes are serialized by an asyncio.Lock so each insert/update checks
    and mutates the unique indexes in one step.
    """

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._rows: Dict[Tuple[Platform, str], CanonicalLead] = {}
        self._by_email: Dict[str, Tuple[Platform, str]] = {}
        self._by_phone: Dict[str, Tuple[Platform, str]] = {}

    def _check_contact(self, index: Dict[str, Tuple[Platform, str]], field: str, value: Optional[str], key):
        if value is None:
            return
        owner = index.get(value)
        if owner is not None and owner != key:
            raise ContactConflictError(field, value)

    async def insert(self, draft: LeadDraft) -> CanonicalLead:
        key = draft.identity_key
        async with self._lock:
            if key in self._rows:
                raise DuplicateIdentityError(f"Lead {get_canonical_id(*key)} already exists")
            self._check_contact(self._by_email, "email", draft.email, key)
            self._check_contact(self._by_phone, "phone", draft.phone, key)

            now = self._clock()
            lead = CanonicalLead(
                **draft.model_dump(),
                id=next(self._ids),
                created_at=now,
                updated_at=now,
            )
            self._rows[key] = lead
            if lead.email:
                self._by_email[lead.email] = key
            if lead.phone:
                self._by_phone[lead.phone] = key
            return lead

    async def update(self, draft: LeadDraft) -> CanonicalLead:
        key = draft.identity_key
        async with self._lock:
            current = self._rows.get(key)
            if current is None:
                raise PersistenceError(f"Lead {get_canonical_id(*key)} not found for update")
            self._check_contact(self._by_phone, "phone", draft.phone, key)

            changes = {field: getattr(draft, field) for field in MUTABLE_FIELDS}
            changes["updated_at"] = self._clock()
            lead = current.model_copy(update=changes)

            if current.phone and current.phone != lead.phone:
                self._by_phone.pop(current.phone, None)
            if lead.phone:
                self._by_phone[lead.phone] = key
            self._rows[key] = lead
            return lead

    async def get(self, platform: Platform, provider_lead_id: str) -> Optional[CanonicalLead]:
        return self._rows.get((Platform(platform), provider_lead_id))

    async def list_leads(
        self,
        platform: Optional[Platform] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> LeadPage:
        page, limit = clamp_page(page, limit)
        rows = [r for r in self._rows.values() if platform is None or r.platform == platform]
        rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        start = (page - 1) * limit
        return LeadPage(items=rows[start:start + limit], total=len(rows), page=page, limit=limit)


class InMemorySyncRunStore(SyncRunStore):
    """Process-local audit log."""

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._ids = itertools.count(1)
        self._runs: List[SyncRun] = []

    async def append(self, record: SyncRunRecord) -> SyncRun:
        run = SyncRun(**record.model_dump(), id=next(self._ids), created_at=self._clock())
        self._runs.append(run)
        return run

    async def recent(self, limit: int = DEFAULT_LOG_LIMIT, platform: Optional[Platform] = None) -> List[SyncRun]:
        limit = clamp_log_limit(limit)
        runs = [r for r in self._runs if platform is None or r.platform == platform]
        runs.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return runs[:limit]
