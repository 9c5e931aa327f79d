"""
Identity Resolution Service
Turns a normalized lead draft into exactly one stored lead

ALGORITHM (insert first, update on conflict):
1. Blind insert. The store's (platform, provider_lead_id) constraint decides.
2. DuplicateIdentityError -> the identity already exists (or a concurrent
   writer just created it): refresh its mutable fields instead.

There is deliberately no "does it exist?" read before the write. Two
concurrent upserts of a new identity would both pass such a check and one
would then fail on the unique constraint.
"""
import logging
from typing import NamedTuple

from leadsync.models.schemas.leads import CanonicalLead, LeadDraft
from leadsync.services.sync.canonical import get_canonical_id
from leadsync.services.sync.errors import DuplicateIdentityError
from leadsync.services.sync.persistence import LeadStore

logger = logging.getLogger(__name__)


class UpsertResult(NamedTuple):
    created: bool
    lead: CanonicalLead


class LeadIdentityEngine:
    """
    Atomic create-or-update keyed by (platform, provider_lead_id).

    Leads without an email are stored with email=None and dedupe on the
    identity key alone. ContactConflictError (email/phone owned by another
    identity) and other PersistenceErrors propagate to the caller.
    """

    def __init__(self, store: LeadStore):
        self.store = store

    async def upsert(self, draft: LeadDraft) -> UpsertResult:
        canonical_id = get_canonical_id(draft.platform, draft.provider_lead_id)
        try:
            lead = await self.store.insert(draft)
            logger.debug(f"🆕 Created lead {canonical_id} (id={lead.id})")
            return UpsertResult(created=True, lead=lead)
        except DuplicateIdentityError:
            lead = await self.store.update(draft)
            logger.debug(f"🔄 Refreshed lead {canonical_id} (id={lead.id})")
            return UpsertResult(created=False, lead=lead)
