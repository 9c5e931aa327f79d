"""
PostgreSQL record store
Leads + sync run audit log backed by psycopg

The unique constraints below are the dedup authority: the identity engine
never checks for existence before writing. It inserts with leads_identity_key
as the ON CONFLICT arbiter and treats "no row returned" as a duplicate.
"""
import logging
from typing import List, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from leadsync.models.schemas.leads import CanonicalLead, LeadDraft, LeadPage, Platform
from leadsync.models.schemas.sync import SyncRun, SyncRunRecord
from leadsync.services.sync.canonical import get_canonical_id
from leadsync.services.sync.errors import ContactConflictError, DuplicateIdentityError, PersistenceError
from leadsync.services.sync.persistence import (
    DEFAULT_LOG_LIMIT,
    DEFAULT_PAGE_SIZE,
    LeadStore,
    SyncRunStore,
    clamp_log_limit,
    clamp_page,
)

logger = logging.getLogger(__name__)


# ============================================================================
# SCHEMA
# ============================================================================

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS leads (
    id BIGSERIAL PRIMARY KEY,
    platform TEXT NOT NULL CHECK (platform IN ('META', 'GOOGLE')),
    provider_lead_id TEXT NOT NULL,
    name TEXT,
    email TEXT,
    phone TEXT,
    campaign_id TEXT,
    campaign_name TEXT,
    ad_id TEXT,
    form_id TEXT,
    raw_payload JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT leads_identity_key UNIQUE (platform, provider_lead_id)
);
CREATE UNIQUE INDEX IF NOT EXISTS leads_email_key ON leads (email) WHERE email IS NOT NULL;
CREATE UNIQUE INDEX IF NOT EXISTS leads_phone_key ON leads (phone) WHERE phone IS NOT NULL;
CREATE INDEX IF NOT EXISTS leads_platform_created_idx ON leads (platform, created_at DESC);

CREATE TABLE IF NOT EXISTS sync_runs (
    id BIGSERIAL PRIMARY KEY,
    platform TEXT NOT NULL CHECK (platform IN ('META', 'GOOGLE')),
    fetched_count INTEGER NOT NULL CHECK (fetched_count >= 0),
    imported_count INTEGER NOT NULL CHECK (imported_count >= 0 AND imported_count <= fetched_count),
    started_at TIMESTAMPTZ NOT NULL,
    finished_at TIMESTAMPTZ NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('SUCCESS', 'PARTIAL', 'ERROR')),
    notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS sync_runs_created_idx ON sync_runs (created_at DESC);
CREATE INDEX IF NOT EXISTS sync_runs_platform_created_idx ON sync_runs (platform, created_at DESC);
"""

LEAD_COLUMNS = (
    "id, platform, provider_lead_id, name, email, phone, campaign_id, campaign_name, "
    "ad_id, form_id, raw_payload, created_at, updated_at"
)

# Unique constraint name -> contact field it protects
CONTACT_CONSTRAINTS = {
    "leads_email_key": "email",
    "leads_phone_key": "phone",
}


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

async def get_db_connection(database_url: str) -> psycopg.AsyncConnection:
    """Open an async connection that returns rows as dicts.

    Note: Creates a new connection each time. Sync volume is a few batches
    per interval, so there is no pool.
    """
    try:
        return await psycopg.AsyncConnection.connect(database_url, autocommit=False, row_factory=dict_row)
    except psycopg.Error as e:
        logger.error(f"❌ Could not connect to PostgreSQL: {e}")
        raise PersistenceError(f"Database connection failed: {e}") from e


async def ensure_schema(database_url: str):
    """Create the leads and sync_runs tables if they don't exist yet."""
    conn = await get_db_connection(database_url)
    async with conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("✅ Lead store schema verified")


def _row_to_lead(row: dict) -> CanonicalLead:
    return CanonicalLead(**row)


# ============================================================================
# LEADS
# ============================================================================

class PostgresLeadStore(LeadStore):
    """Lead store on PostgreSQL. Uniqueness is enforced by constraints, not by reads."""

    def __init__(self, database_url: str):
        self._database_url = database_url

    async def insert(self, draft: LeadDraft) -> CanonicalLead:
        """
        Insert a new lead.

        leads_identity_key is the ON CONFLICT arbiter, so Postgres checks it
        before the contact indexes: a repeat sighting returns no row (duplicate
        identity) even when its email/phone also match the stored lead.
        """
        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    f"""
                    INSERT INTO leads (platform, provider_lead_id, name, email, phone,
                                       campaign_id, campaign_name, ad_id, form_id, raw_payload)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT ON CONSTRAINT leads_identity_key DO NOTHING
                    RETURNING {LEAD_COLUMNS}
                    """,
                    (
                        draft.platform.value, draft.provider_lead_id, draft.name, draft.email, draft.phone,
                        draft.campaign_id, draft.campaign_name, draft.ad_id, draft.form_id,
                        Jsonb(draft.raw_payload),
                    )
                )
                row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            constraint = e.diag.constraint_name
            if constraint in CONTACT_CONSTRAINTS:
                field = CONTACT_CONSTRAINTS[constraint]
                raise ContactConflictError(field, getattr(draft, field)) from e
            raise PersistenceError(f"Unexpected unique violation ({constraint}): {e}") from e
        except psycopg.Error as e:
            raise PersistenceError(f"Insert failed: {e}") from e

        if row is None:
            raise DuplicateIdentityError(
                f"Lead {get_canonical_id(draft.platform, draft.provider_lead_id)} already exists"
            )
        return _row_to_lead(row)

    async def update(self, draft: LeadDraft) -> CanonicalLead:
        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    f"""
                    UPDATE leads SET
                        name = %s,
                        phone = %s,
                        campaign_id = %s,
                        campaign_name = %s,
                        ad_id = %s,
                        form_id = %s,
                        raw_payload = %s,
                        updated_at = now()
                    WHERE platform = %s AND provider_lead_id = %s
                    RETURNING {LEAD_COLUMNS}
                    """,
                    (
                        draft.name, draft.phone, draft.campaign_id, draft.campaign_name,
                        draft.ad_id, draft.form_id, Jsonb(draft.raw_payload),
                        draft.platform.value, draft.provider_lead_id,
                    )
                )
                row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            if e.diag.constraint_name == "leads_phone_key":
                raise ContactConflictError("phone", draft.phone) from e
            raise PersistenceError(f"Unexpected unique violation on update: {e}") from e
        except psycopg.Error as e:
            raise PersistenceError(f"Update failed: {e}") from e

        if row is None:
            raise PersistenceError(
                f"Lead {get_canonical_id(draft.platform, draft.provider_lead_id)} not found for update"
            )
        return _row_to_lead(row)

    async def get(self, platform: Platform, provider_lead_id: str) -> Optional[CanonicalLead]:
        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    f"SELECT {LEAD_COLUMNS} FROM leads WHERE platform = %s AND provider_lead_id = %s",
                    (Platform(platform).value, provider_lead_id)
                )
                row = await cur.fetchone()
        except psycopg.Error as e:
            raise PersistenceError(f"Lookup failed: {e}") from e
        return _row_to_lead(row) if row else None

    async def list_leads(
        self,
        platform: Optional[Platform] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> LeadPage:
        page, limit = clamp_page(page, limit)
        where = "WHERE platform = %s" if platform else ""
        params = (Platform(platform).value,) if platform else ()

        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    f"""
                    SELECT {LEAD_COLUMNS} FROM leads {where}
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    params + (limit, (page - 1) * limit)
                )
                rows = await cur.fetchall()
                cur = await conn.execute(f"SELECT count(*) AS total FROM leads {where}", params)
                total = (await cur.fetchone())["total"]
        except psycopg.Error as e:
            raise PersistenceError(f"Listing leads failed: {e}") from e

        return LeadPage(items=[_row_to_lead(r) for r in rows], total=total, page=page, limit=limit)


# ============================================================================
# SYNC RUN AUDIT LOG
# ============================================================================

class PostgresSyncRunStore(SyncRunStore):
    """Append-only sync_runs table. Rows are never updated."""

    def __init__(self, database_url: str):
        self._database_url = database_url

    async def append(self, record: SyncRunRecord) -> SyncRun:
        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    """
                    INSERT INTO sync_runs (platform, fetched_count, imported_count,
                                           started_at, finished_at, status, notes)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        record.platform.value, record.fetched_count, record.imported_count,
                        record.started_at, record.finished_at, record.status.value, record.notes,
                    )
                )
                row = await cur.fetchone()
        except psycopg.Error as e:
            raise PersistenceError(f"Writing sync run failed: {e}") from e
        return SyncRun(**row)

    async def recent(self, limit: int = DEFAULT_LOG_LIMIT, platform: Optional[Platform] = None) -> List[SyncRun]:
        limit = clamp_log_limit(limit)
        where = "WHERE platform = %s" if platform else ""
        params = (Platform(platform).value,) if platform else ()

        conn = await get_db_connection(self._database_url)
        try:
            async with conn:
                cur = await conn.execute(
                    f"SELECT * FROM sync_runs {where} ORDER BY created_at DESC, id DESC LIMIT %s",
                    params + (limit,)
                )
                rows = await cur.fetchall()
        except psycopg.Error as e:
            raise PersistenceError(f"Reading sync runs failed: {e}") from e
        return [SyncRun(**r) for r in rows]
