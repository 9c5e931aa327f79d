"""
Dependency Injection
Provides reusable dependencies for FastAPI routes

DEPENDENCIES:
- HTTP client (provider feed fetches)
- Lead store + sync run store (PostgreSQL or in-memory)
- Sync orchestrator (owns the run guard)
- Sync scheduler (periodic trigger)
"""
import logging
from typing import Optional

import httpx

from leadsync.core.config import Settings, settings
from leadsync.models.schemas.leads import Platform
from leadsync.services.identity import LeadIdentityEngine
from leadsync.services.jobs.scheduler import SyncScheduler
from leadsync.services.sync.orchestration.lead_sync import SyncOrchestrator
from leadsync.services.sync.persistence import (
    InMemoryLeadStore,
    InMemorySyncRunStore,
    LeadStore,
    SyncRunStore,
)
from leadsync.services.sync.providers import build_adapters

logger = logging.getLogger(__name__)

# ============================================================================
# GLOBAL CLIENTS (initialized once, reused across requests)
# ============================================================================

_http_client: Optional[httpx.AsyncClient] = None
_lead_store: Optional[LeadStore] = None
_run_store: Optional[SyncRunStore] = None
_orchestrator: Optional[SyncOrchestrator] = None
_scheduler: Optional[SyncScheduler] = None


# ============================================================================
# INITIALIZATION (called on app startup)
# ============================================================================

async def build_stores(config: Settings):
    """PostgreSQL stores when DATABASE_URL is set, in-memory otherwise."""
    if config.database_url:
        from leadsync.services.sync.database import PostgresLeadStore, PostgresSyncRunStore, ensure_schema

        await ensure_schema(config.database_url)
        logger.info("✅ PostgreSQL record store initialized")
        return PostgresLeadStore(config.database_url), PostgresSyncRunStore(config.database_url)

    logger.warning("⚠️  DATABASE_URL not set - using in-memory record store (data lost on restart)")
    return InMemoryLeadStore(), InMemorySyncRunStore()


async def initialize_clients(
    config: Settings = settings,
    lead_store: Optional[LeadStore] = None,
    run_store: Optional[SyncRunStore] = None,
    http_client: Optional[httpx.AsyncClient] = None
):
    """
    Initialize all global clients on app startup.

    Called from main.py lifespan event. Stores and HTTP client can be passed
    in (tests); otherwise they are built from settings.
    """
    global _http_client, _lead_store, _run_store, _orchestrator, _scheduler

    logger.info("Initializing global clients...")

    _http_client = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(config.fetch_timeout_seconds),
        limits=httpx.Limits(max_keepalive_connections=5, max_connections=10)
    )

    if lead_store is None or run_store is None:
        built_leads, built_runs = await build_stores(config)
        lead_store = lead_store or built_leads
        run_store = run_store or built_runs
    _lead_store, _run_store = lead_store, run_store

    adapters = build_adapters(
        _http_client,
        config.feed_base_url,
        feed_paths={
            Platform.META: config.meta_feed_path,
            Platform.GOOGLE: config.google_feed_path,
        },
        timeout=config.fetch_timeout_seconds,
        retry_attempts=config.fetch_retry_attempts,
    )

    _orchestrator = SyncOrchestrator(
        adapters=adapters,
        identity_engine=LeadIdentityEngine(_lead_store),
        run_store=_run_store,
        lead_concurrency=config.lead_concurrency,
    )
    _scheduler = SyncScheduler(_orchestrator, interval_seconds=config.sync_interval_seconds)

    if config.auto_sync_enabled:
        _scheduler.start()

    logger.info("✅ All clients initialized successfully")


async def shutdown_clients():
    """
    Shutdown all global clients on app shutdown.

    Called from main.py lifespan event.
    """
    global _http_client, _lead_store, _run_store, _orchestrator, _scheduler

    logger.info("Shutting down global clients...")

    if _scheduler:
        _scheduler.stop()
        await _scheduler.wait_for_runs()

    if _http_client:
        try:
            await _http_client.aclose()
            logger.info("✅ HTTP client closed")
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")

    for store in (_lead_store, _run_store):
        if store:
            await store.close()

    _http_client = _lead_store = _run_store = _orchestrator = _scheduler = None

    logger.info("✅ All clients shutdown complete")


# ============================================================================
# DEPENDENCY FUNCTIONS (injected into routes)
# ============================================================================

def get_lead_store() -> LeadStore:
    """
    Get the lead store for dependency injection.

    Usage:
        @router.get("/leads")
        async def leads(store: LeadStore = Depends(get_lead_store)):
            return await store.list_leads()
    """
    if _lead_store is None:
        logger.error("Lead store not initialized")
        raise RuntimeError("Lead store not initialized. Call initialize_clients() first.")

    return _lead_store


def get_run_store() -> SyncRunStore:
    """Get the sync run audit log for dependency injection."""
    if _run_store is None:
        logger.error("Sync run store not initialized")
        raise RuntimeError("Sync run store not initialized. Call initialize_clients() first.")

    return _run_store


def get_orchestrator() -> SyncOrchestrator:
    """Get the sync orchestrator (one instance per process, owns the run guard)."""
    if _orchestrator is None:
        logger.error("Sync orchestrator not initialized")
        raise RuntimeError("Sync orchestrator not initialized. Call initialize_clients() first.")

    return _orchestrator


def get_scheduler() -> SyncScheduler:
    """Get the periodic sync scheduler."""
    if _scheduler is None:
        logger.error("Sync scheduler not initialized")
        raise RuntimeError("Sync scheduler not initialized. Call initialize_clients() first.")

    return _scheduler
