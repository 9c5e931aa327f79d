"""
Lead sync orchestration engine
Coordinates Meta and Google lead syncs and writes the audit trail
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from leadsync.models.schemas.leads import Platform
from leadsync.models.schemas.sync import (
    PlatformResult,
    SyncRunRecord,
    SyncSelector,
    SyncStatus,
    SyncSummary,
)
from leadsync.services.identity import LeadIdentityEngine
from leadsync.services.sync.canonical import get_canonical_id
from leadsync.services.sync.errors import ContactConflictError, FetchError, NormalizationError
from leadsync.services.sync.persistence import Clock, SyncRunStore, utcnow
from leadsync.services.sync.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

# Max individual drop/conflict reasons copied into SyncRun.notes
MAX_NOTE_DETAILS = 5


class RunState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"


@dataclass
class BatchTally:
    """Counters for one adapter invocation."""
    fetched: int = 0
    imported: int = 0
    refreshed: int = 0
    dropped: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    def resolve(self) -> Tuple[SyncStatus, Optional[str]]:
        """SUCCESS when every item landed, PARTIAL when some were dropped or skipped."""
        if not self.dropped and not self.conflicts:
            return SyncStatus.SUCCESS, None

        parts = []
        if self.dropped:
            parts.append(f"dropped {len(self.dropped)} malformed lead(s)")
        if self.conflicts:
            parts.append(f"skipped {len(self.conflicts)} contact conflict(s)")
        details = (self.dropped + self.conflicts)[:MAX_NOTE_DETAILS]
        return SyncStatus.PARTIAL, "; ".join(parts) + ": " + " | ".join(details)


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class SyncOrchestrator:
    """
    Runs provider adapters for a selector and records one SyncRun per adapter.

    RUN GUARD:
    - State token is owned by this instance (IDLE/RUNNING)
    - run_sync() while RUNNING returns a skipped summary, nothing is queued
    - RUNNING -> IDLE always happens in `finally`, so a crashed run never
      wedges the orchestrator

    The guard only protects this instance. Duplicate records are prevented
    by the store's unique constraints, not by the guard.
    """

    def __init__(
        self,
        adapters: Dict[Platform, ProviderAdapter],
        identity_engine: LeadIdentityEngine,
        run_store: SyncRunStore,
        lead_concurrency: int = 5,
        clock: Clock = utcnow
    ):
        self.adapters = adapters
        self.identity_engine = identity_engine
        self.run_store = run_store
        self.lead_concurrency = max(1, lead_concurrency)
        self._clock = clock
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.RUNNING

    async def run_sync(self, selector: SyncSelector) -> SyncSummary:
        """
        Sync the platforms named by the selector.

        Args:
            selector: META, GOOGLE or ALL

        Returns:
            SyncSummary with one PlatformResult per requested platform,
            or skipped=True if a run is already in flight
        """
        selector = SyncSelector(selector)

        # Check-and-set with no await in between: atomic on the event loop
        if self._state is RunState.RUNNING:
            logger.warning(f"⏭️  Sync {selector.value} skipped: another run is in flight")
            return SyncSummary(per_platform=[], ok=False, skipped=True)
        self._state = RunState.RUNNING

        try:
            logger.info(f"🚀 Starting lead sync ({selector.value})")
            results = await asyncio.gather(
                *(self._run_platform(platform) for platform in selector.platforms())
            )
        finally:
            self._state = RunState.IDLE

        summary = SyncSummary(per_platform=list(results), ok=all(r.ok for r in results))
        logger.info(
            f"{'✅' if summary.ok else '⚠️ '} Lead sync ({selector.value}) finished: "
            f"{summary.imported} imported, ok={summary.ok}"
        )
        return summary

    # ------------------------------------------------------------------------
    # PER-PLATFORM RUN
    # ------------------------------------------------------------------------

    async def _run_platform(self, platform: Platform) -> PlatformResult:
        """Run one adapter end to end. Never raises: every failure becomes an ERROR SyncRun."""
        started_at = self._clock()
        tally = BatchTally()

        try:
            adapter = self.adapters.get(platform)
            if adapter is None:
                raise FetchError(f"No adapter registered for {platform.value}")

            raw_leads = await adapter.fetch_raw()
            tally.fetched = len(raw_leads)
            await self._process_batch(adapter, raw_leads, tally)
            status, notes = tally.resolve()

        except FetchError as e:
            logger.error(f"❌ {platform.value} fetch failed: {e}")
            status, notes = SyncStatus.ERROR, str(e)

        except Exception as e:
            logger.exception(f"❌ {platform.value} sync failed")
            status, notes = SyncStatus.ERROR, f"{type(e).__name__}: {e}"

        record = SyncRunRecord(
            platform=platform,
            fetched_count=tally.fetched,
            imported_count=tally.imported,
            started_at=started_at,
            finished_at=self._clock(),
            status=status,
            notes=notes,
        )

        try:
            await self.run_store.append(record)
        except Exception as e:
            # The sync itself already happened; surface the audit failure in the summary
            logger.exception(f"❌ Could not write {platform.value} sync run to the audit log")
            status = SyncStatus.ERROR
            notes = f"{notes + '; ' if notes else ''}audit log write failed: {e}"

        logger.info(
            f"📊 {platform.value}: status={status.value} fetched={tally.fetched} "
            f"imported={tally.imported} refreshed={tally.refreshed} "
            f"dropped={len(tally.dropped)} conflicts={len(tally.conflicts)}"
        )

        return PlatformResult(
            platform=platform,
            status=status,
            fetched=tally.fetched,
            imported=tally.imported,
            ok=status is SyncStatus.SUCCESS,
            error=notes if status is not SyncStatus.SUCCESS else None,
        )

    async def _process_batch(self, adapter: ProviderAdapter, raw_leads: List[Any], tally: BatchTally):
        """
        Normalize + upsert every raw lead with bounded concurrency.
        Unexpected errors are re-raised after the batch so counts stay accurate.
        """
        semaphore = asyncio.Semaphore(self.lead_concurrency)

        async def process(raw: Any):
            async with semaphore:
                await self._process_item(adapter, raw, tally)

        outcomes = await asyncio.gather(*(process(raw) for raw in raw_leads), return_exceptions=True)

        failures = [o for o in outcomes if isinstance(o, Exception)]
        if failures:
            if len(failures) > 1:
                logger.error(f"   {len(failures)} leads failed to persist; reporting the first")
            raise failures[0]

    async def _process_item(self, adapter: ProviderAdapter, raw: Any, tally: BatchTally):
        try:
            draft = adapter.normalize(raw)
        except NormalizationError as e:
            logger.warning(f"   ⏭️  Dropping malformed {adapter.platform.value} lead: {e}")
            tally.dropped.append(str(e))
            return

        try:
            result = await self.identity_engine.upsert(draft)
        except ContactConflictError as e:
            canonical_id = get_canonical_id(draft.platform, draft.provider_lead_id)
            logger.warning(f"   ⏭️  Skipping {canonical_id}: {e}")
            tally.conflicts.append(f"{canonical_id}: {e}")
            return

        if result.created:
            tally.imported += 1
        else:
            tally.refreshed += 1
