import asyncio
import copy

import httpx
import pytest

from conftest import GOOGLE_LEADS, META_LEADS, count_leads, FeedServer
from leadsync.models.schemas.leads import Platform
from leadsync.models.schemas.sync import SyncSelector, SyncStatus
from leadsync.services.identity import LeadIdentityEngine
from leadsync.services.sync.errors import PersistenceError
from leadsync.services.sync.orchestration.lead_sync import RunState, SyncOrchestrator
from leadsync.services.sync.providers import build_adapters


def result_for(summary, platform):
    return next(r for r in summary.per_platform if r.platform == platform)


# ============================================================================
# SCENARIOS
# ============================================================================

async def test_first_sync_imports_every_lead(orchestrator, lead_store, run_store):
    summary = await orchestrator.run_sync(SyncSelector.META)

    meta = result_for(summary, Platform.META)
    assert summary.ok is True
    assert summary.skipped is False
    assert (meta.fetched, meta.imported, meta.status) == (2, 2, SyncStatus.SUCCESS)
    assert await count_leads(lead_store, Platform.META) == 2

    page = await lead_store.list_leads(platform=Platform.META)
    assert {lead.name for lead in page.items} == {"Alice Meta", "Bob Meta"}

    runs = await run_store.recent()
    assert len(runs) == 1
    assert (runs[0].platform, runs[0].fetched_count, runs[0].imported_count) == (Platform.META, 2, 2)
    assert runs[0].started_at < runs[0].finished_at


async def test_repeat_sync_refreshes_instead_of_duplicating(orchestrator, lead_store):
    await orchestrator.run_sync(SyncSelector.META)
    before = {lead.provider_lead_id: lead for lead in (await lead_store.list_leads()).items}

    summary = await orchestrator.run_sync(SyncSelector.META)

    meta = result_for(summary, Platform.META)
    assert (meta.fetched, meta.imported, meta.status) == (2, 0, SyncStatus.SUCCESS)
    assert await count_leads(lead_store, Platform.META) == 2

    after = {lead.provider_lead_id: lead for lead in (await lead_store.list_leads()).items}
    for provider_lead_id, lead in after.items():
        assert lead.id == before[provider_lead_id].id
        assert lead.created_at == before[provider_lead_id].created_at
        assert lead.updated_at > before[provider_lead_id].updated_at


async def test_google_lead_without_email_is_created_with_null_email(orchestrator, feeds, lead_store):
    no_email = copy.deepcopy(GOOGLE_LEADS[0])
    no_email["custom_lead_form_fields"] = [
        f for f in no_email["custom_lead_form_fields"] if f["question_text"] != "Email"
    ]
    feeds.routes["/mock/google/leads"] = [no_email]

    summary = await orchestrator.run_sync(SyncSelector.GOOGLE)

    google = result_for(summary, Platform.GOOGLE)
    assert (google.fetched, google.imported, google.status) == (1, 1, SyncStatus.SUCCESS)
    stored = await lead_store.get(Platform.GOOGLE, no_email["resource_name"])
    assert stored.email is None
    assert stored.name == "Charlie Google"


async def test_failing_platform_does_not_block_the_other(orchestrator, feeds, run_store):
    feeds.routes["/mock/meta/leads"] = 500

    summary = await orchestrator.run_sync(SyncSelector.ALL)

    meta = result_for(summary, Platform.META)
    google = result_for(summary, Platform.GOOGLE)
    assert summary.ok is False
    assert (meta.ok, meta.status, meta.fetched, meta.imported) == (False, SyncStatus.ERROR, 0, 0)
    assert "500" in meta.error
    assert (google.ok, google.status, google.imported) == (True, SyncStatus.SUCCESS, 2)

    runs = {run.platform: run for run in await run_store.recent()}
    assert len(runs) == 2
    assert runs[Platform.META].status == SyncStatus.ERROR
    assert "500" in runs[Platform.META].notes
    assert runs[Platform.GOOGLE].status == SyncStatus.SUCCESS


async def test_overlapping_trigger_is_skipped(orchestrator, feeds, run_store, lead_store):
    gate = asyncio.Event()

    async def slow_meta(request):
        await gate.wait()
        return httpx.Response(200, json={"leads": copy.deepcopy(META_LEADS)})

    feeds.routes["/mock/meta/leads"] = slow_meta

    first = asyncio.create_task(orchestrator.run_sync(SyncSelector.ALL))
    await asyncio.sleep(0)
    assert orchestrator.state is RunState.RUNNING

    second = await orchestrator.run_sync(SyncSelector.ALL)

    assert second.skipped is True
    assert second.ok is False
    assert second.per_platform == []

    gate.set()
    summary = await first

    assert summary.ok is True
    assert summary.imported == 4
    assert orchestrator.state is RunState.IDLE
    runs = await run_store.recent()
    assert sorted(r.platform.value for r in runs) == ["GOOGLE", "META"]
    assert await count_leads(lead_store) == 4


# ============================================================================
# INVARIANTS
# ============================================================================

async def test_guard_resets_after_unexpected_crash(orchestrator, monkeypatch):
    async def explode(platform):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator, "_run_platform", explode)

    with pytest.raises(RuntimeError):
        await orchestrator.run_sync(SyncSelector.META)

    assert orchestrator.state is RunState.IDLE
    assert orchestrator.is_running is False


async def test_guard_is_released_after_each_run(orchestrator):
    await orchestrator.run_sync(SyncSelector.META)
    second = await orchestrator.run_sync(SyncSelector.META)

    assert second.skipped is False


async def test_all_writes_one_run_per_platform(orchestrator, run_store):
    summary = await orchestrator.run_sync(SyncSelector.ALL)

    assert summary.ok is True
    assert [r.platform for r in summary.per_platform] == [Platform.META, Platform.GOOGLE]
    assert len(await run_store.recent()) == 2


async def test_malformed_item_is_dropped_and_run_is_partial(orchestrator, feeds, lead_store, run_store):
    feeds.routes["/mock/meta/leads"] = copy.deepcopy(META_LEADS) + [{"leadgen_id": "META_BAD"}]

    summary = await orchestrator.run_sync(SyncSelector.META)

    meta = result_for(summary, Platform.META)
    assert (meta.fetched, meta.imported, meta.status, meta.ok) == (3, 2, SyncStatus.PARTIAL, False)
    assert "dropped 1 malformed" in meta.error
    assert await count_leads(lead_store) == 2

    run = (await run_store.recent())[0]
    assert run.status == SyncStatus.PARTIAL
    assert run.imported_count <= run.fetched_count


async def test_contact_conflict_is_skipped_and_run_is_partial(orchestrator, feeds, lead_store):
    duplicate_email = copy.deepcopy(GOOGLE_LEADS[0])
    duplicate_email["resource_name"] = "customers/123/leadForms/1/leadFormSubmissionData/99"
    duplicate_email["custom_lead_form_fields"][1]["user_input"] = "ALICE.META@example.com"
    duplicate_email["custom_lead_form_fields"][2]["user_input"] = "+91-9000000099"
    feeds.routes["/mock/google/leads"] = [duplicate_email]

    await orchestrator.run_sync(SyncSelector.META)
    summary = await orchestrator.run_sync(SyncSelector.GOOGLE)

    google = result_for(summary, Platform.GOOGLE)
    assert (google.fetched, google.imported, google.status) == (1, 0, SyncStatus.PARTIAL)
    assert "contact conflict" in google.error
    assert await count_leads(lead_store, Platform.GOOGLE) == 0


async def test_empty_feed_is_a_successful_run(orchestrator, feeds, run_store):
    feeds.routes["/mock/google/leads"] = []

    summary = await orchestrator.run_sync(SyncSelector.GOOGLE)

    google = result_for(summary, Platform.GOOGLE)
    assert (google.fetched, google.imported, google.status) == (0, 0, SyncStatus.SUCCESS)
    assert len(await run_store.recent()) == 1


async def test_fetched_equals_imported_plus_refreshed_plus_dropped(orchestrator, feeds, lead_store):
    await orchestrator.run_sync(SyncSelector.META)
    new_lead = copy.deepcopy(META_LEADS[0])
    new_lead["leadgen_id"] = "META_1003"
    new_lead["field_data"] = [{"name": "full_name", "values": ["Carol Meta"]}]
    feeds.routes["/mock/meta/leads"] = copy.deepcopy(META_LEADS) + [new_lead, "not-a-lead"]

    summary = await orchestrator.run_sync(SyncSelector.META)

    meta = result_for(summary, Platform.META)
    assert (meta.fetched, meta.imported) == (4, 1)
    assert await count_leads(lead_store, Platform.META) == 3


class FailingStore:
    """Delegates to a real store but fails every write for one platform."""

    def __init__(self, inner, failing_platform):
        self.inner = inner
        self.failing_platform = failing_platform

    async def insert(self, draft):
        if draft.platform == self.failing_platform:
            raise PersistenceError("database unavailable")
        return await self.inner.insert(draft)

    async def update(self, draft):
        return await self.inner.update(draft)


async def test_persistence_failure_marks_only_that_platform_error(adapters, lead_store, run_store, clock):
    orchestrator = SyncOrchestrator(
        adapters=adapters,
        identity_engine=LeadIdentityEngine(FailingStore(lead_store, Platform.META)),
        run_store=run_store,
        clock=clock,
    )

    summary = await orchestrator.run_sync(SyncSelector.ALL)

    meta = result_for(summary, Platform.META)
    google = result_for(summary, Platform.GOOGLE)
    assert (meta.status, meta.fetched, meta.imported) == (SyncStatus.ERROR, 2, 0)
    assert "PersistenceError" in meta.error
    assert google.status == SyncStatus.SUCCESS
    assert orchestrator.state is RunState.IDLE


async def test_audit_write_failure_surfaces_as_error(adapters, lead_store, clock):
    class BrokenRunStore:
        async def append(self, record):
            raise PersistenceError("audit table locked")

    orchestrator = SyncOrchestrator(
        adapters=adapters,
        identity_engine=LeadIdentityEngine(lead_store),
        run_store=BrokenRunStore(),
        clock=clock,
    )

    summary = await orchestrator.run_sync(SyncSelector.META)

    meta = result_for(summary, Platform.META)
    assert meta.status == SyncStatus.ERROR
    assert meta.imported == 2
    assert "audit log write failed" in meta.error


async def test_transport_failure_is_recorded_as_error(lead_store, run_store, clock):
    feeds = FeedServer(google=httpx.ConnectError("no route to host"))
    async with feeds.client() as client:
        adapters = build_adapters(client, "http://feeds.test", retry_attempts=1)
        orchestrator = SyncOrchestrator(
            adapters=adapters,
            identity_engine=LeadIdentityEngine(lead_store),
            run_store=run_store,
            clock=clock,
        )
        summary = await orchestrator.run_sync(SyncSelector.GOOGLE)

    google = result_for(summary, Platform.GOOGLE)
    assert google.status == SyncStatus.ERROR
    assert (await run_store.recent())[0].status == SyncStatus.ERROR
