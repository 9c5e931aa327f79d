"""
Shared fixtures: deterministic clock, in-memory stores, provider feeds served
through httpx.MockTransport.
"""
import copy
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from leadsync.models.schemas.leads import Platform
from leadsync.services.identity import LeadIdentityEngine
from leadsync.services.sync.orchestration.lead_sync import SyncOrchestrator
from leadsync.services.sync.persistence import InMemoryLeadStore, InMemorySyncRunStore
from leadsync.services.sync.providers import build_adapters

BASE_URL = "http://feeds.test"
META_PATH = "/mock/meta/leads"
GOOGLE_PATH = "/mock/google/leads"

META_LEADS = [
    {
        "leadgen_id": "META_1001",
        "field_data": [
            {"name": "full_name", "values": ["Alice Meta"]},
            {"name": "email", "values": ["Alice.Meta@Example.com "]},
            {"name": "phone_number", "values": [" +91-9000000001"]},
        ],
        "ad_id": "ad_meta_123",
        "campaign_id": "cmp_meta_123",
        "form_id": "form_meta_123",
    },
    {
        "leadgen_id": "META_1002",
        "field_data": [
            {"name": "full_name", "values": ["Bob Meta"]},
            {"name": "email", "values": ["bob.meta@example.com"]},
            {"name": "phone_number", "values": ["+91-9000000002"]},
        ],
        "ad_id": "ad_meta_456",
        "campaign_id": "cmp_meta_456",
        "form_id": "form_meta_456",
    },
]

GOOGLE_LEADS = [
    {
        "resource_name": "customers/123/leadForms/1/leadFormSubmissionData/1",
        "lead_form_id": "form_google_123",
        "campaign": "cmp_google_123",
        "ad": "ad_google_123",
        "custom_lead_form_fields": [
            {"question_text": "Full Name", "user_input": "Charlie Google"},
            {"question_text": "Email", "user_input": "charlie.google@example.com"},
            {"question_text": "Phone", "user_input": "+91-9000000003"},
        ],
    },
    {
        "resource_name": "customers/123/leadForms/1/leadFormSubmissionData/2",
        "lead_form_id": "form_google_456",
        "campaign": "cmp_google_456",
        "ad": "ad_google_456",
        "custom_lead_form_fields": [
            {"question_text": "Full Name", "user_input": "Diana Google"},
            {"question_text": "Email", "user_input": "diana.google@example.com"},
            {"question_text": "Phone", "user_input": "+91-9000000004"},
        ],
    },
]


class TickingClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self, start=datetime(2026, 1, 1, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        self.current += self.step
        return self.current


class FeedServer:
    """
    Routes feed requests to per-path responses.

    A route response is one of:
    - list: served as {"leads": [...]}
    - int: bare status code
    - Exception: raised as a transport failure
    - async callable(request): awaited for a custom response
    """

    def __init__(self, meta=None, google=None):
        self.routes = {
            META_PATH: copy.deepcopy(META_LEADS) if meta is None else meta,
            GOOGLE_PATH: copy.deepcopy(GOOGLE_LEADS) if google is None else google,
        }
        self.calls = {META_PATH: 0, GOOGLE_PATH: 0}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        self.calls[path] += 1

        canned = self.routes[path]
        if isinstance(canned, Exception):
            raise canned
        if isinstance(canned, int):
            return httpx.Response(canned, json={"error": "provider unavailable"})
        if callable(canned):
            return await canned(request)
        return httpx.Response(200, json={"leads": canned})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def lead_store(clock):
    return InMemoryLeadStore(clock=clock)


@pytest.fixture
def run_store(clock):
    return InMemorySyncRunStore(clock=clock)


@pytest.fixture
def feeds():
    return FeedServer()


@pytest.fixture
async def http_client(feeds):
    client = feeds.client()
    yield client
    await client.aclose()


@pytest.fixture
def adapters(http_client):
    built = build_adapters(http_client, BASE_URL, retry_attempts=1)
    for adapter in built.values():
        adapter.retry_wait = 0
    return built


@pytest.fixture
def orchestrator(adapters, lead_store, run_store, clock):
    return SyncOrchestrator(
        adapters=adapters,
        identity_engine=LeadIdentityEngine(lead_store),
        run_store=run_store,
        lead_concurrency=3,
        clock=clock,
    )


async def count_leads(store, platform: Platform = None) -> int:
    page = await store.list_leads(platform=platform, page=1, limit=100)
    return page.total
