import httpx
import pytest

from conftest import BASE_URL, GOOGLE_LEADS, GOOGLE_PATH, META_LEADS, META_PATH, FeedServer
from leadsync.models.schemas.leads import Platform
from leadsync.services.sync.errors import FetchError, NormalizationError
from leadsync.services.sync.providers import GoogleLeadAdapter, MetaLeadAdapter


def meta_adapter(client=None):
    return MetaLeadAdapter(client, BASE_URL, retry_attempts=1, retry_wait=0)


def google_adapter(client=None):
    return GoogleLeadAdapter(client, BASE_URL, retry_attempts=1, retry_wait=0)


# ============================================================================
# META NORMALIZATION
# ============================================================================

def test_meta_normalize_extracts_field_data():
    draft = meta_adapter().normalize(META_LEADS[0])

    assert draft.platform == Platform.META
    assert draft.provider_lead_id == "META_1001"
    assert draft.name == "Alice Meta"
    assert draft.email == "alice.meta@example.com"
    assert draft.phone == "+91-9000000001"
    assert draft.campaign_id == "cmp_meta_123"
    assert draft.ad_id == "ad_meta_123"
    assert draft.form_id == "form_meta_123"
    assert draft.raw_payload == META_LEADS[0]


def test_meta_missing_fields_resolve_to_none():
    raw = {"leadgen_id": "META_9", "field_data": [{"name": "full_name", "values": []}]}

    draft = meta_adapter().normalize(raw)

    assert draft.name is None
    assert draft.email is None
    assert draft.phone is None
    assert draft.campaign_id is None


def test_meta_uses_first_value_of_first_matching_pair():
    raw = {
        "leadgen_id": 42,
        "field_data": [
            "garbage",
            {"name": "email", "values": ["FIRST@example.com", "second@example.com"]},
            {"name": "email", "values": ["third@example.com"]},
        ],
    }

    draft = meta_adapter().normalize(raw)

    assert draft.provider_lead_id == "42"
    assert draft.email == "first@example.com"


@pytest.mark.parametrize("raw", [
    {"leadgen_id": "META_1"},
    {"leadgen_id": "META_1", "field_data": {"name": "email"}},
    {"field_data": []},
    {"leadgen_id": "   ", "field_data": []},
    ["not", "an", "object"],
])
def test_meta_structural_problems_raise(raw):
    with pytest.raises(NormalizationError):
        meta_adapter().normalize(raw)


# ============================================================================
# GOOGLE NORMALIZATION
# ============================================================================

def test_google_normalize_matches_questions_case_insensitively():
    draft = google_adapter().normalize(GOOGLE_LEADS[0])

    assert draft.platform == Platform.GOOGLE
    assert draft.provider_lead_id == "customers/123/leadForms/1/leadFormSubmissionData/1"
    assert draft.name == "Charlie Google"
    assert draft.email == "charlie.google@example.com"
    assert draft.phone == "+91-9000000003"
    assert draft.campaign_id == "cmp_google_123"
    assert draft.ad_id == "ad_google_123"
    assert draft.form_id == "form_google_123"


def test_google_substring_match_and_lowercased_email():
    raw = {
        "resource_name": "customers/1/x/1",
        "custom_lead_form_fields": [
            {"question_text": "YOUR NAME please", "user_input": "Eve"},
            {"question_text": "Work E-mail or Email Address", "user_input": "  Eve@Corp.COM "},
            {"question_text": "Mobile phone number", "user_input": "555 0100 "},
        ],
    }

    draft = google_adapter().normalize(raw)

    assert draft.name == "Eve"
    assert draft.email == "eve@corp.com"
    assert draft.phone == "555 0100"


def test_google_without_email_question_normalizes_to_null_email():
    raw = {
        "resource_name": "customers/1/x/2",
        "custom_lead_form_fields": [
            {"question_text": "Full Name", "user_input": "No Mail"},
            {"question_text": "Phone", "user_input": "+1-555-0101"},
        ],
    }

    draft = google_adapter().normalize(raw)

    assert draft.email is None
    assert draft.name == "No Mail"


@pytest.mark.parametrize("raw", [
    {"resource_name": "customers/1/x/3"},
    {"resource_name": "customers/1/x/3", "custom_lead_form_fields": "Email"},
    {"custom_lead_form_fields": []},
    None,
])
def test_google_structural_problems_raise(raw):
    with pytest.raises(NormalizationError):
        google_adapter().normalize(raw)


# ============================================================================
# FETCH
# ============================================================================

async def test_fetch_raw_returns_leads_list():
    feeds = FeedServer()
    async with feeds.client() as client:
        leads = await meta_adapter(client).fetch_raw()

    assert [lead["leadgen_id"] for lead in leads] == ["META_1001", "META_1002"]


async def test_fetch_non_success_status_raises_without_retry():
    feeds = FeedServer(meta=500)
    async with feeds.client() as client:
        adapter = MetaLeadAdapter(client, BASE_URL, retry_attempts=3, retry_wait=0)
        with pytest.raises(FetchError) as exc_info:
            await adapter.fetch_raw()

    assert exc_info.value.status_code == 500
    assert "META fetch failed: 500" in str(exc_info.value)
    assert feeds.calls[META_PATH] == 1


async def test_fetch_retries_transport_errors_then_fails():
    feeds = FeedServer(google=httpx.ConnectError("connection refused"))
    async with feeds.client() as client:
        adapter = GoogleLeadAdapter(client, BASE_URL, retry_attempts=2, retry_wait=0)
        with pytest.raises(FetchError):
            await adapter.fetch_raw()

    assert feeds.calls[GOOGLE_PATH] == 2


async def test_fetch_timeout_becomes_fetch_error():
    feeds = FeedServer(meta=httpx.ReadTimeout("too slow"))
    async with feeds.client() as client:
        with pytest.raises(FetchError, match="timed out"):
            await meta_adapter(client).fetch_raw()


async def test_fetch_recovers_after_transient_error():
    attempts = {"n": 0}

    async def flaky(request):
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise httpx.ConnectError("blip")
        return httpx.Response(200, json={"leads": []})

    feeds = FeedServer(meta=flaky)
    async with feeds.client() as client:
        adapter = MetaLeadAdapter(client, BASE_URL, retry_attempts=3, retry_wait=0)
        assert await adapter.fetch_raw() == []

    assert attempts["n"] == 2


async def test_fetch_payload_without_leads_list_raises():
    async def wrong_shape(request):
        return httpx.Response(200, json={"data": []})

    feeds = FeedServer(meta=wrong_shape)
    async with feeds.client() as client:
        with pytest.raises(FetchError, match="no 'leads' list"):
            await meta_adapter(client).fetch_raw()


async def test_fetch_invalid_json_raises():
    async def not_json(request):
        return httpx.Response(200, text="<html>oops</html>")

    feeds = FeedServer(google=not_json)
    async with feeds.client() as client:
        with pytest.raises(FetchError, match="invalid JSON"):
            await google_adapter(client).fetch_raw()
