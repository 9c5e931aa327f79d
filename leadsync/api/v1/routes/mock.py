"""
Simulated Provider Feeds
Stand-ins for the Meta and Google lead APIs, shaped like their real payloads

Provider ids are stable so repeated syncs exercise the refresh path rather
than creating new leads every time.
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mock", tags=["mock"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/meta/leads")
async def mock_meta_leads():
    """Two Meta leadgen records."""
    return {
        "leads": [
            {
                "leadgen_id": "META_1001",
                "field_data": [
                    {"name": "full_name", "values": ["Alice Meta"]},
                    {"name": "email", "values": ["alice.meta@example.com"]},
                    {"name": "phone_number", "values": ["+91-9000000001"]},
                ],
                "ad_id": "ad_meta_123",
                "campaign_id": "cmp_meta_123",
                "form_id": "form_meta_123",
                "created_time": _now(),
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
                "created_time": _now(),
            },
        ]
    }


@router.get("/google/leads")
async def mock_google_leads():
    """Two Google lead form submissions."""
    return {
        "leads": [
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
                "created_at": _now(),
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
                "created_at": _now(),
            },
        ]
    }
