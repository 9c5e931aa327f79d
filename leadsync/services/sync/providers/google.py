"""
Google Ads lead form normalization
Handles conversion of Google lead form submissions to the canonical lead draft
"""
import logging
from typing import Any, Dict, Optional

from leadsync.models.schemas.leads import LeadDraft, Platform
from leadsync.services.sync.errors import NormalizationError
from leadsync.services.sync.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class GoogleLeadAdapter(ProviderAdapter):
    """
    Google lead form submission structure:
    {
        "resource_name": "customers/123/leadForms/1/leadFormSubmissionData/1",
        "lead_form_id": "form_google_123",
        "campaign": "cmp_google_123",
        "ad": "ad_google_123",
        "custom_lead_form_fields": [
            {"question_text": "Full Name", "user_input": "Charlie Google"},
            {"question_text": "Email", "user_input": "charlie.google@example.com"},
            {"question_text": "Phone", "user_input": "+91-9000000003"}
        ],
        "created_at": "2024-01-01T00:00:00Z"
    }

    Questions are free text, so fields are matched by case-insensitive
    substring ("Your Email Address" -> email).
    """

    platform = Platform.GOOGLE
    default_feed_path = "/mock/google/leads"

    def normalize(self, raw: Dict[str, Any]) -> LeadDraft:
        if not isinstance(raw, dict):
            raise NormalizationError(f"GOOGLE lead is not an object: {type(raw).__name__}")

        fields = raw.get("custom_lead_form_fields")
        if not isinstance(fields, list):
            raise NormalizationError("GOOGLE lead has no custom_lead_form_fields list")

        resource_name = raw.get("resource_name") or raw.get("lead_id")
        if resource_name is None or not str(resource_name).strip():
            raise NormalizationError("GOOGLE lead has no resource_name")

        def get(label: str) -> Optional[str]:
            for field in fields:
                if not isinstance(field, dict):
                    continue
                question = str(field.get("question_text") or "").lower()
                if label in question:
                    value = field.get("user_input")
                    return None if value is None else str(value)
            return None

        return LeadDraft(
            platform=self.platform,
            provider_lead_id=str(resource_name),
            name=get("name"),
            email=get("email"),
            phone=get("phone"),
            campaign_id=raw.get("campaign_id") or raw.get("campaign"),
            campaign_name=raw.get("campaign_name"),
            ad_id=raw.get("ad_id") or raw.get("ad"),
            form_id=raw.get("lead_form_id"),
            raw_payload=raw,
        )
