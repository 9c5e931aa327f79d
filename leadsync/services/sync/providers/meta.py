"""
Meta Lead Ads normalization
Handles conversion of Meta leadgen records to the canonical lead draft
"""
import logging
from typing import Any, Dict, Optional

from leadsync.models.schemas.leads import LeadDraft, Platform
from leadsync.services.sync.canonical import first_value
from leadsync.services.sync.errors import NormalizationError
from leadsync.services.sync.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class MetaLeadAdapter(ProviderAdapter):
    """
    Meta leadgen record structure:
    {
        "leadgen_id": "1234567890",
        "field_data": [
            {"name": "full_name", "values": ["Alice Meta"]},
            {"name": "email", "values": ["alice.meta@example.com"]},
            {"name": "phone_number", "values": ["+91-9000000001"]}
        ],
        "ad_id": "ad_meta_123",
        "campaign_id": "cmp_meta_123",
        "form_id": "form_meta_123",
        "created_time": "2024-01-01T00:00:00Z"
    }
    """

    platform = Platform.META
    default_feed_path = "/mock/meta/leads"

    def normalize(self, raw: Dict[str, Any]) -> LeadDraft:
        if not isinstance(raw, dict):
            raise NormalizationError(f"META lead is not an object: {type(raw).__name__}")

        field_data = raw.get("field_data")
        if not isinstance(field_data, list):
            raise NormalizationError("META lead has no field_data list")

        leadgen_id = raw.get("leadgen_id")
        if leadgen_id is None or not str(leadgen_id).strip():
            raise NormalizationError("META lead has no leadgen_id")

        def get(field_name: str) -> Optional[str]:
            # First pair with a matching name wins; malformed pairs are ignored
            for pair in field_data:
                if isinstance(pair, dict) and pair.get("name") == field_name:
                    return first_value(pair.get("values"))
            return None

        return LeadDraft(
            platform=self.platform,
            provider_lead_id=str(leadgen_id),
            name=get("full_name"),
            email=get("email"),
            phone=get("phone_number"),
            campaign_id=raw.get("campaign_id"),
            campaign_name=raw.get("campaign_name"),
            ad_id=raw.get("ad_id"),
            form_id=raw.get("form_id"),
            raw_payload=raw,
        )
