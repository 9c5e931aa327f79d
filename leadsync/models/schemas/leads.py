"""
Lead Schemas
Canonical lead record shared by every provider adapter and store engine
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    """Advertising platform a lead was captured on."""
    META = "META"
    GOOGLE = "GOOGLE"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class LeadDraft(BaseModel):
    """
    Normalized lead produced by a provider adapter, before persistence.

    Contact fields are cleaned on construction:
    - email: trimmed + lowercased
    - phone, name, provenance ids: trimmed
    - blank strings become None
    """
    model_config = ConfigDict(frozen=True)

    platform: Platform
    provider_lead_id: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    ad_id: Optional[str] = None
    form_id: Optional[str] = None
    raw_payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("provider_lead_id", mode="before")
    @classmethod
    def strip_provider_lead_id(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        v = _clean(v)
        return v.lower() if v else None

    @field_validator("name", "phone", "campaign_id", "campaign_name", "ad_id", "form_id", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _clean(v)

    @property
    def identity_key(self) -> tuple:
        return (self.platform, self.provider_lead_id)


class CanonicalLead(LeadDraft):
    """Stored, deduplicated lead. Timestamps are owned by the store."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class LeadPage(BaseModel):
    """One page of leads, most recent first."""
    items: List[CanonicalLead]
    total: int
    page: int
    limit: int
