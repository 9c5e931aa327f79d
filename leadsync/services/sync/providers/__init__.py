"""
Lead Providers
Normalization layer for external ad platforms (Meta Lead Ads, Google Ads lead forms)
"""
from typing import Dict, Type

import httpx

from leadsync.models.schemas.leads import Platform
from leadsync.services.sync.providers.base import ProviderAdapter
from leadsync.services.sync.providers.google import GoogleLeadAdapter
from leadsync.services.sync.providers.meta import MetaLeadAdapter

# Adding a platform = one adapter class + one entry here
ADAPTERS: Dict[Platform, Type[ProviderAdapter]] = {
    Platform.META: MetaLeadAdapter,
    Platform.GOOGLE: GoogleLeadAdapter,
}


def build_adapters(
    http_client: httpx.AsyncClient,
    base_url: str,
    feed_paths: Dict[Platform, str] = None,
    timeout: float = 10.0,
    retry_attempts: int = 3
) -> Dict[Platform, ProviderAdapter]:
    """Instantiate one adapter per registered platform."""
    feed_paths = feed_paths or {}
    return {
        platform: adapter_cls(
            http_client,
            base_url,
            feed_path=feed_paths.get(platform),
            timeout=timeout,
            retry_attempts=retry_attempts,
        )
        for platform, adapter_cls in ADAPTERS.items()
    }


__all__ = [
    "ADAPTERS",
    "ProviderAdapter",
    "MetaLeadAdapter",
    "GoogleLeadAdapter",
    "build_adapters",
]
