"""
Provider adapter base
Fetch contract shared by every advertising platform
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import httpx

from leadsync.core.circuit_breakers import with_fetch_retry
from leadsync.models.schemas.leads import LeadDraft, Platform
from leadsync.services.sync.errors import FetchError

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """
    One adapter per platform.

    fetch_raw() GETs {base_url}{feed_path} and expects {"leads": [...]};
    normalize() turns one provider-native object into a LeadDraft.
    Subclasses only implement normalize().
    """

    platform: Platform
    default_feed_path: str

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        feed_path: str = None,
        timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.feed_path = feed_path or self.default_feed_path
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

    @property
    def feed_url(self) -> str:
        return f"{self.base_url}{self.feed_path}"

    async def _get_feed(self) -> httpx.Response:
        return await self.http_client.get(self.feed_url, timeout=self.timeout)

    async def fetch_raw(self) -> List[Dict[str, Any]]:
        """
        Fetch one raw batch from the provider.

        Returns:
            List of provider-native lead objects

        Raises:
            FetchError: network failure, timeout, non-2xx status or a payload
                        without a "leads" list
        """
        name = self.platform.value
        get_feed = with_fetch_retry(
            max_attempts=self.retry_attempts,
            min_wait=self.retry_wait,
            max_wait=max(self.retry_wait, 5)
        )(self._get_feed)

        try:
            response = await get_feed()
        except httpx.TimeoutException as e:
            raise FetchError(f"{name} fetch timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{name} fetch failed: {e}") from e

        if not response.is_success:
            raise FetchError(f"{name} fetch failed: {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise FetchError(f"{name} fetch returned invalid JSON: {e}") from e

        leads = data.get("leads") if isinstance(data, dict) else None
        if not isinstance(leads, list):
            raise FetchError(f"{name} feed payload has no 'leads' list")

        logger.info(f"📥 Fetched {len(leads)} {name} leads from {self.feed_url}")
        return leads

    @abstractmethod
    def normalize(self, raw: Dict[str, Any]) -> LeadDraft:
        """
        Normalize one raw provider object.

        Raises:
            NormalizationError: raw object lacks its field collection or lead id
        """
