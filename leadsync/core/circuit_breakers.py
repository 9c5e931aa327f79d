"""
Circuit Breakers and Retry Logic
Keeps transient provider hiccups from failing a whole sync run
"""
import logging
from functools import wraps

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


# ============================================================================
# PROVIDER FEED RETRY
# ============================================================================

def with_fetch_retry(max_attempts: int = 3, min_wait: float = 0.5, max_wait: float = 5):
    """
    Decorator for async provider feed fetches with exponential backoff retry.

    Retries on:
    - Connection errors
    - Timeouts (connect/read/write/pool)

    Non-2xx responses are NOT retried: a provider answering with an error is
    a definitive answer for this run. After the last attempt the original
    httpx exception is re-raised.

    Usage:
        get_feed = with_fetch_retry(max_attempts=settings.fetch_retry_attempts)(self._get_feed)
        response = await get_feed()
    """
    def decorator(func):
        @retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await func(*args, **kwargs)

        return wrapper

    return decorator
