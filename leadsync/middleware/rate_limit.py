"""
Rate Limiting Middleware
Keeps manual sync triggers from hammering the provider feeds (slowapi)

RATE LIMITS:
- Global: 100 requests/minute per IP (default)
- Sync triggers: 30/minute per IP (see routes/sync.py)
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

logger = logging.getLogger(__name__)

SYNC_TRIGGER_LIMIT = "30/minute"


def rate_limit_key_func(request: Request) -> str:
    """Rate limit by client IP (the dashboard has no user accounts)."""
    ip = get_remote_address(request)
    logger.debug(f"Rate limit key: ip={ip}")
    return f"ip:{ip}"


# In-memory storage: one API instance owns one orchestrator, so limits are per instance too
limiter = Limiter(
    key_func=rate_limit_key_func,
    default_limits=["100/minute"],
    storage_uri="memory://",
)
