"""
CORS Configuration
Cross-Origin Resource Sharing settings for the dashboard frontend

- Development: all origins (no credentials)
- Otherwise: explicit whitelist from CORS_ALLOWED_ORIGINS
"""
import logging
from fastapi.middleware.cors import CORSMiddleware as FastAPICORSMiddleware
from leadsync.core.config import settings

logger = logging.getLogger(__name__)


def get_cors_middleware():
    """
    Returns configured CORS middleware with environment-based settings.
    """
    if settings.environment == "development":
        logger.warning("⚠️  DEV MODE: CORS allowing ALL origins (*)")
        return FastAPICORSMiddleware, {
            "allow_origins": ["*"],
            "allow_credentials": False,  # Must be False when using "*"
            "allow_methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["*"],
            "expose_headers": ["X-Request-ID"],
            "max_age": 600,
        }

    allowed_origins = [o.strip() for o in settings.cors_allowed_origins.split(",") if o.strip()]
    logger.info(f"🌐 CORS allowed origins: {allowed_origins}")

    return FastAPICORSMiddleware, {
        "allow_origins": allowed_origins,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": [
            "Content-Type",
            "X-Request-ID",
        ],
        "expose_headers": ["X-Request-ID"],
        "max_age": 600,  # Cache preflight requests for 10 minutes
    }
