"""
LeadSync - Ad Platform Lead Ingestion
=====================================
Version: 1.0.0

FastAPI application entry point.

Architecture:
- leadsync/core/: Configuration, dependencies, retry policy
- leadsync/middleware/: Error handling, logging, CORS, rate limiting
- leadsync/models/: Pydantic schemas
- leadsync/services/: Provider adapters, identity/dedup, orchestration, scheduler
- leadsync/api/v1/routes/: API endpoints
"""
import sys
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI

# Startup error handling
try:
    from leadsync.core.config import settings
    from leadsync.core.dependencies import initialize_clients, shutdown_clients

    from leadsync.middleware.error_handler import ErrorHandlerMiddleware
    from leadsync.middleware.logging import RequestLoggingMiddleware
    from leadsync.middleware.cors import get_cors_middleware

    from leadsync.api.v1.routes.health import router as health_router
    from leadsync.api.v1.routes.leads import router as leads_router
    from leadsync.api.v1.routes.sync import router as sync_router
    from leadsync.api.v1.routes.mock import router as mock_router

except Exception as e:
    print(f"🚨 FATAL STARTUP ERROR: {e}", file=sys.stderr)
    print(f"Traceback:\n{traceback.format_exc()}", file=sys.stderr)
    sys.exit(1)

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.environment == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# SENTRY ERROR TRACKING
# ============================================================================

if settings.sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ]
        )
        logger.info("✅ Sentry error tracking initialized")
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry: {e}")
else:
    logger.info("ℹ️  Sentry not configured (SENTRY_DSN not set)")

# ============================================================================
# LIFECYCLE MANAGEMENT
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("=" * 80)
    logger.info("Starting LeadSync")
    logger.info("=" * 80)
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Port: {settings.port}")

    await initialize_clients()

    logger.info("✅ LeadSync started successfully")

    yield

    logger.info("Shutting down LeadSync...")
    await shutdown_clients()
    logger.info("✅ Shutdown complete")


# ============================================================================
# APP INITIALIZATION
# ============================================================================

app = FastAPI(
    title="LeadSync API",
    description="Meta + Google lead ingestion with deduplication and sync audit log",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# ============================================================================
# RATE LIMITING
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from leadsync.middleware.rate_limit import limiter

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE (order matters!)
# ============================================================================

cors_middleware, cors_config = get_cors_middleware()
app.add_middleware(cors_middleware, **cors_config)

app.add_middleware(RequestLoggingMiddleware)

# Global error handler (must be last)
app.add_middleware(ErrorHandlerMiddleware)

# ============================================================================
# ROUTES
# ============================================================================

app.include_router(health_router)
app.include_router(leads_router)
app.include_router(sync_router)

if settings.mock_providers_enabled:
    app.include_router(mock_router)
    logger.info("⚠️  Mock provider feeds enabled at /mock/meta/leads and /mock/google/leads")

logger.info("✅ All routes registered")

# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
