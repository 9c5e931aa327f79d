"""
Global Error Handler Middleware
Catches all unhandled exceptions and returns structured error responses
"""
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from leadsync.services.sync.errors import PersistenceError

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handler middleware.
    Record store outages become 503 (retryable); anything else is a 500.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except PersistenceError as exc:
            logger.error(f"Record store unavailable during {request.method} {request.url.path}: {exc}")
            return JSONResponse(
                status_code=503,
                content={
                    "ok": False,
                    "detail": "Record store unavailable",
                    "error_type": type(exc).__name__,
                    "path": request.url.path
                }
            )
        except Exception as exc:
            logger.error(
                "Unhandled exception during request",
                exc_info=True,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "detail": "Internal server error",
                    "error_type": type(exc).__name__,
                    "path": request.url.path
                }
            )
