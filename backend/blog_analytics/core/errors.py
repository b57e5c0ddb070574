"""
Error taxonomy and the JSON error handlers installed on the app.

Every error body has the same shape::

    {"success": false, "error": "<code>", "message": "<text>", ...}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_analytics.core.config import get_settings

logger = logging.getLogger(__name__)


class AnalyticsError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "InternalServerError"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra or {}
        self.headers = headers

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "error": self.code, "message": self.message, **self.extra}


class BadRequestError(AnalyticsError):
    """Client must fix the request (400)."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "InvalidRequest"


class EventValidationError(BadRequestError, ValueError):
    """Payload rejected by the event validator."""

    code = "ValidationError"


class RateLimitedError(AnalyticsError):
    """Client exceeded a rate-limit window (429)."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RateLimited"


class StoreFailure(AnalyticsError):
    """
    The event store failed.

    The message sent to the client is fixed per operation; the underlying
    database error is only logged.
    """

    code = "StoreFailure"

    MESSAGES = {
        "create": "Could not record the event",
        "query": "Could not load event statistics",
        "scan": "Could not build the analytics summary",
    }

    def __init__(self, operation: str):
        super().__init__(self.MESSAGES.get(operation, "Internal server error"))
        self.operation = operation


class ContentUnavailable(AnalyticsError):
    """No IPFS gateway returned usable content (502)."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "ContentUnavailable"


def _error_response(
    status_code: int,
    code: str,
    message: str,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": code, "message": message, **extra},
        status_code=status_code,
        headers=headers,
    )


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code, headers=exc.headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "InvalidRequest",
        "Malformed request",
        details=details,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(
            exc.status_code,
            "NotFound",
            f"Route {request.method} {request.url.path} not found",
        )
    return _error_response(
        exc.status_code,
        "HTTPError",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _cors_headers(request: Request) -> Optional[Dict[str, str]]:
    origin = request.headers.get("origin")
    if origin and origin in get_settings().cors_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return None


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all 500.

    Starlette runs this handler outside the CORS middleware, so allowed
    origins get their CORS headers here.
    """
    logger.exception(f"[ERROR] Unhandled error on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "Unexpected server error",
        headers=_cors_headers(request),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
