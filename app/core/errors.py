"""
Error Handling
==============

Standardized error codes, webhook domain exceptions and exception handlers.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Webhooks (WEBHOOK_*)
    WEBHOOK_NOT_CONFIGURED = "WEBHOOK_NOT_CONFIGURED"
    WEBHOOK_MISSING_AUTH = "WEBHOOK_MISSING_AUTH"
    WEBHOOK_INVALID_SIGNATURE = "WEBHOOK_INVALID_SIGNATURE"
    WEBHOOK_MISSING_EVENT_HEADER = "WEBHOOK_MISSING_EVENT_HEADER"
    WEBHOOK_INVALID_PAYLOAD = "WEBHOOK_INVALID_PAYLOAD"
    WEBHOOK_INVALID_EVENT = "WEBHOOK_INVALID_EVENT"

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# HTTP Exceptions
# =============================================================================

class AppException(HTTPException):
    """
    Base application exception with structured error response.

    Rendered as ``{"error": ..., "code": ..., "message": ...}``.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        code: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.error = error
        self.code = code
        self.message = message or error

        detail = {"error": error, "message": self.message}
        if code:
            detail["code"] = code

        super().__init__(status_code=status_code, detail=detail)


class AuthenticationError(AppException):
    """Missing or invalid webhook credentials."""

    def __init__(
        self,
        error: str = "Unauthorized",
        code: Optional[str] = ErrorCodes.WEBHOOK_INVALID_SIGNATURE,
        message: Optional[str] = None,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error=error,
            code=code,
            message=message,
        )


class BadRequestError(AppException):
    """Request is not a structurally valid webhook delivery."""

    def __init__(
        self,
        error: str,
        code: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error=error,
            code=code,
            message=message,
        )


class ConfigurationError(AppException):
    """Server-side configuration is missing (e.g. shared secret)."""

    def __init__(
        self,
        error: str = "Webhook secret not configured",
        code: Optional[str] = ErrorCodes.WEBHOOK_NOT_CONFIGURED,
        message: Optional[str] = None,
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=error,
            code=code,
            message=message,
        )


# =============================================================================
# Webhook Domain Exceptions
# =============================================================================

class WebhookProcessingError(Exception):
    """Base class for failures while turning a delivery into a state change."""


class MalformedPayload(WebhookProcessingError):
    """Body is not well-formed JSON."""


class InvalidEventShape(WebhookProcessingError):
    """Body parsed but required event fields are missing or mistyped."""


class UnknownSubject(WebhookProcessingError):
    """Subject identity does not resolve to a user."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__("User not found")


class UnrecognizedEventType(WebhookProcessingError):
    """Event type has no entitlement mapping."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type}")


class StorageFault(WebhookProcessingError):
    """User store lookup or write failed."""


# =============================================================================
# Exception Handlers
# =============================================================================

async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handler for AppException."""
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handler for standard HTTPException."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = {
            "error": str(exc.detail),
            "message": str(exc.detail),
        }

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "code": ErrorCodes.INTERNAL_ERROR,
            "message": "An unexpected error occurred",
        },
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with FastAPI app.

    Usage:
        from app.core.errors import setup_exception_handlers
        setup_exception_handlers(app)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
