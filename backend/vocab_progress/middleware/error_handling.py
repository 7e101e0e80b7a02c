"""
Error Handling Middleware

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for the engine's error kinds

Usage:
    from vocab_progress.middleware.error_handling import (
        ErrorHandlingMiddleware,
        ValidationError,
    )

    # Add middleware to app
    app.add_middleware(ErrorHandlingMiddleware)

    # Raise custom exceptions from services
    raise ValidationError("Rating must be between 1 and 5")

Exception handling hierarchy:
    - HTTPException: Re-raised for FastAPI's built-in handler
    - ServiceError: Custom exceptions → structured JSON response
    - Exception: Catch-all for unexpected errors → sanitized response

    Caveat: BaseHTTPMiddleware cannot catch exceptions raised after the
    response body starts streaming (not an issue for JSON APIs).
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================


class ErrorResponse(BaseModel):
    """Standardized error response."""

    error: str  # Error code (e.g., "validation_error")
    message: str  # Human-readable message
    error_id: str  # For log correlation
    details: Optional[dict] = None  # Additional context (sanitized)
    timestamp: datetime


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("League close-out failed", status_code=500)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised for caller-avoidable input problems: a rating outside [1, 5],
    a non-positive XP amount, an unknown user or item.
    """

    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a required membership, league or study session is missing.
    """

    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """
    Concurrent write conflict.

    Raised on unique-constraint violations during first-time creation and
    on stale optimistic version checks. Services retry these once.
    """

    status_code = 409
    error_code = "conflict"


class TransientStorageError(ServiceError):
    """
    Storage temporarily unavailable.

    Raised when the database cannot be reached. Callers may retry.
    """

    status_code = 503
    error_code = "storage_unavailable"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details={**(details or {}), "retryable": True})


class AuthenticationError(ServiceError):
    """
    Missing caller identity.

    Raised when the gateway did not forward an authenticated user id.
    """

    status_code = 401
    error_code = "unauthenticated"


class AuthorizationError(ServiceError):
    """
    Authorization error.

    Raised when the caller is not allowed to run an operator action.
    """

    status_code = 403
    error_code = "forbidden"


# =============================================================================
# Error Handling Middleware
# =============================================================================


def _public_details(error: ServiceError, debug: bool) -> Optional[dict]:
    """Details safe to return to the caller."""
    if debug:
        return error.details
    if isinstance(error, TransientStorageError):
        return {"retryable": True}
    return None


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    error_id: str,
    details: Optional[dict] = None,
    include_details: bool = True,
) -> JSONResponse:
    body = ErrorResponse(
        error=error_code,
        message=message,
        error_id=error_id,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )
    exclude = None if include_details else {"details"}
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude=exclude),
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turns exceptions escaping the routers into JSON error responses.

    ServiceError subclasses keep their status code and error code; 5xx
    kinds are logged as errors, caller mistakes as warnings. Anything else
    becomes a 500 whose message reveals nothing unless debug is on.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        error_id = uuid4().hex[:8]
        context = {
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
        }

        try:
            return await call_next(request)

        except HTTPException:
            # FastAPI renders these itself
            raise

        except ServiceError as e:
            log = logger.error if e.status_code >= 500 else logger.warning
            log(
                f"[{error_id}] {e.error_code} on {request.method} {request.url.path}: {e.message}",
                extra={**context, "error_code": e.error_code, "details": e.details},
            )
            return _error_response(
                e.status_code,
                e.error_code,
                e.message,
                error_id,
                details=_public_details(e, self.debug),
            )

        except Exception as e:
            trace = traceback.format_exc()
            logger.error(
                f"[{error_id}] Unhandled {type(e).__name__}: {e}",
                extra={**context, "traceback": trace},
            )
            if self.debug:
                return _error_response(
                    500,
                    "internal_server_error",
                    "An unexpected error occurred",
                    error_id,
                    details={"exception": type(e).__name__, "message": str(e), "traceback": trace},
                )
            return _error_response(
                500,
                "internal_server_error",
                "An unexpected error occurred",
                error_id,
                include_details=False,
            )


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
