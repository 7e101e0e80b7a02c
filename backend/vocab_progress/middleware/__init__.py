"""Middleware package."""

from vocab_progress.middleware.error_handling import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ErrorHandlingMiddleware,
    NotFoundError,
    ServiceError,
    TransientStorageError,
    ValidationError,
    setup_error_handling,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "ErrorHandlingMiddleware",
    "NotFoundError",
    "ServiceError",
    "TransientStorageError",
    "ValidationError",
    "setup_error_handling",
]
