"""
Error logging utilities for the realm server.

Standard helpers so every raise is preceded by one structured log entry
carrying the same context the exception holds.
"""

import traceback
from typing import Any, NoReturn

from fastapi import Request
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..exceptions import (
    DatabaseError,
    ErrorContext,
    RealmError,
    ValidationError,
    create_error_context,
)
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Maps library exceptions onto the realm error taxonomy.
THIRD_PARTY_EXCEPTION_MAPPING: dict[type[Exception], type[RealmError]] = {
    IntegrityError: DatabaseError,
    OperationalError: DatabaseError,
    SQLAlchemyError: DatabaseError,
    ValueError: ValidationError,
}


def log_and_raise(
    exception_class: type[RealmError],
    message: str,
    context: ErrorContext | None = None,
    details: dict[str, Any] | None = None,
    user_friendly: str | None = None,
    logger_name: str | None = None,
    **kwargs: Any,
) -> NoReturn:
    """
    Log an error and raise a realm exception.

    Args:
        exception_class: The realm exception class to raise
        message: Technical error message
        context: Error context information
        details: Additional error details
        user_friendly: User-friendly error message
        logger_name: Specific logger name to use (defaults to current module)
        **kwargs: Extra keyword arguments for the exception class (operation, field, ...)

    Raises:
        The specified realm exception
    """
    error_logger = get_logger(logger_name) if logger_name else logger
    if context is None:
        context = create_error_context()

    error_logger.error(
        f"Error logged and exception raised: {message}",
        error_type=exception_class.__name__,
        details=details or {},
        user_friendly=user_friendly,
    )
    raise exception_class(
        message=message,
        context=context,
        details=details,
        user_friendly=user_friendly,
        **kwargs,
    )


def create_context_from_request(request: Request | None) -> ErrorContext:
    """Build an error context from a FastAPI request (None in tests)."""
    if request is None:
        return create_error_context(metadata={"path": "unknown", "method": "unknown"})

    user_id = getattr(request.state, "user_id", None) if hasattr(request, "state") else None
    return create_error_context(
        user_id=user_id,
        request_id=request.headers.get("x-request-id"),
        metadata={
            "path": str(request.url.path),
            "method": request.method,
            "user_agent": request.headers.get("user-agent", ""),
            "remote_addr": request.client.host if request.client else "",
        },
    )


def wrap_third_party_exception(exc: Exception, context: ErrorContext | None = None) -> RealmError:
    """
    Wrap a library exception in the matching realm error.

    The first mapping entry the exception is an instance of wins; anything
    unmapped becomes a plain RealmError.
    """
    error_class: type[RealmError] = RealmError
    for source_class, target_class in THIRD_PARTY_EXCEPTION_MAPPING.items():
        if isinstance(exc, source_class):
            error_class = target_class
            break
    else:
        logger.warning("Unmapped third-party exception", original_type=type(exc).__name__, original_message=str(exc))

    return error_class(
        message=f"Third-party exception: {exc}",
        context=context or create_error_context(),
        details={
            "original_type": type(exc).__name__,
            "original_message": str(exc),
            "traceback": traceback.format_exc(),
        },
        user_friendly="An internal error occurred. Please try again.",
    )
