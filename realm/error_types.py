"""
Centralized error types and constants for the realm server.

Used by the HTTP exception handlers so every error body has the same shape.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_DENIED = "authorization_denied"

    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"

    RESOURCE_NOT_FOUND = "resource_not_found"

    GAME_LOGIC_ERROR = "game_logic_error"
    GAME_RULE_REJECTED = "game_rule_rejected"

    DATABASE_ERROR = "database_error"

    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"


class ErrorSeverity(Enum):
    """Error severity levels for logging and handling."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
) -> dict[str, Any]:
    """
    Create a standardized error response.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)
        severity: Error severity level (optional)
    """
    return {
        "success": False,
        "message": user_friendly or message,
        "error": {
            "type": error_type.value,
            "message": message,
            "details": details or {},
            "severity": severity.value,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    }


class ErrorMessages:
    """Common error messages for consistent user experience."""

    AUTHENTICATION_REQUIRED = "Authentication required"
    PLAYER_NOT_FOUND = "Player not found"
    RESOURCE_NOT_FOUND = "Resource not found"
    INVALID_INPUT = "Invalid input provided"
    INTERNAL_ERROR = "An internal error occurred"
    NOT_AUTHORIZED = "You are not allowed to do that"
