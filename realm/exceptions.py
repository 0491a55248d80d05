"""
Exception hierarchy for the realm server.

Game-rule refusals (not enough gold, wrong location, cooldowns) are not
exceptions: services report them in their result dicts. The classes here
cover everything that is a genuine fault or a missing record.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Structured context attached to errors for reporting and debugging."""

    user_id: int | None = None
    location_type: str | None = None
    location_id: int | None = None
    action: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "location_type": self.location_type,
            "location_id": self.location_id,
            "action": self.action,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class RealmError(Exception):
    """
    Base exception for all realm server errors.

    Logs itself on construction so a raised error is never silent.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)
        self._log_error()

    def _log_error(self) -> None:
        logger.error(
            "Realm error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class DatabaseError(RealmError):
    """Database operation errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        operation: str = "unknown",
        table: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.table = table
        self.details["operation"] = operation
        if table:
            self.details["table"] = table


class ValidationError(RealmError):
    """Data validation errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,  # pylint: disable=redefined-outer-name
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class GameLogicError(RealmError):
    """Broken game state: an invariant the rules rely on does not hold."""

    def __init__(self, message: str, context: ErrorContext | None = None, game_action: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.game_action = game_action
        if game_action:
            self.details["game_action"] = game_action


class ConfigurationError(RealmError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class AuthorizationError(RealmError):
    """The acting player may not touch the requested record."""


class ResourceNotFoundError(RealmError):
    """Resource not found errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        resource_type: str | None = None,
        resource_id: int | str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_type:
            self.details["resource_type"] = resource_type
        if resource_id is not None:
            self.details["resource_id"] = str(resource_id)


class LoggedHTTPException(HTTPException):
    """HTTPException that logs itself with its error context."""

    def __init__(self, status_code: int, detail: Any = None, context: ErrorContext | None = None, **kwargs):
        super().__init__(status_code=status_code, detail=detail, **kwargs)
        self.context = context or ErrorContext()
        logger.warning(
            "HTTP error raised",
            status_code=status_code,
            detail=detail,
            context=self.context.to_dict(),
        )


def create_error_context(**kwargs) -> ErrorContext:
    """Create an error context with the given values."""
    return ErrorContext(**kwargs)


class ActionRejected(Exception):
    """
    A game rule refused the player's action.

    Not an error: raised so the request's unit of work rolls back whatever
    the service touched before it refused. ``body`` is the response envelope.
    """

    def __init__(self, body: dict[str, Any]):
        super().__init__(body.get("message", ""))
        self.body = body
