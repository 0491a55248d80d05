"""
Structlog-based logging configuration for the realm server.

Provides request-scoped context (correlation ids, player ids) through
structlog contextvars, sanitisation of sensitive keys, and per-subsystem
rotating log files under ``<log_base>/<environment>/``.

CORRECT USAGE:
    from realm.structured_logging.enhanced_logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Queue iteration finished", queue_id=queue.id, completed=queue.completed)
"""

import json
import logging
import os
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

_LOGGING_INITIALIZED = False
_LOGGING_SIGNATURE: str | None = None

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SENSITIVE_KEYS = ("password", "token", "secret", "credential", "authorization", "api_key")

# One file per subsystem; a logger name matches a category when it starts with the prefix.
LOG_CATEGORIES: dict[str, list[str]] = {
    "server": ["realm.app", "realm.cli", "uvicorn"],
    "persistence": ["realm.database", "realm.models", "sqlalchemy"],
    "api": ["realm.api"],
    "world": [
        "realm.services.world_tick_service",
        "realm.game.calendar_service",
        "realm.game.food_consumption_service",
        "realm.game.npc_lifecycle_service",
        "realm.game.npc_reproduction_service",
        "realm.game.resource_decay_service",
    ],
    "actions": ["realm.services.action_queue_processor", "realm.game.action_queue_service"],
    "combat": ["realm.game.combat_service"],
    "economy": [
        "realm.game.bank_service",
        "realm.game.market_service",
        "realm.game.dice_game_service",
        "realm.game.minigame_service",
    ],
    "game": ["realm.game"],
}


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        "unit_test" under pytest, otherwise LOGGING_ENVIRONMENT or "local".
    """
    if "pytest" in sys.modules:
        return "unit_test"
    env = os.getenv("LOGGING_ENVIRONMENT", "")
    if env in ("local", "unit_test", "production"):
        return env
    return "local"


def _resolve_log_base(log_base: str) -> Path:
    """Resolve a relative log directory against the project root (where pyproject.toml lives)."""
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path
    current_dir = Path.cwd()
    for parent in [current_dir, *current_dir.parents]:
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact values whose key looks like a credential."""

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif isinstance(key, str) and any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Ensure every entry carries a correlation id for tracing."""
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())
    return event_dict


def configure_enhanced_structlog(log_level: str = "INFO") -> None:
    """Configure structlog processors and route output through stdlib logging."""
    processors: list[Any] = [
        sanitize_sensitive_data,
        merge_contextvars,
        add_correlation_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"]),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )
    logging.getLogger().setLevel(getattr(logging, str(log_level).upper(), logging.INFO))


def _make_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """Attach one rotating handler per subsystem plus warnings/errors aggregators."""
    env_log_dir = _resolve_log_base(log_config.get("log_base", "logs")) / environment
    rotation = log_config.get("rotation", {})
    max_bytes = int(rotation.get("max_bytes", 10 * 1024 * 1024))
    backup_count = int(rotation.get("backup_count", 5))
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    for log_file, prefixes in LOG_CATEGORIES.items():
        handler = _make_handler(env_log_dir / f"{log_file}.log", logging.DEBUG, max_bytes, backup_count)
        for prefix in prefixes:
            target_logger = logging.getLogger(prefix)
            target_logger.addHandler(handler)
            target_logger.setLevel(level)
            target_logger.propagate = True

    root_logger = logging.getLogger()
    root_logger.addHandler(_make_handler(env_log_dir / "warnings.log", logging.WARNING, max_bytes, backup_count))
    root_logger.addHandler(_make_handler(env_log_dir / "errors.log", logging.ERROR, max_bytes, backup_count))
    root_logger.addHandler(_make_handler(env_log_dir / "console.log", level, max_bytes, backup_count))


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the application config dict (``AppConfig.to_dict()``).

    Repeated calls with the same configuration are ignored unless
    ``force_reconfigure`` is set.
    """
    global _LOGGING_INITIALIZED  # pylint: disable=global-statement
    global _LOGGING_SIGNATURE  # pylint: disable=global-statement

    signature = json.dumps(config, sort_keys=True, default=str)
    if _LOGGING_INITIALIZED and not force_reconfigure and signature == _LOGGING_SIGNATURE:
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(log_level)
    if not logging_config.get("disable_logging", False):
        _setup_file_logging(environment, logging_config, log_level)

    get_logger("realm.structured_logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )
    _LOGGING_INITIALIZED = True
    _LOGGING_SIGNATURE = signature


def bind_request_context(correlation_id: str | None = None, user_id: int | None = None, **kwargs: Any) -> None:
    """Bind request context so every entry logged during the request includes it."""
    context_vars = {"correlation_id": correlation_id or str(uuid.uuid4()), "user_id": user_id, **kwargs}
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_request_context() -> None:
    """Clear the current request context from logging."""
    clear_contextvars()


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
