"""
Correlation middleware for request tracing and logging context.

Every HTTP request gets a correlation id (taken from the request header or
generated) that is bound into the structlog context for the request's
duration and echoed back on the response.
"""

import time
import uuid
from typing import cast

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..structured_logging.enhanced_logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

logger = get_logger(__name__)


def _get_header(scope: Scope, name: str) -> str | None:
    """Return first header value for name (case-insensitive) from ASGI scope."""
    name_lower = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == name_lower:
            return cast(str, value.decode("utf-8", errors="replace"))
    return None


class CorrelationMiddleware:  # pylint: disable=too-few-public-methods  # Reason: Middleware class with focused responsibility, minimal public interface
    """Pure ASGI middleware binding a correlation id and player id to the log context."""

    def __init__(self, app: ASGIApp, correlation_header: str = "X-Correlation-ID") -> None:
        self.app = app
        self.correlation_header = correlation_header

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _get_header(scope, self.correlation_header) or str(uuid.uuid4())
        method = scope.get("method", "")
        path = scope.get("path", "")
        player_id = _get_header(scope, "X-Player-Id")

        bind_request_context(
            correlation_id=correlation_id,
            method=method,
            path=path,
            player_id=player_id,
        )
        logger.info("Request started", method=method, path=path)

        started = time.perf_counter()
        status_code = 500
        response_started = False

        async def send_with_correlation_header(message: Message) -> None:
            nonlocal status_code, response_started
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append(self.correlation_header, correlation_id)
                status_code = message.get("status", 500)
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_header)
            if response_started:
                logger.info(
                    "Request completed",
                    status_code=status_code,
                    response_time_ms=round((time.perf_counter() - started) * 1000, 2),
                )
        except Exception as e:
            logger.error("Request failed", error_type=type(e).__name__, error_message=str(e), exc_info=True)
            raise
        finally:
            clear_request_context()
