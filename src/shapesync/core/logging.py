"""Structured logging setup and ASGI logging middleware for shapesync.

HTTP requests and WebSocket sessions both get a correlation id bound into the
structlog context, so every event emitted while serving them can be traced
back to one client.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from litestar.types import ASGIApp, Message, Receive, Scope, Send


def configure_logging(*, debug: bool = False, json_logs: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        debug: Enable debug level logging.
        json_logs: Output logs as JSON (for production).
    """
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


class CorrelationIdMiddleware:
    """Bind a correlation id to every HTTP request and WebSocket session.

    The id is taken from the X-Correlation-ID or X-Request-ID header when the
    client sends one, otherwise generated. It is stored in the scope state,
    bound to the structlog context and echoed on HTTP responses.
    """

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
        """
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Process the scope and add the correlation ID."""
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = (
            _header(scope, b"x-correlation-id") or _header(scope, b"x-request-id") or str(uuid.uuid4())
        )

        scope.setdefault("state", {})["correlation_id"] = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            path=scope.get("path", ""),
            scope_type=scope["type"],
        )

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-correlation-id", correlation_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            structlog.contextvars.clear_contextvars()


class RequestLoggingMiddleware:
    """Log completion of HTTP requests and WebSocket sessions.

    HTTP requests are logged with status code and duration; WebSocket
    sessions with the close code the server sent, if any, and duration.
    """

    def __init__(self, app: ASGIApp, *, exclude_paths: set[str] | None = None) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            exclude_paths: Paths to exclude from logging (e.g., health checks).
        """
        self.app = app
        self.exclude_paths = exclude_paths or {"/health", "/ready"}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Process the scope and log its outcome."""
        if scope["type"] not in ("http", "websocket") or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        logger = structlog.get_logger(__name__)
        start_time = time.perf_counter()
        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        outcome: dict[str, int | None] = {"status_code": 500 if scope["type"] == "http" else None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                outcome["status_code"] = message.get("status", 500)
            elif message["type"] == "websocket.close":
                outcome["close_code"] = message.get("code", 1000)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Request failed with exception", client_ip=client_ip)
            raise
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            if scope["type"] == "websocket":
                logger.info(
                    "WebSocket session ended",
                    close_code=outcome.get("close_code"),
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                )
            else:
                status_code = outcome["status_code"] or 500
                if status_code >= 500:
                    log_method = logger.error
                elif status_code >= 400:
                    log_method = logger.warning
                else:
                    log_method = logger.info

                log_method(
                    "Request completed",
                    status_code=status_code,
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                )


def get_middleware() -> list:
    """Get the logging middleware stack.

    Returns:
        List of middleware classes in the order they should be applied.
    """
    return [
        CorrelationIdMiddleware,
        RequestLoggingMiddleware,
    ]
