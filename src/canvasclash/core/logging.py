"""Structured logging configuration for canvasclash.

Game sessions are long-lived WebSocket connections, so the realtime layer binds
``session_id`` into the structlog context variables for the lifetime of each
connection.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(*, debug: bool = False, json_logs: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        debug: Enable debug level logging (timer scheduling, stale timer drops).
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


def bind_session(session_id: str, **context: str) -> None:
    """Bind a connection's session ID (and extra context) to all log lines.

    Args:
        session_id: Transport session identifier of the connection.
        **context: Additional key/value pairs to bind.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(session_id=session_id, **context)


def unbind_session() -> None:
    """Drop all connection-scoped logging context."""
    structlog.contextvars.clear_contextvars()
