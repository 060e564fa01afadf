"""GardenBridge — Structured logging configuration.

structlog renders both our own events and stdlib records (uvicorn,
websockets) through one formatter.  Every record carries timestamp, level and
logger name, plus whichever of ``request_id``, ``command`` and
``connection_id`` the current task has bound.

Secrets that travel through the handshake (gateway and device tokens, API
token, signatures) are masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

_CONTEXT: dict[str, ContextVar[str | None]] = {
    key: ContextVar(key, default=None) for key in ("request_id", "command", "connection_id")
}

_SECRET_KEYS = frozenset({"token", "device_token", "api_token", "signature", "private_key"})
_MASK = "***"


def bind_invocation_context(
    request_id: str | None = None,
    command: str | None = None,
    connection_id: str | None = None,
) -> None:
    """Bind invocation fields to the current task; ``None`` leaves a field as is."""
    for key, value in (
        ("request_id", request_id),
        ("command", command),
        ("connection_id", connection_id),
    ):
        if value is not None:
            _CONTEXT[key].set(value)


def clear_invocation_context() -> None:
    for var in _CONTEXT.values():
        var.set(None)


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


def _add_invocation_context(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    for key, var in _CONTEXT.items():
        value = var.get()
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def _mask_secrets(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    for key in _SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = _MASK
    return event_dict


def _drop_color_message(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    # uvicorn duplicates the message with ANSI codes.
    event_dict.pop("color_message", None)
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Safe to call more than once; each call replaces the root handlers.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` or ``"json"``.
        log_file: Optional file that receives the same records as stdout.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_invocation_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _mask_secrets,
        _drop_color_message,
    ]

    renderer: Any
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level.upper())

    for noisy in ("uvicorn.access", "httpx", "httpcore", "asyncio", "websockets"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("command_routed", command="file.read", duration_ms=1.4)
    """
    return structlog.get_logger(name)
