"""Structured logging configuration using structlog.

Every entry carries the context fields bound for the current task:
- request_id, path, method: set by RequestIDMiddleware for each request
- page_id, flow_id: set at the start of an accept-flow pipeline

Usage:
    from valentine.logging import get_logger

    logger = get_logger(__name__)
    logger.info("acceptance_recorded", page_id=page_id)

Accept-flow pipelines are detached asyncio tasks. A task copies the context
it was created in, so its entries keep the triggering request's request_id
after the response has been sent.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog


_log_context: ContextVar[dict[str, str]] = ContextVar("valentine_log_context", default={})

# Loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "asyncio")


def _bind(**fields: str | None) -> None:
    context = dict(_log_context.get())
    for key, value in fields.items():
        if value is None:
            context.pop(key, None)
        else:
            context[key] = value
    _log_context.set(context)


def add_log_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor merging bound context into the event.

    Keyword arguments passed to the log call win over context values.
    """
    for key, value in _log_context.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        json_format: JSON lines if True, otherwise the structlog console renderer.
        level: Root log level name.
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_log_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Bind request fields for the current context. path never has a query string."""
    _bind(request_id=request_id, path=path, method=method)


def bind_flow_context(page_id: str, flow_id: str) -> None:
    """Bind accept-flow correlation fields for the current task."""
    _bind(page_id=page_id, flow_id=flow_id)


def clear_request_context() -> None:
    _log_context.set({})


def get_request_id() -> str | None:
    return _log_context.get().get("request_id")
