"""
Shared logging configuration for the coalesce wrappers.
"""

import sys
import structlog
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from contextvars import ContextVar

from .config import get_settings

# Context variable naming the wrapper whose function is currently executing
wrapper_var: ContextVar[Optional[str]] = ContextVar('wrapper', default=None)


def configure_logging(service_name: str, log_level: Optional[str] = None) -> None:
    """Configure structured logging for an application using the wrappers.

    ``log_level`` defaults to ``COALESCE_LOG_LEVEL`` from settings.
    """
    if log_level is None:
        log_level = get_settings().log_level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_wrapper_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    # Extract service name from logger name unless bound explicitly
    logger_name = event_dict.get("logger", "")
    if "service" not in event_dict and "." in logger_name:
        event_dict["service"] = logger_name.split(".")[0]

    return event_dict


def add_wrapper_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the name of the executing wrapper to log events."""
    wrapper = wrapper_var.get()
    if wrapper:
        event_dict.setdefault("wrapper", wrapper)

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


@contextmanager
def wrapper_context(name: str) -> Iterator[None]:
    """Bind the wrapper name for log events emitted inside the block."""
    token = wrapper_var.set(name)
    try:
        yield
    finally:
        wrapper_var.reset(token)


def clear_context():
    """Clear all context variables."""
    wrapper_var.set(None)
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
