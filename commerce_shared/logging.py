"""
Shared logging configuration for the commerce grants client.
"""

import sys
import structlog
import logging
import uuid
from typing import Any, Dict, Iterable, Optional
from contextvars import ContextVar

# Context variable for correlation IDs
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

# Keys whose values never reach a log sink. Compared case-insensitively.
SENSITIVE_KEYS = frozenset({
    "password",
    "refresh_token",
    "access_token",
    "client_secret",
    "authorization",
})

DEFAULT_MASK = "********"


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for a service."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context(service_name),
            add_correlation_context,
            mask_sensitive_data,
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
    )


def add_service_context(service_name: str):
    """Build a processor stamping every event with the service name."""

    def processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation context to log events."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    return event_dict


def mask_value(value: Any, keys: Iterable[str] = SENSITIVE_KEYS, mask: str = DEFAULT_MASK) -> Any:
    """
    Return a copy of ``value`` with every sensitive key masked.

    Dicts and lists are walked recursively; anything else is returned as is.
    """
    lowered = {k.lower() for k in keys}
    if isinstance(value, dict):
        return {
            k: mask if isinstance(k, str) and k.lower() in lowered else mask_value(v, lowered, mask)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(mask_value(v, lowered, mask) for v in value)
    return value


def mask_sensitive_data(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Processor masking credentials and tokens before rendering."""
    return mask_value(event_dict)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def clear_context():
    """Clear all context variables."""
    request_id_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
