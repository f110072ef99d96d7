"""
core/logging.py
---------------
Structured logging using structlog.
DEBUG=true  → human-readable console output
DEBUG=false → JSON (for log aggregators like Datadog, CloudWatch)

Every line emitted while serving a request carries request_id, method
and path (bound by the request-context middleware in main.py). Event
keys that could hold a password or token are masked before rendering.
"""

import logging
import sys
import uuid
from typing import Any, MutableMapping

import structlog

from worktrack.core.config import settings

REDACTED = "[redacted]"

SECRET_KEYS = frozenset(
    {
        "password",
        "temporary_password",
        "confirm_password",
        "encrypted_password",
        "access_token",
        "token",
        "authorization",
    }
)


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: mask secret-bearing keys, including one level of nesting."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: REDACTED if str(k).lower() in SECRET_KEYS else v
                for k, v in value.items()
            }
    return event_dict


def bind_request_context(method: str, path: str, request_id: str = "") -> str:
    """Reset the per-request log context and bind the request identity. Returns the request id."""
    request_id = request_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def configure_logging() -> None:
    log_level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if not settings.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.DEBUG
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
