"""Structured logging configuration using structlog.

Every event carries ``service`` and, inside a request, the ``request_id``,
``method`` and ``path`` bound by the HTTP middleware, plus ``user_id`` once
the session cookie has been resolved.
"""

import logging
import sys

import structlog

from techfeed import __version__
from techfeed.core.config import get_settings

_configured = False

# Never rendered, even when a caller passes them as event fields
_REDACTED_KEYS = frozenset({"password", "password_hash", "session_secret", "cookie", "code"})


def _add_service(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", "techfeed")
    event_dict.setdefault("version", __version__)
    return event_dict


def _redact(logger, method_name: str, event_dict: dict) -> dict:
    for key in _REDACTED_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def bind_request_context(request_id: str, method: str, path: str) -> None:
    """Start a fresh per-request logging context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)


def bind_user(user_id: str) -> None:
    structlog.contextvars.bind_contextvars(user_id=user_id)


def configure_logging(force: bool = False) -> None:
    """Configure structlog with appropriate processors and output format."""
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        _redact,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if settings.app_debug:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn and sqlalchemy log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))
    _configured = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)
