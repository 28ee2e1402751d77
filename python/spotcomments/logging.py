"""Structured logging for the API and the client library.

structlog renders every record, including records emitted through stdlib
``logging.getLogger`` (uvicorn, httpx, the auth middleware). Request-scoped
fields are carried in structlog's contextvars and merged into each event:

- request_id: X-Request-ID of the request being served
- user_id: Internal id of the validated session user, once known
- path / method: Raw request path (no query string) and HTTP method

Usage:
    from spotcomments.logging import get_logger

    logger = get_logger(__name__)
    logger.info("comment_created", comment_id=comment.id)
"""

import logging
import os
import sys

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    merge_contextvars,
)

LOG_FORMAT_ENV = "LOG_FORMAT"
LOG_LEVEL_ENV = "LOG_LEVEL"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(json_format: bool | None = None, level: str | None = None) -> None:
    """Install structlog rendering on the root logger.

    Args:
        json_format: JSON lines when True, console output when False. Defaults
            to LOG_FORMAT ("json" unless set to "console").
        level: Root level name. Defaults to LOG_LEVEL, then INFO.
    """
    if json_format is None:
        json_format = os.environ.get(LOG_FORMAT_ENV, "json").lower() != "console"
    level = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()

    pre_chain = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request(request_id: str, path: str, method: str) -> None:
    """Start a fresh logging context for one request."""
    clear_contextvars()
    bind_contextvars(request_id=request_id, path=path, method=method)


def bind_user(user_id: str) -> None:
    bind_contextvars(user_id=user_id)


def clear_request_context() -> None:
    clear_contextvars()


def get_request_id() -> str | None:
    """Request id of the request being served, if any."""
    return get_contextvars().get("request_id")
