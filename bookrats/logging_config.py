"""Structured logging for the API.

structlog renders every record, including records emitted through the
standard library by uvicorn, SQLAlchemy and botocore. Production writes
one JSON object per line; everything else gets the coloured console view.
Values bound with `bind_context` (request_id, user_id, group_id) are
merged into each event of the current request.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor

# Third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "botocore": logging.WARNING,
    "aiobotocore": logging.WARNING,
}

_handler: logging.Handler | None = None


def _pre_chain(use_json: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if use_json:
        processors.append(structlog.processors.format_exc_info)
    else:
        processors.append(structlog.dev.set_exc_info)
    return processors


def _build_handler(pre_chain: list[Processor], use_json: bool, stream: TextIO) -> logging.Handler:
    renderer: Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    app_env: str = "development",
    stream: TextIO | None = None,
) -> None:
    """Install the structlog pipeline on the root logger.

    Args:
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR)
        json_logs: Force JSON output outside production
        app_env: Application environment; production always logs JSON
        stream: Destination, stdout by default
    """
    use_json = json_logs or app_env == "production"
    pre_chain = _pre_chain(use_json)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = _build_handler(pre_chain, use_json, stream or sys.stdout)
    root.addHandler(_handler)
    root.setLevel(log_level.upper())

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger for a module, e.g. `get_logger(__name__)`."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach values to every later log call in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
