from __future__ import annotations

import logging
import sys
from typing import cast

import structlog


def configure_logging(level: str = "INFO", json: bool = True) -> None:
    """Configure structlog for the agent builder.

    Builder, store, provider and deploy events are emitted through structlog
    with dotted event names (``builder.navigated``, ``deploy.failed``) and
    keyword context.  This routes them, and any stdlib ``logging`` records
    from libraries such as httpx, through a single stdout handler.

    Args:
        level: Standard logging level string, e.g. "DEBUG", "INFO", "WARNING".
            Unknown names fall back to INFO.
        json: If True, render log entries as JSON. If False, use coloured console output.
    """
    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def bind_session(builder_id: str, owner_id: str) -> None:
    """Attach a builder session to every log line in the current context."""
    structlog.contextvars.bind_contextvars(builder_id=builder_id, owner_id=owner_id)


def clear_session() -> None:
    structlog.contextvars.unbind_contextvars("builder_id", "owner_id")


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a named structlog logger.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
    """
    return cast(structlog.BoundLogger, structlog.get_logger(name))
