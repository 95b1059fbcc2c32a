"""Structured logging for the Vantage API and its job workers (structlog)."""

import logging
import sys

import structlog

SERVICE_NAME = "vantage-api"

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _add_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route stdlib and structlog records through one structlog formatter.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: JSON lines when True (deployments), colored console otherwise.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, principal: str | None = None) -> None:
    """Bind the trace id (and acting principal, once known) to the current async context."""
    ctx = {"trace_id": trace_id}
    if principal:
        ctx["principal"] = principal
    structlog.contextvars.bind_contextvars(**ctx)


def bind_project_context(project_uuid: str) -> None:
    structlog.contextvars.bind_contextvars(project_uuid=project_uuid)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
