"""Structured logging.

structlog renders every event as JSON (deployments) or through the console
renderer (development). Request and run identifiers travel in structlog's
context variables, so any logger used while handling a request picks them up.
"""

import logging
import sys
from typing import Any
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "clinical-agents"
CORRELATION_KEY = "correlation_id"

# Third-party loggers that log every HTTP round trip at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "uvicorn.access")


def get_correlation_id() -> str | None:
    """Correlation ID bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get(CORRELATION_KEY)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID (a fresh UUID when omitted) and return it."""
    correlation_id = correlation_id or str(uuid4())
    structlog.contextvars.bind_contextvars(**{CORRELATION_KEY: correlation_id})
    return correlation_id


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars(CORRELATION_KEY)


def add_app_name(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _build_processors(json_format: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_name,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.rich_traceback,
            )
        )
    return processors


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines when True, console rendering otherwise
        log_file: Also write events to this file
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=_build_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Module-level structured logger."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


class LoggerAdapter:
    """Logger that carries fixed context such as a session id or agent name.

    ``bind`` and ``unbind`` return new adapters; the original keeps its
    context.
    """

    def __init__(self, name: str | None = None, **context: Any):
        self._name = name
        self._context = dict(context)
        self._logger = get_logger(name)

    def bind(self, **context: Any) -> "LoggerAdapter":
        return LoggerAdapter(self._name, **{**self._context, **context})

    def unbind(self, *keys: str) -> "LoggerAdapter":
        remaining = {k: v for k, v in self._context.items() if k not in keys}
        return LoggerAdapter(self._name, **remaining)

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def _emit(self, method: str, event: str, fields: dict[str, Any]) -> None:
        getattr(self._logger, method)(event, **{**self._context, **fields})

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        self._emit("exception", event, fields)


def get_agent_logger(agent_name: str) -> LoggerAdapter:
    """Logger for one agent, e.g. ``get_agent_logger("ClinicalDataExtractor")``."""
    return LoggerAdapter("agent", agent_name=agent_name)


def get_session_logger(session_id: str) -> LoggerAdapter:
    """Logger for one chat session's orchestrator."""
    return LoggerAdapter("session", session_id=session_id)


def get_api_logger() -> LoggerAdapter:
    return LoggerAdapter("api")
