"""Logging helpers integrating structlog and loguru with run context."""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Mapping, TextIO
from types import FrameType

import structlog
from loguru import logger as loguru_logger

__all__ = [
    "DEFAULT_LEVEL",
    "TRACE_LEVEL",
    "coerce_level",
    "configure_logging",
    "generate_run_id",
    "get_logger",
    "get_run_id",
    "run_context",
]

DEFAULT_LEVEL = "INFO"
TRACE_LEVEL = 5

_RUN_ID: ContextVar[str | None] = ContextVar("run_id", default=None)
_CONFIGURED: bool = False
_SERVICE_NAME: str | None = None

# Level names accepted from the environment that the stdlib does not know.
_LEVEL_ALIASES: dict[str, str] = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
    "PANIC": "CRITICAL",
}

logging.addLevelName(TRACE_LEVEL, "TRACE")


def _format_record(record: Mapping[str, Any]) -> str:
    """Return the loguru format string for structured log output."""

    timestamp = record["time"].isoformat()
    level = record["level"].name
    extra = record.get("extra") or {}
    service = extra.get("service", "-")
    run_id = extra.get("run_id") or "-"
    message = record.get("message", "")
    if not isinstance(message, str):
        message = str(message)
    # loguru still treats the returned value as a ``str.format`` template and
    # structlog messages are JSON payloads.
    message = message.replace("{", "{{").replace("}", "}}")
    return f"{timestamp} | {level:<8} | {service} | {run_id} | {message}\n"


def coerce_level(level: str | int | None) -> tuple[int, str]:
    """Normalize ``level`` to logging and loguru compatible representations.

    Unknown or empty values fall back to ``INFO``.
    """

    if isinstance(level, int):
        numeric = level
    else:
        candidate = (level or DEFAULT_LEVEL).strip().upper()
        candidate = _LEVEL_ALIASES.get(candidate, candidate)
        normalized = logging.getLevelName(candidate)
        numeric = normalized if isinstance(normalized, int) else logging.INFO
    name = logging.getLevelName(numeric)
    if not isinstance(name, str) or name.startswith("Level "):
        return logging.INFO, DEFAULT_LEVEL
    return numeric, name


def get_run_id() -> str | None:
    """Return the run identifier bound to the current context, if any."""

    return _RUN_ID.get()


def generate_run_id() -> str:
    """Return a new opaque run identifier."""

    return uuid.uuid4().hex


class LoguruInterceptHandler(logging.Handler):
    """Route standard logging records through Loguru while preserving context."""

    def emit(
        self, record: logging.LogRecord
    ) -> None:  # pragma: no cover - thin wrapper
        level: str | int
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        bound = loguru_logger.bind(logger=record.name)
        run_id = get_run_id()
        if run_id:
            bound = bound.bind(run_id=run_id)

        bound.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _configure_structlog() -> None:
    """Configure structlog to emit JSON payloads with context variables."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *,
    service_name: str | None = None,
    level: str | int | None = DEFAULT_LEVEL,
    sink: TextIO | None = None,
) -> None:
    """Configure loguru/structlog integration for the current process.

    Log records are written to ``sink``, standard error by default, leaving
    standard output to the rewritten dump. The configuration step is
    idempotent; ``service_name`` is attached to every structured entry.
    """

    global _CONFIGURED, _SERVICE_NAME

    numeric_level, level_name = coerce_level(level)

    if not _CONFIGURED:
        loguru_logger.remove()
        loguru_logger.add(
            sink or sys.stderr,
            level=level_name,
            enqueue=False,
            backtrace=False,
            diagnose=False,
            format=_format_record,
        )

        logging.basicConfig(
            handlers=[LoguruInterceptHandler()],
            level=numeric_level,
            force=True,
        )
        logging.captureWarnings(True)

        _configure_structlog()
        _CONFIGURED = True

    if service_name:
        _SERVICE_NAME = service_name
        loguru_logger.configure(extra={"service": service_name})
        structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog bound logger with the given ``name``."""

    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


@contextmanager
def run_context(run_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Bind ``run_id`` and extra context for the lifetime of the block."""

    extra.pop("run_id", None)

    rid = run_id or generate_run_id()
    token = _RUN_ID.set(rid)
    context_values = dict(extra)
    if _SERVICE_NAME and "service" not in context_values:
        context_values["service"] = _SERVICE_NAME

    context_api = structlog.contextvars
    previous_context = context_api.get_contextvars()

    context_api.bind_contextvars(run_id=rid, **context_values)

    bound_keys = list(dict.fromkeys(["run_id", *context_values.keys()]))

    with loguru_logger.contextualize(run_id=rid, **extra):
        try:
            yield rid
        finally:
            context_api.unbind_contextvars(*bound_keys)
            if previous_context:
                restore: dict[str, Any] = {
                    key: previous_context[key]
                    for key in bound_keys
                    if key in previous_context
                }
                if restore:
                    context_api.bind_contextvars(**restore)
            _RUN_ID.reset(token)
