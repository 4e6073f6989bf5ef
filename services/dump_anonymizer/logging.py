"""Logging utilities for the dump anonymizer.

This module wraps the shared observability helpers so every run emits
structured JSON diagnostics to standard error, tagged with the service name
and a per-run identifier, and closes with a single summary entry.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from shared.observability.logger import (
    configure_logging as _base_configure_logging,
    get_logger as _get_logger,
    run_context,
)

from .config import LoggingSettings

__all__ = [
    "RunSummary",
    "configure_logging",
    "dump_logging_context",
    "get_logger",
    "record_run_summary",
]

_SUMMARY_LOGGER = _get_logger("dump_anonymizer.summary")


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structured logging for an anonymizer run."""

    settings = settings or LoggingSettings()
    _base_configure_logging(service_name=settings.service_name, level=settings.level)


def get_logger(name: str | None = None):
    """Return a structlog bound logger."""

    return _get_logger(name)


@contextmanager
def dump_logging_context(
    *,
    catalog_path: str | None = None,
    run_id: str | None = None,
    **extra: Any,
) -> Iterator[str]:
    """Bind run level context (catalog, run id) for the duration of a run."""

    context: dict[str, Any] = dict(extra)
    if catalog_path:
        context.setdefault("catalog", catalog_path)

    with run_context(run_id=run_id, **context) as bound_id:
        yield bound_id


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Outcome of a completed run, as reported in the summary log entry."""

    status: str
    units: int
    passthrough: int
    candidates: int
    replaced: int
    parse_failures: int
    serialize_failures: int
    worker_failures: int
    input_error: str | None = None

    @classmethod
    def from_stats(cls, stats: Mapping[str, Any], *, status: str) -> "RunSummary":
        return cls(
            status=status,
            units=int(stats.get("units", 0)),
            passthrough=int(stats.get("passthrough", 0)),
            candidates=int(stats.get("candidates", 0)),
            replaced=int(stats.get("replaced", 0)),
            parse_failures=int(stats.get("parse_failures", 0)),
            serialize_failures=int(stats.get("serialize_failures", 0)),
            worker_failures=int(stats.get("worker_failures", 0)),
            input_error=stats.get("input_error"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "units": self.units,
            "passthrough": self.passthrough,
            "candidates": self.candidates,
            "replaced": self.replaced,
            "parseFailures": self.parse_failures,
            "serializeFailures": self.serialize_failures,
            "workerFailures": self.worker_failures,
            "inputError": self.input_error,
        }


def record_run_summary(stats: Mapping[str, Any], *, status: str) -> RunSummary:
    """Emit the summary entry for a finished run and return it."""

    summary = RunSummary.from_stats(stats, status=status)
    _SUMMARY_LOGGER.info("run_summary", **summary.to_dict())
    return summary
