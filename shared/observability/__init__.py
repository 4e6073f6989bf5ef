"""Observability utilities shared across dump anonymizer components."""

from .logger import (
    coerce_level,
    configure_logging,
    generate_run_id,
    get_logger,
    get_run_id,
    run_context,
)

__all__ = [
    "coerce_level",
    "configure_logging",
    "generate_run_id",
    "get_logger",
    "get_run_id",
    "run_context",
]
