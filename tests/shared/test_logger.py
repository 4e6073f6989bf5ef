"""Tests for the shared observability logging helpers."""

from __future__ import annotations

import logging
from typing import Iterable

import pytest
import structlog

from shared.observability.logger import (
    TRACE_LEVEL,
    coerce_level,
    generate_run_id,
    get_run_id,
    run_context,
)


@pytest.fixture(autouse=True)
def _clean_context() -> Iterable[None]:
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("info", (logging.INFO, "INFO")),
        ("DEBUG", (logging.DEBUG, "DEBUG")),
        (" warn ", (logging.WARNING, "WARNING")),
        ("fatal", (logging.CRITICAL, "CRITICAL")),
        ("panic", (logging.CRITICAL, "CRITICAL")),
        ("trace", (TRACE_LEVEL, "TRACE")),
        ("verbose", (logging.INFO, "INFO")),
        (None, (logging.INFO, "INFO")),
        (logging.ERROR, (logging.ERROR, "ERROR")),
        (37, (logging.INFO, "INFO")),
    ],
)
def test_coerce_level(level, expected) -> None:
    assert coerce_level(level) == expected


def test_generate_run_id_is_unique() -> None:
    assert generate_run_id() != generate_run_id()


def test_run_context_binds_and_clears_run_id() -> None:
    with run_context(stage="anonymize") as run_id:
        context = structlog.contextvars.get_contextvars()
        assert get_run_id() == run_id
        assert context["run_id"] == run_id
        assert context["stage"] == "anonymize"

    context = structlog.contextvars.get_contextvars()
    assert get_run_id() is None
    assert "run_id" not in context
    assert "stage" not in context


def test_run_context_restores_existing_values() -> None:
    structlog.contextvars.bind_contextvars(run_id="outer", custom="value")

    with run_context(run_id="inner", custom="override"):
        assert structlog.contextvars.get_contextvars()["custom"] == "override"

    context = structlog.contextvars.get_contextvars()
    assert context["run_id"] == "outer"
    assert context["custom"] == "value"
