"""Anonymize a MySQL dump read from standard input.

Usage::

    mysqldump mydb | anonymize-mysqldump --config patterns.json > anonymized.sql
"""

from __future__ import annotations

import argparse
import sys
from typing import Iterable, TextIO

from services.dump_anonymizer.anonymizer import FieldAnonymizer
from services.dump_anonymizer.assembler import StatementAssembler
from services.dump_anonymizer.catalog import load_catalog
from services.dump_anonymizer.config import Settings, get_settings
from services.dump_anonymizer.errors import CatalogError
from services.dump_anonymizer.generators import build_registry
from services.dump_anonymizer.logging import (
    configure_logging,
    dump_logging_context,
    get_logger,
    record_run_summary,
)
from services.dump_anonymizer.pipeline import OrderedPipeline, StatementProcessor
from services.dump_anonymizer.sql_engine import SQLEngine

logger = get_logger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anonymize-mysqldump",
        description=(
            "Read a MySQL dump from standard input, replace the values selected "
            "by the pattern catalog with synthetic data and write the result to "
            "standard output."
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to the JSON pattern catalog.",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Number of statement workers (default: settings or executor sizing).",
    )
    parser.add_argument(
        "--queue-size",
        dest="queue_size",
        type=_positive_int,
        default=None,
        help="Maximum number of statements in flight before reading pauses (default: 10).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed the value generators so repeated runs produce the same output.",
    )
    parser.add_argument(
        "--flush-unterminated",
        dest="flush_unterminated",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Emit a trailing INSERT that never receives its ';' instead of dropping it.",
    )
    return parser


def _build_pipeline(args: argparse.Namespace, settings: Settings) -> OrderedPipeline:
    catalog = load_catalog(args.config)

    seed = args.seed if args.seed is not None else settings.generator.seed
    registry = build_registry(seed=seed, locale=settings.generator.locale)

    unknown = sorted(catalog.generator_tags() - set(registry))
    if unknown:
        logger.warning("catalog_unknown_types", types=unknown)

    flush = (
        args.flush_unterminated
        if args.flush_unterminated is not None
        else settings.pipeline.flush_unterminated
    )
    processor = StatementProcessor(
        SQLEngine(settings.pipeline.dialect), FieldAnonymizer(catalog, registry)
    )
    return OrderedPipeline(
        processor,
        capacity=args.queue_size or settings.pipeline.queue_capacity,
        max_workers=args.workers or settings.pipeline.max_workers,
        assembler=StatementAssembler(flush_unterminated=flush),
    )


def _tolerate_undecodable(stream: TextIO) -> None:
    # Dumps may carry bytes that are not valid UTF-8; round-trip them untouched.
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="surrogateescape")


def _write_all(chunks: Iterable[str], output: TextIO) -> None:
    for chunk in chunks:
        output.write(chunk)
    output.flush()


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    parsed_args = parser.parse_args(None if argv is None else list(argv))

    settings = get_settings()
    configure_logging(settings.logging)

    try:
        pipeline = _build_pipeline(parsed_args, settings)
    except CatalogError as exc:
        logger.error("catalog_load_failed", error=str(exc))
        print(str(exc), file=sys.stderr)
        return 1

    _tolerate_undecodable(sys.stdin)
    _tolerate_undecodable(sys.stdout)

    with dump_logging_context(catalog_path=str(parsed_args.config)):
        try:
            _write_all(pipeline.run(sys.stdin), sys.stdout)
        except KeyboardInterrupt:
            record_run_summary(pipeline.stats.as_dict(), status="interrupted")
            return 130
        except OSError as exc:
            logger.error("output_write_failed", error=str(exc))
            record_run_summary(pipeline.stats.as_dict(), status="failed")
            return 1

        if pipeline.stats.input_error is not None:
            record_run_summary(pipeline.stats.as_dict(), status="failed")
            return 1

        record_run_summary(pipeline.stats.as_dict(), status="completed")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
