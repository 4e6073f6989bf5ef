"""Streaming anonymizer for MySQL dump files."""

from pathlib import Path

from dotenv import load_dotenv

from .anonymizer import AnonymizationReport, FieldAnonymizer, apply_catalog
from .assembler import Candidate, Passthrough, StatementAssembler
from .catalog import (
    ConstraintRule,
    FieldRule,
    PatternCatalog,
    TablePattern,
    load_catalog,
    parse_catalog,
)
from .errors import (
    CatalogError,
    DumpAnonymizerError,
    StatementParseError,
    StatementSerializeError,
)
from .generators import GeneratorRegistry, build_registry
from .pipeline import OrderedPipeline, PipelineStats, StatementProcessor
from .sql_engine import InsertStatement, SQLEngine, Statement

__all__ = [
    "__version__",
    "AnonymizationReport",
    "Candidate",
    "CatalogError",
    "ConstraintRule",
    "DumpAnonymizerError",
    "FieldAnonymizer",
    "FieldRule",
    "GeneratorRegistry",
    "InsertStatement",
    "OrderedPipeline",
    "Passthrough",
    "PatternCatalog",
    "PipelineStats",
    "SQLEngine",
    "Statement",
    "StatementAssembler",
    "StatementParseError",
    "StatementProcessor",
    "StatementSerializeError",
    "TablePattern",
    "apply_catalog",
    "build_registry",
    "load_catalog",
    "parse_catalog",
]

__version__ = "0.1.0"

load_dotenv(Path(__file__).resolve().parents[2] / ".env", override=False)
