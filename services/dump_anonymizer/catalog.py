"""Pattern catalog describing which dump values are replaced and how.

The catalog is the JSON configuration handed to the anonymizer on start-up::

    {
      "patterns": [
        {
          "tableName": "wp_usermeta",
          "fields": [
            {
              "field": "meta_value",
              "position": 4,
              "type": "firstName",
              "constraints": [
                {"field": "meta_key", "position": 3, "value": "first_name"}
              ]
            }
          ]
        }
      ]
    }

Positions are 1-indexed ordinals inside each ``VALUES`` tuple. The models are
frozen so that a single catalog can be shared by every statement worker.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import CatalogError

__all__ = [
    "ConstraintRule",
    "FieldRule",
    "PatternCatalog",
    "TablePattern",
    "load_catalog",
    "parse_catalog",
]


class ConstraintRule(BaseModel):
    """Predicate requiring another position of the row to hold a literal."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    field: str = Field(default="", description="Column label, documentation only.")
    position: int = Field(..., ge=1, description="1-indexed position of the checked value.")
    expected_literal: str = Field(
        ...,
        alias="value",
        description="Literal text the value must equal exactly (case-sensitive).",
    )


class FieldRule(BaseModel):
    """Instruction to replace the value at ``position`` with a generated one."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field(default="", alias="field", description="Column label, documentation only.")
    position: int = Field(..., ge=1, description="1-indexed position of the replaced value.")
    type: str = Field(..., min_length=1, description="Value generator tag.")
    constraints: tuple[ConstraintRule, ...] = Field(default_factory=tuple)

    @field_validator("constraints", mode="before")
    @classmethod
    def _none_means_unconstrained(cls, value: Any) -> Any:
        return () if value is None else value


class TablePattern(BaseModel):
    """Field rules governing the INSERT rows of a single table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    table_name: str = Field(..., alias="tableName", min_length=1)
    fields: tuple[FieldRule, ...] = Field(default_factory=tuple)

    @field_validator("fields", mode="before")
    @classmethod
    def _none_means_empty(cls, value: Any) -> Any:
        return () if value is None else value


class PatternCatalog(BaseModel):
    """Ordered collection of table patterns loaded once per run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    patterns: tuple[TablePattern, ...] = Field(default_factory=tuple)

    @field_validator("patterns", mode="before")
    @classmethod
    def _none_means_empty(cls, value: Any) -> Any:
        return () if value is None else value

    def patterns_for(self, table_name: str) -> tuple[TablePattern, ...]:
        """Return every pattern naming ``table_name``, in catalog order."""

        return tuple(
            pattern for pattern in self.patterns if pattern.table_name == table_name
        )

    @property
    def table_names(self) -> frozenset[str]:
        return frozenset(pattern.table_name for pattern in self.patterns)

    def generator_tags(self) -> frozenset[str]:
        """Return the set of generator tags referenced by any rule."""

        return frozenset(
            rule.type for pattern in self.patterns for rule in pattern.fields
        )


def parse_catalog(
    document: Mapping[str, Any], *, source: str | Path | None = None
) -> PatternCatalog:
    """Validate an already decoded catalog document.

    ``source`` names where the document came from in error messages.
    """

    try:
        return PatternCatalog.model_validate(document)
    except ValidationError as exc:
        origin = f" {source}" if source is not None else ""
        raise CatalogError(f"Invalid pattern catalog{origin}: {exc}") from exc


def load_catalog(path: str | Path, *, encoding: str = "utf-8") -> PatternCatalog:
    """Load and validate the JSON catalog stored at ``path``.

    Raises
    ------
    CatalogError
        If the file is missing, is not valid JSON or does not match the
        catalog schema.
    """

    catalog_path = Path(path)
    try:
        raw = catalog_path.read_text(encoding=encoding)
    except OSError as exc:
        raise CatalogError(f"Unable to read pattern catalog {catalog_path}: {exc}") from exc

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Pattern catalog {catalog_path} is not valid JSON: {exc}") from exc

    if not isinstance(document, Mapping):
        raise CatalogError(f"Pattern catalog {catalog_path} must contain a JSON object.")

    return parse_catalog(document, source=catalog_path)
