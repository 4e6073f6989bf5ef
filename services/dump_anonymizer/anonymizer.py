"""Apply catalog field rules to the rows of parsed INSERT statements.

For every pattern naming the statement's table, every row and every field
rule (in catalog order) the anonymizer:

1. resolves the rule's 1-indexed position against the row;
2. skips empty values;
3. skips rules whose type has no registered generator;
4. evaluates the rule's constraints against the same row;
5. overwrites the value with the generator's output.

Rules run sequentially within a statement, so a later rule targeting the same
position wins. Problems with a single rule never abort the statement: they
are logged, counted in the :class:`AnonymizationReport` and the rule is
skipped for that row.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from shared.observability.logger import get_logger

from .catalog import FieldRule, PatternCatalog, TablePattern
from .errors import (
    ConstraintLookupError,
    PositionOutOfRangeError,
    RuleApplicationError,
    UnknownGeneratorError,
)
from .generators import GeneratorRegistry
from .sql_engine import InsertStatement, Row, Statement

__all__ = [
    "AnonymizationReport",
    "FieldAnonymizer",
    "SKIP_CONSTRAINT_LOOKUP",
    "SKIP_CONSTRAINT_MISMATCH",
    "SKIP_EMPTY_VALUE",
    "SKIP_OUT_OF_RANGE",
    "SKIP_UNKNOWN_TYPE",
    "apply_catalog",
]

logger = get_logger(__name__)

SKIP_EMPTY_VALUE = "empty_value"
SKIP_UNKNOWN_TYPE = "unknown_type"
SKIP_CONSTRAINT_MISMATCH = "constraint_mismatch"
SKIP_CONSTRAINT_LOOKUP = "constraint_lookup_failed"
SKIP_OUT_OF_RANGE = "position_out_of_range"

_ERROR_REASONS = (SKIP_UNKNOWN_TYPE, SKIP_OUT_OF_RANGE, SKIP_CONSTRAINT_LOOKUP)


@dataclass(slots=True)
class AnonymizationReport:
    """Counts describing what a single anonymization pass did."""

    table_name: str | None = None
    rows: int = 0
    replaced: Counter[str] = field(default_factory=Counter)
    skipped: Counter[str] = field(default_factory=Counter)

    @property
    def total_replaced(self) -> int:
        return sum(self.replaced.values())

    @property
    def errors(self) -> int:
        """Number of rule applications skipped because of a rule error."""

        return sum(self.skipped[reason] for reason in _ERROR_REASONS)


class FieldAnonymizer:
    """Substitute catalog-selected values inside INSERT statements."""

    def __init__(self, catalog: PatternCatalog, registry: GeneratorRegistry) -> None:
        self._catalog = catalog
        self._registry = registry

    @property
    def catalog(self) -> PatternCatalog:
        return self._catalog

    @property
    def registry(self) -> GeneratorRegistry:
        return self._registry

    def apply(self, statement: Statement) -> Statement:
        """Mutate matching values of ``statement`` in place and return it."""

        return self.apply_with_report(statement)[0]

    def apply_with_report(
        self, statement: Statement
    ) -> tuple[Statement, AnonymizationReport]:
        """Like :meth:`apply` but also return what was replaced or skipped."""

        if not isinstance(statement, InsertStatement):
            return statement, AnonymizationReport()

        report = AnonymizationReport(
            table_name=statement.table_name, rows=len(statement.rows)
        )
        for pattern in self._catalog.patterns_for(statement.table_name):
            self._apply_pattern(pattern, statement.rows, report)
        return statement, report

    def _apply_pattern(
        self,
        pattern: TablePattern,
        rows: tuple[Row, ...],
        report: AnonymizationReport,
    ) -> None:
        warned: set[int] = set()

        for row_index, row in enumerate(rows):
            for rule_index, rule in enumerate(pattern.fields):
                try:
                    self._apply_rule(rule, row)
                except _Skip as skip:
                    report.skipped[skip.reason] += 1
                    continue
                except UnknownGeneratorError as exc:
                    report.skipped[SKIP_UNKNOWN_TYPE] += 1
                    if rule_index not in warned:
                        warned.add(rule_index)
                        logger.warning(
                            "rule_skipped_unknown_type",
                            table=pattern.table_name,
                            field=rule.label,
                            type=exc.tag,
                        )
                    continue
                except PositionOutOfRangeError as exc:
                    report.skipped[SKIP_OUT_OF_RANGE] += 1
                    logger.error(
                        "rule_position_out_of_range",
                        table=pattern.table_name,
                        field=rule.label,
                        row=row_index,
                        position=exc.position,
                        width=exc.width,
                    )
                    continue
                except ConstraintLookupError as exc:
                    report.skipped[SKIP_CONSTRAINT_LOOKUP] += 1
                    logger.error(
                        "constraint_lookup_failed",
                        table=pattern.table_name,
                        field=rule.label,
                        row=row_index,
                        position=exc.position,
                        reason=exc.reason,
                    )
                    continue

                report.replaced[rule.type] += 1

    def _apply_rule(self, rule: FieldRule, row: Row) -> None:
        value = row.value_at(rule.position)
        if value.is_empty:
            raise _Skip(SKIP_EMPTY_VALUE)

        generator = self._registry.resolve(rule.type)

        if rule.constraints and not self._row_obeys_constraints(rule, row):
            raise _Skip(SKIP_CONSTRAINT_MISMATCH)

        row.replace(rule.position, generator(value.literal))

    def _row_obeys_constraints(self, rule: FieldRule, row: Row) -> bool:
        for constraint in rule.constraints:
            try:
                literal = row.value_at(constraint.position).literal
            except RuleApplicationError as exc:
                raise ConstraintLookupError(constraint.position, str(exc)) from exc

            if literal != constraint.expected_literal:
                logger.debug(
                    "constraint_not_met",
                    field=rule.label,
                    constraint_field=constraint.field,
                    position=constraint.position,
                )
                return False
        return True


class _Skip(Exception):
    """Internal signal that a rule does not apply to the current row."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def apply_catalog(
    statement: Statement,
    catalog: PatternCatalog,
    registry: GeneratorRegistry,
) -> Statement:
    """Apply ``catalog`` to ``statement`` using ``registry`` generators."""

    return FieldAnonymizer(catalog, registry).apply(statement)
