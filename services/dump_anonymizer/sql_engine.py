"""sqlglot backed parser and renderer for dump statements.

The engine turns one logical statement into a :class:`Statement` and back.
Only ``INSERT ... VALUES`` statements are exposed as
:class:`InsertStatement` with positional rows; every other statement kind is
kept opaque and rendered unchanged apart from sqlglot's formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import sqlglot
from sqlglot import exp
from sqlglot.errors import ErrorLevel, SqlglotError

from .errors import (
    PositionOutOfRangeError,
    StatementParseError,
    StatementSerializeError,
)

__all__ = [
    "InsertStatement",
    "Row",
    "SQLEngine",
    "Statement",
    "Value",
]

STATEMENT_TERMINATOR = ";\n"


@dataclass(slots=True, frozen=True)
class Value:
    """Read-only view over a single cell of a ``VALUES`` tuple."""

    expression: exp.Expression
    dialect: str = "mysql"

    @property
    def is_null(self) -> bool:
        return isinstance(self.expression, exp.Null)

    @property
    def literal(self) -> str:
        """Return the canonical literal text of the value.

        String literals yield their unquoted content, numbers their digits,
        ``NULL`` the empty string and any other expression its rendered SQL.
        """

        if self.is_null:
            return ""
        if isinstance(self.expression, exp.Literal):
            return str(self.expression.this)
        return self.expression.sql(dialect=self.dialect)

    @property
    def is_empty(self) -> bool:
        return self.literal == ""


@dataclass(slots=True)
class Row:
    """Bounds-checked, 1-indexed view over one ``VALUES`` tuple."""

    tuple_expression: exp.Tuple
    dialect: str = "mysql"

    def __len__(self) -> int:
        return len(self.tuple_expression.expressions)

    def __iter__(self) -> Iterator[Value]:
        for expression in self.tuple_expression.expressions:
            yield Value(expression, self.dialect)

    def _index(self, position: int) -> int:
        if position < 1 or position > len(self):
            raise PositionOutOfRangeError(position, len(self))
        return position - 1

    def value_at(self, position: int) -> Value:
        """Return the value at the 1-indexed ``position``."""

        return Value(self.tuple_expression.expressions[self._index(position)], self.dialect)

    def replace(self, position: int, text: str) -> None:
        """Overwrite the value at ``position`` with a string literal."""

        current = self.tuple_expression.expressions[self._index(position)]
        current.replace(exp.Literal.string(text))

    @property
    def literals(self) -> tuple[str, ...]:
        return tuple(value.literal for value in self)


@dataclass(slots=True)
class Statement:
    """A parsed statement that is not subject to value substitution."""

    expression: exp.Expression
    text: str

    @property
    def is_insert(self) -> bool:
        return False


@dataclass(slots=True)
class InsertStatement(Statement):
    """An ``INSERT ... VALUES`` statement exposing its rows positionally."""

    table_name: str = ""
    rows: tuple[Row, ...] = field(default_factory=tuple)

    @property
    def is_insert(self) -> bool:
        return True


def _target_table(insert: exp.Insert) -> exp.Table | None:
    target = insert.this
    if isinstance(target, exp.Schema):
        target = target.this
    return target if isinstance(target, exp.Table) else None


class SQLEngine:
    """Parse statements into :class:`Statement` objects and render them back."""

    def __init__(self, dialect: str = "mysql") -> None:
        self._dialect = dialect

    @property
    def dialect(self) -> str:
        return self._dialect

    def parse(self, text: str) -> Statement:
        """Parse exactly one statement from ``text``.

        Raises
        ------
        StatementParseError
            If sqlglot rejects the text or it does not contain exactly one
            statement.
        """

        try:
            parsed = sqlglot.parse(text, read=self._dialect)
        except SqlglotError as exc:
            raise StatementParseError(str(exc), text=text) from exc

        expressions = [expression for expression in parsed if expression is not None]
        if len(expressions) != 1:
            raise StatementParseError(
                f"Expected one statement, found {len(expressions)}.", text=text
            )

        expression = expressions[0]
        if not isinstance(expression, exp.Insert):
            return Statement(expression=expression, text=text)

        source = expression.expression
        table = _target_table(expression)
        if not isinstance(source, exp.Values) or table is None:
            return Statement(expression=expression, text=text)

        rows = tuple(
            Row(tuple_expression, self._dialect)
            for tuple_expression in source.expressions
            if isinstance(tuple_expression, exp.Tuple)
        )
        return InsertStatement(
            expression=expression,
            text=text,
            table_name=table.name,
            rows=rows,
        )

    def serialize(self, statement: Statement) -> str:
        """Render ``statement`` as SQL terminated by ``;`` and a newline.

        Raises
        ------
        StatementSerializeError
            If sqlglot cannot generate SQL for the statement in this dialect.
        """

        try:
            rendered = statement.expression.sql(
                dialect=self._dialect, unsupported_level=ErrorLevel.RAISE
            )
        except SqlglotError as exc:
            raise StatementSerializeError(str(exc), text=statement.text) from exc
        return rendered + STATEMENT_TERMINATOR
