"""Exception hierarchy for the dump anonymizer."""

from __future__ import annotations


class DumpAnonymizerError(Exception):
    """Base exception for all dump anonymizer errors."""


class CatalogError(DumpAnonymizerError):
    """Raised when the pattern catalog cannot be loaded or validated."""


class StatementError(DumpAnonymizerError):
    """Base class for failures of the SQL engine on a single statement."""

    def __init__(self, message: str, *, text: str) -> None:
        super().__init__(message)
        self.text = text


class StatementParseError(StatementError):
    """Raised when a statement cannot be parsed into a structured form."""


class StatementSerializeError(StatementError):
    """Raised when a structured statement cannot be rendered back to SQL."""


class RuleApplicationError(DumpAnonymizerError):
    """Raised when a field rule cannot be applied to a row."""


class UnknownGeneratorError(RuleApplicationError):
    """Raised when a field rule names a type with no registered generator."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"No value generator registered for type '{tag}'.")
        self.tag = tag


class PositionOutOfRangeError(RuleApplicationError):
    """Raised when a 1-indexed position falls outside a row's value tuple."""

    def __init__(self, position: int, width: int) -> None:
        super().__init__(
            f"Position {position} is out of range for a row with {width} values."
        )
        self.position = position
        self.width = width


class ConstraintLookupError(RuleApplicationError):
    """Raised when a constraint references a value that cannot be read."""

    def __init__(self, position: int, reason: str) -> None:
        super().__init__(f"Constraint on position {position} failed: {reason}")
        self.position = position
        self.reason = reason


__all__ = [
    "CatalogError",
    "ConstraintLookupError",
    "DumpAnonymizerError",
    "PositionOutOfRangeError",
    "RuleApplicationError",
    "StatementError",
    "StatementParseError",
    "StatementSerializeError",
    "UnknownGeneratorError",
]
