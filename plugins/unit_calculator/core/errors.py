"""Exception hierarchy for the unit calculator core."""

from __future__ import annotations


class CalculationError(ValueError):
    """Base class for every error raised while parsing or evaluating."""


class ExpressionSyntaxError(CalculationError):
    """Raised when an expression cannot be parsed."""


class UnitMismatchError(CalculationError):
    """Raised when the units of two operands are incompatible."""


class LookupFailure(CalculationError):
    """Raised when a variable, unit or function cannot be found."""


class InvalidOperationError(CalculationError):
    """Raised when an operation is not defined for its operands."""


class RecursionLimitError(CalculationError):
    """Raised when user functions nest deeper than the workspace allows."""


class SnapshotError(CalculationError):
    """Raised when a workspace snapshot cannot be read."""


__all__ = [
    "CalculationError",
    "ExpressionSyntaxError",
    "UnitMismatchError",
    "LookupFailure",
    "InvalidOperationError",
    "RecursionLimitError",
    "SnapshotError",
]
