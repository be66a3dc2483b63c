"""Scalar domains: the arithmetic behind every operator.

A :class:`Domain` applies the unit rules once for all scalar types and
leaves the scalar arithmetic itself to :class:`RealDomain` and
:class:`ComplexDomain`. Every failing operation raises a
:class:`~plugins.unit_calculator.core.errors.CalculationError`; the workspace
turns those into failed resolutions.
"""

from __future__ import annotations

import cmath
import math
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any, ClassVar, Generic, TypeVar

from scipy import special

from .errors import CalculationError, InvalidOperationError, UnitMismatchError
from .rational import exponent_from_scalar
from .units import UNITLESS, Quantity

T = TypeVar("T")

_INT64_MASK = (1 << 64) - 1


def _wrap_int64(value: int) -> int:
    value &= _INT64_MASK
    return value - (1 << 64) if value >= 1 << 63 else value


def _format_real(value: float, precision: int) -> str:
    if value == 0:
        return "0"
    return f"{value:.{precision}g}"


class Domain(ABC, Generic[T]):
    """Arithmetic protocol for quantities whose scalars are of type ``T``."""

    name: ClassVar[str]

    # Scalar hooks -----------------------------------------------------

    @abstractmethod
    def coerce(self, value: Any) -> T:
        """Convert a Python number to this domain's scalar type."""

    @abstractmethod
    def parse_scalar(self, text: str, decimal: str = ".") -> T:
        ...

    @abstractmethod
    def format_scalar(self, value: T, precision: int = 12) -> str:
        ...

    @abstractmethod
    def to_json_scalar(self, value: T) -> Any:
        ...

    @abstractmethod
    def from_json_scalar(self, raw: Any) -> T:
        ...

    @abstractmethod
    def real_part(self, value: T) -> float:
        ...

    @abstractmethod
    def _power(self, base: T, exponent: T) -> T:
        ...

    @abstractmethod
    def _unit_exponent(self, exponent: T) -> Fraction:
        """Return the exact exponent units may be raised to."""

    @abstractmethod
    def gamma(self, value: T) -> T:
        ...

    def fallback_variable(self, name: str) -> T | None:
        """Value for a name that no scope defines, if the domain knows one."""

        return None

    # Constants --------------------------------------------------------

    @property
    def zero(self) -> T:
        return self.coerce(0.0)

    @property
    def one(self) -> T:
        return self.coerce(1.0)

    @property
    def default(self) -> Quantity[T]:
        return Quantity(self.zero, UNITLESS)

    def truth(self, flag: bool) -> Quantity[T]:
        return Quantity(self.one if flag else self.zero, UNITLESS)

    def is_true(self, quantity: Quantity[T]) -> bool:
        return quantity.scalar != self.zero

    def _to_int(self, value: T) -> int:
        real = self.real_part(value)
        if not math.isfinite(real):
            raise InvalidOperationError("Cannot convert a non-finite value to an integer.")
        return int(math.trunc(real))

    # Unary operators --------------------------------------------------

    def plus(self, a: Quantity[T]) -> Quantity[T]:
        return a

    def minus(self, a: Quantity[T]) -> Quantity[T]:
        return Quantity(-a.scalar, a.unit)

    def factorial(self, a: Quantity[T]) -> Quantity[T]:
        if not a.unit.is_dimensionless:
            raise UnitMismatchError("Cannot take the factorial of a quantity with units.")
        return Quantity(self.gamma(a.scalar + self.one), UNITLESS)

    def remove_units(self, a: Quantity[T]) -> Quantity[T]:
        return Quantity(a.scalar, UNITLESS)

    # Arithmetic -------------------------------------------------------

    def add(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        if a.unit != b.unit:
            raise UnitMismatchError("Units do not match for addition.")
        return Quantity(a.scalar + b.scalar, a.unit)

    def subtract(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        if a.unit != b.unit:
            raise UnitMismatchError("Units do not match for subtraction.")
        return Quantity(a.scalar - b.scalar, a.unit)

    def multiply(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        return Quantity(self._checked(lambda: a.scalar * b.scalar), a.unit * b.unit)

    def divide(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        return Quantity(self._checked(lambda: a.scalar / b.scalar), a.unit / b.unit)

    def modulo(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        divisor = self.real_part(b.scalar)
        if divisor == 0:
            raise InvalidOperationError("Division by zero.")
        remainder = self._checked(lambda: math.remainder(self.real_part(a.scalar), divisor))
        return Quantity(self.coerce(remainder), a.unit)

    def int_divide(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        divisor = self.real_part(b.scalar)
        if divisor == 0:
            raise InvalidOperationError("Division by zero.")
        quotient = self._checked(lambda: self.real_part(a.scalar) / divisor)
        return Quantity(self.coerce(float(self._to_int(quotient))), a.unit / b.unit)

    def exponent(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        if not b.unit.is_dimensionless:
            raise UnitMismatchError("Cannot raise to a power where the exponent contains units.")
        if b.scalar == self.one:
            return a
        if a.unit.is_dimensionless:
            return Quantity(self._checked(lambda: self._power(a.scalar, b.scalar)), UNITLESS)
        fraction = self._unit_exponent(b.scalar)
        scalar = self._checked(lambda: self._power(a.scalar, b.scalar))
        return Quantity(scalar, a.unit.pow(fraction))

    def _checked(self, operation):
        try:
            return operation()
        except CalculationError:
            raise
        except ZeroDivisionError as exc:
            raise InvalidOperationError("Division by zero.") from exc
        except OverflowError as exc:
            raise InvalidOperationError("The result is too large to represent.") from exc
        except ValueError as exc:
            raise InvalidOperationError("The operation is not defined for these values.") from exc

    # Integer operators ------------------------------------------------

    def _integer_operands(self, a: Quantity[T], b: Quantity[T], message: str) -> tuple[int, int]:
        if not a.unit.is_dimensionless or not b.unit.is_dimensionless:
            raise UnitMismatchError(message)
        return self._to_int(a.scalar), self._to_int(b.scalar)

    def bitwise_or(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._integer_operands(a, b, "Cannot take a bitwise OR of quantities with units.")
        return Quantity(self.coerce(float(_wrap_int64(left | right))), UNITLESS)

    def bitwise_and(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._integer_operands(a, b, "Cannot take a bitwise AND of quantities with units.")
        return Quantity(self.coerce(float(_wrap_int64(left & right))), UNITLESS)

    def left_shift(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._integer_operands(a, b, "Cannot shift quantities with units.")
        return Quantity(self.coerce(float(_wrap_int64(_wrap_int64(left) << (right & 63)))), UNITLESS)

    def right_shift(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._integer_operands(a, b, "Cannot shift quantities with units.")
        return Quantity(self.coerce(float(_wrap_int64(left) >> (right & 63))), UNITLESS)

    # Comparisons ------------------------------------------------------

    def _comparable(self, a: Quantity[T], b: Quantity[T]) -> tuple[float, float]:
        if a.unit != b.unit:
            raise UnitMismatchError("Cannot compare quantities with different units.")
        return self.real_part(a.scalar), self.real_part(b.scalar)

    def equal(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        self._comparable(a, b)
        return self.truth(a.scalar == b.scalar)

    def not_equal(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        self._comparable(a, b)
        return self.truth(a.scalar != b.scalar)

    def less(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._comparable(a, b)
        return self.truth(left < right)

    def less_or_equal(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._comparable(a, b)
        return self.truth(left <= right)

    def greater(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._comparable(a, b)
        return self.truth(left > right)

    def greater_or_equal(self, a: Quantity[T], b: Quantity[T]) -> Quantity[T]:
        left, right = self._comparable(a, b)
        return self.truth(left >= right)

    # Unit conversion --------------------------------------------------

    def factor(self, a: Quantity[T], b: Quantity[T], message: str) -> T:
        """Return how many ``b`` fit in ``a``; the units must be identical."""

        if a.unit != b.unit:
            raise UnitMismatchError(message)
        return self._checked(lambda: a.scalar / b.scalar)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RealDomain(Domain[float]):
    """Double precision scalars backed by :mod:`math`."""

    name = "real"

    def coerce(self, value: Any) -> float:
        if isinstance(value, complex):
            if value.imag != 0:
                raise InvalidOperationError("The result is not a real number. Use the complex domain.")
            value = value.real
        return float(value)

    def parse_scalar(self, text: str, decimal: str = ".") -> float:
        normalized = text.replace(decimal, ".") if decimal != "." else text
        try:
            return float(normalized)
        except ValueError as exc:
            raise InvalidOperationError(f"Could not evaluate the scalar '{text}'.") from exc

    def format_scalar(self, value: float, precision: int = 12) -> str:
        return _format_real(value, precision)

    def to_json_scalar(self, value: float) -> float:
        return float(value)

    def from_json_scalar(self, raw: Any) -> float:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise CalculationError(f"Expected a number, got {raw!r}.")
        return float(raw)

    def real_part(self, value: float) -> float:
        return value

    def _power(self, base: float, exponent: float) -> float:
        if base < 0 and not float(exponent).is_integer():
            raise InvalidOperationError(
                "Cannot raise a negative number to a fractional power. Use the complex domain."
            )
        return base**exponent

    def _unit_exponent(self, exponent: float) -> Fraction:
        fraction = exponent_from_scalar(exponent)
        if fraction is None:
            raise InvalidOperationError("Cannot raise units to a power that is too complex.")
        return fraction

    def gamma(self, value: float) -> float:
        try:
            return math.gamma(value)
        except ValueError as exc:
            raise InvalidOperationError("The factorial is not defined for negative integers.") from exc
        except OverflowError as exc:
            raise InvalidOperationError("The result is too large to represent.") from exc


class ComplexDomain(Domain[complex]):
    """Complex scalars backed by :mod:`cmath` and :mod:`scipy.special`."""

    name = "complex"

    IMAGINARY_NAMES: ClassVar[tuple[str, ...]] = ("i", "j")

    def coerce(self, value: Any) -> complex:
        return complex(value)

    def parse_scalar(self, text: str, decimal: str = ".") -> complex:
        normalized = text.replace(decimal, ".") if decimal != "." else text
        try:
            return complex(float(normalized))
        except ValueError as exc:
            raise InvalidOperationError(f"Could not evaluate the scalar '{text}'.") from exc

    def format_scalar(self, value: complex, precision: int = 12) -> str:
        real, imag = value.real, value.imag
        if imag == 0:
            return _format_real(real, precision)
        imag_text = _format_real(abs(imag), precision)
        imag_text = "i" if imag_text == "1" else f"{imag_text}i"
        if real == 0:
            return f"-{imag_text}" if imag < 0 else imag_text
        sign = "-" if imag < 0 else "+"
        return f"{_format_real(real, precision)} {sign} {imag_text}"

    def to_json_scalar(self, value: complex) -> float | list[float]:
        if value.imag == 0:
            return float(value.real)
        return [float(value.real), float(value.imag)]

    def from_json_scalar(self, raw: Any) -> complex:
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            real, imag = raw
            if all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in raw):
                return complex(float(real), float(imag))
        elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return complex(float(raw))
        raise CalculationError(f"Expected a number or a [real, imaginary] pair, got {raw!r}.")

    def real_part(self, value: complex) -> float:
        return value.real

    def minus(self, a: Quantity[complex]) -> Quantity[complex]:
        # Subtracting from zero keeps a +0.0 imaginary part, so sqrt(-4) is 2i and not -2i.
        return Quantity(self.zero - a.scalar, a.unit)

    def fallback_variable(self, name: str) -> complex | None:
        if name in self.IMAGINARY_NAMES:
            return 1j
        return None

    def _power(self, base: complex, exponent: complex) -> complex:
        return base**exponent

    def _unit_exponent(self, exponent: complex) -> Fraction:
        if exponent.imag != 0:
            raise InvalidOperationError("Cannot raise units to a complex power.")
        fraction = exponent_from_scalar(exponent.real)
        if fraction is None:
            raise InvalidOperationError("Cannot raise units to a power that is too complex.")
        return fraction

    def gamma(self, value: complex) -> complex:
        result = complex(special.gamma(value))
        if cmath.isinf(result) or cmath.isnan(result):
            raise InvalidOperationError("The factorial is not defined for negative integers.")
        return result


DOMAINS: dict[str, type[Domain]] = {
    RealDomain.name: RealDomain,
    ComplexDomain.name: ComplexDomain,
}


def get_domain(name: str | Domain) -> Domain:
    """Return a domain instance for ``name`` (``"real"`` or ``"complex"``)."""

    if isinstance(name, Domain):
        return name
    try:
        return DOMAINS[name.lower()]()
    except KeyError as exc:
        raise ValueError(f"Unknown domain '{name}'. Expected one of: {', '.join(DOMAINS)}") from exc


__all__ = ["Domain", "RealDomain", "ComplexDomain", "DOMAINS", "get_domain"]
