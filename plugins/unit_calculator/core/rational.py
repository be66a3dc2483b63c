"""Exact rational exponents for unit algebra."""

from __future__ import annotations

import math
from fractions import Fraction

INT32_MAX = 2**31 - 1
DEFAULT_MAX_DENOMINATOR = 24
_RELATIVE_TOLERANCE = 1e-12


def exponent_from_scalar(
    value: float, *, max_denominator: int = DEFAULT_MAX_DENOMINATOR
) -> Fraction | None:
    """Return the exact fraction ``value`` stands for, or ``None``.

    The value is expanded as a continued fraction until the next convergent
    would need a denominator larger than ``max_denominator``. The last
    convergent is accepted only if it reproduces ``value`` and both of its
    terms fit in a signed 32-bit integer.
    """

    if not math.isfinite(value):
        return None
    if value == 0:
        return Fraction(0)
    magnitude = abs(value)
    if magnitude > INT32_MAX or 1.0 / magnitude > INT32_MAX:
        return None

    p0, q0, p1, q1 = 0, 1, 1, 0
    remainder = magnitude
    while True:
        term = int(math.floor(remainder))
        p2 = p0 + term * p1
        q2 = q0 + term * q1
        if q2 > max_denominator:
            break
        p0, q0, p1, q1 = p1, q1, p2, q2
        fractional = remainder - term
        if fractional == 0 or abs(p1 / q1 - magnitude) <= _RELATIVE_TOLERANCE * magnitude:
            break
        remainder = 1.0 / fractional

    if q1 == 0 or p1 > INT32_MAX or q1 > INT32_MAX:
        return None
    if abs(p1 / q1 - magnitude) > _RELATIVE_TOLERANCE * magnitude:
        return None
    result = Fraction(p1, q1)
    return -result if value < 0 else result


def format_exponent(exponent: Fraction) -> str:
    """Render an exponent the way it appears after ``^`` in a unit string."""

    if exponent.denominator == 1:
        return str(exponent.numerator)
    text = f"{exponent.numerator}/{exponent.denominator}"
    return f"({text})"


__all__ = [
    "Fraction",
    "INT32_MAX",
    "DEFAULT_MAX_DENOMINATOR",
    "exponent_from_scalar",
    "format_exponent",
]
