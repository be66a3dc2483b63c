"""Shared Pint registry used to derive extra catalog units."""

from __future__ import annotations

from fractions import Fraction
from functools import lru_cache

from pint import UnitRegistry
from pint.errors import PintError

from .errors import LookupFailure
from .units import Quantity, Unit

# Pint dimension names and the base symbols the calculator uses for them.
_BASE_SYMBOLS: dict[str, str] = {
    "[length]": "m",
    "[mass]": "kg",
    "[time]": "s",
    "[current]": "A",
    "[temperature]": "K",
    "[substance]": "mol",
    "[luminosity]": "cd",
}


def _build_registry() -> UnitRegistry:
    return UnitRegistry(autoconvert_offset_to_baseunit=True)


@lru_cache(maxsize=1)
def get_registry() -> UnitRegistry:
    """Return a singleton :class:`~pint.UnitRegistry` instance."""

    return _build_registry()


def base_quantity(expression: str) -> Quantity[str]:
    """Express one ``expression`` (a Pint unit expression) in base units.

    The scalar is returned as text so it can be registered in any domain.
    """

    registry = get_registry()
    try:
        quantity = registry.parse_expression(expression)
        if not hasattr(quantity, "to_base_units"):
            raise LookupFailure(f"'{expression}' is not a unit expression.")
        quantity = quantity.to_base_units()
    except PintError as exc:
        raise LookupFailure(f"Pint does not know the unit '{expression}'.") from exc

    dimensions: dict[str, Fraction] = {}
    for dimension, exponent in quantity.dimensionality.items():
        symbol = _BASE_SYMBOLS.get(dimension)
        if symbol is None:
            raise LookupFailure(f"The dimension {dimension} of '{expression}' has no base unit.")
        dimensions[symbol] = Fraction(exponent).limit_denominator(24)
    return Quantity(repr(float(quantity.magnitude)), Unit(dimensions))


__all__ = ["get_registry", "base_quantity"]
