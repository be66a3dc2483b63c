"""Dimension vectors and quantities."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Generic, TypeVar

from .rational import format_exponent

T = TypeVar("T")

ExponentLike = Fraction | int


class Unit(Mapping[str, Fraction]):
    """Immutable mapping from base symbol to a non-zero rational exponent."""

    __slots__ = ("_dimensions", "_hash")

    def __init__(
        self,
        dimensions: Mapping[str, ExponentLike] | Iterable[tuple[str, ExponentLike]] | None = None,
    ) -> None:
        if dimensions is None:
            items: Iterable[tuple[str, ExponentLike]] = ()
        elif isinstance(dimensions, Mapping):
            items = dimensions.items()
        else:
            items = dimensions
        merged: dict[str, Fraction] = {}
        for symbol, exponent in items:
            merged[symbol] = merged.get(symbol, Fraction(0)) + Fraction(exponent)
        self._dimensions = {
            symbol: exponent
            for symbol, exponent in sorted(merged.items())
            if exponent != 0
        }
        self._hash = hash(frozenset(self._dimensions.items()))

    @classmethod
    def of(cls, symbol: str, exponent: ExponentLike = 1) -> "Unit":
        return cls({symbol: exponent})

    @classmethod
    def dimensionless(cls) -> "Unit":
        return UNITLESS

    @property
    def is_dimensionless(self) -> bool:
        return not self._dimensions

    def __getitem__(self, symbol: str) -> Fraction:
        return self._dimensions[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self._dimensions)

    def __len__(self) -> int:
        return len(self._dimensions)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Unit):
            return self._dimensions == other._dimensions
        if isinstance(other, Mapping):
            return self == Unit(other)
        return NotImplemented

    def __mul__(self, other: "Unit") -> "Unit":
        if not isinstance(other, Unit):
            return NotImplemented
        return Unit(list(self._dimensions.items()) + list(other._dimensions.items()))

    def __truediv__(self, other: "Unit") -> "Unit":
        if not isinstance(other, Unit):
            return NotImplemented
        inverted = [(symbol, -exponent) for symbol, exponent in other._dimensions.items()]
        return Unit(list(self._dimensions.items()) + inverted)

    def pow(self, exponent: ExponentLike) -> "Unit":
        """Scale every exponent by ``exponent``."""

        factor = Fraction(exponent)
        return Unit({symbol: value * factor for symbol, value in self._dimensions.items()})

    def __pow__(self, exponent: ExponentLike) -> "Unit":
        return self.pow(exponent)

    def __repr__(self) -> str:
        inner = ", ".join(f"{symbol!r}: {exponent}" for symbol, exponent in self._dimensions.items())
        return f"Unit({{{inner}}})"

    def __str__(self) -> str:
        ordered = sorted(self._dimensions.items(), key=lambda item: (item[1] < 0, item[0]))
        parts = []
        for symbol, exponent in ordered:
            if exponent == 1:
                parts.append(symbol)
            else:
                parts.append(f"{symbol}^{format_exponent(exponent)}")
        return " ".join(parts)


UNITLESS = Unit()


@dataclass(frozen=True, slots=True)
class Quantity(Generic[T]):
    """A scalar paired with the unit it is measured in."""

    scalar: T
    unit: Unit = UNITLESS

    def with_unit(self, unit: Unit) -> "Quantity[T]":
        return replace(self, unit=unit)

    def with_scalar(self, scalar: T) -> "Quantity[T]":
        return replace(self, scalar=scalar)

    @property
    def is_dimensionless(self) -> bool:
        return self.unit.is_dimensionless


__all__ = ["Unit", "UNITLESS", "Quantity"]
