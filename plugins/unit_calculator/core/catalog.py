"""Ready-made unit sets and constants."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Callable, Iterable

from .functions import install_builtins
from .registry import base_quantity
from .units import Quantity, Unit
from .workspace import Workspace

SI_PREFIXES: dict[str, str] = {
    "a": "1e-18",
    "f": "1e-15",
    "p": "1e-12",
    "n": "1e-9",
    "u": "1e-6",
    "m": "1e-3",
    "c": "1e-2",
    "": "1",
    "k": "1e3",
    "M": "1e6",
    "G": "1e9",
    "T": "1e12",
    "P": "1e15",
}

METER = Unit.of("m")
KILOGRAM = Unit.of("kg")
SECOND = Unit.of("s")
AMPERE = Unit.of("A")
KELVIN = Unit.of("K")
MOLE = Unit.of("mol")
CANDELA = Unit.of("cd")
RADIAN = Unit.of("rad")
BIT = Unit.of("bit")

SPEED = Unit({"m": 1, "s": -1})
NEWTON = Unit({"kg": 1, "m": 1, "s": -2})
PASCAL = Unit({"kg": 1, "m": -1, "s": -2})
JOULE = Unit({"kg": 1, "m": 2, "s": -2})
WATT = Unit({"kg": 1, "m": 2, "s": -3})
COULOMB = Unit({"A": 1, "s": 1})
VOLT = Unit({"kg": 1, "m": 2, "s": -3, "A": -1})
FARAD = Unit({"A": 2, "s": 4, "kg": -1, "m": -2})
OHM = Unit({"kg": 1, "m": 2, "s": -3, "A": -2})
SIEMENS = Unit({"A": 2, "s": 3, "kg": -1, "m": -2})
WEBER = Unit({"kg": 1, "m": 2, "s": -2, "A": -1})
TESLA = Unit({"kg": 1, "s": -2, "A": -1})
HENRY = Unit({"kg": 1, "m": 2, "s": -2, "A": -2})
HERTZ = Unit({"s": -1})

# Imperial and other units whose factors are taken from Pint.
PINT_UNITS: tuple[tuple[str, str], ...] = (
    ("inch", "inch"),
    ("ft", "foot"),
    ("yd", "yard"),
    ("mi", "mile"),
    ("nmi", "nautical_mile"),
    ("angstrom", "angstrom"),
    ("lb", "pound"),
    ("oz", "ounce"),
    ("week", "week"),
    ("year", "year"),
    ("gal", "gallon"),
    ("mph", "mile / hour"),
    ("knot", "knot"),
)


def _scaled(prefix_factor: str, factor: str) -> str:
    return str(Decimal(prefix_factor) * Decimal(factor))


def register_prefixed_input_units(
    workspace: Workspace,
    name: str,
    base: Unit,
    prefixes: Iterable[str],
    factor: str = "1",
) -> None:
    """Register ``name`` with each SI prefix in ``prefixes``.

    ``factor`` is the value of one unprefixed ``name`` in ``base``.
    """

    for prefix in prefixes:
        workspace.register_input_unit(
            f"{prefix}{name}", Quantity(_scaled(SI_PREFIXES[prefix], factor), base)
        )


def register_input_output_unit(workspace: Workspace, name: str, base: Unit, factor: str = "1") -> None:
    """Register ``name`` for input and as the display unit for ``base``."""

    workspace.register_input_unit(name, Quantity(factor, base))
    workspace.register_output_unit(Unit.of(name), Quantity(factor, base))


def register_pint_unit(workspace: Workspace, name: str, expression: str) -> Quantity:
    return workspace.register_input_unit(name, base_quantity(expression))


def register_common_units(workspace: Workspace) -> None:
    register_prefixed_input_units(workspace, "m", METER, ("n", "u", "m", "c", "", "k"))
    workspace.register_output_unit(METER, Quantity("1", METER))

    register_prefixed_input_units(workspace, "g", KILOGRAM, ("n", "u", "m", "", "k"), factor="1e-3")
    workspace.register_input_unit("ton", Quantity("1e3", KILOGRAM))
    workspace.register_output_unit(KILOGRAM, Quantity("1", KILOGRAM))

    register_prefixed_input_units(workspace, "s", SECOND, ("f", "p", "n", "u", "m", ""))
    workspace.register_input_unit("min", Quantity("60", SECOND))
    workspace.register_input_unit("hour", Quantity("3600", SECOND))
    workspace.register_input_unit("day", Quantity("86400", SECOND))
    workspace.register_output_unit(SECOND, Quantity("1", SECOND))

    workspace.register_output_unit(SPEED, Quantity("1", SPEED))

    register_prefixed_input_units(workspace, "A", AMPERE, ("p", "n", "u", "m", "", "k"))
    workspace.register_output_unit(AMPERE, Quantity("1", AMPERE))

    register_prefixed_input_units(workspace, "K", KELVIN, ("m", ""))
    workspace.register_output_unit(KELVIN, Quantity("1", KELVIN))

    register_prefixed_input_units(workspace, "mol", MOLE, ("n", "u", "m", ""))
    workspace.register_output_unit(MOLE, Quantity("1", MOLE))

    register_input_output_unit(workspace, "cd", CANDELA)

    register_input_output_unit(workspace, "rad", RADIAN)
    workspace.register_input_unit("deg", Quantity(repr(math.pi / 180), RADIAN))

    register_prefixed_input_units(workspace, "L", METER.pow(3), ("u", "m", ""), factor="1e-3")

    for name, expression in PINT_UNITS:
        register_pint_unit(workspace, name, expression)


def register_electronics_units(workspace: Workspace) -> None:
    named = (
        ("Hz", HERTZ, ("", "k", "M", "G", "T")),
        ("N", NEWTON, ("m", "", "k")),
        ("Pa", PASCAL, ("", "k", "M", "G")),
        ("J", JOULE, ("p", "n", "u", "m", "", "k", "M", "G")),
        ("W", WATT, ("p", "n", "u", "m", "", "k", "M", "G")),
        ("C", COULOMB, ("p", "n", "u", "m", "")),
        ("V", VOLT, ("n", "u", "m", "", "k", "M")),
        ("F", FARAD, ("f", "p", "n", "u", "m", "")),
        ("Ohm", OHM, ("u", "m", "", "k", "M")),
        ("S", SIEMENS, ("u", "m", "")),
        ("Wb", WEBER, ("u", "m", "")),
        ("T", TESLA, ("n", "u", "m", "")),
        ("H", HENRY, ("n", "u", "m", "")),
    )
    for name, base, prefixes in named:
        register_prefixed_input_units(workspace, name, base, prefixes)
        workspace.register_output_unit(Unit.of(name), Quantity("1", base))

    workspace.register_output_unit(Unit({"V": 1, "m": -1}), Quantity("1", VOLT / METER))
    register_prefixed_input_units(workspace, "eV", JOULE, ("m", "", "k", "M", "G"), factor="1.602176634e-19")

    register_input_output_unit(workspace, "bit", BIT)
    workspace.register_input_unit("B", Quantity("8", BIT))
    for prefix, multiplier in (("k", "1e3"), ("M", "1e6"), ("G", "1e9"), ("T", "1e12")):
        workspace.register_input_unit(f"{prefix}B", Quantity(_scaled(multiplier, "8"), BIT))
    for prefix, power in (("Ki", 10), ("Mi", 20), ("Gi", 30)):
        workspace.register_input_unit(f"{prefix}B", Quantity(str(8 * 2**power), BIT))


def register_common_constants(workspace: Workspace) -> None:
    workspace.set_constant("pi", Quantity(math.pi), "Ratio of a circle's circumference to its diameter.")
    workspace.set_constant("e", Quantity(math.e), "Euler's number.")
    workspace.set_constant("c", Quantity("299792458", SPEED), "Speed of light in vacuum.")


def register_electronics_constants(workspace: Workspace) -> None:
    constants = (
        ("q", "1.602176634e-19", COULOMB, "Elementary charge."),
        ("eps0", "8.8541878128e-12", Unit({"A": 2, "s": 4, "kg": -1, "m": -3}), "Vacuum permittivity."),
        ("mu0", "1.25663706212e-6", Unit({"kg": 1, "m": 1, "s": -2, "A": -2}), "Vacuum permeability."),
        ("h", "6.62607015e-34", Unit({"kg": 1, "m": 2, "s": -1}), "Planck constant."),
        ("hbar", "1.054571817e-34", Unit({"kg": 1, "m": 2, "s": -1}), "Reduced Planck constant."),
        ("k", "1.380649e-23", Unit({"kg": 1, "m": 2, "s": -2, "K": -1}), "Boltzmann constant."),
        ("NA", "6.02214076e23", Unit({"mol": -1}), "Avogadro constant."),
        ("G", "6.6743e-11", Unit({"m": 3, "kg": -1, "s": -2}), "Gravitational constant."),
        ("me", "9.1093837015e-31", KILOGRAM, "Electron mass."),
    )
    for name, value, unit, description in constants:
        workspace.set_constant(name, Quantity(value, unit), description)


def _common(workspace: Workspace) -> None:
    register_common_units(workspace)
    register_common_constants(workspace)


def _electronics(workspace: Workspace) -> None:
    register_electronics_units(workspace)
    register_electronics_constants(workspace)


UNIT_SETS: dict[str, Callable[[Workspace], None]] = {
    "common": _common,
    "electronics": _electronics,
}


def build_workspace(
    domain: str = "real",
    unit_sets: Iterable[str] = ("common",),
    **settings: Any,
) -> Workspace:
    """Create a workspace with built-in functions and the named unit sets."""

    workspace = Workspace(domain, **settings)
    install_builtins(workspace)
    for name in unit_sets:
        try:
            installer = UNIT_SETS[name]
        except KeyError as exc:
            raise ValueError(f"Unknown unit set '{name}'. Expected one of: {', '.join(UNIT_SETS)}") from exc
        installer(workspace)
    return workspace


__all__ = [
    "PINT_UNITS",
    "SI_PREFIXES",
    "UNIT_SETS",
    "build_workspace",
    "register_common_constants",
    "register_common_units",
    "register_electronics_constants",
    "register_electronics_units",
    "register_input_output_unit",
    "register_pint_unit",
    "register_prefixed_input_units",
]
