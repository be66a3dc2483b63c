"""JSON snapshots of units, quantities, variables and whole workspaces.

Shapes::

    unit       "m" | ["m", 2] | ["m", 1, 2] | [["kg"], ["m", 2], ["s", -2]] | []
    quantity   {"s": <scalar>, "u": <unit>}      (``u`` omitted when dimensionless)
    variable   {"q": <quantity>, "d": <text>}    (``d`` omitted when empty)

Scalars are written by the workspace's domain: real scalars as numbers,
complex scalars as a number or a ``[real, imaginary]`` pair.
"""

from __future__ import annotations

import json
from fractions import Fraction
from typing import Any, Mapping

from .domains import Domain, get_domain
from .errors import CalculationError, SnapshotError
from .functions import install_builtins
from .symbols import Variable
from .units import Quantity, Unit
from .workspace import Workspace

SNAPSHOT_SETTINGS = ("separator", "decimal", "answer_variable", "max_call_depth", "resolve_output_units")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _exponent_to_json(symbol: str, exponent: Fraction) -> list[Any]:
    if exponent.denominator != 1:
        return [symbol, exponent.numerator, exponent.denominator]
    return [symbol, exponent.numerator]


def unit_to_json(unit: Unit) -> str | list[Any]:
    if unit.is_dimensionless:
        return []
    if len(unit) == 1:
        symbol, exponent = next(iter(unit.items()))
        if exponent == 1:
            return symbol
        return _exponent_to_json(symbol, exponent)
    return [
        [symbol] if exponent == 1 else _exponent_to_json(symbol, exponent)
        for symbol, exponent in unit.items()
    ]


def _dimension_from_json(raw: list[Any]) -> tuple[str, Fraction]:
    if not 1 <= len(raw) <= 3 or not isinstance(raw[0], str):
        raise SnapshotError("Expected up to 3 elements for a unit dimension.")
    numbers = raw[1:]
    if not all(_is_int(number) for number in numbers):
        raise SnapshotError(f"Unit exponents must be integers, got {raw!r}.")
    numerator = numbers[0] if numbers else 1
    denominator = numbers[1] if len(numbers) > 1 else 1
    if denominator == 0:
        raise SnapshotError(f"The exponent of '{raw[0]}' has a zero denominator.")
    return raw[0], Fraction(numerator, denominator)


def unit_from_json(raw: Any) -> Unit:
    if isinstance(raw, str):
        return Unit.of(raw)
    if not isinstance(raw, list):
        raise SnapshotError(f"Unrecognized unit {raw!r}.")
    if not raw:
        return Unit()
    if isinstance(raw[0], str):
        return Unit([_dimension_from_json(raw)])
    dimensions = []
    for item in raw:
        if not isinstance(item, list):
            raise SnapshotError(f"Unrecognized unit dimension {item!r}.")
        dimensions.append(_dimension_from_json(item))
    return Unit(dimensions)


def quantity_to_json(quantity: Quantity, domain: Domain) -> dict[str, Any]:
    payload: dict[str, Any] = {"s": domain.to_json_scalar(quantity.scalar)}
    if not quantity.unit.is_dimensionless:
        payload["u"] = unit_to_json(quantity.unit)
    return payload


def quantity_from_json(raw: Any, domain: Domain) -> Quantity:
    if not isinstance(raw, Mapping) or "s" not in raw:
        raise SnapshotError(f"Expected a quantity object with an 's' field, got {raw!r}.")
    try:
        scalar = domain.from_json_scalar(raw["s"])
    except CalculationError as exc:
        raise SnapshotError(str(exc)) from exc
    return Quantity(scalar, unit_from_json(raw.get("u", [])))


def variable_to_json(variable: Variable, domain: Domain) -> dict[str, Any]:
    payload: dict[str, Any] = {"q": quantity_to_json(variable.value, domain)}
    if variable.description:
        payload["d"] = variable.description
    return payload


def variable_from_json(raw: Any, domain: Domain) -> Variable:
    if not isinstance(raw, Mapping) or "q" not in raw:
        raise SnapshotError(f"Expected a variable object with a 'q' field, got {raw!r}.")
    description = raw.get("d")
    if description is not None and not isinstance(description, str):
        raise SnapshotError("A variable description must be text.")
    return Variable(quantity_from_json(raw["q"], domain), description or None)


def workspace_to_json(workspace: Workspace) -> dict[str, Any]:
    """Describe everything a user defined in ``workspace``.

    Built-in functions are not part of a snapshot; they are installed again
    when the snapshot is loaded.
    """

    domain = workspace.domain
    return {
        "scalar": domain.name,
        "workspace": {
            "input_units": {
                name: quantity_to_json(quantity, domain)
                for name, quantity in workspace.input_units.items()
            },
            "output_units": [
                {
                    "o": unit_to_json(entry.unit),
                    "b": unit_to_json(entry.base),
                    "s": domain.to_json_scalar(entry.factor),
                }
                for entry in workspace.output_units
            ],
            "constants": {
                name: variable_to_json(variable, domain)
                for name, variable in workspace.constants.items()
            },
            "variables": {
                name: variable_to_json(variable, domain)
                for name, variable in workspace.variables.items()
            },
            "user_functions": [
                {"n": function.name, "arg": list(function.parameters), "b": function.body_text}
                for function in workspace.user_functions
            ],
            "settings": {name: getattr(workspace, name) for name in SNAPSHOT_SETTINGS},
        },
    }


def _section(body: Mapping[str, Any], name: str, kind: type) -> Any:
    value = body.get(name, kind())
    if not isinstance(value, kind):
        raise SnapshotError(f"The '{name}' section of the snapshot is malformed.")
    return value


def workspace_from_json(data: Mapping[str, Any], workspace: Workspace | None = None) -> Workspace:
    """Load a snapshot into ``workspace`` or into a new one with built-ins.

    Entries from the snapshot replace same-named entries already present.
    """

    if not isinstance(data, Mapping) or not isinstance(data.get("workspace"), Mapping):
        raise SnapshotError("A snapshot needs a 'workspace' object.")
    body = data["workspace"]
    try:
        domain = get_domain(data.get("scalar", "real"))
    except (ValueError, AttributeError) as exc:
        raise SnapshotError(f"Unknown scalar type {data.get('scalar')!r}.") from exc

    settings = _section(body, "settings", dict)
    unknown = set(settings) - set(SNAPSHOT_SETTINGS)
    if unknown:
        raise SnapshotError(f"Unknown workspace settings: {', '.join(sorted(unknown))}.")

    if workspace is None:
        try:
            workspace = Workspace(domain, **settings)
        except (TypeError, ValueError) as exc:
            raise SnapshotError(f"Invalid workspace settings: {exc}") from exc
        install_builtins(workspace)
    elif workspace.domain.name != domain.name:
        raise SnapshotError(
            f"The snapshot uses the {domain.name} domain but the workspace uses {workspace.domain.name}."
        )

    try:
        for name, raw in _section(body, "input_units", dict).items():
            workspace.register_input_unit(name, quantity_from_json(raw, workspace.domain))
        for raw in _section(body, "output_units", list):
            if not isinstance(raw, Mapping) or not {"o", "b", "s"} <= set(raw):
                raise SnapshotError(f"Malformed output unit {raw!r}.")
            factor = workspace.domain.from_json_scalar(raw["s"])
            workspace.register_output_unit(unit_from_json(raw["o"]), Quantity(factor, unit_from_json(raw["b"])))
        for name, raw in _section(body, "constants", dict).items():
            variable = variable_from_json(raw, workspace.domain)
            workspace.set_constant(name, variable.value, variable.description)
        for name, raw in _section(body, "variables", dict).items():
            variable = variable_from_json(raw, workspace.domain)
            workspace.set_variable(name, variable.value, variable.description)
        for raw in _section(body, "user_functions", list):
            if not isinstance(raw, Mapping) or not isinstance(raw.get("b"), str):
                raise SnapshotError(f"Malformed user function {raw!r}.")
            workspace.register_user_function(raw.get("n", ""), raw.get("arg", []), raw["b"])
    except SnapshotError:
        raise
    except CalculationError as exc:
        raise SnapshotError(str(exc)) from exc
    return workspace


def dumps(workspace: Workspace, **kwargs: Any) -> str:
    return json.dumps(workspace_to_json(workspace), **kwargs)


def loads(text: str | bytes, workspace: Workspace | None = None) -> Workspace:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"The snapshot is not valid JSON: {exc.msg}.") from exc
    return workspace_from_json(data, workspace)


__all__ = [
    "SNAPSHOT_SETTINGS",
    "dumps",
    "loads",
    "quantity_from_json",
    "quantity_to_json",
    "unit_from_json",
    "unit_to_json",
    "variable_from_json",
    "variable_to_json",
    "workspace_from_json",
    "workspace_to_json",
]
