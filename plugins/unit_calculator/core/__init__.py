"""Facade for the unit calculator core."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .catalog import UNIT_SETS, build_workspace
from .domains import DOMAINS, ComplexDomain, Domain, RealDomain, get_domain
from .errors import (
    CalculationError,
    ExpressionSyntaxError,
    InvalidOperationError,
    LookupFailure,
    RecursionLimitError,
    SnapshotError,
    UnitMismatchError,
)
from .parser import SyntaxTree, parse
from .serialization import dumps, loads, workspace_from_json, workspace_to_json
from .sessions import Session, SessionNotFound, SessionStore
from .units import Quantity, Unit
from .workspace import Resolution, Workspace


def list_domains() -> List[str]:
    return list(DOMAINS)


def list_unit_sets() -> List[str]:
    return list(UNIT_SETS)


def describe_result(
    workspace: Workspace, expression: str, result: Resolution, precision: int = 12
) -> Dict[str, Any]:
    """Render a :class:`Resolution` as a JSON friendly mapping."""

    domain = workspace.domain
    quantity = result.quantity
    payload: Dict[str, Any] = {
        "expression": expression,
        "success": result.success,
        "value": domain.to_json_scalar(quantity.scalar),
        "unit": str(quantity.unit),
        "display": workspace.format_quantity(quantity, precision),
        "message": result.message,
    }
    if result.base is not None and result.base != quantity:
        payload["base"] = {
            "value": domain.to_json_scalar(result.base.scalar),
            "unit": str(result.base.unit),
        }
    return payload


def evaluate(
    expression: str,
    *,
    domain: str = "real",
    unit_sets: Iterable[str] = ("common",),
) -> Dict[str, Any]:
    """Evaluate ``expression`` in a fresh workspace."""

    workspace = build_workspace(domain, unit_sets)
    return describe_result(workspace, expression, workspace.evaluate(expression))


__all__ = [
    "CalculationError",
    "ComplexDomain",
    "Domain",
    "ExpressionSyntaxError",
    "InvalidOperationError",
    "LookupFailure",
    "Quantity",
    "RealDomain",
    "RecursionLimitError",
    "Resolution",
    "Session",
    "SessionNotFound",
    "SessionStore",
    "SnapshotError",
    "SyntaxTree",
    "Unit",
    "UnitMismatchError",
    "Workspace",
    "build_workspace",
    "describe_result",
    "dumps",
    "evaluate",
    "get_domain",
    "list_domains",
    "list_unit_sets",
    "loads",
    "parse",
    "workspace_from_json",
    "workspace_to_json",
]
