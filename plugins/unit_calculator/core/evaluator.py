"""Evaluation of syntax trees.

:func:`resolve_node` handles every node type and operator. It raises a
:class:`~plugins.unit_calculator.core.errors.CalculationError` on the first
failure, so the innermost message is the one that reaches the caller and no
sibling that depends on a failed operand is evaluated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from .errors import InvalidOperationError, LookupFailure, UnitMismatchError
from .nodes import (
    BinaryNode,
    BinaryOperator,
    FunctionNode,
    Node,
    ScalarNode,
    TernaryNode,
    UnaryNode,
    UnaryOperator,
    UnitNode,
    VariableNode,
)
from .symbols import UserFunction
from .units import Quantity

if TYPE_CHECKING:  # pragma: no cover
    from .domains import Domain
    from .workspace import Workspace

_UNARY: dict[UnaryOperator, Callable[["Domain"], Callable]] = {
    UnaryOperator.PLUS: lambda domain: domain.plus,
    UnaryOperator.MINUS: lambda domain: domain.minus,
    UnaryOperator.FACTORIAL: lambda domain: domain.factorial,
}

_BINARY: dict[BinaryOperator, Callable[["Domain"], Callable]] = {
    BinaryOperator.BITWISE_OR: lambda domain: domain.bitwise_or,
    BinaryOperator.BITWISE_AND: lambda domain: domain.bitwise_and,
    BinaryOperator.EQUAL: lambda domain: domain.equal,
    BinaryOperator.NOT_EQUAL: lambda domain: domain.not_equal,
    BinaryOperator.LESS: lambda domain: domain.less,
    BinaryOperator.LESS_EQUAL: lambda domain: domain.less_or_equal,
    BinaryOperator.GREATER: lambda domain: domain.greater,
    BinaryOperator.GREATER_EQUAL: lambda domain: domain.greater_or_equal,
    BinaryOperator.LEFT_SHIFT: lambda domain: domain.left_shift,
    BinaryOperator.RIGHT_SHIFT: lambda domain: domain.right_shift,
    BinaryOperator.ADD: lambda domain: domain.add,
    BinaryOperator.SUBTRACT: lambda domain: domain.subtract,
    BinaryOperator.MULTIPLY: lambda domain: domain.multiply,
    BinaryOperator.DIVIDE: lambda domain: domain.divide,
    BinaryOperator.MODULO: lambda domain: domain.modulo,
    BinaryOperator.INT_DIVIDE: lambda domain: domain.int_divide,
    BinaryOperator.EXPONENT: lambda domain: domain.exponent,
}

CONVERSION_MISMATCH = "Cannot convert units as they don't match."
BASE_UNIT_MISMATCH = "Base units do not match."


def is_unit_conversion(node: Node) -> bool:
    return isinstance(node, BinaryNode) and node.operator is BinaryOperator.IN_UNIT


def is_stripped_conversion(node: Node) -> bool:
    """True for ``'x in u``, which converts and then drops the unit."""

    return (
        is_unit_conversion(node)
        and isinstance(node.left, UnaryNode)
        and node.left.operator is UnaryOperator.REMOVE_UNITS
    )


def resolve_node(node: Node, workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    if isinstance(node, ScalarNode):
        return Quantity(domain.parse_scalar(node.content, workspace.decimal))
    if isinstance(node, VariableNode):
        return workspace.lookup_variable(node.name)
    if isinstance(node, UnitNode):
        return workspace.lookup_unit(node.name)
    if isinstance(node, UnaryNode):
        return _resolve_unary(node, workspace)
    if isinstance(node, BinaryNode):
        return _resolve_binary(node, workspace)
    if isinstance(node, TernaryNode):
        condition = resolve_node(node.a, workspace)
        branch = node.b if domain.is_true(condition) else node.c
        return resolve_node(branch, workspace)
    if isinstance(node, FunctionNode):
        return _resolve_function(node, workspace)
    raise TypeError(f"Cannot evaluate node of type {type(node).__name__}")


def _convert(value: Node, target: Node, workspace: "Workspace", message: str):
    a = resolve_node(value, workspace)
    b = resolve_node(target, workspace)
    return workspace.domain.factor(a, b, message)


def _resolve_unary(node: UnaryNode, workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    if node.operator is UnaryOperator.REMOVE_UNITS:
        argument = node.argument
        if is_unit_conversion(argument):
            factor = _convert(argument.left, argument.right, workspace, CONVERSION_MISMATCH)
            return Quantity(factor)
        return domain.remove_units(resolve_node(argument, workspace))
    operation = _UNARY[node.operator](domain)
    return operation(resolve_node(node.argument, workspace))


def _resolve_binary(node: BinaryNode, workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    operator = node.operator
    if operator is BinaryOperator.ASSIGN:
        return _assign(node, workspace)
    if operator is BinaryOperator.IN_UNIT:
        if is_stripped_conversion(node):
            factor = _convert(node.left.argument, node.right, workspace, CONVERSION_MISMATCH)
            return Quantity(factor)
        a = resolve_node(node.left, workspace)
        b = resolve_node(node.right, workspace)
        if a.unit != b.unit:
            raise UnitMismatchError(BASE_UNIT_MISMATCH)
        return a
    if operator is BinaryOperator.LOGICAL_OR:
        if domain.is_true(resolve_node(node.left, workspace)):
            return domain.truth(True)
        return domain.truth(domain.is_true(resolve_node(node.right, workspace)))
    if operator is BinaryOperator.LOGICAL_AND:
        if not domain.is_true(resolve_node(node.left, workspace)):
            return domain.truth(False)
        return domain.truth(domain.is_true(resolve_node(node.right, workspace)))

    operation = _BINARY[operator](domain)
    left = resolve_node(node.left, workspace)
    right = resolve_node(node.right, workspace)
    return operation(left, right)


def _assign(node: BinaryNode, workspace: "Workspace") -> Quantity:
    target = node.left
    if isinstance(target, VariableNode):
        value = resolve_node(node.right, workspace)
        workspace.assign_variable(target.name, value)
        return value
    if isinstance(target, FunctionNode):
        parameters = []
        for argument in target.arguments:
            if not isinstance(argument, VariableNode):
                raise InvalidOperationError("Function argument has to be a simple variable.")
            parameters.append(argument.name)
        workspace.register_user_function(target.name, parameters, node.right)
        return workspace.domain.default
    raise InvalidOperationError("Can only assign to variables or user functions.")


def _resolve_function(node: FunctionNode, workspace: "Workspace") -> Quantity:
    arguments = [resolve_node(argument, workspace) for argument in node.arguments]
    function = workspace.lookup_function(node.name, len(arguments))
    if function is None:
        raise LookupFailure(
            f"Could not find a function with the name '{node.name}' "
            f"and {len(arguments)} argument(s)."
        )
    if isinstance(function, UserFunction):
        return workspace.call_user_function(function, arguments)
    return function.callback(arguments, workspace)


__all__ = [
    "BASE_UNIT_MISMATCH",
    "CONVERSION_MISMATCH",
    "is_stripped_conversion",
    "is_unit_conversion",
    "resolve_node",
]
