"""Syntax tree produced by the parser.

Nodes are plain immutable records. Evaluation lives in
:mod:`plugins.unit_calculator.core.evaluator`, which handles every node type
in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union


class UnaryOperator(Enum):
    PLUS = "+"
    MINUS = "-"
    FACTORIAL = "!"
    REMOVE_UNITS = "'"


class BinaryOperator(Enum):
    ASSIGN = "="
    IN_UNIT = "in"
    LOGICAL_OR = "||"
    LOGICAL_AND = "&&"
    BITWISE_OR = "|"
    BITWISE_AND = "&"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    LEFT_SHIFT = "<<"
    RIGHT_SHIFT = ">>"
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    INT_DIVIDE = "\\"
    EXPONENT = "^"


class TernaryOperator(Enum):
    CONDITION = "?:"


@dataclass(frozen=True, slots=True)
class ScalarNode:
    content: str


@dataclass(frozen=True, slots=True)
class VariableNode:
    content: str

    @property
    def name(self) -> str:
        return self.content


@dataclass(frozen=True, slots=True)
class UnitNode:
    content: str

    @property
    def name(self) -> str:
        return self.content


@dataclass(frozen=True, slots=True)
class UnaryNode:
    operator: UnaryOperator
    argument: "Node"
    content: str


@dataclass(frozen=True, slots=True)
class BinaryNode:
    operator: BinaryOperator
    left: "Node"
    right: "Node"
    content: str


@dataclass(frozen=True, slots=True)
class TernaryNode:
    operator: TernaryOperator
    a: "Node"
    b: "Node"
    c: "Node"
    content: str


@dataclass(frozen=True, slots=True)
class FunctionNode:
    name: str
    arguments: tuple["Node", ...]
    content: str


Node = Union[
    ScalarNode,
    VariableNode,
    UnitNode,
    UnaryNode,
    BinaryNode,
    TernaryNode,
    FunctionNode,
]


def iter_nodes(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants, depth first."""

    yield node
    if isinstance(node, UnaryNode):
        yield from iter_nodes(node.argument)
    elif isinstance(node, BinaryNode):
        yield from iter_nodes(node.left)
        yield from iter_nodes(node.right)
    elif isinstance(node, TernaryNode):
        yield from iter_nodes(node.a)
        yield from iter_nodes(node.b)
        yield from iter_nodes(node.c)
    elif isinstance(node, FunctionNode):
        for argument in node.arguments:
            yield from iter_nodes(argument)


__all__ = [
    "UnaryOperator",
    "BinaryOperator",
    "TernaryOperator",
    "ScalarNode",
    "VariableNode",
    "UnitNode",
    "UnaryNode",
    "BinaryNode",
    "TernaryNode",
    "FunctionNode",
    "Node",
    "iter_nodes",
]
