"""Entries stored in a workspace's symbol tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Generic, Iterator, Sequence, TypeVar

from .nodes import Node
from .units import Quantity

if TYPE_CHECKING:  # pragma: no cover
    from .workspace import Workspace

T = TypeVar("T")

BuiltInCallback = Callable[[Sequence[Quantity], "Workspace"], Quantity]


@dataclass(frozen=True, slots=True)
class Variable(Generic[T]):
    value: Quantity[T]
    description: str | None = None


class VariableScope(Generic[T]):
    """Name to variable table that falls back to its parent on lookup."""

    def __init__(self, parent: "VariableScope[T] | None" = None) -> None:
        self.parent = parent
        self._local: dict[str, Variable[T]] = {}

    def lookup(self, name: str) -> Variable[T] | None:
        scope: VariableScope[T] | None = self
        while scope is not None:
            variable = scope._local.get(name)
            if variable is not None:
                return variable
            scope = scope.parent
        return None

    def set_local(self, name: str, variable: Variable[T]) -> None:
        self._local[name] = variable

    def remove_local(self, name: str) -> bool:
        return self._local.pop(name, None) is not None

    def clear(self) -> None:
        self._local.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._local

    def __iter__(self) -> Iterator[str]:
        return iter(self._local)

    def __len__(self) -> int:
        return len(self._local)

    def items(self):
        return self._local.items()


@dataclass(frozen=True, slots=True)
class UserFunction:
    """A function defined in an expression such as ``f(x) = x^2``."""

    name: str
    parameters: tuple[str, ...]
    body: Node
    body_text: str

    @property
    def arity(self) -> int:
        return len(self.parameters)


@dataclass(frozen=True, slots=True)
class BuiltInFunction:
    name: str
    arity: int
    callback: BuiltInCallback = field(repr=False)
    description: str = ""


__all__ = [
    "BuiltInCallback",
    "BuiltInFunction",
    "UserFunction",
    "Variable",
    "VariableScope",
]
