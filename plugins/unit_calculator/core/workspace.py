"""Workspace: variables, units and functions shared across evaluations."""

from __future__ import annotations

import re
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generic, Iterator, Sequence, TypeVar

from common.logging import get_logger

from .domains import Domain, get_domain
from .errors import (
    CalculationError,
    ExpressionSyntaxError,
    InvalidOperationError,
    LookupFailure,
    RecursionLimitError,
    UnitMismatchError,
)
from .evaluator import BASE_UNIT_MISMATCH, is_stripped_conversion, is_unit_conversion, resolve_node
from .nodes import BinaryNode, BinaryOperator, FunctionNode, Node
from .parser import IN_KEYWORD, SyntaxTree, parse
from .symbols import BuiltInFunction, UserFunction, Variable, VariableScope
from .units import Quantity, Unit

T = TypeVar("T")

DEFAULT_MAX_CALL_DEPTH = 64
_DIAGNOSTIC_HISTORY = 50
_NAME_PATTERN = re.compile(r"^[^\W\d]\w*$")

logger = get_logger("unitcalc.workspace")


@dataclass(frozen=True, slots=True)
class Resolution(Generic[T]):
    """Outcome of evaluating one expression.

    ``quantity`` is the value to display: on failure it is the domain's
    default quantity and ``message`` says what went wrong. ``base`` is the
    same value before any output unit was applied.
    """

    success: bool
    quantity: Quantity[T]
    message: str | None = None
    base: Quantity[T] | None = None

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True, slots=True)
class OutputUnit(Generic[T]):
    """Display unit for results whose dimensions equal ``base``.

    ``factor`` is the value of one ``unit`` expressed in ``base``.
    """

    unit: Unit
    base: Unit
    factor: T


def _check_name(name: str, kind: str) -> str:
    if not isinstance(name, str) or not _NAME_PATTERN.match(name):
        raise InvalidOperationError(f"'{name}' is not a valid {kind} name.")
    if name == IN_KEYWORD:
        raise InvalidOperationError(f"'{IN_KEYWORD}' is reserved and cannot be used as a {kind} name.")
    return name


def _defines_function(root: Node) -> bool:
    return (
        isinstance(root, BinaryNode)
        and root.operator is BinaryOperator.ASSIGN
        and isinstance(root.left, FunctionNode)
    )


class Workspace(Generic[T]):
    """Symbol tables and settings for a sequence of evaluations.

    The workspace is not thread-safe; callers that share one between
    threads must serialize access.
    """

    def __init__(
        self,
        domain: str | Domain = "real",
        *,
        separator: str = ",",
        decimal: str = ".",
        answer_variable: str = "",
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
        resolve_output_units: bool = True,
    ) -> None:
        self.domain: Domain = get_domain(domain)
        if len(separator) != 1 or len(decimal) != 1 or separator == decimal:
            raise ValueError("separator and decimal must be two different single characters")
        self.separator = separator
        self.decimal = decimal
        self.answer_variable = answer_variable
        if max_call_depth < 1:
            raise ValueError("max_call_depth must be at least 1")
        self.max_call_depth = max_call_depth
        self.resolve_output_units = resolve_output_units

        self._constants: VariableScope[T] = VariableScope()
        self._variables: VariableScope[T] = VariableScope(self._constants)
        self._scope: VariableScope[T] = self._variables
        self._input_units: dict[str, Quantity[T]] = {}
        self._output_units: dict[Unit, OutputUnit[T]] = {}
        self._user_functions: dict[tuple[str, int], UserFunction] = {}
        self._builtins: dict[tuple[str, int], BuiltInFunction] = {}
        self._depth = 0
        self._diagnostics: deque[str] = deque(maxlen=_DIAGNOSTIC_HISTORY)

    # Diagnostics ------------------------------------------------------

    @property
    def diagnostic_message(self) -> str | None:
        """The most recent failure message, if any."""

        return self._diagnostics[-1] if self._diagnostics else None

    @property
    def diagnostics(self) -> list[str]:
        return list(self._diagnostics)

    def post_diagnostic(self, message: str) -> None:
        self._diagnostics.append(message)
        logger.debug("evaluation failed: %s", message)

    # Evaluation -------------------------------------------------------

    def parse(self, text: str) -> SyntaxTree:
        return parse(text, self)

    def evaluate(self, text: str) -> Resolution[T]:
        """Parse and resolve ``text``; syntax errors become a failed result."""

        try:
            tree = self.parse(text)
        except ExpressionSyntaxError as exc:
            return self._failure(str(exc))
        result = self.resolve(tree)
        if not result or not self.answer_variable or result.base is None:
            return result
        if not _defines_function(tree.root):
            self._variables.set_local(self.answer_variable, Variable(result.base))
        return result

    def resolve(self, tree: SyntaxTree | Node) -> Resolution[T]:
        root = tree.root if isinstance(tree, SyntaxTree) else tree
        self._scope = self._variables
        self._depth = 0
        try:
            if is_unit_conversion(root) and not is_stripped_conversion(root):
                base, quantity = self._convert_for_display(root)
            else:
                base = resolve_node(root, self)
                quantity = self.to_output_unit(base) if self.resolve_output_units else base
        except CalculationError as exc:
            return self._failure(str(exc))
        except RecursionError:
            return self._failure("Expression is nested too deeply.")
        finally:
            self._scope = self._variables
            self._depth = 0
        return Resolution(True, quantity, None, base)

    def _convert_for_display(self, node: BinaryNode) -> tuple[Quantity[T], Quantity[T]]:
        value = resolve_node(node.left, self)
        target = resolve_node(node.right, self)
        factor = self.domain.factor(value, target, BASE_UNIT_MISMATCH)
        return value, Quantity(factor, Unit.of(node.right.content))

    def _failure(self, message: str) -> Resolution[T]:
        self.post_diagnostic(message)
        return Resolution(False, self.domain.default, message)

    def format_quantity(self, quantity: Quantity[T], precision: int = 12) -> str:
        text = self.domain.format_scalar(quantity.scalar, precision)
        unit = str(quantity.unit)
        return f"{text} {unit}" if unit else text

    def _scalar_from(self, value: Any) -> T:
        """Turn a registration scalar (number or text) into a domain scalar."""

        if not isinstance(value, str):
            return self.domain.coerce(value)
        tree = parse(value)
        result = resolve_node(tree.root, self)
        if not result.unit.is_dimensionless:
            raise UnitMismatchError(f"The scalar '{value}' must be dimensionless.")
        return result.scalar

    def _quantity_from(self, quantity: Quantity[Any]) -> Quantity[T]:
        return Quantity(self._scalar_from(quantity.scalar), quantity.unit)

    # Variables --------------------------------------------------------

    def lookup_variable(self, name: str) -> Quantity[T]:
        variable = self._scope.lookup(name)
        if variable is not None:
            return variable.value
        fallback = self.domain.fallback_variable(name)
        if fallback is not None:
            return Quantity(fallback)
        raise LookupFailure(f"Could not find a variable with the name '{name}'.")

    def assign_variable(self, name: str, value: Quantity[T]) -> None:
        """Store ``value`` in the innermost scope, as an assignment does."""

        self._scope.set_local(name, Variable(value))

    def get_variable(self, name: str) -> Variable[T] | None:
        return self._variables.lookup(name)

    def set_variable(self, name: str, value: Quantity[Any], description: str | None = None) -> None:
        _check_name(name, "variable")
        self._variables.set_local(name, Variable(self._quantity_from(value), description))

    def remove_variable(self, name: str) -> bool:
        return self._variables.remove_local(name)

    @property
    def variables(self) -> dict[str, Variable[T]]:
        return dict(self._variables.items())

    def clear_variables(self) -> None:
        self._variables.clear()

    def set_constant(self, name: str, value: Quantity[Any], description: str | None = None) -> None:
        _check_name(name, "constant")
        self._constants.set_local(name, Variable(self._quantity_from(value), description))

    def remove_constant(self, name: str) -> bool:
        return self._constants.remove_local(name)

    @property
    def constants(self) -> dict[str, Variable[T]]:
        return dict(self._constants.items())

    @contextmanager
    def child_scope(self) -> Iterator[VariableScope[T]]:
        parent = self._scope
        self._scope = VariableScope(parent)
        try:
            yield self._scope
        finally:
            self._scope = parent

    # Input units ------------------------------------------------------

    def is_unit(self, name: str) -> bool:
        return name in self._input_units

    def lookup_unit(self, name: str) -> Quantity[T]:
        try:
            return self._input_units[name]
        except KeyError as exc:
            raise LookupFailure(f"Could not recognize unit '{name}'.") from exc

    def register_input_unit(self, name: str, value: Quantity[Any]) -> Quantity[T]:
        """Register ``name`` as ``value``, a quantity in base units.

        The scalar may be text (``"1e3"`` or an expression such as
        ``"1/3.6"``) or a number.
        """

        _check_name(name, "unit")
        quantity = self._quantity_from(value)
        if name in self._input_units:
            logger.info("replacing input unit %s", name)
        self._input_units[name] = quantity
        return quantity

    def define_input_unit(self, name: str, expression: str) -> Quantity[T]:
        """Register ``name`` as the value of ``expression``, e.g. ``"1000 m"``."""

        quantity = self._evaluate_definition(expression)
        return self.register_input_unit(name, quantity)

    def remove_input_unit(self, name: str) -> bool:
        return self._input_units.pop(name, None) is not None

    @property
    def input_units(self) -> dict[str, Quantity[T]]:
        return dict(self._input_units)

    def _evaluate_definition(self, expression: str) -> Quantity[T]:
        return resolve_node(self.parse(expression).root, self)

    # Output units -----------------------------------------------------

    def register_output_unit(self, unit: Unit | str, value: Quantity[Any]) -> OutputUnit[T]:
        """Show results whose unit equals ``value.unit`` in ``unit``.

        ``value`` is one ``unit`` expressed in base units. Only one output
        unit is kept per base unit; registering another replaces it.
        """

        display = Unit.of(unit) if isinstance(unit, str) else unit
        quantity = self._quantity_from(value)
        if quantity.unit.is_dimensionless:
            raise InvalidOperationError("Output units need a unit with dimensions.")
        if quantity.scalar == self.domain.zero:
            raise InvalidOperationError("The conversion factor of an output unit cannot be zero.")
        previous = self._output_units.get(quantity.unit)
        if previous is not None and previous.unit != display:
            logger.info("output unit %s replaces %s for %s", display, previous.unit, quantity.unit)
        entry = OutputUnit(display, quantity.unit, quantity.scalar)
        self._output_units[quantity.unit] = entry
        return entry

    def define_output_unit(self, unit: Unit | str, expression: str) -> OutputUnit[T]:
        """Register an output unit from an expression such as ``"1000 m"``."""

        return self.register_output_unit(unit, self._evaluate_definition(expression))

    def remove_output_unit(self, base: Unit) -> bool:
        return self._output_units.pop(base, None) is not None

    @property
    def output_units(self) -> list[OutputUnit[T]]:
        return list(self._output_units.values())

    def to_output_unit(self, quantity: Quantity[T]) -> Quantity[T]:
        """Express ``quantity`` in the output unit registered for its unit."""

        if quantity.unit.is_dimensionless:
            return quantity
        entry = self._output_units.get(quantity.unit)
        if entry is None:
            return quantity
        return Quantity(quantity.scalar / entry.factor, entry.unit)

    # Functions --------------------------------------------------------

    def register_user_function(
        self, name: str, parameters: Sequence[str], body: Node | str
    ) -> UserFunction:
        _check_name(name, "function")
        parameters = tuple(parameters)
        if len(set(parameters)) != len(parameters):
            raise InvalidOperationError(f"Function '{name}' has duplicate argument names.")
        if isinstance(body, str):
            body_node = self.parse(body).root
            body_text = body.strip()
        else:
            body_node = body
            body_text = body.content
        function = UserFunction(name, parameters, body_node, body_text)
        self._user_functions[(name, function.arity)] = function
        return function

    def remove_user_function(self, name: str, arity: int) -> bool:
        return self._user_functions.pop((name, arity), None) is not None

    @property
    def user_functions(self) -> list[UserFunction]:
        return list(self._user_functions.values())

    def register_builtin_function(self, function: BuiltInFunction) -> None:
        self._builtins[(function.name, function.arity)] = function

    @property
    def builtin_functions(self) -> list[BuiltInFunction]:
        return list(self._builtins.values())

    def lookup_function(self, name: str, arity: int) -> UserFunction | BuiltInFunction | None:
        key = (name, arity)
        return self._user_functions.get(key) or self._builtins.get(key)

    def call_user_function(self, function: UserFunction, arguments: Sequence[Quantity[T]]) -> Quantity[T]:
        if self._depth >= self.max_call_depth:
            raise RecursionLimitError(
                f"Maximum function call depth of {self.max_call_depth} exceeded "
                f"while calling '{function.name}'."
            )
        self._depth += 1
        try:
            with self.child_scope() as scope:
                for parameter, value in zip(function.parameters, arguments):
                    scope.set_local(parameter, Variable(value))
                return resolve_node(function.body, self)
        finally:
            self._depth -= 1

    # Housekeeping -----------------------------------------------------

    def clear(self) -> None:
        """Forget everything except the built-in functions."""

        self._variables.clear()
        self._constants.clear()
        self._input_units.clear()
        self._output_units.clear()
        self._user_functions.clear()
        self._diagnostics.clear()

    def describe(self) -> dict[str, Any]:
        return {
            "domain": self.domain.name,
            "variables": len(self._variables),
            "constants": len(self._constants),
            "input_units": len(self._input_units),
            "output_units": len(self._output_units),
            "user_functions": len(self._user_functions),
            "builtin_functions": len(self._builtins),
        }

    def __repr__(self) -> str:
        return f"Workspace(domain={self.domain.name!r}, units={len(self._input_units)})"


__all__ = [
    "DEFAULT_MAX_CALL_DEPTH",
    "OutputUnit",
    "Resolution",
    "Workspace",
]
