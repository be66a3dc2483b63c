"""Recursive descent parser for calculator expressions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, NoReturn

from .errors import ExpressionSyntaxError
from .lexer import Lexer, TokenType
from .nodes import (
    BinaryNode,
    BinaryOperator,
    FunctionNode,
    Node,
    ScalarNode,
    TernaryNode,
    TernaryOperator,
    UnaryNode,
    UnaryOperator,
    UnitNode,
    VariableNode,
)

if TYPE_CHECKING:  # pragma: no cover
    from .workspace import Resolution, Workspace

IN_KEYWORD = "in"

_EQUALITY = {
    TokenType.EQUAL: BinaryOperator.EQUAL,
    TokenType.NOT_EQUAL: BinaryOperator.NOT_EQUAL,
}
_RELATIONAL = {
    TokenType.LESS: BinaryOperator.LESS,
    TokenType.LESS_EQUAL: BinaryOperator.LESS_EQUAL,
    TokenType.GREATER: BinaryOperator.GREATER,
    TokenType.GREATER_EQUAL: BinaryOperator.GREATER_EQUAL,
}
_SHIFT = {
    TokenType.SHIFT_LEFT: BinaryOperator.LEFT_SHIFT,
    TokenType.SHIFT_RIGHT: BinaryOperator.RIGHT_SHIFT,
}
_ADDITIVE = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUBTRACT,
}
_MULTIPLICATIVE = {
    TokenType.MULTIPLY: BinaryOperator.MULTIPLY,
    TokenType.DIVIDE: BinaryOperator.DIVIDE,
    TokenType.MODULO: BinaryOperator.MODULO,
}
_UNARY = {
    TokenType.PLUS: UnaryOperator.PLUS,
    TokenType.MINUS: UnaryOperator.MINUS,
    TokenType.QUOTE: UnaryOperator.REMOVE_UNITS,
}


@dataclass(frozen=True, slots=True)
class SyntaxTree:
    """A parsed expression together with the text it was parsed from."""

    root: Node
    text: str

    def resolve(self, workspace: "Workspace") -> "Resolution":
        """Evaluate the tree against ``workspace``."""

        return workspace.resolve(self)


class Parser:
    """Builds a syntax tree from the tokens of a :class:`Lexer`.

    ``is_unit`` decides whether a word names a registered unit. That
    decision changes how implicit multiplication binds, so the parser needs
    it while reading, not afterwards.
    """

    def __init__(self, lexer: Lexer, is_unit: Callable[[str], bool] | None = None) -> None:
        self._lexer = lexer
        self._is_unit = is_unit or (lambda name: False)

    def parse(self) -> Node:
        lexer = self._lexer
        if lexer.type is TokenType.END_OF_LINE:
            raise ExpressionSyntaxError("Nothing to evaluate.")
        node = self._assignment()
        if lexer.type is not TokenType.END_OF_LINE:
            self._fail("Unrecognized token")
        return node

    def _fail(self, message: str) -> NoReturn:
        raise ExpressionSyntaxError(f"{message} at column {self._lexer.column + 1}.")

    def _expect_closing(self) -> None:
        if self._lexer.type is not TokenType.RIGHT_PAREN:
            self._fail("Bracket mismatch. Closing parenthesis expected")
        self._lexer.next()

    def _is_in_keyword(self) -> bool:
        return self._lexer.type is TokenType.WORD and self._lexer.content == IN_KEYWORD

    def _binary_level(
        self,
        operators: dict[TokenType, BinaryOperator],
        operand: Callable[[], Node],
    ) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = operand()
        while lexer.type in operators:
            operator = operators[lexer.type]
            lexer.next()
            right = operand()
            result = BinaryNode(operator, result, right, lexer.track(start))
        return result

    def _assignment(self) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = self._ternary()
        if lexer.type is TokenType.ASSIGN:
            lexer.next()
            value = self._assignment()
            result = BinaryNode(BinaryOperator.ASSIGN, result, value, lexer.track(start))
        return result

    def _ternary(self) -> Node:
        lexer = self._lexer
        start = lexer.column
        condition = self._logical_or()
        if lexer.type is not TokenType.QUESTION:
            return condition
        lexer.next()
        if_true = self._ternary()
        if lexer.type is not TokenType.COLON:
            self._fail("Expected a colon")
        lexer.next()
        if_false = self._ternary()
        return TernaryNode(
            TernaryOperator.CONDITION, condition, if_true, if_false, lexer.track(start)
        )

    def _logical_or(self) -> Node:
        return self._binary_level({TokenType.LOGICAL_OR: BinaryOperator.LOGICAL_OR}, self._logical_and)

    def _logical_and(self) -> Node:
        return self._binary_level({TokenType.LOGICAL_AND: BinaryOperator.LOGICAL_AND}, self._unit_conversion)

    def _unit_conversion(self) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = self._bitwise_or()
        while self._is_in_keyword():
            lexer.next()
            target = self._bitwise_or()
            result = BinaryNode(BinaryOperator.IN_UNIT, result, target, lexer.track(start))
        return result

    def _bitwise_or(self) -> Node:
        return self._binary_level({TokenType.BITWISE_OR: BinaryOperator.BITWISE_OR}, self._bitwise_and)

    def _bitwise_and(self) -> Node:
        return self._binary_level({TokenType.BITWISE_AND: BinaryOperator.BITWISE_AND}, self._equality)

    def _equality(self) -> Node:
        return self._binary_level(_EQUALITY, self._relational)

    def _relational(self) -> Node:
        return self._binary_level(_RELATIONAL, self._shift)

    def _shift(self) -> Node:
        return self._binary_level(_SHIFT, self._additive)

    def _additive(self) -> Node:
        return self._binary_level(_ADDITIVE, self._multiplicative)

    def _multiplicative(self) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = self._integer_division()
        while True:
            if lexer.type in _MULTIPLICATIVE:
                operator = _MULTIPLICATIVE[lexer.type]
                lexer.next()
                right = self._integer_division()
                result = BinaryNode(operator, result, right, lexer.track(start))
            elif lexer.type is TokenType.WORD and not self._is_in_keyword():
                # Juxtaposed units bind as tightly as an exponent.
                if self._is_unit(lexer.content):
                    right = self._exponentiation()
                else:
                    right = VariableNode(lexer.content)
                    lexer.next()
                result = BinaryNode(BinaryOperator.MULTIPLY, result, right, lexer.track(start))
            elif lexer.type is TokenType.LEFT_PAREN:
                lexer.next()
                right = self._assignment()
                self._expect_closing()
                result = BinaryNode(BinaryOperator.MULTIPLY, result, right, lexer.track(start))
            else:
                return result

    def _integer_division(self) -> Node:
        return self._binary_level({TokenType.INT_DIVIDE: BinaryOperator.INT_DIVIDE}, self._unary)

    def _unary(self) -> Node:
        lexer = self._lexer
        operator = _UNARY.get(lexer.type)
        if operator is None:
            return self._exponentiation()
        start = lexer.column
        lexer.next()
        argument = self._unary()
        return UnaryNode(operator, argument, lexer.track(start))

    def _exponentiation(self, *, units: bool = True) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = self._factorial(units=units)
        if lexer.type is TokenType.POWER:
            lexer.next()
            exponent = self._exponent()
            result = BinaryNode(BinaryOperator.EXPONENT, result, exponent, lexer.track(start))
        return result

    def _exponent(self) -> Node:
        """Read the right operand of ``^``: optional prefix operators, then a power.

        Unit words after a scalar exponent are left to the enclosing level,
        so ``m^2 s`` is ``(m^2) s``.
        """

        lexer = self._lexer
        operator = _UNARY.get(lexer.type)
        if operator is None:
            return self._exponentiation(units=False)
        start = lexer.column
        lexer.next()
        argument = self._exponent()
        return UnaryNode(operator, argument, lexer.track(start))

    def _factorial(self, *, units: bool = True) -> Node:
        lexer = self._lexer
        start = lexer.column
        result = self._elementary(units=units)
        while lexer.type is TokenType.FACTORIAL:
            lexer.next()
            result = UnaryNode(UnaryOperator.FACTORIAL, result, lexer.track(start))
        return result

    def _elementary(self, *, units: bool = True) -> Node:
        lexer = self._lexer
        if lexer.type is TokenType.LEFT_PAREN:
            lexer.next()
            result = self._assignment()
            self._expect_closing()
            return result

        if lexer.type is TokenType.SCALAR:
            start = lexer.column
            result: Node = ScalarNode(lexer.content)
            lexer.next()
            while units and lexer.type is TokenType.WORD and self._is_unit(lexer.content):
                unit = self._exponentiation()
                result = BinaryNode(BinaryOperator.MULTIPLY, result, unit, lexer.track(start))
            return result

        if lexer.type is TokenType.WORD:
            start = lexer.column
            name = lexer.content
            lexer.next()
            if lexer.type is TokenType.LEFT_PAREN:
                return self._function_call(name, start)
            if self._is_unit(name):
                return UnitNode(name)
            return VariableNode(name)

        self._fail("Unrecognized token")

    def _function_call(self, name: str, start: int) -> FunctionNode:
        lexer = self._lexer
        lexer.next()
        arguments: list[Node] = []
        if lexer.type is TokenType.RIGHT_PAREN:
            lexer.next()
            return FunctionNode(name, (), lexer.track(start))
        arguments.append(self._assignment())
        while lexer.type is TokenType.SEPARATOR:
            lexer.next()
            arguments.append(self._assignment())
        self._expect_closing()
        return FunctionNode(name, tuple(arguments), lexer.track(start))


def parse(
    text: str,
    workspace: "Workspace | None" = None,
    *,
    separator: str | None = None,
    decimal: str | None = None,
) -> SyntaxTree:
    """Parse ``text`` into a :class:`SyntaxTree`.

    When a workspace is given, its registered input units decide which words
    are units and its separator and decimal characters are used unless
    overridden. Raises :class:`ExpressionSyntaxError` for malformed input.
    """

    if separator is None:
        separator = workspace.separator if workspace is not None else ","
    if decimal is None:
        decimal = workspace.decimal if workspace is not None else "."
    lexer = Lexer(text, separator=separator, decimal=decimal)
    parser = Parser(lexer, workspace.is_unit if workspace is not None else None)
    try:
        root = parser.parse()
    except RecursionError as exc:
        raise ExpressionSyntaxError("Expression is nested too deeply.") from exc
    return SyntaxTree(root, text)


__all__ = ["IN_KEYWORD", "Parser", "SyntaxTree", "parse"]
