import pytest

from plugins.unit_calculator.core.errors import ExpressionSyntaxError
from plugins.unit_calculator.core.lexer import Lexer, TokenType
from plugins.unit_calculator.core.nodes import (
    BinaryNode,
    BinaryOperator,
    FunctionNode,
    ScalarNode,
    TernaryNode,
    UnaryNode,
    UnaryOperator,
    UnitNode,
    VariableNode,
    iter_nodes,
)
from plugins.unit_calculator.core.parser import Parser, parse


def _tokens(text, **kwargs):
    lexer = Lexer(text, **kwargs)
    tokens = []
    while lexer.type is not TokenType.END_OF_LINE:
        tokens.append((lexer.type, lexer.content))
        lexer.next()
    return tokens


def _units(*names):
    return lambda word: word in names


def test_lexer_reads_numbers_words_and_operators():
    assert _tokens("2.5e-3 km/hour") == [
        (TokenType.SCALAR, "2.5e-3"),
        (TokenType.WORD, "km"),
        (TokenType.DIVIDE, "/"),
        (TokenType.WORD, "hour"),
    ]


def test_lexer_prefers_two_character_operators():
    types = [token for token, _ in _tokens("a <= b << 2 ** 3 != c && d || e == f")]
    assert TokenType.LESS_EQUAL in types
    assert TokenType.SHIFT_LEFT in types
    assert TokenType.POWER in types
    assert TokenType.NOT_EQUAL in types
    assert TokenType.LOGICAL_AND in types
    assert TokenType.LOGICAL_OR in types
    assert TokenType.EQUAL in types


def test_lexer_leaves_dangling_exponent_marker_as_a_word():
    assert _tokens("3e") == [(TokenType.SCALAR, "3"), (TokenType.WORD, "e")]
    assert _tokens("3e+") == [
        (TokenType.SCALAR, "3"),
        (TokenType.WORD, "e"),
        (TokenType.PLUS, "+"),
    ]


def test_lexer_tracks_columns_and_trivia():
    lexer = Lexer("1 +  x")
    lexer.next()
    assert (lexer.type, lexer.column, lexer.leading_trivia) == (TokenType.PLUS, 2, True)
    lexer.next()
    assert (lexer.content, lexer.column) == ("x", 5)


def test_lexer_honours_custom_separator_and_decimal():
    assert _tokens("f(1,5; 2)", separator=";", decimal=",") == [
        (TokenType.WORD, "f"),
        (TokenType.LEFT_PAREN, "("),
        (TokenType.SCALAR, "1,5"),
        (TokenType.SEPARATOR, ";"),
        (TokenType.SCALAR, "2"),
        (TokenType.RIGHT_PAREN, ")"),
    ]
    with pytest.raises(ValueError):
        Lexer("1", separator=".", decimal=".")


def test_unknown_characters_become_unknown_tokens():
    assert _tokens("1 # 2")[1] == (TokenType.UNKNOWN, "#")


def test_multiplication_binds_tighter_than_addition():
    root = parse("2 + 3 * 4").root
    assert isinstance(root, BinaryNode) and root.operator is BinaryOperator.ADD
    assert root.right.operator is BinaryOperator.MULTIPLY


def test_exponent_is_right_associative():
    root = parse("2^3^2").root
    assert root.operator is BinaryOperator.EXPONENT
    assert isinstance(root.left, ScalarNode)
    assert root.right.operator is BinaryOperator.EXPONENT


def test_scalar_followed_by_units_multiplies():
    root = Parser(Lexer("5 m s^-1"), _units("m", "s")).parse()
    assert root.operator is BinaryOperator.MULTIPLY
    assert root.content == "5 m s^-1"
    exponent = root.right
    assert exponent.operator is BinaryOperator.EXPONENT
    assert isinstance(exponent.left, UnitNode)
    assert isinstance(exponent.right, UnaryNode)
    assert exponent.right.operator is UnaryOperator.MINUS


def test_units_after_an_exponent_are_not_part_of_it():
    root = Parser(Lexer("2 m^2 s"), _units("m", "s")).parse()
    assert root.operator is BinaryOperator.MULTIPLY
    assert isinstance(root.right, UnitNode) and root.right.name == "s"
    squared = root.left.right
    assert squared.operator is BinaryOperator.EXPONENT
    assert squared.right == ScalarNode("2")

    root = Parser(Lexer("3 kg m^2 s^-2"), _units("kg", "m", "s")).parse()
    exponents = [
        node.right.content
        for node in iter_nodes(root)
        if isinstance(node, BinaryNode) and node.operator is BinaryOperator.EXPONENT
    ]
    assert exponents == ["2", "-2"]


def test_signed_exponent_takes_no_units():
    root = Parser(Lexer("2^-1 m"), _units("m")).parse()
    assert root.operator is BinaryOperator.MULTIPLY
    assert root.left.operator is BinaryOperator.EXPONENT
    assert isinstance(root.left.right, UnaryNode)
    assert root.left.right.argument == ScalarNode("1")
    assert isinstance(root.right, UnitNode)


def test_unknown_words_are_variables():
    root = parse("2 x").root
    assert root.operator is BinaryOperator.MULTIPLY
    assert isinstance(root.right, VariableNode)
    assert root.right.name == "x"


def test_in_keyword_builds_a_conversion():
    root = Parser(Lexer("2 km/hour in m/s"), _units("km", "hour", "m", "s")).parse()
    assert root.operator is BinaryOperator.IN_UNIT
    assert root.right.content == "m/s"
    assert root.left.operator is BinaryOperator.DIVIDE


def test_quote_strips_units_of_conversion():
    root = Parser(Lexer("'x in m"), _units("m")).parse()
    assert root.operator is BinaryOperator.IN_UNIT
    assert isinstance(root.left, UnaryNode)
    assert root.left.operator is UnaryOperator.REMOVE_UNITS


def test_function_calls_and_assignment():
    root = parse("f(x, y) = x * y").root
    assert root.operator is BinaryOperator.ASSIGN
    assert isinstance(root.left, FunctionNode)
    assert root.left.name == "f"
    assert [argument.name for argument in root.left.arguments] == ["x", "y"]
    assert root.right.content == "x * y"


def test_ternary_and_factorial():
    root = parse("a > 1 ? 3! : 0").root
    assert isinstance(root, TernaryNode)
    assert root.b.operator is UnaryOperator.FACTORIAL
    kinds = {type(node).__name__ for node in iter_nodes(root)}
    assert {"TernaryNode", "BinaryNode", "UnaryNode", "ScalarNode", "VariableNode"} <= kinds


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("(1 + 2", "Bracket mismatch. Closing parenthesis expected at column 7."),
        ("1 + * 2", "Unrecognized token at column 5."),
        ("1 2", "Unrecognized token at column 3."),
        ("a ? 1", "Expected a colon at column 6."),
        ("   ", "Nothing to evaluate."),
    ],
)
def test_syntax_errors_report_the_column(text, message):
    with pytest.raises(ExpressionSyntaxError) as excinfo:
        parse(text)
    assert str(excinfo.value) == message


def test_deep_nesting_is_a_syntax_error():
    with pytest.raises(ExpressionSyntaxError, match="nested too deeply"):
        parse("(" * 5000 + "1" + ")" * 5000)
