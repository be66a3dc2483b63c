"""Tokenizer for calculator expressions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    END_OF_LINE = auto()
    WORD = auto()
    SCALAR = auto()
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    POWER = auto()
    MODULO = auto()
    INT_DIVIDE = auto()
    FACTORIAL = auto()
    NOT_EQUAL = auto()
    EQUAL = auto()
    ASSIGN = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    SHIFT_LEFT = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    SHIFT_RIGHT = auto()
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    QUOTE = auto()
    SEPARATOR = auto()
    BITWISE_AND = auto()
    LOGICAL_AND = auto()
    BITWISE_OR = auto()
    LOGICAL_OR = auto()
    QUESTION = auto()
    COLON = auto()
    UNKNOWN = auto()


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    content: str
    column: int
    leading_trivia: bool = False


_SINGLE: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "/": TokenType.DIVIDE,
    "*": TokenType.MULTIPLY,
    "^": TokenType.POWER,
    "%": TokenType.MODULO,
    "\\": TokenType.INT_DIVIDE,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
    "=": TokenType.ASSIGN,
    "!": TokenType.FACTORIAL,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "'": TokenType.QUOTE,
    '"': TokenType.QUOTE,
    "&": TokenType.BITWISE_AND,
    "|": TokenType.BITWISE_OR,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
}

# Two-character operators keyed by their first character.
_DOUBLE: dict[str, dict[str, TokenType]] = {
    "*": {"*": TokenType.POWER},
    "<": {"=": TokenType.LESS_EQUAL, "<": TokenType.SHIFT_LEFT},
    ">": {"=": TokenType.GREATER_EQUAL, ">": TokenType.SHIFT_RIGHT},
    "=": {"=": TokenType.EQUAL},
    "!": {"=": TokenType.NOT_EQUAL},
    "&": {"&": TokenType.LOGICAL_AND},
    "|": {"|": TokenType.LOGICAL_OR},
}

_TRIVIA = (" ", "\t")


def _is_word_char(char: str) -> bool:
    return char.isalpha() or char.isdecimal() or char == "_"


class Lexer:
    """Reads one token at a time from an expression.

    The current token is always available through :attr:`type`,
    :attr:`content` and :attr:`column`; :meth:`next` moves to the following
    one. The first token is read on construction.
    """

    def __init__(self, text: str, *, separator: str = ",", decimal: str = ".") -> None:
        if len(separator) != 1 or len(decimal) != 1:
            raise ValueError("separator and decimal must be single characters")
        if separator == decimal:
            raise ValueError("separator and decimal must differ")
        self._text = text
        self._index = 0
        self.separator = separator
        self.decimal = decimal
        self._token = Token(TokenType.END_OF_LINE, "", 0)
        self.next()

    @property
    def text(self) -> str:
        return self._text

    @property
    def token(self) -> Token:
        return self._token

    @property
    def type(self) -> TokenType:
        return self._token.type

    @property
    def content(self) -> str:
        return self._token.content

    @property
    def column(self) -> int:
        return self._token.column

    @property
    def leading_trivia(self) -> bool:
        return self._token.leading_trivia

    def _char(self, offset: int = 0) -> str:
        index = self._index + offset
        if 0 <= index < len(self._text):
            return self._text[index]
        return ""

    def next(self) -> Token:
        trivia = False
        while self._char() in _TRIVIA:
            trivia = True
            self._index += 1

        start = self._index
        char = self._char()
        if not char:
            token_type = TokenType.END_OF_LINE
        elif char == self.separator:
            token_type = TokenType.SEPARATOR
            self._index += 1
        elif char.isalpha():
            token_type = TokenType.WORD
            self._index += 1
            while _is_word_char(self._char()):
                self._index += 1
        elif char.isdecimal():
            token_type = TokenType.SCALAR
            self._read_number()
        elif char in _SINGLE:
            token_type = _SINGLE[char]
            self._index += 1
            follow = _DOUBLE.get(char, {}).get(self._char())
            if follow is not None:
                token_type = follow
                self._index += 1
        else:
            token_type = TokenType.UNKNOWN
            self._index += 1

        self._token = Token(token_type, self._text[start : self._index], start, trivia)
        return self._token

    def _read_number(self) -> None:
        while self._char().isdecimal():
            self._index += 1
        if self._char() == self.decimal:
            self._index += 1
            while self._char().isdecimal():
                self._index += 1
        if self._char() in ("e", "E"):
            ahead = self._char(1)
            if ahead in ("+", "-") and self._char(2).isdecimal():
                self._index += 3
            elif ahead.isdecimal():
                self._index += 2
            else:
                return
            while self._char().isdecimal():
                self._index += 1

    def track(self, start: int) -> str:
        """Return the source from ``start`` up to the current token."""

        return self._text[start : self.column].rstrip()


__all__ = ["Lexer", "Token", "TokenType"]
