"""
RPN Lexer (Tokenizer)
=====================

This module converts RPN expression text into a stream of tokens for the
intermediate builder.

Token Categories
----------------
- Numbers: decimal digit runs, optionally preceded by '-' (e.g. 42, -7)
- Operators: + - * / % ^ !
- Keywords: dup swap and xor (case sensitive); `dup2` is one unknown word

A '-' is part of a number only when a digit follows it immediately;
otherwise it is the MINUS operator. Literal text is kept verbatim and
only parsed to an integer during code generation.

Example Usage
-------------
>>> from rpnc.compiler.lexer import Lexer
>>> for token in Lexer("7 1 + 3 -").tokenize():
...     print(token)
Token(NUMBER, '7', 1:1)
Token(NUMBER, '1', 1:3)
Token(PLUS, 1:5)
Token(NUMBER, '3', 1:7)
Token(MINUS, 1:9)
Token(EOF, 1:10)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from rpnc.errors import SourceLocation
from rpnc.compiler.errors import LexError


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token kinds of the RPN language."""

    # === Structural ===
    EOF = auto()
    ERROR = auto()          # Never produced by Lexer; LexError is raised instead

    # === Literals ===
    NUMBER = auto()

    # === Integer Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    ASTERISK = auto()       # *
    SLASH = auto()          # /
    MOD = auto()            # %
    POWER = auto()          # ^
    FACTORIAL = auto()      # !

    # === Bitwise Operators ===
    AND = auto()            # and
    XOR = auto()            # xor

    # === Stack Operators ===
    DUP = auto()            # dup
    SWAP = auto()           # swap


KEYWORDS: dict[str, TokenType] = {
    "and": TokenType.AND,
    "dup": TokenType.DUP,
    "swap": TokenType.SWAP,
    "xor": TokenType.XOR,
}

OPERATORS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.ASTERISK,
    "/": TokenType.SLASH,
    "%": TokenType.MOD,
    "^": TokenType.POWER,
    "!": TokenType.FACTORIAL,
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token of an RPN expression.

    Attributes:
        type: The TokenType classification
        literal: Numeric literal text for NUMBER tokens, else None
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source
    """
    type: TokenType
    literal: Optional[str] = None
    line: int = 1
    column: int = 1
    filename: str = "<input>"

    def __repr__(self) -> str:
        if self.literal is not None:
            return f"Token({self.type.name}, {self.literal!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def describe(self) -> str:
        """Short human-readable form used in diagnostics."""
        if self.type == TokenType.NUMBER:
            return f"number {self.literal}"
        for text, token_type in {**OPERATORS, **KEYWORDS}.items():
            if token_type == self.type:
                return f"'{text}'"
        return self.type.name


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes RPN expression text.

    Usage:
        lexer = Lexer(text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The expression being tokenized
        filename: Name of the source (for error reporting)
    """

    WHITESPACE = " \t\n\r"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the expression.

        Yields:
            Token objects, always terminated by a single EOF token

        Raises:
            LexError: If a character matches no token rule
        """
        while True:
            self._skip_whitespace()
            if self._at_end():
                break
            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None, self._line, self._column)

    # =========================================================================
    # Character Access
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Character at current position + offset, or '' past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume one character, keeping line/column tracking current."""
        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self._peek() in self.WHITESPACE:
            self._advance()

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        literal: Optional[str],
        line: int,
        column: int,
    ) -> Token:
        return Token(
            type=token_type,
            literal=literal,
            line=line,
            column=column,
            filename=self.filename,
        )

    def _scan_token(self) -> Token:
        """Scan exactly one token starting at the current position."""
        line, column = self._line, self._column
        char = self._peek()

        if _is_digit(char) or (char == "-" and _is_digit(self._peek(1))):
            return self._make_token(TokenType.NUMBER, self._scan_number(), line, column)

        if char in OPERATORS:
            self._advance()
            return self._make_token(OPERATORS[char], None, line, column)

        if char in string.ascii_letters:
            word = self._scan_word()
            if word not in KEYWORDS:
                raise self._error(word, line, column)
            return self._make_token(KEYWORDS[word], None, line, column)

        raise self._error(char, line, column)

    def _scan_number(self) -> str:
        start = self._pos
        if self._peek() == "-":
            self._advance()
        while _is_digit(self._peek()):
            self._advance()
        return self.source[start:self._pos]

    def _scan_word(self) -> str:
        """Scan a word; digits (or a negative number) glued to it belong to the word."""
        start = self._pos
        while _is_alnum(self._peek()):
            self._advance()
        if self._peek() == "-" and _is_digit(self._peek(1)):
            self._advance()
            while _is_alnum(self._peek()):
                self._advance()
        return self.source[start:self._pos]

    def _error(self, text: str, line: int, column: int) -> LexError:
        """Build a LexError pointing at the given position."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        source_line = self.source[self._line_start_pos:line_end]

        return LexError(
            text,
            SourceLocation(self.filename, line, column),
            source_line=source_line,
        )


def _is_digit(char: str) -> bool:
    # '' is a substring of every string, so test it explicitly
    return char != "" and char in string.digits


def _is_alnum(char: str) -> bool:
    return char != "" and char in string.ascii_letters + string.digits


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize an expression and return the full token list (EOF included)."""
    return list(Lexer(source, filename).tokenize())
