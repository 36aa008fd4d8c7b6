"""
RPN Compiler Error Hierarchy
============================

Compile-time errors raised by the RPN compiler. These abort compilation
entirely; no partial assembly is ever returned. Runtime faults of the
generated program are a separate universe (see rpnc.compiler.program).

Exception Hierarchy
-------------------
RPNError (base for all compile-time errors)
├── LexError - input character matches no token rule
├── EmptyExpressionError - nothing to compile
├── InvalidStartError - first token is not a number
├── InvalidEndError - last token is a number
├── UnknownTokenError - token has no instruction
├── CodeGenError - instruction has no template, or bad literal
└── InternalCompilerError - compiler tables are inconsistent
"""

from typing import Optional

from rpnc.errors import LocatedError, SourceLocation


class RPNError(LocatedError):
    """
    Base exception for all RPN compiler errors.

    Formatting (location prefix, caret pointer, hint) is inherited from
    LocatedError.
    """
    pass


class LexError(RPNError):
    """
    Input character that cannot start any token.

    Attributes:
        char: The offending text (a character, or a whole unknown word)
    """

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        if len(char) == 1:
            message = f"unexpected character '{char}' (0x{ord(char):02X})"
        else:
            message = f"unknown word '{char}'"
        super().__init__(
            message,
            location=location,
            hint="expected a number, an operator (+ - * / % ^ !) "
                 "or one of: dup swap and xor",
            source_line=source_line,
        )


class EmptyExpressionError(RPNError):
    """The expression contains no tokens."""

    def __init__(self):
        super().__init__(
            "the input expression appears to be empty",
            hint="an RPN expression looks like '7 1 + 3 -'",
        )


class InvalidStartError(RPNError):
    """The expression does not begin by pushing a number."""

    def __init__(
        self,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        super().__init__(
            f"expected the expression to begin with a number, found {found}",
            location=location,
            hint="operands come before their operator, e.g. '1 2 +'",
            source_line=source_line,
        )


class InvalidEndError(RPNError):
    """The expression ends with a number instead of an operator."""

    def __init__(
        self,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        super().__init__(
            f"an RPN expression cannot end with a number ({found})",
            location=location,
            hint="finish the expression with an operator",
            source_line=source_line,
        )


class UnknownTokenError(RPNError):
    """A token that does not translate to any instruction."""

    def __init__(
        self,
        token_name: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.token_name = token_name
        super().__init__(
            f"unsupported token: {token_name}",
            location=location,
            source_line=source_line,
        )


class CodeGenError(RPNError):
    """
    Error during code generation.

    Raised when an instruction has no assembly template, or when a PUSH
    literal is not a 32-bit signed integer.
    """
    pass


class InternalCompilerError(RPNError):
    """Compiler tables disagree with each other. Always a bug."""
    pass
