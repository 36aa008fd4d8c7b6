"""
Intermediate Builder
====================

Translates the token stream into the intermediate representation.

Only two structural rules are checked here:

1. The expression must start with a number (something must be pushed
   before any operator can run).
2. The expression must end with an operator (a trailing push would leave
   the result position ambiguous).

Stack depth is deliberately not simulated: the generated program guards
every operator at runtime, which keeps working once the language grows
control flow where the depth is not known statically.
"""

import logging
from typing import Iterable, Optional

from rpnc.compiler.lexer import Token, TokenType
from rpnc.compiler.instructions import Instruction, Opcode, stack_effect
from rpnc.compiler.errors import (
    EmptyExpressionError,
    InvalidStartError,
    InvalidEndError,
    UnknownTokenError,
)

logger = logging.getLogger(__name__)


# Token kind -> opcode. POWER and FACTORIAL are lexed but have no
# instruction yet.
TOKEN_OPCODES: dict[TokenType, Opcode] = {
    TokenType.NUMBER: Opcode.PUSH,
    TokenType.PLUS: Opcode.PLUS,
    TokenType.MINUS: Opcode.MINUS,
    TokenType.ASTERISK: Opcode.MULTIPLY,
    TokenType.SLASH: Opcode.DIVIDE,
    TokenType.MOD: Opcode.MODULO,
    TokenType.DUP: Opcode.DUP,
    TokenType.SWAP: Opcode.SWAP,
    TokenType.AND: Opcode.AND,
    TokenType.XOR: Opcode.XOR,
}


class InstructionBuilder:
    """
    Builds the IR from a token sequence.

    Example:
        builder = InstructionBuilder(tokens, source_lines=text.splitlines())
        instructions = builder.build()

    Attributes:
        tokens: The tokens to translate (EOF tokens are ignored)
        source_lines: Source text lines, used to show context in errors
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        source_lines: Optional[list[str]] = None,
    ):
        self.tokens = [t for t in tokens if t.type != TokenType.EOF]
        self.source_lines = source_lines or []

    def build(self) -> list[Instruction]:
        """
        Validate the token sequence and translate it to instructions.

        Raises:
            EmptyExpressionError: No tokens
            InvalidStartError: First token is not a number
            InvalidEndError: Last token is a number
            UnknownTokenError: A token has no corresponding instruction
        """
        if not self.tokens:
            raise EmptyExpressionError()

        first = self.tokens[0]
        if first.type != TokenType.NUMBER:
            raise InvalidStartError(
                first.describe(), first.location, self._source_line(first)
            )

        last = self.tokens[-1]
        if last.type == TokenType.NUMBER:
            raise InvalidEndError(
                last.describe(), last.location, self._source_line(last)
            )

        instructions = [self._translate(token) for token in self.tokens]
        logger.debug(f"Built {len(instructions)} instructions from {len(self.tokens)} tokens")
        return instructions

    def _translate(self, token: Token) -> Instruction:
        opcode = TOKEN_OPCODES.get(token.type)
        if opcode is None:
            raise UnknownTokenError(
                token.describe(), token.location, self._source_line(token)
            )

        # Raises InternalCompilerError when the tables disagree
        stack_effect(opcode)

        value = token.literal if opcode == Opcode.PUSH else None
        return Instruction(opcode, value, token.location)

    def _source_line(self, token: Token) -> Optional[str]:
        if 0 < token.line <= len(self.source_lines):
            return self.source_lines[token.line - 1]
        return None


def build_instructions(
    tokens: Iterable[Token],
    source_lines: Optional[list[str]] = None,
) -> list[Instruction]:
    """Convenience wrapper around InstructionBuilder."""
    return InstructionBuilder(tokens, source_lines).build()
