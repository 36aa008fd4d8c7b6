"""
Intermediate Builder and Stack-Effect Table Tests
=================================================

Covers the token to instruction mapping, the two structural checks
(start with a number, end with an operator) and the stack-effect table.
"""

import pytest
from rpnc.compiler.lexer import Token, TokenType, tokenize
from rpnc.compiler.builder import InstructionBuilder, build_instructions, TOKEN_OPCODES
from rpnc.compiler.instructions import (
    Instruction,
    Opcode,
    StackEffect,
    STACK_EFFECTS,
    stack_effect,
)
from rpnc.compiler.errors import (
    EmptyExpressionError,
    InvalidStartError,
    InvalidEndError,
    UnknownTokenError,
    InternalCompilerError,
    RPNError,
)


def build(source: str) -> list[Instruction]:
    return build_instructions(tokenize(source), source.splitlines())


# =============================================================================
# Stack-Effect Table
# =============================================================================

class TestStackEffects:

    def test_every_opcode_has_an_entry(self):
        assert set(STACK_EFFECTS) == set(Opcode)

    @pytest.mark.parametrize("opcode,pops,pushes", [
        (Opcode.PUSH, 0, 1),
        (Opcode.DUP, 1, 2),
        (Opcode.SWAP, 2, 2),
        (Opcode.PLUS, 2, 1),
        (Opcode.MINUS, 2, 1),
        (Opcode.MULTIPLY, 2, 1),
        (Opcode.DIVIDE, 2, 1),
        (Opcode.MODULO, 2, 1),
        (Opcode.AND, 2, 1),
        (Opcode.XOR, 2, 1),
    ])
    def test_effects(self, opcode, pops, pushes):
        assert stack_effect(opcode) == StackEffect(pops, pushes)

    def test_delta(self):
        assert stack_effect(Opcode.PUSH).delta == 1
        assert stack_effect(Opcode.SWAP).delta == 0
        assert stack_effect(Opcode.PLUS).delta == -1

    def test_missing_entry_is_internal_error(self, monkeypatch):
        monkeypatch.delitem(STACK_EFFECTS, Opcode.XOR)
        with pytest.raises(InternalCompilerError):
            stack_effect(Opcode.XOR)

    def test_instruction_effect_property(self):
        assert Instruction(Opcode.DUP).effect == StackEffect(1, 2)


# =============================================================================
# Translation
# =============================================================================

class TestTranslation:

    def test_simple_expression(self):
        instructions = build("7 1 + 3 -")
        assert [str(i) for i in instructions] == ["PUSH 7", "PUSH 1", "PLUS", "PUSH 3", "MINUS"]

    def test_operator_mapping(self):
        instructions = build("1 2 * 3 / 4 % 5 and 6 xor dup swap -")
        opcodes = [i.opcode for i in instructions if i.opcode != Opcode.PUSH]
        assert opcodes == [
            Opcode.MULTIPLY,
            Opcode.DIVIDE,
            Opcode.MODULO,
            Opcode.AND,
            Opcode.XOR,
            Opcode.DUP,
            Opcode.SWAP,
            Opcode.MINUS,
        ]

    def test_push_keeps_literal_text(self):
        instructions = build("-4 3 *")
        assert instructions[0] == Instruction(Opcode.PUSH, "-4", instructions[0].location)

    def test_operators_have_no_value(self):
        for instr in build("1 dup +"):
            if instr.opcode != Opcode.PUSH:
                assert instr.value is None

    def test_locations_follow_tokens(self):
        instructions = build("1 2\n+")
        assert (instructions[2].location.line, instructions[2].location.column) == (2, 1)

    def test_eof_tokens_ignored(self):
        tokens = [
            Token(TokenType.NUMBER, "1"),
            Token(TokenType.DUP),
            Token(TokenType.EOF),
        ]
        assert [i.opcode for i in InstructionBuilder(tokens).build()] == [Opcode.PUSH, Opcode.DUP]

    def test_every_mapped_opcode_has_stack_effect(self):
        for opcode in TOKEN_OPCODES.values():
            assert opcode in STACK_EFFECTS

    def test_no_static_depth_check(self):
        """Underflow is left to the runtime guards."""
        assert [i.opcode for i in build("1 +")] == [Opcode.PUSH, Opcode.PLUS]
        assert len(build("3 2 1 +")) == 4


# =============================================================================
# Structural Errors
# =============================================================================

class TestStructuralErrors:

    def test_empty_expression(self):
        with pytest.raises(EmptyExpressionError):
            build("")

    def test_whitespace_only_is_empty(self):
        with pytest.raises(EmptyExpressionError):
            build("  \n\t ")

    def test_empty_token_list(self):
        with pytest.raises(EmptyExpressionError):
            InstructionBuilder([]).build()

    def test_invalid_start(self):
        with pytest.raises(InvalidStartError) as exc_info:
            build("+ 1")
        error = exc_info.value
        assert error.found == "'+'"
        assert error.location.column == 1

    def test_invalid_start_with_keyword(self):
        with pytest.raises(InvalidStartError):
            build("dup 1 +")

    def test_invalid_end(self):
        with pytest.raises(InvalidEndError) as exc_info:
            build("1 2")
        error = exc_info.value
        assert error.found == "number 2"
        assert error.location.column == 3
        assert "1:3: error:" in str(error)

    def test_single_number_is_invalid_end(self):
        with pytest.raises(InvalidEndError):
            build("42")

    @pytest.mark.parametrize("source,name", [
        ("2 3 ^", "'^'"),
        ("5 !", "'!'"),
    ])
    def test_unsupported_operators(self, source, name):
        with pytest.raises(UnknownTokenError) as exc_info:
            build(source)
        assert exc_info.value.token_name == name

    def test_error_token_is_unknown(self):
        tokens = [Token(TokenType.NUMBER, "1"), Token(TokenType.ERROR), Token(TokenType.PLUS)]
        with pytest.raises(UnknownTokenError):
            InstructionBuilder(tokens).build()

    def test_all_errors_are_rpn_errors(self):
        for source in ("", "+ 1", "1 2", "1 2 ^"):
            with pytest.raises(RPNError):
                build(source)
