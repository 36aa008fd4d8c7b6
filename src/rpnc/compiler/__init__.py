"""
RPN Compiler
============

Compiles Reverse Polish Notation arithmetic into Y86 assembly.

Pipeline
--------
    Expression → Lexer → InstructionBuilder → CodeGenerator → Program

Usage
-----
>>> from rpnc.compiler import compile_rpn
>>> asm = compile_rpn("5 2 swap -")

Language
--------
- Integer literals, optionally negative: 42, -7
- Arithmetic: + - * / %  (32-bit, / and % truncate toward zero)
- Bitwise: and xor
- Stack: dup swap
"""

from rpnc.compiler.compiler import (
    RPNCompiler,
    CompilerOptions,
    CompilerResult,
    compile_rpn,
)
from rpnc.compiler.errors import (
    RPNError,
    LexError,
    EmptyExpressionError,
    InvalidStartError,
    InvalidEndError,
    UnknownTokenError,
    CodeGenError,
    InternalCompilerError,
)
from rpnc.compiler.lexer import Lexer, Token, TokenType, tokenize
from rpnc.compiler.instructions import (
    Instruction,
    Opcode,
    StackEffect,
    STACK_EFFECTS,
    stack_effect,
)
from rpnc.compiler.builder import InstructionBuilder, build_instructions
from rpnc.compiler.codegen import CodeGenerator
from rpnc.compiler.program import ErrorCode, assemble_program

__all__ = [
    # Main API
    "RPNCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_rpn",
    # Errors
    "RPNError",
    "LexError",
    "EmptyExpressionError",
    "InvalidStartError",
    "InvalidEndError",
    "UnknownTokenError",
    "CodeGenError",
    "InternalCompilerError",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    # IR
    "Instruction",
    "Opcode",
    "StackEffect",
    "STACK_EFFECTS",
    "stack_effect",
    "InstructionBuilder",
    "build_instructions",
    # Code generation
    "CodeGenerator",
    "ErrorCode",
    "assemble_program",
]
