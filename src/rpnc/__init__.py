"""
rpnc - RPN to Y86 Compiler
==========================

This package compiles Reverse Polish Notation arithmetic expressions into
programs for Y86, the 32-bit teaching instruction set from "Computer
Systems: A Programmer's Perspective".

Main Components
---------------
- **compiler**: lexer, IR builder, code generator and program assembler
    Turns '7 1 + 3 -' into a runtime-checked Y86 program

- **y86**: Y86 assembler and emulator
    Assembles the generated text and executes it

- **cli**: the `rpnc` command-line tool

Quick Start
-----------
Compile an expression:
    >>> from rpnc import compile_rpn
    >>> asm = compile_rpn("7 1 + 3 -")

Run it:
    >>> from rpnc.y86 import run_program
    >>> run_program(asm).register("eax")
    5

Or use the command-line tool:
    $ rpnc "7 1 + 3 -" -o sum.ys
    $ rpnc --run "5 2 swap -"

Runtime Faults
--------------
The generated program halts with a code in %edi when it detects a fault:
0x01 divide by zero, 0x02 too few operands, 0x04 too many operands left.
"""

__version__ = "1.0.0"

from rpnc.errors import (
    RpncError,
    SourceLocation,
    Y86Error,
    Y86AssemblyError,
    Y86EmulatorError,
    ExecutionLimitError,
)
from rpnc.compiler import (
    RPNCompiler,
    CompilerOptions,
    CompilerResult,
    compile_rpn,
    RPNError,
    LexError,
    EmptyExpressionError,
    InvalidStartError,
    InvalidEndError,
    UnknownTokenError,
    CodeGenError,
    ErrorCode,
)

__all__ = [
    "__version__",
    # Compiler
    "RPNCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_rpn",
    "ErrorCode",
    # Exception hierarchy
    "RpncError",
    "SourceLocation",
    "RPNError",
    "LexError",
    "EmptyExpressionError",
    "InvalidStartError",
    "InvalidEndError",
    "UnknownTokenError",
    "CodeGenError",
    "Y86Error",
    "Y86AssemblyError",
    "Y86EmulatorError",
    "ExecutionLimitError",
]
