"""
Y86 Toolchain
=============

Assembler and emulator for the Y86 instruction set, used to check and run
the programs produced by the RPN compiler.

Usage
-----
>>> from rpnc import compile_rpn
>>> from rpnc.y86 import run_program
>>> result = run_program(compile_rpn("4 3 *"))
>>> result.register("eax")
12
"""

from rpnc.y86.assembler import AssembledProgram, Y86Assembler, assemble
from rpnc.y86.cpu import (
    DEFAULT_MAX_STEPS,
    DEFAULT_MEMORY_SIZE,
    ExecutionResult,
    Memory,
    Status,
    Y86CPU,
    run_program,
)
from rpnc.y86.opcodes import INSTRUCTIONS, Register, to_signed

__all__ = [
    "AssembledProgram",
    "Y86Assembler",
    "assemble",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_MEMORY_SIZE",
    "ExecutionResult",
    "Memory",
    "Status",
    "Y86CPU",
    "run_program",
    "INSTRUCTIONS",
    "Register",
    "to_signed",
]
