"""
Shared fixtures for the rpnc test suite.

The central fixture compiles an RPN expression and executes the result on
the Y86 emulator, so tests can assert on what the generated program does
rather than on its text.
"""

import pytest

from rpnc.compiler import compile_rpn, CompilerOptions
from rpnc.y86 import assemble, run_program, ExecutionResult, Status


@pytest.fixture
def run_rpn():
    """
    Compile and execute an expression.

    Returns a callable: run_rpn(expression, options=None, on_instruction=None)
    -> ExecutionResult. The program is always expected to halt normally
    (faults of the RPN program are reported through %edi, not the status).
    """

    def _run(expression: str, options: CompilerOptions = None, on_instruction=None) -> ExecutionResult:
        asm = compile_rpn(expression, options)
        result = run_program(asm, on_instruction=on_instruction)
        assert result.status == Status.HLT, f"emulator stopped with {result.status.name}"
        return result

    return _run


@pytest.fixture
def assembled():
    """Compile an expression and assemble it, returning the AssembledProgram."""

    def _assemble(expression: str, options: CompilerOptions = None):
        return assemble(compile_rpn(expression, options))

    return _assemble
