"""
RPN Compiler Main Module
========================

Orchestrates the complete compilation process:

    Expression → Lex → Build IR → Generate fragments → Assemble program

Usage
-----
Command line:
    $ rpnc "7 1 + 3 -" -o sum.ys

Programmatic:
    >>> from rpnc import compile_rpn
    >>> asm = compile_rpn("7 1 + 3 -")

Every call owns its tokens, instructions and generator; nothing is shared
between compilations. Compilation either returns the complete program or
raises an RPNError; partial output is never produced.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rpnc.compiler.lexer import Lexer, Token
from rpnc.compiler.builder import InstructionBuilder
from rpnc.compiler.codegen import CodeGenerator
from rpnc.compiler.instructions import Instruction
from rpnc.compiler.program import DEFAULT_STACK_ADDRESS, assemble_program

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        stack_address: Address of the Stack label. The operand stack grows
                       downward from here, so it should be the top of the
                       simulator's memory.
        output_comments: Keep explanatory comments in the generated assembly.
    """
    stack_address: int = DEFAULT_STACK_ADDRESS
    output_comments: bool = True


@dataclass
class CompilerResult:
    """
    Everything produced by one compilation.

    Attributes:
        filename: Source name used in diagnostics
        tokens: Lexer output (EOF included)
        instructions: The intermediate representation
        assembly: Final Y86 program text
    """
    filename: str = "<input>"
    tokens: list[Token] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    assembly: str = ""


class RPNCompiler:
    """
    RPN expression to Y86 assembly compiler.

    Example:
        compiler = RPNCompiler()
        result = compiler.compile_source("4 3 *")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, expression: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile an RPN expression to Y86 assembly.

        Raises:
            RPNError: LexError, EmptyExpressionError, InvalidStartError,
                      InvalidEndError, UnknownTokenError or CodeGenError
        """
        result = CompilerResult(filename=filename)

        result.tokens = list(Lexer(expression, filename).tokenize())
        logger.debug(f"{filename}: {len(result.tokens)} tokens")

        builder = InstructionBuilder(result.tokens, expression.splitlines())
        result.instructions = builder.build()

        body = CodeGenerator().generate(result.instructions)
        result.assembly = assemble_program(
            body,
            stack_address=self.options.stack_address,
            output_comments=self.options.output_comments,
        )
        logger.debug(f"{filename}: {len(result.assembly.splitlines())} lines of assembly")
        return result

    def compile_file(self, filepath: str | Path) -> CompilerResult:
        """
        Compile an expression stored in a file.

        Raises:
            FileNotFoundError: If the file does not exist
            RPNError: If compilation fails
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")
        return self.compile_source(path.read_text(encoding="utf-8"), str(path))


def compile_rpn(expression: str, options: Optional[CompilerOptions] = None) -> str:
    """
    Compile an RPN expression and return the Y86 program text.

    This is the single entry point used by the command-line tool.
    """
    return RPNCompiler(options).compile_source(expression).assembly
