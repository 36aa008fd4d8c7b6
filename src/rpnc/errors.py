"""
rpnc Error Hierarchy
====================

This module defines the exception hierarchy shared by the whole package.
All exceptions inherit from RpncError, allowing callers to catch every
toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
RpncError (base)
├── RPNError (compiler, see rpnc.compiler.errors)
└── Y86Error (Y86 toolchain)
    ├── Y86AssemblyError - malformed assembly source
    └── Y86EmulatorError - emulator could not run the program
        └── ExecutionLimitError - step budget exhausted

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


class RpncError(Exception):
    """
    Base exception for all rpnc errors.

        try:
            asm = compile_rpn("1 +")
        except RpncError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in source text, used for error reporting.

    Attributes:
        filename: Name of the source (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


class LocatedError(RpncError):
    """
    Error carrying an optional location, source line and hint.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the message with location, source context and hint.

        Example output:
            <input>:1:5: error: unexpected character '&'
                7 1 & 3
                    ^
            hint: supported operators are + - * / % and dup swap and xor
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Caret under the error column
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Y86 Toolchain Exceptions
# =============================================================================

class Y86Error(RpncError):
    """Base exception for the Y86 assembler and emulator."""
    pass


class Y86AssemblyError(LocatedError, Y86Error):
    """
    Malformed Y86 assembly source.

    Examples:
        - Unknown mnemonic or register
        - Reference to an undefined label
        - Label defined twice
        - .pos directive moving the location counter backwards
    """
    pass


class Y86EmulatorError(Y86Error):
    """The emulator could not complete a run."""
    pass


class ExecutionLimitError(Y86EmulatorError):
    """
    The program did not halt within the allowed number of steps.

    Attributes:
        steps: Number of instructions executed before giving up
        pc: Program counter at the time the limit was reached
    """

    def __init__(self, steps: int, pc: int):
        self.steps = steps
        self.pc = pc
        super().__init__(
            f"program did not halt after {steps} instructions (pc=0x{pc:03X})"
        )
