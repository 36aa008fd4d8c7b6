"""
Intermediate Representation
===========================

The IR is an ordered list of Instruction objects, one per source token, in
execution order. Only PUSH carries a value: the literal text of the
number, parsed later by the code generator.

Stack-Effect Table
------------------
Every opcode consumes some operands from the runtime stack and produces
some results. The table is used by the builder (every opcode it emits
must have an entry) and by the code generator (guard depth and depth
counter adjustment).

| Opcode   | Pops | Pushes | Delta |
|----------|------|--------|-------|
| PUSH     | 0    | 1      | +1    |
| DUP      | 1    | 2      | +1    |
| SWAP     | 2    | 2      | 0     |
| PLUS     | 2    | 1      | -1    |
| MINUS    | 2    | 1      | -1    |
| MULTIPLY | 2    | 1      | -1    |
| DIVIDE   | 2    | 1      | -1    |
| MODULO   | 2    | 1      | -1    |
| AND      | 2    | 1      | -1    |
| XOR      | 2    | 1      | -1    |
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from rpnc.errors import SourceLocation
from rpnc.compiler.errors import InternalCompilerError


class Opcode(Enum):
    """Instruction kinds of the intermediate representation."""
    PUSH = auto()
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MODULO = auto()
    DUP = auto()
    SWAP = auto()
    AND = auto()
    XOR = auto()


@dataclass(frozen=True)
class StackEffect:
    """Operands consumed and results produced by one opcode."""
    pops: int
    pushes: int

    @property
    def delta(self) -> int:
        """Net change of the runtime stack depth."""
        return self.pushes - self.pops


STACK_EFFECTS: dict[Opcode, StackEffect] = {
    Opcode.PUSH: StackEffect(0, 1),
    Opcode.DUP: StackEffect(1, 2),
    Opcode.SWAP: StackEffect(2, 2),
    Opcode.PLUS: StackEffect(2, 1),
    Opcode.MINUS: StackEffect(2, 1),
    Opcode.MULTIPLY: StackEffect(2, 1),
    Opcode.DIVIDE: StackEffect(2, 1),
    Opcode.MODULO: StackEffect(2, 1),
    Opcode.AND: StackEffect(2, 1),
    Opcode.XOR: StackEffect(2, 1),
}


def stack_effect(opcode: Opcode) -> StackEffect:
    """
    Look up the stack effect of an opcode.

    Raises:
        InternalCompilerError: If the opcode has no entry
    """
    try:
        return STACK_EFFECTS[opcode]
    except KeyError:
        raise InternalCompilerError(
            f"no stack effect defined for opcode {opcode!r}"
        ) from None


@dataclass(frozen=True)
class Instruction:
    """
    A single operation the code generator must emit code for.

    Attributes:
        opcode: What to do
        value: Literal text of the number to push (PUSH only)
        location: Source position of the originating token
    """
    opcode: Opcode
    value: Optional[str] = None
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.opcode.name} {self.value}"
        return self.opcode.name

    @property
    def effect(self) -> StackEffect:
        return stack_effect(self.opcode)
