"""
Y86 Instruction Set Definition
==============================

Y86 is the 32-bit teaching subset of IA32 from Bryant & O'Hallaron,
"Computer Systems: A Programmer's Perspective". Its only arithmetic is
add, subtract, and, xor; there is no multiply, divide or negate.

Encoding
--------
The first byte holds the instruction code (high nibble) and function
code (low nibble). Register bytes hold rA (high nibble) and rB (low
nibble), with 0xF meaning "no register". Constants and addresses are
32-bit little-endian.

| Instruction       | Bytes | Encoding               |
|-------------------|-------|------------------------|
| halt              | 1     | 00                     |
| nop               | 1     | 10                     |
| rrmovl rA, rB     | 2     | 20 rA:rB               |
| cmovXX rA, rB     | 2     | 2fn rA:rB              |
| irmovl V, rB      | 6     | 30 F:rB V              |
| rmmovl rA, D(rB)  | 6     | 40 rA:rB D             |
| mrmovl D(rB), rA  | 6     | 50 rA:rB D             |
| OPl rA, rB        | 2     | 6fn rA:rB              |
| jXX Dest          | 5     | 7fn Dest               |
| call Dest         | 5     | 80 Dest                |
| ret               | 1     | 90                     |
| pushl rA          | 2     | A0 rA:F                |
| popl rA           | 2     | B0 rA:F                |
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto


class Register(IntEnum):
    """Y86 program registers and their encodings."""
    EAX = 0
    ECX = 1
    EDX = 2
    EBX = 3
    ESP = 4
    EBP = 5
    ESI = 6
    EDI = 7

    @classmethod
    def from_name(cls, name: str) -> "Register":
        """Parse '%eax' or 'eax' (case insensitive)."""
        return cls[name.lstrip("%").upper()]


REG_NONE = 0xF


class ICode(IntEnum):
    HALT = 0x0
    NOP = 0x1
    RRMOVL = 0x2      # also cmovXX
    IRMOVL = 0x3
    RMMOVL = 0x4
    MRMOVL = 0x5
    OPL = 0x6
    JXX = 0x7
    CALL = 0x8
    RET = 0x9
    PUSHL = 0xA
    POPL = 0xB


class AluOp(IntEnum):
    ADD = 0
    SUB = 1
    AND = 2
    XOR = 3


class Condition(IntEnum):
    """Function codes shared by jXX and cmovXX."""
    ALWAYS = 0
    LE = 1
    L = 2
    E = 3
    NE = 4
    GE = 5
    G = 6


class OperandForm(Enum):
    """Operand layout of an instruction in source form."""
    NONE = auto()       # halt
    REG_REG = auto()    # rrmovl %eax, %ebx
    IMM_REG = auto()    # irmovl $5, %eax
    REG_MEM = auto()    # rmmovl %eax, 8(%ebp)
    MEM_REG = auto()    # mrmovl 8(%ebp), %eax
    DEST = auto()       # jmp label
    REG = auto()        # pushl %eax


@dataclass(frozen=True)
class InstructionInfo:
    """
    Encoding information for one mnemonic.

    Attributes:
        icode: Instruction code (high nibble of the first byte)
        ifun: Function code (low nibble of the first byte)
        size: Total encoded size in bytes
        form: Operand layout in source form
    """
    icode: ICode
    ifun: int
    size: int
    form: OperandForm

    @property
    def first_byte(self) -> int:
        return (self.icode << 4) | self.ifun


INSTRUCTION_SIZES: dict[ICode, int] = {
    ICode.HALT: 1,
    ICode.NOP: 1,
    ICode.RRMOVL: 2,
    ICode.IRMOVL: 6,
    ICode.RMMOVL: 6,
    ICode.MRMOVL: 6,
    ICode.OPL: 2,
    ICode.JXX: 5,
    ICode.CALL: 5,
    ICode.RET: 1,
    ICode.PUSHL: 2,
    ICode.POPL: 2,
}


def _info(icode: ICode, ifun: int, form: OperandForm) -> InstructionInfo:
    return InstructionInfo(icode, ifun, INSTRUCTION_SIZES[icode], form)


INSTRUCTIONS: dict[str, InstructionInfo] = {
    "halt": _info(ICode.HALT, 0, OperandForm.NONE),
    "nop": _info(ICode.NOP, 0, OperandForm.NONE),
    "ret": _info(ICode.RET, 0, OperandForm.NONE),

    "rrmovl": _info(ICode.RRMOVL, Condition.ALWAYS, OperandForm.REG_REG),
    "cmovle": _info(ICode.RRMOVL, Condition.LE, OperandForm.REG_REG),
    "cmovl": _info(ICode.RRMOVL, Condition.L, OperandForm.REG_REG),
    "cmove": _info(ICode.RRMOVL, Condition.E, OperandForm.REG_REG),
    "cmovne": _info(ICode.RRMOVL, Condition.NE, OperandForm.REG_REG),
    "cmovge": _info(ICode.RRMOVL, Condition.GE, OperandForm.REG_REG),
    "cmovg": _info(ICode.RRMOVL, Condition.G, OperandForm.REG_REG),

    "irmovl": _info(ICode.IRMOVL, 0, OperandForm.IMM_REG),
    "rmmovl": _info(ICode.RMMOVL, 0, OperandForm.REG_MEM),
    "mrmovl": _info(ICode.MRMOVL, 0, OperandForm.MEM_REG),

    "addl": _info(ICode.OPL, AluOp.ADD, OperandForm.REG_REG),
    "subl": _info(ICode.OPL, AluOp.SUB, OperandForm.REG_REG),
    "andl": _info(ICode.OPL, AluOp.AND, OperandForm.REG_REG),
    "xorl": _info(ICode.OPL, AluOp.XOR, OperandForm.REG_REG),

    "jmp": _info(ICode.JXX, Condition.ALWAYS, OperandForm.DEST),
    "jle": _info(ICode.JXX, Condition.LE, OperandForm.DEST),
    "jl": _info(ICode.JXX, Condition.L, OperandForm.DEST),
    "je": _info(ICode.JXX, Condition.E, OperandForm.DEST),
    "jne": _info(ICode.JXX, Condition.NE, OperandForm.DEST),
    "jge": _info(ICode.JXX, Condition.GE, OperandForm.DEST),
    "jg": _info(ICode.JXX, Condition.G, OperandForm.DEST),
    "call": _info(ICode.CALL, 0, OperandForm.DEST),

    "pushl": _info(ICode.PUSHL, 0, OperandForm.REG),
    "popl": _info(ICode.POPL, 0, OperandForm.REG),
}


WORD_SIZE = 4
WORD_MASK = 0xFFFFFFFF


def to_signed(value: int) -> int:
    """Interpret a 32-bit word as a two's complement integer."""
    value &= WORD_MASK
    return value - (1 << 32) if value & 0x80000000 else value
