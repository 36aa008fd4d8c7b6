"""
Y86 CPU Emulator
================

Sequential (one instruction at a time) Y86 emulator, following the SEQ
semantics of CS:APP chapter 4.

State
-----
- 8 program registers, 32 bits each
- Condition codes ZF (zero), SF (sign), OF (overflow), set only by OPl
- Program counter
- Status: AOK while running, HLT after halt, ADR on a bad memory
  access, INS on an invalid instruction
- Flat little-endian byte memory starting at address 0

Instrumentation
---------------
`on_instruction(pc, first_byte)` is called before every instruction;
returning False stops execution (the status stays AOK).

Example:
    >>> from rpnc.y86 import run_program
    >>> result = run_program(asm_text)
    >>> result.status, result.register("eax")
    (<Status.HLT: 2>, 5)
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional

from rpnc.errors import ExecutionLimitError, Y86EmulatorError
from rpnc.y86.assembler import AssembledProgram, assemble
from rpnc.y86.opcodes import (
    REG_NONE,
    WORD_MASK,
    AluOp,
    Condition,
    ICode,
    Register,
    to_signed,
)

logger = logging.getLogger(__name__)


DEFAULT_MEMORY_SIZE = 0x1000
DEFAULT_MAX_STEPS = 1_000_000


class Status(IntEnum):
    """Processor status codes."""
    AOK = 1
    HLT = 2
    ADR = 3
    INS = 4


class _Fault(Exception):
    """Raised inside step() to stop the current instruction."""

    def __init__(self, status: Status, message: str):
        self.status = status
        super().__init__(message)


class Memory:
    """
    Flat byte-addressed memory.

    Attributes:
        size: Number of bytes; valid addresses are 0..size-1
    """

    def __init__(self, size: int = DEFAULT_MEMORY_SIZE):
        self.size = size
        self._data = bytearray(size)

    def load(self, image: bytes, address: int = 0) -> None:
        if address + len(image) > self.size:
            raise Y86EmulatorError(
                f"program of {len(image)} bytes does not fit in {self.size} bytes of memory"
            )
        self._data[address:address + len(image)] = image

    def _check(self, address: int, length: int) -> None:
        if address < 0 or address + length > self.size:
            raise _Fault(Status.ADR, f"invalid address 0x{address:x}")

    def read_byte(self, address: int) -> int:
        self._check(address, 1)
        return self._data[address]

    def read_word(self, address: int) -> int:
        self._check(address, 4)
        return int.from_bytes(self._data[address:address + 4], "little")

    def write_word(self, address: int, value: int) -> None:
        self._check(address, 4)
        self._data[address:address + 4] = (value & WORD_MASK).to_bytes(4, "little")


@dataclass
class ExecutionResult:
    """
    Machine state after a run.

    Attributes:
        status: Final processor status
        registers: Register name ('eax', ...) -> signed value
        pc: Final program counter
        steps: Number of instructions executed
        zf, sf, of: Final condition codes
    """
    status: Status
    registers: dict[str, int] = field(default_factory=dict)
    pc: int = 0
    steps: int = 0
    zf: bool = True
    sf: bool = False
    of: bool = False

    def register(self, name: str) -> int:
        return self.registers[name.lstrip("%").lower()]


class Y86CPU:
    """
    Y86 processor.

    Example:
        cpu = Y86CPU(Memory(0x1000))
        cpu.load(program.image)
        result = cpu.run()
    """

    def __init__(self, memory: Optional[Memory] = None):
        self.memory = memory or Memory()
        self.registers: list[int] = [0] * 8
        self.pc = 0
        self.zf = True
        self.sf = False
        self.of = False
        self.status = Status.AOK
        self.steps = 0

        # on_instruction(pc, first_byte) -> bool: return False to stop
        self.on_instruction: Optional[Callable[[int, int], bool]] = None

    def load(self, image: bytes) -> None:
        """Load a memory image at address 0 and reset the processor."""
        self.memory.load(image)
        self.reset()

    def reset(self) -> None:
        self.registers = [0] * 8
        self.pc = 0
        self.zf, self.sf, self.of = True, False, False
        self.status = Status.AOK
        self.steps = 0

    def get_register(self, reg: Register) -> int:
        return to_signed(self.registers[reg])

    # ========================================
    # Execution
    # ========================================

    def run(self, max_steps: int = DEFAULT_MAX_STEPS) -> ExecutionResult:
        """
        Run until the status leaves AOK or the hook stops execution.

        Raises:
            ExecutionLimitError: If max_steps instructions run without halting
        """
        while self.status == Status.AOK:
            if self.on_instruction is not None:
                first_byte = self.memory.read_byte(self.pc) if 0 <= self.pc < self.memory.size else 0
                if not self.on_instruction(self.pc, first_byte):
                    break
            if self.steps >= max_steps:
                raise ExecutionLimitError(self.steps, self.pc)
            self.step()

        logger.debug(f"Stopped with status {self.status.name} after {self.steps} steps at pc=0x{self.pc:x}")
        return self.snapshot()

    def snapshot(self) -> ExecutionResult:
        return ExecutionResult(
            status=self.status,
            registers={reg.name.lower(): self.get_register(reg) for reg in Register},
            pc=self.pc,
            steps=self.steps,
            zf=self.zf,
            sf=self.sf,
            of=self.of,
        )

    def step(self) -> Status:
        """Execute one instruction and return the new status."""
        if self.status != Status.AOK:
            return self.status
        try:
            self._execute()
            self.steps += 1
        except _Fault as fault:
            logger.debug(f"Fault at pc=0x{self.pc:x}: {fault}")
            self.status = fault.status
        return self.status

    def _fetch_registers(self, address: int) -> tuple[int, int]:
        byte = self.memory.read_byte(address)
        return byte >> 4, byte & 0xF

    def _reg(self, number: int) -> int:
        if number == REG_NONE or number > 7:
            raise _Fault(Status.INS, f"invalid register {number:#x}")
        return number

    def _condition(self, fn: int) -> bool:
        less = self.sf != self.of
        if fn == Condition.ALWAYS:
            return True
        if fn == Condition.LE:
            return less or self.zf
        if fn == Condition.L:
            return less
        if fn == Condition.E:
            return self.zf
        if fn == Condition.NE:
            return not self.zf
        if fn == Condition.GE:
            return not less
        if fn == Condition.G:
            return not less and not self.zf
        raise _Fault(Status.INS, f"invalid condition {fn}")

    def _alu(self, fn: int, a: int, b: int) -> int:
        """Compute b OP a, set condition codes, return the 32-bit result."""
        if fn == AluOp.ADD:
            result = (b + a) & WORD_MASK
            overflow = (to_signed(a) < 0) == (to_signed(b) < 0) and (to_signed(result) < 0) != (to_signed(a) < 0)
        elif fn == AluOp.SUB:
            result = (b - a) & WORD_MASK
            overflow = (to_signed(a) < 0) != (to_signed(b) < 0) and (to_signed(result) < 0) != (to_signed(b) < 0)
        elif fn == AluOp.AND:
            result = b & a
            overflow = False
        elif fn == AluOp.XOR:
            result = b ^ a
            overflow = False
        else:
            raise _Fault(Status.INS, f"invalid ALU function {fn}")

        self.zf = result == 0
        self.sf = bool(result & 0x80000000)
        self.of = overflow
        return result

    def _execute(self) -> None:
        pc = self.pc
        first = self.memory.read_byte(pc)
        icode, ifun = first >> 4, first & 0xF

        if icode == ICode.HALT:
            self.status = Status.HLT
            self.pc = pc + 1
        elif icode == ICode.NOP:
            self.pc = pc + 1
        elif icode == ICode.RRMOVL:
            ra, rb = self._fetch_registers(pc + 1)
            value = self.registers[self._reg(ra)]
            if self._condition(ifun):
                self.registers[self._reg(rb)] = value
            self.pc = pc + 2
        elif icode == ICode.IRMOVL:
            _, rb = self._fetch_registers(pc + 1)
            self.registers[self._reg(rb)] = self.memory.read_word(pc + 2)
            self.pc = pc + 6
        elif icode == ICode.RMMOVL:
            ra, rb = self._fetch_registers(pc + 1)
            address = self._effective_address(rb, self.memory.read_word(pc + 2))
            self.memory.write_word(address, self.registers[self._reg(ra)])
            self.pc = pc + 6
        elif icode == ICode.MRMOVL:
            ra, rb = self._fetch_registers(pc + 1)
            address = self._effective_address(rb, self.memory.read_word(pc + 2))
            self.registers[self._reg(ra)] = self.memory.read_word(address)
            self.pc = pc + 6
        elif icode == ICode.OPL:
            ra, rb = self._fetch_registers(pc + 1)
            rb = self._reg(rb)
            self.registers[rb] = self._alu(ifun, self.registers[self._reg(ra)], self.registers[rb])
            self.pc = pc + 2
        elif icode == ICode.JXX:
            dest = self.memory.read_word(pc + 1)
            self.pc = dest if self._condition(ifun) else pc + 5
        elif icode == ICode.CALL:
            dest = self.memory.read_word(pc + 1)
            self._push(pc + 5)
            self.pc = dest
        elif icode == ICode.RET:
            self.pc = self._pop()
        elif icode == ICode.PUSHL:
            ra, _ = self._fetch_registers(pc + 1)
            self._push(self.registers[self._reg(ra)])
            self.pc = pc + 2
        elif icode == ICode.POPL:
            ra, _ = self._fetch_registers(pc + 1)
            ra = self._reg(ra)
            value = self._pop()
            self.registers[ra] = value
            self.pc = pc + 2
        else:
            raise _Fault(Status.INS, f"invalid instruction byte 0x{first:02x}")

    def _effective_address(self, rb: int, displacement: int) -> int:
        base = 0 if rb == REG_NONE else self.registers[self._reg(rb)]
        return to_signed((base + displacement) & WORD_MASK)

    def _push(self, value: int) -> None:
        sp = (self.registers[Register.ESP] - 4) & WORD_MASK
        self.memory.write_word(to_signed(sp), value)
        self.registers[Register.ESP] = sp

    def _pop(self) -> int:
        sp = self.registers[Register.ESP]
        value = self.memory.read_word(to_signed(sp))
        self.registers[Register.ESP] = (sp + 4) & WORD_MASK
        return value


def run_program(
    source: str | AssembledProgram,
    memory_size: Optional[int] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
    on_instruction: Optional[Callable[[int, int], bool]] = None,
) -> ExecutionResult:
    """
    Assemble (if needed), load and run a Y86 program.

    When memory_size is None, memory is made large enough for the image and
    every label (so a stack placed with .pos at the top is usable), but never
    smaller than DEFAULT_MEMORY_SIZE.
    """
    program = assemble(source) if isinstance(source, str) else source
    if memory_size is None:
        highest_label = max(program.symbols.values(), default=0)
        memory_size = max(DEFAULT_MEMORY_SIZE, len(program.image), highest_label + 4)

    cpu = Y86CPU(Memory(memory_size))
    cpu.load(program.image)
    cpu.on_instruction = on_instruction
    return cpu.run(max_steps)
