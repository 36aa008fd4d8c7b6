"""
Y86 Assembler
=============

A two-pass assembler for the yas dialect of Y86 assembly, producing a
memory image that the emulator can load at address 0.

Source Syntax
-------------
    # comment
    label:  irmovl $5, %eax     # immediate with '$'
            irmovl Stack, %esp  # label as immediate
            mrmovl 8(%ebp), %edx
            rmmovl %edx, (%esi)
            jl stack_error
            .pos 0x100          # set location counter
            .align 4            # pad to a multiple of 4
    value:  .long 0x10          # 32-bit word (number or label)

Several labels may precede one statement, on the same line or on lines
of their own.

Passes
------
1. Parse every line and assign addresses (labels take the address of
   the location counter where they appear).
2. Encode instructions and data into the image, resolving labels.

Example Usage
-------------
>>> from rpnc.y86.assembler import assemble
>>> program = assemble("irmovl $1, %eax\\nhalt\\n")
>>> program.image.hex()
'30f00100000000'
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rpnc.errors import SourceLocation, Y86AssemblyError
from rpnc.y86.opcodes import (
    INSTRUCTIONS,
    REG_NONE,
    WORD_MASK,
    WORD_SIZE,
    InstructionInfo,
    OperandForm,
    Register,
)


_LABEL = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)\s*:")
_MNEMONIC = re.compile(r"\s*(\.?[A-Za-z_][A-Za-z0-9_]*)\s*(.*)$")
_NUMBER = re.compile(r"-?(0[xX][0-9a-fA-F]+|[0-9]+)")
_SYMBOL = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_MEMORY = re.compile(r"(?P<disp>[^()]*)\(\s*(?P<base>%[A-Za-z]+)\s*\)")


def parse_number(text: str) -> int:
    """Parse a decimal or 0x-prefixed hexadecimal number, optionally negative."""
    negative = text.startswith("-")
    digits = text[1:] if negative else text
    if digits[:2].lower() == "0x":
        value = int(digits[2:], 16)
    else:
        value = int(digits, 10)
    return -value if negative else value


# =============================================================================
# Parsed Statements
# =============================================================================

@dataclass
class Operand:
    """
    One parsed operand.

    Attributes:
        register: Register operand, or base register of a memory operand
        value: Numeric constant (immediate or displacement)
        symbol: Label whose address supplies the value
    """
    register: Optional[Register] = None
    value: int = 0
    symbol: Optional[str] = None


@dataclass
class Statement:
    """
    A source line reduced to what the assembler needs.

    Attributes:
        mnemonic: Instruction mnemonic or directive name (lower case)
        operands: Parsed operands
        location: Source position for error reporting
        source_line: Original text, for error context
        address: Assigned during the first pass
    """
    mnemonic: str
    operands: list[Operand]
    location: SourceLocation
    source_line: str
    address: int = 0


@dataclass
class AssembledProgram:
    """
    Result of assembling a source file.

    Attributes:
        image: Memory contents starting at address 0
        symbols: Label name -> address
    """
    image: bytes
    symbols: dict[str, int] = field(default_factory=dict)

    def address_of(self, label: str) -> int:
        return self.symbols[label]


# =============================================================================
# Assembler
# =============================================================================

class Y86Assembler:
    """
    Assembles Y86 source text.

    Usage:
        asm = Y86Assembler()
        program = asm.assemble(source, "sum.ys")
        image = program.image
    """

    def __init__(self):
        self._statements: list[Statement] = []
        self._symbols: dict[str, int] = {}
        self._filename = "<input>"

    def assemble(self, source: str, filename: str = "<input>") -> AssembledProgram:
        """
        Assemble source text into a memory image.

        Raises:
            Y86AssemblyError: On any syntax or symbol error
        """
        self._statements = []
        self._symbols = {}
        self._filename = filename

        end = self._first_pass(source)
        image = bytearray(end)
        for stmt in self._statements:
            self._encode(stmt, image)

        return AssembledProgram(bytes(image), dict(self._symbols))

    def assemble_file(self, filepath: str | Path) -> AssembledProgram:
        path = Path(filepath)
        return self.assemble(path.read_text(encoding="utf-8"), str(path))

    # =========================================================================
    # Pass 1: parsing and address assignment
    # =========================================================================

    def _first_pass(self, source: str) -> int:
        """Parse all lines; return the address just past the last byte."""
        address = 0
        end = 0

        for line_number, raw_line in enumerate(source.splitlines(), start=1):
            text = raw_line.split("#", 1)[0]
            column = 1

            # Leading labels
            while True:
                match = _LABEL.match(text)
                if not match:
                    break
                name = match.group(1)
                location = self._location(line_number, column + match.start(1))
                if name in self._symbols:
                    raise Y86AssemblyError(
                        f"duplicate label '{name}'", location, source_line=raw_line
                    )
                self._symbols[name] = address
                column += match.end()
                text = text[match.end():]

            if not text.strip():
                continue

            match = _MNEMONIC.match(text)
            if not match:
                raise Y86AssemblyError(
                    f"cannot parse '{text.strip()}'",
                    self._location(line_number, column),
                    source_line=raw_line,
                )

            mnemonic = match.group(1).lower()
            location = self._location(line_number, column + match.start(1))
            operand_texts = [o.strip() for o in match.group(2).split(",")] if match.group(2).strip() else []

            stmt = Statement(mnemonic, [], location, raw_line)

            if mnemonic == ".pos":
                target = self._directive_number(stmt, operand_texts)
                if target < end:
                    raise Y86AssemblyError(
                        f".pos 0x{target:x} overlaps code already placed up to 0x{end:x}",
                        location, source_line=raw_line,
                    )
                address = target
                # Labels seen on this line belong to the new position
                self._relocate_line_labels(raw_line, address)
                continue

            if mnemonic == ".align":
                alignment = self._directive_number(stmt, operand_texts)
                if alignment <= 0:
                    raise Y86AssemblyError(
                        "alignment must be positive", location, source_line=raw_line
                    )
                address = -(-address // alignment) * alignment
                self._relocate_line_labels(raw_line, address)
                continue

            stmt.address = address
            if mnemonic == ".long":
                if len(operand_texts) != 1:
                    raise Y86AssemblyError(
                        ".long takes exactly one value", location, source_line=raw_line
                    )
                stmt.operands = [self._parse_value(operand_texts[0], stmt)]
                size = WORD_SIZE
            else:
                info = self._lookup(stmt)
                stmt.operands = self._parse_operands(info, operand_texts, stmt)
                size = info.size

            self._statements.append(stmt)
            address += size
            end = max(end, address)

        return end

    def _relocate_line_labels(self, raw_line: str, address: int) -> None:
        text = raw_line.split("#", 1)[0]
        while True:
            match = _LABEL.match(text)
            if not match:
                break
            self._symbols[match.group(1)] = address
            text = text[match.end():]

    def _location(self, line: int, column: int) -> SourceLocation:
        return SourceLocation(self._filename, line, column)

    def _error(self, message: str, stmt: Statement) -> Y86AssemblyError:
        return Y86AssemblyError(message, stmt.location, source_line=stmt.source_line)

    def _lookup(self, stmt: Statement) -> InstructionInfo:
        info = INSTRUCTIONS.get(stmt.mnemonic)
        if info is None:
            raise self._error(f"unknown instruction '{stmt.mnemonic}'", stmt)
        return info

    def _directive_number(self, stmt: Statement, operand_texts: list[str]) -> int:
        if len(operand_texts) != 1 or not _NUMBER.fullmatch(operand_texts[0]):
            raise self._error(f"{stmt.mnemonic} takes one numeric argument", stmt)
        return parse_number(operand_texts[0])

    # =========================================================================
    # Operand Parsing
    # =========================================================================

    def _parse_operands(
        self, info: InstructionInfo, texts: list[str], stmt: Statement
    ) -> list[Operand]:
        expected = {
            OperandForm.NONE: 0,
            OperandForm.REG: 1,
            OperandForm.DEST: 1,
        }.get(info.form, 2)
        if len(texts) != expected:
            raise self._error(
                f"'{stmt.mnemonic}' expects {expected} operand(s), got {len(texts)}", stmt
            )

        form = info.form
        if form == OperandForm.NONE:
            return []
        if form == OperandForm.REG:
            return [self._parse_register(texts[0], stmt)]
        if form == OperandForm.DEST:
            return [self._parse_value(texts[0], stmt)]
        if form == OperandForm.REG_REG:
            return [self._parse_register(texts[0], stmt), self._parse_register(texts[1], stmt)]
        if form == OperandForm.IMM_REG:
            return [self._parse_value(texts[0], stmt), self._parse_register(texts[1], stmt)]
        if form == OperandForm.REG_MEM:
            return [self._parse_register(texts[0], stmt), self._parse_memory(texts[1], stmt)]
        # MEM_REG
        return [self._parse_memory(texts[0], stmt), self._parse_register(texts[1], stmt)]

    def _parse_register(self, text: str, stmt: Statement) -> Operand:
        if not text.startswith("%"):
            raise self._error(f"expected a register, got '{text}'", stmt)
        try:
            return Operand(register=Register.from_name(text))
        except KeyError:
            raise self._error(f"unknown register '{text}'", stmt) from None

    def _parse_value(self, text: str, stmt: Statement) -> Operand:
        """Parse '$5', '5', '0x10', '$label' or 'label'."""
        text = text.removeprefix("$").strip()
        if _NUMBER.fullmatch(text):
            return Operand(value=parse_number(text))
        if _SYMBOL.fullmatch(text):
            return Operand(symbol=text)
        raise self._error(f"invalid value '{text}'", stmt)

    def _parse_memory(self, text: str, stmt: Statement) -> Operand:
        """Parse 'D(%reg)', '(%reg)' or an absolute address."""
        match = _MEMORY.fullmatch(text)
        if not match:
            # Absolute address, no base register
            return self._parse_value(text, stmt)

        base = self._parse_register(match.group("base"), stmt)
        displacement = match.group("disp").strip()
        operand = self._parse_value(displacement, stmt) if displacement else Operand()
        operand.register = base.register
        return operand

    # =========================================================================
    # Pass 2: encoding
    # =========================================================================

    def _resolve(self, operand: Operand, stmt: Statement) -> int:
        if operand.symbol is None:
            return operand.value & WORD_MASK
        if operand.symbol not in self._symbols:
            raise self._error(f"undefined symbol '{operand.symbol}'", stmt)
        return self._symbols[operand.symbol] & WORD_MASK

    def _encode(self, stmt: Statement, image: bytearray) -> None:
        if stmt.mnemonic == ".long":
            encoded = self._resolve(stmt.operands[0], stmt).to_bytes(4, "little")
        else:
            encoded = self._encode_instruction(INSTRUCTIONS[stmt.mnemonic], stmt)
        image[stmt.address:stmt.address + len(encoded)] = encoded

    def _encode_instruction(self, info: InstructionInfo, stmt: Statement) -> bytes:
        ops = stmt.operands
        out = bytearray([info.first_byte])
        form = info.form

        def regs(a: Optional[Register], b: Optional[Register]) -> int:
            high = REG_NONE if a is None else int(a)
            low = REG_NONE if b is None else int(b)
            return (high << 4) | low

        if form == OperandForm.REG_REG:
            out.append(regs(ops[0].register, ops[1].register))
        elif form == OperandForm.IMM_REG:
            out.append(regs(None, ops[1].register))
            out += self._resolve(ops[0], stmt).to_bytes(4, "little")
        elif form == OperandForm.REG_MEM:
            out.append(regs(ops[0].register, ops[1].register))
            out += self._resolve(ops[1], stmt).to_bytes(4, "little")
        elif form == OperandForm.MEM_REG:
            out.append(regs(ops[1].register, ops[0].register))
            out += self._resolve(ops[0], stmt).to_bytes(4, "little")
        elif form == OperandForm.DEST:
            out += self._resolve(ops[0], stmt).to_bytes(4, "little")
        elif form == OperandForm.REG:
            out.append(regs(ops[0].register, None))

        return bytes(out)


def assemble(source: str, filename: str = "<input>") -> AssembledProgram:
    """Assemble Y86 source text (convenience wrapper)."""
    return Y86Assembler().assemble(source, filename)
