"""
Y86 Code Generator
==================

Generates one block of Y86 assembly ("fragment") per IR instruction.

Code Generation Strategy
------------------------
The RPN operand stack is the Y86 hardware stack (%esp). Its depth is
tracked in the `depth` memory cell, because the hardware stack itself
cannot tell how many RPN operands it holds.

Every fragment is built the same way:

1. Guard: load `depth` and jump to `stack_error` if it is smaller than
   the number of operands the opcode pops.
2. Operation: pop operands, compute, push results.
3. Bookkeeping: add (pushes - pops) to `depth`.

Guard size and depth delta both come from the stack-effect table, so a
template only implements step 2.

Register Usage
--------------
| Register | Usage                                            |
|----------|--------------------------------------------------|
| %eax     | Result accumulator (multiply, divide)            |
| %ebx     | Left operand `a` / running remainder             |
| %ecx     | Right operand `b` / loop counter                 |
| %edx     | Scratch                                          |
| %esi     | Address of `depth`; sign flag or round counter   |
| %ebp     | Dividend bits not yet brought down (div/mod)     |
| %edi     | Fault register, never touched by fragments       |
| %esp     | RPN operand stack                                |

Fragments reload every register they read. Nothing but the stack and the
depth cell is carried from one fragment to the next.

Multiplication and Division
---------------------------
Y86 has no multiply, divide or shift instruction. Both are built from
sign-and-magnitude arithmetic:

- The result is negative iff the operand sign bits differ (a XOR b < 0).
- Operands are replaced by their absolute values (0 - x when negative).
- Multiply adds the larger magnitude once per unit of the smaller one.
- Divide is restoring long division: 32 rounds, each doubling the
  remainder (addl r, r), bringing down the next bit of |a| and
  subtracting |b| when the remainder is at least |b|.
- The sign is applied at the end.

|INT32_MIN| stays 0x80000000 after negation, so magnitudes are compared
as unsigned values. Results wrap like the rest of the 32-bit arithmetic:
INT32_MIN / -1 is INT32_MIN.

Modulo reuses the division loop; the remainder takes the dividend's sign,
so that a == (a / b) * b + a % b.
"""

import logging
import re
from typing import Callable, Iterable, Optional

from rpnc.compiler.instructions import Instruction, Opcode, stack_effect
from rpnc.compiler.errors import CodeGenError

logger = logging.getLogger(__name__)


INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1

_INTEGER_LITERAL = re.compile(r"-?[0-9]+")

# Well-known labels defined by the program epilogue
LABEL_DIVIDE_BY_ZERO = "divide_by_zero"
LABEL_STACK_ERROR = "stack_error"
LABEL_STACK_TOO_FULL = "stack_too_full"


class CodeGenerator:
    """
    Generates Y86 assembly fragments from IR instructions.

    Example:
        gen = CodeGenerator()
        body = gen.generate(instructions)

    Local labels get a numeric suffix that is unique per generator, so
    the same opcode can appear any number of times in one program.
    """

    def __init__(self):
        self._output: list[str] = []
        self._label_counter: int = 0

        self._templates: dict[Opcode, Callable[[Instruction], None]] = {
            Opcode.PUSH: self._gen_push,
            Opcode.DUP: self._gen_dup,
            Opcode.SWAP: self._gen_swap,
            Opcode.PLUS: lambda instr: self._gen_binary("addl", "a + b"),
            Opcode.MINUS: lambda instr: self._gen_binary("subl", "a - b"),
            Opcode.AND: lambda instr: self._gen_binary("andl", "a & b"),
            Opcode.XOR: lambda instr: self._gen_binary("xorl", "a ^ b"),
            Opcode.MULTIPLY: self._gen_multiply,
            Opcode.DIVIDE: lambda instr: self._gen_division(remainder=False),
            Opcode.MODULO: lambda instr: self._gen_division(remainder=True),
        }

    @property
    def supported_opcodes(self) -> frozenset[Opcode]:
        return frozenset(self._templates)

    def generate(self, instructions: Iterable[Instruction]) -> str:
        """
        Generate the program body for a sequence of instructions.

        Raises:
            CodeGenError: Unsupported opcode or invalid PUSH literal
        """
        fragments = [self.generate_fragment(instr) for instr in instructions]
        logger.debug(f"Generated {len(fragments)} fragments, {self._label_counter} local labels")
        return "".join(fragments)

    def generate_fragment(self, instr: Instruction) -> str:
        """Generate the runtime-checked fragment for one instruction."""
        template = self._templates.get(instr.opcode)
        if template is None:
            raise CodeGenError(
                f"no code template for instruction {instr.opcode.name}",
                location=instr.location,
            )

        effect = stack_effect(instr.opcode)

        self._output = []
        self._emit()
        self._emit_comment(f"[{instr.opcode.name}]")
        self._emit_depth_guard(effect.pops)
        template(instr)
        self._emit_depth_update(effect.delta)
        return "\n".join(self._output) + "\n"

    # =========================================================================
    # Assembly Output Methods
    # =========================================================================

    def _emit(self, line: str = "") -> None:
        self._output.append(line)

    def _emit_comment(self, comment: str) -> None:
        self._emit(f"\t# {comment}")

    def _emit_label(self, label: str) -> None:
        self._emit(f"{label}:")

    def _emit_instruction(
        self,
        mnemonic: str,
        operands: str = "",
        comment: Optional[str] = None,
    ) -> None:
        line = f"\t{mnemonic} {operands}" if operands else f"\t{mnemonic}"
        if comment:
            line = f"{line}\t# {comment}"
        self._emit(line)

    def _new_label(self, prefix: str) -> str:
        """Generate a unique local label."""
        self._label_counter += 1
        return f"{prefix}_{self._label_counter}"

    # =========================================================================
    # Depth Bookkeeping
    # =========================================================================

    def _emit_depth_guard(self, needed: int) -> None:
        """Jump to stack_error unless at least `needed` operands are present."""
        if needed == 0:
            return
        if needed == 1:
            self._emit_comment("ensure there is an argument on the stack")
        else:
            self._emit_comment(f"ensure there are {needed} arguments on the stack")
        self._emit_instruction("irmovl", "depth, %esi", "%esi holds the address of depth")
        self._emit_instruction("mrmovl", "(%esi), %edx", "%edx = depth")
        self._emit_instruction("irmovl", f"${needed}, %ecx")
        self._emit_instruction("subl", "%ecx, %edx")
        self._emit_instruction("jl", LABEL_STACK_ERROR, f"goto stack_error if depth < {needed}")
        self._emit()

    def _emit_depth_update(self, delta: int) -> None:
        if delta == 0:
            return
        self._emit()
        self._emit_comment("update stack depth")
        self._emit_instruction("irmovl", "depth, %esi")
        self._emit_instruction("mrmovl", "(%esi), %edx", "%edx = depth")
        self._emit_instruction("irmovl", f"${delta}, %ecx")
        self._emit_instruction("addl", "%ecx, %edx", f"depth += {delta}")
        self._emit_instruction("rmmovl", "%edx, (%esi)", "store value")

    # =========================================================================
    # Arithmetic Helpers
    # =========================================================================

    def _emit_negate(self, reg: str, scratch: str = "%edx") -> None:
        """reg = 0 - reg (Y86 has no neg instruction)."""
        self._emit_instruction("xorl", f"{scratch}, {scratch}")
        self._emit_instruction("subl", f"{reg}, {scratch}")
        self._emit_instruction("rrmovl", f"{scratch}, {reg}")

    def _emit_abs(self, reg: str, label_prefix: str) -> None:
        """reg = |reg|."""
        positive = self._new_label(label_prefix)
        self._emit_instruction("andl", f"{reg}, {reg}")
        self._emit_instruction("jge", positive)
        self._emit_negate(reg)
        self._emit_label(positive)

    def _emit_unsigned_compare(self, left: str, right: str, if_less: str, label_prefix: str) -> None:
        """
        Jump to if_less when left < right as unsigned values, else fall through.

        Magnitudes range up to 0x80000000 (|INT32_MIN|), which a signed
        compare would read as negative. When the top bits agree a signed
        compare is exact; when they differ the operand with the top bit
        set is the larger one. Clobbers %edx.
        """
        mixed = self._new_label(f"{label_prefix}_mixed")
        same = self._new_label(f"{label_prefix}_same")
        self._emit_instruction("rrmovl", f"{left}, %edx")
        self._emit_instruction("xorl", f"{right}, %edx")
        self._emit_instruction("jl", mixed, "top bits differ")
        self._emit_instruction("rrmovl", f"{left}, %edx")
        self._emit_instruction("subl", f"{right}, %edx")
        self._emit_instruction("jl", if_less)
        self._emit_instruction("jmp", same)
        self._emit_label(mixed)
        self._emit_instruction("andl", f"{right}, {right}")
        self._emit_instruction("jl", if_less, f"{right} has the top bit")
        self._emit_label(same)

    # =========================================================================
    # Templates
    # =========================================================================

    def _gen_push(self, instr: Instruction) -> None:
        value = self._parse_literal(instr)
        self._emit_comment(f"push the number {value} onto the stack")
        self._emit_instruction("irmovl", f"${value}, %ecx")
        self._emit_instruction("pushl", "%ecx")

    def _parse_literal(self, instr: Instruction) -> int:
        text = instr.value
        if text is None or not _INTEGER_LITERAL.fullmatch(text):
            raise CodeGenError(
                f"couldn't parse {text!r} into an integer",
                location=instr.location,
            )
        value = int(text)
        if not INT32_MIN <= value <= INT32_MAX:
            raise CodeGenError(
                f"integer literal {text} does not fit in 32 bits",
                location=instr.location,
                hint=f"values must lie between {INT32_MIN} and {INT32_MAX}",
            )
        return value

    def _gen_dup(self, instr: Instruction) -> None:
        self._emit_instruction("popl", "%ebx", "pop the top value")
        self._emit_instruction("pushl", "%ebx")
        self._emit_instruction("pushl", "%ebx", "push it twice to duplicate it")

    def _gen_swap(self, instr: Instruction) -> None:
        self._emit_instruction("popl", "%ebx", "%ebx = y (top)")
        self._emit_instruction("popl", "%ecx", "%ecx = x")
        self._emit_instruction("pushl", "%ebx")
        self._emit_instruction("pushl", "%ecx", "x is now on top")

    def _gen_binary(self, mnemonic: str, description: str) -> None:
        self._emit_instruction("popl", "%ecx", "%ecx = b")
        self._emit_instruction("popl", "%ebx", "%ebx = a")
        self._emit_instruction(mnemonic, "%ecx, %ebx", f"%ebx = {description}")
        self._emit_instruction("pushl", "%ebx", "push result onto stack")

    def _gen_multiply(self, instr: Instruction) -> None:
        done = self._new_label("mul_done")
        count = self._new_label("mul_count")
        swap = self._new_label("mul_swap")
        loop = self._new_label("mul_loop")

        self._emit_instruction("popl", "%ecx", "%ecx = b")
        self._emit_instruction("popl", "%ebx", "%ebx = a")
        self._emit_instruction("xorl", "%eax, %eax", "%eax = product = 0")

        self._emit_comment("anything times zero is zero")
        self._emit_instruction("andl", "%ebx, %ebx")
        self._emit_instruction("je", done)
        self._emit_instruction("andl", "%ecx, %ecx")
        self._emit_instruction("je", done)

        self._emit_comment("product is negative iff the sign bits differ")
        self._emit_instruction("rrmovl", "%ebx, %esi")
        self._emit_instruction("xorl", "%ecx, %esi")
        self._emit_abs("%ebx", "mul_abs")
        self._emit_abs("%ecx", "mul_abs")

        self._emit_comment("count down the smaller magnitude")
        self._emit_unsigned_compare("%ebx", "%ecx", swap, "mul_cmp")
        self._emit_instruction("jmp", count, "|b| <= |a|: |b| is the counter")
        self._emit_label(swap)
        self._emit_instruction("rrmovl", "%ebx, %edx")
        self._emit_instruction("rrmovl", "%ecx, %ebx")
        self._emit_instruction("rrmovl", "%edx, %ecx")
        self._emit_label(count)
        self._emit_comment("a counter of 0x80000000 means both were INT32_MIN; the product wraps to 0")
        self._emit_instruction("andl", "%ecx, %ecx")
        self._emit_instruction("jl", done)
        self._emit_instruction("irmovl", "$1, %edx")
        self._emit_label(loop)
        self._emit_instruction("addl", "%ebx, %eax", "product += larger")
        self._emit_instruction("subl", "%edx, %ecx", "counter--")
        self._emit_instruction("jne", loop)

        self._emit_instruction("andl", "%esi, %esi")
        self._emit_instruction("jge", done)
        self._emit_negate("%eax")
        self._emit_label(done)
        self._emit_instruction("pushl", "%eax", "push result onto stack")

    def _gen_division(self, remainder: bool) -> None:
        kind = "mod" if remainder else "div"
        result = "%ebx" if remainder else "%eax"
        done = self._new_label(f"{kind}_done")
        loop = self._new_label(f"{kind}_loop")
        shifted = self._new_label(f"{kind}_shifted")
        keep = self._new_label(f"{kind}_keep")

        self._emit_comment("reject a zero divisor before touching the stack")
        self._emit_instruction("mrmovl", "(%esp), %ecx", "%ecx = b (not popped)")
        self._emit_instruction("andl", "%ecx, %ecx")
        self._emit_instruction("je", LABEL_DIVIDE_BY_ZERO, "goto divide_by_zero if b == 0")

        self._emit_instruction("popl", "%ecx", "%ecx = b")
        self._emit_instruction("popl", "%ebx", "%ebx = a")
        self._emit_instruction("xorl", "%eax, %eax", "%eax = quotient = 0")
        self._emit_instruction("andl", "%ebx, %ebx")
        self._emit_instruction("je", done)

        self._emit_instruction("rrmovl", "%ebx, %esi")
        if remainder:
            self._emit_comment("remainder takes the sign of a")
        else:
            self._emit_comment("quotient is negative iff the sign bits differ")
            self._emit_instruction("xorl", "%ecx, %esi")
        self._emit_abs("%ebx", f"{kind}_abs")
        self._emit_abs("%ecx", f"{kind}_abs")

        self._emit_comment("long division: one quotient bit per round, top bit first")
        self._emit_instruction("rrmovl", "%ebx, %ebp", "%ebp = bits of |a| still to bring down")
        self._emit_instruction("xorl", "%ebx, %ebx", "%ebx = remainder = 0")
        self._emit_instruction("pushl", "%esi", "save the sign; %esi counts rounds")
        self._emit_instruction("irmovl", "$32, %esi")
        self._emit_label(loop)
        self._emit_instruction("addl", "%ebx, %ebx", "remainder <<= 1")
        self._emit_instruction("addl", "%eax, %eax", "quotient <<= 1")
        self._emit_instruction("andl", "%ebp, %ebp")
        self._emit_instruction("jge", shifted, "next bit of |a| is 0")
        self._emit_instruction("irmovl", "$1, %edx")
        self._emit_instruction("addl", "%edx, %ebx", "bring down a 1")
        self._emit_label(shifted)
        self._emit_instruction("addl", "%ebp, %ebp")
        self._emit_unsigned_compare("%ebx", "%ecx", keep, f"{kind}_cmp")
        self._emit_instruction("subl", "%ecx, %ebx", "remainder -= |b|")
        self._emit_instruction("irmovl", "$1, %edx")
        self._emit_instruction("addl", "%edx, %eax", "quotient bit = 1")
        self._emit_label(keep)
        self._emit_instruction("irmovl", "$1, %edx")
        self._emit_instruction("subl", "%edx, %esi")
        self._emit_instruction("jne", loop)
        self._emit_instruction("popl", "%esi", "restore the sign")

        self._emit_instruction("andl", "%esi, %esi")
        self._emit_instruction("jge", done)
        self._emit_negate(result)
        self._emit_label(done)
        self._emit_instruction("pushl", result, "push result onto stack")
