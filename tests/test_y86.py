"""
Y86 Assembler and Emulator Tests
================================

Instruction encodings, directives and labels for the assembler; register,
flag, stack and fault behaviour for the emulator.
"""

import pytest
from rpnc.errors import ExecutionLimitError, Y86AssemblyError, Y86EmulatorError
from rpnc.y86 import (
    Memory,
    Register,
    Status,
    Y86CPU,
    assemble,
    run_program,
)
from rpnc.y86.assembler import parse_number
from rpnc.y86.opcodes import INSTRUCTIONS, to_signed


# =============================================================================
# Encoding
# =============================================================================

class TestEncoding:

    @pytest.mark.parametrize("source,expected", [
        ("halt", "00"),
        ("nop", "10"),
        ("ret", "90"),
        ("irmovl $1, %eax", "30f001000000"),
        ("irmovl $-1, %edx", "30f2ffffffff"),
        ("rrmovl %ecx, %edx", "2012"),
        ("cmovge %esi, %edi", "2567"),
        ("addl %ecx, %ebx", "6013"),
        ("subl %ecx, %edx", "6112"),
        ("andl %ebx, %ebx", "6233"),
        ("xorl %edx, %edx", "6322"),
        ("rmmovl %edx, (%esi)", "402600000000"),
        ("mrmovl 8(%ebp), %eax", "500508000000"),
        ("mrmovl (%esp), %ecx", "501400000000"),
        ("pushl %ebx", "a03f"),
        ("popl %eax", "b00f"),
        ("jmp 0x10", "7010000000"),
        ("jl 0x10", "7210000000"),
        ("call 0x20", "8020000000"),
    ])
    def test_instruction(self, source, expected):
        assert assemble(source).image.hex() == expected

    def test_instruction_sizes_match_table(self):
        for mnemonic, info in INSTRUCTIONS.items():
            assert info.size in (1, 2, 5, 6), mnemonic

    def test_mnemonics_case_insensitive(self):
        assert assemble("IRMOVL $1, %eax").image.hex() == "30f001000000"


# =============================================================================
# Labels and Directives
# =============================================================================

class TestDirectives:

    def test_forward_reference(self):
        program = assemble("jmp end\nnop\nend: halt\n")
        assert program.symbols["end"] == 6
        assert program.image[1:5] == (6).to_bytes(4, "little")

    def test_label_as_immediate(self):
        program = assemble("irmovl value, %eax\nhalt\nvalue: .long 7\n")
        assert program.image[2:6] == (7).to_bytes(4, "little")

    def test_pos(self):
        program = assemble(".pos 0x10\nstart: halt\n")
        assert program.symbols["start"] == 0x10
        assert len(program.image) == 0x11

    def test_pos_with_label_after(self):
        program = assemble("halt\n.pos 0x100\nStack:\n")
        assert program.symbols["Stack"] == 0x100
        assert len(program.image) == 1

    def test_align(self):
        program = assemble("halt\n.align 4\nword: .long 0x12345678\n")
        assert program.symbols["word"] == 4
        assert program.image[4:8] == bytes.fromhex("78563412")

    def test_long_negative(self):
        assert assemble(".long -1").image == b"\xff\xff\xff\xff"

    def test_labels_on_own_lines(self):
        program = assemble("a:\nb:\n  halt\n")
        assert program.symbols["a"] == program.symbols["b"] == 0

    def test_comments_ignored(self):
        assert assemble("# header\nhalt  # stop\n").image.hex() == "00"

    def test_address_of(self):
        assert assemble("nop\nhere: halt").address_of("here") == 1

    @pytest.mark.parametrize("text,value", [
        ("10", 10), ("-10", -10), ("0x10", 16), ("0XfF", 255), ("-0x4", -4),
    ])
    def test_parse_number(self, text, value):
        assert parse_number(text) == value


# =============================================================================
# Assembler Errors
# =============================================================================

class TestAssemblyErrors:

    @pytest.mark.parametrize("source,message", [
        ("frob %eax", "unknown instruction 'frob'"),
        ("pushl %eex", "unknown register '%eex'"),
        ("pushl eax", "expected a register"),
        ("addl %eax", "expects 2 operand(s), got 1"),
        ("halt %eax", "expects 0 operand(s), got 1"),
        ("jmp nowhere", "undefined symbol 'nowhere'"),
        ("x: nop\nx: halt", "duplicate label 'x'"),
        (".pos 0x10\nhalt\n.pos 0x4", "overlaps"),
        (".align 0", "alignment must be positive"),
        (".long 1, 2", ".long takes exactly one value"),
        ("irmovl $abc!, %eax", "invalid value"),
    ])
    def test_error(self, source, message):
        with pytest.raises(Y86AssemblyError) as exc_info:
            assemble(source)
        assert message in str(exc_info.value)

    def test_error_location(self):
        with pytest.raises(Y86AssemblyError) as exc_info:
            assemble("halt\n  bogus\n", "prog.ys")
        error = exc_info.value
        assert str(error.location) == "prog.ys:2:3"
        assert error.source_line == "  bogus"


# =============================================================================
# Emulator
# =============================================================================

def run(source: str, **kwargs):
    return run_program(source, **kwargs)


class TestEmulator:

    def test_arithmetic(self):
        result = run("""
            irmovl $7, %eax
            irmovl $3, %ecx
            subl %ecx, %eax
            halt
        """)
        assert result.status == Status.HLT
        assert result.register("eax") == 4
        assert result.register("%ecx") == 3

    def test_overflow_flag(self):
        result = run("""
            irmovl $0x7fffffff, %eax
            irmovl $1, %ecx
            addl %ecx, %eax
            halt
        """)
        assert result.register("eax") == -2147483648
        assert result.of and result.sf and not result.zf

    def test_jl_on_negative(self):
        result = run("""
            irmovl $1, %edx
            irmovl $2, %ecx
            subl %ecx, %edx
            jl less
            irmovl $1, %eax
            halt
        less:
            irmovl $2, %eax
            halt
        """)
        assert result.register("eax") == 2

    def test_conditional_move(self):
        result = run("""
            irmovl $5, %eax
            irmovl $9, %ebx
            xorl %ecx, %ecx
            cmove %ebx, %eax
            halt
        """)
        assert result.register("eax") == 9

    def test_push_pop(self):
        result = run("""
            irmovl Stack, %esp
            irmovl $11, %eax
            pushl %eax
            popl %ebx
            halt
            .pos 0x100
        Stack:
        """)
        assert result.register("ebx") == 11
        assert result.register("esp") == 0x100

    def test_memory_roundtrip(self):
        result = run("""
            irmovl cell, %esi
            irmovl $-5, %edx
            rmmovl %edx, 4(%esi)
            mrmovl 4(%esi), %eax
            halt
            .align 4
        cell: .long 0
            .long 0
        """)
        assert result.register("eax") == -5

    def test_call_ret(self):
        result = run("""
            irmovl Stack, %esp
            call f
            halt
        f:  irmovl $42, %eax
            ret
            .pos 0x200
        Stack:
        """)
        assert result.register("eax") == 42
        assert result.status == Status.HLT

    def test_steps_counted(self):
        assert run("nop\nnop\nhalt").steps == 3

    def test_invalid_instruction(self):
        result = run(".long 0xff")
        assert result.status == Status.INS

    def test_invalid_register(self):
        # pushl with register nibble 0xF
        result = run(".long 0xffa0")
        assert result.status == Status.INS

    def test_bad_address(self):
        result = run("""
            irmovl $0x7ffffff0, %esi
            mrmovl (%esi), %eax
            halt
        """)
        assert result.status == Status.ADR

    def test_running_off_memory(self):
        result = run("nop", memory_size=1)
        assert result.status == Status.ADR

    def test_step_limit(self):
        with pytest.raises(ExecutionLimitError) as exc_info:
            run("loop: jmp loop", max_steps=50)
        assert exc_info.value.steps == 50
        assert exc_info.value.pc == 0

    def test_hook_can_stop(self):
        result = run("nop\nnop\nnop\nhalt", on_instruction=lambda pc, byte: pc < 2)
        assert result.status == Status.AOK
        assert result.pc == 2

    def test_image_too_large(self):
        cpu = Y86CPU(Memory(4))
        with pytest.raises(Y86EmulatorError):
            cpu.load(bytes(8))

    def test_cpu_reset(self):
        cpu = Y86CPU()
        cpu.load(assemble("irmovl $3, %eax\nhalt").image)
        cpu.run()
        assert cpu.get_register(Register.EAX) == 3
        cpu.reset()
        assert cpu.get_register(Register.EAX) == 0
        assert cpu.status == Status.AOK

    def test_to_signed(self):
        assert to_signed(0xFFFFFFFF) == -1
        assert to_signed(0x7FFFFFFF) == 0x7FFFFFFF
