"""
Program Assembler
=================

Wraps the generated fragments with the fixed parts of every program.

Program Layout
--------------
    .pos 0
    init:            set %esp/%ebp to Stack, jmp Main
    depth, EDIV, ESTACK, ESTACKFULL    (data cells)
    Main:            zero depth and the fault register %edi
    <fragments>
    footer           depth must be exactly 1, then popl %eax; halt
    divide_by_zero / stack_error / stack_too_full
    set_code_and_exit
    .pos <stack address>
    Stack:

Runtime Faults
--------------
A failing guard jumps to one of the three shared handlers. Each loads its
error code into %edi, sets %esi to -1 and halts. Handlers are never
re-entered and nothing is retried.

| Handler        | Code | Cause                                  |
|----------------|------|----------------------------------------|
| divide_by_zero | 0x01 | b == 0 for / or %                      |
| stack_error    | 0x02 | operator needs more operands than held |
| stack_too_full | 0x04 | more than one value left at the end    |
"""

from enum import IntEnum

from rpnc.compiler.errors import CodeGenError


class ErrorCode(IntEnum):
    """Fault codes stored in %edi by the generated program."""
    NONE = 0x00
    DIVIDE_BY_ZERO = 0x01
    STACK_ERROR = 0x02
    STACK_TOO_FULL = 0x04


DEFAULT_STACK_ADDRESS = 0xFFC

RESULT_REGISTER = "eax"
FAULT_REGISTER = "edi"


PROLOGUE = """\
#
# This program was compiled using rpnc, the RPN to Y86 compiler
#
# Execution begins at address 0
	.pos 0
init:	irmovl Stack, %esp	# Set up stack pointer
	irmovl Stack, %ebp	# Set up base pointer
	jmp Main		# Execute main program

# Data section
	.align 4
depth:	.long 0x0		# Keeps track of the RPN stack depth

EDIV:		.long 0x{div:02x}	# Divide by 0 errno
ESTACK:		.long 0x{stack:02x}	# Depth of RPN stack too shallow errno
ESTACKFULL:	.long 0x{full:02x}	# Depth of RPN stack too high errno

#
# Main function
#
Main:
	# The RPN stack is initially empty
	irmovl depth, %esi	# %esi holds the address of depth
	xorl %edx, %edx		# zero the register
	rmmovl %edx, (%esi)	# depth = 0
	xorl %edi, %edi		# zero %edi since it holds error codes
"""

EPILOGUE = """
# Footer section:

	# Check that exactly one number is left on the stack
	irmovl depth, %esi
	mrmovl (%esi), %edx	# %edx = depth
	irmovl $1, %ecx
	subl %ecx, %edx
	jl stack_error		# goto stack_error if depth < 1
	jg stack_too_full	# goto stack_too_full if depth > 1

	# Pop the result off the stack and return in %eax
	popl %eax
	halt

# Error conditions section:

#
# Division by 0 was attempted
#
divide_by_zero:
	irmovl EDIV, %ebx	# %ebx holds address of EDIV errno
	jmp set_code_and_exit

#
# Not enough operands on the RPN stack for an operation
# (For example: '1 +', or '3 2 % -')
#
stack_error:
	irmovl ESTACK, %ebx	# %ebx holds address of ESTACK errno
	jmp set_code_and_exit

#
# RPN stack has too many numbers on it at the end of a program
# (For example: '3 2 1 +')
#
stack_too_full:
	irmovl ESTACKFULL, %ebx	# %ebx holds address of ESTACKFULL errno
	jmp set_code_and_exit

#
# Store the error code in %edi and terminate
#
set_code_and_exit:
	mrmovl (%ebx), %edi	# %edi holds error codes
	xorl %ebx, %ebx		# clear %ebx
	irmovl $-1, %esi	# set %esi to -1 to also indicate error
	halt

	# Stack starts at the highest memory location
	.pos 0x{stack_address:x}
Stack:
"""


def create_prologue() -> str:
    """Build the program header: entry point, data cells and Main."""
    return PROLOGUE.format(
        div=ErrorCode.DIVIDE_BY_ZERO,
        stack=ErrorCode.STACK_ERROR,
        full=ErrorCode.STACK_TOO_FULL,
    )


def create_epilogue(stack_address: int = DEFAULT_STACK_ADDRESS) -> str:
    """
    Build the program footer: final depth check, handlers, stack region.

    Raises:
        CodeGenError: If stack_address is negative or not word aligned
    """
    if stack_address < 0 or stack_address % 4:
        raise CodeGenError(
            f"stack address must be a non-negative multiple of 4, got {stack_address:#x}",
            hint="the stack region starts at the top of memory, e.g. 0xffc",
        )
    return EPILOGUE.format(stack_address=stack_address)


def strip_comments(asm: str) -> str:
    """Remove '#' comments and the blank lines they leave behind."""
    lines = []
    for line in asm.splitlines():
        code = line.split("#", 1)[0].rstrip()
        if code:
            lines.append(code)
    return "\n".join(lines) + "\n"


def assemble_program(
    body: str,
    stack_address: int = DEFAULT_STACK_ADDRESS,
    output_comments: bool = True,
) -> str:
    """
    Join prologue, generated body and epilogue into the final program text.

    Args:
        body: Concatenated fragments from the code generator
        stack_address: Address of the Stack label (top of the stack region)
        output_comments: Keep comments and blank lines in the output
    """
    program = create_prologue() + body + create_epilogue(stack_address)
    if not output_comments:
        program = strip_comments(program)
    return program
