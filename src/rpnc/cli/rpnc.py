"""
rpnc - RPN Compiler Command-Line Interface
==========================================

Compiles a Reverse Polish Notation expression to a Y86 assembly program.

Usage Examples
--------------
Compile to the default output file (a.ys):
    $ rpnc "7 1 + 3 -"

Read the expression from a file, write elsewhere, overwrite if present:
    $ rpnc -i sum.rpn -o sum.ys -f

Print the program instead of writing it:
    $ rpnc --stdout "4 3 *"

Compile and run on the built-in Y86 emulator:
    $ rpnc --run "5 2 swap -"
    Result: -3
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from rpnc import __version__
from rpnc.compiler import RPNCompiler, CompilerOptions, ErrorCode
from rpnc.compiler.program import DEFAULT_STACK_ADDRESS
from rpnc.y86 import run_program, Status
from rpnc.y86.assembler import parse_number
from rpnc.cli.errors import ExitCode, handle_cli_exception

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = Path("a.ys")


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def _parse_address(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> int:
    if value is None:
        return DEFAULT_STACK_ADDRESS
    try:
        address = parse_number(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a number") from None
    if address <= 0 or address % 4:
        raise click.BadParameter("must be a positive multiple of 4")
    return address


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument("expression", required=False)
@click.option(
    "-i", "--input", "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the expression from a file instead of the command line",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output assembly file (default: a.ys)",
)
@click.option(
    "-f", "--force",
    is_flag=True,
    help="Overwrite the output file if it already exists",
)
@click.option(
    "--stdout", "to_stdout",
    is_flag=True,
    help="Print the assembly instead of writing a file",
)
@click.option(
    "--stack-address",
    callback=_parse_address,
    metavar="ADDR",
    help="Address of the top of the stack region (default: 0xffc)",
)
@click.option(
    "--comments/--no-comments",
    default=True,
    help="Keep explanatory comments in the output (default: keep)",
)
@click.option(
    "--run",
    is_flag=True,
    help="Execute the compiled program on the Y86 emulator and print the result",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="rpnc")
def main(
    expression: Optional[str],
    input_file: Optional[Path],
    output: Optional[Path],
    force: bool,
    to_stdout: bool,
    stack_address: int,
    comments: bool,
    run: bool,
    verbose: bool,
) -> None:
    """
    Compile an RPN expression to Y86 assembly.

    EXPRESSION is the RPN text, e.g. "7 1 + 3 -". Quote it so the shell
    passes it as one argument.

    \b
    Operators:
        + - * / %      integer arithmetic (32-bit, truncating)
        and xor        bitwise
        dup swap       stack manipulation

    \b
    Examples:
        rpnc "7 1 + 3 -"             # Writes a.ys
        rpnc -i sum.rpn -o sum.ys    # Read from a file
        rpnc --stdout "4 3 *"        # Print the program
        rpnc --run "6 0 /"           # Run it: reports divide_by_zero
    """
    setup_logging(verbose)

    if (expression is None) == (input_file is None):
        raise click.UsageError("give exactly one of EXPRESSION or --input FILE")

    options = CompilerOptions(
        stack_address=stack_address,
        output_comments=comments,
    )

    try:
        compiler = RPNCompiler(options)
        if input_file is not None:
            result = compiler.compile_file(input_file)
        else:
            result = compiler.compile_source(expression)

        if verbose:
            click.echo(f"Tokenized: {len(result.tokens)} tokens")
            click.echo(f"Instructions: {', '.join(str(i) for i in result.instructions)}")

        if to_stdout:
            click.echo(result.assembly, nl=False)
        elif not run or output is not None:
            target = output or DEFAULT_OUTPUT
            if target.exists() and not force:
                raise FileExistsError(
                    f"{target} already exists; use -f to overwrite it"
                )
            if target.exists():
                logger.warning(f"overwriting {target}")
            target.write_text(result.assembly)
            click.echo(f"Compiled -> {target}")

        if run:
            sys.exit(_run(result.assembly))

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


def _run(assembly: str) -> int:
    """Run a compiled program, report the outcome, return the exit code."""
    outcome = run_program(assembly)
    fault = outcome.register("edi")

    if outcome.status != Status.HLT:
        click.echo(f"Emulator stopped with status {outcome.status.name}", err=True)
        return ExitCode.INTERNAL_ERROR

    if fault == ErrorCode.NONE:
        click.echo(f"Result: {outcome.register('eax')}")
        return ExitCode.SUCCESS

    try:
        name = ErrorCode(fault).name.lower()
    except ValueError:
        name = "unknown"
    click.echo(f"Runtime error: {name} (code 0x{fault:02x})", err=True)
    return ExitCode.BUILD_ERROR


if __name__ == "__main__":
    main()
