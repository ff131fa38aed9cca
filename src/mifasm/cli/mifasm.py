"""
mifasm - MIF Assembler Command-Line Interface
=============================================

This module implements the command-line interface for the assembler. It
reads a source file (or stdin), prints diagnostics to stderr and writes the
MIF image to a file (or stdout).

Usage Examples
--------------
Basic assembly to stdout:
    $ mifasm prog.s

With output and symbol files:
    $ mifasm prog.s -o prog.mif -s prog.sym

Larger memory, treat warnings as errors:
    $ mifasm -d 256 -W prog.s -o prog.mif

From a pipe:
    $ cat prog.s | mifasm > prog.mif

Verbose mode (symbol and patch trace on stderr):
    $ mifasm -v prog.s
"""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import click

from mifasm import __version__
from mifasm.assembler import Assembler
from mifasm.config import AssemblerConfig
from mifasm.cli.errors import ExitCode, handle_cli_exception


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def build_config(
    depth: Optional[int],
    symbol_header: bool,
    no_comments: bool,
    no_labels: bool,
    no_fill: bool,
) -> AssemblerConfig:
    """Environment configuration with command-line options applied on top."""
    config = AssemblerConfig.from_env()
    changes = {}
    if depth is not None:
        changes["depth"] = depth
    if symbol_header:
        changes["symbol_header"] = True
    if no_comments:
        changes["emit_comments"] = False
    if no_labels:
        changes["emit_labels"] = False
    if no_fill:
        changes["zero_fill"] = False
    return dataclasses.replace(config, **changes)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.File("r", errors="replace"),
    default="-",
    required=False,
)
@click.option(
    "-d", "--depth",
    type=click.IntRange(min=1),
    default=None,
    help="Initial memory depth in words (default: 128 or $MIFASM_DEPTH)",
)
@click.option(
    "-o", "--output",
    type=click.File("w"),
    default="-",
    help="Output MIF file (default: stdout)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "--symbol-header",
    is_flag=True,
    help="List constants and labels at the top of the MIF",
)
@click.option(
    "--no-comments",
    is_flag=True,
    help="Do not echo source text as MIF comments",
)
@click.option(
    "--no-labels",
    is_flag=True,
    help="Do not emit label annotations",
)
@click.option(
    "--no-fill",
    is_flag=True,
    help="Do not emit the fill entry for unused memory",
)
@click.option(
    "-W", "--werror",
    is_flag=True,
    help="Treat warnings as errors",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mifasm")
def main(
    input_file: TextIO,
    depth: Optional[int],
    output: TextIO,
    symbols: Optional[Path],
    symbol_header: bool,
    no_comments: bool,
    no_labels: bool,
    no_fill: bool,
    werror: bool,
    verbose: bool,
) -> None:
    """
    Assemble source code into a Memory Initialization File.

    INPUT_FILE is the assembly source (stdin when omitted or '-').

    The MIF is always written, even when errors are reported; failing
    lines are replaced with zero words so that addresses stay stable.

    \b
    Examples:
        mifasm prog.s                  # MIF to stdout
        mifasm prog.s -o prog.mif      # Specify output file
        mifasm -d 256 prog.s           # Start with a 256-word memory
    """
    setup_logging(verbose)

    try:
        config = build_config(depth, symbol_header, no_comments, no_labels, no_fill)
        asm = Assembler(config)

        filename = getattr(input_file, "name", "<stdin>")
        asm.assemble_string(input_file.read(), filename)

        output.write(asm.get_mif())

        if symbols:
            asm.write_symbols(symbols)

        if asm.has_errors() or asm.has_warnings():
            click.echo(asm.get_error_report(), err=True)

        if verbose:
            click.echo(
                f"Assembly complete: {len(asm.get_image())} words, "
                f"depth {asm.get_depth()}",
                err=True,
            )

        if asm.has_errors() or (werror and asm.has_warnings()):
            sys.exit(ExitCode.BUILD_ERROR)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
