"""
mifasm - MIF Assembler for a 16-bit Teaching Processor
======================================================

This package assembles programs for a small 16-bit processor (seven
instructions, eight registers) into Memory Initialization Files that
Quartus loads into on-chip instruction memory.

Main Components
---------------
- **assembler**: Source scanner, expression evaluator, code generator
- **mif**: MIF serializer
- **cpu**: Instruction set tables and word encoding
- **cli**: The 'mifasm' command

Quick Start
-----------
Assemble a program:
    >>> from mifasm import Assembler
    >>> asm = Assembler()
    >>> asm.assemble_file("prog.s")
    >>> asm.write_mif("prog.mif")

Or use the command-line tool:
    $ mifasm prog.s -o prog.mif

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from mifasm.assembler import Assembler, assemble, assemble_file
from mifasm.config import AssemblerConfig
from mifasm.mif import MifWriter
from mifasm.errors import (
    MifasmError,
    AssemblerError,
    AssemblySyntaxError,
    ExpressionError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    RegisterError,
    OpcodeError,
    DepthError,
    ImageError,
    MifError,
    SourceLocation,
    ErrorCollector,
)

__all__ = [
    "__version__",
    # Assembler
    "Assembler",
    "assemble",
    "assemble_file",
    "AssemblerConfig",
    "MifWriter",
    # Errors
    "MifasmError",
    "AssemblerError",
    "AssemblySyntaxError",
    "ExpressionError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "RegisterError",
    "OpcodeError",
    "DepthError",
    "ImageError",
    "MifError",
    "SourceLocation",
    "ErrorCollector",
]
