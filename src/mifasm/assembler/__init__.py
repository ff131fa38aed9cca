"""
mifasm Assembler
================

This package turns source text for the 16-bit target processor into a
memory image ready for MIF serialization.

Main Components
---------------
- **Assembler**: Main class that orchestrates the assembly process
- **scan_line / scan_source**: Strip comments, peel labels, split fields
- **ExpressionEvaluator**: Evaluates arithmetic with one forward label
- **SymbolTable / PendingReferences**: Constants, labels and deferred patches
- **AssemblyImage**: Append-only word arena with placeholders
- **CodeGenerator**: Scan, resolve and depth finalization

Assembly Process
----------------
The assembler reads the source once:

1. **Scan**: bind labels, evaluate '#define' constants, encode
   instructions; label references get a placeholder word and a ledger entry
2. **Resolve**: patch each placeholder with 'label address + offset'
3. **Finalize**: grow the depth to a power of two if the image overflows it

Example Usage
-------------
>>> from mifasm.assembler import Assembler
>>> asm = Assembler()
>>> asm.assemble_string('''
... #define COUNT 3
...     mvi r1, COUNT
... loop:
...     sub r1, r2
...     mvnz pc, r3
... ''')
>>> print(asm.get_mif())

Source Syntax
-------------
- Comments: '// ...'
- Labels: any number of leading 'name:' declarations per line
- Constants: '#define NAME EXPR'
- Data words: '#data EXPR'
- Instructions: mv, mvi, add, sub, ld, st, mvnz (case-insensitive)
- Numbers: decimal, or 0x / 0b / 0o / 0d prefixed
"""

from mifasm.assembler.assembler import Assembler, assemble, assemble_file
from mifasm.assembler.lexer import SourceLine, is_name_valid, scan_line, scan_source
from mifasm.assembler.expressions import (
    Concrete,
    LabelRelative,
    ExpressionEvaluator,
    evaluate_expression,
    parse_number,
)
from mifasm.assembler.symbols import (
    Symbol,
    SymbolTable,
    PatchRequest,
    PendingReferences,
)
from mifasm.assembler.image import AssemblyImage, ImageEntry
from mifasm.assembler.codegen import AssemblySession, CodeGenerator, next_power_of_two

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Scanner
    "SourceLine",
    "is_name_valid",
    "scan_line",
    "scan_source",
    # Expressions
    "Concrete",
    "LabelRelative",
    "ExpressionEvaluator",
    "evaluate_expression",
    "parse_number",
    # Symbols
    "Symbol",
    "SymbolTable",
    "PatchRequest",
    "PendingReferences",
    # Image
    "AssemblyImage",
    "ImageEntry",
    # Code generator
    "AssemblySession",
    "CodeGenerator",
    "next_power_of_two",
]
