"""
mifasm Assembler - Main Interface
=================================

This module provides the main Assembler class, the primary interface for
turning source text into a MIF memory image. It coordinates the line
scanner, the code generator and the MIF writer.

Example Usage
-------------
>>> from mifasm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> asm.assemble_string('''
...     mvi r0, 5
... loop:
...     add r0, r1
...     mvi pc, loop
... ''')
>>>
>>> if asm.has_errors():
...     print(asm.get_error_report())
>>> asm.write_mif("prog.mif")

Command-Line Usage
------------------
The assembler can also be invoked from the command line:

    $ mifasm prog.s -o prog.mif -s prog.sym

Options:
    -d, --depth N          Initial value of the DEPTH constant
    -o, --output FILE      Output MIF file (default: stdout)
    -s, --symbols FILE     Generate symbol file
    -v, --verbose          Trace symbols and patches
"""

from pathlib import Path
from typing import Optional

from mifasm.config import AssemblerConfig
from mifasm.cpu import WORD_MASK
from mifasm.errors import ErrorCollector
from mifasm.assembler.codegen import CodeGenerator
from mifasm.assembler.image import AssemblyImage
from mifasm.assembler.lexer import scan_source
from mifasm.mif.writer import MifWriter


class Assembler:
    """
    Main assembler class.

    Assembly never raises on bad source: every problem is collected and
    paired with a placeholder word, so an image and a MIF are always
    available. Use has_errors() to decide whether the result is usable.

    Attributes:
        config: Assembly and output options
    """

    def __init__(self, config: Optional[AssemblerConfig] = None,
                 defines: dict[str, int] | None = None):
        """
        Initialize the assembler.

        Args:
            config: Assembly and output options (defaults if None)
            defines: Dictionary of pre-defined constants
        """
        self._config = config or AssemblerConfig()
        self._codegen = CodeGenerator(self._config)
        self._writer = MifWriter.from_config(self._config)

        if defines:
            for name, value in defines.items():
                self.define_symbol(name, value)

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    def define_symbol(self, name: str, value: int) -> None:
        """
        Pre-define a constant (like '#define' before the first line).

        Args:
            name: Constant name
            value: Constant value
        """
        self._codegen.define_symbol(name, value)

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> AssemblyImage:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The resolved assembly image
        """
        return self._codegen.generate(scan_source(source, filename))

    def assemble_file(self, filepath: str | Path) -> AssemblyImage:
        """
        Assemble source code from a file.

        Raises:
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        return self.assemble_string(filepath.read_text(), str(filepath))

    # =========================================================================
    # Results
    # =========================================================================

    def get_image(self) -> AssemblyImage:
        return self._codegen.get_image()

    def get_words(self) -> list[int]:
        """Image words masked to the word width."""
        mask = (1 << self._config.width) - 1
        return [word & mask for word in self._codegen.get_image()]

    def get_depth(self) -> int:
        """Effective depth after finalization."""
        return self._codegen.get_depth()

    def get_width(self) -> int:
        return self._codegen.get_width()

    def get_symbols(self) -> dict[str, int]:
        """
        Get the symbol table.

        Returns:
            Dictionary mapping symbol names to values
        """
        return self._codegen.get_symbols()

    def get_constants(self) -> dict[str, int]:
        return self._codegen.get_constants()

    def get_labels(self) -> dict[str, int]:
        return self._codegen.get_labels()

    def get_mif(self) -> str:
        """Render the last image as MIF text."""
        return self._writer.render(
            self.get_image(),
            self.get_depth(),
            constants=self.get_constants(),
            labels=self.get_labels(),
        )

    # =========================================================================
    # Output Methods
    # =========================================================================

    def write_mif(self, filepath: str | Path) -> None:
        """Write the MIF text to a file."""
        Path(filepath).write_text(self.get_mif())

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name value kind (one per line, sorted by name). A name that
        is both a constant and a label gets one line for each.
        """
        entries = sorted(
            self._codegen.get_symbol_entries(),
            key=lambda sym: (sym.name, not sym.is_constant),
        )
        with open(filepath, "w") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by mifasm\n")
            for sym in entries:
                kind = "constant" if sym.is_constant else "label"
                f.write(f"{sym.name} 0x{sym.value & WORD_MASK:04X} {kind}\n")

    # =========================================================================
    # Error Handling
    # =========================================================================

    def get_errors(self) -> ErrorCollector:
        return self._codegen.get_errors()

    def has_errors(self) -> bool:
        """Check if assembly produced errors."""
        return self._codegen.has_errors()

    def has_warnings(self) -> bool:
        return self._codegen.get_errors().has_warnings()

    def error_count(self) -> int:
        return self._codegen.get_errors().error_count()

    def warning_count(self) -> int:
        return self._codegen.get_errors().warning_count()

    def get_error_report(self) -> str:
        """
        Get formatted error report.

        Returns:
            Diagnostics in source order followed by the summary line
        """
        return self._codegen.get_error_report()


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>",
             depth: Optional[int] = None) -> str:
    """
    Convenience function to assemble source code to MIF text.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        depth: Initial DEPTH value (configuration default if None)

    Returns:
        MIF text (diagnostics are discarded; use Assembler to inspect them)
    """
    config = AssemblerConfig(depth=depth) if depth is not None else None
    asm = Assembler(config)
    asm.assemble_string(source, filename)
    return asm.get_mif()


def assemble_file(filepath: str | Path, depth: Optional[int] = None) -> str:
    """Convenience function to assemble a file to MIF text."""
    config = AssemblerConfig(depth=depth) if depth is not None else None
    asm = Assembler(config)
    asm.assemble_file(filepath)
    return asm.get_mif()
