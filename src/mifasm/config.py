"""
mifasm - Configuration
======================

Assembler configuration. Values can come from:
- Default values (defined here)
- Environment variables (AssemblerConfig.from_env)
- Command-line options (applied on top by the CLI)

The word width is fixed by the instruction set and only validated here.
"""

from dataclasses import dataclass
import os

from mifasm.cpu import WORD_WIDTH


DEFAULT_DEPTH = 128
DEFAULT_DEPTH_SYMBOL = "DEPTH"


def _env_flag(name: str) -> bool:
    """Interpret an environment variable as a boolean flag."""
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AssemblerConfig:
    """
    Configuration for one assembly run.

    Attributes:
        depth: Initial value of the depth constant (memory size in words).
               Source code may override it once with '#define DEPTH n'.
        width: Word width in bits. Only 16 is supported.
        depth_symbol: Name of the reserved, overridable depth constant.
        emit_comments: Echo source text as '--' comments in the MIF.
        emit_labels: Emit '-- Label "X":' annotations in the MIF.
        zero_fill: Emit a trailing fill entry for unused memory.
        symbol_header: Emit a constants/labels table before the MIF header.
    """

    depth: int = DEFAULT_DEPTH
    width: int = WORD_WIDTH
    depth_symbol: str = DEFAULT_DEPTH_SYMBOL
    emit_comments: bool = True
    emit_labels: bool = True
    zero_fill: bool = True
    symbol_header: bool = False

    def __post_init__(self) -> None:
        if self.width != WORD_WIDTH:
            raise ValueError(
                f"word width is fixed at {WORD_WIDTH} bits (got {self.width})"
            )
        if self.depth < 1:
            raise ValueError(f"depth must be at least 1 (got {self.depth})")

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """
        Create an AssemblerConfig from environment variables.

        Environment variables (all optional):
            MIFASM_DEPTH: Initial depth (positive integer)
            MIFASM_SYMBOL_HEADER: Emit the symbol table header (1/true/yes/on)
            MIFASM_NO_COMMENTS: Suppress source comments (1/true/yes/on)

        Returns:
            AssemblerConfig with values from environment variables
        """
        config = cls()

        if depth := os.environ.get("MIFASM_DEPTH"):
            try:
                value = int(depth, 0)
                if value >= 1:
                    config.depth = value
            except ValueError:
                pass  # Ignore invalid values

        if _env_flag("MIFASM_SYMBOL_HEADER"):
            config.symbol_header = True

        if _env_flag("MIFASM_NO_COMMENTS"):
            config.emit_comments = False

        return config
