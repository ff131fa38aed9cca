"""
mifasm Error Hierarchy
======================

This module defines the exception hierarchy for the assembler. All
exceptions inherit from MifasmError, allowing callers to catch every
assembler-related error with a single except clause.

Exception Hierarchy
-------------------
MifasmError (base)
├── AssemblerError (problems in the source being assembled)
│   ├── AssemblySyntaxError - malformed line or invalid symbol name
│   ├── ExpressionError - expression cannot be evaluated
│   ├── UndefinedSymbolError - label referenced but never declared
│   ├── DuplicateSymbolError - constant or label defined twice
│   ├── RegisterError - operand is not a register name
│   ├── OpcodeError - unknown mnemonic
│   └── DepthError - declared depth is not usable
├── ImageError - illegal mutation of the assembly image
└── MifError - serializer called with inconsistent arguments

Severity Model
--------------
Assembly never stops at the first problem. Source errors are raised inside
the per-line handlers of the code generator and caught at the line boundary
into an ErrorCollector, together with AssemblyWarning records. The
collector's counts decide whether the run passed.

Error messages follow this format:
    filename:line: error: description
        source line text
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class MifasmError(Exception):
    """
    Base exception for all mifasm errors.

        try:
            assembler.assemble_file("program.s")
        except MifasmError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A line in a source file, used for diagnostics.

    The source language is strictly one statement per line, so a
    line number is enough to locate a problem.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        """Format as 'filename:line' for diagnostics."""
        return f"{self.filename}:{self.line}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(MifasmError):
    """
    Base exception for problems found in assembly source.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            prog.s:12: error: label 'LOPP' is not found
                mvi pc, LOPP
            hint: did you mean 'LOOP'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line:
            parts.append(f"    {self.source_line.strip()}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Malformed source line.

    Examples:
        - Label name that is not a valid symbol ("1st:")
        - Constant name that is not a valid symbol ("#define 9x 1")
    """
    pass


class ExpressionError(AssemblerError):
    """
    Error evaluating an expression.

    Raised when an immediate, data or constant expression cannot be
    evaluated, typically due to:
    - Empty expression or unbalanced parentheses
    - Malformed operand or missing operator
    - More than one unresolved label
    - A label used with '*', '/' or as the subtrahend of '-'
    - Division by zero
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a label that is never declared.

    Raised by the resolver after the scan. A single error is reported per
    missing label, listing every image address that depends on it.
    """

    def __init__(
        self,
        symbol: str,
        addresses: Optional[list[int]] = None,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.addresses = addresses or []
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        message = f"label '{symbol}' is not found"
        if self.addresses:
            listed = " ".join(f"0x{addr:x}" for addr in self.addresses)
            message += f"; it is evaluated at address(es): {listed}"

        super().__init__(message, location=location, hint=hint)


class DuplicateSymbolError(AssemblerError):
    """
    Constant or label defined more than once.

    Constants and labels live in separate namespaces, so this is only
    raised for a second constant or a second label of the same name.
    """

    def __init__(
        self,
        symbol: str,
        kind: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        value: Optional[int] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.kind = kind
        self.original_location = original_location
        self.value = value

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        message = f"{kind} '{symbol}' is already defined"
        if value is not None:
            message += f" (value={value})"

        super().__init__(
            message,
            location=location,
            hint=hint,
            source_line=source_line,
        )


class RegisterError(AssemblerError):
    """
    Operand cannot be interpreted as a register.

    Valid registers are r0-r7 and pc (an alias of r7), in any case.
    """

    def __init__(
        self,
        operands: list[str],
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.operands = operands
        quoted = " or ".join(f'"{op}"' for op in operands)
        super().__init__(
            f"failed to interpret {quoted} as register",
            location=location,
            hint="registers are r0-r7 and pc",
            source_line=source_line,
        )


class OpcodeError(AssemblerError):
    """Unknown mnemonic; a no-op word is emitted in its place."""

    def __init__(
        self,
        mnemonic: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        valid_mnemonics: Optional[list[str]] = None,
    ):
        self.mnemonic = mnemonic
        hint = None
        if valid_mnemonics:
            hint = "valid mnemonics: " + ", ".join(valid_mnemonics)
        super().__init__(
            f'invalid opcode "{mnemonic}"',
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DepthError(AssemblerError):
    """Declared depth is not a positive integer."""
    pass


# =============================================================================
# Internal Consistency Exceptions
# =============================================================================

class ImageError(MifasmError):
    """
    Illegal mutation of the assembly image.

    Only placeholder slots reserved during the scan may be patched.
    Seeing this exception means the assembler itself is broken, not the
    source being assembled.
    """
    pass


class MifError(MifasmError):
    """Serializer called with inconsistent arguments (e.g. depth too small)."""
    pass


# =============================================================================
# Diagnostic Collection
# =============================================================================

@dataclass(frozen=True)
class AssemblyWarning:
    """
    A non-fatal diagnostic.

    Attributes:
        message: The warning text
        location: Where the warning was raised (None for end-of-run checks)
    """
    message: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: warning: {self.message}"
        return f"warning: {self.message}"


class ErrorCollector:
    """
    Collects errors and warnings for batch reporting.

    The code generator keeps going after every problem so that users see
    all of them in one run. Each error is paired with a placeholder word in
    the image, so the collected counts are the only record of failure.

    Example:
        collector = ErrorCollector()
        try:
            handle_line(...)
        except AssemblerError as e:
            collector.add(e)

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self):
        self.errors: list[AssemblerError] = []
        self.warnings: list[AssemblyWarning] = []
        self._ordered: list[AssemblerError | AssemblyWarning] = []

    def add(self, error: AssemblerError) -> None:
        """Add an error to the collection."""
        self.errors.append(error)
        self._ordered.append(error)

    def add_warning(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Add a warning message."""
        warning = AssemblyWarning(message, location)
        self.warnings.append(warning)
        self._ordered.append(warning)

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Return True if any warnings have been collected."""
        return len(self.warnings) > 0

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def warning_count(self) -> int:
        """Return the number of collected warnings."""
        return len(self.warnings)

    def summary(self) -> str:
        """Return the 'N errors, M warnings' summary line."""
        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        return (
            f"{len(self.errors)} {error_word}, "
            f"{len(self.warnings)} {warning_word}"
        )

    def report(self) -> str:
        """
        Format all errors and warnings for display.

        Diagnostics appear in the order they were raised, followed by
        the summary line.
        """
        lines = [str(diagnostic) for diagnostic in self._ordered]

        lines.append(self.summary())
        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all collected errors and warnings."""
        self.errors.clear()
        self.warnings.clear()
        self._ordered.clear()
