"""
Code Generator
==============

This module turns scanned source lines into an assembly image. Unlike a
classic two-pass assembler, it reads the source exactly once:

Scan
----
- Bind label declarations to the current image length
- Evaluate '#define' constants immediately
- Encode instructions and '#data' words, appending them to the image
- For operands that depend on a label, reserve a placeholder word and
  record a patch request in the pending-reference ledger

Resolve
-------
- For every label in the ledger, write 'label address + offset' into each
  of its placeholder slots
- Labels that were never declared are reported once each, with the list
  of addresses that depend on them; their slots stay zero

Finalize
--------
- Compare the image length with the declared depth (the DEPTH constant)
  and round the depth up to a power of two if the image does not fit

Every problem is recorded in an ErrorCollector and paired with a
deterministic placeholder word, so the image always has the same layout
whether or not the source is correct.

Usage:
    codegen = CodeGenerator()
    image = codegen.generate(scan_source(source, "prog.s"))
    depth = codegen.get_depth()
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional
import logging

from mifasm.config import AssemblerConfig
from mifasm.cpu import (
    NOOP_WORD,
    MNEMONICS,
    InstructionInfo,
    OperandShape,
    get_instruction_info,
    lookup_register,
    encode_register_pair,
    encode_register_immediate,
)
from mifasm.errors import (
    AssemblerError,
    AssemblySyntaxError,
    DepthError,
    DuplicateSymbolError,
    ErrorCollector,
    ExpressionError,
    OpcodeError,
    RegisterError,
    UndefinedSymbolError,
)
from mifasm.assembler.lexer import SourceLine, is_name_valid, scan_source
from mifasm.assembler.expressions import ExpressionEvaluator, LabelRelative, Value
from mifasm.assembler.image import AssemblyImage
from mifasm.assembler.symbols import PendingReferences, Symbol, SymbolTable


logger = logging.getLogger(__name__)

DEFINE_DIRECTIVE = "#define"


def next_power_of_two(value: int) -> int:
    """Smallest power of two that is >= value (1 for value <= 1)."""
    if value <= 1:
        return 1
    return 1 << (value - 1).bit_length()


# =============================================================================
# Assembly Session
# =============================================================================

@dataclass
class AssemblySession:
    """
    All mutable state of one assembly run.

    A fresh session is created by every CodeGenerator.generate() call and
    nothing in it is shared between runs.

    Attributes:
        symbols: Constants and labels
        image: Emitted words and comments
        pending: Label references waiting for the resolver
        errors: Collected errors and warnings
        evaluator: Expression evaluator bound to the constant table
        depth: Effective depth, set by depth finalization
        label_unfollowed: True while the last declared label has not yet
                          been followed by an instruction or data line
    """
    symbols: SymbolTable
    image: AssemblyImage = field(default_factory=AssemblyImage)
    pending: PendingReferences = field(default_factory=PendingReferences)
    errors: ErrorCollector = field(default_factory=ErrorCollector)
    evaluator: Optional[ExpressionEvaluator] = None
    depth: int = 0
    label_unfollowed: bool = False

    def __post_init__(self) -> None:
        if self.evaluator is None:
            self.evaluator = ExpressionEvaluator(self.symbols.constant_values)


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Single-pass code generator with deferred label resolution.

    Attributes:
        config: Assembly configuration (depth, depth symbol name)
    """

    def __init__(self, config: Optional[AssemblerConfig] = None):
        self._config = config or AssemblerConfig()
        self._predefined: dict[str, int] = {}
        self._session = self._new_session()

    # =========================================================================
    # Public Interface
    # =========================================================================

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    def define_symbol(self, name: str, value: int) -> None:
        """
        Pre-define a constant for every following run.

        Predefined constants behave like '#define' lines placed before the
        source, except that defining the depth symbol here only changes
        its initial value.
        """
        self._predefined[name] = value

    def generate(self, lines: Iterable[SourceLine]) -> AssemblyImage:
        """
        Assemble scanned lines into an image.

        Errors never abort the run; check has_errors() afterwards.

        Args:
            lines: Scanned source lines, in order

        Returns:
            The resolved assembly image
        """
        self._session = self._new_session()
        session = self._session

        for line in lines:
            self._process_line(line)

        if session.label_unfollowed:
            session.errors.add_warning(
                "EOF reached; the last label is not labeling any instruction"
            )

        self._resolve()
        self._finalize_depth()

        logger.info(
            f"Assembled {len(session.image)} words "
            f"({len(session.symbols.labels())} labels, "
            f"{len(session.symbols.constants())} constants), depth {session.depth}"
        )
        return session.image

    def generate_source(self, source: str, filename: str = "<input>") -> AssemblyImage:
        """Scan and assemble a complete source text."""
        return self.generate(scan_source(source, filename))

    def get_image(self) -> AssemblyImage:
        """Return the image of the last run."""
        return self._session.image

    def get_depth(self) -> int:
        """Return the effective depth of the last run."""
        return self._session.depth

    def get_width(self) -> int:
        return self._config.width

    def get_constants(self) -> dict[str, int]:
        return self._session.symbols.constants()

    def get_labels(self) -> dict[str, int]:
        return self._session.symbols.labels()

    def get_symbols(self) -> dict[str, int]:
        """Return constants and labels; a label shadows a constant of the same name."""
        symbols = self._session.symbols.constants()
        symbols.update(self._session.symbols.labels())
        return symbols

    def get_symbol_entries(self) -> list[Symbol]:
        return self._session.symbols.symbols()

    def get_errors(self) -> ErrorCollector:
        return self._session.errors

    def has_errors(self) -> bool:
        """Check if any errors occurred during assembly."""
        return self._session.errors.has_errors()

    def get_error_report(self) -> str:
        """Get formatted error report."""
        return self._session.errors.report()

    # =========================================================================
    # Session Setup
    # =========================================================================

    def _new_session(self) -> AssemblySession:
        depth_symbol = self._config.depth_symbol
        symbols = SymbolTable(overridable=[depth_symbol])
        symbols.predefine_constant(depth_symbol, self._config.depth)
        for name, value in self._predefined.items():
            symbols.predefine_constant(name, value)
        return AssemblySession(symbols=symbols, depth=self._config.depth)

    # =========================================================================
    # Scan
    # =========================================================================

    def _process_line(self, line: SourceLine) -> None:
        """Handle one source line: labels first, then the statement."""
        session = self._session
        self._define_labels(line)

        if line.is_empty:
            return

        kept = self._field_count(line.mnemonic)
        if len(line.fields) + len(line.extra) > kept:
            session.errors.add_warning(
                f"everything after \"{line.fields[kept - 1]}\" is ignored",
                line.location,
            )

        try:
            if line.mnemonic == DEFINE_DIRECTIVE:
                self._define_constant(line)
            else:
                # Any instruction line emits at least one word, so the
                # pending label now labels something
                session.label_unfollowed = False
                self._encode_instruction(line)
        except AssemblerError as e:
            session.errors.add(e)

    @staticmethod
    def _field_count(mnemonic: str) -> int:
        """Number of meaningful fields (mnemonic included) for a statement."""
        info = get_instruction_info(mnemonic)
        if info is not None and info.shape == OperandShape.DATA:
            return 2
        return 3

    def _define_labels(self, line: SourceLine) -> None:
        """Bind every label declared on the line to the current address."""
        session = self._session
        for name in line.labels:
            if not is_name_valid(name):
                session.errors.add(AssemblySyntaxError(
                    f"invalid label name \"{name}\"",
                    line.location,
                    hint="names use letters, digits and '_' and cannot start with a digit",
                    source_line=line.text,
                ))
                continue

            try:
                session.symbols.define_label(
                    name, len(session.image), line.location
                )
            except DuplicateSymbolError as e:
                session.errors.add(e)
                continue

            session.image.mark_label(name)
            session.label_unfollowed = True

    def _define_constant(self, line: SourceLine) -> None:
        """Handle '#define NAME EXPR'."""
        session = self._session
        name, expression = line.operand1, line.operand2

        if not is_name_valid(name):
            raise AssemblySyntaxError(
                f"constant name \"{name}\" is invalid",
                line.location,
                source_line=line.text,
            )

        try:
            value = session.evaluator.evaluate_concrete(expression, line.location)
        finally:
            self._collect_evaluator_warnings(line)

        session.symbols.define_constant(name, value, line.location)

        if session.label_unfollowed:
            session.errors.add_warning(
                "constant definition after a label", line.location
            )

    # =========================================================================
    # Instruction Encoding
    # =========================================================================

    def _encode_instruction(self, line: SourceLine) -> None:
        """Dispatch on the mnemonic and append the encoded words."""
        info = get_instruction_info(line.mnemonic)

        if info is None:
            self._session.image.append(NOOP_WORD, self._format_comment(line, 2))
            raise OpcodeError(
                line.mnemonic,
                line.location,
                source_line=line.text,
                valid_mnemonics=MNEMONICS,
            )

        if info.shape == OperandShape.REGISTER_REGISTER:
            self._encode_register_pair(line, info)
        elif info.shape == OperandShape.REGISTER_IMMEDIATE:
            self._encode_move_immediate(line, info)
        else:
            self._encode_data(line)

    def _encode_register_pair(self, line: SourceLine, info: InstructionInfo) -> None:
        """mv/add/sub/ld/st/mvnz rx, ry: one word."""
        image = self._session.image
        comment = self._format_comment(line, 2)
        rx = lookup_register(line.operand1)
        ry = lookup_register(line.operand2)

        if rx is None or ry is None:
            image.append(NOOP_WORD, comment)
            bad = [op for op, reg in ((line.operand1, rx), (line.operand2, ry))
                   if reg is None]
            raise RegisterError(bad, line.location, source_line=line.text)

        image.append(encode_register_pair(info.opcode, rx, ry), comment)

    def _encode_move_immediate(self, line: SourceLine, info: InstructionInfo) -> None:
        """mvi rx, EXPR: opcode word followed by the immediate word."""
        image = self._session.image
        comment = self._format_comment(line, 2)
        rx = lookup_register(line.operand1)

        if rx is None:
            for _ in range(info.size):
                image.append(NOOP_WORD, comment)
                comment = ""
            raise RegisterError([line.operand1], line.location, source_line=line.text)

        image.append(encode_register_immediate(info.opcode, rx), comment)
        self._emit_value(line.operand2, line, "")

    def _encode_data(self, line: SourceLine) -> None:
        """#data EXPR: one word holding the value."""
        self._emit_value(line.operand1, line, self._format_comment(line, 1))

    def _emit_value(self, expression: str, line: SourceLine, comment: str) -> None:
        """
        Append one word holding the value of an expression.

        A label-dependent value reserves a placeholder and registers a
        patch request. A failed evaluation still appends a zero word.
        """
        session = self._session
        try:
            value = self._evaluate(expression, line)
        except ExpressionError:
            session.image.append(NOOP_WORD, comment)
            raise

        if isinstance(value, LabelRelative):
            slot = session.image.reserve(comment)
            session.pending.add(value.label, slot, value.offset, line.location)
        else:
            session.image.append(value.value, comment)

    def _evaluate(self, expression: str, line: SourceLine) -> Value:
        try:
            return self._session.evaluator.evaluate(expression, line.location)
        finally:
            self._collect_evaluator_warnings(line)

    def _collect_evaluator_warnings(self, line: SourceLine) -> None:
        for message in self._session.evaluator.get_warnings():
            self._session.errors.add_warning(message, line.location)

    @staticmethod
    def _format_comment(line: SourceLine, operand_count: int) -> str:
        """Source annotation: mnemonic, tab, then the operands."""
        operands = [op for op in line.fields[1:1 + operand_count] if op]
        if not operands:
            return line.mnemonic
        return f"{line.mnemonic}\t" + ", ".join(operands)

    # =========================================================================
    # Resolve
    # =========================================================================

    def _resolve(self) -> None:
        """Apply every pending patch request against the label table."""
        session = self._session

        for label, requests in session.pending.items():
            address = session.symbols.get_label(label)

            if address is None:
                hint = None
                if session.symbols.has_constant(label):
                    hint = (
                        f"constant '{label}' is defined after this use; "
                        f"move the #define above it"
                    )
                session.errors.add(UndefinedSymbolError(
                    label,
                    addresses=[request.slot for request in requests],
                    location=requests[0].location,
                    hint=hint,
                    similar_symbols=session.symbols.find_similar(label),
                ))
                continue

            for request in requests:
                session.image.patch(request.slot, address + request.offset)
                logger.debug(
                    f"patched 0x{request.slot:x} = {label}{request.offset:+d} "
                    f"({address + request.offset})"
                )

    # =========================================================================
    # Finalize
    # =========================================================================

    def _finalize_depth(self) -> None:
        """Settle the effective depth so that the whole image fits."""
        session = self._session
        depth_symbol = self._config.depth_symbol
        depth = session.symbols.get_constant(depth_symbol)

        if depth is None or depth < 1:
            session.errors.add(DepthError(
                f"depth {depth} is not a positive integer",
                hint=f"using the default depth {self._config.depth}",
            ))
            depth = self._config.depth

        size = len(session.image)
        if size > depth:
            session.errors.add_warning(
                f"size of assembly ({size}) is greater than depth ({depth}) can store"
            )
            depth = next_power_of_two(size)
            logger.info(f"depth changed to {depth}")

        session.depth = depth
