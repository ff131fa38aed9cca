# =============================================================================
# test_codegen.py - Code Generator Tests
# =============================================================================
# Tests for the single-pass code generator: instruction encoding, label
# binding, constants, deferred label resolution and depth finalization.
#
# Test coverage includes:
#   - Word counts and encodings per instruction shape
#   - Label binding (single, multiple per line, forward references)
#   - Constants and the DEPTH override
#   - Error recovery with placeholder words
#   - Warnings (extra fields, label ordering, register-like immediates)
#   - Depth rounding
# =============================================================================

import logging

import pytest
from mifasm.assembler.codegen import CodeGenerator, next_power_of_two
from mifasm.config import AssemblerConfig
from mifasm.errors import (
    AssemblySyntaxError,
    DepthError,
    DuplicateSymbolError,
    ExpressionError,
    OpcodeError,
    RegisterError,
    UndefinedSymbolError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def generate(source: str, **config) -> CodeGenerator:
    """Assemble a source string and return the generator."""
    codegen = CodeGenerator(AssemblerConfig(**config))
    codegen.generate_source(source, "prog.s")
    return codegen


def words(source: str, **config) -> list[int]:
    """Assemble and return the image words, asserting no errors."""
    codegen = generate(source, **config)
    assert not codegen.has_errors(), codegen.get_error_report()
    return codegen.get_image().words


def error_types(codegen: CodeGenerator) -> list[type]:
    return [type(e) for e in codegen.get_errors().errors]


def warning_messages(codegen: CodeGenerator) -> list[str]:
    return [w.message for w in codegen.get_errors().warnings]


# =============================================================================
# Encoding Tests
# =============================================================================

class TestEncoding:
    """Test instruction encoding."""

    def test_register_register(self):
        """Each register-register instruction is one word."""
        source = "\n".join([
            "mv r1, r2",
            "add r0, r1",
            "sub r2, r3",
            "ld r1, r2",
            "st r3, r4",
            "mvnz pc, r1",
        ])
        assert words(source) == [0x0500, 0x4080, 0x6980, 0x8500, 0xAE00, 0xDC80]

    def test_move_immediate(self):
        """mvi is two words: opcode word and immediate."""
        assert words("mvi r0, 5") == [0x2000, 5]
        assert words("mvi r1, 0x10") == [0x2400, 0x10]

    def test_data(self):
        """#data is one word holding the value."""
        assert words("#data 0x1234") == [0x1234]

    def test_source_order(self):
        """Words appear in source order."""
        assert words("mv r1, r2\nmvi r0, 5\n#data 7") == [0x0500, 0x2000, 5, 7]

    def test_case_insensitive(self):
        """Mnemonics and registers match in any case."""
        assert words("MVI R1, 3\nMv PC, r0") == [0x2400, 3, 0x1C00]

    def test_comments_and_blank_lines(self):
        """Comments and blank lines produce nothing."""
        assert words("// header\n\n   \nmv r0, r1 // copy\n") == [0x0080]

    def test_whitespace_separators(self):
        """Operands may be separated by spaces only."""
        assert words("add r0 r1") == [0x4080]

    def test_negative_values_kept_unmasked(self):
        """Masking is left to the serializer."""
        assert words("#data 0-1") == [-1]

    def test_slot_comments(self):
        """Comments echo the instruction; the immediate word has none."""
        codegen = generate("mvi r0, 5\n#data 7")
        assert codegen.get_image().comments == ["mvi\tr0, 5", "", "#data\t7"]


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Test label binding and resolution."""

    def test_label_binds_to_next_word(self):
        """A label takes the address of the following instruction."""
        codegen = generate("mvi r0, 1\nLBL: add r0, r1")
        assert codegen.get_labels() == {"LBL": 2}

    def test_label_on_own_line(self):
        """A label on its own line binds to the next instruction."""
        codegen = generate("mv r0, r0\nnext:\n\nmv r1, r1")
        assert codegen.get_labels() == {"next": 1}

    def test_two_labels_one_line(self):
        """Labels on one line share an address."""
        codegen = generate("mv r0, r0\na: b: mv r1, r1")
        assert codegen.get_labels() == {"a": 1, "b": 1}

    def test_forward_reference(self):
        """A label may be used before it is declared."""
        assert words("mvi pc, END\nmv r0, r0\nEND: mv r1, r1") == [0x3C00, 3, 0, 0x0480]

    def test_backward_reference(self):
        """A label may be used after it is declared."""
        assert words("top: mv r0, r0\nmvi pc, top") == [0, 0x3C00, 0]

    def test_label_plus_offset(self):
        """mvi r0, LBL+4 with LBL at 10 encodes 14."""
        source = "mvi r0, LBL+4\n" + "mv r0, r0\n" * 8 + "LBL: mv r1, r1"
        codegen = generate(source)
        assert codegen.get_labels()["LBL"] == 10
        assert codegen.get_image()[1] == 14

    def test_data_label_reference(self):
        """#data may hold a label address."""
        assert words("#data table-1\n#data 0\ntable: #data 9") == [1, 0, 9]

    def test_all_references_patched(self):
        """Every use of a label is patched."""
        result = words("mvi r0, L\n#data L+1\nmvi r1, 2+L\nL: mv r0, r0")
        assert result == [0x2000, 5, 6, 0x2400, 7, 0]

    def test_patch_logging(self, caplog):
        """Applied patches are logged at DEBUG level."""
        with caplog.at_level(logging.DEBUG, logger="mifasm.assembler.codegen"):
            generate("mvi r0, L\nL: mv r0, r0")
        assert "patched 0x1" in caplog.text


# =============================================================================
# Constant Tests
# =============================================================================

class TestConstants:
    """Test #define handling."""

    def test_precedence(self):
        """#define N 3+4*2 gives 11."""
        assert generate("#define N 3+4*2").get_constants()["N"] == 11

    def test_parentheses(self):
        """#define N (3+4)*2 gives 14."""
        assert generate("#define N (3+4)*2").get_constants()["N"] == 14

    def test_constant_in_operand(self):
        """Constants are substituted immediately."""
        assert words("#define N 6\nmvi r0, N*2") == [0x2000, 12]

    def test_define_emits_no_words(self):
        """#define does not touch the image."""
        assert words("#define N 1") == []

    def test_redefinition_is_error(self):
        """The second definition fails; the first value stays."""
        codegen = generate("#define N 1\n#define N 2")
        assert error_types(codegen) == [DuplicateSymbolError]
        assert codegen.get_constants()["N"] == 1

    def test_constant_must_be_concrete(self):
        """A constant cannot depend on a label."""
        codegen = generate("L: mv r0, r0\n#define N L+1")
        assert error_types(codegen) == [ExpressionError]
        assert "N" not in codegen.get_constants()

    def test_invalid_constant_name(self):
        """Constant names follow symbol rules."""
        codegen = generate("#define 9x 1")
        assert error_types(codegen) == [AssemblySyntaxError]

    def test_constant_defined_before_label_of_same_name(self):
        """A constant defined before use wins over a label."""
        codegen = generate("#define X 5\nmvi r0, X\nX: mv r0, r0")
        assert not codegen.has_errors()
        assert codegen.get_image()[1] == 5
        assert codegen.get_labels() == {"X": 2}

    def test_constant_defined_after_use(self):
        """A use before the #define is a label reference."""
        codegen = generate("mvi r0, X\n#define X 5")
        assert error_types(codegen) == [UndefinedSymbolError]
        assert "defined after this use" in codegen.get_errors().errors[0].hint

    def test_predefined_symbol(self):
        """Symbols defined on the generator are visible to the source."""
        codegen = CodeGenerator()
        codegen.define_symbol("BASE", 16)
        codegen.generate_source("mvi r0, BASE+1")
        assert codegen.get_image().words == [0x2000, 17]


# =============================================================================
# Error Recovery Tests
# =============================================================================

class TestErrorRecovery:
    """Test that errors keep the image layout stable."""

    def test_unknown_opcode(self):
        """An unknown mnemonic emits one no-op word."""
        codegen = generate("jmp r0\nmv r1, r1")
        assert error_types(codegen) == [OpcodeError]
        assert codegen.get_image().words == [0, 0x0480]

    def test_comment_without_operands(self):
        """A statement with no operands is annotated with the bare mnemonic."""
        codegen = generate("bogus\nmv")
        comments = [entry.comment for entry in codegen.get_image().entries()]
        assert comments == ["bogus", "mv"]

    def test_bad_register(self):
        """A bad register emits one no-op word."""
        codegen = generate("mv r9, r0")
        assert error_types(codegen) == [RegisterError]
        assert codegen.get_image().words == [0]
        assert '"r9"' in str(codegen.get_errors().errors[0])

    def test_bad_mvi_register(self):
        """A bad mvi register emits two no-op words."""
        codegen = generate("mvi x, 5\nmv r1, r1")
        assert error_types(codegen) == [RegisterError]
        assert codegen.get_image().words == [0, 0, 0x0480]

    def test_bad_expression(self):
        """A failed immediate keeps both mvi words."""
        codegen = generate("mvi r0, 1+\nmv r1, r1")
        assert error_types(codegen) == [ExpressionError]
        assert codegen.get_image().words == [0x2000, 0, 0x0480]

    def test_two_undefined_symbols(self):
        """An expression with two unknown names fails."""
        codegen = generate("mvi r0, A+B")
        assert error_types(codegen) == [ExpressionError]
        assert codegen.get_image().words == [0x2000, 0]

    def test_unresolved_label(self):
        """One error per missing label, listing every dependent slot."""
        codegen = generate("mvi r0, MISSING\n#data MISSING\n#data MISSING+1")
        assert error_types(codegen) == [UndefinedSymbolError]
        error = codegen.get_errors().errors[0]
        assert error.symbol == "MISSING"
        assert error.addresses == [1, 2, 3]
        assert "0x1 0x2 0x3" in str(error)
        assert str(error).startswith("prog.s:1: error:")
        assert codegen.get_image().words == [0x2000, 0, 0, 0]

    def test_unresolved_label_suggestion(self):
        """Similar label names are suggested."""
        codegen = generate("mvi pc, LOPP\nLOOP: mv r0, r0")
        assert "did you mean 'LOOP'" in codegen.get_error_report()

    def test_duplicate_label(self):
        """A second label of the same name fails; the first stays."""
        codegen = generate("x: mv r0, r0\nx: mv r1, r1")
        assert error_types(codegen) == [DuplicateSymbolError]
        assert codegen.get_labels() == {"x": 0}
        assert codegen.get_image().label_marks == [(0, "x")]

    def test_invalid_label_name(self):
        """Invalid label names are reported; the line is still encoded."""
        codegen = generate("1x: mv r1, r1")
        assert error_types(codegen) == [AssemblySyntaxError]
        assert codegen.get_image().words == [0x0480]
        assert codegen.get_labels() == {}

    def test_errors_do_not_stop_assembly(self):
        """All problems are reported in one run."""
        codegen = generate("jmp r0\nmv r9, r0\nmvi r0, 1/0\n#define N 1\n#define N 1")
        assert codegen.get_errors().error_count() == 4


# =============================================================================
# Warning Tests
# =============================================================================

class TestWarnings:
    """Test non-fatal diagnostics."""

    def test_extra_field(self):
        """A fourth field is ignored with a warning."""
        codegen = generate("mv r0 r1 r2")
        assert warning_messages(codegen) == ['everything after "r1" is ignored']
        assert codegen.get_image().words == [0x0080]

    def test_data_third_field(self):
        """#data ignores a second operand with a warning."""
        codegen = generate("#data 1 2")
        assert warning_messages(codegen) == ['everything after "1" is ignored']
        assert codegen.get_image().words == [1]

    def test_label_at_eof(self):
        """A trailing label that labels nothing is a warning."""
        codegen = generate("mv r0, r0\nend:")
        assert not codegen.has_errors()
        assert any("EOF reached" in m for m in warning_messages(codegen))
        assert codegen.get_labels() == {"end": 1}

    def test_label_followed_by_bad_opcode(self):
        """An unknown mnemonic still labels something."""
        codegen = generate("x: jmp r0")
        assert not any("EOF reached" in m for m in warning_messages(codegen))

    def test_constant_after_label(self):
        """A #define between a label and its instruction is a warning."""
        codegen = generate("x:\n#define N 1\nmv r0, r0")
        assert warning_messages(codegen) == ["constant definition after a label"]
        assert codegen.get_labels() == {"x": 0}

    def test_register_like_immediate(self):
        """mvi r0, r1 warns about the register-like immediate."""
        codegen = generate("mvi r0, r1")
        assert any("looks like a register" in m for m in warning_messages(codegen))

    def test_warning_location(self):
        """Warnings carry the line they come from."""
        codegen = generate("mv r0, r0\nmv r0 r1 r2")
        warning = codegen.get_errors().warnings[0]
        assert str(warning).startswith("prog.s:2: warning:")


# =============================================================================
# Depth Tests
# =============================================================================

class TestDepth:
    """Test depth finalization."""

    @pytest.mark.parametrize("value, expected", [
        (0, 1), (1, 1), (2, 2), (3, 4), (8, 8), (9, 16), (129, 256),
    ])
    def test_next_power_of_two(self, value, expected):
        """Smallest power of two >= value."""
        assert next_power_of_two(value) == expected

    def test_default_depth(self):
        """Without a DEPTH define the configured depth is used."""
        assert generate("mv r0, r0").get_depth() == 128

    def test_configured_depth(self):
        """The configured depth seeds DEPTH."""
        codegen = generate("mv r0, r0", depth=32)
        assert codegen.get_depth() == 32
        assert codegen.get_constants()["DEPTH"] == 32

    def test_depth_override(self):
        """#define DEPTH overrides the configured depth."""
        assert generate("#define DEPTH 16\nmv r0, r0").get_depth() == 16

    def test_depth_override_only_once(self):
        """A second #define DEPTH is a redefinition error."""
        codegen = generate("#define DEPTH 16\n#define DEPTH 32")
        assert error_types(codegen) == [DuplicateSymbolError]
        assert codegen.get_depth() == 16

    def test_exact_fit(self):
        """An image that exactly fills depth keeps it."""
        codegen = generate("#define DEPTH 4\n" + "mv r0, r0\n" * 4)
        assert codegen.get_depth() == 4
        assert warning_messages(codegen) == []

    def test_overflow_rounds_up(self, caplog):
        """An oversized image grows depth to the next power of two."""
        with caplog.at_level(logging.INFO, logger="mifasm.assembler.codegen"):
            codegen = generate("#define DEPTH 4\n" + "mv r0, r0\n" * 5)
        assert codegen.get_depth() == 8
        assert any("greater than depth" in m for m in warning_messages(codegen))
        assert "depth changed to 8" in caplog.text

    def test_overflow_from_configured_depth(self):
        """Rounding uses the image length, not a doubling of depth."""
        codegen = generate("mv r0, r0\n" * 40, depth=2)
        assert codegen.get_depth() == 64

    def test_invalid_depth(self):
        """A non-positive DEPTH is an error and the default is used."""
        codegen = generate("#define DEPTH 0\nmv r0, r0", depth=64)
        assert error_types(codegen) == [DepthError]
        assert codegen.get_depth() == 64

    def test_width(self):
        """Width is fixed at 16."""
        assert generate("").get_width() == 16


# =============================================================================
# Session Tests
# =============================================================================

class TestSession:
    """Test run isolation."""

    def test_fresh_state_per_run(self):
        """A second run does not see the first run's symbols or errors."""
        codegen = CodeGenerator()
        codegen.generate_source("x: jmp r0\n#define N 1")
        assert codegen.has_errors()

        codegen.generate_source("x: mv r0, r0\n#define N 2")
        assert not codegen.has_errors()
        assert codegen.get_constants()["N"] == 2
        assert codegen.get_image().words == [0]

    def test_get_symbols_merges_tables(self):
        """get_symbols() holds constants and labels."""
        codegen = generate("#define N 3\nstart: mv r0, r0")
        assert codegen.get_symbols() == {"DEPTH": 128, "N": 3, "start": 0}

    def test_summary_logging(self, caplog):
        """A run summary is logged at INFO level."""
        with caplog.at_level(logging.INFO, logger="mifasm.assembler.codegen"):
            generate("mvi r0, 1")
        assert "Assembled 2 words" in caplog.text
