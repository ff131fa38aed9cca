# =============================================================================
# test_expressions.py - Expression Evaluator Unit Tests
# =============================================================================
# Tests for the assembler expression evaluator.
#
# Test coverage includes:
#   - Numeric literals in all radixes
#   - Operator precedence and parentheses
#   - Truncating division
#   - Constant lookup
#   - Label-relative results and the single-label rule
#   - Malformed expressions
#   - Register-name warnings
# =============================================================================

import pytest
from mifasm.assembler.expressions import (
    Concrete,
    ExpressionEvaluator,
    LabelRelative,
    evaluate_expression,
    parse_number,
    tokenize_expression,
    ExprTokenType,
)
from mifasm.errors import ExpressionError, SourceLocation


# =============================================================================
# Helper Functions
# =============================================================================

def evaluate(text: str, constants: dict = None):
    """Evaluate an expression against an optional constant table."""
    return ExpressionEvaluator(constants or {}).evaluate(text)


# =============================================================================
# Number Literal Tests
# =============================================================================

class TestParseNumber:
    """Test numeric literal parsing."""

    @pytest.mark.parametrize("text, value", [
        ("0", 0),
        ("42", 42),
        ("09", 9),
        ("0x2A", 42),
        ("0X1f", 31),
        ("0b101", 5),
        ("0B11", 3),
        ("0o17", 15),
        ("0d99", 99),
    ])
    def test_valid_literals(self, text, value):
        """Decimal and prefixed literals."""
        assert parse_number(text) == value

    @pytest.mark.parametrize("text", ["0x", "0b2", "0o8", "12a", "0xG1", "0z12", "1_000"])
    def test_invalid_literals(self, text):
        """Out-of-radix digits and unknown prefixes are rejected."""
        assert parse_number(text) is None


# =============================================================================
# Tokenizer Tests
# =============================================================================

class TestTokenizer:
    """Test expression tokenization."""

    def test_operators_split_operands(self):
        """Operators need no surrounding whitespace."""
        tokens = tokenize_expression("(A+0x10)*2")
        assert [t.text for t in tokens] == ["(", "A", "+", "0x10", ")", "*", "2"]
        assert tokens[0].type == ExprTokenType.LPAREN
        assert tokens[1].type == ExprTokenType.OPERAND

    def test_empty(self):
        """An empty string has no tokens."""
        assert tokenize_expression("") == []


# =============================================================================
# Arithmetic Tests
# =============================================================================

class TestArithmetic:
    """Test fully concrete expressions."""

    def test_single_number(self):
        """A literal evaluates to itself."""
        assert evaluate("7") == Concrete(7)

    def test_precedence(self):
        """Multiplication binds tighter than addition."""
        assert evaluate("3+4*2") == Concrete(11)

    def test_parentheses(self):
        """Parentheses override precedence."""
        assert evaluate("(3+4)*2") == Concrete(14)

    def test_left_associative_subtraction(self):
        """Subtraction groups to the left."""
        assert evaluate("10-4-3") == Concrete(3)

    def test_left_associative_division(self):
        """Division groups to the left."""
        assert evaluate("100/10/5") == Concrete(2)

    def test_division_truncates(self):
        """Integer division drops the fraction."""
        assert evaluate("20/3") == Concrete(6)

    def test_division_truncates_toward_zero(self):
        """Negative quotients round toward zero, not down."""
        assert evaluate("(0-7)/2") == Concrete(-3)

    def test_negative_result_is_not_masked(self):
        """The evaluator keeps unbounded values."""
        assert evaluate("0-1") == Concrete(-1)
        assert evaluate("0x10000+1") == Concrete(0x10001)

    def test_nested_parentheses(self):
        """Nested groups evaluate inside out."""
        assert evaluate("((1+2)*(3+4))-1") == Concrete(20)

    def test_whitespace_is_allowed(self):
        """Whitespace inside an expression separates tokens."""
        assert evaluate("1 + 2") == Concrete(3)

    def test_mixed_radix(self):
        """Literals of different radixes combine."""
        assert evaluate("0x10+0b1+0o10") == Concrete(25)


# =============================================================================
# Constant Tests
# =============================================================================

class TestConstants:
    """Test constant lookup."""

    def test_constant_value(self):
        """Known constants evaluate to their value."""
        assert evaluate("N*2", {"N": 5}) == Concrete(10)

    def test_constants_are_case_sensitive(self):
        """'n' is not the constant 'N'."""
        assert evaluate("n", {"N": 5}) == LabelRelative("n")

    def test_live_constant_table(self):
        """The evaluator sees constants added after it was created."""
        constants = {}
        evaluator = ExpressionEvaluator(constants)
        assert evaluator.evaluate("K") == LabelRelative("K")
        constants["K"] = 3
        assert evaluator.evaluate("K") == Concrete(3)

    def test_evaluate_concrete(self):
        """evaluate_concrete returns a plain int."""
        evaluator = ExpressionEvaluator({"N": 4})
        assert evaluator.evaluate_concrete("N+1") == 5

    def test_evaluate_concrete_rejects_label(self):
        """evaluate_concrete fails on an unknown name."""
        with pytest.raises(ExpressionError, match="undefined symbol 'L'"):
            ExpressionEvaluator().evaluate_concrete("L+1")


# =============================================================================
# Label-Relative Tests
# =============================================================================

class TestLabelRelative:
    """Test expressions that depend on one label."""

    def test_bare_label(self):
        """A lone name is a label with offset 0."""
        assert evaluate("LOOP") == LabelRelative("LOOP", 0)

    def test_label_plus_constant(self):
        """A constant added after the label becomes its offset."""
        assert evaluate("LBL+4") == LabelRelative("LBL", 4)

    def test_constant_plus_label(self):
        """Addition is accepted on either side."""
        assert evaluate("4+LBL") == LabelRelative("LBL", 4)

    def test_label_minus_constant(self):
        """Subtracting from a label gives a negative offset."""
        assert evaluate("LBL-1") == LabelRelative("LBL", -1)

    def test_offset_expression(self):
        """The offset may itself be computed."""
        assert evaluate("LBL+2*3", {}) == LabelRelative("LBL", 6)
        assert evaluate("(LBL+1)+N", {"N": 2}) == LabelRelative("LBL", 3)

    def test_label_in_offset_group(self):
        """A label can sit inside parentheses."""
        assert evaluate("(10-3)+(LBL)") == LabelRelative("LBL", 7)


# =============================================================================
# Error Tests
# =============================================================================

class TestErrors:
    """Test malformed expressions."""

    @pytest.mark.parametrize("text", [
        "A+B",       # two labels
        "L+L",       # one label twice
        "L*2",       # label in multiplication
        "2*L",
        "L/2",       # label in division
        "1-L",       # subtracted label
        "",          # empty
        "(1+2",      # unbalanced
        "1+2)",
        "()",
        "1+",        # missing operand
        "+1",
        "-1",        # no unary minus
        "1 2",       # missing operator
        "2(3)",
        "1/0",       # division by zero
        "1$",        # invalid operand
        "0x",        # invalid number
        "9abc",
    ])
    def test_rejected(self, text):
        """Every malformed expression raises ExpressionError."""
        with pytest.raises(ExpressionError):
            evaluate(text)

    def test_two_labels_message(self):
        """The error names both labels."""
        with pytest.raises(ExpressionError, match="more than one label"):
            evaluate("A+B")

    def test_division_by_zero_message(self):
        """Division by zero is reported as such."""
        with pytest.raises(ExpressionError, match="division by zero"):
            evaluate("4/(2-2)")

    def test_error_location(self):
        """Errors carry the location passed in."""
        evaluator = ExpressionEvaluator()
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("1+", SourceLocation("prog.s", 3))
        assert exc_info.value.location == SourceLocation("prog.s", 3)
        assert "prog.s:3: error:" in str(exc_info.value)


# =============================================================================
# Warning Tests
# =============================================================================

class TestWarnings:
    """Test register-name warnings."""

    def test_register_name_warns(self):
        """A register name in an expression is suspicious."""
        evaluator = ExpressionEvaluator()
        result = evaluator.evaluate("r1")
        assert result == LabelRelative("r1")
        assert len(evaluator.get_warnings()) == 1
        assert "looks like a register" in evaluator.get_warnings()[0]

    def test_pc_warns(self):
        """pc is a register name too, in any case."""
        evaluator = ExpressionEvaluator()
        evaluator.evaluate("PC+1")
        assert len(evaluator.get_warnings()) == 1

    def test_warnings_reset(self):
        """Each evaluation starts with no warnings."""
        evaluator = ExpressionEvaluator()
        evaluator.evaluate("r1")
        evaluator.evaluate("5")
        assert evaluator.get_warnings() == []


# =============================================================================
# Convenience Function Tests
# =============================================================================

class TestEvaluateExpression:
    """Test the module-level helper."""

    def test_evaluate_expression(self):
        """evaluate_expression builds a one-off evaluator."""
        assert evaluate_expression("N+1", {"N": 1}) == Concrete(2)
        assert evaluate_expression("X") == LabelRelative("X")
