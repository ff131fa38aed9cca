"""
Assembly Expression Evaluator
=============================

This module evaluates the arithmetic expressions that appear in '#define',
'#data' and 'mvi' operands.

Supported Operations
--------------------
- Addition (+) and subtraction (-)
- Multiplication (*) and integer division (/, truncating toward zero)
- Grouping with parentheses

There are no unary operators: '-5' is rejected, write '0-5' instead.

Operands
--------
- Decimal numbers: 42
- Prefixed numbers: 0x2A, 0b101010, 0o52, 0d42 (prefix letter in any case)
- Constant names defined earlier with '#define'
- At most one label name

Forward References
------------------
Labels are never resolved here. A name that is not a known constant is
taken as a label reference and the whole expression must then reduce to
'label + offset'. The result is a tagged value:

- Concrete(value): the expression is fully known.
- LabelRelative(label, offset): the address of 'label' plus 'offset',
  patched in by the resolver after the scan.

Combination rules for the tagged values:

    Concrete      +-*/  Concrete       -> Concrete
    LabelRelative +     Concrete       -> LabelRelative (offset added)
    Concrete      +     LabelRelative  -> LabelRelative (offset added)
    LabelRelative -     Concrete       -> LabelRelative (offset subtracted)
    Concrete      -     LabelRelative  -> error
    any           */    LabelRelative  -> error (either side)
    LabelRelative any   LabelRelative  -> error

Algorithm
---------
Operator-precedence (shunting-yard) scan with an operand stack and an
operator stack. '(' has the lowest precedence, '+' and '-' are equal,
'*' and '/' bind tighter; all binary operators are left-associative.

Example Usage
-------------
>>> from mifasm.assembler.expressions import ExpressionEvaluator
>>> evaluator = ExpressionEvaluator({"SIZE": 8})
>>> evaluator.evaluate("(SIZE+2)*3")
Concrete(value=30)
>>> evaluator.evaluate("TABLE+SIZE-1")
LabelRelative(label='TABLE', offset=7)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Mapping, NoReturn, Optional
import string

from mifasm.errors import ExpressionError, SourceLocation
from mifasm.assembler.lexer import is_name_valid
from mifasm.cpu import is_register_name


# =============================================================================
# Tagged Values
# =============================================================================

@dataclass(frozen=True)
class Concrete:
    """A fully resolved value."""
    value: int


@dataclass(frozen=True)
class LabelRelative:
    """The address of a label (not known yet) plus a signed offset."""
    label: str
    offset: int = 0


Value = Concrete | LabelRelative


# =============================================================================
# Number Literals
# =============================================================================

RADIX_PREFIXES = {
    "x": 16,
    "b": 2,
    "o": 8,
    "d": 10,
}

_DIGIT_VALUES = {c: i for i, c in enumerate(string.digits + "abcdef")}


def parse_number(text: str) -> Optional[int]:
    """
    Parse a numeric literal.

    Literals longer than two characters that start with '0' followed by
    x, b, o or d (any case) use that radix; everything else must be a
    plain decimal number.

    Args:
        text: Literal text

    Returns:
        The value, or None if the text is not a valid literal
    """
    radix = 10
    digits = text
    if len(text) > 2 and text[0] == "0" and text[1].isalpha():
        radix = RADIX_PREFIXES.get(text[1].lower())
        if radix is None:
            return None
        digits = text[2:]

    if not digits:
        return None

    value = 0
    for char in digits.lower():
        digit = _DIGIT_VALUES.get(char)
        if digit is None or digit >= radix:
            return None
        value = value * radix + digit
    return value


# =============================================================================
# Expression Tokens
# =============================================================================

class ExprTokenType(Enum):
    """Lexical classes inside an expression."""
    OPERAND = auto()   # number or name
    PLUS = auto()      # +
    MINUS = auto()     # -
    STAR = auto()      # *
    SLASH = auto()     # /
    LPAREN = auto()    # (
    RPAREN = auto()    # )


@dataclass(frozen=True)
class ExprToken:
    type: ExprTokenType
    text: str


OPERATOR_TOKENS = {
    "+": ExprTokenType.PLUS,
    "-": ExprTokenType.MINUS,
    "*": ExprTokenType.STAR,
    "/": ExprTokenType.SLASH,
    "(": ExprTokenType.LPAREN,
    ")": ExprTokenType.RPAREN,
}

# '(' sits on the operator stack with the lowest precedence so that no
# binary operator ever pops it
PRECEDENCE = {
    ExprTokenType.LPAREN: 0,
    ExprTokenType.PLUS: 1,
    ExprTokenType.MINUS: 1,
    ExprTokenType.STAR: 2,
    ExprTokenType.SLASH: 2,
}


def tokenize_expression(text: str) -> list[ExprToken]:
    """
    Split an expression into operator and operand tokens.

    Operands are the maximal runs of characters between operators and
    whitespace; they are validated later, when they are evaluated.
    """
    tokens = []
    current = []

    def flush() -> None:
        if current:
            tokens.append(ExprToken(ExprTokenType.OPERAND, "".join(current)))
            current.clear()

    for char in text:
        if char in OPERATOR_TOKENS:
            flush()
            tokens.append(ExprToken(OPERATOR_TOKENS[char], char))
        elif char.isspace():
            flush()
        else:
            current.append(char)
    flush()

    return tokens


# =============================================================================
# Expression Evaluator
# =============================================================================

class ExpressionEvaluator:
    """
    Evaluates expressions against a constant table.

    The evaluator holds a reference to the constant table rather than a
    copy, so constants defined later in the scan are visible to later
    expressions but never to earlier ones. That is what gives constants
    precedence over labels only when they are defined before use.

    Attributes:
        constants: Mapping of constant names to values (read-only here)
    """

    def __init__(self, constants: Optional[Mapping[str, int]] = None):
        self._constants: Mapping[str, int] = constants if constants is not None else {}
        self._warnings: list[str] = []
        self._location: Optional[SourceLocation] = None

    def get_warnings(self) -> list[str]:
        """Get the warnings raised by the last evaluation."""
        return list(self._warnings)

    # =========================================================================
    # Main Evaluation Interface
    # =========================================================================

    def evaluate(
        self,
        text: str,
        location: Optional[SourceLocation] = None,
    ) -> Value:
        """
        Evaluate an expression.

        Args:
            text: Expression text
            location: Source location for error reporting

        Returns:
            Concrete or LabelRelative

        Raises:
            ExpressionError: If the expression is malformed or combines
                             a label in an unsupported way
        """
        self._warnings.clear()
        self._location = location

        tokens = tokenize_expression(text)
        if not tokens:
            raise ExpressionError("empty expression", location)

        operands: list[Value] = []
        operators: list[ExprTokenType] = []
        expect_operand = True

        for tok in tokens:
            if tok.type == ExprTokenType.OPERAND:
                if not expect_operand:
                    self._fail(f"missing operator before '{tok.text}'", text)
                value = self._operand_value(tok.text, text)
                if isinstance(value, LabelRelative):
                    self._check_single_label(value, operands, text)
                operands.append(value)
                expect_operand = False

            elif tok.type == ExprTokenType.LPAREN:
                if not expect_operand:
                    self._fail("missing operator before '('", text)
                operators.append(tok.type)

            elif tok.type == ExprTokenType.RPAREN:
                if expect_operand:
                    self._fail("missing operand before ')'", text)
                while operators and operators[-1] != ExprTokenType.LPAREN:
                    self._reduce(operands, operators.pop(), text)
                if not operators:
                    self._fail("unbalanced parentheses: unmatched ')'", text)
                operators.pop()

            else:
                if expect_operand:
                    self._fail(f"missing operand before '{tok.text}'", text)
                while operators and PRECEDENCE[operators[-1]] >= PRECEDENCE[tok.type]:
                    self._reduce(operands, operators.pop(), text)
                operators.append(tok.type)
                expect_operand = True

        if expect_operand:
            self._fail("missing operand at end of expression", text)

        while operators:
            op = operators.pop()
            if op == ExprTokenType.LPAREN:
                self._fail("unbalanced parentheses: unmatched '('", text)
            self._reduce(operands, op, text)

        # A well-formed infix sequence always reduces to a single value
        assert len(operands) == 1
        return operands[0]

    def evaluate_concrete(
        self,
        text: str,
        location: Optional[SourceLocation] = None,
    ) -> int:
        """
        Evaluate an expression that must not depend on a label.

        Raises:
            ExpressionError: If the expression is malformed or refers to
                             a name that is not a known constant
        """
        value = self.evaluate(text, location)
        if isinstance(value, LabelRelative):
            raise ExpressionError(
                f"expression \"{text}\" depends on undefined symbol '{value.label}'",
                location,
                hint="constants must be defined before they are used",
            )
        return value.value

    # =========================================================================
    # Operands
    # =========================================================================

    def _operand_value(self, operand: str, text: str) -> Value:
        """Classify and evaluate a single operand."""
        if is_register_name(operand):
            self._warnings.append(
                f"immediate expression \"{operand}\" looks like a register"
            )

        if operand[0] in string.digits:
            number = parse_number(operand)
            if number is None:
                self._fail(f"invalid number '{operand}'", text)
            return Concrete(number)

        if operand in self._constants:
            return Concrete(self._constants[operand])

        if is_name_valid(operand):
            return LabelRelative(operand)

        self._fail(f"invalid operand '{operand}'", text)

    def _check_single_label(
        self,
        value: LabelRelative,
        operands: list[Value],
        text: str,
    ) -> None:
        """Reject a second label reference while one is on the stack."""
        for other in operands:
            if isinstance(other, LabelRelative):
                if other.label == value.label:
                    self._fail(
                        f"label '{value.label}' may only appear once",
                        text,
                    )
                self._fail(
                    f"expression depends on more than one label "
                    f"('{other.label}' and '{value.label}')",
                    text,
                )

    # =========================================================================
    # Operator Application
    # =========================================================================

    def _reduce(
        self,
        operands: list[Value],
        op: ExprTokenType,
        text: str,
    ) -> None:
        """Pop two operands, apply a binary operator, push the result."""
        right = operands.pop()
        left = operands.pop()
        operands.append(self._combine(left, op, right, text))

    def _combine(self, left: Value, op: ExprTokenType, right: Value,
                 text: str) -> Value:
        """
        Apply one operator to two tagged values.

        Every (left, op, right) combination is decided here: the concrete
        cases first, then the four ways a label may be carried through,
        then rejection of everything else involving a label.
        """
        if isinstance(left, Concrete) and isinstance(right, Concrete):
            a, b = left.value, right.value
            if op == ExprTokenType.PLUS:
                return Concrete(a + b)
            if op == ExprTokenType.MINUS:
                return Concrete(a - b)
            if op == ExprTokenType.STAR:
                return Concrete(a * b)
            if b == 0:
                self._fail("division by zero", text)
            return Concrete(_divide(a, b))

        if isinstance(left, LabelRelative) and isinstance(right, LabelRelative):
            self._fail(
                f"expression depends on more than one label "
                f"('{left.label}' and '{right.label}')",
                text,
            )

        if op == ExprTokenType.PLUS:
            if isinstance(left, LabelRelative):
                return LabelRelative(left.label, left.offset + right.value)
            return LabelRelative(right.label, left.value + right.offset)

        if op == ExprTokenType.MINUS:
            if isinstance(left, LabelRelative):
                return LabelRelative(left.label, left.offset - right.value)
            self._fail(f"cannot subtract label '{right.label}'", text)

        label = left.label if isinstance(left, LabelRelative) else right.label
        self._fail(
            f"label '{label}' can only be combined by adding or "
            f"subtracting a constant",
            text,
        )

    def _fail(self, message: str, text: str) -> NoReturn:
        """Raise an ExpressionError for the current expression."""
        raise ExpressionError(
            f"invalid expression \"{text}\": {message}",
            self._location,
        )


def _divide(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate_expression(
    text: str,
    constants: Optional[Mapping[str, int]] = None,
    location: Optional[SourceLocation] = None,
) -> Value:
    """
    Convenience function to evaluate an expression.

    Args:
        text: Expression text
        constants: Constant table
        location: Source location for errors

    Returns:
        Concrete or LabelRelative
    """
    return ExpressionEvaluator(constants).evaluate(text, location)
