"""
Assembly Line Processor
=======================

This module splits assembly source into lines and each line into its
label declarations and up to three fields. The language is strictly one
statement per line, so there is no token stream; the parser-level work
(dispatch on the mnemonic) happens in the code generator.

Line Anatomy
------------
    LOOP: NEXT:  mvi  r0, COUNT+1   // comment
    \\__________/ \\_/  \\_/ \\_____/    \\________/
       labels    mnem op1   op2       stripped

Processing order for each physical line:

1. Strip the line terminator ('\\n', '\\r').
2. Cut everything from '//' to the end of the line.
3. Peel label declarations: while the line contains ':', the text before
   it (trimmed) is a label name.
4. Replace ',' by whitespace; commas and whitespace are interchangeable.
5. Split into fields. The first three are kept (mnemonic, operand1,
   operand2); anything after that is reported and discarded.

Because fields are separated by whitespace, expressions must not contain
spaces: 'mvi r0, A + B' is read as operand2 = 'A' with '+' and 'B' extra.

Example
-------
>>> from mifasm.assembler.lexer import scan_line
>>> line = scan_line("start: mvi r0, 0x10 // init", 1)
>>> line.labels, line.mnemonic, line.operand1, line.operand2
(['start'], 'mvi', 'r0', '0x10')
"""

from dataclasses import dataclass, field
from typing import Iterator
import string

from mifasm.errors import SourceLocation


COMMENT_MARKER = "//"
LABEL_MARKER = ":"
MAX_FIELDS = 3

_NAME_START = frozenset(string.ascii_letters + "_")
_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")


# =============================================================================
# Symbol Names
# =============================================================================

def is_name_valid(name: str) -> bool:
    """
    Check if a string is a valid symbol name.

    A valid name is non-empty, made of ASCII letters, digits and
    underscores, and does not start with a digit.
    """
    if not name or name[0] not in _NAME_START:
        return False
    return all(c in _NAME_CHARS for c in name)


# =============================================================================
# Scanned Line
# =============================================================================

@dataclass
class SourceLine:
    """
    One scanned source line.

    Attributes:
        location: File and line number
        text: The physical line without its terminator
        labels: Label names declared on the line, in order (not validated)
        fields: Up to three fields: mnemonic, operand1, operand2
        extra: Fields beyond the third, which are ignored
    """
    location: SourceLocation
    text: str
    labels: list[str] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when there is no statement after labels and comments."""
        return not self.fields

    @property
    def mnemonic(self) -> str:
        """Lower-cased first field, or '' for an empty statement."""
        return self.fields[0].lower() if self.fields else ""

    @property
    def operand1(self) -> str:
        return self.fields[1] if len(self.fields) > 1 else ""

    @property
    def operand2(self) -> str:
        return self.fields[2] if len(self.fields) > 2 else ""

    @property
    def last_field(self) -> str:
        """The last kept field, used when reporting ignored text."""
        return self.fields[-1] if self.fields else ""


# =============================================================================
# Scanner
# =============================================================================

def strip_comment(text: str) -> str:
    """Remove a '//' comment and everything after it."""
    start = text.find(COMMENT_MARKER)
    if start >= 0:
        return text[:start]
    return text


def peel_labels(text: str) -> tuple[list[str], str]:
    """
    Split leading 'name:' declarations off a comment-free line.

    Returns:
        (label names, remaining text)
    """
    labels = []
    while LABEL_MARKER in text:
        name, _, text = text.partition(LABEL_MARKER)
        labels.append(name.strip())
    return labels, text


def split_fields(text: str) -> tuple[list[str], list[str]]:
    """
    Split the statement part of a line into kept and extra fields.

    Returns:
        (first three fields, remaining fields)
    """
    tokens = text.replace(",", " ").split()
    return tokens[:MAX_FIELDS], tokens[MAX_FIELDS:]


def scan_line(text: str, line_number: int,
              filename: str = "<input>") -> SourceLine:
    """
    Scan one physical line.

    Args:
        text: Line text, with or without its terminator
        line_number: 1-indexed line number
        filename: Source name for diagnostics

    Returns:
        The scanned SourceLine
    """
    text = text.rstrip("\n").rstrip("\r")
    labels, rest = peel_labels(strip_comment(text))
    fields, extra = split_fields(rest)
    return SourceLine(
        location=SourceLocation(filename, line_number),
        text=text,
        labels=labels,
        fields=fields,
        extra=extra,
    )


def scan_source(source: str, filename: str = "<input>") -> Iterator[SourceLine]:
    """
    Scan a whole source text line by line.

    Args:
        source: Complete source text
        filename: Source name for diagnostics

    Yields:
        One SourceLine per physical line, including empty ones
    """
    for number, text in enumerate(source.split("\n"), start=1):
        yield scan_line(text, number, filename)
