"""
MIF Writer
==========

Renders an assembly image as an Altera/Intel Memory Initialization File.

MIF Layout
----------
```
-- Constants: 1 in total                 (optional symbol header)
--	DEPTH	128	0x80
-- Labels: 1 in total
--	LOOP	0x2

DEPTH = 128;
WIDTH = 16;
ADDRESS_RADIX = HEX;
DATA_RADIX = HEX;
CONTENT
BEGIN
00	:	2000;	-- mvi	r0, 5
01	:	0005;
-- Label "LOOP":
02	:	0000;	-- mv	r0, r0
[03..7F]	:	0000;
END;
```

Field Widths
------------
- Addresses use as many hex digits as 'depth - 1' needs.
- Data uses (width - 1) // 4 + 1 hex digits.

Masking
-------
Word values in the image are unbounded Python ints (negative results of
'0-1' included). This is the only place where they are reduced to the word
width, so two's complement wrapping applies uniformly to immediates, data
words and patched label addresses.
"""

from typing import TYPE_CHECKING, Optional, TextIO

from mifasm.cpu import NOOP_WORD, WORD_MASK, WORD_WIDTH
from mifasm.config import AssemblerConfig
from mifasm.errors import MifError

if TYPE_CHECKING:
    from mifasm.assembler.image import AssemblyImage


class MifWriter:
    """
    MIF serializer.

    Attributes:
        width: Word width in bits
        emit_comments: Echo slot comments after each word
        emit_labels: Emit '-- Label "X":' lines
        zero_fill: Cover unused memory with a fill entry
        symbol_header: Emit constants and labels before the header
    """

    def __init__(
        self,
        width: int = WORD_WIDTH,
        emit_comments: bool = True,
        emit_labels: bool = True,
        zero_fill: bool = True,
        symbol_header: bool = False,
    ):
        self.width = width
        self.emit_comments = emit_comments
        self.emit_labels = emit_labels
        self.zero_fill = zero_fill
        self.symbol_header = symbol_header

    @classmethod
    def from_config(cls, config: AssemblerConfig) -> "MifWriter":
        """Create a writer with the output options of a configuration."""
        return cls(
            width=config.width,
            emit_comments=config.emit_comments,
            emit_labels=config.emit_labels,
            zero_fill=config.zero_fill,
            symbol_header=config.symbol_header,
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(
        self,
        image: "AssemblyImage",
        depth: int,
        constants: Optional[dict[str, int]] = None,
        labels: Optional[dict[str, int]] = None,
    ) -> str:
        """
        Render an image as MIF text.

        Args:
            image: Resolved assembly image
            depth: Memory depth in words (must hold the whole image)
            constants: Constant table, for the optional symbol header
            labels: Label table, for the optional symbol header

        Returns:
            The MIF text, ending with a newline

        Raises:
            MifError: If depth is smaller than the image
        """
        if depth < max(len(image), 1):
            raise MifError(
                f"depth {depth} cannot hold {len(image)} words"
            )

        address_width = self.address_digits(depth)
        data_width = self.data_digits()
        mask = (1 << self.width) - 1

        lines = []
        if self.symbol_header:
            lines.extend(self._symbol_header(constants or {}, labels or {}))

        lines.append(f"DEPTH = {depth};")
        lines.append(f"WIDTH = {self.width};")
        lines.append("ADDRESS_RADIX = HEX;")
        lines.append("DATA_RADIX = HEX;")
        lines.append("CONTENT")
        lines.append("BEGIN")

        marks = image.label_marks if self.emit_labels else []
        mark_index = 0

        for entry in image.entries():
            while mark_index < len(marks) and marks[mark_index][0] == entry.address:
                lines.append(f"-- Label \"{marks[mark_index][1]}\":")
                mark_index += 1

            text = (
                f"{entry.address:0{address_width}X}\t:\t"
                f"{entry.word & mask:0{data_width}X};"
            )
            if self.emit_comments and entry.comment:
                text += f"\t-- {entry.comment}"
            lines.append(text)

        # Labels declared after the last word
        for _, name in marks[mark_index:]:
            lines.append(f"-- Label \"{name}\":")

        if self.zero_fill:
            fill = self._fill_entry(len(image), depth, address_width, data_width)
            if fill:
                lines.append(fill)

        lines.append("END;")
        return "\n".join(lines) + "\n"

    def write(
        self,
        stream: TextIO,
        image: "AssemblyImage",
        depth: int,
        constants: Optional[dict[str, int]] = None,
        labels: Optional[dict[str, int]] = None,
    ) -> None:
        """Render an image and write it to an open text stream."""
        stream.write(self.render(image, depth, constants, labels))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def address_digits(depth: int) -> int:
        """Hex digits needed for the highest address."""
        return max(1, len(f"{depth - 1:X}"))

    def data_digits(self) -> int:
        """Hex digits needed for one word."""
        return (self.width - 1) // 4 + 1

    @staticmethod
    def _fill_entry(used: int, depth: int, address_width: int,
                    data_width: int) -> str:
        """Fill line for the unused tail of memory ('' if there is none)."""
        free = depth - used
        value = f"{NOOP_WORD:0{data_width}X}"
        if free <= 0:
            return ""
        if free == 1:
            return f"{used:0{address_width}X}\t:\t{value};"
        return (
            f"[{used:0{address_width}X}..{depth - 1:0{address_width}X}]"
            f"\t:\t{value};"
        )

    @staticmethod
    def _symbol_header(constants: dict[str, int],
                       labels: dict[str, int]) -> list[str]:
        """Constants (by name) and labels (by address) as MIF comments."""
        lines = [f"-- Constants: {len(constants)} in total"]
        for name, value in sorted(constants.items()):
            lines.append(f"--\t{name}\t{value}\t0x{value & WORD_MASK:x}")

        lines.append(f"-- Labels: {len(labels)} in total")
        for name, address in sorted(labels.items(), key=lambda item: (item[1], item[0])):
            lines.append(f"--\t{name}\t0x{address:x}")

        lines.append("")
        return lines


# =============================================================================
# Convenience Functions
# =============================================================================

def render_mif(image: "AssemblyImage", depth: int, width: int = WORD_WIDTH) -> str:
    """Render an image with default output options."""
    return MifWriter(width=width).render(image, depth)
