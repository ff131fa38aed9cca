"""
Assembly Image
==============

The image is the assembler's output payload: an ordered, append-only list
of words indexed by address, with one comment per word and a list of label
annotations.

Words are only ever appended during the scan. The one exception is the
resolver, which writes label addresses into placeholder slots that were
reserved with reserve() while the label was still unknown. Patching any
other slot raises ImageError.

Values are stored as plain Python ints and are not masked here; the
serializer reduces them to the word width.
"""

from dataclasses import dataclass
from typing import Iterator

from mifasm.cpu import NOOP_WORD
from mifasm.errors import ImageError


@dataclass(frozen=True)
class ImageEntry:
    """One word of the image, as seen by the serializer."""
    address: int
    word: int
    comment: str


class AssemblyImage:
    """
    Append-only word arena with parallel comments.

    Usage:
        image = AssemblyImage()
        image.append(0x2000, "mvi r0, LOOP")
        slot = image.reserve()
        ...
        image.patch(slot, 0x0004)
    """

    def __init__(self):
        self._words: list[int] = []
        self._comments: list[str] = []
        self._placeholders: set[int] = set()
        self._label_marks: list[tuple[int, str]] = []

    # =========================================================================
    # Building
    # =========================================================================

    def append(self, word: int, comment: str = "") -> int:
        """
        Append a word.

        Args:
            word: Word value (unmasked)
            comment: Source annotation for this word

        Returns:
            The address of the new word
        """
        self._words.append(word)
        self._comments.append(comment)
        return len(self._words) - 1

    def reserve(self, comment: str = "", value: int = NOOP_WORD) -> int:
        """
        Append a placeholder word that the resolver may patch later.

        Returns:
            The address of the placeholder
        """
        slot = self.append(value, comment)
        self._placeholders.add(slot)
        return slot

    def patch(self, slot: int, value: int) -> None:
        """
        Overwrite a reserved placeholder.

        Raises:
            ImageError: If the slot was not reserved
        """
        if slot not in self._placeholders:
            raise ImageError(f"slot {slot} is not a reserved placeholder")
        self._words[slot] = value

    def mark_label(self, name: str) -> int:
        """
        Record a label annotation at the current end of the image.

        Returns:
            The address the label annotates
        """
        address = len(self._words)
        self._label_marks.append((address, name))
        return address

    # =========================================================================
    # Access
    # =========================================================================

    def __len__(self) -> int:
        return len(self._words)

    def __getitem__(self, address: int) -> int:
        return self._words[address]

    def __iter__(self) -> Iterator[int]:
        return iter(self._words)

    @property
    def words(self) -> list[int]:
        """Copy of the word list."""
        return list(self._words)

    @property
    def comments(self) -> list[str]:
        """Copy of the comment list (parallel to words)."""
        return list(self._comments)

    @property
    def label_marks(self) -> list[tuple[int, str]]:
        """(address, label name) annotations in declaration order."""
        return list(self._label_marks)

    def is_placeholder(self, slot: int) -> bool:
        return slot in self._placeholders

    def entries(self) -> Iterator[ImageEntry]:
        """Iterate over (address, word, comment) entries."""
        for address, (word, comment) in enumerate(zip(self._words, self._comments)):
            yield ImageEntry(address, word, comment)
