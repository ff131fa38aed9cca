"""
Symbol Table and Pending References
===================================

Constants and labels are kept in two separate, append-only namespaces:

- Constants come from '#define' and resolve immediately. A name may be
  defined only once, except the reserved depth constant, which is
  predefined from configuration and may be overridden once by the source.
- Labels come from 'name:' declarations and resolve to the image length at
  the point of declaration. Several labels may share an address.

The two namespaces may contain the same name. Which one an operand refers
to is decided by the expression evaluator at the time of use: a constant
wins if it is already defined, otherwise the name is a label reference.

Label references are never resolved during the scan. Each one becomes a
PatchRequest in the PendingReferences ledger, keyed by label name, and the
resolver applies them once the whole file has been read.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional
import logging

from mifasm.errors import DuplicateSymbolError, SourceLocation


logger = logging.getLogger(__name__)

PREDEFINED_LOCATION = SourceLocation("<predefined>", 0)


# =============================================================================
# Symbol Entries
# =============================================================================

@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Symbol name (case-sensitive)
        value: Constant value or label address
        location: Where the symbol was defined
        is_constant: True for '#define' constants, False for labels
    """
    name: str
    value: int
    location: SourceLocation
    is_constant: bool = False


@dataclass(frozen=True)
class PatchRequest:
    """
    A deferred write of 'label address + offset' into an image slot.

    Attributes:
        slot: Index of the placeholder word in the image
        offset: Signed offset added to the label address
        location: Source line that made the reference
    """
    slot: int
    offset: int
    location: Optional[SourceLocation] = None


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Constants and labels of one assembly run.

    Attributes:
        overridable: Names of predefined constants that the source may
                     redefine once
    """

    def __init__(self, overridable: Iterable[str] = ()):
        self._constants: dict[str, Symbol] = {}
        self._constant_values: dict[str, int] = {}
        self._labels: dict[str, Symbol] = {}
        self._overridable: set[str] = set(overridable)

    # =========================================================================
    # Constants
    # =========================================================================

    def predefine_constant(self, name: str, value: int) -> None:
        """Seed a constant before the scan (configuration or CLI)."""
        self._store_constant(Symbol(name, value, PREDEFINED_LOCATION, True))

    def define_constant(self, name: str, value: int,
                        location: Optional[SourceLocation] = None) -> None:
        """
        Define a constant from source.

        Raises:
            DuplicateSymbolError: If the constant already exists and is not
                                  an overridable predefined constant
        """
        existing = self._constants.get(name)
        if existing is not None:
            if name not in self._overridable:
                raise DuplicateSymbolError(
                    name,
                    "constant",
                    location=location,
                    original_location=existing.location,
                    value=existing.value,
                )
            self._overridable.discard(name)
            logger.debug(
                f"constant '{name}' overridden: {existing.value} -> {value}"
            )

        self._store_constant(Symbol(name, value, location or PREDEFINED_LOCATION, True))
        logger.debug(f"constant '{name}' = {value}")

    def _store_constant(self, symbol: Symbol) -> None:
        self._constants[symbol.name] = symbol
        self._constant_values[symbol.name] = symbol.value

    def get_constant(self, name: str) -> Optional[int]:
        """Look up a constant's value."""
        return self._constant_values.get(name)

    def has_constant(self, name: str) -> bool:
        return name in self._constant_values

    @property
    def constant_values(self) -> Mapping[str, int]:
        """
        Live, read-only view of constant values.

        The expression evaluator keeps this mapping, so it always sees
        exactly the constants defined so far.
        """
        return self._constant_values

    # =========================================================================
    # Labels
    # =========================================================================

    def define_label(self, name: str, address: int,
                     location: Optional[SourceLocation] = None) -> None:
        """
        Bind a label to an image address.

        Raises:
            DuplicateSymbolError: If the label already exists
        """
        existing = self._labels.get(name)
        if existing is not None:
            raise DuplicateSymbolError(
                name,
                "label",
                location=location,
                original_location=existing.location,
                value=existing.value,
            )
        self._labels[name] = Symbol(name, address, location or PREDEFINED_LOCATION)
        logger.debug(f"label '{name}' = {address}")

    def get_label(self, name: str) -> Optional[int]:
        """Look up a label's address."""
        symbol = self._labels.get(name)
        return symbol.value if symbol else None

    def has_label(self, name: str) -> bool:
        return name in self._labels

    # =========================================================================
    # Views
    # =========================================================================

    def constants(self) -> dict[str, int]:
        """Return constant names and values in definition order."""
        return dict(self._constant_values)

    def labels(self) -> dict[str, int]:
        """Return label names and addresses in declaration order."""
        return {name: sym.value for name, sym in self._labels.items()}

    def symbols(self) -> list[Symbol]:
        """Return all entries, constants first."""
        return list(self._constants.values()) + list(self._labels.values())

    def find_similar(self, name: str) -> list[str]:
        """Find labels and constants with names close to 'name'."""
        return find_similar_names(name, list(self._labels) + list(self._constants))


# =============================================================================
# Pending References
# =============================================================================

class PendingReferences:
    """
    Ledger of label references waiting for the end of the scan.

    Requests are grouped by label name; both the groups and the requests
    inside a group keep their insertion order.
    """

    def __init__(self):
        self._pending: dict[str, list[PatchRequest]] = {}

    def add(self, label: str, slot: int, offset: int,
            location: Optional[SourceLocation] = None) -> None:
        """Register a patch of 'label + offset' into image slot 'slot'."""
        self._pending.setdefault(label, []).append(
            PatchRequest(slot, offset, location)
        )

    def labels(self) -> list[str]:
        """Return referenced label names in first-reference order."""
        return list(self._pending)

    def requests(self, label: str) -> list[PatchRequest]:
        """Return the patch requests waiting on one label."""
        return list(self._pending.get(label, []))

    def items(self) -> Iterator[tuple[str, list[PatchRequest]]]:
        for label, requests in self._pending.items():
            yield label, list(requests)

    def __len__(self) -> int:
        """Total number of patch requests."""
        return sum(len(requests) for requests in self._pending.values())

    def __contains__(self, label: str) -> bool:
        return label in self._pending

    def clear(self) -> None:
        self._pending.clear()


# =============================================================================
# Name Suggestions
# =============================================================================

def find_similar_names(name: str, candidates: Iterable[str]) -> list[str]:
    """
    Find names with similar spelling, for error hints.

    Uses a simple edit distance heuristic: case-only differences, or an
    edit distance of at most 2 between names whose lengths differ by at
    most one.
    """
    name_lower = name.lower()
    similar = []

    for candidate in candidates:
        if candidate == name or candidate in similar:
            continue
        candidate_lower = candidate.lower()
        if (
            candidate_lower == name_lower or
            abs(len(candidate) - len(name)) <= 1 and
            _edit_distance(name_lower, candidate_lower) <= 2
        ):
            similar.append(candidate)

    return similar[:3]


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min(
                    distances[j],
                    distances[j + 1],
                    new_distances[-1],
                ))
        distances = new_distances

    return distances[-1]
