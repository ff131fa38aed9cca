"""
16-bit Processor Instruction Set
================================

Instruction set definitions for the tiny 16-bit processor targeted by the
assembler. The processor has eight registers and seven instructions, all
encoded in the upper bits of a 16-bit word:

    15   13 12   10 9     7 6           0
    +------+-------+-------+-------------+
    |  op  |  rx   |  ry   |  (padding)  |
    +------+-------+-------+-------------+

The instruction register only latches the upper 9 bits, so the low 7 bits
are always zero. MVI is followed by a second word holding the immediate.

Instruction Reference
---------------------
| Mnemonic | Opcode | Operands   | Operation                  |
|----------|--------|------------|----------------------------|
| mv       | 0      | rx, ry     | rx <- ry                   |
| mvi      | 1      | rx, #imm   | rx <- imm (second word)    |
| add      | 2      | rx, ry     | rx <- rx + ry              |
| sub      | 3      | rx, ry     | rx <- rx - ry              |
| ld       | 4      | rx, ry     | rx <- [ry]                 |
| st       | 5      | rx, ry     | [ry] <- rx                 |
| mvnz     | 6      | rx, ry     | if G != 0: rx <- ry        |

'#data' is an assembler pseudo-instruction that stores one literal word.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


# =============================================================================
# Word Layout
# =============================================================================

WORD_WIDTH = 16
WORD_MASK = (1 << WORD_WIDTH) - 1

OFFSET_RIGHT_PADDING = 7
OFFSET_RY = OFFSET_RIGHT_PADDING
OFFSET_RX = OFFSET_RIGHT_PADDING + 3
OFFSET_OPCODE = OFFSET_RIGHT_PADDING + 6

# Filler for failed encodings and unused memory
NOOP_WORD = 0


# =============================================================================
# Operand Shapes
# =============================================================================

class OperandShape(Enum):
    """How an instruction's operand fields are encoded."""
    REGISTER_REGISTER = auto()   # one word: op | rx | ry
    REGISTER_IMMEDIATE = auto()  # two words: op | rx, then the immediate
    DATA = auto()                # one word: the expression value


@dataclass(frozen=True)
class InstructionInfo:
    """
    Opcode table entry.

    Attributes:
        mnemonic: Lower-case mnemonic
        opcode: 3-bit opcode (None for pseudo-instructions)
        shape: Operand layout
        size: Number of words emitted
    """
    mnemonic: str
    opcode: Optional[int]
    shape: OperandShape
    size: int


# =============================================================================
# Master Tables
# =============================================================================

OPCODE_TABLE: dict[str, InstructionInfo] = {
    "mv": InstructionInfo("mv", 0, OperandShape.REGISTER_REGISTER, 1),
    "mvi": InstructionInfo("mvi", 1, OperandShape.REGISTER_IMMEDIATE, 2),
    "add": InstructionInfo("add", 2, OperandShape.REGISTER_REGISTER, 1),
    "sub": InstructionInfo("sub", 3, OperandShape.REGISTER_REGISTER, 1),
    "ld": InstructionInfo("ld", 4, OperandShape.REGISTER_REGISTER, 1),
    "st": InstructionInfo("st", 5, OperandShape.REGISTER_REGISTER, 1),
    "mvnz": InstructionInfo("mvnz", 6, OperandShape.REGISTER_REGISTER, 1),
    "#data": InstructionInfo("#data", None, OperandShape.DATA, 1),
}

MNEMONICS = sorted(OPCODE_TABLE)

# pc is the program counter, wired as r7
REGISTERS: dict[str, int] = {
    "r0": 0,
    "r1": 1,
    "r2": 2,
    "r3": 3,
    "r4": 4,
    "r5": 5,
    "r6": 6,
    "r7": 7,
    "pc": 7,
}


# =============================================================================
# Lookup and Encoding Helpers
# =============================================================================

def get_instruction_info(mnemonic: str) -> Optional[InstructionInfo]:
    """Look up a mnemonic (case-insensitive)."""
    return OPCODE_TABLE.get(mnemonic.lower())


def lookup_register(name: str) -> Optional[int]:
    """
    Translate a register name to its number.

    Args:
        name: Register name in any case ("R3", "pc")

    Returns:
        Register number 0-7, or None if the name is not a register
    """
    return REGISTERS.get(name.lower())


def is_register_name(name: str) -> bool:
    """Check whether a token names a register."""
    return name.lower() in REGISTERS


def encode_register_pair(opcode: int, rx: int, ry: int) -> int:
    """Encode a register-register instruction word."""
    return (opcode << OFFSET_OPCODE) | (rx << OFFSET_RX) | (ry << OFFSET_RY)


def encode_register_immediate(opcode: int, rx: int) -> int:
    """Encode the first word of a register-immediate instruction."""
    return (opcode << OFFSET_OPCODE) | (rx << OFFSET_RX)
