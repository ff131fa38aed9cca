"""
mifasm CPU Package
==================

Instruction set definitions for the 16-bit target processor, shared by the
code generator and the MIF serializer.

Usage:
    from mifasm.cpu import (
        OPCODE_TABLE,
        REGISTERS,
        get_instruction_info,
    )
"""

from mifasm.cpu.isa import (
    # Word layout
    WORD_WIDTH,
    WORD_MASK,
    OFFSET_RIGHT_PADDING,
    OFFSET_RX,
    OFFSET_RY,
    OFFSET_OPCODE,
    NOOP_WORD,
    # Core types
    OperandShape,
    InstructionInfo,
    # Tables
    OPCODE_TABLE,
    MNEMONICS,
    REGISTERS,
    # Helpers
    get_instruction_info,
    lookup_register,
    is_register_name,
    encode_register_pair,
    encode_register_immediate,
)

__all__ = [
    "WORD_WIDTH",
    "WORD_MASK",
    "OFFSET_RIGHT_PADDING",
    "OFFSET_RX",
    "OFFSET_RY",
    "OFFSET_OPCODE",
    "NOOP_WORD",
    "OperandShape",
    "InstructionInfo",
    "OPCODE_TABLE",
    "MNEMONICS",
    "REGISTERS",
    "get_instruction_info",
    "lookup_register",
    "is_register_name",
    "encode_register_pair",
    "encode_register_immediate",
]
