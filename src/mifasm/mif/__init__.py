"""
MIF Output
==========

Serialization of assembly images to the Memory Initialization File format
read by Quartus when preloading on-chip memories.

Example:
    >>> from mifasm.mif import MifWriter
    >>> writer = MifWriter(symbol_header=True)
    >>> text = writer.render(image, depth=128, constants=consts, labels=labels)
"""

from mifasm.mif.writer import MifWriter, render_mif

__all__ = [
    "MifWriter",
    "render_mif",
]
