"""
mifasm Command-Line Interface
=============================

This package provides the 'mifasm' command, a Click-based front end for
the assembler with MIF output and diagnostic reporting.
"""

__all__ = ["mifasm"]
