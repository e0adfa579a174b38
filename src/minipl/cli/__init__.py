"""
Mini-PL Command-Line Interface
==============================

This package provides the command-line tool for the Mini-PL front-end:

- **mplc**: dump the tokens or the AST of a Mini-PL source file

The tool is a Click-based CLI application with help text and unified
error reporting.
"""

__all__ = ["mplc"]
