"""
Mini-PL Error Hierarchy
=======================

This module defines the exception hierarchy for the Mini-PL front-end.
All exceptions inherit from MiniPLError, allowing callers to catch every
front-end failure with a single except clause if desired.

Exception Hierarchy
-------------------
MiniPLError (base)
├── LexicalError - raised by the scanner
│   ├── InvalidCharacterError - character that cannot start a token
│   ├── InvalidEscapeError - malformed or unsupported escape sequence
│   └── UnterminatedError - end of input inside a string or comment
└── MiniPLSyntaxError - raised by the parser
    ├── UnexpectedTokenError - wrong token for the current statement
    └── UnexpectedEndOfInputError - input ended mid-statement or mid-loop

Each error carries a kind discriminator (ErrorKind.LEXICAL or
ErrorKind.SYNTAX) so that drivers can classify failures without
inspecting the class tree.

Error Message Format
--------------------
    filename:line:column: error: description
        source_line_text
            ^ (pointer to error location)
    hint: suggestion for fixing (when available)

Errors are fatal: neither the scanner nor the parser attempts recovery.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


class ErrorKind(Enum):
    """Discriminator for the two failure classes of the front-end."""
    LEXICAL = "lexical"
    SYNTAX = "syntax"


# =============================================================================
# Base Exception Class
# =============================================================================

class MiniPLError(Exception):
    """
    Base exception for all Mini-PL front-end errors.

    Provides message formatting with source location, an optional
    source-line excerpt with a caret pointer, and an optional hint.

    Attributes:
        kind: Which stage raised the error
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            loop.mpl:3:9: error: expected keyword 'do', found ';'
                for i in 1 .. 3;
                               ^
            hint: a for header ends with 'do'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Lexical Errors (Scanner)
# =============================================================================

class LexicalError(MiniPLError):
    """
    Error raised while converting characters into tokens.

    Examples:
        - Unsupported escape such as \\q
        - \\x with no hexadecimal digits
        - \\u escape that decodes to a surrogate
        - End of input inside a string literal
    """
    kind = ErrorKind.LEXICAL


class InvalidCharacterError(LexicalError):
    """A character that cannot begin any token."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (U+{ord(char):04X})",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class InvalidEscapeError(LexicalError):
    """Malformed or unsupported escape sequence inside a string literal."""
    pass


class UnterminatedError(LexicalError):
    """
    End of input reached inside a construct that needs a terminator.

    Raised for string literals, pending escape sequences and block
    comments.
    """

    def __init__(
        self,
        construct: str,
        terminator: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.construct = construct
        super().__init__(
            f"unterminated {construct}",
            location=location,
            hint=f"add closing {terminator}",
            source_line=source_line,
        )


# =============================================================================
# Syntax Errors (Parser)
# =============================================================================

class MiniPLSyntaxError(MiniPLError):
    """
    Error raised while assembling tokens into statements.

    Examples:
        - Statement starting with 'do'
        - Two '..' in one for header
        - 'end for' with no open loop
        - Expression of an unsupported shape
    """
    kind = ErrorKind.SYNTAX


class UnexpectedTokenError(MiniPLSyntaxError):
    """
    Token that doesn't match what the current statement expects.

    Attributes:
        found: Description of the offending token
        expected: Description of what was expected (optional)
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        if expected:
            message = f"expected {expected}, found {found}"
        else:
            message = f"unexpected {found}"

        super().__init__(message, location=location, hint=hint)


class UnexpectedEndOfInputError(MiniPLSyntaxError):
    """Token stream ended while a statement or loop was still open."""

    def __init__(
        self,
        context: str,
        location: Optional[SourceLocation] = None,
    ):
        self.context = context
        super().__init__(
            f"unexpected end of input {context}",
            location=location,
        )
