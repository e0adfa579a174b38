"""
Mini-PL Scanner (Tokenizer)
===========================

This module implements the scanner for Mini-PL. It converts source text
into a stream of tokens pushed into a sink.

The scanner is an explicit finite-state automaton: it reads the source
one character at a time and hands each character to the handler of the
current scan mode. A handler may emit tokens, switch modes, and re-feed
the character to another handler when the character terminates the
token being built (e.g. the ';' right after a number).

Token Categories
----------------
- Brackets: ( )
- Identifiers: alphanumerics and underscores, not a reserved word
- Keywords: var for end in do read print int string bool assert
- Numbers: decimal digits of unbounded length
- Strings: "double quoted" with escape sequences
- Punctuation: ; : := ..
- Operators: + - * / < = & !

Any other character (e.g. '$', '#', '@') is rejected with an
InvalidCharacterError rather than starting a word.

Comments
--------
- Line: // comment
- Block: /* comment */ (nested: /* a /* b */ c */)

Escape Sequences
----------------
| Escape        | Meaning                               |
|---------------|---------------------------------------|
| \\a \\b \\f \\v   | BEL, BS, FF, VT                       |
| \\n \\r \\t      | newline, return, tab                  |
| \\\\ \\' \\" \\?   | the character itself                  |
| \\xH \\xHH      | one or two hex digits, no more        |
| \\N \\NN \\NNN   | one to three octal digits (max 377)   |
| \\uHHHH        | Unicode code point, four hex digits   |
| \\UHHHHHHHH    | Unicode code point, eight hex digits  |

Example Usage
-------------
>>> from minipl.scanner import tokenize
>>> for token in tokenize('var x : int := 1;'):
...     print(token)
Token(KEYWORD, 'var', 1:1)
Token(IDENTIFIER, 'x', 1:5)
Token(COLON, 1:7)
Token(KEYWORD, 'int', 1:9)
Token(ASSIGNMENT, 1:13)
Token(NUMBER, 1, 1:16)
Token(SEMICOLON, 1:17)
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from minipl.errors import (
    SourceLocation,
    LexicalError,
    InvalidCharacterError,
    InvalidEscapeError,
    UnterminatedError,
)
from minipl.streams import BufferSink, Sink

logger = logging.getLogger(__name__)


# =============================================================================
# Token Type Enumerations
# =============================================================================

class TokenType(Enum):
    """
    Token categories for Mini-PL.

    Brackets, operators and keywords carry a payload enum in the token
    value; identifiers, strings and numbers carry their text or integer.
    """
    BRACKET = auto()        # ( or )
    IDENTIFIER = auto()     # variable names
    STRING = auto()         # decoded string literal
    NUMBER = auto()         # non-negative integer literal
    SEMICOLON = auto()      # ;
    COLON = auto()          # :
    ASSIGNMENT = auto()     # :=
    RANGE = auto()          # ..
    OPERATOR = auto()       # + - * / < = & !
    KEYWORD = auto()        # reserved words


class Side(Enum):
    """Which side a bracket token stands on."""
    LEFT = "("
    RIGHT = ")"


class Operator(Enum):
    """Operator tokens. The value is the source lexeme."""
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    LESS_THAN = "<"
    EQUALS = "="
    AND = "&"
    NOT = "!"


class Keyword(Enum):
    """Reserved words. The value is the source lexeme."""
    VAR = "var"
    FOR = "for"
    END = "end"
    IN = "in"
    DO = "do"
    READ = "read"
    PRINT = "print"
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    ASSERT = "assert"


# =============================================================================
# Reserved-Word Table
# =============================================================================

KEYWORDS: dict[str, Keyword] = {
    "var": Keyword.VAR,
    "for": Keyword.FOR,
    "end": Keyword.END,
    "in": Keyword.IN,
    "do": Keyword.DO,
    "read": Keyword.READ,
    "print": Keyword.PRINT,
    "int": Keyword.INT,
    "string": Keyword.STRING,
    "bool": Keyword.BOOL,
    "assert": Keyword.ASSERT,
}

# Lexemes of the payload-free token types
_FIXED_LEXEMES = {
    TokenType.SEMICOLON: ";",
    TokenType.COLON: ":",
    TokenType.ASSIGNMENT: ":=",
    TokenType.RANGE: "..",
}


def format_integer(value: int) -> str:
    """Decimal text of an integer, or a size summary past the str() digit limit."""
    try:
        return str(value)
    except ValueError:
        return f"<{value.bit_length()}-bit integer>"


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token of Mini-PL source code.

    Tokens compare equal on type and value only; the location is kept
    for error reporting and does not take part in equality.

    Attributes:
        type: The TokenType classification
        value: Side, Operator, Keyword, str, int or None depending on type
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: Side | Operator | Keyword | str | int | None = None
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)
    filename: str = field(default="<input>", compare=False)

    def __repr__(self) -> str:
        """Format token for debugging output."""
        position = f"{self.line}:{self.column}"
        if self.value is None:
            return f"Token({self.type.name}, {position})"
        if isinstance(self.value, int):
            return f"Token({self.type.name}, {format_integer(self.value)}, {position})"
        if isinstance(self.value, Enum):
            return f"Token({self.type.name}, {self.value.value!r}, {position})"
        return f"Token({self.type.name}, {self.value!r}, {position})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    @property
    def lexeme(self) -> str:
        """Source-like text of the token (strings are not re-escaped)."""
        if isinstance(self.value, Enum):
            return self.value.value
        if self.type == TokenType.NUMBER:
            return format_integer(self.value)
        if self.type == TokenType.STRING:
            return f'"{self.value}"'
        if self.type == TokenType.IDENTIFIER:
            return self.value
        return _FIXED_LEXEMES[self.type]

    def describe(self) -> str:
        """Human-readable description used in error messages."""
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.value}'"
        if self.type == TokenType.NUMBER:
            return f"number {format_integer(self.value)}"
        if self.type == TokenType.STRING:
            return f"string {self.value!r}"
        if self.type == TokenType.KEYWORD:
            return f"keyword '{self.value.value}'"
        return f"'{self.lexeme}'"

    def is_keyword(self, *keywords: Keyword) -> bool:
        """Return True if this token is one of the given keywords."""
        return self.type == TokenType.KEYWORD and self.value in keywords

    def is_bracket(self, side: Side) -> bool:
        """Return True if this token is a bracket on the given side."""
        return self.type == TokenType.BRACKET and self.value == side

    def is_operator(self, *operators: Operator) -> bool:
        """Return True if this token is one of the given operators."""
        return self.type == TokenType.OPERATOR and self.value in operators


# =============================================================================
# Scanner Modes and Character Classes
# =============================================================================

class ScanMode(Enum):
    """Nodes of the scanner automaton."""
    NORMAL = auto()
    STRING_LITERAL = auto()
    ESCAPE = auto()
    NUMBER = auto()
    OTHER = auto()                  # identifier or keyword
    POSSIBLE_COMMENT = auto()       # after '/'
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()
    POSSIBLE_ASSIGNMENT = auto()    # after ':'
    POSSIBLE_RANGE = auto()         # after '.'


WHITESPACE = " \t\r\n"
DECIMAL_DIGITS = string.digits
HEX_DIGITS = string.hexdigits
OCTAL_DIGITS = string.octdigits

SINGLE_CHAR_TOKENS: dict[str, tuple[TokenType, Enum | None]] = {
    "(": (TokenType.BRACKET, Side.LEFT),
    ")": (TokenType.BRACKET, Side.RIGHT),
    ";": (TokenType.SEMICOLON, None),
    "+": (TokenType.OPERATOR, Operator.PLUS),
    "-": (TokenType.OPERATOR, Operator.MINUS),
    "*": (TokenType.OPERATOR, Operator.MULTIPLY),
    "<": (TokenType.OPERATOR, Operator.LESS_THAN),
    "=": (TokenType.OPERATOR, Operator.EQUALS),
    "&": (TokenType.OPERATOR, Operator.AND),
    "!": (TokenType.OPERATOR, Operator.NOT),
}

SIMPLE_ESCAPES = {
    "a": "\x07",    # Bell/alert
    "b": "\x08",    # Backspace
    "f": "\x0c",    # Form feed
    "n": "\n",      # Newline
    "r": "\r",      # Carriage return
    "t": "\t",      # Tab
    "v": "\x0b",    # Vertical tab
    "\\": "\\",
    "'": "'",
    '"': '"',
    "?": "?",
}

# Number of hex digits required after \u and \U
UNICODE_ESCAPE_WIDTHS = {"u": 4, "U": 8}

MAX_HEX_ESCAPE_DIGITS = 2
MAX_OCTAL_ESCAPE_DIGITS = 3
MAX_OCTAL_ESCAPE_VALUE = 0o377
MAX_CODE_POINT = 0x10FFFF

# int() refuses very long digit strings, so numbers are converted in chunks
_DIGIT_CHUNK = 1000


def is_word_char(char: str) -> bool:
    """Return True for characters allowed in identifiers and keywords."""
    return char.isalnum() or char == "_"


def parse_decimal(digits: str) -> int:
    """
    Convert a string of ASCII decimal digits to an integer of any size.

    Raises:
        ValueError: If the string is empty or has a non-digit
    """
    if not digits or any(c not in DECIMAL_DIGITS for c in digits):
        raise ValueError(f"not a decimal literal: {digits!r}")
    value = 0
    for offset in range(0, len(digits), _DIGIT_CHUNK):
        chunk = digits[offset:offset + _DIGIT_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk)
    return value


# =============================================================================
# Scanner Implementation
# =============================================================================

class Scanner:
    """
    Finite-state scanner for Mini-PL.

    The scanner owns a character buffer for the token being built, an
    escape buffer for multi-character escapes, and a nesting counter for
    block comments. All state is reset at the start of each scan() call,
    so one instance can be reused and yields identical tokens for
    identical input.

    Usage:
        sink = BufferSink()
        Scanner("prog.mpl").scan(source_text, sink)
        tokens = sink.items

    Attributes:
        filename: Name of the source file (for token locations and errors)
    """

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._handlers: dict[ScanMode, Callable[[str], None]] = {
            ScanMode.NORMAL: self._scan_normal,
            ScanMode.STRING_LITERAL: self._scan_string,
            ScanMode.ESCAPE: self._scan_escape,
            ScanMode.NUMBER: self._scan_number,
            ScanMode.OTHER: self._scan_word,
            ScanMode.POSSIBLE_COMMENT: self._scan_possible_comment,
            ScanMode.LINE_COMMENT: self._scan_line_comment,
            ScanMode.BLOCK_COMMENT: self._scan_block_comment,
            ScanMode.POSSIBLE_ASSIGNMENT: self._scan_possible_assignment,
            ScanMode.POSSIBLE_RANGE: self._scan_possible_range,
        }
        self._reset(None, "")

    @property
    def mode(self) -> ScanMode:
        """Current node of the automaton."""
        return self._mode

    def scan(self, source: str, sink: Sink[Token]) -> None:
        """
        Tokenize the whole source, pushing tokens into the sink in order.

        Args:
            source: Complete Mini-PL source text
            sink: Receiver of the tokens

        Raises:
            LexicalError: On the first lexical problem found
        """
        self._reset(sink, source)
        try:
            for index, char in enumerate(source):
                self._column += 1
                self._handlers[self._mode](char)
                if char == "\n" or (char == "\r" and source[index + 1:index + 2] != "\n"):
                    self._line += 1
                    self._column = 0
                    self._line_start = index + 1
            self._finish()
            logger.debug(f"Scanned {self.filename}: {self._token_count} tokens")
        finally:
            self._sink = None

    # =========================================================================
    # State Management
    # =========================================================================

    def _reset(self, sink: Optional[Sink[Token]], source: str) -> None:
        self._sink = sink
        self._source = source
        self._mode = ScanMode.NORMAL
        self._buffer: list[str] = []
        self._escape_buffer: list[str] = []
        self._comment_depth = 0
        # Last block-comment character that may open or close a delimiter
        self._comment_pending = ""

        self._line = 1
        self._column = 0
        self._line_start = 0
        self._start = (1, 1)
        self._escape_start = (1, 1)
        self._token_count = 0

    def _mark_start(self) -> None:
        """Remember the position of the first character of a token."""
        self._start = (self._line, self._column)

    def _emit(
        self,
        token_type: TokenType,
        value: Side | Operator | Keyword | str | int | None = None,
        start: Optional[tuple[int, int]] = None,
    ) -> None:
        line, column = start or (self._line, self._column)
        self._sink.put(Token(token_type, value, line, column, self.filename))
        self._token_count += 1

    # =========================================================================
    # Error Helpers
    # =========================================================================

    def _location(self, position: Optional[tuple[int, int]] = None) -> SourceLocation:
        line, column = position or (self._line, self._column)
        return SourceLocation(self.filename, line, column)

    def _current_line_text(self) -> str:
        """Get the current line of source text for error reporting."""
        end = len(self._source)
        for terminator in "\n\r":
            found = self._source.find(terminator, self._line_start)
            if found != -1:
                end = min(end, found)
        return self._source[self._line_start:end]

    def _escape_error(self, message: str, hint: Optional[str] = None) -> InvalidEscapeError:
        return InvalidEscapeError(
            message,
            self._location(self._escape_start),
            hint=hint,
            source_line=self._current_line_text(),
        )

    # =========================================================================
    # Mode Handlers
    # =========================================================================

    def _scan_normal(self, char: str) -> None:
        if char in WHITESPACE:
            return

        if char in SINGLE_CHAR_TOKENS:
            token_type, value = SINGLE_CHAR_TOKENS[char]
            self._emit(token_type, value)
            return

        self._mark_start()

        if char == ":":
            self._mode = ScanMode.POSSIBLE_ASSIGNMENT
        elif char == ".":
            self._mode = ScanMode.POSSIBLE_RANGE
        elif char == '"':
            self._mode = ScanMode.STRING_LITERAL
        elif char == "/":
            self._mode = ScanMode.POSSIBLE_COMMENT
        elif char in DECIMAL_DIGITS:
            self._buffer.append(char)
            self._mode = ScanMode.NUMBER
        elif is_word_char(char):
            self._buffer.append(char)
            self._mode = ScanMode.OTHER
        else:
            raise InvalidCharacterError(
                char,
                self._location(),
                self._current_line_text(),
            )

    def _scan_possible_assignment(self, char: str) -> None:
        if char == "=":
            self._emit(TokenType.ASSIGNMENT, start=self._start)
            self._mode = ScanMode.NORMAL
            return
        self._emit(TokenType.COLON, start=self._start)
        self._mode = ScanMode.NORMAL
        self._scan_normal(char)

    def _scan_possible_range(self, char: str) -> None:
        if char != ".":
            raise InvalidCharacterError(
                ".",
                self._location(self._start),
                self._current_line_text(),
                hint="a range is written '..'",
            )
        self._emit(TokenType.RANGE, start=self._start)
        self._mode = ScanMode.NORMAL

    def _scan_possible_comment(self, char: str) -> None:
        if char == "/":
            self._mode = ScanMode.LINE_COMMENT
        elif char == "*":
            self._comment_depth = 1
            self._comment_pending = ""
            self._mode = ScanMode.BLOCK_COMMENT
        else:
            self._emit(TokenType.OPERATOR, Operator.DIVIDE, start=self._start)
            self._mode = ScanMode.NORMAL
            self._scan_normal(char)

    def _scan_line_comment(self, char: str) -> None:
        if char == "\n":
            self._mode = ScanMode.NORMAL

    def _scan_block_comment(self, char: str) -> None:
        # A character that completes a delimiter never starts the next one,
        # so "/*/" stays open and "/**/" closes.
        if self._comment_pending == "/" and char == "*":
            self._comment_depth += 1
            self._comment_pending = ""
        elif self._comment_pending == "*" and char == "/":
            self._comment_depth -= 1
            self._comment_pending = ""
            if self._comment_depth == 0:
                logger.debug(f"Skipped block comment starting at {self._start[0]}:{self._start[1]}")
                self._mode = ScanMode.NORMAL
        else:
            self._comment_pending = char if char in "*/" else ""

    def _scan_number(self, char: str) -> None:
        if char in DECIMAL_DIGITS:
            self._buffer.append(char)
            return
        self._flush_number()
        self._scan_normal(char)

    def _scan_word(self, char: str) -> None:
        if is_word_char(char):
            self._buffer.append(char)
            return
        self._flush_word()
        self._scan_normal(char)

    def _scan_string(self, char: str) -> None:
        if char == "\\":
            self._escape_start = (self._line, self._column)
            self._mode = ScanMode.ESCAPE
        elif char == '"':
            self._emit(TokenType.STRING, "".join(self._buffer), start=self._start)
            self._buffer.clear()
            self._mode = ScanMode.NORMAL
        else:
            self._buffer.append(char)

    def _scan_escape(self, char: str) -> None:
        if not self._escape_buffer:
            if char in SIMPLE_ESCAPES:
                self._complete_escape(SIMPLE_ESCAPES[char])
            elif char == "x" or char in UNICODE_ESCAPE_WIDTHS or char in OCTAL_DIGITS:
                self._escape_buffer.append(char)
            else:
                raise self._escape_error(
                    f"unsupported escape sequence '\\{char}'",
                    hint="use one of \\a \\b \\f \\n \\r \\t \\v \\\\ \\' \\\" \\? \\x \\u \\U "
                         "or an octal escape",
                )
            return

        kind = self._escape_buffer[0]
        if kind == "x":
            self._continue_hex_escape(char)
        elif kind in UNICODE_ESCAPE_WIDTHS:
            self._continue_unicode_escape(kind, char)
        else:
            self._continue_octal_escape(char)

    # =========================================================================
    # Multi-Character Escapes
    # =========================================================================

    def _complete_escape(self, decoded: str) -> None:
        self._buffer.append(decoded)
        self._escape_buffer.clear()
        self._mode = ScanMode.STRING_LITERAL

    def _continue_hex_escape(self, char: str) -> None:
        digits = self._escape_buffer[1:]
        if char in HEX_DIGITS:
            if len(digits) == MAX_HEX_ESCAPE_DIGITS:
                raise self._escape_error(
                    f"hex escape \\x{''.join(digits)}{char}... is longer than one byte",
                    hint="\\x takes at most two hex digits; use \\u for wider characters",
                )
            self._escape_buffer.append(char)
            return

        if not digits:
            raise self._escape_error(
                "\\x used with no following hex digits",
                hint="write one or two hex digits, e.g. \\x41",
            )
        self._complete_escape(chr(int("".join(digits), 16)))
        self._scan_string(char)

    def _continue_unicode_escape(self, kind: str, char: str) -> None:
        width = UNICODE_ESCAPE_WIDTHS[kind]
        if char not in HEX_DIGITS:
            raise self._escape_error(
                f"'{char}' is not a valid hex digit; \\{kind} requires {width} hex digits",
            )
        self._escape_buffer.append(char)
        if len(self._escape_buffer) - 1 < width:
            return

        digits = "".join(self._escape_buffer[1:])
        code_point = int(digits, 16)
        if code_point > MAX_CODE_POINT or 0xD800 <= code_point <= 0xDFFF:
            raise self._escape_error(f"\\{kind}{digits} is an invalid Unicode code point")
        self._complete_escape(chr(code_point))

    def _continue_octal_escape(self, char: str) -> None:
        if char in OCTAL_DIGITS:
            self._escape_buffer.append(char)
            if len(self._escape_buffer) == MAX_OCTAL_ESCAPE_DIGITS:
                self._finish_octal_escape()
            return
        self._finish_octal_escape()
        self._scan_string(char)

    def _finish_octal_escape(self) -> None:
        digits = "".join(self._escape_buffer)
        value = int(digits, 8)
        if value > MAX_OCTAL_ESCAPE_VALUE:
            raise self._escape_error(
                f"octal escape \\{digits} is out of range",
                hint="octal escapes go up to \\377",
            )
        self._complete_escape(chr(value))

    # =========================================================================
    # Token Flushing
    # =========================================================================

    def _flush_number(self) -> None:
        digits = "".join(self._buffer)
        try:
            value = parse_decimal(digits)
        except ValueError:
            raise LexicalError(
                f"malformed numeric literal '{digits}'",
                self._location(self._start),
                source_line=self._current_line_text(),
            ) from None
        self._emit(TokenType.NUMBER, value, start=self._start)
        self._buffer.clear()
        self._mode = ScanMode.NORMAL

    def _flush_word(self) -> None:
        word = "".join(self._buffer)
        keyword = KEYWORDS.get(word)
        if keyword is not None:
            self._emit(TokenType.KEYWORD, keyword, start=self._start)
        else:
            self._emit(TokenType.IDENTIFIER, word, start=self._start)
        self._buffer.clear()
        self._mode = ScanMode.NORMAL

    def _finish(self) -> None:
        """Handle end of input according to the mode the scanner is left in."""
        mode = self._mode

        if mode == ScanMode.NUMBER:
            self._flush_number()
        elif mode == ScanMode.OTHER:
            self._flush_word()
        elif mode == ScanMode.POSSIBLE_COMMENT:
            self._emit(TokenType.OPERATOR, Operator.DIVIDE, start=self._start)
        elif mode == ScanMode.POSSIBLE_ASSIGNMENT:
            self._emit(TokenType.COLON, start=self._start)
        elif mode == ScanMode.POSSIBLE_RANGE:
            raise InvalidCharacterError(
                ".",
                self._location(self._start),
                self._current_line_text(),
                hint="a range is written '..'",
            )
        elif mode in (ScanMode.STRING_LITERAL, ScanMode.ESCAPE):
            raise UnterminatedError("string literal", "'\"'", self._location(self._start))
        elif mode == ScanMode.BLOCK_COMMENT:
            logger.debug(f"Input ended inside block comment at depth {self._comment_depth}")
            raise UnterminatedError("block comment", "'*/'", self._location(self._start))

        self._mode = ScanMode.NORMAL


# =============================================================================
# Convenience Function
# =============================================================================

def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """
    Scan source text into a list of tokens.

    Args:
        source: Mini-PL source text
        filename: Name used in token locations and error messages

    Returns:
        Tokens in source order
    """
    sink: BufferSink[Token] = BufferSink()
    Scanner(filename).scan(source, sink)
    return sink.items
