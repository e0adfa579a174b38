"""
Mini-PL Statement Parser
========================

This module implements the parser for Mini-PL. It takes tokens one at a
time from a source and pushes completed top-level statements into a
sink.

The parser is a state machine. Each state handles exactly one token and
returns the next state; tokens belonging to the statement in progress
are collected in a buffer until the statement is complete. Loop bodies
are built on an internal stack of partially parsed loops.

Grammar
-------
stmt       ::= "var" IDENT ":" type [ ":=" expr ]
             | IDENT ":=" expr
             | "for" IDENT "in" expr ".." expr "do" stmts "end" "for"
             | "read" IDENT
             | "print" expr
             | "assert" "(" expr ")"
stmts      ::= ( stmt? ";" )*
expr       ::= opnd binop opnd
             | "!" opnd
             | opnd
opnd       ::= NUMBER | STRING | IDENT | "(" expr ")"
binop      ::= "+" | "-" | "*" | "/" | "<" | "=" | "&"
type       ::= "int" | "string" | "bool"

There is no operator precedence: an expression has at most one
operator, and longer computations must be parenthesized.

Example Usage
-------------
>>> from minipl.parser import parse_source
>>> parse_source("x := 5;")
[AssignmentStatement(name='x', expression=SingletonExpression(operand=IntegerOperand(value=5)))]
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterable, Optional, Sequence

from minipl.errors import (
    SourceLocation,
    MiniPLSyntaxError,
    UnexpectedTokenError,
    UnexpectedEndOfInputError,
)
from minipl.scanner import Keyword, Operator, Side, Token, TokenType, tokenize
from minipl.streams import BufferSink, BufferSource, Sink, Source
from minipl.ast import (
    Statement,
    DeclarationStatement,
    AssignmentStatement,
    ForStatement,
    ReadStatement,
    PrintStatement,
    AssertStatement,
    Expression,
    BinaryExpression,
    UnaryExpression,
    SingletonExpression,
    Operand,
    IntegerOperand,
    StringOperand,
    VariableOperand,
    ExpressionOperand,
    BinaryOperator,
    UnaryOperator,
    VarType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Parser States
# =============================================================================

class ParseState(Enum):
    """Nodes of the statement-level state machine."""
    NORMAL = auto()             # awaiting the first token of a statement
    DECLARATION = auto()        # after 'var'
    ASSIGNMENT = auto()         # after a statement-leading identifier
    FOR = auto()                # inside a for header
    READ = auto()
    PRINT = auto()
    ASSERT = auto()
    END_FOR = auto()            # after 'end'
    EXPECT_SEMICOLON = auto()   # after 'end for'


# Keywords that begin a statement and the state they lead to
STATEMENT_KEYWORDS: dict[Keyword, ParseState] = {
    Keyword.VAR: ParseState.DECLARATION,
    Keyword.FOR: ParseState.FOR,
    Keyword.READ: ParseState.READ,
    Keyword.PRINT: ParseState.PRINT,
    Keyword.ASSERT: ParseState.ASSERT,
    Keyword.END: ParseState.END_FOR,
}

TYPE_KEYWORDS: dict[Keyword, VarType] = {
    Keyword.INT: VarType.INT,
    Keyword.STRING: VarType.STRING,
    Keyword.BOOL: VarType.BOOL,
}

BINARY_OPERATORS: dict[Operator, BinaryOperator] = {
    Operator.PLUS: BinaryOperator.PLUS,
    Operator.MINUS: BinaryOperator.MINUS,
    Operator.MULTIPLY: BinaryOperator.MULTIPLY,
    Operator.DIVIDE: BinaryOperator.DIVIDE,
    Operator.LESS_THAN: BinaryOperator.LESS_THAN,
    Operator.EQUALS: BinaryOperator.EQUALS,
    Operator.AND: BinaryOperator.AND,
}

# Token types that may appear inside an expression
EXPRESSION_TOKEN_TYPES = frozenset({
    TokenType.BRACKET,
    TokenType.OPERATOR,
    TokenType.IDENTIFIER,
    TokenType.NUMBER,
    TokenType.STRING,
})

# Used in end-of-input errors
_STATE_CONTEXT = {
    ParseState.DECLARATION: "in variable declaration",
    ParseState.ASSIGNMENT: "in assignment",
    ParseState.FOR: "in for loop header",
    ParseState.READ: "in read statement",
    ParseState.PRINT: "in print statement",
    ParseState.ASSERT: "in assert statement",
    ParseState.END_FOR: "after 'end'",
    ParseState.EXPECT_SEMICOLON: "after 'end for'",
}


@dataclass
class LoopFrame:
    """
    A for loop whose header is parsed but whose 'end for' is not yet seen.

    Attributes:
        variable: Loop control variable
        start: Parsed start expression
        end: Parsed end expression
        body: Statements collected so far
    """
    variable: str
    start: Expression
    end: Expression
    body: list[Statement] = field(default_factory=list)


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Token-at-a-time parser for Mini-PL.

    Completed statements are routed either to the output sink (when no
    loop is open) or into the body of the innermost open loop. Closing a
    loop routes the finished ForStatement by the same rule, so nested
    loops end up inside their enclosing loop.

    Usage:
        statements = BufferSink()
        parser = Parser(statements)
        parser.parse(BufferSource(tokens))

    Attributes:
        state: Current node of the state machine
        depth: Number of loops currently open
    """

    def __init__(self, sink: Sink[Statement]):
        self._sink = sink
        self._handlers: dict[ParseState, Callable[[Token], ParseState]] = {
            ParseState.NORMAL: self._parse_normal,
            ParseState.DECLARATION: self._parse_declaration,
            ParseState.ASSIGNMENT: self._parse_assignment,
            ParseState.FOR: self._parse_for_header,
            ParseState.READ: self._parse_read,
            ParseState.PRINT: self._parse_print,
            ParseState.ASSERT: self._parse_assert,
            ParseState.END_FOR: self._parse_end_for,
            ParseState.EXPECT_SEMICOLON: self._parse_expect_semicolon,
        }

        self._state = ParseState.NORMAL

        # Tokens of the statement in progress
        self._buffer: list[Token] = []

        # Innermost open loop is last
        self._loops: list[LoopFrame] = []

        # Index of the '..' token in the buffer while reading a for header
        self._range_index: Optional[int] = None

        self._last_token: Optional[Token] = None
        self._emitted = 0

    @property
    def state(self) -> ParseState:
        return self._state

    @property
    def depth(self) -> int:
        return len(self._loops)

    def parse(self, tokens: Source[Token]) -> None:
        """
        Consume every token of the source, then check for a clean end.

        Raises:
            MiniPLSyntaxError: On the first syntax problem found
        """
        while True:
            token = tokens.take()
            if token is None:
                break
            self.feed(token)
        self.finish()

    def feed(self, token: Token) -> None:
        """Advance the state machine by one token."""
        self._last_token = token
        self._state = self._handlers[self._state](token)

    def finish(self) -> None:
        """
        Signal end of input.

        Raises:
            UnexpectedEndOfInputError: If a statement or loop is still open
        """
        location = self._last_token.location if self._last_token else None

        if self._state != ParseState.NORMAL:
            raise UnexpectedEndOfInputError(_STATE_CONTEXT[self._state], location)

        if self._loops:
            frame = self._loops[-1]
            raise UnexpectedEndOfInputError(
                f"inside for loop over '{frame.variable}' (missing 'end for')",
                location,
            )

        logger.debug(f"Parsed {self._emitted} top-level statements")

    # =========================================================================
    # Statement Routing
    # =========================================================================

    def _route(self, statement: Statement) -> None:
        """Send a completed statement to the sink or the innermost loop body."""
        self._buffer.clear()
        if self._loops:
            self._loops[-1].body.append(statement)
            return
        self._sink.put(statement)
        self._emitted += 1
        logger.debug(f"Emitted {type(statement).__name__}")

    # =========================================================================
    # Token Checks
    # =========================================================================

    def _expect(self, token: Token, token_type: TokenType, expected: str) -> None:
        """Raise UnexpectedTokenError unless the token has the given type."""
        if token.type != token_type:
            raise UnexpectedTokenError(token.describe(), expected, token.location)

    def _expect_expression_token(self, token: Token, expected: str) -> None:
        """Raise UnexpectedTokenError unless the token can be part of an expression."""
        if token.type not in EXPRESSION_TOKEN_TYPES:
            raise UnexpectedTokenError(token.describe(), expected, token.location)

    # =========================================================================
    # State Handlers
    # =========================================================================

    def _parse_normal(self, token: Token) -> ParseState:
        if token.type == TokenType.IDENTIFIER:
            self._buffer.append(token)
            return ParseState.ASSIGNMENT

        # Empty statement
        if token.type == TokenType.SEMICOLON:
            return ParseState.NORMAL

        if token.type == TokenType.KEYWORD and token.value in STATEMENT_KEYWORDS:
            return STATEMENT_KEYWORDS[token.value]

        raise UnexpectedTokenError(
            token.describe(),
            "the start of a statement",
            token.location,
            hint="statements begin with an identifier or one of "
                 "'var', 'for', 'end', 'read', 'print', 'assert'",
        )

    # "var" IDENT ":" type [ ":=" expr ]
    def _parse_declaration(self, token: Token) -> ParseState:
        position = len(self._buffer)

        if position == 0:
            self._expect(token, TokenType.IDENTIFIER, "a variable name")
        elif position == 1:
            self._expect(token, TokenType.COLON, "':'")
        elif position == 2:
            if not (token.type == TokenType.KEYWORD and token.value in TYPE_KEYWORDS):
                raise UnexpectedTokenError(
                    token.describe(),
                    "a type ('int', 'string' or 'bool')",
                    token.location,
                )
        elif position == 3:
            if token.type == TokenType.SEMICOLON:
                self._emit_declaration(None)
                return ParseState.NORMAL
            self._expect(token, TokenType.ASSIGNMENT, "':=' or ';'")
        else:
            if token.type == TokenType.SEMICOLON:
                self._emit_declaration(parse_expression(self._buffer[4:], token.location))
                return ParseState.NORMAL
            self._expect_expression_token(token, "an expression or ';'")

        self._buffer.append(token)
        return ParseState.DECLARATION

    def _emit_declaration(self, initializer: Optional[Expression]) -> None:
        name = self._buffer[0].value
        var_type = TYPE_KEYWORDS[self._buffer[2].value]
        self._route(DeclarationStatement(name, var_type, initializer))

    # IDENT ":=" expr
    def _parse_assignment(self, token: Token) -> ParseState:
        if len(self._buffer) == 1:
            self._expect(token, TokenType.ASSIGNMENT, "':='")
        elif token.type == TokenType.SEMICOLON:
            name = self._buffer[0].value
            expression = parse_expression(self._buffer[2:], token.location)
            self._route(AssignmentStatement(name, expression))
            return ParseState.NORMAL
        else:
            self._expect_expression_token(token, "an expression or ';'")

        self._buffer.append(token)
        return ParseState.ASSIGNMENT

    # "for" IDENT "in" expr ".." expr "do"
    def _parse_for_header(self, token: Token) -> ParseState:
        position = len(self._buffer)

        if position == 0:
            self._expect(token, TokenType.IDENTIFIER, "a loop variable")
        elif position == 1:
            if not token.is_keyword(Keyword.IN):
                raise UnexpectedTokenError(token.describe(), "keyword 'in'", token.location)
        elif token.is_keyword(Keyword.DO):
            self._open_loop(token)
            return ParseState.NORMAL
        elif token.type == TokenType.RANGE:
            if self._range_index is not None:
                raise UnexpectedTokenError(
                    token.describe(),
                    "keyword 'do'",
                    token.location,
                    hint="a for loop header contains exactly one '..'",
                )
            self._range_index = position
        else:
            self._expect_expression_token(token, "an expression, '..' or 'do'")

        self._buffer.append(token)
        return ParseState.FOR

    def _open_loop(self, do_token: Token) -> None:
        if self._range_index is None:
            raise UnexpectedTokenError(
                do_token.describe(),
                "'..'",
                do_token.location,
                hint="a for loop range is written 'start .. end'",
            )

        range_token = self._buffer[self._range_index]
        start = parse_expression(self._buffer[2:self._range_index], range_token.location)
        end = parse_expression(self._buffer[self._range_index + 1:], do_token.location)
        frame = LoopFrame(self._buffer[0].value, start, end)

        self._loops.append(frame)
        self._buffer.clear()
        self._range_index = None
        logger.debug(f"Opened for loop over '{frame.variable}' (depth {len(self._loops)})")

    # "read" IDENT
    def _parse_read(self, token: Token) -> ParseState:
        if not self._buffer:
            self._expect(token, TokenType.IDENTIFIER, "a variable name")
            self._buffer.append(token)
            return ParseState.READ

        self._expect(token, TokenType.SEMICOLON, "';'")
        self._route(ReadStatement(self._buffer[0].value))
        return ParseState.NORMAL

    # "print" expr
    def _parse_print(self, token: Token) -> ParseState:
        if token.type == TokenType.SEMICOLON:
            self._route(PrintStatement(parse_expression(self._buffer, token.location)))
            return ParseState.NORMAL

        self._expect_expression_token(token, "an expression or ';'")
        self._buffer.append(token)
        return ParseState.PRINT

    # "assert" "(" expr ")"
    def _parse_assert(self, token: Token) -> ParseState:
        if not self._buffer:
            if not token.is_bracket(Side.LEFT):
                raise UnexpectedTokenError(token.describe(), "'('", token.location)
        elif token.type == TokenType.SEMICOLON:
            self._route(AssertStatement(self._assert_condition(token)))
            return ParseState.NORMAL
        else:
            self._expect_expression_token(token, "an expression or ';'")

        self._buffer.append(token)
        return ParseState.ASSERT

    def _assert_condition(self, semicolon: Token) -> Expression:
        """Parse the buffered '( expr )' of an assert statement."""
        close = find_matching_bracket(self._buffer, 0)
        if close is None:
            raise UnexpectedTokenError(semicolon.describe(), "')'", semicolon.location)
        if close != len(self._buffer) - 1:
            extra = self._buffer[close + 1]
            raise UnexpectedTokenError(
                extra.describe(),
                "';'",
                extra.location,
                hint="the whole assert condition must be inside one pair of parentheses",
            )
        return parse_expression(self._buffer[1:close], self._buffer[close].location)

    # "end" "for"
    def _parse_end_for(self, token: Token) -> ParseState:
        if not token.is_keyword(Keyword.FOR):
            raise UnexpectedTokenError(token.describe(), "keyword 'for' after 'end'", token.location)

        if not self._loops:
            raise MiniPLSyntaxError(
                "'end for' without a matching 'for'",
                token.location,
            )

        frame = self._loops.pop()
        logger.debug(
            f"Closed for loop over '{frame.variable}' with {len(frame.body)} statement(s)"
        )
        self._route(ForStatement(frame.variable, frame.start, frame.end, frame.body))
        return ParseState.EXPECT_SEMICOLON

    def _parse_expect_semicolon(self, token: Token) -> ParseState:
        self._expect(token, TokenType.SEMICOLON, "';' after 'end for'")
        return ParseState.NORMAL


# =============================================================================
# Expression Sub-Parser
# =============================================================================

def find_matching_bracket(tokens: Sequence[Token], open_index: int) -> Optional[int]:
    """
    Find the ')' closing the '(' at open_index.

    Returns:
        Index of the matching ')', or None if the brackets are unbalanced
    """
    depth = 0
    for index in range(open_index, len(tokens)):
        token = tokens[index]
        if token.is_bracket(Side.LEFT):
            depth += 1
        elif token.is_bracket(Side.RIGHT):
            depth -= 1
            if depth == 0:
                return index
    return None


@dataclass
class _Group:
    """Operands and operators collected between one pair of brackets."""
    opening: Optional[Token] = None
    parts: list[tuple[Token, Optional[Operand]]] = field(default_factory=list)

    @property
    def unary(self) -> bool:
        return bool(self.parts) and self.parts[0][0].is_operator(Operator.NOT)


def parse_expression(
    tokens: Sequence[Token],
    location: Optional[SourceLocation] = None,
) -> Expression:
    """
    Parse a complete token slice as one expression.

    Accepted shapes are ``opnd``, ``! opnd`` and ``opnd binop opnd``,
    where a parenthesized span counts as a single operand. The slice is
    read once, left to right, with an explicit stack of open brackets, so
    nesting depth is limited only by memory.

    Args:
        tokens: The tokens of exactly one expression
        location: Where to report an empty or truncated expression

    Raises:
        MiniPLSyntaxError: If the slice has any other shape
    """
    groups = [_Group()]

    for token in tokens:
        group = groups[-1]
        if token.is_bracket(Side.LEFT):
            _check_next(group, token, is_operand=True)
            groups.append(_Group(token))
        elif token.is_bracket(Side.RIGHT) and len(groups) > 1:
            groups.pop()
            inner = _close_group(group, token.location)
            groups[-1].parts.append((group.opening, ExpressionOperand(inner)))
        else:
            operand = _leaf_operand(token)
            _check_next(group, token, is_operand=operand is not None)
            group.parts.append((token, operand))

    if len(groups) > 1:
        raise MiniPLSyntaxError(
            "unbalanced '('",
            groups[-1].opening.location,
            hint="add a matching ')'",
        )
    return _close_group(groups[0], location)


def _leaf_operand(token: Token) -> Optional[Operand]:
    if token.type == TokenType.NUMBER:
        return IntegerOperand(token.value)
    if token.type == TokenType.STRING:
        return StringOperand(token.value)
    if token.type == TokenType.IDENTIFIER:
        return VariableOperand(token.value)
    return None


def _check_next(group: _Group, token: Token, is_operand: bool) -> None:
    """Raise UnexpectedTokenError unless the token may come next in the group."""
    position = len(group.parts)
    hint = None

    if position == 0:
        if is_operand or token.is_operator(Operator.NOT):
            return
        expected = "an operand"
    elif group.unary:
        if position == 1 and is_operand:
            return
        expected = "an operand" if position == 1 else "end of expression"
    elif position == 1:
        if not is_operand and token.type == TokenType.OPERATOR and token.value in BINARY_OPERATORS:
            return
        expected = "a binary operator"
    elif position == 2:
        if is_operand:
            return
        expected = "an operand"
    else:
        expected = "end of expression"

    if expected == "end of expression":
        hint = "an expression has at most one operator; use parentheses to combine more"
    raise UnexpectedTokenError(token.describe(), expected, token.location, hint=hint)


def _close_group(group: _Group, location: Optional[SourceLocation]) -> Expression:
    """Build the expression of a finished group."""
    parts = group.parts
    if not parts:
        raise MiniPLSyntaxError("expected an expression", location)

    if group.unary:
        if len(parts) == 1:
            raise MiniPLSyntaxError("expected an operand", parts[0][0].location)
        return UnaryExpression(UnaryOperator.NOT, parts[1][1])

    if len(parts) == 1:
        return SingletonExpression(parts[0][1])
    if len(parts) == 2:
        raise MiniPLSyntaxError("expected an operand", parts[1][0].location)
    return BinaryExpression(parts[0][1], BINARY_OPERATORS[parts[1][0].value], parts[2][1])


# =============================================================================
# Convenience Functions
# =============================================================================

def parse(tokens: Source[Token], statements: Sink[Statement]) -> None:
    """Parse every token of the source, pushing top-level statements into the sink."""
    Parser(statements).parse(tokens)


def parse_tokens(tokens: Iterable[Token]) -> list[Statement]:
    """Parse an in-memory token sequence into a statement list."""
    sink: BufferSink[Statement] = BufferSink()
    parse(BufferSource(tokens), sink)
    return sink.items


def parse_source(source: str, filename: str = "<input>") -> list[Statement]:
    """
    Scan and parse Mini-PL source text.

    Args:
        source: Mini-PL source text
        filename: Name used in error messages

    Returns:
        Top-level statements in program order

    Raises:
        LexicalError: If scanning fails
        MiniPLSyntaxError: If parsing fails
    """
    return parse_tokens(tokenize(source, filename))
