"""
Mini-PL Front-End
=================

This package implements the lexical and syntactic front-end of a
compiler for Mini-PL, a small imperative teaching language with
variable declarations, assignments, counted for loops, I/O statements
and assertions.

Pipeline
--------
    Source text → Scanner → tokens → Parser → statements (AST)

Main Components
---------------
- **scanner**: finite-state scanner producing tokens
- **parser**: state-machine parser producing statements
- **ast**: AST node types, visitor and pretty printer
- **streams**: source/sink endpoints, including a bounded cross-thread channel
- **pipeline**: runs both stages sequentially or on two threads

Quick Start
-----------
>>> from minipl import parse_source
>>> parse_source("read y;")
[ReadStatement(name='y')]

Or use the command-line tool:
    $ mplc ast program.mpl
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from minipl.errors import (
    SourceLocation,
    ErrorKind,
    MiniPLError,
    LexicalError,
    InvalidCharacterError,
    InvalidEscapeError,
    UnterminatedError,
    MiniPLSyntaxError,
    UnexpectedTokenError,
    UnexpectedEndOfInputError,
)
from minipl.streams import (
    Source,
    Sink,
    BufferSource,
    BufferSink,
    ChannelSource,
    ChannelSink,
    ChannelClosedError,
    channel,
)
from minipl.scanner import (
    Scanner,
    ScanMode,
    Token,
    TokenType,
    Side,
    Operator,
    Keyword,
    KEYWORDS,
    tokenize,
)
from minipl.ast import (
    ASTNode,
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
    ASTVisitor,
    ASTPrinter,
)
from minipl.parser import (
    Parser,
    ParseState,
    parse,
    parse_expression,
    parse_tokens,
    parse_source,
)
from minipl.pipeline import (
    FrontEnd,
    FrontEndOptions,
    FrontEndResult,
    run_frontend,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "SourceLocation",
    "ErrorKind",
    "MiniPLError",
    "LexicalError",
    "InvalidCharacterError",
    "InvalidEscapeError",
    "UnterminatedError",
    "MiniPLSyntaxError",
    "UnexpectedTokenError",
    "UnexpectedEndOfInputError",
    # Streams
    "Source",
    "Sink",
    "BufferSource",
    "BufferSink",
    "ChannelSource",
    "ChannelSink",
    "ChannelClosedError",
    "channel",
    # Scanner
    "Scanner",
    "ScanMode",
    "Token",
    "TokenType",
    "Side",
    "Operator",
    "Keyword",
    "KEYWORDS",
    "tokenize",
    # AST
    "ASTNode",
    "Statement",
    "DeclarationStatement",
    "AssignmentStatement",
    "ForStatement",
    "ReadStatement",
    "PrintStatement",
    "AssertStatement",
    "Expression",
    "BinaryExpression",
    "UnaryExpression",
    "SingletonExpression",
    "Operand",
    "IntegerOperand",
    "StringOperand",
    "VariableOperand",
    "ExpressionOperand",
    "BinaryOperator",
    "UnaryOperator",
    "VarType",
    "ASTVisitor",
    "ASTPrinter",
    # Parser
    "Parser",
    "ParseState",
    "parse",
    "parse_expression",
    "parse_tokens",
    "parse_source",
    # Pipeline
    "FrontEnd",
    "FrontEndOptions",
    "FrontEndResult",
    "run_frontend",
]
