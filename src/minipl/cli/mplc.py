"""
mplc - Mini-PL Front-End Command-Line Interface
===============================================

This module implements the command-line interface for the Mini-PL
front-end. It reads a source file, runs the scanner and parser, and
prints the result for inspection.

Commands
--------
- **tokens**: Print the token stream, one token per line
- **ast**: Print the parsed statements as an indented tree
- **check**: Parse the file and report success or the first error

Usage Examples
--------------
Dump tokens:
    $ mplc tokens hello.mpl

Dump the AST, scanning on a separate thread:
    $ mplc ast --threaded --queue-size 16 hello.mpl

Verbose mode:
    $ mplc -v check hello.mpl
"""

import logging
from pathlib import Path

import click

from minipl import __version__
from minipl.ast import ASTPrinter
from minipl.cli.errors import handle_cli_exception
from minipl.pipeline import FrontEnd, FrontEndOptions
from minipl.scanner import Scanner, Token, TokenType
from minipl.streams import BufferSink

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores options common to all commands.
    """

    def __init__(self) -> None:
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(name)s: %(message)s" if self.verbose else "%(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


def read_source(path: Path) -> str:
    """Read a Mini-PL source file as UTF-8 text."""
    return path.read_text(encoding="utf-8")


def format_token(token: Token) -> str:
    """One line of 'mplc tokens' output."""
    text = repr(token.value) if token.type == TokenType.STRING else token.lexeme
    return f"{token.line}:{token.column}\t{token.type.name}\t{text}"


SOURCE_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(__version__, "--version", "-V", prog_name="mplc")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Mini-PL front-end: scan and parse Mini-PL programs.

    \b
    Commands:
      tokens   Print the token stream
      ast      Print the abstract syntax tree
      check    Report whether the program parses

    \b
    Examples:
      mplc tokens hello.mpl
      mplc ast --threaded hello.mpl
    """
    ctx.verbose = verbose
    ctx.setup_logging()


# =============================================================================
# Tokens Command
# =============================================================================

@main.command("tokens")
@click.argument("input_file", type=SOURCE_FILE)
@pass_context
def tokens_command(ctx: Context, input_file: Path) -> None:
    """
    Print the tokens of INPUT_FILE, one per line.

    Each line shows line:column, the token type and the token text.
    """
    try:
        source = read_source(input_file)
        sink: BufferSink[Token] = BufferSink()
        Scanner(str(input_file)).scan(source, sink)
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    for token in sink.items:
        click.echo(format_token(token))


# =============================================================================
# AST Command
# =============================================================================

@main.command("ast")
@click.argument("input_file", type=SOURCE_FILE)
@click.option(
    "--threaded/--sequential",
    default=False,
    help="Run the scanner on its own thread (default: sequential)",
)
@click.option(
    "-q", "--queue-size",
    type=click.IntRange(min=1),
    default=64,
    show_default=True,
    help="Token queue capacity in threaded mode",
)
@pass_context
def ast_command(ctx: Context, input_file: Path, threaded: bool, queue_size: int) -> None:
    """
    Print the abstract syntax tree of INPUT_FILE.

    \b
    Example:
        mplc ast loops.mpl
    """
    options = FrontEndOptions(
        filename=str(input_file),
        threaded=threaded,
        queue_size=queue_size,
    )
    try:
        result = FrontEnd(options).run(read_source(input_file))
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    click.echo(ASTPrinter().print(result.statements))


# =============================================================================
# Check Command
# =============================================================================

@main.command("check")
@click.argument("input_file", type=SOURCE_FILE)
@pass_context
def check_command(ctx: Context, input_file: Path) -> None:
    """
    Scan and parse INPUT_FILE, reporting the first error if any.
    """
    try:
        result = FrontEnd(FrontEndOptions(filename=str(input_file))).run(
            read_source(input_file)
        )
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    logger.debug(f"{input_file}: {result.token_count} tokens")
    click.echo(f"OK: {input_file}: {len(result.statements)} statement(s)")


if __name__ == "__main__":
    main()
