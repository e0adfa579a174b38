"""
Mini-PL Front-End Pipeline
==========================

This module wires the scanner and the parser together:

    Source text → Scanner → tokens → Parser → statements

Two execution modes produce identical results:

- **Sequential** (default): the scanner fills an in-memory buffer, then
  the parser drains it.
- **Threaded**: the scanner runs on a worker thread and feeds a bounded
  channel; the parser consumes it on the calling thread. The bounded
  queue provides back-pressure in both directions.

Usage
-----
>>> from minipl.pipeline import run_frontend, FrontEndOptions
>>> run_frontend("read y;")
[ReadStatement(name='y')]
>>> run_frontend("read y;", FrontEndOptions(threaded=True, queue_size=4))
[ReadStatement(name='y')]
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from minipl.ast import Statement
from minipl.errors import MiniPLError
from minipl.parser import Parser
from minipl.scanner import Scanner, Token
from minipl.streams import BufferSink, BufferSource, ChannelClosedError, Sink, channel

logger = logging.getLogger(__name__)


@dataclass
class FrontEndOptions:
    """
    Front-end configuration options.

    Attributes:
        filename: Name used in token locations and error messages
        threaded: Run the scanner on a worker thread behind a bounded queue
        queue_size: Capacity of the token queue in threaded mode (>= 1)
    """
    filename: str = "<input>"
    threaded: bool = False
    queue_size: int = 64

    def __post_init__(self):
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be at least 1, got {self.queue_size}")


@dataclass
class FrontEndResult:
    """
    Outcome of a front-end run.

    Attributes:
        statements: Top-level statements in program order
        token_count: Number of tokens passed from scanner to parser
    """
    statements: list[Statement] = field(default_factory=list)
    token_count: int = 0


class _CountingSink:
    """Wraps a sink and counts the items passing through it."""

    def __init__(self, sink: Sink[Token]):
        self._sink = sink
        self.count = 0

    def put(self, item: Token) -> None:
        self._sink.put(item)
        self.count += 1


class FrontEnd:
    """
    Runs the scanner and the parser over one source text.

    Example:
        front_end = FrontEnd(FrontEndOptions(threaded=True))
        result = front_end.run(source)
        print(len(result.statements))

    Attributes:
        options: Front-end configuration options
    """

    def __init__(self, options: Optional[FrontEndOptions] = None):
        self.options = options or FrontEndOptions()

    def run(self, source: str) -> FrontEndResult:
        """
        Scan and parse source text.

        Raises:
            LexicalError: If scanning fails
            MiniPLSyntaxError: If parsing fails
        """
        if self.options.threaded:
            logger.debug(
                f"Running front-end on {self.options.filename} "
                f"(threaded, queue size {self.options.queue_size})"
            )
            return self._run_threaded(source)
        logger.debug(f"Running front-end on {self.options.filename} (sequential)")
        return self._run_sequential(source)

    def _run_sequential(self, source: str) -> FrontEndResult:
        tokens: BufferSink[Token] = BufferSink()
        Scanner(self.options.filename).scan(source, tokens)

        statements: BufferSink[Statement] = BufferSink()
        Parser(statements).parse(BufferSource(tokens.items))
        return FrontEndResult(statements.items, len(tokens))

    def _run_threaded(self, source: str) -> FrontEndResult:
        token_sink, token_source = channel(self.options.queue_size)
        counter = _CountingSink(token_sink)
        failures: list[MiniPLError] = []

        def scan_worker() -> None:
            try:
                Scanner(self.options.filename).scan(source, counter)
            except ChannelClosedError:
                logger.debug("Parser stopped early; scanner thread exiting")
            except MiniPLError as e:
                failures.append(e)
            finally:
                token_sink.close()

        worker = threading.Thread(target=scan_worker, name="minipl-scanner", daemon=True)
        worker.start()

        statements: BufferSink[Statement] = BufferSink()
        try:
            Parser(statements).parse(token_source)
        except MiniPLError:
            token_source.close()
            worker.join()
            # A lexical error upstream explains whatever the parser saw
            if failures:
                raise failures[0] from None
            raise
        finally:
            token_source.close()
            worker.join()

        if failures:
            raise failures[0]
        return FrontEndResult(statements.items, counter.count)


def run_frontend(source: str, options: Optional[FrontEndOptions] = None) -> list[Statement]:
    """
    Scan and parse source text, returning the top-level statements.

    Args:
        source: Mini-PL source text
        options: Front-end configuration (uses defaults if None)
    """
    return FrontEnd(options).run(source).statements
