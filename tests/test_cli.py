"""
Tests for the mplc command-line tool.
"""

import pytest
from click.testing import CliRunner

from minipl import __version__
from minipl.cli.errors import ExitCode
from minipl.cli.mplc import main


LOOP_PROGRAM = """\
var x : int := 1 + 2;
for i in 1 .. 3 do
    print i;
end for;
assert (!x);
"""

LOOP_TREE = """\
Program
  Declare x : int := 1 + 2
  For i in 1 .. 3
    Print i
  Assert !x
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write_source(tmp_path):
    """Write a Mini-PL program to a temporary file and return its path."""
    def write(text: str, name: str = "prog.mpl") -> str:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return write


class TestTokensCommand:
    """Test 'mplc tokens'."""

    def test_prints_one_token_per_line(self, runner, write_source):
        path = write_source('var s : string := "a";')
        result = runner.invoke(main, ["tokens", path])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.splitlines() == [
            "1:1\tKEYWORD\tvar",
            "1:5\tIDENTIFIER\ts",
            "1:7\tCOLON\t:",
            "1:9\tKEYWORD\tstring",
            "1:16\tASSIGNMENT\t:=",
            "1:19\tSTRING\t'a'",
            "1:22\tSEMICOLON\t;",
        ]

    def test_lexical_error(self, runner, write_source):
        path = write_source("x := $;")
        result = runner.invoke(main, ["tokens", path])
        assert result.exit_code == ExitCode.SOURCE_ERROR
        assert "invalid character '$'" in result.output


class TestAstCommand:
    """Test 'mplc ast'."""

    def test_prints_tree(self, runner, write_source):
        path = write_source(LOOP_PROGRAM)
        result = runner.invoke(main, ["ast", path])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == LOOP_TREE

    def test_threaded_output_matches(self, runner, write_source):
        path = write_source(LOOP_PROGRAM)
        result = runner.invoke(main, ["ast", "--threaded", "--queue-size", "1", path])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == LOOP_TREE

    def test_syntax_error_exit_code(self, runner, write_source):
        path = write_source("end for;")
        result = runner.invoke(main, ["ast", path])
        assert result.exit_code == ExitCode.SOURCE_ERROR
        assert "'end for' without a matching 'for'" in result.output
        assert path in result.output

    def test_deeply_nested_expression(self, runner, write_source):
        """Valid deep nesting is printed, not reported as an internal error."""
        path = write_source("x := " + "(" * 1000 + "1" + ")" * 1000 + ";")
        result = runner.invoke(main, ["ast", path])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == "Program\n  Assign x := " + "(" * 1000 + "1" + ")" * 1000 + "\n"

    def test_queue_size_must_be_positive(self, runner, write_source):
        path = write_source("read y;")
        result = runner.invoke(main, ["ast", "--threaded", "--queue-size", "0", path])
        assert result.exit_code == ExitCode.INVALID_ARGS


class TestCheckCommand:
    """Test 'mplc check'."""

    def test_ok(self, runner, write_source):
        path = write_source(LOOP_PROGRAM)
        result = runner.invoke(main, ["check", path])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.strip() == f"OK: {path}: 3 statement(s)"

    def test_reports_first_error(self, runner, write_source):
        path = write_source("var x : float;")
        result = runner.invoke(main, ["check", path])
        assert result.exit_code == ExitCode.SOURCE_ERROR
        assert "expected a type" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path / "missing.mpl")])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_invalid_utf8(self, runner, tmp_path):
        path = tmp_path / "bad.mpl"
        path.write_bytes(b"print \xff;")
        result = runner.invoke(main, ["check", str(path)])
        assert result.exit_code == ExitCode.INVALID_ARGS
        assert "not valid UTF-8" in result.output


class TestMainGroup:
    """Test options of the top-level group."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("tokens", "ast", "check"):
            assert command in result.output

    def test_verbose_flag_accepted(self, runner, write_source):
        path = write_source("read y;")
        result = runner.invoke(main, ["-v", "check", path])
        assert result.exit_code == ExitCode.SUCCESS
