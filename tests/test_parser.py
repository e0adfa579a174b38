"""
Tests for the Mini-PL statement parser.

Covers every statement form, the three expression shapes, nested loop
routing, and the syntax errors raised for malformed input.
"""

import pytest

from minipl.ast import (
    AssertStatement,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    DeclarationStatement,
    ExpressionOperand,
    ForStatement,
    IntegerOperand,
    PrintStatement,
    ReadStatement,
    SingletonExpression,
    StringOperand,
    UnaryExpression,
    UnaryOperator,
    VariableOperand,
    VarType,
)
from minipl.errors import (
    ErrorKind,
    LexicalError,
    MiniPLSyntaxError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
)
from minipl.parser import ParseState, Parser, find_matching_bracket, parse, parse_expression, parse_source
from minipl.scanner import tokenize
from minipl.streams import BufferSink, BufferSource


# =============================================================================
# Helper Functions
# =============================================================================

def num(value: int) -> SingletonExpression:
    return SingletonExpression(IntegerOperand(value))


def var(name: str) -> SingletonExpression:
    return SingletonExpression(VariableOperand(name))


def binary(left, operator: BinaryOperator, right) -> BinaryExpression:
    return BinaryExpression(left, operator, right)


def expr(source: str):
    """Parse an expression written as Mini-PL source text."""
    return parse_expression(tokenize(source))


def assert_syntax_error(source: str, error_type=MiniPLSyntaxError) -> MiniPLSyntaxError:
    """Parse source and check it fails with the given syntax error type."""
    with pytest.raises(error_type) as exc_info:
        parse_source(source)
    assert exc_info.value.kind == ErrorKind.SYNTAX
    return exc_info.value


# =============================================================================
# End-to-End Programs
# =============================================================================

class TestPrograms:
    """Test complete programs from source text to statements."""

    def test_declaration_with_binary_initializer(self):
        assert parse_source("var x : int := 1 + 2;") == [
            DeclarationStatement(
                "x",
                VarType.INT,
                binary(IntegerOperand(1), BinaryOperator.PLUS, IntegerOperand(2)),
            )
        ]

    def test_assignment(self):
        assert parse_source("x := 5;") == [AssignmentStatement("x", num(5))]

    def test_for_loop(self):
        assert parse_source("for i in 1 .. 3 do print i; end for;") == [
            ForStatement("i", num(1), num(3), [PrintStatement(var("i"))])
        ]

    def test_read(self):
        assert parse_source("read y;") == [ReadStatement("y")]

    def test_assert_negation(self):
        assert parse_source("assert (!x);") == [
            AssertStatement(UnaryExpression(UnaryOperator.NOT, VariableOperand("x")))
        ]

    def test_nested_comment_before_declaration(self):
        source = "/* outer /* inner */ still outer */ var a : int;"
        assert parse_source(source) == [DeclarationStatement("a", VarType.INT, None)]

    def test_empty_program(self):
        assert parse_source("") == []

    def test_empty_statements_are_skipped(self):
        assert parse_source(";;;") == []

    def test_statements_keep_program_order(self):
        source = """
            var n : int;
            read n;
            var s : string := "total: ";
            print s;
            print n;
        """
        assert parse_source(source) == [
            DeclarationStatement("n", VarType.INT),
            ReadStatement("n"),
            DeclarationStatement("s", VarType.STRING, SingletonExpression(StringOperand("total: "))),
            PrintStatement(var("s")),
            PrintStatement(var("n")),
        ]

    def test_bool_declaration(self):
        assert parse_source("var b : bool := x = y;") == [
            DeclarationStatement(
                "b",
                VarType.BOOL,
                binary(VariableOperand("x"), BinaryOperator.EQUALS, VariableOperand("y")),
            )
        ]

    def test_declaration_without_initializer(self):
        assert parse_source("var s : string;") == [DeclarationStatement("s", VarType.STRING)]

    def test_print_string_literal(self):
        assert parse_source('print "hello\\n";') == [
            PrintStatement(SingletonExpression(StringOperand("hello\n")))
        ]

    def test_assert_comparison(self):
        assert parse_source("assert (x < 10);") == [
            AssertStatement(
                binary(VariableOperand("x"), BinaryOperator.LESS_THAN, IntegerOperand(10))
            )
        ]

    def test_parse_with_explicit_source_and_sink(self):
        """parse() reads from any Source and writes to any Sink."""
        sink = BufferSink()
        parse(BufferSource(tokenize("read a; read b;")), sink)
        assert sink.items == [ReadStatement("a"), ReadStatement("b")]


# =============================================================================
# For Loop Tests
# =============================================================================

class TestForLoops:
    """Test loop bodies and the routing of nested loops."""

    def test_nested_loops(self):
        source = """
            for i in 1 .. 2 do
                for j in i .. 3 do
                    print j;
                end for;
                print i;
            end for;
            print 0;
        """
        assert parse_source(source) == [
            ForStatement("i", num(1), num(2), [
                ForStatement("j", var("i"), num(3), [PrintStatement(var("j"))]),
                PrintStatement(var("i")),
            ]),
            PrintStatement(num(0)),
        ]

    def test_sibling_loops(self):
        source = "for a in 0 .. 1 do end for; for b in 0 .. 1 do end for;"
        assert parse_source(source) == [
            ForStatement("a", num(0), num(1), []),
            ForStatement("b", num(0), num(1), []),
        ]

    def test_empty_body(self):
        assert parse_source("for i in 1 .. 3 do end for;") == [
            ForStatement("i", num(1), num(3), [])
        ]

    def test_body_with_empty_statements(self):
        assert parse_source("for i in 1 .. 3 do ; ; end for;") == [
            ForStatement("i", num(1), num(3), [])
        ]

    def test_range_bounds_are_expressions(self):
        assert parse_source("for i in (a) .. n - 1 do end for;") == [
            ForStatement(
                "i",
                SingletonExpression(ExpressionOperand(var("a"))),
                binary(VariableOperand("n"), BinaryOperator.MINUS, IntegerOperand(1)),
                [],
            )
        ]

    def test_three_levels_deep(self):
        source = (
            "for a in 1 .. 1 do for b in 1 .. 1 do for c in 1 .. 1 do "
            "read c; end for; end for; end for;"
        )
        [outer] = parse_source(source)
        middle = outer.body[0]
        inner = middle.body[0]
        assert (outer.variable, middle.variable, inner.variable) == ("a", "b", "c")
        assert inner.body == [ReadStatement("c")]

    def test_body_statements_are_not_emitted_early(self):
        """Nothing reaches the sink until the outermost loop closes."""
        sink = BufferSink()
        parser = Parser(sink)
        for token in tokenize("for i in 1 .. 3 do print i;"):
            parser.feed(token)
        assert sink.items == []
        assert parser.depth == 1
        assert parser.state == ParseState.NORMAL

        for token in tokenize("end for;"):
            parser.feed(token)
        parser.finish()
        assert len(sink.items) == 1
        assert parser.depth == 0


class TestParserStates:
    """Test the state machine one token at a time."""

    @pytest.mark.parametrize("source,state", [
        ("var", ParseState.DECLARATION),
        ("x", ParseState.ASSIGNMENT),
        ("for", ParseState.FOR),
        ("read", ParseState.READ),
        ("print", ParseState.PRINT),
        ("assert", ParseState.ASSERT),
        ("end", ParseState.END_FOR),
        (";", ParseState.NORMAL),
    ])
    def test_first_token_selects_state(self, source, state):
        parser = Parser(BufferSink())
        for token in tokenize(source):
            parser.feed(token)
        assert parser.state == state

    def test_after_end_for_expects_semicolon(self):
        parser = Parser(BufferSink())
        for token in tokenize("for i in 1 .. 2 do end for"):
            parser.feed(token)
        assert parser.state == ParseState.EXPECT_SEMICOLON
        assert parser.depth == 0


# =============================================================================
# Expression Tests
# =============================================================================

class TestExpressions:
    """Test the three expression shapes and parenthesized operands."""

    def test_integer_operand(self):
        assert expr("42") == num(42)

    def test_string_operand(self):
        assert expr('"hi"') == SingletonExpression(StringOperand("hi"))

    def test_variable_operand(self):
        assert expr("count") == var("count")

    @pytest.mark.parametrize("symbol,operator", [
        ("+", BinaryOperator.PLUS),
        ("-", BinaryOperator.MINUS),
        ("*", BinaryOperator.MULTIPLY),
        ("/", BinaryOperator.DIVIDE),
        ("<", BinaryOperator.LESS_THAN),
        ("=", BinaryOperator.EQUALS),
        ("&", BinaryOperator.AND),
    ])
    def test_binary_operators(self, symbol, operator):
        assert expr(f"a {symbol} 2") == binary(VariableOperand("a"), operator, IntegerOperand(2))

    def test_unary_not(self):
        assert expr("!done") == UnaryExpression(UnaryOperator.NOT, VariableOperand("done"))

    def test_not_of_parenthesized(self):
        assert expr("!(a & b)") == UnaryExpression(
            UnaryOperator.NOT,
            ExpressionOperand(binary(VariableOperand("a"), BinaryOperator.AND, VariableOperand("b"))),
        )

    def test_parenthesized_operands(self):
        assert expr("(1 + 2) * (3 - 4)") == binary(
            ExpressionOperand(binary(IntegerOperand(1), BinaryOperator.PLUS, IntegerOperand(2))),
            BinaryOperator.MULTIPLY,
            ExpressionOperand(binary(IntegerOperand(3), BinaryOperator.MINUS, IntegerOperand(4))),
        )

    def test_redundant_parentheses(self):
        assert expr("((5))") == SingletonExpression(
            ExpressionOperand(SingletonExpression(ExpressionOperand(num(5))))
        )

    @pytest.mark.parametrize("depth", [600, 5000])
    def test_deeply_nested_parentheses(self, depth):
        """Nesting far past the interpreter's recursion limit still parses."""
        [statement] = parse_source("x := " + "(" * depth + "1" + ")" * depth + ";")
        expression = statement.expression
        for _ in range(depth):
            assert isinstance(expression, SingletonExpression)
            assert isinstance(expression.operand, ExpressionOperand)
            expression = expression.operand.expression
        assert expression == num(1)

    def test_deep_nesting_on_both_sides(self):
        depth = 2000
        [statement] = parse_source(
            "x := " + "(" * depth + "a" + ")" * depth + " < " + "(" * depth + "b" + ")" * depth + ";"
        )
        assert statement.expression.operator == BinaryOperator.LESS_THAN

    def test_deep_unbalanced_parentheses(self):
        with pytest.raises(MiniPLSyntaxError, match="unbalanced"):
            parse_source("x := " + "(" * 3000 + "1" + ")" * 2999 + ";")

    def test_stray_closing_parenthesis(self):
        with pytest.raises(UnexpectedTokenError, match="a binary operator"):
            expr("a)")

    def test_find_matching_bracket(self):
        tokens = tokenize("(a + (b)) * c")
        assert find_matching_bracket(tokens, 0) == 6
        assert find_matching_bracket(tokens, 3) == 5

    def test_find_matching_bracket_unbalanced(self):
        assert find_matching_bracket(tokenize("((a)"), 0) is None

    def test_empty_expression(self):
        with pytest.raises(MiniPLSyntaxError, match="expected an expression"):
            parse_expression([])

    def test_two_operators_need_parentheses(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            expr("1 + 2 + 3")
        assert "end of expression" in exc_info.value.message
        assert exc_info.value.hint is not None

    def test_missing_operator(self):
        with pytest.raises(UnexpectedTokenError, match="a binary operator"):
            expr("1 2")

    def test_not_is_not_binary(self):
        with pytest.raises(UnexpectedTokenError, match="a binary operator"):
            expr("a ! b")

    def test_missing_right_operand(self):
        with pytest.raises(MiniPLSyntaxError, match="expected an operand"):
            expr("a +")

    def test_minus_is_not_unary(self):
        with pytest.raises(UnexpectedTokenError, match="an operand"):
            expr("-1")

    def test_double_not(self):
        with pytest.raises(UnexpectedTokenError, match="an operand"):
            expr("!!a")

    def test_unbalanced_parenthesis(self):
        with pytest.raises(MiniPLSyntaxError, match="unbalanced"):
            expr("(1 + 2")

    def test_empty_parentheses(self):
        with pytest.raises(MiniPLSyntaxError, match="expected an expression"):
            expr("()")


# =============================================================================
# Syntax Error Tests
# =============================================================================

class TestSyntaxErrors:
    """Test that malformed statements raise the right errors."""

    def test_statement_cannot_start_with_do(self):
        error = assert_syntax_error("do;", UnexpectedTokenError)
        assert "the start of a statement" in error.message

    def test_statement_cannot_start_with_number(self):
        assert_syntax_error("5;", UnexpectedTokenError)

    def test_assignment_needs_assign_operator(self):
        error = assert_syntax_error("x 5;", UnexpectedTokenError)
        assert error.message == "expected ':=', found number 5"

    def test_assignment_with_equals(self):
        assert_syntax_error("x = 5;", UnexpectedTokenError)

    def test_assignment_without_expression(self):
        assert_syntax_error("x := ;")

    def test_keyword_inside_expression(self):
        assert_syntax_error("x := var;", UnexpectedTokenError)

    def test_declaration_needs_name(self):
        assert_syntax_error("var : int;", UnexpectedTokenError)

    def test_declaration_needs_colon(self):
        assert_syntax_error("var x int;", UnexpectedTokenError)

    def test_declaration_unknown_type(self):
        error = assert_syntax_error("var x : float;", UnexpectedTokenError)
        assert "a type" in error.message

    def test_declaration_with_equals(self):
        error = assert_syntax_error("var x : int = 5;", UnexpectedTokenError)
        assert "':=' or ';'" in error.message

    def test_declaration_with_empty_initializer(self):
        assert_syntax_error("var x : int := ;")

    def test_for_needs_loop_variable(self):
        assert_syntax_error("for 1 in 1 .. 2 do end for;", UnexpectedTokenError)

    def test_for_needs_in(self):
        assert_syntax_error("for i 1 .. 2 do end for;", UnexpectedTokenError)

    def test_for_without_range(self):
        error = assert_syntax_error("for i in 1 2 do end for;", UnexpectedTokenError)
        assert error.expected == "'..'"

    def test_for_with_two_ranges(self):
        error = assert_syntax_error("for i in 1 .. 2 .. 3 do end for;", UnexpectedTokenError)
        assert "exactly one '..'" in error.hint

    def test_for_with_empty_start(self):
        assert_syntax_error("for i in .. 3 do end for;")

    def test_for_with_empty_end(self):
        assert_syntax_error("for i in 1 .. do end for;")

    def test_end_for_without_loop(self):
        error = assert_syntax_error("end for;")
        assert "without a matching 'for'" in error.message

    def test_extra_end_for(self):
        assert_syntax_error("for i in 1 .. 2 do end for; end for;")

    def test_end_needs_for(self):
        assert_syntax_error("for i in 1 .. 2 do end x;", UnexpectedTokenError)

    def test_end_for_needs_semicolon(self):
        error = assert_syntax_error("for i in 1 .. 2 do end for print i;", UnexpectedTokenError)
        assert "after 'end for'" in error.message

    def test_unclosed_loop(self):
        error = assert_syntax_error("for i in 1 .. 2 do print i;", UnexpectedEndOfInputError)
        assert "missing 'end for'" in error.message

    def test_unclosed_statement(self):
        error = assert_syntax_error("x := 1", UnexpectedEndOfInputError)
        assert "in assignment" in error.message

    def test_unclosed_for_header(self):
        assert_syntax_error("for i in 1 .. 2", UnexpectedEndOfInputError)

    def test_read_needs_identifier(self):
        assert_syntax_error("read 5;", UnexpectedTokenError)

    def test_read_takes_one_identifier(self):
        assert_syntax_error("read x y;", UnexpectedTokenError)

    def test_print_without_expression(self):
        assert_syntax_error("print;")

    def test_assert_needs_parentheses(self):
        error = assert_syntax_error("assert x;", UnexpectedTokenError)
        assert error.expected == "'('"

    def test_assert_unclosed(self):
        assert_syntax_error("assert (x;", UnexpectedTokenError)

    def test_assert_condition_must_be_one_group(self):
        error = assert_syntax_error("assert (x) & (y);", UnexpectedTokenError)
        assert error.found == "'&'"

    def test_error_reports_location(self):
        error = assert_syntax_error("x := 1;\ny 2;", UnexpectedTokenError)
        assert (error.location.line, error.location.column) == (2, 3)

    def test_lexical_errors_pass_through(self):
        with pytest.raises(LexicalError):
            parse_source('print "unterminated;')
