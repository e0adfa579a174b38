"""
Mini-PL Abstract Syntax Tree (AST) Definitions
==============================================

This module defines the AST node types produced by the Mini-PL parser.
A program is an ordered list of statements; there is no separate root
node.

Node Hierarchy
--------------
ASTNode (base)
├── Statements
│   ├── DeclarationStatement - var x : int [:= expr]
│   ├── AssignmentStatement - x := expr
│   ├── ForStatement - for i in expr .. expr do ... end for
│   ├── ReadStatement - read x
│   ├── PrintStatement - print expr
│   └── AssertStatement - assert (expr)
├── Expressions
│   ├── BinaryExpression - operand op operand
│   ├── UnaryExpression - !operand
│   └── SingletonExpression - operand
└── Operands
    ├── IntegerOperand - integer literal
    ├── StringOperand - string literal
    ├── VariableOperand - variable reference
    └── ExpressionOperand - parenthesized sub-expression

Design Notes
------------
- All nodes are dataclasses; equality is structural
- Nodes own their children: the tree is acyclic
- Source locations are not kept in the tree
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from minipl.scanner import format_integer


# =============================================================================
# Enumerations
# =============================================================================

class VarType(Enum):
    """Declared type of a variable."""
    INT = "int"
    STRING = "string"
    BOOL = "bool"


class BinaryOperator(Enum):
    """Binary operator types. The value is the source lexeme."""
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    LESS_THAN = "<"
    EQUALS = "="
    AND = "&"


class UnaryOperator(Enum):
    """Unary operator types."""
    NOT = "!"


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """Base class for all AST nodes."""
    pass


@dataclass
class Operand(ASTNode):
    """Base class for the atoms an expression is built from."""
    pass


@dataclass
class Expression(ASTNode):
    """Base class for all expression nodes."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for all statement nodes."""
    pass


# =============================================================================
# Operand Nodes
# =============================================================================

@dataclass
class IntegerOperand(Operand):
    """Integer literal (arbitrary precision, never negative)."""
    value: int


@dataclass
class StringOperand(Operand):
    """String literal with escapes already decoded."""
    value: str


@dataclass
class VariableOperand(Operand):
    """Reference to a variable by name."""
    name: str


@dataclass
class ExpressionOperand(Operand):
    """Parenthesized sub-expression used as an operand."""
    expression: Expression


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class BinaryExpression(Expression):
    """
    Binary operation expression (a op b).

    Attributes:
        left: Left operand
        operator: The binary operator
        right: Right operand
    """
    left: Operand
    operator: BinaryOperator
    right: Operand


@dataclass
class UnaryExpression(Expression):
    """
    Unary operation expression (op x).

    Attributes:
        operator: The unary operator
        operand: The operand
    """
    operator: UnaryOperator
    operand: Operand


@dataclass
class SingletonExpression(Expression):
    """Expression consisting of a single operand."""
    operand: Operand


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class DeclarationStatement(Statement):
    """
    Variable declaration.

    Represents declarations like:
        var x : int;
        var s : string := "hi";

    Attributes:
        name: Variable name
        var_type: Declared type
        initializer: Optional initialization expression
    """
    name: str
    var_type: VarType
    initializer: Optional[Expression] = None


@dataclass
class AssignmentStatement(Statement):
    """
    Assignment to an existing variable (x := expr).

    Attributes:
        name: Target variable
        expression: Value being assigned
    """
    name: str
    expression: Expression


@dataclass
class ForStatement(Statement):
    """
    Counted loop.

    Attributes:
        variable: Loop control variable
        start: Expression for the first value
        end: Expression for the last value
        body: Statements between 'do' and 'end for', in order
    """
    variable: str
    start: Expression
    end: Expression
    body: list[Statement] = field(default_factory=list)


@dataclass
class ReadStatement(Statement):
    """Read a value from input into a variable."""
    name: str


@dataclass
class PrintStatement(Statement):
    """Print the value of an expression."""
    expression: Expression


@dataclass
class AssertStatement(Statement):
    """Assert that an expression holds."""
    expression: Expression


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Provides a visitor pattern for traversing the AST. Subclasses
    override visit_* methods for the node types they care about.

    Usage:
        class VariableCollector(ASTVisitor):
            def __init__(self):
                self.names = set()

            def visit_VariableOperand(self, node):
                self.names.add(node.name)

        collector = VariableCollector()
        for statement in statements:
            collector.visit(statement)
    """

    def visit(self, node: ASTNode):
        """
        Visit a node by dispatching to the appropriate method.

        Args:
            node: The AST node to visit

        Returns:
            The result of the visit method (varies by node type)
        """
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """Visit all children of the node."""
        for field_value in node.__dict__.values():
            if isinstance(field_value, ASTNode):
                self.visit(field_value)
            elif isinstance(field_value, list):
                for item in field_value:
                    if isinstance(item, ASTNode):
                        self.visit(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Produces one line per statement, indenting loop bodies.

    Usage:
        printer = ASTPrinter()
        output = printer.print(statements)
        print(output)
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, statements: list[Statement]) -> str:
        """Print a statement list and return it as a string."""
        self.output = []
        self.indent_level = 0
        self._emit("Program")
        self._indent()
        for statement in statements:
            self.visit(statement)
        self._dedent()
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        """Emit a line with current indentation."""
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _indent(self) -> None:
        self.indent_level += 1

    def _dedent(self) -> None:
        self.indent_level = max(0, self.indent_level - 1)

    def visit_DeclarationStatement(self, node: DeclarationStatement):
        init = f" := {expression_str(node.initializer)}" if node.initializer else ""
        self._emit(f"Declare {node.name} : {node.var_type.value}{init}")

    def visit_AssignmentStatement(self, node: AssignmentStatement):
        self._emit(f"Assign {node.name} := {expression_str(node.expression)}")

    def visit_ForStatement(self, node: ForStatement):
        self._emit(
            f"For {node.variable} in {expression_str(node.start)} .. {expression_str(node.end)}"
        )
        self._indent()
        for statement in node.body:
            self.visit(statement)
        self._dedent()

    def visit_ReadStatement(self, node: ReadStatement):
        self._emit(f"Read {node.name}")

    def visit_PrintStatement(self, node: PrintStatement):
        self._emit(f"Print {expression_str(node.expression)}")

    def visit_AssertStatement(self, node: AssertStatement):
        self._emit(f"Assert {expression_str(node.expression)}")


def operand_str(operand: Operand) -> str:
    """Convert an operand to source-like text."""
    return _render(operand)


def expression_str(expr: Expression) -> str:
    """Convert an expression to source-like text."""
    return _render(expr)


def _render(node: ASTNode) -> str:
    # Explicit work stack: parenthesized operands may nest arbitrarily deep
    pieces: list[str] = []
    pending: list = [node]

    while pending:
        item = pending.pop()
        if isinstance(item, str):
            pieces.append(item)
        elif isinstance(item, SingletonExpression):
            pending.append(item.operand)
        elif isinstance(item, UnaryExpression):
            pending.extend([item.operand, item.operator.value])
        elif isinstance(item, BinaryExpression):
            pending.extend([item.right, f" {item.operator.value} ", item.left])
        elif isinstance(item, ExpressionOperand):
            pending.extend([")", item.expression, "("])
        elif isinstance(item, IntegerOperand):
            pieces.append(format_integer(item.value))
        elif isinstance(item, StringOperand):
            pieces.append(f'"{item.value}"')
        elif isinstance(item, VariableOperand):
            pieces.append(item.name)
        else:
            pieces.append(f"<{type(item).__name__}>")

    return "".join(pieces)
