"""
Tern AST - The closed set of syntax tree nodes produced by the parser.

Statements and expressions are separate families; the semantic checker has one
walker per concrete class. Positions are informational only and never take
part in equality, so trees built by hand in tests compare equal to parsed ones.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Node:
    line: Optional[int] = field(default=None, kw_only=True, compare=False, repr=False)
    column: Optional[int] = field(
        default=None, kw_only=True, compare=False, repr=False
    )


class Statement(Node):
    pass


class Expression(Node):
    pass


# --- Expressions ---


@dataclass
class Literal(Expression):
    data_type: str
    value: str


@dataclass
class Identifier(Expression):
    name: str


@dataclass
class AssignmentExpression(Expression):
    target: Expression
    value: Expression
    operator: str = "="


@dataclass
class BinaryExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass
class UnaryExpression(Expression):
    operator: str
    argument: Expression
    prefix: bool


@dataclass
class FunctionCall(Expression):
    name: str
    arguments: list[Expression] = field(default_factory=list)


# --- Statements ---


@dataclass
class Parameter(Node):
    data_type: str
    name: str


@dataclass
class VariableDeclaration(Statement):
    data_type: str
    name: str
    value: Expression


@dataclass
class FunctionDeclaration(Statement):
    return_type: str
    name: str
    parameters: list[Parameter] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


@dataclass
class ExpressionStatement(Statement):
    expression: Expression


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


@dataclass
class ElseIfBranch:
    condition: Expression
    body: list[Statement] = field(default_factory=list)


@dataclass
class IfStatement(Statement):
    condition: Expression
    body: list[Statement] = field(default_factory=list)
    else_if_branches: list[ElseIfBranch] = field(default_factory=list)
    else_body: Optional[list[Statement]] = None


@dataclass
class WhileLoop(Statement):
    condition: Expression
    body: list[Statement] = field(default_factory=list)


@dataclass
class ForLoop(Statement):
    initialization: Statement
    condition: Expression
    increment: Expression
    body: list[Statement] = field(default_factory=list)


@dataclass
class ControlFlowStatement(Statement):
    flow_type: str  # "break" or "continue"


@dataclass
class Program(Node):
    body: list[Statement] = field(default_factory=list)


def statement_kinds(program: Program) -> list[str]:
    """Names of the top-level statement variants, in source order."""
    return [type(statement).__name__ for statement in program.body]
