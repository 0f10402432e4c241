"""
Tern Semantic Checker - Scope resolution and type checking of a parsed Program.

The checker is a Tatsu NodeWalker over the Tern AST classes and runs in two
passes:

- Pass 1 walks the tree top-down, declaring names and checking every
  expression whose type is already known. A function call may target a
  function declared further down the file, so its type is never known in
  pass 1: the walker returns UNRESOLVED_CALL and the surrounding construct
  records a PendingCall describing what the result is used for.
- Pass 2 drains the pending stack, last registered first. By then every
  declaration is in its scope, so calls are resolved by scope-chain lookup,
  arguments are checked and the recorded use is validated. Nested pending
  expressions are resolved on the spot through resolve_type().

The first violation raises a SemanticError; nothing is collected.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from tatsu.walkers import NodeWalker

from tern.TernAST import (
    AssignmentExpression,
    BinaryExpression,
    Expression,
    FunctionCall,
    Identifier,
    Literal,
    Program,
    Statement,
    UnaryExpression,
    VariableDeclaration,
)
from tern.TernConfig import AnalyzerConfig
from tern.TernErrors import (
    ArgumentCountError,
    ConditionTypeError,
    ControlFlowError,
    CyclicResolutionError,
    InvalidForLoopError,
    InvalidOperatorError,
    ResolutionDepthError,
    ReturnOutsideFunctionError,
    SemanticError,
    TypeMismatchError,
    UnknownNodeError,
)
from tern.TernSymbolTable import GLOBAL_SCOPE, SymbolTable

logger = logging.getLogger(__name__)

# --- Type System Constants ---

NUMERIC_TYPES = {"int", "float"}
COMPARISON_OPERATORS = {"==", "!=", "<", "<=", ">", ">="}
LOGICAL_OPERATORS = {"&&", "||"}
ARITHMETIC_OPERATORS = {"+", "-", "*", "/", "^", "%"}
INCREMENT_OPERATORS = {"++", "--"}


class _UnresolvedCall:
    def __repr__(self) -> str:
        return "UNRESOLVED_CALL"


# Type of an expression that depends on a call not resolved yet.
UNRESOLVED_CALL = _UnresolvedCall()

ExprType = Union[str, _UnresolvedCall]


def binary_result_type(operator: str, left: str, right: str, node=None) -> str:
    """Result type of `left operator right`, or raise if the operands don't fit."""
    if left != right:
        raise TypeMismatchError(
            f"Type mismatch in binary expression '{operator}': '{left}' vs '{right}'",
            node,
        )
    if operator in COMPARISON_OPERATORS:
        return "boolean"
    if operator in LOGICAL_OPERATORS:
        if left != "boolean":
            raise TypeMismatchError(
                f"Logical operator '{operator}' requires 'boolean' operands, got '{left}'",
                node,
            )
        return "boolean"
    if operator in ARITHMETIC_OPERATORS:
        if left not in NUMERIC_TYPES:
            raise TypeMismatchError(
                f"Arithmetic operator '{operator}' requires numeric operands, got '{left}'",
                node,
            )
        return left
    raise InvalidOperatorError(f"Invalid binary operator '{operator}'", node)


# --- Pending calls ---


@dataclass
class Bare:
    """Result is discarded."""


@dataclass
class AssignTo:
    variable: str
    type_t: str


@dataclass
class ExpectedReturn:
    function: str
    return_type: str


@dataclass
class Condition:
    statement: str


@dataclass
class BinaryOperand:
    operator: str
    # the other operand's type, or its node when that side is pending too
    other: Union[str, Expression]


@dataclass
class IncrementOperand:
    operator: str


PendingReason = Union[
    Bare, AssignTo, ExpectedReturn, Condition, BinaryOperand, IncrementOperand
]


@dataclass
class PendingCall:
    node: Expression
    scope: int
    reason: PendingReason


@dataclass
class LoopContext:
    in_loop: bool = False
    in_switch: bool = False


# --- Semantic Checker (Walker) ---


class TernSemanticChecker(NodeWalker):
    def __init__(self, config: Optional[AnalyzerConfig] = None):
        super().__init__()
        self.config = config or AnalyzerConfig.from_env()
        self.reset()

    def reset(self):
        """Discard every piece of per-analysis state."""
        self.sym_table = SymbolTable()
        self.pending: list[PendingCall] = []
        self.context_stack: list[LoopContext] = []
        # id(node) -> type, for every expression whose type is known
        self.expression_types: dict[int, str] = {}
        self._resolving: set[int] = set()

    def analyze(self, program: Program) -> bool:
        self.reset()
        for statement in program.body:
            try:
                self.check_statement(statement, GLOBAL_SCOPE)
            except RecursionError as exc:
                raise self._too_deep(statement) from exc
        self.resolve_pending()
        return True

    def _too_deep(self, node) -> ResolutionDepthError:
        return ResolutionDepthError(
            f"{type(node).__name__} is nested too deeply to check", node
        )

    # --- Dispatch ---

    def _require_walker(self, node, family: type):
        walker = getattr(self, f"walk_{type(node).__name__}", None)
        if not isinstance(node, family) or not callable(walker):
            raise UnknownNodeError(
                f"Unknown {family.__name__.lower()} node: {type(node).__name__}", node
            )

    def check_statement(self, node: Statement, scope: int):
        self._require_walker(node, Statement)
        self.walk(node, scope)

    def check_body(self, body: list[Statement], scope: int):
        for statement in body:
            self.check_statement(statement, scope)

    def check_expression(self, node: Expression, scope: int) -> ExprType:
        self._require_walker(node, Expression)
        type_t = self.walk(node, scope)
        if type_t is not UNRESOLVED_CALL:
            self.expression_types[id(node)] = type_t
        return type_t

    def defer(self, node: Expression, scope: int, reason: PendingReason):
        logger.debug(
            "deferring %s at line %s: %s", type(node).__name__, node.line, reason
        )
        self.pending.append(PendingCall(node, scope, reason))

    # --- Scope & Context Management ---

    def enter_loop(self):
        self.context_stack.append(LoopContext(in_loop=True))

    def exit_loop(self):
        self.context_stack.pop()

    def check_condition(self, condition: Expression, scope: int, statement: str):
        type_t = self.check_expression(condition, scope)
        if type_t is UNRESOLVED_CALL:
            self.defer(condition, scope, Condition(statement))
        elif type_t != "boolean":
            raise ConditionTypeError(
                f"Condition of '{statement}' must be 'boolean', got '{type_t}'",
                condition,
            )

    def check_increment(self, increment: Expression, scope: int):
        if (
            not isinstance(increment, UnaryExpression)
            or increment.operator not in INCREMENT_OPERATORS
        ):
            raise InvalidForLoopError(
                "For loop increment must be a '++' or '--' expression", increment
            )
        type_t = self.check_expression(increment, scope)
        if type_t is UNRESOLVED_CALL:
            self.defer(increment, scope, IncrementOperand(increment.operator))
        elif type_t not in NUMERIC_TYPES:
            raise TypeMismatchError(
                f"'{increment.operator}' requires a numeric operand, got '{type_t}'",
                increment,
            )

    # --- Statements ---

    def walk_VariableDeclaration(self, node, scope):
        value_type = self.check_expression(node.value, scope)
        if value_type is UNRESOLVED_CALL:
            self.defer(node.value, scope, AssignTo(node.name, node.data_type))
        elif value_type != node.data_type:
            raise TypeMismatchError(
                f"Variable '{node.name}' is declared '{node.data_type}' "
                f"but initialized with '{value_type}'",
                node,
            )
        self.sym_table.declare_variable(scope, node.name, node.data_type, node)

    def walk_FunctionDeclaration(self, node, scope):
        parameters = [(param.name, param.data_type) for param in node.parameters]
        self.sym_table.declare_function(
            scope, node.name, parameters, node.return_type, node
        )

        body_scope = self.sym_table.create_scope(node.name, scope)
        for param in node.parameters:
            self.sym_table.declare_variable(
                body_scope, param.name, param.data_type, param
            )

        # a function body is never inside the loop that encloses its declaration
        self.context_stack.append(LoopContext())
        self.check_body(node.body, body_scope)
        self.context_stack.pop()

    def walk_ExpressionStatement(self, node, scope):
        if self.check_expression(node.expression, scope) is UNRESOLVED_CALL:
            self.defer(node.expression, scope, Bare())

    def walk_ReturnStatement(self, node, scope):
        function = self.sym_table.enclosing_function(scope)
        if function is None:
            raise ReturnOutsideFunctionError("'return' outside of function", node)

        if node.value is None:
            if function.return_type != "void":
                raise TypeMismatchError(
                    f"Function '{function.name}' must return '{function.return_type}', "
                    "but returns nothing",
                    node,
                )
            return

        value_type = self.check_expression(node.value, scope)
        if value_type is UNRESOLVED_CALL:
            self.defer(
                node.value, scope, ExpectedReturn(function.name, function.return_type)
            )
        elif value_type != function.return_type:
            raise TypeMismatchError(
                f"Function '{function.name}' returns '{function.return_type}', "
                f"got '{value_type}'",
                node,
            )

    def walk_IfStatement(self, node, scope):
        self.check_condition(node.condition, scope, "if")
        self.check_body(node.body, self.sym_table.create_scope("if", scope))

        for branch in node.else_if_branches:
            self.check_condition(branch.condition, scope, "else if")
            self.check_body(branch.body, self.sym_table.create_scope("else if", scope))

        if node.else_body is not None:
            self.check_body(node.else_body, self.sym_table.create_scope("else", scope))

    def walk_WhileLoop(self, node, scope):
        self.check_condition(node.condition, scope, "while")
        self.enter_loop()
        self.check_body(node.body, self.sym_table.create_scope("while", scope))
        self.exit_loop()

    def walk_ForLoop(self, node, scope):
        if not isinstance(node.initialization, VariableDeclaration):
            raise InvalidForLoopError(
                "For loop initializer must be a variable declaration", node
            )
        loop_scope = self.sym_table.create_scope("for", scope)
        self.check_statement(node.initialization, loop_scope)
        self.check_condition(node.condition, loop_scope, "for")
        self.check_increment(node.increment, loop_scope)

        self.enter_loop()
        self.check_body(node.body, loop_scope)
        self.exit_loop()

    def walk_ControlFlowStatement(self, node, scope):
        frame = self.context_stack[-1] if self.context_stack else None
        if node.flow_type == "break":
            if frame is None or not (frame.in_loop or frame.in_switch):
                raise ControlFlowError("'break' outside of loop or switch", node)
        elif node.flow_type == "continue":
            if frame is None or not frame.in_loop:
                raise ControlFlowError("'continue' outside of loop", node)
        else:
            raise UnknownNodeError(
                f"Unknown control flow statement '{node.flow_type}'", node
            )

    # --- Expressions & Types (MUST return a type or UNRESOLVED_CALL) ---

    def walk_Literal(self, node, scope):
        return node.data_type

    def walk_Identifier(self, node, scope):
        return self.sym_table.lookup_variable(scope, node.name, node).type_t

    def walk_AssignmentExpression(self, node, scope):
        if not isinstance(node.target, Identifier):
            raise SemanticError("Assignment target must be a variable", node)
        target_type = self.check_expression(node.target, scope)
        value_type = self.check_expression(node.value, scope)
        if value_type is UNRESOLVED_CALL:
            self.defer(node.value, scope, AssignTo(node.target.name, target_type))
            return UNRESOLVED_CALL
        self._check_assignment(node, target_type, value_type)
        return target_type

    def walk_BinaryExpression(self, node, scope):
        # a left-associative chain is walked up its left spine, not recursed
        spine = [node]
        while isinstance(spine[-1].left, BinaryExpression):
            spine.append(spine[-1].left)

        left = self.check_expression(spine[-1].left, scope)
        for link in reversed(spine):
            left = self._check_operands(link, left, scope)
            if link is not node and left is not UNRESOLVED_CALL:
                self.expression_types[id(link)] = left
        return left

    def _check_operands(self, node, left: ExprType, scope: int) -> ExprType:
        right = self.check_expression(node.right, scope)
        if left is UNRESOLVED_CALL:
            other = node.right if right is UNRESOLVED_CALL else right
            self.defer(node.left, scope, BinaryOperand(node.operator, other))
            return UNRESOLVED_CALL
        if right is UNRESOLVED_CALL:
            self.defer(node.right, scope, BinaryOperand(node.operator, left))
            return UNRESOLVED_CALL
        return binary_result_type(node.operator, left, right, node)

    def walk_UnaryExpression(self, node, scope):
        return self.check_expression(node.argument, scope)

    def walk_FunctionCall(self, node, scope):
        # arguments are checked now so their names resolve against what is
        # declared at the call site; the call itself waits for pass 2
        for argument in node.arguments:
            self.check_expression(argument, scope)
        return UNRESOLVED_CALL

    def _check_assignment(self, node, target_type: str, value_type: str):
        if value_type != target_type:
            raise TypeMismatchError(
                f"Cannot assign '{value_type}' to variable '{node.target.name}' "
                f"of type '{target_type}'",
                node,
            )

    # --- Pass 2: deferred resolution ---

    def resolve_pending(self):
        logger.debug("resolving %d pending calls", len(self.pending))
        while self.pending:
            entry = self.pending.pop()
            try:
                self.resolve_entry(entry)
            except RecursionError as exc:
                raise self._too_deep(entry.node) from exc

    def resolve_entry(self, entry: PendingCall):
        resolved = self.resolve_type(entry.node, entry.scope)
        reason = entry.reason

        if isinstance(reason, Bare):
            return
        if isinstance(reason, AssignTo):
            if resolved != reason.type_t:
                raise TypeMismatchError(
                    f"Cannot assign '{resolved}' to variable '{reason.variable}' "
                    f"of type '{reason.type_t}'",
                    entry.node,
                )
        elif isinstance(reason, ExpectedReturn):
            if resolved != reason.return_type:
                raise TypeMismatchError(
                    f"Function '{reason.function}' returns '{reason.return_type}', "
                    f"got '{resolved}'",
                    entry.node,
                )
        elif isinstance(reason, Condition):
            if resolved != "boolean":
                raise ConditionTypeError(
                    f"Condition of '{reason.statement}' must be 'boolean', "
                    f"got '{resolved}'",
                    entry.node,
                )
        elif isinstance(reason, BinaryOperand):
            other = reason.other
            if not isinstance(other, str):
                other = self.resolve_type(other, entry.scope)
            binary_result_type(reason.operator, resolved, other, entry.node)
        elif isinstance(reason, IncrementOperand):
            if resolved not in NUMERIC_TYPES:
                raise TypeMismatchError(
                    f"'{reason.operator}' requires a numeric operand, got '{resolved}'",
                    entry.node,
                )
        else:
            raise UnknownNodeError(f"Unknown pending reason: {reason!r}", entry.node)

    def resolve_type(self, node: Expression, scope: int, depth: int = 0) -> str:
        """
        Type of `node`, resolving any calls inside it. `depth` counts how many
        call argument lists enclose `node`.
        """
        key = id(node)
        known = self.expression_types.get(key)
        if known is not None:
            return known

        if key in self._resolving:
            raise CyclicResolutionError(
                f"Resolving {type(node).__name__} requires its own type", node
            )

        self._resolving.add(key)
        try:
            type_t = self._resolve_uncached(node, scope, depth)
        finally:
            self._resolving.discard(key)
        self.expression_types[key] = type_t
        return type_t

    def _resolve_uncached(self, node: Expression, scope: int, depth: int) -> str:
        if isinstance(node, FunctionCall):
            if depth >= self.config.max_resolution_depth:
                raise ResolutionDepthError(
                    f"Deferred resolution nested deeper than {self.config.max_resolution_depth}",
                    node,
                )
            function = self.sym_table.lookup_function(scope, node.name, node)
            if len(node.arguments) != function.num_of_params:
                raise ArgumentCountError(
                    f"Function '{node.name}' expects {function.num_of_params} "
                    f"arguments, but got {len(node.arguments)}",
                    node,
                )
            for position, (argument, (param_name, param_type)) in enumerate(
                zip(node.arguments, function.parameters), start=1
            ):
                argument_type = self.resolve_type(argument, scope, depth + 1)
                if argument_type != param_type:
                    raise TypeMismatchError(
                        f"Argument {position} ('{param_name}') of '{node.name}' "
                        f"expects '{param_type}', got '{argument_type}'",
                        argument,
                    )
            return function.return_type

        if isinstance(node, AssignmentExpression):
            target_type = self.resolve_type(node.target, scope, depth)
            value_type = self.resolve_type(node.value, scope, depth)
            self._check_assignment(node, target_type, value_type)
            return target_type

        if isinstance(node, BinaryExpression):
            return self._resolve_binary(node, scope, depth)

        if isinstance(node, UnaryExpression):
            return self.resolve_type(node.argument, scope, depth)

        if isinstance(node, (Literal, Identifier)):
            return self.check_expression(node, scope)

        raise UnknownNodeError(f"Unknown expression node: {type(node).__name__}", node)

    def _resolve_binary(self, node: BinaryExpression, scope: int, depth: int) -> str:
        # unresolved links of the left spine are marked in progress, then
        # typed bottom-up
        spine = [node]
        inner = node.left
        while (
            isinstance(inner, BinaryExpression)
            and id(inner) not in self.expression_types
            and id(inner) not in self._resolving
        ):
            self._resolving.add(id(inner))
            spine.append(inner)
            inner = inner.left

        try:
            left = self.resolve_type(inner, scope, depth)
            for link in reversed(spine):
                right = self.resolve_type(link.right, scope, depth)
                left = binary_result_type(link.operator, left, right, link)
                self.expression_types[id(link)] = left
        finally:
            for link in spine[1:]:
                self._resolving.discard(id(link))
        return left


def analyze(program: Program, config: Optional[AnalyzerConfig] = None) -> bool:
    """Check `program`; returns True or raises the first SemanticError."""
    return TernSemanticChecker(config).analyze(program)
