"""
Tern Parser - Builds a Program AST from the scanner's token list.

Statements are parsed by recursive descent. Expressions use Pratt parsing
driven by BINDING_POWER: each operator has a (left, right) pair, and the infix
loop stops as soon as the next operator's left power drops below the minimum
the caller asked for. Left-associative operators have right > left; `^` has
right < left and therefore nests to the right.

The parser keeps its cursor on the instance, so independent parses never
share state. There is no error recovery: the first violation raises ParseError.
"""

import logging
from typing import Optional

from tern.TernAST import (
    AssignmentExpression,
    BinaryExpression,
    ControlFlowStatement,
    ElseIfBranch,
    Expression,
    ExpressionStatement,
    ForLoop,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    IfStatement,
    Literal,
    Parameter,
    Program,
    ReturnStatement,
    Statement,
    UnaryExpression,
    VariableDeclaration,
    WhileLoop,
)
from tern.TernErrors import ParseError
from tern.TernLexer import LITERAL_KINDS, PRIMITIVE_TYPES, Token, TokenKind

logger = logging.getLogger(__name__)

BINDING_POWER: dict[str, tuple[float, float]] = {
    # logical
    "||": (0, 0.1),
    "&&": (1, 1.1),
    # equality
    "==": (2, 2.1),
    "!=": (2, 2.1),
    # comparison
    "<": (3, 3.1),
    "<=": (3, 3.1),
    ">": (3, 3.1),
    ">=": (3, 3.1),
    # arithmetic
    "+": (4, 4.1),
    "-": (4, 4.1),
    "*": (5, 5.1),
    "/": (5, 5.1),
    "%": (5, 5.1),
    # exponentiation, right associative
    "^": (6.1, 6),
    # increment / decrement
    "++": (7, 7.1),
    "--": (7, 7.1),
}

INCREMENT_OPERATORS = {"++", "--"}


class TernParser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.current = 0

    # --- Cursor ---

    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.current + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def at(self, lexeme: str) -> bool:
        token = self.peek()
        return token is not None and token.lexeme == lexeme

    def consume(self, expected: str = "token") -> Token:
        token = self.peek()
        if token is None:
            self._fail_at_end(expected)
        self.current += 1
        return token

    def expect(self, lexeme: str) -> Token:
        token = self.peek()
        if token is None:
            self._fail_at_end(f"'{lexeme}'")
        if token.lexeme != lexeme:
            raise ParseError(f"'{lexeme}'", token.lexeme, token.line, token.column)
        self.current += 1
        return token

    def expect_kind(self, kind: TokenKind, expected: str) -> Token:
        token = self.consume(expected)
        if token.kind is not kind:
            raise ParseError(expected, token.lexeme, token.line, token.column)
        return token

    def expect_type(self, expected: str) -> Token:
        token = self.consume(expected)
        if token.kind is not TokenKind.TYPE or token.lexeme not in PRIMITIVE_TYPES:
            raise ParseError(expected, token.lexeme, token.line, token.column)
        return token

    def _fail_at_end(self, expected: str):
        last = self.tokens[-1] if self.tokens else None
        raise ParseError(
            expected,
            "end of input",
            last.line if last else None,
            last.column if last else None,
        )

    # --- Statements ---

    def parse_program(self) -> Program:
        first = self.peek()
        program = Program(
            line=first.line if first else None,
            column=first.column if first else None,
        )
        while self.peek() is not None:
            program.body.append(self.parse_statement())
        logger.debug("parsed %d top-level statements", len(program.body))
        return program

    def parse_statement(self) -> Statement:
        token = self.peek()
        if token is None:
            self._fail_at_end("statement")

        if token.kind is TokenKind.KEYWORD:
            if token.lexeme == "if":
                return self.parse_if_statement()
            if token.lexeme == "while":
                return self.parse_while_loop()
            if token.lexeme == "for":
                return self.parse_for_loop()
            if token.lexeme == "return":
                return self.parse_return()
            if token.lexeme in ("break", "continue"):
                return self.parse_control_flow()

        if token.kind is TokenKind.TYPE:
            following = self.peek(1)
            if (
                following is not None
                and following.kind is TokenKind.KEYWORD
                and following.lexeme == "function"
            ):
                return self.parse_function_declaration()
            return self.parse_variable_declaration()

        expression = self.parse_expression()
        self.expect(";")
        return ExpressionStatement(expression, line=token.line, column=token.column)

    def parse_body(self) -> list[Statement]:
        """Statements up to (not including) the closing brace."""
        body = []
        while not self.at("}"):
            if self.peek() is None:
                self._fail_at_end("'}'")
            body.append(self.parse_statement())
        return body

    def parse_block(self) -> list[Statement]:
        self.expect("{")
        body = self.parse_body()
        self.expect("}")
        return body

    def parse_condition(self) -> Expression:
        self.expect("(")
        condition = self.parse_expression()
        self.expect(")")
        return condition

    def parse_if_statement(self) -> IfStatement:
        keyword = self.expect("if")
        condition = self.parse_condition()
        body = self.parse_block()

        else_if_branches = []
        while self.at("else if"):
            self.expect("else if")
            branch_condition = self.parse_condition()
            else_if_branches.append(
                ElseIfBranch(branch_condition, self.parse_block())
            )

        else_body = None
        if self.at("else"):
            self.expect("else")
            else_body = self.parse_block()

        return IfStatement(
            condition,
            body,
            else_if_branches,
            else_body,
            line=keyword.line,
            column=keyword.column,
        )

    def parse_while_loop(self) -> WhileLoop:
        keyword = self.expect("while")
        condition = self.parse_condition()
        body = self.parse_block()
        return WhileLoop(condition, body, line=keyword.line, column=keyword.column)

    def parse_for_loop(self) -> ForLoop:
        keyword = self.expect("for")
        self.expect("(")
        initialization = self.parse_variable_declaration()
        condition = self.parse_expression()
        self.expect(";")
        increment = self.parse_expression()
        self.expect(")")
        body = self.parse_block()
        return ForLoop(
            initialization,
            condition,
            increment,
            body,
            line=keyword.line,
            column=keyword.column,
        )

    def parse_control_flow(self) -> ControlFlowStatement:
        keyword = self.consume()
        self.expect(";")
        return ControlFlowStatement(
            keyword.lexeme, line=keyword.line, column=keyword.column
        )

    def parse_return(self) -> ReturnStatement:
        keyword = self.expect("return")
        value = None
        if not self.at(";"):
            value = self.parse_expression()
        self.expect(";")
        return ReturnStatement(value, line=keyword.line, column=keyword.column)

    def parse_function_declaration(self) -> FunctionDeclaration:
        return_type = self.expect_type("a valid return type")
        self.expect("function")
        name = self.expect_kind(TokenKind.IDENTIFIER, "a function name")

        self.expect("(")
        parameters = []
        if not self.at(")"):
            while True:
                param_type = self.expect_type("a valid parameter type")
                param_name = self.expect_kind(TokenKind.IDENTIFIER, "a parameter name")
                parameters.append(
                    Parameter(
                        param_type.lexeme,
                        param_name.lexeme,
                        line=param_type.line,
                        column=param_type.column,
                    )
                )
                if not self.at(","):
                    break
                self.expect(",")
        self.expect(")")

        body = self.parse_block()
        return FunctionDeclaration(
            return_type.lexeme,
            name.lexeme,
            parameters,
            body,
            line=return_type.line,
            column=return_type.column,
        )

    def parse_variable_declaration(self) -> VariableDeclaration:
        data_type = self.expect_type("a valid variable type")
        name = self.expect_kind(TokenKind.IDENTIFIER, "a variable name")
        self.expect("=")
        value = self.parse_expression()
        self.expect(";")
        return VariableDeclaration(
            data_type.lexeme,
            name.lexeme,
            value,
            line=data_type.line,
            column=data_type.column,
        )

    # --- Expressions ---

    def parse_expression(self, min_bp: float = 0) -> Expression:
        left = self.parse_primary()

        while True:
            op = self.peek()
            if op is None or op.lexeme not in BINDING_POWER:
                break

            if op.lexeme in INCREMENT_OPERATORS:
                self.consume()
                left = UnaryExpression(
                    op.lexeme, left, prefix=False, line=op.line, column=op.column
                )
                continue

            left_bp, right_bp = BINDING_POWER[op.lexeme]
            if left_bp < min_bp:
                break

            self.consume()
            right = self.parse_expression(right_bp)
            left = BinaryExpression(
                op.lexeme, left, right, line=op.line, column=op.column
            )

        return left

    def parse_primary(self) -> Expression:
        token = self.consume("an expression")
        position = {"line": token.line, "column": token.column}

        if token.kind in LITERAL_KINDS:
            return Literal(token.kind.value, token.lexeme, **position)

        if token.kind is TokenKind.IDENTIFIER:
            if self.at("("):
                return FunctionCall(token.lexeme, self.parse_arguments(), **position)
            if self.at("="):
                self.expect("=")
                value = self.parse_expression()
                return AssignmentExpression(
                    Identifier(token.lexeme, **position), value, **position
                )
            return Identifier(token.lexeme, **position)

        if token.lexeme == "(":
            inner = self.parse_expression()
            self.expect(")")
            return inner

        if token.kind is TokenKind.OPERATOR and token.lexeme in INCREMENT_OPERATORS:
            argument = self.parse_expression(BINDING_POWER[token.lexeme][1])
            return UnaryExpression(token.lexeme, argument, prefix=True, **position)

        raise ParseError("an expression", token.lexeme, token.line, token.column)

    def parse_arguments(self) -> list[Expression]:
        self.expect("(")
        arguments = []
        if not self.at(")"):
            while True:
                arguments.append(self.parse_expression())
                if not self.at(","):
                    break
                self.expect(",")
        self.expect(")")
        return arguments


def parse(tokens: list[Token]) -> Program:
    return TernParser(tokens).parse_program()
