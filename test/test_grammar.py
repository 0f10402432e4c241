# test/test_grammar.py

from textwrap import dedent

import pytest

from tern.TernAST import (
    AssignmentExpression,
    BinaryExpression,
    ControlFlowStatement,
    ElseIfBranch,
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
    UnaryExpression,
    VariableDeclaration,
    WhileLoop,
    statement_kinds,
)
from tern.TernErrors import ParseError
from tern.TernLexer import Token, TokenKind, tokenize
from tern.TernParser import TernParser, parse


def parse_src(src: str) -> Program:
    return parse(tokenize(src))


def parse_expr(src: str):
    program = parse_src(src + ";")
    assert len(program.body) == 1
    assert isinstance(program.body[0], ExpressionStatement)
    return program.body[0].expression


def num(value: str) -> Literal:
    return Literal("int", value)


# ---------- EXPRESSIONS / PRECEDENCE ----------


def test_multiplication_binds_tighter_than_addition():
    assert parse_expr("1 + 2 * 3") == BinaryExpression(
        "+", num("1"), BinaryExpression("*", num("2"), num("3"))
    )


def test_exponent_is_right_associative():
    assert parse_expr("2 ^ 3 ^ 4") == BinaryExpression(
        "^", num("2"), BinaryExpression("^", num("3"), num("4"))
    )


def test_subtraction_is_left_associative():
    assert parse_expr("1 - 2 - 3") == BinaryExpression(
        "-", BinaryExpression("-", num("1"), num("2")), num("3")
    )


def test_parentheses_override_precedence():
    assert parse_expr("(1 + 2) * 3") == BinaryExpression(
        "*", BinaryExpression("+", num("1"), num("2")), num("3")
    )


def test_logical_and_comparison_levels():
    expr = parse_expr("a < b && c == d || e")
    assert expr == BinaryExpression(
        "||",
        BinaryExpression(
            "&&",
            BinaryExpression("<", Identifier("a"), Identifier("b")),
            BinaryExpression("==", Identifier("c"), Identifier("d")),
        ),
        Identifier("e"),
    )


def test_prefix_and_postfix_increment():
    assert parse_expr("++i") == UnaryExpression("++", Identifier("i"), prefix=True)
    assert parse_expr("i--") == UnaryExpression("--", Identifier("i"), prefix=False)


def test_postfix_increment_inside_binary():
    assert parse_expr("a + b++") == BinaryExpression(
        "+", Identifier("a"), UnaryExpression("++", Identifier("b"), prefix=False)
    )


def test_function_call_with_arguments():
    assert parse_expr("add(1, x, g())") == FunctionCall(
        "add", [num("1"), Identifier("x"), FunctionCall("g", [])]
    )


def test_assignment_expression():
    assert parse_expr("x = y + 1") == AssignmentExpression(
        Identifier("x"), BinaryExpression("+", Identifier("y"), num("1"))
    )


@pytest.mark.parametrize(
    "src, data_type",
    [("7", "int"), ("2.5", "float"), ('"s"', "string"), ("true", "boolean")],
)
def test_literal_data_type_follows_token_kind(src, data_type):
    expr = parse_expr(src)
    assert isinstance(expr, Literal)
    assert expr.data_type == data_type
    assert expr.value == src


# ---------- STATEMENTS ----------


def test_variable_declaration():
    program = parse_src("float ratio = 1.5;")
    assert program.body == [VariableDeclaration("float", "ratio", Literal("float", "1.5"))]
    assert (program.body[0].line, program.body[0].column) == (1, 1)


def test_function_declaration_with_parameters():
    src = dedent("""
        int function add(int a, int b) {
            return a + b;
        }
    """)
    program = parse_src(src)
    assert program.body == [
        FunctionDeclaration(
            "int",
            "add",
            [Parameter("int", "a"), Parameter("int", "b")],
            [ReturnStatement(BinaryExpression("+", Identifier("a"), Identifier("b")))],
        )
    ]
    params = program.body[0].parameters
    assert [(p.line, p.column) for p in params] == [(2, 18), (2, 25)]


def test_function_declaration_without_parameters_and_empty_body():
    program = parse_src("void function noop() { }")
    assert program.body == [FunctionDeclaration("void", "noop", [], [])]


def test_if_else_if_else_chain():
    src = dedent("""
        if (a) { x = 1; }
        else if (b) { x = 2; }
        else if (c) { }
        else { x = 3; }
    """)
    (stmt,) = parse_src(src).body
    assert isinstance(stmt, IfStatement)
    assert stmt.condition == Identifier("a")
    assert len(stmt.body) == 1
    assert stmt.else_if_branches == [
        ElseIfBranch(
            Identifier("b"),
            [ExpressionStatement(AssignmentExpression(Identifier("x"), num("2")))],
        ),
        ElseIfBranch(Identifier("c"), []),
    ]
    assert stmt.else_body == [
        ExpressionStatement(AssignmentExpression(Identifier("x"), num("3")))
    ]


def test_if_without_else_has_no_else_body():
    (stmt,) = parse_src("if (a) { }").body
    assert stmt.else_if_branches == []
    assert stmt.else_body is None


def test_while_loop_with_control_flow():
    (stmt,) = parse_src("while (running) { break; continue; }").body
    assert stmt == WhileLoop(
        Identifier("running"),
        [ControlFlowStatement("break"), ControlFlowStatement("continue")],
    )


def test_for_loop():
    (stmt,) = parse_src("for (int i = 0; i < 10; i++) { total = total + i; }").body
    assert isinstance(stmt, ForLoop)
    assert stmt.initialization == VariableDeclaration("int", "i", num("0"))
    assert stmt.condition == BinaryExpression("<", Identifier("i"), num("10"))
    assert stmt.increment == UnaryExpression("++", Identifier("i"), prefix=False)
    assert len(stmt.body) == 1


def test_return_without_value():
    program = parse_src("void function f() { return; }")
    assert program.body[0].body == [ReturnStatement(None)]


def test_statement_kinds_follow_source_order():
    src = dedent("""
        int x = 1;
        int function f() { return x; }
        f();
        if (true) { }
        while (false) { }
        for (int i = 0; i < 3; i++) { }
        x = 2;
    """)
    program = parse_src(src)
    assert statement_kinds(program) == [
        "VariableDeclaration",
        "FunctionDeclaration",
        "ExpressionStatement",
        "IfStatement",
        "WhileLoop",
        "ForLoop",
        "ExpressionStatement",
    ]


def test_parser_accepts_hand_built_tokens_without_sentinel():
    tokens = [
        Token("x", TokenKind.IDENTIFIER, 1, 1),
        Token("++", TokenKind.OPERATOR, 1, 2),
        Token(";", TokenKind.PUNCTUATION, 1, 4),
    ]
    program = TernParser(tokens).parse_program()
    assert program.body == [
        ExpressionStatement(UnaryExpression("++", Identifier("x"), prefix=False))
    ]


def test_independent_parsers_do_not_share_state():
    first = TernParser(tokenize("int a = 1;"))
    second = TernParser(tokenize("int b = 2; int c = 3;"))
    assert len(first.parse_program().body) == 1
    assert len(second.parse_program().body) == 2


# ---------- NEGATIVE / ERROR TEST ----------


def test_missing_semicolon_reports_position():
    with pytest.raises(ParseError) as excinfo:
        parse_src("int x = 1\nint y = 2;")
    err = excinfo.value
    assert err.expected == "';'"
    assert err.found == "int"
    assert (err.line, err.col) == (2, 1)


def test_unexpected_leading_token_in_expression():
    with pytest.raises(ParseError, match="Expected an expression, found '\\)'"):
        parse_src(");")


def test_running_out_of_tokens():
    with pytest.raises(ParseError) as excinfo:
        parse_src("while (x) { x = 1;")
    assert excinfo.value.found == "end of input"


def test_invalid_parameter_type():
    with pytest.raises(ParseError, match="a valid parameter type"):
        parse_src("int function f(x y) { }")


def test_missing_function_name():
    with pytest.raises(ParseError, match="a function name"):
        parse_src("int function (int a) { }")


def test_missing_variable_name():
    with pytest.raises(ParseError, match="a variable name"):
        parse_src("int = 3;")


def test_arguments_must_be_comma_separated():
    with pytest.raises(ParseError):
        parse_src("f(1 2);")


def test_unsupported_compound_operator_is_rejected():
    with pytest.raises(ParseError, match="found '\\+='"):
        parse_src("x += 1;")


def test_for_loop_requires_declaration_initializer():
    with pytest.raises(ParseError, match="a valid variable type"):
        parse_src("for (i = 0; i < 3; i++) { }")
