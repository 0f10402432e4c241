"""
Tern Lexer - Turns source text into a flat list of tokens.

Classification is maximal munch over a single regular expression. Whitespace
and `//` comments are dropped; `else` directly followed by `if` is fused into
one `else if` keyword token so the parser never has to look across two tokens.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum

from tern.TernErrors import LexError


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    TYPE = "type"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    PARENTHESIS = "parenthesis"
    PUNCTUATION = "punctuation"
    BRACKETS = "brackets"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"


KEYWORDS = {"function", "return", "if", "else", "for", "while", "break", "continue"}
PRIMITIVE_TYPES = {"int", "string", "boolean", "float", "char", "void", "null"}
BOOLEAN_LITERALS = {"true", "false"}

# Token kinds that name the data type of the literal they carry.
LITERAL_KINDS = {TokenKind.INT, TokenKind.FLOAT, TokenKind.STRING, TokenKind.BOOLEAN}


@dataclass(frozen=True)
class Token:
    lexeme: str
    kind: TokenKind
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.lexeme!r}, {self.line}:{self.column})"


TOKEN_SPECIFICATION = [
    ("COMMENT", r"//[^\n]*"),
    ("STRING", r'"[^"\n]*"'),
    ("FLOAT", r"\d+\.\d+"),
    ("INT", r"\d+"),
    ("WORD", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("OPERATOR", r"==|!=|<=|>=|\+=|-=|\*=|/=|%=|&&|\|\||\+\+|--|[-+*/%=<>!^]"),
    ("PARENTHESIS", r"[()]"),
    ("PUNCTUATION", r"[;,]"),
    ("BRACKETS", r"[{}]"),
    ("NEWLINE", r"\n"),
    ("SKIP", r"[ \t\r]+"),
    ("MISMATCH", r"."),
]
TOKEN_REGEX = re.compile(
    "|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_SPECIFICATION)
)

_DIRECT_KINDS = {
    "STRING": TokenKind.STRING,
    "FLOAT": TokenKind.FLOAT,
    "INT": TokenKind.INT,
    "OPERATOR": TokenKind.OPERATOR,
    "PARENTHESIS": TokenKind.PARENTHESIS,
    "PUNCTUATION": TokenKind.PUNCTUATION,
    "BRACKETS": TokenKind.BRACKETS,
}


def classify_word(word: str) -> TokenKind:
    if word in KEYWORDS:
        return TokenKind.KEYWORD
    if word in PRIMITIVE_TYPES:
        return TokenKind.TYPE
    if word in BOOLEAN_LITERALS:
        return TokenKind.BOOLEAN
    return TokenKind.IDENTIFIER


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    line_num = 1
    line_start = 0
    for mo in TOKEN_REGEX.finditer(source):
        group = mo.lastgroup
        value = mo.group()
        column = mo.start() - line_start + 1
        if group == "NEWLINE":
            line_num += 1
            line_start = mo.end()
            continue
        if group in ("SKIP", "COMMENT"):
            continue
        if group == "MISMATCH":
            if value == '"':
                raise LexError("Unterminated string literal", line_num, column)
            raise LexError(f"Unexpected character {value!r}", line_num, column)

        if group == "WORD":
            kind = classify_word(value)
            previous = tokens[-1] if tokens else None
            if (
                value == "if"
                and previous is not None
                and previous.kind is TokenKind.KEYWORD
                and previous.lexeme == "else"
            ):
                tokens[-1] = replace(previous, lexeme="else if")
                continue
        else:
            kind = _DIRECT_KINDS[group]
        tokens.append(Token(value, kind, line_num, column))
    return tokens
