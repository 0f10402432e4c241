"""Tern - front end for a small statically typed imperative language."""

from typing import Optional

from tern.TernAST import Program
from tern.TernConfig import AnalyzerConfig
from tern.TernErrors import LexError, ParseError, SemanticError, TernError
from tern.TernLexer import Token, TokenKind, tokenize
from tern.TernParser import parse
from tern.TernSemanticChecker import analyze

__version__ = "0.1.0"


def check_source(source: str, config: Optional[AnalyzerConfig] = None) -> Program:
    """Tokenize, parse and analyze `source`; returns the validated Program."""
    program = parse(tokenize(source))
    analyze(program, config)
    return program


__all__ = [
    "AnalyzerConfig",
    "LexError",
    "ParseError",
    "Program",
    "SemanticError",
    "TernError",
    "Token",
    "TokenKind",
    "analyze",
    "check_source",
    "parse",
    "tokenize",
]
