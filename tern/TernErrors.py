"""
Tern Errors - Exception types raised by the scanner, parser and semantic checker.

Every stage is fail-fast: the first violation is raised and nothing after it
is checked.
"""

from typing import Any, Optional


class TernError(Exception):
    """Base class for all Tern front-end errors."""

    def __init__(
        self, message: str, line: Optional[int] = None, col: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.line = line
        self.col = col

    def __str__(self) -> str:
        location = ""
        if self.line is not None and self.col is not None:
            location = f"(line {self.line}, col {self.col}) "
        elif self.line is not None:
            location = f"(line {self.line}) "
        return f"{location}{self.message}"


class LexError(TernError):
    """Raised when the scanner meets a character it cannot classify."""


class ParseError(TernError):
    """Raised when an expected lexeme or token kind is missing."""

    def __init__(
        self,
        expected: str,
        found: str,
        line: Optional[int] = None,
        col: Optional[int] = None,
    ):
        super().__init__(f"Expected {expected}, found '{found}'", line, col)
        self.expected = expected
        self.found = found


# --- Semantic errors ---


class SemanticError(TernError):
    """Represents a semantic error found during analysis."""

    def __init__(self, message: str, node: Any = None):
        super().__init__(
            message, getattr(node, "line", None), getattr(node, "column", None)
        )
        self.node = node


class RedeclarationError(SemanticError):
    pass


class UndeclaredNameError(SemanticError):
    pass


class TypeMismatchError(SemanticError):
    pass


class ConditionTypeError(TypeMismatchError):
    """A condition of if/while/for did not evaluate to boolean."""


class InvalidForLoopError(SemanticError):
    pass


class ArgumentCountError(SemanticError):
    pass


class InvalidOperatorError(SemanticError):
    pass


class ControlFlowError(SemanticError):
    """'break' or 'continue' used outside of a valid context."""


class ReturnOutsideFunctionError(SemanticError):
    pass


class CyclicResolutionError(SemanticError):
    """A deferred call needs its own type in order to be resolved."""


class ResolutionDepthError(SemanticError):
    pass


class UnknownNodeError(SemanticError):
    """An AST node of a variant the checker has no rule for."""
