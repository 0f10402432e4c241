"""
Tern Symbol Table - A tree of lexical scopes for semantic analysis.

Scopes live in an arena (a list) and refer to their parent by index, so the
tree has no owning back-references. Scope 0 is the global scope. A scope is
created per function body, per if/else-if/else/while/for body, and once for
the program; scopes are never removed while an analysis is running.

Lookup walks from a scope outward to the global scope, innermost first.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from tern.TernErrors import RedeclarationError, UndeclaredNameError

GLOBAL_SCOPE = 0


@dataclass
class VariableSymbol:
    name: str
    type_t: str
    scope: Optional[int] = None


@dataclass
class FunctionSymbol:
    name: str
    return_type: str
    # ordered (name, type) pairs
    parameters: list[tuple[str, str]] = field(default_factory=list)
    scope: Optional[int] = None

    @property
    def param_types(self) -> list[str]:
        return [param_type for _, param_type in self.parameters]

    @property
    def num_of_params(self) -> int:
        return len(self.parameters)


Symbol = Union[VariableSymbol, FunctionSymbol]


@dataclass
class Scope:
    index: int
    name: str
    parent: Optional[int] = None
    variables: dict[str, VariableSymbol] = field(default_factory=dict)
    functions: dict[str, FunctionSymbol] = field(default_factory=dict)
    children: list[int] = field(default_factory=list)

    def declares(self, name: str) -> bool:
        return name in self.variables or name in self.functions


class SymbolTable:
    """
    Arena of scopes. A name may be declared once per scope, across both the
    variable and the function tables; shadowing in a nested scope is allowed.
    """

    def __init__(self):
        self.scopes: list[Scope] = [Scope(GLOBAL_SCOPE, "global")]

    def create_scope(self, name: str, parent: int) -> int:
        """Create a child scope of `parent` and return its index."""
        index = len(self.scopes)
        self.scopes.append(Scope(index, name, parent))
        self.scopes[parent].children.append(index)
        return index

    def scope(self, index: int) -> Scope:
        return self.scopes[index]

    def chain(self, index: Optional[int]):
        """Yield scopes from `index` outward to the global scope."""
        while index is not None:
            scope = self.scopes[index]
            yield scope
            index = scope.parent

    # --- Declarations ---

    def _check_free(self, scope: Scope, name: str, node=None):
        if scope.declares(name):
            raise RedeclarationError(
                f"Name already exists in this scope: '{name}'", node
            )

    def declare_variable(
        self, scope_index: int, name: str, type_t: str, node=None
    ) -> VariableSymbol:
        scope = self.scopes[scope_index]
        self._check_free(scope, name, node)
        symbol = VariableSymbol(name, type_t, scope_index)
        scope.variables[name] = symbol
        return symbol

    def declare_function(
        self,
        scope_index: int,
        name: str,
        parameters: list[tuple[str, str]],
        return_type: str,
        node=None,
    ) -> FunctionSymbol:
        scope = self.scopes[scope_index]
        self._check_free(scope, name, node)
        symbol = FunctionSymbol(name, return_type, list(parameters), scope_index)
        scope.functions[name] = symbol
        return symbol

    # --- Lookup ---

    def find_variable(self, scope_index: int, name: str) -> Optional[VariableSymbol]:
        for scope in self.chain(scope_index):
            if name in scope.variables:
                return scope.variables[name]
        return None

    def find_function(self, scope_index: int, name: str) -> Optional[FunctionSymbol]:
        for scope in self.chain(scope_index):
            if name in scope.functions:
                return scope.functions[name]
        return None

    def lookup_variable(self, scope_index: int, name: str, node=None) -> VariableSymbol:
        symbol = self.find_variable(scope_index, name)
        if symbol is None:
            raise UndeclaredNameError(f"Use of undeclared variable '{name}'", node)
        return symbol

    def lookup_function(self, scope_index: int, name: str, node=None) -> FunctionSymbol:
        symbol = self.find_function(scope_index, name)
        if symbol is None:
            raise UndeclaredNameError(f"Call to undeclared function '{name}'", node)
        return symbol

    def enclosing_function(self, scope_index: int) -> Optional[FunctionSymbol]:
        """
        The function whose body contains `scope_index`: the nearest scope whose
        name matches a function declared in one of its ancestors.
        """
        for scope in self.chain(scope_index):
            if scope.parent is None:
                break
            symbol = self.find_function(scope.parent, scope.name)
            if symbol is not None:
                return symbol
        return None
