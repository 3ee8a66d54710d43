"""
Lexical scopes used by the transformers while they walk a syntax tree.
Scopes live in an arena (a plain list) and point at their parent by index,
so leaving a scope never has to untangle references.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from pseudoc.exceptions import Diagnostic, ErrorCode, Severity

ScopeKind = Literal["global", "function", "block", "class"]


@dataclass
class VariableInfo:
    """A declared variable as seen from the pseudocode side."""

    name: str
    normalized_type: str
    is_array: bool = False
    array_dimensions: List[str] = field(default_factory=list)
    is_constant: bool = False
    initial_value_text: Optional[str] = None
    source_type: Optional[str] = None
    one_based: bool = False


@dataclass
class ParameterInfo:
    name: str
    normalized_type: str
    is_array: bool = False
    is_optional: bool = False


@dataclass
class CallableInfo:
    """A declared procedure or function. No return type means procedure."""

    name: str
    parameters: List[ParameterInfo] = field(default_factory=list)
    return_type: Optional[str] = None

    @property
    def is_procedure(self) -> bool:
        return self.return_type is None


@dataclass
class Scope:
    kind: ScopeKind
    parent: Optional[int] = None
    variables: Dict[str, VariableInfo] = field(default_factory=dict)
    callables: Dict[str, CallableInfo] = field(default_factory=dict)


class ScopeManager:
    """
    Tracks nested scopes for one conversion call. The global scope is created
    up front and can never be exited; lookups walk outward from the current
    scope and the first match wins.
    """

    def __init__(self):
        self.scopes: List[Scope] = [Scope(kind="global")]
        self.current: int = 0
        self.diagnostics: List[Diagnostic] = []

    @property
    def depth(self) -> int:
        depth, index = 0, self.current
        while self.scopes[index].parent is not None:
            depth += 1
            index = self.scopes[index].parent
        return depth

    @property
    def current_scope(self) -> Scope:
        return self.scopes[self.current]

    def enter_scope(self, kind: ScopeKind) -> Scope:
        self.scopes.append(Scope(kind=kind, parent=self.current))
        self.current = len(self.scopes) - 1
        return self.scopes[self.current]

    def exit_scope(self) -> None:
        parent = self.current_scope.parent
        if parent is None:
            self.diagnostics.append(Diagnostic.create(ErrorCode.UNBALANCED_SCOPE_EXIT, Severity.WARNING))
            return
        self.current = parent

    def declare_variable(
        self,
        name: str,
        normalized_type: str,
        is_array: bool = False,
        dimensions: Optional[List[str]] = None,
        is_constant: bool = False,
        initial_value_text: Optional[str] = None,
        source_type: Optional[str] = None,
        one_based: bool = False,
    ) -> VariableInfo:
        info = VariableInfo(
            name=name,
            normalized_type=normalized_type,
            is_array=is_array,
            array_dimensions=list(dimensions or []),
            is_constant=is_constant,
            initial_value_text=initial_value_text,
            source_type=source_type,
            one_based=one_based,
        )
        self.current_scope.variables[name] = info
        return info

    def declare_callable(self, name: str, parameters: Optional[List[ParameterInfo]] = None, return_type: Optional[str] = None) -> CallableInfo:
        info = CallableInfo(name=name, parameters=list(parameters or []), return_type=return_type)
        self.current_scope.callables[name] = info
        return info

    def _lookup(self, name: str, table: str):
        index: Optional[int] = self.current
        while index is not None:
            scope = self.scopes[index]
            found = getattr(scope, table).get(name)
            if found is not None:
                return found
            index = scope.parent
        return None

    def lookup_variable(self, name: str) -> Optional[VariableInfo]:
        return self._lookup(name, "variables")

    def lookup_callable(self, name: str) -> Optional[CallableInfo]:
        return self._lookup(name, "callables")

    def shadows_field(self, name: str) -> bool:
        """True when `name` resolves to a local or parameter declared inside the nearest class scope."""
        index: Optional[int] = self.current
        while index is not None:
            scope = self.scopes[index]
            if scope.kind == "class":
                return False
            if name in scope.variables:
                return any(self.scopes[i].kind == "class" for i in self._ancestors(scope.parent))
            index = scope.parent
        return False

    def _ancestors(self, index: Optional[int]):
        while index is not None:
            yield index
            index = self.scopes[index].parent
