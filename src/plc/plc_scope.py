"""
Chained symbol tables shared by the analyzer and the interpreter.

A Scope has at most one parent. Lookups walk from the scope up through its
parents to the root, so a name defined in a child shadows the same name in an
ancestor. Defining a name twice in the same scope is a ScopeError; shadowing
requires a new child scope.

Functions are keyed by ``(name, arity)``, so ``f/1`` and ``f/2`` coexist.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from plc.plc_errors import ScopeError

if TYPE_CHECKING:
    from plc.plc_types import Type
    from plc.plc_values import PlcObject


class Variable:
    """A named binding.

    The analyzer fills ``type`` and leaves ``value`` unset; the interpreter
    does the opposite.
    """

    def __init__(
        self, name: str, type_: Type | None = None, value: PlcObject | None = None
    ):
        self.name = name
        self.type = type_
        self.value = value

    def __repr__(self) -> str:
        return f"Variable({self.name!r}, type={self.type}, value={self.value})"


class Function:
    """A callable binding keyed by name and arity.

    Attributes:
        name (str): Function name.
        arity (int): Number of parameters.
        parameter_types (list[Type]): Static parameter types (analysis only).
        return_type (Type | None): Static return type (analysis only).
        invoke (Callable | None): Runtime behaviour, called with the argument list.
    """

    def __init__(
        self,
        name: str,
        arity: int,
        invoke: Callable[[list[PlcObject]], PlcObject] | None = None,
        parameter_types: Sequence[Type] = (),
        return_type: Type | None = None,
    ):
        self.name = name
        self.arity = arity
        self.invoke = invoke
        self.parameter_types = list(parameter_types)
        self.return_type = return_type

    def __call__(self, args: list[PlcObject]) -> PlcObject:
        if self.invoke is None:
            raise ScopeError(f"Function {self.name}/{self.arity} has no runtime behaviour")
        return self.invoke(args)

    def __repr__(self) -> str:
        return f"Function({self.name!r}, {self.arity})"


class Scope:
    def __init__(self, parent: Scope | None = None) -> None:
        self.parent = parent
        self.variables: dict[str, Variable] = {}
        self.functions: dict[tuple[str, int], Function] = {}

    def child(self) -> Scope:
        return Scope(self)

    def define_variable(
        self, name: str, type_: Type | None = None, value: PlcObject | None = None
    ) -> Variable:
        if name in self.variables:
            raise ScopeError(f"Variable {name!r} is already defined in this scope")
        variable = Variable(name, type_, value)
        self.variables[name] = variable
        return variable

    def find_variable(self, name: str) -> Variable | None:
        """Returns the nearest binding for ``name``, or None."""
        scope: Scope | None = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def lookup_variable(self, name: str) -> Variable:
        variable = self.find_variable(name)
        if variable is None:
            raise ScopeError(f"Variable {name!r} is not defined")
        return variable

    def define_function(self, function: Function) -> Function:
        key = (function.name, function.arity)
        if key in self.functions:
            raise ScopeError(
                f"Function {function.name}/{function.arity} is already defined in this scope"
            )
        self.functions[key] = function
        return function

    def find_function(self, name: str, arity: int) -> Function | None:
        scope: Scope | None = self
        while scope is not None:
            if (name, arity) in scope.functions:
                return scope.functions[(name, arity)]
            scope = scope.parent
        return None

    def lookup_function(self, name: str, arity: int) -> Function:
        function = self.find_function(name, arity)
        if function is None:
            raise ScopeError(f"Function {name}/{arity} is not defined")
        return function

    def __repr__(self) -> str:
        names = ", ".join(self.variables)
        funcs = ", ".join(f"{n}/{a}" for n, a in self.functions)
        return f"Scope(variables=[{names}], functions=[{funcs}])"
