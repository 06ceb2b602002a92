"""
Static type registry for the PLC analyzer.

Types are compared by name. Each type owns a Scope holding the fields and
methods reachable through a receiver (``value.field``, ``value.method(...)``).
A method's parameter list includes the receiver as parameter 0, so
``get_method(name, arity)`` looks up ``name/arity + 1``.

``Any`` and ``Comparable`` are supertypes used only for assignability; no
runtime value has either type.
"""

from __future__ import annotations

from plc.plc_errors import PlcTypeError
from plc.plc_scope import Function, Scope, Variable


class Type:
    def __init__(self, name: str, scope: Scope | None = None):
        self.name = name
        self.scope = scope if scope is not None else Scope()

    def get_field(self, name: str) -> Variable | None:
        return self.scope.find_variable(name)

    def get_method(self, name: str, arity: int) -> Function | None:
        return self.scope.find_function(name, arity + 1)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Type) and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return self.name


ANY = Type("Any")
NIL = Type("Nil")
COMPARABLE = Type("Comparable")
BOOLEAN = Type("Boolean")
INTEGER = Type("Integer")
DECIMAL = Type("Decimal")
CHARACTER = Type("Character")
STRING = Type("String")
INTEGER_ITERABLE = Type("IntegerIterable")

COMPARABLE_TYPES = (INTEGER, DECIMAL, CHARACTER, STRING)

TYPES: dict[str, Type] = {
    t.name: t
    for t in (
        ANY,
        NIL,
        COMPARABLE,
        BOOLEAN,
        INTEGER,
        DECIMAL,
        CHARACTER,
        STRING,
        INTEGER_ITERABLE,
    )
}


def get_type(name: str, offset: int | None = None) -> Type:
    """Resolves a type name against the registry.

    Raises:
        PlcTypeError: If no type is registered under ``name``.
    """
    if name not in TYPES:
        raise PlcTypeError(f"Unknown type {name!r}", offset)
    return TYPES[name]


def register_type(type_: Type) -> Type:
    """Adds a custom type (e.g. one exposing fields or methods) to the registry."""
    if type_.name in TYPES:
        raise PlcTypeError(f"Type {type_.name!r} is already registered")
    TYPES[type_.name] = type_
    return type_


def is_assignable(target: Type, actual: Type) -> bool:
    if target == ANY:
        return True
    if target == COMPARABLE:
        return actual in COMPARABLE_TYPES
    return target == actual


def require_assignable(target: Type, actual: Type, offset: int | None = None) -> None:
    """Raises PlcTypeError unless a value of ``actual`` may be used as ``target``."""
    if not is_assignable(target, actual):
        raise PlcTypeError(f"{actual} is not assignable to {target}", offset)
