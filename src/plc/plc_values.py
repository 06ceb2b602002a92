"""
Runtime values for the PLC interpreter.

A PlcObject is a closed tagged union: ``kind`` names the variant and ``value``
holds the host payload.

    NIL        None
    BOOLEAN    bool
    INTEGER    int (arbitrary precision)
    DECIMAL    decimal.Decimal (arbitrary precision)
    CHARACTER  str of length one
    STRING     str
    ITERABLE   tuple[PlcObject, ...]
    OBJECT     any host payload; fields and methods live in ``scope``

Every value may carry a Scope of fields and methods for receiver access.
Equality compares ``kind`` and ``value`` only.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from plc.plc_errors import PlcRuntimeError
from plc.plc_scope import Scope


class ValueKind(Enum):
    NIL = "Nil"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    CHARACTER = "Character"
    STRING = "String"
    ITERABLE = "IntegerIterable"
    OBJECT = "Object"


@dataclass(frozen=True)
class PlcObject:
    kind: ValueKind
    value: Any = None
    scope: Scope = field(default_factory=Scope, compare=False, repr=False)

    def get_field(self, name: str) -> PlcObject:
        variable = self.scope.find_variable(name)
        if variable is None or variable.value is None:
            raise PlcRuntimeError(f"{self.kind.value} value has no field {name!r}")
        return variable.value

    def set_field(self, name: str, value: PlcObject) -> None:
        variable = self.scope.find_variable(name)
        if variable is None:
            raise PlcRuntimeError(f"{self.kind.value} value has no field {name!r}")
        variable.value = value

    def call_method(self, name: str, args: list[PlcObject]) -> PlcObject:
        """Invokes ``name`` with this value prepended as argument 0."""
        method = self.scope.find_function(name, len(args) + 1)
        if method is None:
            raise PlcRuntimeError(
                f"{self.kind.value} value has no method {name}/{len(args)}"
            )
        return method([self, *args])

    def __str__(self) -> str:
        if self.kind is ValueKind.NIL:
            return "null"
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind is ValueKind.ITERABLE:
            return "[" + ", ".join(str(v) for v in self.value) + "]"
        if self.kind is ValueKind.INTEGER:
            # str(int) is capped at sys.get_int_max_str_digits(); Decimal is not.
            return str(Decimal(self.value))
        return str(self.value)


NIL = PlcObject(ValueKind.NIL)
TRUE = PlcObject(ValueKind.BOOLEAN, True)
FALSE = PlcObject(ValueKind.BOOLEAN, False)


def boolean(value: bool) -> PlcObject:
    return TRUE if value else FALSE


def integer(value: int) -> PlcObject:
    return PlcObject(ValueKind.INTEGER, value)


def decimal(value: Decimal) -> PlcObject:
    return PlcObject(ValueKind.DECIMAL, value)


def character(value: str) -> PlcObject:
    return PlcObject(ValueKind.CHARACTER, value)


def string(value: str) -> PlcObject:
    return PlcObject(ValueKind.STRING, value)


def iterable(values: Iterable[PlcObject]) -> PlcObject:
    return PlcObject(ValueKind.ITERABLE, tuple(values))
