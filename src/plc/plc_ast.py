"""
Defines the abstract syntax tree (AST) for the PLC language.

The tree is built once by the parser. The analyzer fills in the annotation
fields (``type``, ``variable``, ``function``) in a single pass; after that the
tree is only read, and the interpreter may run it any number of times.

Classes:
    ASTNode: Base for every node. Carries ``offset`` and ``to_dict()``.
    Source, Field, Method: Program structure.
    Stmt and its variants: Expression, Declaration, Assignment, If, For,
        While, Return.
    Expr and its variants: Literal, Group, Binary, Access, Function.
    Char: A one-character ``str`` used as the host value of character literals.

Equality compares syntax only: offsets and analyzer annotations are ignored.

Example:
    Binary("-", Literal(1), Binary("-", Literal(2), Literal(3)))
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from plc.plc_scope import Function as FunctionBinding
    from plc.plc_scope import Variable
    from plc.plc_types import Type


class Char(str):
    """Host value of a character literal, distinguishable from a string."""

    def __repr__(self) -> str:
        return f"Char({str.__repr__(self)})"


@dataclass
class ASTNode:
    kind: ClassVar[str] = "node"

    offset: int = field(default=0, compare=False, repr=False, kw_only=True)

    def to_dict(self) -> dict[str, Any]:
        """Converts the node and its descendants to plain data for JSON output."""
        data: dict[str, Any] = {"kind": self.kind, "offset": self.offset}
        for f in fields(self):
            if f.name == "offset" or not f.compare:
                continue
            data[f.name] = _plain(getattr(self, f.name))
        return data


def _plain(value: Any) -> Any:
    if isinstance(value, ASTNode):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    return value


@dataclass
class Field(ASTNode):
    kind: ClassVar[str] = "field"

    name: str
    type_name: str | None = None
    value: Expr | None = None
    variable: Variable | None = field(
        default=None, compare=False, repr=False, kw_only=True
    )


@dataclass
class Method(ASTNode):
    """A method definition.

    ``parameter_type_names`` holds one entry per parameter, None where the
    parameter was left untyped.
    """

    kind: ClassVar[str] = "method"

    name: str
    parameters: list[str]
    parameter_type_names: list[str | None]
    return_type_name: str | None
    statements: list[Stmt]
    function: FunctionBinding | None = field(
        default=None, compare=False, repr=False, kw_only=True
    )


@dataclass
class Source(ASTNode):
    kind: ClassVar[str] = "source"

    fields: list[Field]
    methods: list[Method]


# Statements


@dataclass
class Stmt(ASTNode):
    pass


@dataclass
class Expression(Stmt):
    kind: ClassVar[str] = "expression"

    expression: Expr


@dataclass
class Declaration(Stmt):
    kind: ClassVar[str] = "declaration"

    name: str
    type_name: str | None = None
    value: Expr | None = None
    variable: Variable | None = field(
        default=None, compare=False, repr=False, kw_only=True
    )


@dataclass
class Assignment(Stmt):
    kind: ClassVar[str] = "assignment"

    receiver: Expr
    value: Expr


@dataclass
class If(Stmt):
    kind: ClassVar[str] = "if"

    condition: Expr
    then_statements: list[Stmt]
    else_statements: list[Stmt] = field(default_factory=list)


@dataclass
class For(Stmt):
    kind: ClassVar[str] = "for"

    name: str
    value: Expr
    statements: list[Stmt]


@dataclass
class While(Stmt):
    kind: ClassVar[str] = "while"

    condition: Expr
    statements: list[Stmt]


@dataclass
class Return(Stmt):
    kind: ClassVar[str] = "return"

    value: Expr


# Expressions


@dataclass
class Expr(ASTNode):
    type: Type | None = field(default=None, compare=False, repr=False, kw_only=True)


@dataclass
class Literal(Expr):
    """A literal. ``literal`` is None, bool, int, Decimal, Char or str."""

    kind: ClassVar[str] = "literal"

    literal: Any

    def __eq__(self, other: object) -> bool:
        # bool is an int subclass and Decimal compares equal to int, so the
        # host type has to match as well as the value.
        return (
            isinstance(other, Literal)
            and type(self.literal) is type(other.literal)
            and self.literal == other.literal
        )


@dataclass
class Group(Expr):
    kind: ClassVar[str] = "group"

    expression: Expr


@dataclass
class Binary(Expr):
    kind: ClassVar[str] = "binary"

    operator: str
    left: Expr
    right: Expr


@dataclass
class Access(Expr):
    kind: ClassVar[str] = "access"

    receiver: Expr | None
    name: str
    variable: Variable | None = field(
        default=None, compare=False, repr=False, kw_only=True
    )


@dataclass
class Function(Expr):
    kind: ClassVar[str] = "function"

    receiver: Expr | None
    name: str
    arguments: list[Expr]
    function: FunctionBinding | None = field(
        default=None, compare=False, repr=False, kw_only=True
    )
