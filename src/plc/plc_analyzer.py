"""
Static analyzer (type checker) for PLC programs.

Walks a parsed ``Source`` once and annotates it in place: every expression gets
a ``type``, every ``Access``/``Field``/``Declaration`` a ``variable`` binding and
every ``Function``/``Method`` a ``function`` binding. The first violation
raises ``PlcTypeError``.

Order of analysis:
    1. Fields, in source order. Their initializers see earlier fields and the
       built-ins only, matching run-time evaluation order.
    2. All method signatures, so methods may call each other in any order.
    3. Method bodies.
    4. ``main/0`` must exist and return ``Integer``.

The current scope is passed explicitly to every visit method. Blocks get a
child scope that is simply dropped when the block has been checked.

Built-ins:
    print(Any) -> Nil
    range(Integer, Integer) -> IntegerIterable
"""

from __future__ import annotations

import logging
from typing import cast

from plc import plc_types as types
from plc.plc_ast import (
    Access,
    Assignment,
    ASTNode,
    Binary,
    Char,
    Declaration,
    Expr,
    Expression,
    Field,
    For,
    Function,
    Group,
    If,
    Literal,
    Method,
    Return,
    Source,
    Stmt,
    While,
)
from plc.plc_constants import (
    COMPARISON_OPS,
    DECIMAL_MAX,
    INT_MAX,
    INT_MIN,
    LOGICAL_OPS,
)
from plc.plc_errors import PlcTypeError, ScopeError
from plc.plc_scope import Function as FunctionBinding
from plc.plc_scope import Scope, Variable
from plc.plc_types import Type, require_assignable

logger = logging.getLogger(__name__)


class Analyzer:
    """Type checker for PLC ASTs.

    Attributes:
        scope (Scope): Global scope holding the built-in signatures. Each call
            to ``analyze`` checks the program in a fresh child of it.
        method (Method | None): The method whose body is being checked.
    """

    def __init__(self, parent: Scope | None = None) -> None:
        self.scope = Scope(parent)
        self.scope.define_function(
            FunctionBinding("print", 1, parameter_types=[types.ANY], return_type=types.NIL)
        )
        self.scope.define_function(
            FunctionBinding(
                "range",
                2,
                parameter_types=[types.INTEGER, types.INTEGER],
                return_type=types.INTEGER_ITERABLE,
            )
        )
        self.method: Method | None = None

    def analyze(self, source: Source) -> Source:
        try:
            self.visit(source, self.scope.child())
        except RecursionError as e:
            raise PlcTypeError("Maximum nesting depth exceeded", source.offset) from e
        logger.debug(
            "analyzed %d fields and %d methods", len(source.fields), len(source.methods)
        )
        return source

    def visit(self, node: ASTNode, scope: Scope) -> None:
        visitor = getattr(self, f"visit_{node.kind}", None)
        if visitor is None:
            raise NotImplementedError(f"No analyzer for node kind '{node.kind}'")
        visitor(node, scope)

    def visit_expr(self, node: Expr, scope: Scope) -> Type:
        self.visit(node, scope)
        return cast(Type, node.type)

    def visit_block(self, statements: list[Stmt], scope: Scope) -> None:
        for stmt in statements:
            self.visit(stmt, scope)

    # Program structure

    def visit_source(self, node: Source, scope: Scope) -> None:
        for f in node.fields:
            self.visit(f, scope)
        for m in node.methods:
            self.declare_method(m, scope)
        for m in node.methods:
            self.visit(m, scope)

        main = scope.find_function("main", 0)
        if main is None:
            raise PlcTypeError("Missing main/0 method", node.offset)
        if main.return_type != types.INTEGER:
            raise PlcTypeError("main/0 must return Integer", node.offset)

    def visit_field(self, node: Field, scope: Scope) -> None:
        node.variable = self.declare_variable(
            node.name, node.type_name, node.value, node.offset, scope
        )

    def declare_method(self, node: Method, scope: Scope) -> FunctionBinding:
        parameter_types = [
            types.get_type(t, node.offset) if t is not None else types.ANY
            for t in node.parameter_type_names
        ]
        return_type = (
            types.get_type(node.return_type_name, node.offset)
            if node.return_type_name is not None
            else types.NIL
        )
        function = FunctionBinding(
            node.name,
            len(node.parameters),
            parameter_types=parameter_types,
            return_type=return_type,
        )
        try:
            node.function = scope.define_function(function)
            return node.function
        except ScopeError as e:
            raise PlcTypeError(e.message, node.offset) from e

    def visit_method(self, node: Method, scope: Scope) -> None:
        function = node.function
        if function is None:
            function = self.declare_method(node, scope)
        body = scope.child()
        for name, type_ in zip(node.parameters, function.parameter_types):
            self.define(body, name, type_, node.offset)

        enclosing = self.method
        self.method = node
        try:
            self.visit_block(node.statements, body)
        finally:
            self.method = enclosing

    # Statements

    def visit_expression(self, node: Expression, scope: Scope) -> None:
        if not isinstance(node.expression, Function):
            raise PlcTypeError("Expression statement must be a function call", node.offset)
        self.visit(node.expression, scope)

    def visit_declaration(self, node: Declaration, scope: Scope) -> None:
        node.variable = self.declare_variable(
            node.name, node.type_name, node.value, node.offset, scope
        )

    def visit_assignment(self, node: Assignment, scope: Scope) -> None:
        if not isinstance(node.receiver, Access):
            raise PlcTypeError("Assignment target must be a variable or field", node.offset)
        target = self.visit_expr(node.receiver, scope)
        actual = self.visit_expr(node.value, scope)
        require_assignable(target, actual, node.value.offset)

    def visit_if(self, node: If, scope: Scope) -> None:
        condition = self.visit_expr(node.condition, scope)
        require_assignable(types.BOOLEAN, condition, node.condition.offset)
        if not node.then_statements:
            raise PlcTypeError("IF must have at least one statement", node.offset)
        self.visit_block(node.then_statements, scope.child())
        self.visit_block(node.else_statements, scope.child())

    def visit_for(self, node: For, scope: Scope) -> None:
        iterable = self.visit_expr(node.value, scope)
        require_assignable(types.INTEGER_ITERABLE, iterable, node.value.offset)
        if not node.statements:
            raise PlcTypeError("FOR must have at least one statement", node.offset)
        body = scope.child()
        self.define(body, node.name, types.INTEGER, node.offset)
        self.visit_block(node.statements, body)

    def visit_while(self, node: While, scope: Scope) -> None:
        condition = self.visit_expr(node.condition, scope)
        require_assignable(types.BOOLEAN, condition, node.condition.offset)
        self.visit_block(node.statements, scope.child())

    def visit_return(self, node: Return, scope: Scope) -> None:
        if self.method is None or self.method.function is None:
            raise PlcTypeError("RETURN outside of a method", node.offset)
        actual = self.visit_expr(node.value, scope)
        expected = self.method.function.return_type or types.NIL
        require_assignable(expected, actual, node.value.offset)

    # Expressions

    def visit_literal(self, node: Literal, scope: Scope) -> None:
        value = node.literal
        if value is None:
            node.type = types.NIL
        elif isinstance(value, bool):
            node.type = types.BOOLEAN
        elif isinstance(value, Char):
            node.type = types.CHARACTER
        elif isinstance(value, str):
            node.type = types.STRING
        elif isinstance(value, int):
            if not INT_MIN <= value <= INT_MAX:
                raise PlcTypeError(
                    f"Integer literal is out of range [{INT_MIN}, {INT_MAX}]", node.offset
                )
            node.type = types.INTEGER
        else:
            if abs(value) > DECIMAL_MAX:
                raise PlcTypeError(f"Decimal {value} is out of range", node.offset)
            node.type = types.DECIMAL

    def visit_group(self, node: Group, scope: Scope) -> None:
        if not isinstance(node.expression, Binary):
            raise PlcTypeError("Grouped expression must be a binary expression", node.offset)
        node.type = self.visit_expr(node.expression, scope)

    def visit_binary(self, node: Binary, scope: Scope) -> None:
        left = self.visit_expr(node.left, scope)
        right = self.visit_expr(node.right, scope)
        op = node.operator

        if op in LOGICAL_OPS:
            require_assignable(types.BOOLEAN, left, node.left.offset)
            require_assignable(types.BOOLEAN, right, node.right.offset)
            node.type = types.BOOLEAN
        elif op in COMPARISON_OPS:
            require_assignable(types.COMPARABLE, left, node.left.offset)
            require_assignable(types.COMPARABLE, right, node.right.offset)
            if left != right:
                raise PlcTypeError(f"Cannot compare {left} with {right}", node.offset)
            node.type = types.BOOLEAN
        elif op == "+" and types.STRING in (left, right):
            node.type = types.STRING
        else:
            if left not in (types.INTEGER, types.DECIMAL):
                raise PlcTypeError(f"'{op}' needs Integer or Decimal, got {left}", node.offset)
            if left != right:
                raise PlcTypeError(f"'{op}' operands differ: {left} and {right}", node.offset)
            node.type = left

    def visit_access(self, node: Access, scope: Scope) -> None:
        if node.receiver is not None:
            receiver = self.visit_expr(node.receiver, scope)
            variable = receiver.get_field(node.name)
            if variable is None:
                raise PlcTypeError(f"{receiver} has no field {node.name!r}", node.offset)
        else:
            variable = scope.find_variable(node.name)
            if variable is None:
                raise PlcTypeError(f"Variable {node.name!r} is not defined", node.offset)
        if variable.type is None:
            raise PlcTypeError(f"Variable {node.name!r} has no static type", node.offset)
        node.variable = variable
        node.type = variable.type

    def visit_function(self, node: Function, scope: Scope) -> None:
        arity = len(node.arguments)
        if node.receiver is not None:
            receiver = self.visit_expr(node.receiver, scope)
            function = receiver.get_method(node.name, arity)
            if function is None:
                raise PlcTypeError(
                    f"{receiver} has no method {node.name}/{arity}", node.offset
                )
            parameter_types = function.parameter_types[1:]
        else:
            function = scope.find_function(node.name, arity)
            if function is None:
                raise PlcTypeError(f"Function {node.name}/{arity} is not defined", node.offset)
            parameter_types = function.parameter_types

        actual_types = [self.visit_expr(argument, scope) for argument in node.arguments]
        for argument, expected, actual in zip(
            node.arguments, parameter_types, actual_types
        ):
            require_assignable(expected, actual, argument.offset)
        node.function = function
        node.type = function.return_type or types.NIL

    # Helpers

    def declare_variable(
        self,
        name: str,
        type_name: str | None,
        value: Expr | None,
        offset: int,
        scope: Scope,
    ) -> Variable:
        """Checks a field or declaration and binds it in ``scope``."""
        actual = self.visit_expr(value, scope) if value is not None else None
        if type_name is not None:
            declared = types.get_type(type_name, offset)
        elif actual is not None:
            declared = actual
        else:
            raise PlcTypeError(f"{name!r} needs a type or an initial value", offset)
        if value is not None and actual is not None:
            require_assignable(declared, actual, value.offset)
        return self.define(scope, name, declared, offset)

    @staticmethod
    def define(scope: Scope, name: str, type_: Type, offset: int) -> Variable:
        try:
            return scope.define_variable(name, type_)
        except ScopeError as e:
            raise PlcTypeError(e.message, offset) from e


def analyze(source: Source, scope: Scope | None = None) -> Source:
    """Type-checks ``source`` in place under an optional parent ``scope``."""
    return Analyzer(scope).analyze(source)


__all__ = ["Analyzer", "analyze"]
