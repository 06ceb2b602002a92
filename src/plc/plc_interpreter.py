"""
Tree-walking interpreter for PLC programs.

``execute`` defines every field (evaluating initializers in order) and every
method, then invokes ``main()`` and returns its result.

Methods are closures over the scope they were defined in. A call runs its
body in a new child of that scope with the parameters bound positionally.

Statements return an outcome instead of unwinding the host stack:
``COMPLETED`` when control falls through, or ``Returning(value)`` when a
``RETURN`` ran. Blocks stop at the first ``Returning`` and hand it to their
caller, up to the method call that produces the value.

Every ``IF`` branch, ``WHILE`` iteration and ``FOR`` iteration runs in a fresh
child scope that is dropped when the block finishes.

Operators dispatch on the ``ValueKind`` of the evaluated operands:
    AND, OR        short-circuit over Boolean values
    < <= > >=      same-kind Integer, Decimal, Character or String
    == !=          value equality of any two values
    +              concatenation if either side is a String, else addition
    - * /          same-kind Integer or Decimal arithmetic

Integer division truncates toward zero. Decimal division keeps the scale of
the left operand and rounds half to even. A zero divisor raises
``DivideByZeroError``.
"""

from __future__ import annotations

import logging
import operator
import sys
from collections.abc import Callable
from dataclasses import dataclass
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal, localcontext
from typing import Any, TextIO

from plc import plc_values as values
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
from plc.plc_constants import LOGICAL_OPS
from plc.plc_errors import DivideByZeroError, PlcRuntimeError, ScopeError
from plc.plc_scope import Function as FunctionBinding
from plc.plc_scope import Scope
from plc.plc_values import NIL, PlcObject, ValueKind

logger = logging.getLogger(__name__)

EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)

ORDERED_KINDS = (
    ValueKind.INTEGER,
    ValueKind.DECIMAL,
    ValueKind.CHARACTER,
    ValueKind.STRING,
)
NUMERIC_KINDS = (ValueKind.INTEGER, ValueKind.DECIMAL)

COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

ARITHMETIC: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
}


@dataclass(frozen=True)
class Completed:
    pass


@dataclass(frozen=True)
class Returning:
    value: PlcObject


Outcome = Completed | Returning

COMPLETED = Completed()


def divide_integers(left: int, right: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def round_half_even(numerator: int, denominator: int) -> int:
    """Returns numerator / denominator rounded to the nearest int, ties to even."""
    quotient, remainder = divmod(abs(numerator), abs(denominator))
    twice = 2 * remainder
    if twice > abs(denominator) or (twice == abs(denominator) and quotient % 2):
        quotient += 1
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def divide_decimals(left: Decimal, right: Decimal) -> Decimal:
    """Divides at the scale of ``left``, rounding half to even.

    Works on the integer coefficients so the only rounding is the final one.
    """
    scale = int(left.as_tuple().exponent)
    right_scale = int(right.as_tuple().exponent)
    numerator = int(left.scaleb(-scale, EXACT))
    denominator = int(right.scaleb(-right_scale, EXACT))
    if right_scale < 0:
        numerator *= 10**-right_scale
    else:
        denominator *= 10**right_scale
    return Decimal(round_half_even(numerator, denominator)).scaleb(scale, EXACT)


class Interpreter:
    """Evaluator for PLC ASTs.

    Attributes:
        scope (Scope): Global scope holding the built-ins. Each ``execute``
            runs the program in a fresh child of it.
        output (TextIO | None): Stream written by ``print``; None means the
            current ``sys.stdout``.
    """

    def __init__(self, parent: Scope | None = None, output: TextIO | None = None):
        self.scope = Scope(parent)
        self.output = output
        self.scope.define_function(FunctionBinding("print", 1, invoke=self._print))
        self.scope.define_function(FunctionBinding("range", 2, invoke=self._range))

    def _print(self, args: list[PlcObject]) -> PlcObject:
        print(args[0], file=self.output if self.output is not None else sys.stdout)
        return NIL

    @staticmethod
    def _range(args: list[PlcObject]) -> PlcObject:
        start, end = (require(ValueKind.INTEGER, arg) for arg in args)
        return values.iterable(values.integer(i) for i in range(start.value, end.value))

    def execute(self, source: Source) -> PlcObject:
        """Runs ``source`` and returns the value produced by ``main()``.

        Raises:
            PlcRuntimeError: On any run-time failure, including exhausting the
                host recursion limit.
        """
        try:
            return self.visit_source(source, self.scope.child())
        except RecursionError as e:
            raise PlcRuntimeError("Maximum recursion depth exceeded") from e

    def visit_source(self, node: Source, scope: Scope) -> PlcObject:
        for f in node.fields:
            self.define_field(f, scope)
        for m in node.methods:
            self.define_method(m, scope)
        main = scope.find_function("main", 0)
        if main is None:
            raise PlcRuntimeError("Missing main/0 method", node.offset)
        logger.debug("invoking main")
        return main([])

    def define_field(self, node: Field, scope: Scope) -> None:
        value = self.evaluate(node.value, scope) if node.value is not None else NIL
        define(scope, node.name, value, node.offset)

    def define_method(self, node: Method, scope: Scope) -> None:
        def invoke(args: list[PlcObject]) -> PlcObject:
            body = scope.child()
            for name, arg in zip(node.parameters, args):
                define(body, name, arg, node.offset)
            outcome = self.execute_block(node.statements, body)
            if isinstance(outcome, Returning):
                return outcome.value
            return NIL

        try:
            scope.define_function(
                FunctionBinding(node.name, len(node.parameters), invoke=invoke)
            )
        except ScopeError as e:
            raise PlcRuntimeError(e.message, node.offset) from e

    # Statements

    def execute_block(self, statements: list[Stmt], scope: Scope) -> Outcome:
        for stmt in statements:
            outcome = self.execute_statement(stmt, scope)
            if isinstance(outcome, Returning):
                return outcome
        return COMPLETED

    def execute_statement(self, node: Stmt, scope: Scope) -> Outcome:
        executor = getattr(self, f"exec_{node.kind}", None)
        if executor is None:
            raise NotImplementedError(f"No executor for statement kind '{node.kind}'")
        outcome: Outcome = executor(node, scope)
        return outcome

    def exec_expression(self, node: Expression, scope: Scope) -> Outcome:
        self.evaluate(node.expression, scope)
        return COMPLETED

    def exec_declaration(self, node: Declaration, scope: Scope) -> Outcome:
        value = self.evaluate(node.value, scope) if node.value is not None else NIL
        define(scope, node.name, value, node.offset)
        return COMPLETED

    def exec_assignment(self, node: Assignment, scope: Scope) -> Outcome:
        target = node.receiver
        if not isinstance(target, Access):
            raise PlcRuntimeError("Assignment target must be a variable or field", node.offset)
        if target.receiver is not None:
            receiver = self.evaluate(target.receiver, scope)
            receiver.set_field(target.name, self.evaluate(node.value, scope))
        else:
            variable = scope.find_variable(target.name)
            if variable is None:
                raise PlcRuntimeError(f"Variable {target.name!r} is not defined", target.offset)
            variable.value = self.evaluate(node.value, scope)
        return COMPLETED

    def exec_if(self, node: If, scope: Scope) -> Outcome:
        condition = require(
            ValueKind.BOOLEAN, self.evaluate(node.condition, scope), node.condition
        )
        branch = node.then_statements if condition.value else node.else_statements
        return self.execute_block(branch, scope.child())

    def exec_for(self, node: For, scope: Scope) -> Outcome:
        iterable = require(ValueKind.ITERABLE, self.evaluate(node.value, scope), node.value)
        for element in iterable.value:
            body = scope.child()
            define(body, node.name, element, node.offset)
            outcome = self.execute_block(node.statements, body)
            if isinstance(outcome, Returning):
                return outcome
        return COMPLETED

    def exec_while(self, node: While, scope: Scope) -> Outcome:
        while require(
            ValueKind.BOOLEAN, self.evaluate(node.condition, scope), node.condition
        ).value:
            outcome = self.execute_block(node.statements, scope.child())
            if isinstance(outcome, Returning):
                return outcome
        return COMPLETED

    def exec_return(self, node: Return, scope: Scope) -> Outcome:
        return Returning(self.evaluate(node.value, scope))

    # Expressions

    def evaluate(self, node: Expr, scope: Scope) -> PlcObject:
        evaluator = getattr(self, f"eval_{node.kind}", None)
        if evaluator is None:
            raise NotImplementedError(f"No evaluator for expression kind '{node.kind}'")
        result: PlcObject = evaluator(node, scope)
        return result

    def eval_literal(self, node: Literal, scope: Scope) -> PlcObject:
        value = node.literal
        if value is None:
            return NIL
        if isinstance(value, bool):
            return values.boolean(value)
        if isinstance(value, Char):
            return values.character(str(value))
        if isinstance(value, str):
            return values.string(value)
        if isinstance(value, int):
            return values.integer(value)
        if isinstance(value, Decimal):
            return values.decimal(value)
        raise PlcRuntimeError(f"Unsupported literal {value!r}", node.offset)

    def eval_group(self, node: Group, scope: Scope) -> PlcObject:
        return self.evaluate(node.expression, scope)

    def eval_binary(self, node: Binary, scope: Scope) -> PlcObject:
        op = node.operator
        if op in LOGICAL_OPS:
            left = require(ValueKind.BOOLEAN, self.evaluate(node.left, scope), node.left)
            if (op == "AND") != left.value:
                return left
            return require(ValueKind.BOOLEAN, self.evaluate(node.right, scope), node.right)

        left = self.evaluate(node.left, scope)
        right = self.evaluate(node.right, scope)
        if op == "==":
            return values.boolean(left == right)
        if op == "!=":
            return values.boolean(left != right)
        if op in COMPARATORS:
            if left.kind not in ORDERED_KINDS or right.kind is not left.kind:
                raise PlcRuntimeError(
                    f"Cannot compare {left.kind.value} with {right.kind.value}",
                    node.offset,
                )
            return values.boolean(COMPARATORS[op](left.value, right.value))
        if op == "+" and ValueKind.STRING in (left.kind, right.kind):
            return values.string(str(left) + str(right))
        return self.arithmetic(node, left, right)

    def arithmetic(self, node: Binary, left: PlcObject, right: PlcObject) -> PlcObject:
        op = node.operator
        if left.kind not in NUMERIC_KINDS or right.kind is not left.kind:
            raise PlcRuntimeError(
                f"'{op}' needs two Integer or two Decimal operands, "
                f"got {left.kind.value} and {right.kind.value}",
                node.offset,
            )
        if op == "/":
            if right.value == 0:
                raise DivideByZeroError("Division by zero", node.right.offset)
            if left.kind is ValueKind.INTEGER:
                return values.integer(divide_integers(left.value, right.value))
            return values.decimal(divide_decimals(left.value, right.value))
        if op not in ARITHMETIC:
            raise PlcRuntimeError(f"Unknown operator '{op}'", node.offset)
        if left.kind is ValueKind.INTEGER:
            return values.integer(ARITHMETIC[op](left.value, right.value))
        with localcontext(EXACT):
            return values.decimal(ARITHMETIC[op](left.value, right.value))

    def eval_access(self, node: Access, scope: Scope) -> PlcObject:
        if node.receiver is not None:
            return self.evaluate(node.receiver, scope).get_field(node.name)
        variable = scope.find_variable(node.name)
        if variable is None or variable.value is None:
            raise PlcRuntimeError(f"Variable {node.name!r} is not defined", node.offset)
        return variable.value

    def eval_function(self, node: Function, scope: Scope) -> PlcObject:
        if node.receiver is not None:
            receiver = self.evaluate(node.receiver, scope)
            args = [self.evaluate(arg, scope) for arg in node.arguments]
            return receiver.call_method(node.name, args)

        function = scope.find_function(node.name, len(node.arguments))
        if function is None or function.invoke is None:
            raise PlcRuntimeError(
                f"Function {node.name}/{len(node.arguments)} is not defined", node.offset
            )
        args = [self.evaluate(arg, scope) for arg in node.arguments]
        return function(args)


def require(kind: ValueKind, value: PlcObject, node: ASTNode | None = None) -> PlcObject:
    """Returns ``value`` if it has the given kind, else raises PlcRuntimeError."""
    if value.kind is not kind:
        raise PlcRuntimeError(
            f"Expected {kind.value}, received {value.kind.value}",
            node.offset if node is not None else None,
        )
    return value


def define(scope: Scope, name: str, value: PlcObject, offset: int) -> None:
    try:
        scope.define_variable(name, value=value)
    except ScopeError as e:
        raise PlcRuntimeError(e.message, offset) from e


def execute(
    source: Source, scope: Scope | None = None, output: TextIO | None = None
) -> PlcObject:
    """Runs ``source`` under an optional parent ``scope``; see ``Interpreter.execute``."""
    return Interpreter(scope, output).execute(source)


__all__ = [
    "COMPLETED",
    "Completed",
    "Interpreter",
    "Outcome",
    "Returning",
    "execute",
]
