"""
PLC Language Parser

Parses a list of lexer tokens into a ``Source`` AST using recursive descent,
one method per grammar rule.

Grammar
-------
    source         := (field | method)*
    field          := 'LET' identifier (':' identifier)? ('=' expr)? ';'?
    method         := 'DEF' identifier '(' (param (',' param)*)? ')'
                      (':' identifier)? 'DO' statement* 'END'
    param          := identifier (':' identifier)?
    statement      := declaration | if | for | while | return
                    | expr ('=' expr)? ';'
    declaration    := 'LET' identifier (':' identifier)? ('=' expr)? ';'?
    if             := 'IF' expr 'DO' statement* ('ELSE' statement*)? 'END'
    for            := 'FOR' identifier 'IN' expr 'DO' statement* 'END'
    while          := 'WHILE' expr 'DO' statement* 'END'
    return         := 'RETURN' expr ';'
    expr           := logical
    logical        := equality (('AND' | 'OR') logical)?
    equality       := additive (('<' | '<=' | '>' | '>=' | '==' | '!=') equality)?
    additive       := multiplicative (('+' | '-') additive)?
    multiplicative := secondary (('*' | '/') multiplicative)?
    secondary      := primary ('.' identifier ('(' arguments? ')')?)*
    primary        := 'TRUE' | 'FALSE' | 'NIL' | integer | decimal
                    | character | string | '(' expr ')'
                    | identifier ('(' arguments? ')')?

Each binary level recurses into itself for its right operand, so chains of
same-precedence operators group to the right: ``1 - 2 - 3`` is
``1 - (2 - 3)``.

Tokens are matched with ``peek``/``match`` against patterns that are either a
``TokenKind`` (matches the token kind) or a ``str`` (matches the literal text).
Reserved words are identifiers to the lexer and are told apart here by text.

Raises
------
ParseError
    On the first unexpected token, with the offset of that token (or one past
    the last token at end of input).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal

from plc.plc_ast import (
    Access,
    Assignment,
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
    ADDITIVE_OPS,
    COMPARISON_OPS,
    ESCAPES,
    KEYWORDS,
    LOGICAL_OPS,
    MULTIPLICATIVE_OPS,
)
from plc.plc_errors import ParseError
from plc.plc_lexer import Token, TokenKind

logger = logging.getLogger(__name__)

Pattern = TokenKind | str


def decode_escapes(text: str) -> str:
    """Replaces escape sequences until the text stops shrinking.

    The result is a fixed point, so decoding it again returns it unchanged.
    """
    while True:
        decoded = text
        for escape, char in ESCAPES:
            decoded = decoded.replace(escape, char)
        if len(decoded) == len(text):
            return decoded
        text = decoded


class Parser:
    """
    Recursive-descent parser for PLC.

    Attributes
    ----------
    tokens : list[Token]
        The input token stream.
    position : int
        Index of the next unconsumed token.
    """

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens: list[Token] = tokens
        self.position: int = 0

    # Token stream helpers

    def has(self, offset: int = 0) -> bool:
        return self.position + offset < len(self.tokens)

    def get(self, offset: int = 0) -> Token:
        return self.tokens[self.position + offset]

    def previous(self) -> Token:
        return self.tokens[self.position - 1]

    def peek(self, *patterns: Pattern) -> bool:
        """Returns True if the next tokens match ``patterns`` one to one."""
        for i, pattern in enumerate(patterns):
            if not self.has(i):
                return False
            tok = self.get(i)
            if isinstance(pattern, TokenKind):
                if tok.kind is not pattern:
                    return False
            elif tok.text != pattern:
                return False
        return True

    def match(self, *patterns: Pattern) -> bool:
        """Like ``peek``, but consumes the matched tokens."""
        if not self.peek(*patterns):
            return False
        self.position += len(patterns)
        return True

    def error_offset(self) -> int:
        if self.has():
            return self.get().offset
        if not self.tokens:
            return 0
        last = self.tokens[-1]
        return last.offset + len(last.text)

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.error_offset())

    def expect(self, text: str) -> Token:
        if not self.match(text):
            raise self.error(f"Expected '{text}'")
        return self.previous()

    def expect_identifier(self) -> str:
        if self.peek(TokenKind.IDENTIFIER) and self.get().text not in KEYWORDS:
            self.position += 1
            return self.previous().text
        raise self.error("Expected identifier")

    def optional_type_name(self) -> str | None:
        if self.match(":"):
            return self.expect_identifier()
        return None

    # Top level

    def parse_source(self) -> Source:
        """Parses the whole token list. Every token must be consumed.

        Raises:
            ParseError: On unexpected input, including nesting too deep for
                the host recursion limit.
        """
        offset = self.error_offset()
        fields: list[Field] = []
        methods: list[Method] = []
        try:
            while self.has():
                if self.peek("LET"):
                    fields.append(self.parse_field())
                elif self.peek("DEF"):
                    methods.append(self.parse_method())
                else:
                    raise self.error("Expected 'LET' or 'DEF'")
        except RecursionError as e:
            raise ParseError("Maximum nesting depth exceeded", self.error_offset()) from e
        logger.debug("parsed %d fields and %d methods", len(fields), len(methods))
        return Source(fields, methods, offset=offset)

    def parse_field(self) -> Field:
        offset = self.expect("LET").offset
        name = self.expect_identifier()
        type_name = self.optional_type_name()
        value = self.parse_expression() if self.match("=") else None
        self.match(";")
        return Field(name, type_name, value, offset=offset)

    def parse_method(self) -> Method:
        offset = self.expect("DEF").offset
        name = self.expect_identifier()
        self.expect("(")
        parameters: list[str] = []
        type_names: list[str | None] = []
        if not self.peek(")"):
            while True:
                parameters.append(self.expect_identifier())
                type_names.append(self.optional_type_name())
                if not self.match(","):
                    break
        self.expect(")")
        return_type_name = self.optional_type_name()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return Method(
            name, parameters, type_names, return_type_name, statements, offset=offset
        )

    def parse_block(self, *terminators: str) -> list[Stmt]:
        """Parses statements up to (not including) one of ``terminators``."""
        statements: list[Stmt] = []
        while not any(self.peek(t) for t in terminators):
            if not self.has():
                expected = " or ".join(f"'{t}'" for t in terminators)
                raise self.error(f"Expected {expected}")
            statements.append(self.parse_statement())
        return statements

    # Statements

    def parse_statement(self) -> Stmt:
        if self.peek("LET"):
            return self.parse_declaration_statement()
        if self.peek("IF"):
            return self.parse_if_statement()
        if self.peek("FOR"):
            return self.parse_for_statement()
        if self.peek("WHILE"):
            return self.parse_while_statement()
        if self.peek("RETURN"):
            return self.parse_return_statement()

        offset = self.error_offset()
        expr = self.parse_expression()
        if self.match("="):
            value = self.parse_expression()
            self.expect(";")
            return Assignment(expr, value, offset=offset)
        self.expect(";")
        return Expression(expr, offset=offset)

    def parse_declaration_statement(self) -> Declaration:
        offset = self.expect("LET").offset
        name = self.expect_identifier()
        type_name = self.optional_type_name()
        value = self.parse_expression() if self.match("=") else None
        self.match(";")
        return Declaration(name, type_name, value, offset=offset)

    def parse_if_statement(self) -> If:
        offset = self.expect("IF").offset
        condition = self.parse_expression()
        self.expect("DO")
        then_statements = self.parse_block("ELSE", "END")
        else_statements: list[Stmt] = []
        if self.match("ELSE"):
            else_statements = self.parse_block("END")
        self.expect("END")
        return If(condition, then_statements, else_statements, offset=offset)

    def parse_for_statement(self) -> For:
        offset = self.expect("FOR").offset
        name = self.expect_identifier()
        self.expect("IN")
        value = self.parse_expression()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return For(name, value, statements, offset=offset)

    def parse_while_statement(self) -> While:
        offset = self.expect("WHILE").offset
        condition = self.parse_expression()
        self.expect("DO")
        statements = self.parse_block("END")
        self.expect("END")
        return While(condition, statements, offset=offset)

    def parse_return_statement(self) -> Return:
        offset = self.expect("RETURN").offset
        value = self.parse_expression()
        self.expect(";")
        return Return(value, offset=offset)

    # Expressions

    def parse_expression(self) -> Expr:
        return self.parse_logical_expression()

    def _parse_binary(
        self,
        operators: tuple[str, ...],
        operand: Callable[[], Expr],
        same: Callable[[], Expr],
    ) -> Expr:
        left = operand()
        for op in operators:
            if self.match(op):
                return Binary(op, left, same(), offset=left.offset)
        return left

    def parse_logical_expression(self) -> Expr:
        return self._parse_binary(
            LOGICAL_OPS, self.parse_equality_expression, self.parse_logical_expression
        )

    def parse_equality_expression(self) -> Expr:
        return self._parse_binary(
            COMPARISON_OPS,
            self.parse_additive_expression,
            self.parse_equality_expression,
        )

    def parse_additive_expression(self) -> Expr:
        return self._parse_binary(
            ADDITIVE_OPS,
            self.parse_multiplicative_expression,
            self.parse_additive_expression,
        )

    def parse_multiplicative_expression(self) -> Expr:
        return self._parse_binary(
            MULTIPLICATIVE_OPS,
            self.parse_secondary_expression,
            self.parse_multiplicative_expression,
        )

    def parse_secondary_expression(self) -> Expr:
        receiver = self.parse_primary_expression()
        while self.match("."):
            offset = self.previous().offset
            name = self.expect_identifier()
            if self.match("("):
                receiver = Function(
                    receiver, name, self.parse_arguments(), offset=offset
                )
            else:
                receiver = Access(receiver, name, offset=offset)
        return receiver

    def parse_arguments(self) -> list[Expr]:
        """Parses ``(expr (',' expr)*)? ')'`` after an opening parenthesis."""
        arguments: list[Expr] = []
        if not self.peek(")"):
            while True:
                arguments.append(self.parse_expression())
                if not self.match(","):
                    break
        self.expect(")")
        return arguments

    def parse_primary_expression(self) -> Expr:
        offset = self.error_offset()
        if self.match("TRUE"):
            return Literal(True, offset=offset)
        if self.match("FALSE"):
            return Literal(False, offset=offset)
        if self.match("NIL"):
            return Literal(None, offset=offset)
        if self.match(TokenKind.INTEGER):
            return Literal(int(Decimal(self.previous().text)), offset=offset)
        if self.match(TokenKind.DECIMAL):
            return Literal(Decimal(self.previous().text), offset=offset)
        if self.match(TokenKind.CHARACTER):
            text = decode_escapes(self.previous().text[1:-1])
            return Literal(Char(text[0]), offset=offset)
        if self.match(TokenKind.STRING):
            return Literal(decode_escapes(self.previous().text[1:-1]), offset=offset)
        if self.match("("):
            expr = self.parse_expression()
            self.expect(")")
            return Group(expr, offset=offset)
        if self.peek(TokenKind.IDENTIFIER):
            name = self.expect_identifier()
            if self.match("("):
                return Function(None, name, self.parse_arguments(), offset=offset)
            return Access(None, name, offset=offset)
        raise self.error("Invalid expression")


def parse_source(tokens: list[Token]) -> Source:
    """Parses ``tokens`` into a Source; see ``Parser.parse_source``."""
    return Parser(tokens).parse_source()


__all__ = ["Parser", "decode_escapes", "parse_source"]
