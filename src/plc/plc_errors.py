"""
Error types raised by the PLC pipeline.

Each stage stops at its first error; nothing is recovered. Every error carries
a human-readable message and, where known, a character offset into the source.

Classes:
    PlcError: Base class for all pipeline errors.
    LexError: Malformed or unterminated character/string literal.
    ParseError: Unexpected token or missing keyword/punctuation.
    PlcTypeError: Static type violation found by the analyzer.
    PlcRuntimeError: Failure while executing a program.
    DivideByZeroError: Division whose right operand is zero.
    ScopeError: Redefinition or failed lookup inside a Scope.
"""


class PlcError(Exception):
    """Base class for PLC errors.

    Attributes:
        message (str): Description of the failure.
        offset (int | None): Character offset into the source text, if known.
    """

    def __init__(self, message: str, offset: int | None = None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return self.message
        return f"{self.message} at offset {self.offset}"


class LexError(PlcError):
    pass


class ParseError(PlcError):
    pass


class PlcTypeError(PlcError):
    pass


class PlcRuntimeError(PlcError):
    pass


class DivideByZeroError(PlcRuntimeError):
    pass


class ScopeError(PlcError):
    pass
