"""
Shared constants for the PLC language toolchain.

Exports:
    - KEYWORDS: Reserved words. The lexer emits them as ordinary identifiers;
      the parser recognizes them by literal text.
    - ESCAPES: Escape sequences in the order they are decoded.
    - LOGICAL_OPS, COMPARISON_OPS, ADDITIVE_OPS, MULTIPLICATIVE_OPS
    - INT_MIN, INT_MAX, DECIMAL_MAX
    - SOURCE_SUFFIX, ENV_LOG_LEVEL, ENV_RECURSION_LIMIT
"""

import sys
from decimal import Decimal

KEYWORDS: frozenset[str] = frozenset(
    {
        "LET",
        "DEF",
        "IF",
        "FOR",
        "WHILE",
        "DO",
        "END",
        "RETURN",
        "ELSE",
        "IN",
        "TRUE",
        "FALSE",
        "NIL",
        "AND",
        "OR",
    }
)

# Order matters: decoding applies these replacements in sequence.
ESCAPES: tuple[tuple[str, str], ...] = (
    ("\\b", "\b"),
    ("\\n", "\n"),
    ("\\r", "\r"),
    ("\\t", "\t"),
    ("\\'", "'"),
    ('\\"', '"'),
    ("\\\\", "\\"),
)

LOGICAL_OPS: tuple[str, ...] = ("AND", "OR")
COMPARISON_OPS: tuple[str, ...] = ("<", "<=", ">", ">=", "==", "!=")
ADDITIVE_OPS: tuple[str, ...] = ("+", "-")
MULTIPLICATIVE_OPS: tuple[str, ...] = ("*", "/")
ARITHMETIC_OPS: tuple[str, ...] = ADDITIVE_OPS + MULTIPLICATIVE_OPS

INT_MIN: int = -(2**31)
INT_MAX: int = 2**31 - 1
DECIMAL_MAX: Decimal = Decimal(sys.float_info.max)

SOURCE_SUFFIX = ".plc"
ENV_LOG_LEVEL = "PLC_LOG_LEVEL"
ENV_RECURSION_LIMIT = "PLC_RECURSION_LIMIT"
