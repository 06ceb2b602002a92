"""
Lexical analyzer for the PLC language.

This module converts raw source text into an ordered list of tokens:

Classes:
    CharacterStream: Cursor over the source that tracks the pending token length.
    TokenKind: The six token kinds.
    Token: An immutable token with kind, matched text and start offset.
    Lexer: Converts a CharacterStream into a list of tokens.

Rules, tried in this order at each position:
    1. Identifier: ``[A-Za-z_][A-Za-z0-9_-]*``. Reserved words are identifiers too.
    2. Number: optional sign (only when followed by a digit), digits, and an
       optional fractional part, giving an Integer or Decimal token.
    3. Character: ``'c'`` or an escape such as ``'\\n'``.
    4. String: ``"..."`` with the same escapes.
    5. Whitespace: skipped.
    6. Operator: ``<= >= == !=`` or any other single character.

Quotes and escapes are kept in the token text; the parser decodes them.

Raises:
    LexError: On a malformed character literal or an unterminated string.

Example:
    >>> [t.text for t in lex("LET x = 5;")]
    ['LET', 'x', '=', '5', ';']
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from plc.plc_errors import LexError

logger = logging.getLogger(__name__)

ESCAPE_CHARS = "[bnrt'\"\\\\]"


class TokenKind(Enum):
    IDENTIFIER = "Identifier"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    CHARACTER = "Character"
    STRING = "String"
    OPERATOR = "Operator"


@dataclass(frozen=True)
class Token:
    """A single lexical token.

    Attributes:
        kind (TokenKind): The token's kind.
        text (str): The exact matched substring, quotes included for literals.
        offset (int): Index of the token's first character in the source.
    """

    kind: TokenKind
    text: str
    offset: int

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.text!r}, {self.offset})"


class CharacterStream:
    """
    A cursor over the source text that accumulates the current token.

    ``advance`` moves the cursor and grows the pending token; ``emit`` slices
    ``[index - length, index)`` as the token text and starts a new token.

    Attributes:
        source (str): The input source string.
        index (int): Current position in the source.
        length (int): Number of characters in the pending token.
    """

    def __init__(self, source: str):
        self.source = source
        self.index = 0
        self.length = 0

    def has(self, offset: int = 0) -> bool:
        """Returns True if a character exists at ``index + offset``."""
        return self.index + offset < len(self.source)

    def get(self, offset: int = 0) -> str:
        return self.source[self.index + offset]

    def advance(self) -> None:
        self.index += 1
        self.length += 1

    def skip(self) -> None:
        """Discards the pending token."""
        self.length = 0

    def emit(self, kind: TokenKind) -> Token:
        start = self.index - self.length
        self.skip()
        return Token(kind, self.source[start : self.index], start)


class Lexer:
    """Lexical analyzer for the PLC language.

    Matching is done with ``peek``/``match`` helpers that test the next
    characters against a sequence of single-character regex patterns.

    Attributes:
        chars (CharacterStream): The source stream to tokenize.
    """

    def __init__(self, source: str) -> None:
        self.chars = CharacterStream(source)

    def lex(self) -> list[Token]:
        """Tokenizes the whole input, dropping whitespace.

        Returns:
            list[Token]: Tokens in source order.

        Raises:
            LexError: If a character or string literal is malformed.
        """
        tokens: list[Token] = []
        while self.chars.has():
            if self.match("[ \b\n\r\t]"):
                self.chars.skip()
                continue
            tokens.append(self.lex_token())
        logger.debug("lexed %d tokens", len(tokens))
        return tokens

    def lex_token(self) -> Token:
        if self.peek("[A-Za-z_]"):
            return self.lex_identifier()
        if self.peek("[+-]", "[0-9]") or self.peek("[0-9]"):
            return self.lex_number()
        if self.peek("'"):
            return self.lex_character()
        if self.peek('"'):
            return self.lex_string()
        return self.lex_operator()

    def lex_identifier(self) -> Token:
        self.match("[A-Za-z_]")
        while self.match("[A-Za-z0-9_-]"):
            pass
        return self.chars.emit(TokenKind.IDENTIFIER)

    def lex_number(self) -> Token:
        self.match("[+-]")
        while self.match("[0-9]"):
            pass
        if self.match("\\.", "[0-9]"):
            while self.match("[0-9]"):
                pass
            return self.chars.emit(TokenKind.DECIMAL)
        return self.chars.emit(TokenKind.INTEGER)

    def lex_character(self) -> Token:
        self.match("'")
        if not (self.match("[^'\\n\\r\\\\]") or self.lex_escape()):
            raise LexError("Invalid Character", self.chars.index)
        if not self.match("'"):
            raise LexError("Mismatched Single Quote", self.chars.index)
        return self.chars.emit(TokenKind.CHARACTER)

    def lex_string(self) -> Token:
        start = self.chars.index
        self.match('"')
        while self.match('[^"\\n\\r\\\\]') or self.lex_escape():
            pass
        if not self.match('"'):
            if self.peek("\\\\"):
                raise LexError("Invalid Escape", self.chars.index)
            raise LexError(f"Unterminated String starting at {start}", self.chars.index)
        return self.chars.emit(TokenKind.STRING)

    def lex_escape(self) -> bool:
        """Consumes a backslash escape pair if one is next."""
        return self.match("\\\\", ESCAPE_CHARS)

    def lex_operator(self) -> Token:
        if not self.match("[<>!=]", "="):
            self.chars.advance()
        return self.chars.emit(TokenKind.OPERATOR)

    def peek(self, *patterns: str) -> bool:
        """Returns True if the next characters match ``patterns`` one to one."""
        for i, pattern in enumerate(patterns):
            if not self.chars.has(i) or not re.fullmatch(
                pattern, self.chars.get(i), re.DOTALL
            ):
                return False
        return True

    def match(self, *patterns: str) -> bool:
        """Like ``peek``, but consumes the matched characters."""
        if not self.peek(*patterns):
            return False
        for _ in patterns:
            self.chars.advance()
        return True


def lex(source: str) -> list[Token]:
    """Tokenizes ``source``; see ``Lexer.lex``."""
    return Lexer(source).lex()


__all__ = ["CharacterStream", "Lexer", "Token", "TokenKind", "lex"]
