import pytest
from hypothesis import given
from hypothesis import strategies as st

from plc.plc_errors import LexError
from plc.plc_lexer import CharacterStream, Lexer, Token, TokenKind, lex


def kinds_and_texts(source: str) -> list[tuple[TokenKind, str]]:
    return [(tok.kind, tok.text) for tok in lex(source)]


def test_declaration_tokens() -> None:
    assert lex("LET x = 5;") == [
        Token(TokenKind.IDENTIFIER, "LET", 0),
        Token(TokenKind.IDENTIFIER, "x", 4),
        Token(TokenKind.OPERATOR, "=", 6),
        Token(TokenKind.INTEGER, "5", 8),
        Token(TokenKind.OPERATOR, ";", 9),
    ]


@pytest.mark.parametrize(
    "source",
    ["getName", "_under", "thelegend27", "kebab-case", "a_b-c1", "END"],
)
def test_identifier(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.IDENTIFIER, source)]


def test_identifier_cannot_start_with_digit() -> None:
    assert kinds_and_texts("1fish") == [
        (TokenKind.INTEGER, "1"),
        (TokenKind.IDENTIFIER, "fish"),
    ]


@pytest.mark.parametrize("source", ["1", "0", "-1", "+42", "007"])
def test_integer(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.INTEGER, source)]


@pytest.mark.parametrize("source", ["1.0", "-3.14", "+0.5", "123.456"])
def test_decimal(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.DECIMAL, source)]


def test_trailing_dot_is_not_decimal() -> None:
    assert kinds_and_texts("1.") == [
        (TokenKind.INTEGER, "1"),
        (TokenKind.OPERATOR, "."),
    ]


def test_sign_without_digit_is_operator() -> None:
    assert kinds_and_texts("- 1") == [
        (TokenKind.OPERATOR, "-"),
        (TokenKind.INTEGER, "1"),
    ]


def test_sign_binds_to_following_digit() -> None:
    assert kinds_and_texts("1-2") == [
        (TokenKind.INTEGER, "1"),
        (TokenKind.INTEGER, "-2"),
    ]


@pytest.mark.parametrize("source", ["'c'", "'\\n'", "'\\''", "'\\\\'", "'\"'"])
def test_character(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.CHARACTER, source)]


@pytest.mark.parametrize(
    "source,message",
    [
        ("''", "Invalid Character"),
        ("'\n'", "Invalid Character"),
        ("'\\q'", "Invalid Character"),
        ("'ab'", "Mismatched Single Quote"),
        ("'a", "Mismatched Single Quote"),
    ],
)
def test_invalid_character(source: str, message: str) -> None:
    with pytest.raises(LexError) as exc:
        lex(source)
    assert exc.value.message == message


@pytest.mark.parametrize(
    "source",
    ['""', '"abc"', '"Hello, World!"', '"1\\t2"', '"say \\"hi\\""', '"a\\\\b"'],
)
def test_string(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.STRING, source)]


@pytest.mark.parametrize("source", ['"unterminated', '"line\nbreak"', '"bad \\q"'])
def test_invalid_string(source: str) -> None:
    with pytest.raises(LexError):
        lex(source)


def test_lex_error_offset() -> None:
    with pytest.raises(LexError) as exc:
        lex('LET s = "open')
    assert exc.value.offset == len('LET s = "open')


@pytest.mark.parametrize("source", ["<=", ">=", "==", "!=", "(", ";", "+", "$", "!"])
def test_operator(source: str) -> None:
    assert kinds_and_texts(source) == [(TokenKind.OPERATOR, source)]


def test_compound_operator_needs_equals() -> None:
    assert kinds_and_texts("<>") == [
        (TokenKind.OPERATOR, "<"),
        (TokenKind.OPERATOR, ">"),
    ]


def test_whitespace_is_skipped() -> None:
    tokens = lex(" \t\b\r\n x \n")
    assert tokens == [Token(TokenKind.IDENTIFIER, "x", 6)]


def test_empty_source() -> None:
    assert lex("") == []


def test_method_header() -> None:
    assert [tok.text for tok in lex("DEF main(): Integer DO")] == [
        "DEF",
        "main",
        "(",
        ")",
        ":",
        "Integer",
        "DO",
    ]


def test_character_stream_emit() -> None:
    stream = CharacterStream("abc")
    stream.advance()
    stream.advance()
    tok = stream.emit(TokenKind.IDENTIFIER)
    assert tok == Token(TokenKind.IDENTIFIER, "ab", 0)
    assert stream.length == 0
    assert stream.has()
    assert not stream.has(1)


def test_peek_does_not_consume() -> None:
    lexer = Lexer("ab")
    assert lexer.peek("a", "b")
    assert lexer.chars.index == 0
    assert lexer.match("a")
    assert lexer.chars.index == 1


def test_token_repr() -> None:
    assert repr(Token(TokenKind.INTEGER, "42", 3)) == "Token(Integer, '42', 3)"


@given(st.text(max_size=100).map(lambda s: s.replace("'", "").replace("\"", "")))  # type: ignore[misc]
def test_unquoted_input_always_lexes(text: str) -> None:
    for tok in lex(text):
        assert tok.text
        assert text[tok.offset : tok.offset + len(tok.text)] == tok.text


@given(st.text(max_size=100))  # type: ignore[misc]
def test_lexer_only_raises_lex_errors(text: str) -> None:
    try:
        tokens = lex(text)
    except LexError:
        return
    assert all(tok.text.strip(" \b\n\r\t") for tok in tokens)
