import io
from collections.abc import Callable

import pytest

from plc.plc_analyzer import analyze
from plc.plc_ast import Source
from plc.plc_interpreter import execute
from plc.plc_lexer import lex
from plc.plc_parser import parse_source
from plc.plc_values import PlcObject

Runner = Callable[[str], tuple[PlcObject, str]]


def parse(source: str) -> Source:
    return parse_source(lex(source))


@pytest.fixture  # type: ignore[misc]
def run() -> Runner:
    """Lexes, parses, analyzes and executes a program; returns (result, output)."""

    def _run(source: str) -> tuple[PlcObject, str]:
        tree = analyze(parse(source))
        out = io.StringIO()
        result = execute(tree, output=out)
        return result, out.getvalue()

    return _run


@pytest.fixture  # type: ignore[misc]
def run_unchecked() -> Runner:
    """Like ``run`` but skips static analysis."""

    def _run(source: str) -> tuple[PlcObject, str]:
        out = io.StringIO()
        result = execute(parse(source), output=out)
        return result, out.getvalue()

    return _run
