"""
PLC CLI Entrypoint.

Command-line harness that runs PLC source through the whole pipeline.

Features:
    - Read source from `.plc` files or inline strings.
    - Lex, parse, analyze and execute, returning main's result as exit status.
    - Dump tokens or the AST (as JSON) instead of running.
    - Skip static analysis with `--no-analyze`.

Example usage:
    plc hello.plc
    plc -s 'DEF main(): Integer DO print("Hi"); RETURN 0; END'
    plc hello.plc --ast
    plc hello.plc --log-level DEBUG

Environment:
    PLC_LOG_LEVEL: Default for `--log-level` (WARNING if unset).
    PLC_RECURSION_LIMIT: Default for `--recursion-limit`.

Functions:
    run_plc(source, is_string=False, analyze=True, tokens=False, ast=False) -> int
    main(argv=None) -> int
"""

import argparse
import json
import logging
import os
import sys

from plc.plc_analyzer import Analyzer
from plc.plc_constants import ENV_LOG_LEVEL, ENV_RECURSION_LIMIT, SOURCE_SUFFIX
from plc.plc_errors import PlcError
from plc.plc_interpreter import Interpreter
from plc.plc_lexer import lex
from plc.plc_parser import parse_source
from plc.plc_values import ValueKind

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def run_plc(
    source: str,
    is_string: bool = False,
    analyze: bool = True,
    tokens: bool = False,
    ast: bool = False,
) -> int:
    """
    Run the PLC pipeline: lex, parse, analyze, execute.

    Args:
        source (str): PLC source code or path to a `.plc` file.
        is_string (bool): If True, treats `source` as raw code. Defaults to False.
        analyze (bool): Run the static analyzer before executing. Defaults to True.
        tokens (bool): Print the token list and stop after lexing.
        ast (bool): Print the AST as JSON and stop after parsing (or analysis).

    Returns:
        int: main's Integer result, or 0 when only dumping tokens/AST.

    Raises:
        ValueError: If `is_string` is False and the source does not end with '.plc'.
        PlcError: On any lex, parse, type or runtime error.
    """
    if not is_string and not source.endswith(SOURCE_SUFFIX):
        raise ValueError(f"Only {SOURCE_SUFFIX} files are supported.")
    if not is_string:
        with open(source, encoding="utf-8") as f:
            source = f.read()

    token_list = lex(source)
    if tokens:
        for tok in token_list:
            print(f"{tok.kind.value:<10} {tok.offset:>5}  {tok.text}")
        return 0

    tree = parse_source(token_list)
    if analyze:
        Analyzer().analyze(tree)
    else:
        logger.info("static analysis skipped")
    if ast:
        print(json.dumps(tree.to_dict(), indent=2))
        return 0

    result = Interpreter().execute(tree)
    if result.kind is not ValueKind.INTEGER:
        logger.warning("main returned %s, not Integer", result.kind.value)
        return 0
    return int(result.value)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the PLC CLI.

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `--tokens`: Print tokens and exit.
        - `--ast`: Print the AST as JSON and exit.
        - `--no-analyze`: Run without static type checking.
        - `--log-level`: Logging level (DEBUG, INFO, WARNING, ERROR).
        - `--recursion-limit`: Host recursion limit for deep PLC recursion.

    Returns:
        int: Process exit status. main's result masked to 0..255, or 1 on error.
    """
    parser = argparse.ArgumentParser(prog="plc")
    parser.add_argument("source", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument("--tokens", action="store_true", help="Print tokens and exit")
    parser.add_argument("--ast", action="store_true", help="Print AST as JSON and exit")
    parser.add_argument(
        "--no-analyze",
        dest="analyze",
        action="store_false",
        help="Skip static type checking",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get(ENV_LOG_LEVEL, "WARNING"),
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Logging level (default: $PLC_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--recursion-limit",
        type=int,
        default=os.environ.get(ENV_RECURSION_LIMIT),
        help="Host recursion limit (default: $PLC_RECURSION_LIMIT or Python's)",
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    if args.recursion_limit:
        sys.setrecursionlimit(int(args.recursion_limit))

    try:
        result = run_plc(
            source=args.source,
            is_string=args.string,
            analyze=args.analyze,
            tokens=args.tokens,
            ast=args.ast,
        )
    except (PlcError, ValueError, OSError) as e:
        print(f"[error] >>> {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return result & 0xFF


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    sys.exit(main())
