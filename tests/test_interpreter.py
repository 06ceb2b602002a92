import io
from decimal import Decimal
from fractions import Fraction
from math import trunc

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from conftest import Runner, parse
from plc import plc_values as values
from plc.plc_analyzer import analyze
from plc.plc_ast import Literal, Return
from plc.plc_errors import DivideByZeroError, PlcRuntimeError
from plc.plc_interpreter import (
    COMPLETED,
    Interpreter,
    Returning,
    divide_decimals,
    divide_integers,
    execute,
    round_half_even,
)
from plc.plc_scope import Function as FunctionBinding
from plc.plc_scope import Scope
from plc.plc_values import NIL, PlcObject, ValueKind


def printing(expr: str) -> str:
    return f"DEF main(): Integer DO print({expr}); RETURN 0; END"


def test_hello(run: Runner) -> None:
    result, out = run('DEF main(): Integer DO print("Hi"); RETURN 0; END')
    assert out == "Hi\n"
    assert result == values.integer(0)


def test_print_defaults_to_stdout(capsys: pytest.CaptureFixture[str]) -> None:
    execute(parse('DEF main(): Integer DO print("out"); RETURN 0; END'))
    assert capsys.readouterr().out == "out\n"


@pytest.mark.parametrize(
    "expr,text",
    [
        ("NIL", "null"),
        ("TRUE", "true"),
        ("FALSE", "false"),
        ("-12", "-12"),
        ("1.50", "1.50"),
        ("'c'", "c"),
        ("'\\n'", "\n"),
        ('"tab\\there"', "tab\there"),
        ("range(0, 3)", "[0, 1, 2]"),
        ("range(3, 0)", "[]"),
    ],
)
def test_print_display(run: Runner, expr: str, text: str) -> None:
    assert run(printing(expr))[1] == text + "\n"


@pytest.mark.parametrize(
    "expr,text",
    [
        ("1 + 2 * 3", "7"),
        ("(1 + 2) * 3", "9"),
        ("10 / 3", "3"),
        ("-7 / 2", "-3"),
        ("7 / -2", "-3"),
        ("1.5 / 2.0", "0.8"),
        ("2.5 / 2.0", "1.2"),
        ("1.0 / 3.0", "0.3"),
        ("0.1 + 0.2", "0.3"),
        ("1.5 * 1.5", "2.25"),
        ('"n=" + 1', "n=1"),
        ('1.5 + "x"', "1.5x"),
        ('"a" + TRUE', "atrue"),
        ('"a" + \'b\'', "ab"),
        ("'a' < 'b'", "true"),
        ('"abc" >= "abd"', "false"),
        ("2 <= 2", "true"),
        ("1.0 == 1.00", "true"),
        ("1.0 != 1.00", "false"),
        ("1.0 == 1.0", "true"),
        ("1 != 2", "true"),
        ("TRUE AND FALSE", "false"),
        ("FALSE OR TRUE", "true"),
    ],
)
def test_expressions(run: Runner, expr: str, text: str) -> None:
    assert run(printing(expr))[1] == text + "\n"


def test_divide_by_zero(run: Runner) -> None:
    source = "DEF main(): Integer DO RETURN 10 / 0; END"
    with pytest.raises(DivideByZeroError) as exc:
        run(source)
    assert exc.value.offset == source.index("0;")


def test_decimal_divide_by_zero(run: Runner) -> None:
    with pytest.raises(DivideByZeroError):
        run(printing("1.5 / 0.0"))


def test_decimal_arithmetic_is_exact(run: Runner) -> None:
    _, out = run(printing("0.000000000000000000000000000001 + 1000000.0"))
    assert out == "1000000.000000000000000000000000000001\n"


def test_print_integer_beyond_host_digit_limit(run: Runner) -> None:
    source = """
    DEF main(): Integer DO
        LET n = 1;
        FOR i IN range(0, 5000) DO n = n * 10; END
        print(n);
        print("n=" + n);
        RETURN 0;
    END
    """
    digits = "1" + "0" * 5000
    assert run(source)[1] == f"{digits}\nn={digits}\n"


def test_short_circuit(run: Runner) -> None:
    source = """
    DEF loud(): Boolean DO print("called"); RETURN TRUE; END
    DEF main(): Integer DO
        print(FALSE AND loud());
        print(TRUE OR loud());
        print(TRUE AND loud());
        RETURN 0;
    END
    """
    assert run(source)[1] == "false\ntrue\ncalled\ntrue\n"


def test_recursion(run: Runner) -> None:
    source = """
    DEF fact(n: Integer): Integer DO
        IF n <= 1 DO RETURN 1; END
        RETURN n * fact(n - 1);
    END
    DEF main(): Integer DO print(fact(25)); RETURN 0; END
    """
    assert run(source)[1] == "15511210043330985984000000\n"


def test_return_from_inside_loops(run: Runner) -> None:
    source = """
    DEF find(): Integer DO
        FOR i IN range(0, 10) DO
            IF i == 3 DO RETURN i; END
        END
        RETURN -1;
    END
    DEF spin(): Integer DO
        LET n = 0;
        WHILE TRUE DO
            n = n + 1;
            IF n == 4 DO RETURN n; END
        END
        RETURN -1;
    END
    DEF main(): Integer DO RETURN find() * 10 + spin(); END
    """
    assert run(source)[0] == values.integer(34)


def test_methods_close_over_program_scope(run: Runner) -> None:
    source = """
    LET x = 1;
    DEF get(): Integer DO RETURN x; END
    DEF main(): Integer DO x = 2; RETURN get(); END
    """
    assert run(source)[0] == values.integer(2)


def test_parameters_shadow_fields(run: Runner) -> None:
    source = """
    LET x = 1;
    DEF f(x: Integer): Integer DO RETURN x; END
    DEF main(): Integer DO RETURN f(5) + x; END
    """
    assert run(source)[0] == values.integer(6)


def test_loop_iterations_get_fresh_scopes(run: Runner) -> None:
    source = """
    DEF main(): Integer DO
        FOR i IN range(0, 3) DO
            LET sq = i * i;
            print(sq);
        END
        LET n = 0;
        WHILE n < 2 DO
            LET seen = n;
            print(seen);
            n = n + 1;
        END
        RETURN 0;
    END
    """
    assert run(source)[1] == "0\n1\n4\n0\n1\n"


def test_if_scope_is_discarded(run_unchecked: Runner) -> None:
    source = "DEF main(): Integer DO IF TRUE DO LET y = 1; END RETURN y; END"
    with pytest.raises(PlcRuntimeError, match="'y' is not defined"):
        run_unchecked(source)


def test_else_branch(run: Runner) -> None:
    source = """
    DEF sign(n: Integer): String DO
        IF n < 0 DO RETURN "negative"; ELSE RETURN "non-negative"; END
    END
    DEF main(): Integer DO print(sign(-1)); print(sign(1)); RETURN 0; END
    """
    assert run(source)[1] == "negative\nnon-negative\n"


def test_method_without_return_yields_nil(run: Runner) -> None:
    source = "DEF f() DO END " + printing("f()")
    assert run(source)[1] == "null\n"


def test_untyped_field_defaults_to_nil(run_unchecked: Runner) -> None:
    assert run_unchecked("LET x; " + printing("x"))[1] == "null\n"


def test_each_execution_starts_fresh() -> None:
    tree = analyze(
        parse(
            """
            LET count = 0;
            DEF main(): Integer DO
                WHILE count < 5 DO count = count + 1; END
                RETURN count;
            END
            """
        )
    )
    interpreter = Interpreter(output=io.StringIO())
    assert interpreter.execute(tree) == values.integer(5)
    assert interpreter.execute(tree) == values.integer(5)


def test_runaway_recursion(run: Runner) -> None:
    source = """
    DEF down(n: Integer): Integer DO RETURN down(n + 1); END
    DEF main(): Integer DO RETURN down(0); END
    """
    with pytest.raises(PlcRuntimeError, match="Maximum recursion depth"):
        run(source)


@pytest.mark.parametrize(
    "source,match",
    [
        ("DEF f() DO END", "Missing main/0"),
        ("DEF main() DO IF 1 DO END END", "Expected Boolean, received Integer"),
        ("DEF main() DO FOR i IN 1 DO END END", "Expected IntegerIterable"),
        ("DEF main() DO RETURN 1 + 1.0; END", "two Integer or two Decimal"),
        ("DEF main() DO RETURN 1 < 'c'; END", "Cannot compare Integer with Character"),
        ("DEF main() DO RETURN TRUE < FALSE; END", "Cannot compare Boolean"),
        ("DEF main() DO RETURN nope; END", "'nope' is not defined"),
        ("DEF main() DO nope = 1; END", "'nope' is not defined"),
        ("DEF main() DO RETURN nope(); END", "nope/0 is not defined"),
        ("DEF main() DO LET a = 1; LET a = 2; END", "already defined"),
        ("DEF main() DO END DEF main() DO END", "already defined"),
    ],
)
def test_runtime_errors(run_unchecked: Runner, source: str, match: str) -> None:
    with pytest.raises(PlcRuntimeError, match=match):
        run_unchecked(source)


def test_equality_across_kinds_is_false(run_unchecked: Runner) -> None:
    assert run_unchecked(printing("1 == 1.0"))[1] == "false\n"


def make_point(x: int) -> PlcObject:
    scope = Scope()
    point = PlcObject(ValueKind.OBJECT, "point", scope)
    scope.define_variable("x", value=values.integer(x))
    scope.define_function(
        FunctionBinding(
            "scaled",
            2,
            invoke=lambda args: values.integer(
                args[0].get_field("x").value * args[1].value
            ),
        )
    )
    return point


def test_receiver_fields_and_methods() -> None:
    parent = Scope()
    point = make_point(3)
    parent.define_variable("p", value=point)
    tree = parse("DEF main(): Integer DO p.x = p.x + 1; RETURN p.scaled(10); END")
    assert execute(tree, parent) == values.integer(40)
    assert point.get_field("x") == values.integer(4)


def test_receiver_errors() -> None:
    parent = Scope()
    parent.define_variable("p", value=make_point(1))
    with pytest.raises(PlcRuntimeError, match="no field 'y'"):
        execute(parse("DEF main() DO RETURN p.y; END"), parent)
    with pytest.raises(PlcRuntimeError, match="no method scaled/0"):
        execute(parse("DEF main() DO RETURN p.scaled(); END"), parent)


def test_receiver_is_evaluated_before_arguments() -> None:
    out = io.StringIO()
    parent = Scope()
    parent.define_variable("p", value=make_point(2))
    source = """
    DEF first(): Integer DO print("arg"); RETURN 1; END
    DEF get() DO print("receiver"); RETURN p; END
    DEF main(): Integer DO RETURN get().scaled(first()); END
    """
    assert execute(parse(source), parent, out) == values.integer(2)
    assert out.getvalue() == "receiver\narg\n"


def test_block_outcomes() -> None:
    interpreter = Interpreter()
    assert interpreter.execute_block([], Scope()) is COMPLETED
    outcome = interpreter.execute_block([Return(Literal(7)), Return(Literal(8))], Scope())
    assert outcome == Returning(values.integer(7))


def test_builtin_range_rejects_non_integers() -> None:
    with pytest.raises(PlcRuntimeError, match="Expected Integer"):
        Interpreter().scope.lookup_function("range", 2)([NIL, values.integer(1)])


@pytest.mark.parametrize(
    "left,right,expected",
    [
        ("1.5", "2.0", "0.8"),
        ("2.5", "2.0", "1.2"),
        ("-1.5", "2.0", "-0.8"),
        ("10", "4", "2"),
        ("1.00", "3", "0.33"),
        ("5", "0.5", "10"),
    ],
)
def test_divide_decimals(left: str, right: str, expected: str) -> None:
    result = divide_decimals(Decimal(left), Decimal(right))
    assert str(result) == expected


@pytest.mark.parametrize(
    "n,d,expected", [(5, 2, 2), (7, 2, 4), (-5, 2, -2), (-7, 2, -4), (7, 3, 2), (8, 3, 3)]
)
def test_round_half_even(n: int, d: int, expected: int) -> None:
    assert round_half_even(n, d) == expected


@given(st.integers(-10**6, 10**6), st.integers(-10**3, 10**3))  # type: ignore[misc]
def test_divide_integers_truncates(left: int, right: int) -> None:
    assume(right != 0)
    assert divide_integers(left, right) == trunc(Fraction(left, right))
