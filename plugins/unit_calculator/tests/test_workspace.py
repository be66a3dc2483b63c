import logging

import pytest

from plugins.unit_calculator.core.catalog import build_workspace
from plugins.unit_calculator.core.errors import InvalidOperationError, LookupFailure
from plugins.unit_calculator.core.functions import install_builtins
from plugins.unit_calculator.core.units import Quantity, Unit
from plugins.unit_calculator.core.workspace import Workspace

METRE = Unit.of("m")
SECOND = Unit.of("s")


@pytest.fixture
def workspace():
    ws = Workspace("real", answer_variable="ans")
    install_builtins(ws)
    ws.register_input_unit("m", Quantity(1, METRE))
    ws.register_input_unit("km", Quantity("1e3", METRE))
    ws.register_input_unit("s", Quantity(1, SECOND))
    ws.register_input_unit("hour", Quantity(3600, SECOND))
    return ws


def _value(ws, text):
    result = ws.evaluate(text)
    assert result.success, result.message
    return result.quantity


def test_arithmetic_precedence(workspace):
    assert _value(workspace, "2 + 3 * 4") == Quantity(14.0)
    assert _value(workspace, "2^3^2") == Quantity(512.0)
    assert _value(workspace, "-2^2") == Quantity(-4.0)
    assert _value(workspace, "(1 + 2)(3 + 4)") == Quantity(21.0)
    assert _value(workspace, "7 \\ 2") == Quantity(3.0)


def test_units_attach_to_scalars(workspace):
    assert _value(workspace, "2 m") == Quantity(2.0, METRE)
    assert _value(workspace, "5 m s^-1") == Quantity(5.0, Unit({"m": 1, "s": -1}))
    assert _value(workspace, "3 km / 2 s") == Quantity(1500.0, Unit({"m": 1, "s": -1}))


def test_mismatched_units_fail_without_raising(workspace):
    result = workspace.evaluate("3 m + 2 s")
    assert not result
    assert result.quantity == workspace.domain.default
    assert result.message == "Units do not match for addition."
    assert workspace.diagnostic_message == result.message


def test_innermost_error_message_wins(workspace):
    result = workspace.evaluate("1 + (2 + nope) * 3")
    assert result.message == "Could not find a variable with the name 'nope'."
    assert workspace.evaluate("1 + foo(2)").message == (
        "Could not find a function with the name 'foo' and 1 argument(s)."
    )


def test_syntax_errors_become_failed_results(workspace):
    result = workspace.evaluate("(1 + 2")
    assert not result
    assert result.message.startswith("Bracket mismatch")


def test_variables_persist_between_evaluations(workspace):
    assert _value(workspace, "x = 5 m") == Quantity(5.0, METRE)
    assert _value(workspace, "x + 3 m") == Quantity(8.0, METRE)
    assert _value(workspace, "ans * 2") == Quantity(16.0, METRE)
    assert workspace.get_variable("x").value == Quantity(5.0, METRE)
    assert workspace.remove_variable("x")
    assert not workspace.evaluate("x").success


def test_unit_conversion_at_top_level(workspace):
    result = workspace.evaluate("1 km in m")
    assert result.quantity == Quantity(1000.0, METRE)
    speed = _value(workspace, "2 km/hour in m/s")
    assert speed.scalar == pytest.approx(2000 / 3600)
    assert str(speed.unit) == "m/s"
    assert workspace.evaluate("1 km in s").message == "Base units do not match."


def test_stripped_conversion_drops_units(workspace):
    assert _value(workspace, "'1500 m in km") == Quantity(1.5)
    assert _value(workspace, "'(1500 m in km)") == Quantity(1.5)
    assert _value(workspace, "'(2 m)") == Quantity(2.0)
    assert workspace.evaluate("'2 m in s").message == "Cannot convert units as they don't match."


def test_nested_conversion_checks_units(workspace):
    assert _value(workspace, "(1 km in m) + 1 m") == Quantity(1001.0, METRE)
    assert workspace.evaluate("(1 km in s) + 1").message == "Base units do not match."


def test_unit_exponents(workspace):
    assert _value(workspace, "(4 m^2)^0.5") == Quantity(2.0, METRE)
    result = workspace.evaluate("(4 m^2)^0.31")
    assert not result
    assert "Cannot raise units to a power" in result.message
    assert _value(workspace, "sqrt(9 m^2)") == Quantity(3.0, METRE)


def test_logic_and_ternary(workspace):
    assert _value(workspace, "1 < 2 && 2 < 3") == Quantity(1.0)
    assert _value(workspace, "0 || 0") == Quantity(0.0)
    assert _value(workspace, "2 m > 1 m ? 10 : 20") == Quantity(10.0)
    # The right operand is never evaluated when the left decides.
    assert _value(workspace, "0 && missing") == Quantity(0.0)


def test_user_functions_and_scopes(workspace):
    assert workspace.evaluate("f(x) = x^2 + 1").success
    assert _value(workspace, "f(3)") == Quantity(10.0)
    assert _value(workspace, "area(w, h) = w * h") == workspace.domain.default
    assert _value(workspace, "area(2 m, 3 m)") == Quantity(6.0, Unit.of("m", 2))
    assert workspace.get_variable("w") is None
    assert workspace.evaluate("g(2) = 1").message == "Function argument has to be a simple variable."
    assert workspace.evaluate("3 = 1").message == "Can only assign to variables or user functions."


def test_recursion_is_limited():
    ws = Workspace("real", max_call_depth=8)
    assert ws.evaluate("loop(x) = loop(x + 1)").success
    result = ws.evaluate("loop(1)")
    assert not result
    assert "Maximum function call depth of 8" in result.message
    assert ws.evaluate("1 + 1").success


def test_builtin_functions_check_units(workspace):
    assert _value(workspace, "abs(-2 m)") == Quantity(2.0, METRE)
    assert _value(workspace, "max(2 m, 3 m)") == Quantity(3.0, METRE)
    assert _value(workspace, "round(3.14159, 2)") == Quantity(3.14)
    assert not workspace.evaluate("exp(1 m)").success
    assert not workspace.evaluate("sqrt(-1)").success


def test_output_units_select_display(workspace):
    workspace.define_output_unit("km", "1000 m")
    result = workspace.evaluate("2500 m")
    assert result.quantity == Quantity(2.5, Unit.of("km"))
    assert result.base == Quantity(2500.0, METRE)
    assert workspace.format_quantity(result.quantity) == "2.5 km"
    assert workspace.remove_output_unit(METRE)
    assert workspace.evaluate("2500 m").quantity == Quantity(2500.0, METRE)


def test_output_unit_registration_is_last_wins(workspace, caplog):
    workspace.register_output_unit("km", Quantity(1000, METRE))
    with caplog.at_level(logging.INFO, logger="unitcalc"):
        workspace.register_output_unit("mm", Quantity("1e-3", METRE))
    assert [entry.unit for entry in workspace.output_units] == [Unit.of("mm")]
    assert "replaces" in caplog.text


def test_output_units_reject_bad_definitions(workspace):
    with pytest.raises(InvalidOperationError):
        workspace.register_output_unit("pct", Quantity(0.01))
    with pytest.raises(InvalidOperationError):
        workspace.register_output_unit("zero", Quantity(0, METRE))


def test_input_units_can_be_defined_from_expressions(workspace):
    workspace.define_input_unit("mile", "1609.344 m")
    assert _value(workspace, "2 mile in km").scalar == pytest.approx(3.218688)
    assert workspace.is_unit("mile")
    with pytest.raises(LookupFailure):
        workspace.lookup_unit("furlong")
    with pytest.raises(InvalidOperationError):
        workspace.register_input_unit("in", Quantity(1, METRE))
    with pytest.raises(InvalidOperationError):
        workspace.register_input_unit("2x", Quantity(1, METRE))


def test_complex_workspace_knows_i():
    ws = Workspace("complex")
    install_builtins(ws)
    result = ws.evaluate("3 + 4 i")
    assert result.quantity.scalar == 3 + 4j
    assert ws.format_quantity(result.quantity) == "3 + 4i"
    assert ws.evaluate("sqrt(-4)").quantity.scalar == pytest.approx(2j)
    assert ws.evaluate("abs(3 + 4i)").quantity.scalar == pytest.approx(5)


def test_clear_keeps_builtins(workspace):
    workspace.evaluate("y = 2")
    workspace.clear()
    assert workspace.describe()["variables"] == 0
    assert workspace.describe()["input_units"] == 0
    assert workspace.describe()["builtin_functions"] > 0


def test_unit_chains_after_an_exponent(workspace):
    assert _value(workspace, "2 m^2 s") == Quantity(2.0, Unit({"m": 2, "s": 1}))
    assert _value(workspace, "2 s^-1 m^2") == Quantity(2.0, Unit({"s": -1, "m": 2}))
    assert _value(workspace, "2^3 m") == Quantity(8.0, METRE)
    assert _value(workspace, "2^-1 m") == Quantity(0.5, METRE)
    assert _value(workspace, "2^--2") == Quantity(4.0)


@pytest.mark.parametrize(
    "text, scalar, unit",
    [
        ("3 kg m^2 s^-2", 3.0, {"kg": 1, "m": 2, "s": -2}),
        ("1 m / 0.5 kg^2 A", 2.0, {"m": 1, "kg": -2, "A": -1}),
        ("4 A^2 s^4 kg^-1 m^-2", 4.0, {"A": 2, "s": 4, "kg": -1, "m": -2}),
    ],
)
def test_multi_exponent_unit_chains(text, scalar, unit):
    result = build_workspace("real", ("common",)).evaluate(text)
    assert result.success, result.message
    assert result.base == Quantity(scalar, Unit(unit))


def test_non_finite_integer_arguments_fail_without_raising(workspace):
    result = workspace.evaluate("(1e308*10) \\ 2")
    assert not result
    assert result.message == "Cannot convert a non-finite value to an integer."
    result = workspace.evaluate("round(1, 1e308*10)")
    assert not result
    assert result.message == "The number of digits for round() must be finite."


def test_function_definition_keeps_the_answer(workspace):
    assert _value(workspace, "7 m") == Quantity(7.0, METRE)
    assert workspace.evaluate("f(x) = x^2").success
    assert workspace.get_variable("ans").value == Quantity(7.0, METRE)
    assert _value(workspace, "f(3)") == Quantity(9.0)
    assert workspace.get_variable("ans").value == Quantity(9.0)
