import math

import pytest

from plugins.unit_calculator.core.domains import ComplexDomain, RealDomain, get_domain
from plugins.unit_calculator.core.errors import InvalidOperationError, UnitMismatchError
from plugins.unit_calculator.core.units import Quantity, Unit

METRE = Unit.of("m")
SECOND = Unit.of("s")


def test_get_domain_by_name():
    assert isinstance(get_domain("real"), RealDomain)
    assert isinstance(get_domain("Complex"), ComplexDomain)
    domain = RealDomain()
    assert get_domain(domain) is domain
    with pytest.raises(ValueError, match="Unknown domain"):
        get_domain("quaternion")


def test_addition_requires_matching_units():
    domain = RealDomain()
    total = domain.add(Quantity(3.0, METRE), Quantity(2.0, METRE))
    assert total == Quantity(5.0, METRE)
    with pytest.raises(UnitMismatchError):
        domain.add(Quantity(3.0, METRE), Quantity(2.0, SECOND))


def test_multiplication_and_division_combine_units():
    domain = RealDomain()
    speed = domain.divide(Quantity(10.0, METRE), Quantity(2.0, SECOND))
    assert speed == Quantity(5.0, Unit({"m": 1, "s": -1}))
    area = domain.multiply(Quantity(2.0, METRE), Quantity(3.0, METRE))
    assert area.unit == {"m": 2}


def test_division_by_zero_is_reported():
    with pytest.raises(InvalidOperationError, match="Division by zero"):
        RealDomain().divide(Quantity(1.0), Quantity(0.0))


def test_unit_exponent_must_be_a_small_fraction():
    domain = RealDomain()
    root = domain.exponent(Quantity(4.0, Unit.of("m", 2)), Quantity(0.5))
    assert root == Quantity(2.0, METRE)
    with pytest.raises(InvalidOperationError, match="Cannot raise units to a power"):
        domain.exponent(Quantity(4.0, Unit.of("m", 2)), Quantity(0.31))
    with pytest.raises(UnitMismatchError):
        domain.exponent(Quantity(2.0), Quantity(1.0, METRE))


def test_real_domain_rejects_fractional_power_of_negative_base():
    with pytest.raises(InvalidOperationError, match="complex domain"):
        RealDomain().exponent(Quantity(-8.0), Quantity(1 / 3))


def test_complex_domain_allows_fractional_power_of_negative_base():
    result = ComplexDomain().exponent(Quantity(-4 + 0j), Quantity(0.5 + 0j))
    assert result.scalar == pytest.approx(2j)


def test_factorial_uses_gamma_and_needs_dimensionless_input():
    domain = RealDomain()
    assert domain.factorial(Quantity(5.0)).scalar == pytest.approx(120.0)
    assert domain.factorial(Quantity(0.5)).scalar == pytest.approx(math.gamma(1.5))
    with pytest.raises(UnitMismatchError):
        domain.factorial(Quantity(3.0, METRE))
    complex_result = ComplexDomain().factorial(Quantity(3 + 0j))
    assert complex_result.scalar == pytest.approx(6 + 0j)


def test_integer_operators_truncate_and_wrap():
    domain = RealDomain()
    assert domain.bitwise_or(Quantity(5.7), Quantity(2.0)).scalar == 7.0
    assert domain.bitwise_and(Quantity(6.0), Quantity(3.0)).scalar == 2.0
    assert domain.left_shift(Quantity(1.0), Quantity(4.0)).scalar == 16.0
    assert domain.right_shift(Quantity(-16.0), Quantity(2.0)).scalar == -4.0
    assert domain.left_shift(Quantity(1.0), Quantity(63.0)).scalar == float(-(2**63))
    with pytest.raises(UnitMismatchError):
        domain.bitwise_or(Quantity(1.0, METRE), Quantity(1.0))


def test_modulo_and_integer_division():
    domain = RealDomain()
    assert domain.modulo(Quantity(7.0), Quantity(3.0)).scalar == 1.0
    assert domain.modulo(Quantity(8.0), Quantity(3.0)).scalar == -1.0
    quotient = domain.int_divide(Quantity(7.0, METRE), Quantity(2.0, SECOND))
    assert quotient == Quantity(3.0, Unit({"m": 1, "s": -1}))
    with pytest.raises(InvalidOperationError):
        domain.modulo(Quantity(1.0), Quantity(0.0))
    with pytest.raises(InvalidOperationError, match="non-finite"):
        domain.int_divide(Quantity(math.inf), Quantity(2.0))
    with pytest.raises(InvalidOperationError, match="non-finite"):
        domain.int_divide(Quantity(math.nan), Quantity(2.0))


def test_comparisons_return_one_or_zero():
    domain = RealDomain()
    assert domain.less(Quantity(1.0, METRE), Quantity(2.0, METRE)).scalar == 1.0
    assert domain.equal(Quantity(1.0), Quantity(2.0)).scalar == 0.0
    with pytest.raises(UnitMismatchError):
        domain.greater(Quantity(1.0, METRE), Quantity(1.0, SECOND))


def test_factor_between_matching_quantities():
    domain = RealDomain()
    assert domain.factor(Quantity(1000.0, METRE), Quantity(1.0, METRE), "mismatch") == 1000.0
    with pytest.raises(UnitMismatchError, match="mismatch"):
        domain.factor(Quantity(1.0, METRE), Quantity(1.0, SECOND), "mismatch")


def test_scalar_text_and_json():
    real = RealDomain()
    assert real.parse_scalar("1,5", ",") == 1.5
    assert real.format_scalar(0.1 + 0.2) == "0.3"
    assert real.from_json_scalar(3) == 3.0
    complex_domain = ComplexDomain()
    assert complex_domain.format_scalar(3 + 4j) == "3 + 4i"
    assert complex_domain.format_scalar(-1j) == "-i"
    assert complex_domain.to_json_scalar(2 + 0j) == 2.0
    assert complex_domain.to_json_scalar(1 - 2j) == [1.0, -2.0]
    assert complex_domain.from_json_scalar([1.0, -2.0]) == 1 - 2j
    assert complex_domain.fallback_variable("i") == 1j
    assert real.fallback_variable("i") is None
