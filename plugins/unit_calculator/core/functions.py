"""Built-in function table.

Functions are looked up by name and number of arguments. The table is
assembled once per domain; :func:`install_builtins` copies it into a
workspace.
"""

from __future__ import annotations

import cmath
import math
from typing import TYPE_CHECKING, Callable, Iterable, Sequence

from .domains import ComplexDomain, Domain
from .errors import CalculationError, InvalidOperationError, UnitMismatchError
from .rational import Fraction
from .symbols import BuiltInFunction
from .units import Quantity, Unit

if TYPE_CHECKING:  # pragma: no cover
    from .workspace import Workspace

RADIAN = Unit.of("rad")

ScalarFn = Callable[[object], object]


def _evaluate(domain: Domain, name: str, fn: ScalarFn, value) -> object:
    try:
        return domain.coerce(fn(value))
    except CalculationError:
        raise
    except (ValueError, ZeroDivisionError) as exc:
        raise InvalidOperationError(f"The argument of {name}() is outside its domain.") from exc
    except OverflowError as exc:
        raise InvalidOperationError(f"The result of {name}() is too large to represent.") from exc


def _require_dimensionless(name: str, quantity: Quantity) -> None:
    if not quantity.unit.is_dimensionless:
        raise UnitMismatchError(f"The argument of {name}() must be dimensionless.")


def _require_angle(name: str, quantity: Quantity) -> None:
    if quantity.unit != RADIAN and not quantity.unit.is_dimensionless:
        raise UnitMismatchError(f"The argument of {name}() must be an angle or dimensionless.")


def _pick(domain: Domain, real_fn: ScalarFn, complex_fn: ScalarFn | None) -> ScalarFn:
    if isinstance(domain, ComplexDomain) and complex_fn is not None:
        return complex_fn
    return real_fn


def _dimensionless(name: str, real_fn: ScalarFn, complex_fn: ScalarFn | None = None):
    def callback(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
        domain = workspace.domain
        _require_dimensionless(name, args[0])
        return Quantity(_evaluate(domain, name, _pick(domain, real_fn, complex_fn), args[0].scalar))

    return callback


def _trigonometric(name: str, real_fn: ScalarFn, complex_fn: ScalarFn):
    def callback(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
        domain = workspace.domain
        _require_angle(name, args[0])
        return Quantity(_evaluate(domain, name, _pick(domain, real_fn, complex_fn), args[0].scalar))

    return callback


def _inverse_trigonometric(name: str, real_fn: ScalarFn, complex_fn: ScalarFn):
    def callback(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
        domain = workspace.domain
        _require_dimensionless(name, args[0])
        value = _evaluate(domain, name, _pick(domain, real_fn, complex_fn), args[0].scalar)
        return Quantity(value, RADIAN)

    return callback


def _keep_unit(name: str, real_fn: ScalarFn, complex_fn: ScalarFn | None = None):
    def callback(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
        domain = workspace.domain
        value = _evaluate(domain, name, _pick(domain, real_fn, complex_fn), args[0].scalar)
        return Quantity(value, args[0].unit)

    return callback


def _real_sqrt(value: float) -> float:
    if value < 0:
        raise InvalidOperationError(
            "Cannot calculate the square root of a negative number. "
            "If this was intended, please use the complex domain."
        )
    return math.sqrt(value)


def _sqrt(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    value = _evaluate(domain, "sqrt", _pick(domain, _real_sqrt, cmath.sqrt), args[0].scalar)
    return Quantity(value, args[0].unit.pow(Fraction(1, 2)))


def _gamma(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
    _require_dimensionless("gamma", args[0])
    return Quantity(workspace.domain.gamma(args[0].scalar))


def _atan2(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    y, x = args
    if y.unit != x.unit:
        raise UnitMismatchError("The arguments of atan2() must have the same units.")
    angle = math.atan2(domain.real_part(y.scalar), domain.real_part(x.scalar))
    return Quantity(domain.coerce(angle), RADIAN)


def _extreme(name: str, pick_second: Callable[[float, float], bool]):
    def callback(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
        domain = workspace.domain
        a, b = args
        if a.unit != b.unit:
            raise UnitMismatchError(f"The arguments of {name}() must have the same units.")
        if pick_second(domain.real_part(a.scalar), domain.real_part(b.scalar)):
            return b
        return a

    return callback


def _round_digits(args: Sequence[Quantity], workspace: "Workspace") -> Quantity:
    domain = workspace.domain
    value, digits = args
    _require_dimensionless("round", digits)
    places = domain.real_part(digits.scalar)
    if not math.isfinite(places):
        raise InvalidOperationError("The number of digits for round() must be finite.")
    count = int(places)
    return Quantity(domain.coerce(round(domain.real_part(value.scalar), count)), value.unit)


def _real_only(fn: Callable[[float], float]) -> ScalarFn:
    def wrapped(value):
        return fn(value.real if isinstance(value, complex) else value)

    return wrapped


def _absolute(value):
    return abs(value)


def _common_functions() -> list[BuiltInFunction]:
    return [
        BuiltInFunction("abs", 1, _keep_unit("abs", _absolute), "Absolute value, keeping the unit."),
        BuiltInFunction("sqrt", 1, _sqrt, "Square root; halves every unit exponent."),
        BuiltInFunction("exp", 1, _dimensionless("exp", math.exp, cmath.exp), "Natural exponential."),
        BuiltInFunction("ln", 1, _dimensionless("ln", math.log, cmath.log), "Natural logarithm."),
        BuiltInFunction("log10", 1, _dimensionless("log10", math.log10, cmath.log10), "Base 10 logarithm."),
        BuiltInFunction(
            "log2", 1, _dimensionless("log2", math.log2, lambda z: cmath.log(z, 2)), "Base 2 logarithm."
        ),
        BuiltInFunction("sin", 1, _trigonometric("sin", math.sin, cmath.sin), "Sine of an angle."),
        BuiltInFunction("cos", 1, _trigonometric("cos", math.cos, cmath.cos), "Cosine of an angle."),
        BuiltInFunction("tan", 1, _trigonometric("tan", math.tan, cmath.tan), "Tangent of an angle."),
        BuiltInFunction("asin", 1, _inverse_trigonometric("asin", math.asin, cmath.asin), "Arcsine in radians."),
        BuiltInFunction("acos", 1, _inverse_trigonometric("acos", math.acos, cmath.acos), "Arccosine in radians."),
        BuiltInFunction("atan", 1, _inverse_trigonometric("atan", math.atan, cmath.atan), "Arctangent in radians."),
        BuiltInFunction("atan2", 2, _atan2, "Angle of the point (x, y) in radians, called as atan2(y, x)."),
        BuiltInFunction("sinh", 1, _dimensionless("sinh", math.sinh, cmath.sinh), "Hyperbolic sine."),
        BuiltInFunction("cosh", 1, _dimensionless("cosh", math.cosh, cmath.cosh), "Hyperbolic cosine."),
        BuiltInFunction("tanh", 1, _dimensionless("tanh", math.tanh, cmath.tanh), "Hyperbolic tangent."),
        BuiltInFunction("floor", 1, _keep_unit("floor", _real_only(math.floor)), "Round down."),
        BuiltInFunction("ceil", 1, _keep_unit("ceil", _real_only(math.ceil)), "Round up."),
        BuiltInFunction("round", 1, _keep_unit("round", _real_only(round)), "Round to the nearest integer."),
        BuiltInFunction("round", 2, _round_digits, "Round to a number of decimals."),
        BuiltInFunction("min", 2, _extreme("min", lambda a, b: b < a), "Smaller of two quantities."),
        BuiltInFunction("max", 2, _extreme("max", lambda a, b: b > a), "Larger of two quantities."),
        BuiltInFunction("gamma", 1, _gamma, "Gamma function."),
    ]


def _complex_functions() -> list[BuiltInFunction]:
    return [
        BuiltInFunction("re", 1, _keep_unit("re", lambda z: z.real), "Real part."),
        BuiltInFunction("im", 1, _keep_unit("im", lambda z: z.imag), "Imaginary part."),
        BuiltInFunction("conj", 1, _keep_unit("conj", lambda z: z.conjugate()), "Complex conjugate."),
        BuiltInFunction("arg", 1, _inverse_trigonometric("arg", cmath.phase, cmath.phase), "Phase in radians."),
    ]


def builtin_functions(domain: Domain) -> list[BuiltInFunction]:
    """Return the built-in functions available for ``domain``."""

    functions = _common_functions()
    if isinstance(domain, ComplexDomain):
        functions.extend(_complex_functions())
    return functions


def install_builtins(workspace: "Workspace", functions: Iterable[BuiltInFunction] | None = None) -> None:
    for function in functions if functions is not None else builtin_functions(workspace.domain):
        workspace.register_builtin_function(function)


__all__ = ["RADIAN", "builtin_functions", "install_builtins"]
