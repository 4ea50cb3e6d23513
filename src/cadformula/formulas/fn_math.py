"""Constants and math functions: abs, round, min, pow, sqrt, log, trig.

Numeric edge cases follow IEEE-754 results rather than raising: a domain
error yields NaN and an overflow yields an infinity, so ``sqrt(-1)`` is NaN
and ``log(0)`` is ``-inf``.
"""

from __future__ import annotations

import math
from typing import Callable

from cadformula.formulas.errors import FormulaDomainError
from cadformula.formulas.handlers import HandlerEntry, HandlerRegistry
from cadformula.formulas.primitives import (
    NUM_QUANT,
    NUMBER,
    BooleanValue,
    NumberValue,
    Numeric,
    QuantityValue,
    with_value,
)

_registry = HandlerRegistry()

_registry.constant("true", BooleanValue(value=True))
_registry.constant("false", BooleanValue(value=False))
_registry.constant("PI", NumberValue(value=math.pi))
_registry.constant("TAU", NumberValue(value=math.tau))
_registry.constant("E", NumberValue(value=math.e))


# ────────────────────────────────────────────────────────────────
# IEEE helpers
# ────────────────────────────────────────────────────────────────


def _ieee(fn: Callable[[float], float], x: float) -> float:
    """Apply *fn*, mapping math domain errors to NaN and overflow to +inf."""
    try:
        return fn(x)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


def _integral(fn: Callable[[float], int], x: float) -> float:
    # math.floor and friends refuse non-finite input
    if not math.isfinite(x):
        return x
    return float(fn(x))


def _round_half_up(x: float) -> int:
    # x + 0.5 can round up in float arithmetic before floor sees it
    whole = math.floor(x)
    return whole + 1 if x - whole >= 0.5 else whole


def _log(fn: Callable[[float], float], x: float) -> float:
    if x == 0:
        return -math.inf
    if x < 0 or math.isnan(x):
        return math.nan
    return fn(x)


def pow_ieee(base: float, exponent: float) -> float:
    """``base ** exponent`` with JavaScript ``Math.pow`` edge cases."""
    try:
        return math.pow(base, exponent)
    except OverflowError:
        odd = exponent.is_integer() and exponent % 2 == 1
        return -math.inf if base < 0 and odd else math.inf
    except ValueError:
        # 0 to a negative power, or a negative base to a fractional power
        return math.inf if base == 0 else math.nan


def _sign(x: float) -> float:
    if math.isnan(x) or x == 0:
        return x
    return math.copysign(1.0, x)


def _same_kind(name: str, a: Numeric, b: Numeric) -> None:
    if a.label != b.label:
        raise FormulaDomainError(
            f"Function {name} expects all arguments to be of the same type, "
            f"got {a.label} and {b.label} instead"
        )


def _plain_angle(name: str, angle: Numeric) -> float:
    """Value of a plain number or an angle quantity, in radians."""
    if isinstance(angle, QuantityValue) and angle.quantity != "angle":
        raise FormulaDomainError(f"Function {name} expects an angle argument, got {angle.quantity} instead")
    return angle.value


def _angle(value: float) -> QuantityValue:
    return QuantityValue(value=value, quantity="angle")


# ────────────────────────────────────────────────────────────────
# Rounding and magnitude (kind preserved)
# ────────────────────────────────────────────────────────────────


@_registry.function("abs", NUM_QUANT)
def _fn_abs(n: Numeric) -> Numeric:
    return with_value(n, abs(n.value))


@_registry.function("ceil", NUM_QUANT)
def _fn_ceil(n: Numeric) -> Numeric:
    return with_value(n, _integral(math.ceil, n.value))


@_registry.function("floor", NUM_QUANT)
def _fn_floor(n: Numeric) -> Numeric:
    return with_value(n, _integral(math.floor, n.value))


@_registry.function("round", NUM_QUANT)
def _fn_round(n: Numeric) -> Numeric:
    """round(x): halves round towards +inf, so ``round(-2.5)`` is -2."""
    return with_value(n, _integral(_round_half_up, n.value))


@_registry.function("fract", NUM_QUANT)
def _fn_fract(n: Numeric) -> Numeric:
    return with_value(n, n.value - _integral(math.trunc, n.value))


@_registry.function("trunc", NUM_QUANT)
def _fn_trunc(n: Numeric) -> Numeric:
    return with_value(n, _integral(math.trunc, n.value))


@_registry.function("min", NUM_QUANT, NUM_QUANT)
def _fn_min(a: Numeric, b: Numeric) -> Numeric:
    """min(a, b): both arguments must share a kind; NaN wins."""
    _same_kind("min", a, b)
    if math.isnan(a.value) or math.isnan(b.value):
        return with_value(a, math.nan)
    return with_value(a, min(a.value, b.value))


@_registry.function("max", NUM_QUANT, NUM_QUANT)
def _fn_max(a: Numeric, b: Numeric) -> Numeric:
    _same_kind("max", a, b)
    if math.isnan(a.value) or math.isnan(b.value):
        return with_value(a, math.nan)
    return with_value(a, max(a.value, b.value))


@_registry.function("pow", NUM_QUANT, NUMBER)
def _fn_pow(n: Numeric, e: NumberValue) -> Numeric:
    """pow(x, e): the exponent is a plain number and ``x`` keeps its kind."""
    return with_value(n, pow_ieee(n.value, e.value))


@_registry.function("sqrt", NUM_QUANT)
def _fn_sqrt(n: Numeric) -> Numeric:
    return with_value(n, _ieee(math.sqrt, n.value))


@_registry.function("sign", NUM_QUANT)
def _fn_sign(n: Numeric) -> Numeric:
    return with_value(n, _sign(n.value))


@_registry.function("log", NUM_QUANT)
def _fn_log(n: Numeric) -> Numeric:
    return with_value(n, _log(math.log, n.value))


@_registry.function("log2", NUM_QUANT)
def _fn_log2(n: Numeric) -> Numeric:
    return with_value(n, _log(math.log2, n.value))


@_registry.function("log10", NUM_QUANT)
def _fn_log10(n: Numeric) -> Numeric:
    return with_value(n, _log(math.log10, n.value))


# ────────────────────────────────────────────────────────────────
# Trigonometry
# ────────────────────────────────────────────────────────────────


@_registry.function("sin", NUM_QUANT)
def _fn_sin(angle: Numeric) -> NumberValue:
    """sin(a): ``a`` is a plain number or an angle quantity."""
    return NumberValue(value=_ieee(math.sin, _plain_angle("sin", angle)))


@_registry.function("cos", NUM_QUANT)
def _fn_cos(angle: Numeric) -> NumberValue:
    return NumberValue(value=_ieee(math.cos, _plain_angle("cos", angle)))


@_registry.function("tan", NUM_QUANT)
def _fn_tan(angle: Numeric) -> NumberValue:
    return NumberValue(value=_ieee(math.tan, _plain_angle("tan", angle)))


@_registry.function("asin", NUMBER)
def _fn_asin(n: NumberValue) -> QuantityValue:
    return _angle(_ieee(math.asin, n.value))


@_registry.function("acos", NUMBER)
def _fn_acos(n: NumberValue) -> QuantityValue:
    return _angle(_ieee(math.acos, n.value))


@_registry.function("atan", NUMBER)
def _fn_atan(n: NumberValue) -> QuantityValue:
    return _angle(math.atan(n.value))


@_registry.function("atan2", NUMBER, NUMBER)
def _fn_atan2(x: NumberValue, y: NumberValue) -> QuantityValue:
    """atan2(x, y): note the argument order, x comes first."""
    return _angle(math.atan2(y.value, x.value))


@_registry.function("sinh", NUMBER)
def _fn_sinh(n: NumberValue) -> NumberValue:
    try:
        return NumberValue(value=math.sinh(n.value))
    except OverflowError:
        return NumberValue(value=math.copysign(math.inf, n.value))


@_registry.function("cosh", NUMBER)
def _fn_cosh(n: NumberValue) -> NumberValue:
    return NumberValue(value=_ieee(math.cosh, n.value))


@_registry.function("tanh", NUMBER)
def _fn_tanh(n: NumberValue) -> NumberValue:
    return NumberValue(value=math.tanh(n.value))


@_registry.function("atanh", NUMBER)
def _fn_atanh(n: NumberValue) -> NumberValue:
    if abs(n.value) == 1:
        return NumberValue(value=math.copysign(math.inf, n.value))
    return NumberValue(value=_ieee(math.atanh, n.value))


@_registry.function("acosh", NUMBER)
def _fn_acosh(n: NumberValue) -> NumberValue:
    return NumberValue(value=_ieee(math.acosh, n.value))


@_registry.function("asinh", NUMBER)
def _fn_asinh(n: NumberValue) -> NumberValue:
    return NumberValue(value=math.asinh(n.value))


MATH_HANDLERS: tuple[HandlerEntry, ...] = tuple(_registry.entries)
