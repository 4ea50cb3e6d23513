"""Unary, binary and ternary operators.

Arithmetic is unit-checked: sums need matching kinds, a product may carry at
most one quantity, and dividing a quantity by one of the same kind cancels
to a plain number. Bitwise operators and shifts work on 32-bit signed
integers, truncating their operands first.
"""

from __future__ import annotations

import math

from cadformula.formulas.errors import FormulaDomainError
from cadformula.formulas.fn_math import pow_ieee
from cadformula.formulas.handlers import HandlerEntry, HandlerRegistry
from cadformula.formulas.primitives import (
    ANY,
    BOOLEAN,
    NUM_QUANT,
    NUMBER,
    BooleanValue,
    NumberValue,
    Numeric,
    Primitive,
    QuantityValue,
    with_value,
)

_registry = HandlerRegistry()


def _int32(x: float) -> int:
    if not math.isfinite(x):
        return 0
    n = math.trunc(x) & 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def _check_comparable(a: Numeric, b: Numeric) -> None:
    if a.label != b.label:
        raise FormulaDomainError(f"Cannot compare {a.label} with {b.label}")


# ────────────────────────────────────────────────────────────────
# Unary
# ────────────────────────────────────────────────────────────────


@_registry.unary("+", NUM_QUANT)
def _op_plus(v: Numeric) -> Numeric:
    return v


@_registry.unary("-", NUM_QUANT)
def _op_negate(v: Numeric) -> Numeric:
    return with_value(v, -v.value)


@_registry.unary("!", BOOLEAN)
def _op_not(v: BooleanValue) -> BooleanValue:
    return BooleanValue(value=not v.value)


# ────────────────────────────────────────────────────────────────
# Arithmetic
# ────────────────────────────────────────────────────────────────


@_registry.operator("^", NUM_QUANT, NUMBER)
def _op_power(a: Numeric, b: NumberValue) -> Numeric:
    return with_value(a, pow_ieee(a.value, b.value))


@_registry.operator("*", NUM_QUANT, NUM_QUANT)
def _op_multiply(a: Numeric, b: Numeric) -> Numeric:
    if isinstance(a, NumberValue):
        return with_value(b, b.value * a.value)
    if isinstance(b, NumberValue):
        return with_value(a, a.value * b.value)
    raise FormulaDomainError(f"Cannot multiply {a.quantity} with {b.quantity}")


@_registry.operator("/", NUM_QUANT, NUM_QUANT)
def _op_divide(a: Numeric, b: Numeric) -> Numeric:
    """a / b: quantity / number keeps the kind; same-kind quantities cancel."""
    if b.value == 0:
        raise FormulaDomainError("Division by zero")
    if isinstance(b, NumberValue):
        return with_value(a, a.value / b.value)
    if isinstance(a, QuantityValue) and a.quantity == b.quantity:
        return NumberValue(value=a.value / b.value)
    raise FormulaDomainError(f"Cannot divide {a.label} by {b.quantity}")


@_registry.operator("%", NUM_QUANT, NUMBER)
def _op_modulo(a: Numeric, b: NumberValue) -> Numeric:
    """a % b: the result takes the sign of ``a``."""
    if b.value == 0:
        raise FormulaDomainError("Division by zero")
    try:
        return with_value(a, math.fmod(a.value, b.value))
    except ValueError:
        return with_value(a, math.nan)


@_registry.operator("+", NUM_QUANT, NUM_QUANT)
def _op_add(a: Numeric, b: Numeric) -> Numeric:
    if a.label != b.label:
        raise FormulaDomainError(f"Cannot add {b.label} to {a.label}")
    return with_value(a, a.value + b.value)


@_registry.operator("-", NUM_QUANT, NUM_QUANT)
def _op_subtract(a: Numeric, b: Numeric) -> Numeric:
    if a.label != b.label:
        raise FormulaDomainError(f"Cannot subtract {b.label} from {a.label}")
    return with_value(a, a.value - b.value)


@_registry.operator("<<", NUM_QUANT, NUMBER)
def _op_shift_left(a: Numeric, b: NumberValue) -> Numeric:
    return with_value(a, _int32(_int32(a.value) << (_int32(b.value) & 31)))


@_registry.operator(">>", NUM_QUANT, NUMBER)
def _op_shift_right(a: Numeric, b: NumberValue) -> Numeric:
    return with_value(a, _int32(a.value) >> (_int32(b.value) & 31))


# ────────────────────────────────────────────────────────────────
# Comparison
# ────────────────────────────────────────────────────────────────


@_registry.operator("<", NUM_QUANT, NUM_QUANT)
def _op_less(a: Numeric, b: Numeric) -> BooleanValue:
    _check_comparable(a, b)
    return BooleanValue(value=a.value < b.value)


@_registry.operator("<=", NUM_QUANT, NUM_QUANT)
def _op_less_equal(a: Numeric, b: Numeric) -> BooleanValue:
    _check_comparable(a, b)
    return BooleanValue(value=a.value <= b.value)


@_registry.operator(">", NUM_QUANT, NUM_QUANT)
def _op_greater(a: Numeric, b: Numeric) -> BooleanValue:
    _check_comparable(a, b)
    return BooleanValue(value=a.value > b.value)


@_registry.operator(">=", NUM_QUANT, NUM_QUANT)
def _op_greater_equal(a: Numeric, b: Numeric) -> BooleanValue:
    _check_comparable(a, b)
    return BooleanValue(value=a.value >= b.value)


def _equal(a: Primitive, b: Primitive) -> bool:
    return a.kind == b.kind and a.label == b.label and a.value == b.value


@_registry.operator("==", ANY, ANY)
def _op_equal(a: Primitive, b: Primitive) -> BooleanValue:
    """a == b: values of different kinds are unequal, never an error."""
    return BooleanValue(value=_equal(a, b))


@_registry.operator("!=", ANY, ANY)
def _op_not_equal(a: Primitive, b: Primitive) -> BooleanValue:
    return BooleanValue(value=not _equal(a, b))


# ────────────────────────────────────────────────────────────────
# Bitwise and logical
# ────────────────────────────────────────────────────────────────


def _bitwise(a: Numeric, b: Numeric, result: int) -> Numeric:
    if isinstance(a, NumberValue):
        return with_value(b, result)
    if isinstance(b, NumberValue):
        return with_value(a, result)
    raise FormulaDomainError(f"Cannot perform binary operations on {a.quantity} and {b.quantity}")


@_registry.operator("&", NUM_QUANT, NUM_QUANT)
def _op_bit_and(a: Numeric, b: Numeric) -> Numeric:
    return _bitwise(a, b, _int32(a.value) & _int32(b.value))


@_registry.operator("|", NUM_QUANT, NUM_QUANT)
def _op_bit_or(a: Numeric, b: Numeric) -> Numeric:
    return _bitwise(a, b, _int32(a.value) | _int32(b.value))


@_registry.operator("&&", BOOLEAN, BOOLEAN)
def _op_and(a: BooleanValue, b: BooleanValue) -> BooleanValue:
    return BooleanValue(value=a.value and b.value)


@_registry.operator("||", BOOLEAN, BOOLEAN)
def _op_or(a: BooleanValue, b: BooleanValue) -> BooleanValue:
    return BooleanValue(value=a.value or b.value)


@_registry.operator("?", BOOLEAN, ANY, ANY)
def _op_ternary(condition: BooleanValue, then: Primitive, otherwise: Primitive) -> Primitive:
    """c ? a : b. Both branches are evaluated before selection."""
    return then if condition.value else otherwise


OPERATOR_HANDLERS: tuple[HandlerEntry, ...] = tuple(_registry.entries)
