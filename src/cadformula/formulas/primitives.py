"""Runtime values produced by formula evaluation.

Four immutable Pydantic models form a discriminated union on ``type``:

- ``NumberValue``: a plain number
- ``QuantityValue``: a number in the base unit of a physical quantity
  (``quantity`` is the unit table's kind tag, e.g. ``"distance"``)
- ``StringValue``
- ``BooleanValue``
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict


class PrimitiveKind(str, Enum):
    number = "number"
    quantity = "quantity"
    string = "string"
    boolean = "boolean"


class _Primitive(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> PrimitiveKind:
        return PrimitiveKind(self.type)  # type: ignore[attr-defined]

    @property
    def label(self) -> str:
        """Kind name used in messages; quantities report their quantity tag."""
        return self.kind.value


class NumberValue(_Primitive):
    type: Literal["number"] = "number"
    value: float


class QuantityValue(_Primitive):
    type: Literal["quantity"] = "quantity"
    value: float
    quantity: str

    @property
    def label(self) -> str:
        return self.quantity


class StringValue(_Primitive):
    type: Literal["string"] = "string"
    value: str


class BooleanValue(_Primitive):
    type: Literal["boolean"] = "boolean"
    value: bool


Primitive = Union[NumberValue, QuantityValue, StringValue, BooleanValue]
Numeric = Union[NumberValue, QuantityValue]

KindSpec = Union[PrimitiveKind, Iterable[PrimitiveKind]]


def kinds(spec: KindSpec) -> frozenset[PrimitiveKind]:
    """Normalise one kind or a collection of kinds to a frozenset."""
    if isinstance(spec, PrimitiveKind):
        return frozenset((spec,))
    return frozenset(spec)


NUMBER = kinds(PrimitiveKind.number)
NUM_QUANT = kinds((PrimitiveKind.number, PrimitiveKind.quantity))
STRING = kinds(PrimitiveKind.string)
BOOLEAN = kinds(PrimitiveKind.boolean)
ANY = frozenset(PrimitiveKind)


def describe_kinds(allowed: frozenset[PrimitiveKind]) -> str:
    """``"number"`` for one kind, ``"one of [number, quantity]"`` for several."""
    names = [kind.value for kind in PrimitiveKind if kind in allowed]
    if len(names) == 1:
        return names[0]
    return f"one of [{', '.join(names)}]"


def with_value(primitive: Numeric, value: float) -> Numeric:
    """Copy a number or quantity, keeping its kind, with a new value."""
    return primitive.model_copy(update={"value": float(value)})
