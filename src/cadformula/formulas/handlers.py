"""Handler entries: the constants, operators and functions the evaluator knows.

A handler table is an ordered sequence of entries. Lookup is by entry type
and name and the first registration wins, so callers can shadow a built-in
by placing their own entry in front of the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Union

from cadformula.formulas.grammar import ExpressionKind
from cadformula.formulas.primitives import KindSpec, Primitive, PrimitiveKind, kinds

HandlerFn = Callable[..., Primitive]


@dataclass(frozen=True)
class Constant:
    name: str
    value: Primitive


@dataclass(frozen=True)
class UnaryOperator:
    name: str
    args: tuple[frozenset[PrimitiveKind]]
    fn: HandlerFn


@dataclass(frozen=True)
class Operator:
    """A binary or ternary operator; arity is the number of ``args``."""

    name: str
    args: tuple[frozenset[PrimitiveKind], ...]
    fn: HandlerFn


@dataclass(frozen=True)
class Function:
    name: str
    args: tuple[frozenset[PrimitiveKind], ...]
    fn: HandlerFn


HandlerEntry = Union[Constant, UnaryOperator, Operator, Function]

# Which entry type serves which expression kind.
_ENTRY_FOR_KIND: dict[ExpressionKind, type] = {
    ExpressionKind.identifier: Constant,
    ExpressionKind.function: Function,
    ExpressionKind.unary: UnaryOperator,
    ExpressionKind.binary: Operator,
    ExpressionKind.ternary: Operator,
}

# Names used in "Undefined ..." messages.
KIND_LABELS: dict[ExpressionKind, str] = {
    ExpressionKind.identifier: "identifier",
    ExpressionKind.function: "function",
    ExpressionKind.unary: "unary operator",
    ExpressionKind.binary: "operator",
    ExpressionKind.ternary: "operator",
}


class HandlerTable:
    """Read-only index over an ordered sequence of handler entries."""

    def __init__(self, entries: Iterable[HandlerEntry]) -> None:
        self.entries: tuple[HandlerEntry, ...] = tuple(entries)
        self._index: dict[tuple[type, str], HandlerEntry] = {}
        for entry in self.entries:
            self._index.setdefault((type(entry), entry.name), entry)

    def find(self, kind: ExpressionKind, name: str) -> HandlerEntry | None:
        """Return the first entry serving *kind* named *name*, or None."""
        entry_type = _ENTRY_FOR_KIND.get(kind)
        if entry_type is None:
            return None
        return self._index.get((entry_type, name))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[HandlerEntry]:
        return iter(self.entries)


class HandlerRegistry:
    """Collects handler entries through decorators.

    Example::

        registry = HandlerRegistry()

        @registry.function("double", NUMBER)
        def _fn_double(n):
            return NumberValue(value=n.value * 2)
    """

    def __init__(self) -> None:
        self.entries: list[HandlerEntry] = []

    def constant(self, name: str, value: Primitive) -> None:
        self.entries.append(Constant(name, value))

    def function(self, name: str, *args: KindSpec) -> Callable[[HandlerFn], HandlerFn]:
        return self._register(Function, name, args)

    def unary(self, name: str, arg: KindSpec) -> Callable[[HandlerFn], HandlerFn]:
        return self._register(UnaryOperator, name, (arg,))

    def operator(self, name: str, *args: KindSpec) -> Callable[[HandlerFn], HandlerFn]:
        return self._register(Operator, name, args)

    def _register(self, entry_type: type, name: str, args: tuple[KindSpec, ...]) -> Callable[[HandlerFn], HandlerFn]:
        def decorator(fn: HandlerFn) -> HandlerFn:
            self.entries.append(entry_type(name, tuple(kinds(spec) for spec in args), fn))
            return fn

        return decorator
