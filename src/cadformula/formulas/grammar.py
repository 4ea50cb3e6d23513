"""Declarative grammar elements and the grammar compiler.

A grammar is data: a sequence of :class:`Rule` objects, each binding an
:class:`ExpressionKind` to a body built from

- :class:`Match`: one token of a given kind, optionally with exact text
- :class:`Slot`: a nested expression
- :class:`Choice`: alternatives; a branch is an element or a tuple sequence
- :class:`Loop`: a repeated body

:func:`compile_grammar` expands every Choice, Loop and optional element into
flat :class:`Alternative` sequences once, so the parser only ever walks
linear patterns. Loops are unrolled up to ``LOOP_LIMIT`` variants (the empty
sequence plus 1..LOOP_LIMIT-1 repetitions); longer repetitions cannot match.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence, Union

from cadformula.formulas.tokenizer import Token, TokenKind

logger = logging.getLogger(__name__)

LOOP_LIMIT = 10


class ExpressionKind(str, Enum):
    group = "group"
    function = "function"
    quantity = "quantity"
    number = "number"
    string = "string"
    identifier = "identifier"
    unary = "unary"
    binary = "binary"
    ternary = "ternary"

    @property
    def is_operator(self) -> bool:
        """Binary and ternary operators, which continue a leading expression."""
        return self in (ExpressionKind.binary, ExpressionKind.ternary)

    @property
    def binds_operands(self) -> bool:
        """Kinds whose nested expressions are parsed as single operands."""
        return self in (ExpressionKind.unary, ExpressionKind.binary, ExpressionKind.ternary)


# ---------------------------------------------------------------------------
# Grammar elements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Match:
    """Match one token by kind and, if given, exact text."""

    kind: TokenKind
    literal: str | None = None
    field: str | None = None
    optional: bool = False

    def accepts(self, token: Token) -> bool:
        return token.kind == self.kind and (self.literal is None or token.text == self.literal)


@dataclass(frozen=True)
class Slot:
    """A nested expression, always bound to a field (``args`` by default)."""

    field: str = "args"
    optional: bool = False


@dataclass(frozen=True, init=False)
class Choice:
    branches: tuple[Body, ...]

    def __init__(self, *branches: Body) -> None:
        object.__setattr__(self, "branches", branches)


@dataclass(frozen=True, init=False)
class Loop:
    body: tuple[Body, ...]

    def __init__(self, *body: Body) -> None:
        object.__setattr__(self, "body", body)


Element = Union[Match, Slot]
Body = Union[Match, Slot, Choice, Loop, tuple]


@dataclass(frozen=True)
class Rule:
    kind: ExpressionKind
    body: tuple[Body, ...]


# ---------------------------------------------------------------------------
# Compiled form
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Alternative:
    """One linear pattern for an expression kind."""

    kind: ExpressionKind
    elements: tuple[Element, ...]
    index: int = dataclasses.field(compare=False)

    @property
    def leads_with_slot(self) -> bool:
        return bool(self.elements) and isinstance(self.elements[0], Slot)

    def __len__(self) -> int:
        return len(self.elements)


@dataclass(frozen=True, eq=False)
class CompiledGrammar:
    alternatives: tuple[Alternative, ...]
    precedence: Mapping[str, int]

    def rank(self, operator: str) -> int:
        """Precedence rank of a binary operator; lower binds tighter."""
        return self.precedence.get(operator, len(self.precedence))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledGrammar):
            return NotImplemented
        return self.alternatives == other.alternatives and dict(self.precedence) == dict(other.precedence)

    def __hash__(self) -> int:
        return hash(self.alternatives)


def compile_grammar(rules: Sequence[Rule]) -> CompiledGrammar:
    """Flatten declarative rules into linear alternatives.

    Args:
        rules: Grammar rules in priority order.

    Returns:
        The compiled grammar with its operator precedence table.

    Raises:
        TypeError: If a rule body contains something that is not a grammar
            element.
    """
    alternatives: list[Alternative] = []
    for rule in rules:
        for elements in _flatten(rule.body):
            alternatives.append(Alternative(rule.kind, elements, len(alternatives)))

    precedence: dict[str, int] = {}
    for alternative in alternatives:
        if alternative.kind is not ExpressionKind.binary or len(alternative) < 2:
            continue
        operator = alternative.elements[1]
        if isinstance(operator, Match) and operator.literal is not None:
            precedence.setdefault(operator.literal, len(precedence))

    logger.debug(
        "Compiled %d grammar rules into %d alternatives (%d binary operators)",
        len(rules),
        len(alternatives),
        len(precedence),
    )
    return CompiledGrammar(tuple(alternatives), MappingProxyType(precedence))


def _flatten(body: Sequence[Body]) -> list[tuple[Element, ...]]:
    paths: list[tuple[Element, ...]] = [()]
    for element in body:
        suffixes = _expand(element)
        paths = [path + suffix for path in paths for suffix in suffixes]
    return paths


def _expand(element: Body) -> list[tuple[Element, ...]]:
    if isinstance(element, tuple):
        return _flatten(element)

    if isinstance(element, (Match, Slot)):
        concrete = dataclasses.replace(element, optional=False)
        return [(concrete,), ()] if element.optional else [(concrete,)]

    if isinstance(element, Choice):
        return [sequence for branch in element.branches for sequence in _expand(branch)]

    if isinstance(element, Loop):
        once = _flatten(element.body)
        sequences: list[tuple[Element, ...]] = []
        for repetitions in range(1, LOOP_LIMIT):
            for combination in itertools.product(once, repeat=repetitions):
                sequences.append(tuple(itertools.chain.from_iterable(combination)))
        sequences.append(())
        return sequences

    raise TypeError(f"Not a grammar element: {element!r}")
