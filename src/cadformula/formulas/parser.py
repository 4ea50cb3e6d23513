"""Backtracking parser over a compiled grammar.

Every alternative of the grammar is tried at once. Candidates advance in
lockstep, one pattern element per round; a token element must match the next
token exactly, a slot element runs a nested parse. The satisfied candidate
that consumed the most tokens wins, with declaration order breaking ties.

Binary chains (``a - b * c``) are built left to right by feeding each result
back in as the leading operand of the next round, then re-associating by the
grammar's precedence table.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Callable, Sequence

from cadformula.formulas.errors import FormulaSyntaxError
from cadformula.formulas.grammar import Alternative, CompiledGrammar, ExpressionKind, Slot
from cadformula.formulas.nodes import (
    BinOp,
    Call,
    Expression,
    Ident,
    NumberLit,
    QuantityLit,
    StringLit,
    Ternary,
    Unary,
)
from cadformula.formulas.tokenizer import Token

_END_OF_INPUT = "Unexpected end of input"
_TOO_DEEP = "Formula is too deeply nested"


def _unexpected(token: Token) -> str:
    return f'Unexpected {token.kind.value} "{token.text}"'


@dataclass(frozen=True)
class _Parsed:
    expression: Expression
    end: int


@dataclass(frozen=True)
class _Candidate:
    """One alternative in flight: what it captured and where it stands."""

    alternative: Alternative
    captured: tuple[Token | Expression, ...]
    cursor: int
    failed: bool = False
    error: str | None = None

    @property
    def complete(self) -> bool:
        return len(self.captured) == len(self.alternative)

    def advance(self, value: Token | Expression, cursor: int) -> _Candidate:
        return dataclasses.replace(self, captured=self.captured + (value,), cursor=cursor)

    def fail(self, error: str | None) -> _Candidate:
        return dataclasses.replace(self, failed=True, error=error)


@dataclass
class _ParseState:
    """Per-call state: the input, the last error seen and memoised sub-parses."""

    tokens: tuple[Token, ...]
    error: str | None = None
    memo: dict[tuple[str, int], tuple[_Parsed | None, str | None]] = dataclasses.field(default_factory=dict)


class Parser:
    """Parses token sequences with a compiled grammar.

    A parser holds no per-call state, so one instance can serve any number of
    ``parse`` calls.
    """

    def __init__(self, grammar: CompiledGrammar) -> None:
        self.grammar = grammar

    def parse(self, tokens: Sequence[Token]) -> Expression | None:
        """Parse tokens into a single expression.

        Args:
            tokens: Output of ``tokenize()``.

        Returns:
            The expression tree, or None when *tokens* is empty.

        Raises:
            FormulaSyntaxError: If the tokens do not form exactly one
                expression, or nest deeper than the parser can follow.
        """
        if not tokens:
            return None

        state = _ParseState(tuple(tokens))
        try:
            parsed = self._greedy(state, 0)
        except RecursionError as exc:
            raise FormulaSyntaxError(_TOO_DEEP) from exc
        if parsed is not None and parsed.end == len(state.tokens):
            return parsed.expression
        raise FormulaSyntaxError(state.error or _END_OF_INPUT)

    # ------------------------------------------------------------------
    # Core matching
    # ------------------------------------------------------------------

    def _consume(
        self,
        state: _ParseState,
        start: int,
        leading: Expression | None = None,
        shallow: bool = False,
    ) -> _Parsed | None:
        """Match one expression at *start*.

        With *leading*, only alternatives that open with a slot are tried and
        the leading expression fills that slot. With *shallow*, binary and
        ternary alternatives are skipped so an operand never swallows the
        operator chain that follows it.
        """
        if leading is None:
            return self._memoised(state, ("shallow" if shallow else "single", start),
                                  lambda: self._match(state, start, None, shallow))
        return self._match(state, start, leading, shallow)

    def _match(
        self,
        state: _ParseState,
        start: int,
        leading: Expression | None,
        shallow: bool,
    ) -> _Parsed | None:
        seed = (leading,) if leading is not None else ()
        candidates = [
            _Candidate(alternative, seed, start)
            for alternative in self.grammar.alternatives
            if alternative.leads_with_slot == (leading is not None)
            and len(alternative) > len(seed)
            and not (shallow and alternative.kind.is_operator)
        ]
        satisfied: list[_Candidate] = []
        failed: list[_Candidate] = []

        while candidates:
            live: list[_Candidate] = []
            for candidate in candidates:
                stepped = self._step(state, candidate)
                if stepped.failed:
                    failed.append(stepped)
                elif stepped.complete:
                    satisfied.append(stepped)
                else:
                    live.append(stepped)
            candidates = live

        if not satisfied:
            if failed:
                furthest = max(failed, key=lambda c: (c.cursor, c.error is not None))
                state.error = furthest.error or _END_OF_INPUT
            else:
                state.error = _END_OF_INPUT
            return None

        winner = max(satisfied, key=lambda c: (c.cursor, -c.alternative.index))
        return _Parsed(_build(winner.alternative, winner.captured), winner.cursor)

    def _step(self, state: _ParseState, candidate: _Candidate) -> _Candidate:
        """Advance a candidate by one pattern element."""
        if candidate.cursor >= len(state.tokens):
            return candidate.fail(None)

        element = candidate.alternative.elements[len(candidate.captured)]
        if isinstance(element, Slot):
            if candidate.alternative.kind.binds_operands:
                parsed = self._consume(state, candidate.cursor, shallow=True)
            else:
                parsed = self._greedy(state, candidate.cursor)
            if parsed is None:
                return candidate.fail(state.error)
            return candidate.advance(parsed.expression, parsed.end)

        token = state.tokens[candidate.cursor]
        if not element.accepts(token):
            return candidate.fail(_unexpected(token))
        return candidate.advance(token, candidate.cursor + 1)

    # ------------------------------------------------------------------
    # Operator chaining
    # ------------------------------------------------------------------

    def _greedy(self, state: _ParseState, start: int) -> _Parsed | None:
        return self._memoised(state, ("greedy", start), lambda: self._chain(state, start))

    def _chain(self, state: _ParseState, start: int) -> _Parsed | None:
        """Consume expressions left to right, each extending the previous one."""
        running: Expression | None = None
        end = start
        # Binary nodes built by this chain; only these may be re-associated.
        owned: dict[int, BinOp] = {}

        while True:
            parsed = self._consume(state, end, leading=running)
            if parsed is None:
                break
            expression = parsed.expression
            if running is not None and isinstance(expression, BinOp):
                left, right = expression.args
                expression = self._graft(left, expression.name, right, owned)
            running, end = expression, parsed.end

        return _Parsed(running, end) if running is not None else None

    def _graft(self, target: Expression, name: str, operand: Expression, owned: dict[int, BinOp]) -> BinOp:
        """Attach ``target <name> operand`` below every weaker chained operator.

        Walks down the right spine of *target* while the node there is a
        chained binary operator that binds weaker than *name*.
        """
        if (
            isinstance(target, BinOp)
            and owned.get(id(target)) is target
            and self.grammar.rank(target.name) > self.grammar.rank(name)
        ):
            left, right = target.args
            node = BinOp(target.name, (left, self._graft(right, name, operand, owned)))
        else:
            node = BinOp(name, (target, operand))
        owned[id(node)] = node
        return node

    @staticmethod
    def _memoised(
        state: _ParseState,
        key: tuple[str, int],
        compute: Callable[[], _Parsed | None],
    ) -> _Parsed | None:
        if key in state.memo:
            result, error = state.memo[key]
            if error is not None:
                state.error = error
            return result
        result = compute()
        state.memo[key] = (result, state.error)
        return result


def _build(alternative: Alternative, captured: Sequence[Token | Expression]) -> Expression:
    """Create the node for a satisfied alternative from its captured values."""
    texts: dict[str, str] = {}
    args: list[Expression] = []
    for element, value in zip(alternative.elements, captured):
        if element.field is None:
            continue
        if element.field == "args":
            args.append(value)  # type: ignore[arg-type]
        else:
            texts[element.field] = value.text  # type: ignore[union-attr]

    kind = alternative.kind
    if kind is ExpressionKind.group:
        return args[0]
    if kind is ExpressionKind.number:
        return NumberLit(texts["text"])
    if kind is ExpressionKind.quantity:
        return QuantityLit(texts["text"], texts["unit"])
    if kind is ExpressionKind.string:
        return StringLit(texts["text"])
    if kind is ExpressionKind.identifier:
        return Ident(texts["name"])
    if kind is ExpressionKind.function:
        return Call(texts["name"], tuple(args))
    if kind is ExpressionKind.unary:
        return Unary(texts["name"], args[0])
    if kind is ExpressionKind.binary:
        return BinOp(texts["name"], (args[0], args[1]))
    if kind is ExpressionKind.ternary:
        return Ternary(texts["name"], (args[0], args[1], args[2]))
    raise FormulaSyntaxError(f"Unsupported expression kind {kind.value!r}")
