"""Tests for grammar compilation."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cadformula.formulas import (
    GRAMMAR,
    LOOP_LIMIT,
    Choice,
    ExpressionKind,
    Loop,
    Match,
    Rule,
    Slot,
    TokenKind,
    compile_grammar,
)
from cadformula.formulas.syntax import BINARY_OPERATORS, SYNTAX


def _comma() -> Match:
    return Match(TokenKind.operator, ",")


# ────────────────────────────────────────────────────────────────
# Flattening
# ────────────────────────────────────────────────────────────────


class TestFlatten:
    def test_plain_sequence(self) -> None:
        grammar = compile_grammar([Rule(ExpressionKind.number, (Match(TokenKind.number, field="text"),))])
        assert len(grammar.alternatives) == 1
        assert grammar.alternatives[0].elements == (Match(TokenKind.number, field="text"),)

    def test_optional_element(self) -> None:
        grammar = compile_grammar([
            Rule(ExpressionKind.identifier, (Match(TokenKind.identifier, field="name"), Slot(optional=True))),
        ])
        assert [alt.elements for alt in grammar.alternatives] == [
            (Match(TokenKind.identifier, field="name"), Slot()),
            (Match(TokenKind.identifier, field="name"),),
        ]

    def test_choice_of_sequences(self) -> None:
        grammar = compile_grammar([
            Rule(ExpressionKind.group, (Choice((Slot(), _comma()), Slot()),)),
        ])
        assert [alt.elements for alt in grammar.alternatives] == [(Slot(), _comma()), (Slot(),)]

    def test_choice_with_empty_branch(self) -> None:
        grammar = compile_grammar([Rule(ExpressionKind.group, (Slot(), Choice(_comma(), ())))])
        assert [len(alt) for alt in grammar.alternatives] == [2, 1]

    def test_loop_unrolls_to_limit(self) -> None:
        grammar = compile_grammar([Rule(ExpressionKind.function, (Slot(), Loop(_comma(), Slot())))])
        lengths = [len(alt) for alt in grammar.alternatives]
        assert len(lengths) == LOOP_LIMIT
        assert lengths[:-1] == [1 + 2 * n for n in range(1, LOOP_LIMIT)]
        assert lengths[-1] == 1

    def test_loop_over_choice_covers_combinations(self) -> None:
        plus, minus = Match(TokenKind.operator, "+"), Match(TokenKind.operator, "-")
        grammar = compile_grammar([Rule(ExpressionKind.unary, (Loop(Choice(plus, minus)), Slot()))])
        two_long = [alt.elements[:2] for alt in grammar.alternatives if len(alt) == 3]
        assert sorted(two_long, key=repr) == sorted(
            [(plus, plus), (plus, minus), (minus, plus), (minus, minus)], key=repr
        )

    def test_indices_follow_declaration_order(self) -> None:
        assert [alt.index for alt in GRAMMAR.alternatives] == list(range(len(GRAMMAR.alternatives)))

    def test_rejects_non_elements(self) -> None:
        with pytest.raises(TypeError, match="Not a grammar element"):
            compile_grammar([Rule(ExpressionKind.number, ("oops",))])  # type: ignore[arg-type]


# ────────────────────────────────────────────────────────────────
# Built-in grammar
# ────────────────────────────────────────────────────────────────


class TestFormulaGrammar:
    def test_alternative_count(self) -> None:
        kinds = [alt.kind for alt in GRAMMAR.alternatives]
        assert kinds.count(ExpressionKind.function) == LOOP_LIMIT + 1
        assert kinds.count(ExpressionKind.unary) == 3
        assert kinds.count(ExpressionKind.binary) == len(BINARY_OPERATORS)
        assert kinds.count(ExpressionKind.ternary) == 1
        assert len(kinds) == 1 + (LOOP_LIMIT + 1) + 4 + 3 + len(BINARY_OPERATORS) + 1

    def test_precedence_follows_declaration_order(self) -> None:
        assert list(GRAMMAR.precedence) == list(BINARY_OPERATORS)
        assert GRAMMAR.rank("^") == 0
        assert GRAMMAR.rank("*") < GRAMMAR.rank("+") < GRAMMAR.rank("<") < GRAMMAR.rank("||")

    def test_unknown_operator_ranks_weakest(self) -> None:
        assert GRAMMAR.rank("?") == len(BINARY_OPERATORS)

    def test_slot_led_alternatives_are_operators(self) -> None:
        for alt in GRAMMAR.alternatives:
            assert alt.leads_with_slot == alt.kind.is_operator

    def test_precedence_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            GRAMMAR.precedence["^"] = 5  # type: ignore[index]


class TestIdempotence:
    def test_compiling_twice_is_equal(self) -> None:
        first, second = compile_grammar(SYNTAX), compile_grammar(SYNTAX)
        assert first == second
        assert dict(first.precedence) == dict(second.precedence)
        assert hash(first) == hash(second)

    def test_compiled_grammar_matches_module_instance(self) -> None:
        assert compile_grammar(SYNTAX) == GRAMMAR


# ────────────────────────────────────────────────────────────────
# Properties
# ────────────────────────────────────────────────────────────────

_LITERALS = st.sampled_from([None, "+", "*", ","])
_LEAF = st.one_of(
    st.builds(Match, st.sampled_from(list(TokenKind)), _LITERALS, optional=st.booleans()),
    st.builds(Slot, optional=st.booleans()),
)
_REQUIRED_LEAF = st.one_of(st.builds(Match, st.sampled_from(list(TokenKind)), _LITERALS), st.just(Slot()))
_ELEMENT = st.one_of(
    _LEAF,
    st.lists(_LEAF, min_size=1, max_size=3).map(lambda branches: Choice(*branches)),
    _REQUIRED_LEAF.map(Loop),
)
_RULES = st.lists(
    st.builds(Rule, st.sampled_from(list(ExpressionKind)), st.lists(_ELEMENT, max_size=2).map(tuple)),
    min_size=1,
    max_size=3,
)


class TestProperties:
    @settings(max_examples=50)
    @given(_RULES)
    def test_compiling_random_rules_twice_is_equal(self, rules: list[Rule]) -> None:
        first, second = compile_grammar(rules), compile_grammar(rules)
        assert first == second
        assert dict(first.precedence) == dict(second.precedence)

    @settings(max_examples=50)
    @given(_RULES)
    def test_alternatives_are_flat(self, rules: list[Rule]) -> None:
        grammar = compile_grammar(rules)
        assert [alt.index for alt in grammar.alternatives] == list(range(len(grammar.alternatives)))
        for alt in grammar.alternatives:
            assert all(isinstance(e, (Match, Slot)) and not e.optional for e in alt.elements)
