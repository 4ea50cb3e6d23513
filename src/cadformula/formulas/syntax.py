"""The formula grammar.

Rule order is significant: it breaks ties between alternatives that consume
the same input, and the order of the binary operators below is their
precedence (earlier binds tighter).
"""

from __future__ import annotations

from cadformula.formulas.grammar import (
    Choice,
    CompiledGrammar,
    ExpressionKind,
    Loop,
    Match,
    Rule,
    Slot,
    compile_grammar,
)
from cadformula.formulas.tokenizer import TokenKind

UNARY_OPERATORS = ("+", "-", "!")

BINARY_OPERATORS = (
    "^",
    "*",
    "/",
    "%",
    "+",
    "-",
    "<<",
    ">>",
    "<",
    "<=",
    ">",
    ">=",
    "==",
    "!=",
    "&",
    "|",
    "&&",
    "||",
)


def _op(symbol: str, field: str | None = None) -> Match:
    return Match(TokenKind.operator, symbol, field)


SYNTAX: tuple[Rule, ...] = (
    Rule(ExpressionKind.group, (_op("("), Slot(), _op(")"))),
    Rule(ExpressionKind.function, (
        Match(TokenKind.identifier, field="name"),
        _op("("),
        Choice(
            (Slot(), Loop(_op(","), Slot())),
            (),
        ),
        _op(")"),
    )),
    Rule(ExpressionKind.quantity, (
        Match(TokenKind.number, field="text"),
        Match(TokenKind.identifier, field="unit"),
    )),
    Rule(ExpressionKind.number, (Match(TokenKind.number, field="text"),)),
    Rule(ExpressionKind.string, (Match(TokenKind.string, field="text"),)),
    Rule(ExpressionKind.identifier, (Match(TokenKind.identifier, field="name"),)),
    Rule(ExpressionKind.unary, (
        Choice(*(_op(symbol, "name") for symbol in UNARY_OPERATORS)),
        Slot(),
    )),
    Rule(ExpressionKind.binary, (
        Slot(),
        Choice(*(_op(symbol, "name") for symbol in BINARY_OPERATORS)),
        Slot(),
    )),
    Rule(ExpressionKind.ternary, (Slot(), _op("?", "name"), Slot(), _op(":"), Slot())),
)

GRAMMAR: CompiledGrammar = compile_grammar(SYNTAX)
