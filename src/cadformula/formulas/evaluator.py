"""Tree-walking evaluator for parsed formula expressions.

Evaluation is post-order: arguments are evaluated left to right, checked
against the handler's declared kinds, then handed to the handler. Errors
raised by a handler body (``FormulaDomainError``) propagate unchanged.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterable

from cadformula.formulas.errors import ENGINE_ERRORS, FormulaEvalError
from cadformula.formulas.grammar import CompiledGrammar, ExpressionKind
from cadformula.formulas.handlers import KIND_LABELS, Constant, Function, HandlerEntry, HandlerTable
from cadformula.formulas.library import DEFAULT_HANDLERS
from cadformula.formulas.nodes import (
    BinOp,
    Call,
    Expression,
    Ident,
    Interior,
    NumberLit,
    QuantityLit,
    StringLit,
    Ternary,
    Unary,
)
from cadformula.formulas.parser import Parser
from cadformula.formulas.primitives import (
    NumberValue,
    Primitive,
    QuantityValue,
    StringValue,
    describe_kinds,
)
from cadformula.formulas.syntax import GRAMMAR
from cadformula.formulas.tokenizer import tokenize
from cadformula.units import UnitTable, default_unit_table

logger = logging.getLogger(__name__)


class Evaluator:
    """Solves formula text against a grammar, a handler table and a unit table.

    Args:
        grammar: The compiled grammar, usually ``syntax.GRAMMAR``.
        handlers: Handler entries in lookup order; the first entry with a
            matching type and name wins.
        units: Unit table for quantity literals. Defaults to the bundled one.
    """

    def __init__(
        self,
        grammar: CompiledGrammar,
        handlers: Iterable[HandlerEntry],
        units: UnitTable | None = None,
    ) -> None:
        self.parser = Parser(grammar)
        self.handlers = HandlerTable(handlers)
        self.units = units if units is not None else default_unit_table()

    def parse(self, text: str) -> Expression | None:
        """Tokenize and parse *text*; None for empty input."""
        return self.parser.parse(tokenize(text))

    def solve(self, text: str) -> Primitive | None:
        """Evaluate formula text.

        Args:
            text: The formula, e.g. ``"20mm * (len(name) + 4)"``.

        Returns:
            The computed value, or None if *text* holds no tokens.

        Raises:
            FormulaLexError, FormulaSyntaxError, FormulaEvalError,
            FormulaDomainError: On the first failure; there is no partial
                result.
        """
        try:
            expression = self.parse(text)
            return self.evaluate(expression) if expression is not None else None
        except ENGINE_ERRORS as exc:
            logger.debug("Formula %r failed: %s", text, exc)
            raise

    def evaluate(self, expression: Expression) -> Primitive:
        """Evaluate a parsed expression tree.

        The tree is walked with an explicit stack, so nesting depth is not
        limited by the interpreter's recursion limit. Each argument is checked
        as soon as it is computed, before its right-hand siblings.
        """
        # (node, handler, values computed so far) for every pending call
        frames: list[tuple[Interior, HandlerEntry, list[Primitive]]] = []
        node = expression

        while True:
            if isinstance(node, (Call, Unary, BinOp, Ternary)):
                entry = self._resolve(node)
                if node.args:
                    frames.append((node, entry, []))
                    node = node.args[0]
                    continue
                value = entry.fn()
            else:
                value = self._eval_leaf(node)

            while frames:
                parent, entry, values = frames[-1]
                self._check_argument(parent, entry, len(values), value)
                values.append(value)
                if len(values) < len(parent.args):
                    break
                frames.pop()
                value = entry.fn(*values)
            else:
                return value

            node = parent.args[len(values)]

    def _eval_leaf(self, expression: Expression) -> Primitive:
        if isinstance(expression, StringLit):
            return StringValue(value=expression.text)

        if isinstance(expression, NumberLit):
            value = self.units.parse_number(expression.text)
            if value is None:
                raise FormulaEvalError(f'Invalid number "{expression.text}"')
            return NumberValue(value=value)

        if isinstance(expression, QuantityLit):
            return self._eval_quantity(expression)

        if isinstance(expression, Ident):
            entry = self.handlers.find(ExpressionKind.identifier, expression.name)
            if not isinstance(entry, Constant):
                raise FormulaEvalError(f'Undefined identifier "{expression.name}"')
            return entry.value

        raise TypeError(f"Not an expression node: {expression!r}")

    def _eval_quantity(self, expression: QuantityLit) -> QuantityValue:
        quantity = self.units.find_unit_kind(expression.unit)
        if quantity is None:
            raise FormulaEvalError(f'Unknown unit "{expression.unit}"')

        value = self.units.parse_quantity_to_base_unit(f"{expression.text}{expression.unit}", quantity)
        if value is None:
            raise FormulaEvalError(f'Invalid number "{expression.text}"')
        return QuantityValue(value=value, quantity=quantity)

    def _resolve(self, expression: Interior) -> HandlerEntry:
        """Find the handler for an interior node and check its arity."""
        kind = expression.kind
        entry = self.handlers.find(kind, expression.name)
        if entry is None or isinstance(entry, Constant):
            raise FormulaEvalError(f'Undefined {KIND_LABELS[kind]} "{expression.name}"')

        if len(expression.args) != len(entry.args):
            raise FormulaEvalError(
                f"{_expects(expression, entry)} {len(entry.args)} {_arg_label(entry)}s, "
                f"got {len(expression.args)} instead"
            )
        return entry

    @staticmethod
    def _check_argument(expression: Interior, entry: HandlerEntry, index: int, value: Primitive) -> None:
        allowed = entry.args[index]
        if value.kind not in allowed:
            raise FormulaEvalError(
                f"{_expects(expression, entry)} {_arg_label(entry)} {index + 1} to be "
                f"{describe_kinds(allowed)}, got {value.kind.value} instead"
            )


def _expects(expression: Interior, entry: HandlerEntry) -> str:
    return f'{KIND_LABELS[expression.kind]} "{entry.name}" expects'


def _arg_label(entry: HandlerEntry) -> str:
    return "argument" if isinstance(entry, Function) else "operand"


@lru_cache(maxsize=1)
def default_evaluator() -> Evaluator:
    """Return the process-wide evaluator over the built-in grammar and library."""
    return Evaluator(GRAMMAR, DEFAULT_HANDLERS)


def solve(text: str) -> Primitive | None:
    """Evaluate *text* with the default evaluator."""
    return default_evaluator().solve(text)
