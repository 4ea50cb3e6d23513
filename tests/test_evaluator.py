"""Tests for the evaluator: literals, lookup, arity and kind checks."""

from __future__ import annotations

import logging
import math

import pytest

from cadformula import solve
from cadformula.formulas import (
    DEFAULT_HANDLERS,
    GRAMMAR,
    BooleanValue,
    Constant,
    Evaluator,
    FormulaDomainError,
    FormulaEvalError,
    FormulaLexError,
    FormulaSyntaxError,
    HandlerRegistry,
    NumberValue,
    PrimitiveKind,
    QuantityValue,
    StringValue,
    default_evaluator,
)
from cadformula.formulas.nodes import Call, NumberLit, QuantityLit, StringLit, Unary
from cadformula.formulas.primitives import NUMBER


@pytest.fixture
def double_evaluator() -> Evaluator:
    """Evaluator with a single one-argument function and a plain-number operator."""
    registry = HandlerRegistry()

    @registry.function("double", NUMBER)
    def _fn_double(n):
        return NumberValue(value=n.value * 2)

    @registry.operator("+", NUMBER, NUMBER)
    def _op_add(a, b):
        return NumberValue(value=a.value + b.value)

    return Evaluator(GRAMMAR, registry.entries)


# ────────────────────────────────────────────────────────────────
# Literals
# ────────────────────────────────────────────────────────────────


class TestLiterals:
    def test_empty_input(self) -> None:
        assert solve("") is None
        assert solve("   ") is None

    def test_number(self) -> None:
        assert solve("42") == NumberValue(value=42)
        assert solve("1.5e2") == NumberValue(value=150)

    def test_string(self) -> None:
        assert solve('"a\\"b"') == StringValue(value='a"b')

    def test_quantity_in_base_unit(self) -> None:
        assert solve("2.5cm") == QuantityValue(value=25, quantity="distance")

    def test_quantity_scientific_notation(self) -> None:
        result = solve("1e-1m")
        assert result.quantity == "distance"
        assert result.value == pytest.approx(100)
        assert result.value == pytest.approx(solve("100mm").value)

    def test_quantity_angle(self) -> None:
        result = solve("180deg")
        assert result.quantity == "angle"
        assert result.value == pytest.approx(math.pi)

    def test_uppercase_e_is_a_unit_suffix(self) -> None:
        with pytest.raises(FormulaEvalError, match='Unknown unit "E3"'):
            solve("2E3")

    def test_unknown_unit(self) -> None:
        with pytest.raises(FormulaEvalError, match='Unknown unit "furlong"'):
            solve("3furlong")

    def test_invalid_number_node(self) -> None:
        with pytest.raises(FormulaEvalError, match='Invalid number "1..2"'):
            default_evaluator().evaluate(NumberLit("1..2"))

    def test_invalid_quantity_node(self) -> None:
        with pytest.raises(FormulaEvalError, match='Invalid number "x"'):
            default_evaluator().evaluate(QuantityLit("x", "mm"))


class TestIdentifiers:
    def test_constants(self) -> None:
        assert solve("true") == BooleanValue(value=True)
        assert solve("PI").value == pytest.approx(math.pi)
        assert solve("TAU").value == pytest.approx(2 * math.pi)
        assert solve("E").value == pytest.approx(math.e)

    def test_undefined_identifier(self) -> None:
        with pytest.raises(FormulaEvalError, match='Undefined identifier "width"'):
            solve("width * 2")

    def test_user_constant(self) -> None:
        width = Constant("width", QuantityValue(value=40, quantity="distance"))
        evaluator = Evaluator(GRAMMAR, (width, *DEFAULT_HANDLERS))
        assert evaluator.solve("width / 4") == QuantityValue(value=10, quantity="distance")

    def test_first_entry_wins(self) -> None:
        evaluator = Evaluator(GRAMMAR, (Constant("PI", NumberValue(value=3)), *DEFAULT_HANDLERS))
        assert evaluator.solve("PI") == NumberValue(value=3)

    def test_function_name_is_not_a_constant(self) -> None:
        with pytest.raises(FormulaEvalError, match='Undefined identifier "abs"'):
            solve("abs")


# ────────────────────────────────────────────────────────────────
# Arity and kind checks
# ────────────────────────────────────────────────────────────────


class TestChecks:
    def test_arity_too_few(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match='function "double" expects 1 arguments, got 0 instead'):
            double_evaluator.solve("double()")

    def test_arity_too_many(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match="expects 1 arguments, got 2 instead"):
            double_evaluator.solve("double(1, 2)")

    def test_argument_kind(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match="expects argument 1 to be number, got string instead"):
            double_evaluator.solve('double("foo")')

    def test_operand_kind(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match="expects operand 2 to be number, got string instead"):
            double_evaluator.solve('1 + "foo"')

    def test_operand_kind_lists_alternatives(self) -> None:
        with pytest.raises(
            FormulaEvalError,
            match=r'operator "\+" expects operand 2 to be one of \[number, quantity\], got string instead',
        ):
            solve('1 + "foo"')

    def test_quantity_reported_as_kind(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match="got quantity instead"):
            double_evaluator.solve("double(1mm)")

    def test_undefined_function(self) -> None:
        with pytest.raises(FormulaEvalError, match='Undefined function "frobnicate"'):
            solve("frobnicate(1)")

    def test_undefined_operator(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match='Undefined operator "\\*"'):
            double_evaluator.solve("1 * 2")

    def test_undefined_unary_operator(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match='Undefined unary operator "-"'):
            double_evaluator.solve("-1")

    def test_undefined_ternary_operator(self, double_evaluator: Evaluator) -> None:
        with pytest.raises(FormulaEvalError, match=r'Undefined operator "\?"'):
            double_evaluator.solve("1 ? 2 : 3")

    def test_first_argument_checked_first(self) -> None:
        with pytest.raises(FormulaEvalError, match="operand 1"):
            solve('"a" + "b"')

    def test_domain_error_propagates(self) -> None:
        with pytest.raises(FormulaDomainError, match="Cannot multiply distance with distance"):
            solve("1mm * 2mm")


# ────────────────────────────────────────────────────────────────
# Pipeline
# ────────────────────────────────────────────────────────────────


class TestSolve:
    def test_lex_error_surfaces(self) -> None:
        with pytest.raises(FormulaLexError):
            solve('"open')

    def test_syntax_error_surfaces(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            solve("1 +")

    def test_failures_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="cadformula.formulas.evaluator"):
            with pytest.raises(FormulaSyntaxError):
                solve("1 +")
        assert "1 +" in caplog.text

    def test_parametric_dimension(self) -> None:
        evaluator = Evaluator(
            GRAMMAR,
            (
                Constant("name", StringValue(value="bracket")),
                Constant("thickness", QuantityValue(value=3, quantity="distance")),
                *DEFAULT_HANDLERS,
            ),
        )
        result = evaluator.solve("20mm * (len(name) + 4) / 10 + thickness")
        assert result == QuantityValue(value=25, quantity="distance")

    def test_result_kinds(self) -> None:
        assert solve("1 < 2").kind is PrimitiveKind.boolean
        assert solve("1cm").kind is PrimitiveKind.quantity
        assert solve("1cm").label == "distance"

    def test_default_evaluator_is_shared(self) -> None:
        assert default_evaluator() is default_evaluator()


class TestDeepNesting:
    def test_long_sum(self) -> None:
        assert solve(" + ".join(["1"] * 2000)) == NumberValue(value=2000)

    def test_deep_unary_tree(self) -> None:
        tree = NumberLit("1")
        for _ in range(5001):
            tree = Unary("-", tree)
        assert default_evaluator().evaluate(tree) == NumberValue(value=-1)

    def test_deep_call_tree(self) -> None:
        tree = NumberLit("2")
        for _ in range(5000):
            tree = Call("abs", (tree,))
        assert default_evaluator().evaluate(tree) == NumberValue(value=2)

    def test_deep_tree_still_checks_kinds(self) -> None:
        tree = StringLit("x")
        for _ in range(5000):
            tree = Unary("-", tree)
        with pytest.raises(FormulaEvalError, match="operand 1 to be"):
            default_evaluator().evaluate(tree)

    def test_deeply_nested_text_is_a_syntax_error(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="too deeply nested"):
            solve("-" * 5000 + "1")


class TestIdempotence:
    def test_same_tree_same_result(self) -> None:
        evaluator = default_evaluator()
        tree = evaluator.parse("max(2cm, 15mm) * 2 - abs(-3mm)")
        assert evaluator.evaluate(tree) == evaluator.evaluate(tree)
        assert evaluator.evaluate(tree) == QuantityValue(value=37, quantity="distance")

    def test_independent_evaluators_agree(self) -> None:
        first = Evaluator(GRAMMAR, DEFAULT_HANDLERS)
        second = Evaluator(GRAMMAR, DEFAULT_HANDLERS)
        assert first.solve("2 ^ 10 + 1") == second.solve("2 ^ 10 + 1") == NumberValue(value=1025)
