"""Formula tokenizing, parsing and unit-checked evaluation.

Public API::

    from cadformula.formulas import solve, tokenize, Evaluator, extract_refs
"""

from cadformula.formulas.errors import (
    ENGINE_ERRORS,
    FormulaDomainError,
    FormulaError,
    FormulaEvalError,
    FormulaLexError,
    FormulaSyntaxError,
    UnitTableError,
)
from cadformula.formulas.evaluator import Evaluator, default_evaluator, solve
from cadformula.formulas.grammar import (
    LOOP_LIMIT,
    Alternative,
    Choice,
    CompiledGrammar,
    ExpressionKind,
    Loop,
    Match,
    Rule,
    Slot,
    compile_grammar,
)
from cadformula.formulas.handlers import (
    Constant,
    Function,
    HandlerRegistry,
    HandlerTable,
    Operator,
    UnaryOperator,
)
from cadformula.formulas.library import DEFAULT_HANDLERS
from cadformula.formulas.nodes import extract_calls, extract_refs, format_expression
from cadformula.formulas.parser import Parser
from cadformula.formulas.primitives import (
    BooleanValue,
    NumberValue,
    PrimitiveKind,
    QuantityValue,
    StringValue,
)
from cadformula.formulas.syntax import GRAMMAR
from cadformula.formulas.tokenizer import Token, TokenKind, tokenize

__all__ = [
    "DEFAULT_HANDLERS",
    "ENGINE_ERRORS",
    "GRAMMAR",
    "LOOP_LIMIT",
    "Alternative",
    "BooleanValue",
    "Choice",
    "CompiledGrammar",
    "Constant",
    "Evaluator",
    "ExpressionKind",
    "FormulaDomainError",
    "FormulaError",
    "FormulaEvalError",
    "FormulaLexError",
    "FormulaSyntaxError",
    "Function",
    "HandlerRegistry",
    "HandlerTable",
    "Loop",
    "Match",
    "NumberValue",
    "Operator",
    "Parser",
    "PrimitiveKind",
    "QuantityValue",
    "Rule",
    "Slot",
    "StringValue",
    "Token",
    "TokenKind",
    "UnaryOperator",
    "UnitTableError",
    "compile_grammar",
    "default_evaluator",
    "extract_calls",
    "extract_refs",
    "format_expression",
    "solve",
    "tokenize",
]
