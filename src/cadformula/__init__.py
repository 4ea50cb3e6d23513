"""cadformula: the formula language behind parametric CAD dimensions."""

from cadformula.formulas import (
    Evaluator,
    FormulaError,
    default_evaluator,
    solve,
    tokenize,
)
from cadformula.units import UnitTable, default_unit_table

__version__ = "0.1.0"

__all__ = [
    "Evaluator",
    "FormulaError",
    "UnitTable",
    "default_evaluator",
    "default_unit_table",
    "solve",
    "tokenize",
]
