"""The built-in handler catalogue, in lookup order."""

from __future__ import annotations

from cadformula.formulas.fn_math import MATH_HANDLERS
from cadformula.formulas.fn_operators import OPERATOR_HANDLERS
from cadformula.formulas.fn_string import STRING_HANDLERS
from cadformula.formulas.handlers import HandlerEntry

DEFAULT_HANDLERS: tuple[HandlerEntry, ...] = (
    *MATH_HANDLERS,
    *STRING_HANDLERS,
    *OPERATOR_HANDLERS,
)
