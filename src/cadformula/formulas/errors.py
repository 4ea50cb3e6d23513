"""Error types for formula tokenizing, parsing and evaluation.

Messages are shown to end users verbatim, so they name the offending token,
operator or kind rather than internal state.
"""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaLexError(FormulaError):
    """A string literal was left open.

    Attributes:
        partial: The text captured before the input ran out.
    """

    def __init__(self, partial: str) -> None:
        self.partial = partial
        super().__init__(f'Unterminated string "{partial}"')


class FormulaSyntaxError(FormulaError):
    """The tokens cannot be consumed by a single expression."""


class FormulaEvalError(FormulaError):
    """Evaluation failed in the engine itself.

    Raised for unparseable numbers, unknown units, undefined names and
    argument count or kind mismatches.
    """


class FormulaDomainError(FormulaError):
    """Raised by handler bodies, e.g. division by zero or mixed quantities."""


class UnitTableError(FormulaError):
    """Invalid unit table definition."""


ENGINE_ERRORS: tuple[type[Exception], ...] = (
    FormulaLexError,
    FormulaSyntaxError,
    FormulaEvalError,
    FormulaDomainError,
)
