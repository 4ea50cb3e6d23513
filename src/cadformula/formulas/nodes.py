"""Expression tree nodes produced by the parser.

Nodes are frozen dataclasses, so a parsed tree can be shared and evaluated
any number of times. Parenthesised groups never appear in a tree: the parser
replaces a group with the expression inside it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterator, Union

from cadformula.formulas.grammar import ExpressionKind


@dataclass(frozen=True)
class NumberLit:
    kind: ClassVar[ExpressionKind] = ExpressionKind.number
    text: str


@dataclass(frozen=True)
class QuantityLit:
    kind: ClassVar[ExpressionKind] = ExpressionKind.quantity
    text: str
    unit: str


@dataclass(frozen=True)
class StringLit:
    kind: ClassVar[ExpressionKind] = ExpressionKind.string
    text: str


@dataclass(frozen=True)
class Ident:
    kind: ClassVar[ExpressionKind] = ExpressionKind.identifier
    name: str


@dataclass(frozen=True)
class Call:
    kind: ClassVar[ExpressionKind] = ExpressionKind.function
    name: str
    args: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Unary:
    kind: ClassVar[ExpressionKind] = ExpressionKind.unary
    name: str
    arg: Expression

    @property
    def args(self) -> tuple[Expression, ...]:
        return (self.arg,)


@dataclass(frozen=True)
class BinOp:
    kind: ClassVar[ExpressionKind] = ExpressionKind.binary
    name: str
    args: tuple[Expression, Expression]


@dataclass(frozen=True)
class Ternary:
    kind: ClassVar[ExpressionKind] = ExpressionKind.ternary
    name: str
    args: tuple[Expression, Expression, Expression]


Expression = Union[NumberLit, QuantityLit, StringLit, Ident, Call, Unary, BinOp, Ternary]
Interior = Union[Call, Unary, BinOp, Ternary]


def walk(expression: Expression) -> Iterator[Expression]:
    """Yield every node of a tree, parents before children, left to right."""
    stack = [expression]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, (Call, Unary, BinOp, Ternary)):
            stack.extend(reversed(node.args))


def extract_refs(expression: Expression) -> set[str]:
    """Return the identifier names a parsed formula refers to.

    Callers use this to find which named parameters a dimension depends on
    before registering them as constants.
    """
    return {node.name for node in walk(expression) if isinstance(node, Ident)}


def extract_calls(expression: Expression) -> set[str]:
    """Return the names of all functions called in a parsed formula."""
    return {node.name for node in walk(expression) if isinstance(node, Call)}


def format_expression(expression: Expression) -> str:
    """Render a tree as fully parenthesised formula text.

    Examples:
        ``x + y * z`` -> ``"(x + (y * z))"``
        ``c ? 1mm : -x`` -> ``"(c ? 1mm : (-x))"``
    """
    if isinstance(expression, NumberLit):
        return expression.text
    if isinstance(expression, QuantityLit):
        return f"{expression.text}{expression.unit}"
    if isinstance(expression, StringLit):
        escaped = expression.text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(expression, Ident):
        return expression.name
    if isinstance(expression, Call):
        return f"{expression.name}({', '.join(format_expression(a) for a in expression.args)})"
    if isinstance(expression, Unary):
        return f"({expression.name}{format_expression(expression.arg)})"
    if isinstance(expression, BinOp):
        left, right = expression.args
        return f"({format_expression(left)} {expression.name} {format_expression(right)})"
    if isinstance(expression, Ternary):
        cond, then, otherwise = expression.args
        return f"({format_expression(cond)} ? {format_expression(then)} : {format_expression(otherwise)})"
    raise TypeError(f"Not an expression node: {expression!r}")
