"""Hand-written tokenizer for formula text.

Produces four token kinds:

- ``number``: ``12``, ``1.5``, ``.5``, ``2e-3`` (the exponent marker is a
  lowercase ``e`` only; ``2E3`` lexes as ``2`` followed by ``E3``)
- ``identifier``: ``width``, ``mm``, ``x_2``
- ``string``: ``"text"`` with ``\\"`` and ``\\\\`` escapes
- ``operator``: single characters plus ``<< >> == && || <= >= !=``

A letter directly after a number starts a separate identifier, which is how
unit suffixes are written: ``10mm`` lexes as ``10`` then ``mm``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cadformula.formulas.errors import FormulaLexError


class TokenKind(str, Enum):
    identifier = "identifier"
    string = "string"
    number = "number"
    operator = "operator"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.text!r})"


_WHITESPACE = frozenset(" \t\r\n")
_STRING_ESCAPES = frozenset('"\\')

# Operators that double up (``<<``) and those that take a trailing ``=``.
_DOUBLED = frozenset("<>=&|")
_EQUALS_SUFFIXED = frozenset("<>!")


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_letter(char: str) -> bool:
    return "a" <= char <= "z" or "A" <= char <= "Z"


def _is_word(char: str) -> bool:
    return _is_letter(char) or _is_digit(char) or char == "_"


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens.

    Args:
        text: Raw formula text, e.g. ``"width / 2 + 5mm"``.

    Returns:
        Tokens in source order. Whitespace never appears in the output.

    Raises:
        FormulaLexError: If a string literal is not closed.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]
        nxt = text[pos + 1] if pos + 1 < length else ""

        if char in _WHITESPACE:
            pos += 1
        elif _is_digit(char) or (char == "." and _is_digit(nxt)):
            pos = _scan_number(text, pos, tokens)
            # unit suffix, no separator needed
            if pos < length and (_is_letter(text[pos]) or text[pos] == "_"):
                pos = _scan_identifier(text, pos, tokens)
        elif _is_letter(char):
            pos = _scan_identifier(text, pos, tokens)
        elif char == '"':
            pos = _scan_string(text, pos, tokens)
        elif (char in _DOUBLED and nxt == char) or (char in _EQUALS_SUFFIXED and nxt == "="):
            tokens.append(Token(TokenKind.operator, char + nxt))
            pos += 2
        else:
            tokens.append(Token(TokenKind.operator, char))
            pos += 1

    return tokens


def _scan_number(text: str, start: int, tokens: list[Token]) -> int:
    pos = start + 1
    seen_dot = text[start] == "."

    while pos < len(text):
        char = text[pos]
        if _is_digit(char):
            pos += 1
        elif char == "." and not seen_dot:
            seen_dot = True
            pos += 1
        elif char == "e":
            # An exponent always ends the number; a bare ``e`` is left for
            # the identifier scanner.
            pos = _scan_exponent(text, pos) or pos
            break
        else:
            break

    tokens.append(Token(TokenKind.number, text[start:pos]))
    return pos


def _scan_exponent(text: str, start: int) -> int | None:
    """Return the end of ``e[+-]digits`` at *start*, or None if incomplete."""
    pos = start + 1
    if pos < len(text) and text[pos] in "+-":
        pos += 1
    if pos >= len(text) or not _is_digit(text[pos]):
        return None
    while pos < len(text) and _is_digit(text[pos]):
        pos += 1
    return pos


def _scan_identifier(text: str, start: int, tokens: list[Token]) -> int:
    pos = start + 1
    while pos < len(text) and _is_word(text[pos]):
        pos += 1
    tokens.append(Token(TokenKind.identifier, text[start:pos]))
    return pos


def _scan_string(text: str, start: int, tokens: list[Token]) -> int:
    chars: list[str] = []
    pos = start + 1

    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text) and text[pos + 1] in _STRING_ESCAPES:
            chars.append(text[pos + 1])
            pos += 2
        elif char == '"':
            tokens.append(Token(TokenKind.string, "".join(chars)))
            return pos + 1
        else:
            chars.append(char)
            pos += 1

    raise FormulaLexError("".join(chars))
