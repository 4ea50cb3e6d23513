"""String functions: substr, find, replace, regex helpers, padding, case.

Indices are zero-based. Regex patterns are Python ``re`` syntax and may be
wrapped as ``/body/flags`` with flags ``i`` (ignore case), ``m`` (multiline),
``s`` (dot matches newline) and ``g`` (``regexreplace`` replaces every
match). Replacement strings expand ``$&`` (whole match), ``$1``..``$99``
(groups) and ``$$`` (a literal dollar).
"""

from __future__ import annotations

import math
import re

from cadformula.formulas.errors import FormulaDomainError
from cadformula.formulas.handlers import HandlerEntry, HandlerRegistry
from cadformula.formulas.primitives import NUMBER, STRING, NumberValue, StringValue

_registry = HandlerRegistry()

_SLASHED_RE = re.compile(r"/(.+)/([gims]*)", re.DOTALL)
_DOLLAR_RE = re.compile(r"\$(\$|&|\d{1,2})")
_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def _compile(pattern: str) -> tuple[re.Pattern[str], bool]:
    """Compile a plain or ``/body/flags`` pattern; returns (regex, global)."""
    body, flag_text = pattern, ""
    slashed = _SLASHED_RE.fullmatch(pattern)
    if slashed is not None:
        body, flag_text = slashed.group(1), slashed.group(2)

    flags = 0
    for letter in flag_text:
        flags |= _FLAGS.get(letter, 0)
    try:
        return re.compile(body, flags), "g" in flag_text
    except re.error as exc:
        raise FormulaDomainError(f'Invalid regular expression "{pattern}": {exc}') from exc


def _expand(replacement: str, match: re.Match[str]) -> str:
    """Expand ``$`` references in *replacement* against *match*."""
    group_count = match.re.groups

    def substitute(ref: re.Match[str]) -> str:
        token = ref.group(1)
        if token == "$":
            return "$"
        if token == "&":
            return match.group(0)
        # "$12" means group 12 if it exists, else group 1 followed by "2"
        if len(token) == 2 and 0 < int(token) <= group_count:
            return match.group(int(token)) or ""
        if 0 < int(token[0]) <= group_count:
            return (match.group(int(token[0])) or "") + token[1:]
        return ref.group(0)

    return _DOLLAR_RE.sub(substitute, replacement)


def _replace(text: str, regex: re.Pattern[str], replacement: str, count: int) -> str:
    return regex.sub(lambda match: _expand(replacement, match), text, count=count)


def _clamp(position: float, length: int) -> int:
    if math.isnan(position):
        return 0
    return int(min(max(position, 0.0), float(length)))


def _pad(text: str, target: float, fill: str) -> str:
    """The fill to add so *text* reaches *target* characters."""
    if math.isnan(target) or target <= len(text) or not fill:
        return ""
    if math.isinf(target):
        raise FormulaDomainError("Invalid string length")
    missing = int(target) - len(text)
    return (fill * (missing // len(fill) + 1))[:missing]


@_registry.function("substr", STRING, NUMBER, NUMBER)
def _fn_substr(text: StringValue, start: NumberValue, end: NumberValue) -> StringValue:
    """substr(text, start, end): characters in [start, end).

    Both bounds are clamped to the string and swapped if reversed, so
    ``substr("hello", 3, 1)`` is ``"el"``.
    """
    lo = _clamp(start.value, len(text.value))
    hi = _clamp(end.value, len(text.value))
    if lo > hi:
        lo, hi = hi, lo
    return StringValue(value=text.value[lo:hi])


@_registry.function("concat", STRING, STRING)
def _fn_concat(a: StringValue, b: StringValue) -> StringValue:
    return StringValue(value=a.value + b.value)


@_registry.function("find", STRING, STRING)
def _fn_find(text: StringValue, sub: StringValue) -> NumberValue:
    """find(text, sub): index of the first occurrence, or -1."""
    return NumberValue(value=text.value.find(sub.value))


@_registry.function("regexfind", STRING, STRING)
def _fn_regexfind(text: StringValue, pattern: StringValue) -> NumberValue:
    regex, _ = _compile(pattern.value)
    match = regex.search(text.value)
    return NumberValue(value=match.start() if match is not None else -1)


@_registry.function("regexmatch", STRING, STRING)
def _fn_regexmatch(text: StringValue, pattern: StringValue) -> StringValue:
    """regexmatch(text, pattern): the first match, or ``""``."""
    regex, _ = _compile(pattern.value)
    match = regex.search(text.value)
    return StringValue(value=match.group(0) if match is not None else "")


@_registry.function("replace", STRING, STRING, STRING)
def _fn_replace(text: StringValue, sub: StringValue, replacement: StringValue) -> StringValue:
    """replace(text, sub, repl): replaces the first occurrence only."""
    regex = re.compile(re.escape(sub.value))
    return StringValue(value=_replace(text.value, regex, replacement.value, count=1))


@_registry.function("replaceall", STRING, STRING, STRING)
def _fn_replaceall(text: StringValue, sub: StringValue, replacement: StringValue) -> StringValue:
    regex = re.compile(re.escape(sub.value))
    return StringValue(value=_replace(text.value, regex, replacement.value, count=0))


@_registry.function("regexreplace", STRING, STRING, STRING)
def _fn_regexreplace(text: StringValue, pattern: StringValue, replacement: StringValue) -> StringValue:
    """regexreplace(text, pattern, repl): first match, or all with ``/.../g``."""
    regex, replace_all = _compile(pattern.value)
    count = 0 if replace_all else 1
    return StringValue(value=_replace(text.value, regex, replacement.value, count=count))


@_registry.function("len", STRING)
def _fn_len(text: StringValue) -> NumberValue:
    return NumberValue(value=len(text.value))


@_registry.function("padstart", STRING, NUMBER, STRING)
def _fn_padstart(text: StringValue, length: NumberValue, fill: StringValue) -> StringValue:
    """padstart(text, n, fill): left-pads with repeats of fill to n characters."""
    return StringValue(value=_pad(text.value, length.value, fill.value) + text.value)


@_registry.function("padend", STRING, NUMBER, STRING)
def _fn_padend(text: StringValue, length: NumberValue, fill: StringValue) -> StringValue:
    return StringValue(value=text.value + _pad(text.value, length.value, fill.value))


@_registry.function("repeat", STRING, NUMBER)
def _fn_repeat(text: StringValue, times: NumberValue) -> StringValue:
    count = 0.0 if math.isnan(times.value) else times.value
    if count <= -1 or math.isinf(count):
        raise FormulaDomainError(f"Invalid count value: {count:g}")
    return StringValue(value=text.value * int(count))


@_registry.function("uppercase", STRING)
def _fn_uppercase(text: StringValue) -> StringValue:
    return StringValue(value=text.value.upper())


@_registry.function("lowercase", STRING)
def _fn_lowercase(text: StringValue) -> StringValue:
    return StringValue(value=text.value.lower())


STRING_HANDLERS: tuple[HandlerEntry, ...] = tuple(_registry.entries)
