"""Condition expressions used by GenerateIf / SkipIf.

An expression has the form ``<dotted.path> <operator> <value...>`` and is
evaluated against a context mapping, e.g. ``item.IsAbstract eq true`` or
``Model.Kind startswith Entity``.  Evaluation never raises: malformed input
passes and leaves a message in :attr:`ConditionEvaluator.diagnostics`.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable


_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def get_value_by_path(obj: Any, path: str) -> Any:
    """Resolve a dotted path against nested mappings, sequences or objects.

    Returns ``None`` as soon as an intermediate value is missing.
    """
    if obj is None or not path:
        return None

    current = obj
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, Sequence) and not isinstance(current, str):
            if part == "length":
                current = len(current)
            elif part.lstrip("-").isdigit():
                index = int(part)
                current = current[index] if -len(current) <= index < len(current) else None
            else:
                return None
        else:
            current = getattr(current, part, None)
    return current


def parse_number(text: str) -> int | float | None:
    """Parse a decimal or hex numeric literal, or return ``None``."""
    text = text.strip()
    if _HEX_RE.match(text):
        return int(text, 16)
    if not _NUMBER_RE.match(text):
        return None
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    return float(text)


def coerce_literal(text: str) -> Any:
    """Turn the right-hand side of an expression into a typed value."""
    if text == "true":
        return True
    if text == "false":
        return False
    if text in ("null", "undefined"):
        return None
    number = parse_number(text)
    if number is not None:
        return number
    return text


def to_number(value: Any) -> float | None:
    """Numeric view of a value, or ``None`` when it has none."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else float(value)
    if isinstance(value, str):
        if value.strip() == "":
            return 0.0
        number = parse_number(value)
        return float(number) if number is not None else None
    return None


def to_text(value: Any) -> str:
    """String view of a value as used by the text operators."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)


def is_empty_value(value: Any) -> bool:
    """JSON-style emptiness: null, false, 0, NaN, "" and [] are empty; objects never are."""
    if isinstance(value, Mapping):
        return False
    if isinstance(value, float) and math.isnan(value):
        return True
    return not value


def loose_equals(actual: Any, expected: Any) -> bool:
    """Equality with numeric-string and boolean coercion."""
    if actual is None or expected is None:
        return actual is None and expected is None

    if isinstance(actual, bool) or isinstance(expected, bool):
        left, right = to_number(actual), to_number(expected)
        if left is None or right is None:
            return False
        return left == right

    numeric = (int, float)
    if isinstance(actual, numeric) and isinstance(expected, str) or (
        isinstance(actual, str) and isinstance(expected, numeric)
    ):
        left, right = to_number(actual), to_number(expected)
        return left is not None and right is not None and left == right

    if isinstance(actual, (list, tuple)) and isinstance(expected, (str, int, float)):
        return loose_equals(to_text(actual), expected)

    return actual == expected


def _compare(actual: Any, expected: Any, op: Callable[[Any, Any], bool]) -> bool:
    if isinstance(actual, str) and isinstance(expected, str):
        return op(actual, expected)
    left, right = to_number(actual), to_number(expected)
    if left is None or right is None:
        return False
    return op(left, right)


def _matches(actual: Any, expected: Any) -> bool:
    try:
        return re.search(to_text(expected), to_text(actual)) is not None
    except re.error:
        return False


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {}


def _register(names: tuple[str, ...], fn: Callable[[Any, Any], bool]) -> None:
    for name in names:
        _OPERATORS[name] = fn


_register(("eq", "==", "==="), loose_equals)
_register(("ne", "!=", "!=="), lambda a, e: not loose_equals(a, e))
_register(("gt", ">"), lambda a, e: _compare(a, e, lambda x, y: x > y))
_register(("lt", "<"), lambda a, e: _compare(a, e, lambda x, y: x < y))
_register(("gte", "ge", ">="), lambda a, e: _compare(a, e, lambda x, y: x >= y))
_register(("lte", "le", "<="), lambda a, e: _compare(a, e, lambda x, y: x <= y))
_register(("contains",), lambda a, e: to_text(e) in to_text(a))
_register(("startswith",), lambda a, e: to_text(a).startswith(to_text(e)))
_register(("endswith",), lambda a, e: to_text(a).endswith(to_text(e)))
_register(("matches",), _matches)
_register(("exists",), lambda a, e: a is not None)
_register(("empty",), lambda a, e: is_empty_value(a))

OPERATORS = frozenset(_OPERATORS)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class ConditionEvaluator:
    """Evaluates condition expressions and collects parse diagnostics."""

    def __init__(self) -> None:
        self.diagnostics: list[str] = []

    def evaluate(self, expression: str | None, context: Any) -> bool:
        """Return whether *expression* holds for *context*.

        ``None`` or an empty expression always holds.  So does a malformed
        one, with a diagnostic recorded instead of an exception.
        """
        if not expression or not isinstance(expression, str):
            return True

        parts = expression.split()
        if len(parts) < 3:
            self.diagnostics.append(
                f'Invalid condition expression: "{expression}". '
                'Expected format: "path operator value"'
            )
            return True

        path, operator, *value_parts = parts
        handler = _OPERATORS.get(operator.lower())
        if handler is None:
            self.diagnostics.append(
                f'Unknown operator "{operator}" in condition "{expression}"'
            )
            return True

        actual = get_value_by_path(context, path)
        expected = coerce_literal(" ".join(value_parts))
        return bool(handler(actual, expected))
