"""Jinja2 filters and globals available to every template.

String case conversion, collection querying (``where``, ``first``,
``order_by`` ...) and type-mapping helpers for models that describe typed
properties (``Type``, ``IsEnum``, ``IsNullable``, ``BaseType``).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Callable

from .conditions import coerce_literal, get_value_by_path, loose_equals, parse_number


# ---------------------------------------------------------------------------
# String case helpers
# ---------------------------------------------------------------------------


def camel_case(value: Any) -> str:
    """Lower the leading capital run: ``ID`` -> ``id``, ``URLPath`` -> ``urlPath``."""
    if not isinstance(value, str) or not value:
        return ""

    result: list[str] = []
    for index, char in enumerate(value):
        if index == len(value) - 1:
            result.append(char.lower())
            break
        if char.islower():
            result.append(value[index:])
            break
        next_is_lower = value[index + 1].islower()
        if index == 0 and next_is_lower:
            result.append(char.lower() + value[index + 1:])
            break
        if not next_is_lower:
            result.append(char.lower())
            continue
        result.append(value[index:])
        break
    return "".join(result)


def pascal_case(value: Any) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    if not isinstance(value, str):
        return ""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def snake_case(value: Any) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    if not isinstance(value, str):
        return ""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def upper_case(value: Any) -> str:
    return value.upper() if isinstance(value, str) else ""


def lower_case(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def replace_first(value: Any, find: str, replace_with: str) -> str:
    """Replace the first occurrence of *find* in *value*."""
    if not isinstance(value, str):
        return ""
    return value.replace(str(find), str(replace_with), 1)


def concat(value_a: Any, value_b: Any) -> str:
    return f"{value_a}{value_b}"


# ---------------------------------------------------------------------------
# Collection helpers
# ---------------------------------------------------------------------------


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return get_value_by_path(item, name)


def where(collection: Any, filter_expression: str | None = None) -> list[Any]:
    """Filter items with ``"Prop eq value;Other ne value"`` expressions.

    Only ``eq`` and ``ne`` are recognised; anything else behaves like ``eq``.
    Malformed clauses are ignored.
    """
    if not isinstance(collection, (list, tuple)):
        return []
    if not filter_expression or not isinstance(filter_expression, str):
        return list(collection)

    clauses: list[tuple[str, str, Any]] = []
    for expression in filter_expression.split(";"):
        parts = expression.strip().split(" ")
        if len(parts) < 3:
            continue
        prop, comparison, *value_parts = parts
        raw = " ".join(value_parts)
        value: Any = True if raw == "true" else False if raw == "false" else raw
        clauses.append((prop, comparison, value))

    def keep(item: Any) -> bool:
        for prop, comparison, value in clauses:
            equal = loose_equals(_field(item, prop), value)
            if (comparison == "ne" and equal) or (comparison != "ne" and not equal):
                return False
        return True

    return [item for item in collection if keep(item)]


def first(collection: Any, filter_expression: str | None = None) -> Any:
    matches = where(collection, filter_expression)
    return matches[0] if matches else None


def any_match(collection: Any, filter_expression: str | None = None) -> bool:
    return len(where(collection, filter_expression)) > 0


def order_by(collection: Any, properties: str | None = None) -> Any:
    """Sort by one or more ``;``-separated properties; ``None`` sorts first."""
    if not isinstance(collection, (list, tuple)):
        return collection
    if not properties or not isinstance(properties, str):
        return list(collection)

    names = properties.split(";")

    def key(item: Any) -> tuple:
        values = []
        for name in names:
            value = _field(item, name)
            values.append((value is not None, value if value is not None else 0))
        return tuple(values)

    return sorted(collection, key=key)


def find_in(collection: Any, prop: str, value: Any) -> Any:
    if not isinstance(collection, (list, tuple)):
        return None
    for item in collection:
        if loose_equals(_field(item, prop), value):
            return item
    return None


def exists_in(collection: Any, prop: str, value: Any) -> bool:
    return find_in(collection, prop, value) is not None


def contains(collection: Any, value: Any) -> bool:
    if not isinstance(collection, (list, tuple)):
        return False
    return value in collection


def is_empty(value: Any) -> bool:
    return not value


def is_number(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (bool, int, float)):
        return True
    return isinstance(value, str) and parse_number(value) is not None


# ---------------------------------------------------------------------------
# Type mapping helpers
# ---------------------------------------------------------------------------

# C# type -> SQL Server type
SQL_TYPES: dict[str, str] = {
    "Guid": "uniqueidentifier",
    "DateTime": "datetime",
    "bool": "bit",
    "int": "int",
    "long": "bigint",
    "short": "tinyint",
    "string": "nvarchar",
    "double": "float",
    "float": "float",
    "decimal": "decimal",
}

# C# type -> .NET System type
SYSTEM_TYPES: dict[str, str] = {
    "Guid": "Guid",
    "DateTime": "DateTime",
    "bool": "Boolean",
    "int": "Int32",
    "long": "Int64",
    "short": "Int16",
    "string": "String",
    "double": "Double",
    "float": "Float",
    "decimal": "Decimal",
}

# Types that are already nullable and never take a '?' suffix
NULLABLE_BY_DEFAULT = frozenset({"short"})


def _storage_type(prop: Mapping[str, Any]) -> Any:
    return "int" if prop.get("IsEnum") else prop.get("BaseType") or prop.get("Type")


def get_type(prop: Any) -> str:
    """Declared type of a property, with ``?`` for nullable value types."""
    if not isinstance(prop, Mapping):
        return ""
    type_name = prop.get("Enum") if prop.get("IsEnum") else prop.get("Type")
    type_name = type_name or ""
    if not prop.get("IsNullable") or type_name not in SYSTEM_TYPES:
        return type_name
    if type_name in NULLABLE_BY_DEFAULT:
        return type_name
    return f"{type_name}?"


def is_system_type(type_name: Any) -> bool:
    return type_name in SYSTEM_TYPES


def has_system_type(prop: Any) -> bool:
    if not isinstance(prop, Mapping):
        return False
    return is_system_type(_storage_type(prop))


def get_sql_type(prop: Any) -> str:
    """SQL Server column type, e.g. ``[nvarchar](50)`` or ``[decimal](18, 5)``."""
    if not isinstance(prop, Mapping):
        return "[unknown]"
    type_name = _storage_type(prop)
    sql_type = SQL_TYPES.get(type_name)
    if sql_type is None:
        return f"[{type_name or 'unknown'}]"
    if sql_type == "nvarchar":
        length = prop.get("Length") or 0
        return f"[{sql_type}]({length if length > 0 else 50})"
    if sql_type == "decimal":
        precision = prop.get("Precision") or 0
        scale = prop.get("Scale") or 0
        return (
            f"[{sql_type}]({precision if precision > 0 else 18}, "
            f"{scale if scale > 0 else 5})"
        )
    return f"[{sql_type}]"


def get_system_type(prop: Any) -> str:
    if not isinstance(prop, Mapping):
        return "Object"
    return SYSTEM_TYPES.get(_storage_type(prop), "Object")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

FILTERS: dict[str, Callable[..., Any]] = {
    "camel_case": camel_case,
    "pascal_case": pascal_case,
    "snake_case": snake_case,
    "upper_case": upper_case,
    "lower_case": lower_case,
    "replace_first": replace_first,
    "concat": concat,
    "where": where,
    "first_match": first,
    "any_match": any_match,
    "order_by": order_by,
    "find_in": find_in,
    "exists_in": exists_in,
    "contains": contains,
    "is_empty": is_empty,
    "is_number": is_number,
    "get_type": get_type,
    "get_sql_type": get_sql_type,
    "get_system_type": get_system_type,
    "is_system_type": is_system_type,
    "has_system_type": has_system_type,
}

# Also exposed as plain functions: {{ get_sql_type(prop) }}
GLOBALS: dict[str, Callable[..., Any]] = {
    **FILTERS,
    "first": first,
    "coerce": coerce_literal,
}
