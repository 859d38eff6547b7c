"""Value model shared by the query engine and the document codecs."""

from __future__ import annotations

import json
import math
from collections.abc import Iterable


type JsonValue = None | bool | int | float | str | list[JsonValue] | dict[str, JsonValue]


class Stream(list[object]):
    """Values produced one by one by an iterating path such as `.items[]`."""


class _NoResult:
    """Marker for a filter that produced no output."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "empty"

    def __bool__(self) -> bool:
        return False


EMPTY = _NoResult()


def is_number(value: object) -> bool:
    """Return whether value is a query number (booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_number(value: int | float) -> int | float:
    """Return integral floats as ints so results round-trip without `.0` noise."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def type_name(value: object) -> str:
    """Return user-facing type name for query values."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_truthy(value: object) -> bool:
    """Map any value to a boolean for conditionals and logical operators.

    Null, false, zero, the empty string and empty collections are falsy,
    as is the no-result marker.
    """
    if value is None or value is EMPTY:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    return True


def values_equal(left: object, right: object) -> bool:
    """Compare two values structurally.

    Object equality ignores key order. Booleans never equal numbers.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right, strict=True))
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(values_equal(item, right[key]) for key, item in left.items())
    return type(left) is type(right) and left == right


def format_number(value: int | float) -> str:
    """Return canonical text for a number."""
    normalized = normalize_number(value)
    if isinstance(normalized, int):
        return str(normalized)
    return repr(normalized)


def display_string(value: object) -> str:
    """Convert a value to text for concatenation and error messages."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    return json.dumps(to_json_value(value), separators=(",", ":"), ensure_ascii=False)


def to_json_value(value: object) -> JsonValue:
    """Convert an evaluation result into a plain value tree."""
    if value is EMPTY:
        return None
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value if item is not EMPTY]
    if isinstance(value, dict):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def flatten_results(results: Iterable[object]) -> list[object]:
    """Expand streams and drop no-result markers from a sequence of results."""
    output: list[object] = []
    for result in results:
        if result is EMPTY:
            continue
        if isinstance(result, Stream):
            output.extend(item for item in result if item is not EMPTY)
            continue
        output.append(result)
    return output
