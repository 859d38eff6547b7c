"""Arithmetic operators over query values."""

from __future__ import annotations

import math

from treeq.query_language.errors import DivisionByZeroError, ExecutionError, QueryTypeError
from treeq.query_language.values import (
    display_string,
    is_number,
    normalize_number,
    type_name,
    values_equal,
)


ARITHMETIC_OPERATORS = ("+", "-", "*", "/", "%")


def apply_arithmetic(operator: str, left: object, right: object) -> object:
    """Apply one arithmetic operator to two values.

    Raises:
        ExecutionError: When a numeric result overflows
    """
    try:
        return _apply(operator, left, right)
    except OverflowError as exc:
        raise ExecutionError(f"Numeric overflow in '{operator}'") from exc


def _apply(operator: str, left: object, right: object) -> object:
    if operator == "+":
        return _add(left, right)
    if operator == "-":
        return _subtract(left, right)
    if operator == "*":
        return _multiply(left, right)
    if operator in {"/", "%"}:
        return _divide(operator, left, right)
    raise QueryTypeError(f"Unsupported operator: {operator}")


def _add(left: object, right: object) -> object:
    if left is None:
        return right
    if right is None:
        return left
    if is_number(left) and is_number(right):
        return _number_result(left + right)
    if isinstance(left, str) or isinstance(right, str):
        return display_string(left) + display_string(right)
    if isinstance(left, list) and isinstance(right, list):
        return [*left, *right]
    if isinstance(left, dict) and isinstance(right, dict):
        return {**left, **right}
    raise QueryTypeError(f"Cannot add {type_name(left)} and {type_name(right)}")


def _subtract(left: object, right: object) -> object:
    if is_number(left) and is_number(right):
        return _number_result(left - right)
    if isinstance(left, list):
        return _subtract_from_collection(left, right)
    raise QueryTypeError(f"Cannot subtract {type_name(right)} from {type_name(left)}")


def _subtract_from_collection(collection: list[object], value: object) -> list[object]:
    """Remove every element equal to value, or to any element of a value array."""
    to_remove = value if isinstance(value, list) else [value]

    def should_keep(candidate: object) -> bool:
        return not any(values_equal(candidate, removed) for removed in to_remove)

    return [item for item in collection if should_keep(item)]


def _multiply(left: object, right: object) -> object:
    if is_number(left) and is_number(right):
        return _number_result(left * right)
    if isinstance(left, str):
        if not isinstance(right, int) or isinstance(right, bool) or right < 0:
            raise QueryTypeError("String repetition requires a non-negative integer")
        return left * right
    raise QueryTypeError(f"Cannot multiply {type_name(left)} and {type_name(right)}")


def _divide(operator: str, left: object, right: object) -> object:
    if not is_number(left) or not is_number(right):
        verb = "divide" if operator == "/" else "take modulo of"
        raise QueryTypeError(f"Cannot {verb} {type_name(left)} by {type_name(right)}")
    if operator == "/":
        _guard_non_zero(right, "division")
        return _number_result(left / right)
    dividend = math.trunc(require_finite(left, "modulo"))
    divisor = math.trunc(require_finite(right, "modulo"))
    _guard_non_zero(divisor, "modulo")
    remainder = abs(dividend) % abs(divisor)
    return remainder if dividend >= 0 else -remainder


def _guard_non_zero(value: int | float, operation: str) -> None:
    """Raise division error when value is zero."""
    if value == 0:
        raise DivisionByZeroError(operation)


def require_finite(number: int | float, operation: str) -> int | float:
    """Return number unless it is infinite or NaN.

    Raises:
        ExecutionError: When number is not finite
    """
    if isinstance(number, float) and not math.isfinite(number):
        raise ExecutionError(f"{operation} of non-finite number {number}")
    return number


def _number_result(number: int | float) -> int | float:
    if isinstance(number, float) and not math.isfinite(number):
        raise ExecutionError("Numeric result is not finite")
    return normalize_number(number)


def negate(value: object) -> object:
    """Return the arithmetic negation of a number."""
    if not is_number(value):
        raise QueryTypeError(f"Cannot negate {type_name(value)}")
    return normalize_number(-value)
