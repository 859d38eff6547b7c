"""Condition evaluation: comparisons, logical composition and truthiness."""

from __future__ import annotations

from treeq.query_language.ast import Comparison, Evaluator, Expr, LogicalOp, Not
from treeq.query_language.errors import QueryTypeError
from treeq.query_language.values import (
    EMPTY,
    Stream,
    display_string,
    is_number,
    is_truthy,
    values_equal,
)


def compare_order(left: object, right: object) -> int:
    """Order two values, returning a negative, zero or positive integer.

    Null sorts first. Numbers compare numerically, strings and booleans
    naturally. Arrays and objects compare by their size only. Values of
    different kinds compare by their display strings.
    """
    if left is None or right is None:
        return (left is not None) - (right is not None)
    if is_number(left) and is_number(right):
        return (left > right) - (left < right)
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    if isinstance(left, bool) and isinstance(right, bool):
        return (left > right) - (left < right)
    if isinstance(left, (list, dict)) and type(left) is type(right):
        return (len(left) > len(right)) - (len(left) < len(right))
    left_text = display_string(left)
    right_text = display_string(right)
    return (left_text > right_text) - (left_text < right_text)


def compare(operator: str, left: object, right: object) -> bool:
    """Apply one comparison operator."""
    if operator == "==":
        return values_equal(left, right)
    if operator == "!=":
        return not values_equal(left, right)
    order = compare_order(left, right)
    if operator == ">":
        return order > 0
    if operator == "<":
        return order < 0
    if operator == ">=":
        return order >= 0
    if operator == "<=":
        return order <= 0
    raise QueryTypeError(f"Unsupported comparison operator: {operator}")


def result_truthy(result: object) -> bool:
    """Truthiness of an evaluation result; a stream is true if any element is."""
    if isinstance(result, Stream):
        return any(is_truthy(item) for item in result)
    return is_truthy(result)


def broadcast(left: object, right: object) -> list[tuple[object, object]]:
    """Pair operands, mapping over stream operands."""
    left_items = list(left) if isinstance(left, Stream) else [left]
    right_items = list(right) if isinstance(right, Stream) else [right]
    if len(left_items) == len(right_items):
        return list(zip(left_items, right_items, strict=True))
    if len(left_items) == 1:
        return [(left_items[0], value) for value in right_items]
    if len(right_items) == 1:
        return [(value, right_items[0]) for value in left_items]
    raise QueryTypeError("Cannot combine streams with incompatible lengths")


def evaluate_comparison(expr: Comparison, value: object, evaluate: Evaluator) -> object:
    """Evaluate both operands against value and compare them."""
    left = evaluate(expr.left, value)
    right = evaluate(expr.right, value)
    if left is EMPTY or right is EMPTY:
        return EMPTY
    results = [compare(expr.operator, a, b) for a, b in broadcast(left, right)]
    if isinstance(left, Stream) or isinstance(right, Stream):
        return Stream(results)
    return results[0]


def evaluate_logical(expr: LogicalOp, value: object, evaluate: Evaluator) -> bool:
    """Evaluate `and`/`or`, skipping the right operand when the left decides."""
    left = result_truthy(evaluate(expr.left, value))
    if expr.operator == "and" and not left:
        return False
    if expr.operator == "or" and left:
        return True
    return result_truthy(evaluate(expr.right, value))


def evaluate_not(expr: Not, value: object, evaluate: Evaluator) -> bool:
    """Negate the truthiness of the operand."""
    return not result_truthy(evaluate(expr.expr, value))


def condition_holds(condition: Expr, value: object, evaluate: Evaluator) -> bool:
    """Evaluate a condition expression to a boolean."""
    return result_truthy(evaluate(condition, value))
