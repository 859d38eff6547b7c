"""Runtime evaluation for query language expressions."""

from __future__ import annotations

import copy
import logging

from treeq.query_language.arithmetic import apply_arithmetic, negate
from treeq.query_language.ast import (
    Alternative,
    ArrayConstruct,
    ArraySlice,
    Assignment,
    BinaryOp,
    BoolLiteral,
    Comparison,
    Conditional,
    Delete,
    Expr,
    Fold,
    FunctionCall,
    Group,
    Identity,
    Invalid,
    LogicalOp,
    Negate,
    Not,
    NullLiteral,
    NumberLiteral,
    ObjectConstruct,
    OptionalExpr,
    PathQuery,
    Pipe,
    StringLiteral,
    TryCatch,
    WithEntries,
)
from treeq.query_language.conditions import (
    broadcast,
    condition_holds,
    evaluate_comparison,
    evaluate_logical,
    evaluate_not,
)
from treeq.query_language.errors import (
    InvalidSyntaxError,
    QueryError,
    QueryRuntimeError,
    QueryTypeError,
)
from treeq.query_language.functions import call_function
from treeq.query_language.paths import clamp_slice, resolve_path
from treeq.query_language.values import (
    EMPTY,
    Stream,
    display_string,
    flatten_results,
    to_json_value,
    type_name,
)
from treeq.query_language.writer import assign_path, delete_path


_NOT_ATOMIC = object()


logger = logging.getLogger("treeq")


def evaluate_expr(expr: Expr, value: object) -> object:
    """Evaluate an expression against the current value.

    The result is a value, a `Stream` of values produced by an iterating
    path, or `EMPTY` when the expression produced no output.
    """
    atomic_result = _evaluate_atomic(expr, value)
    if atomic_result is not _NOT_ATOMIC:
        return atomic_result

    if isinstance(expr, Pipe):
        return _evaluate_pipe(expr, value)
    if isinstance(expr, TryCatch):
        return _evaluate_try(expr, value)
    if isinstance(expr, Alternative):
        return _evaluate_alternative(expr, value)
    if isinstance(expr, OptionalExpr):
        return _evaluate_optional(expr, value)
    return _evaluate_operator_expr(expr, value)


def _evaluate_atomic(expr: Expr, value: object) -> object:
    """Evaluate expressions that do not combine sub-results."""
    result: object = _NOT_ATOMIC
    if isinstance(expr, Identity):
        result = value
    elif isinstance(expr, Group):
        result = evaluate_expr(expr.expr, value)
    elif isinstance(expr, NumberLiteral | StringLiteral | BoolLiteral):
        result = expr.value
    elif isinstance(expr, NullLiteral):
        result = None
    elif isinstance(expr, PathQuery):
        result = resolve_path(value, expr.segments)
    elif isinstance(expr, FunctionCall):
        result = call_function(expr.name, value, expr.arguments, evaluate_expr)
    elif isinstance(expr, Conditional):
        result = _evaluate_conditional(expr, value)
    elif isinstance(expr, Invalid):
        raise InvalidSyntaxError(expr.message)
    return result


def _evaluate_operator_expr(expr: Expr, value: object) -> object:
    """Evaluate operator and construction expressions."""
    result: object = _NOT_ATOMIC
    if isinstance(expr, BinaryOp):
        result = _evaluate_binary_op(expr, value)
    elif isinstance(expr, Comparison):
        result = evaluate_comparison(expr, value, evaluate_expr)
    elif isinstance(expr, LogicalOp):
        result = evaluate_logical(expr, value, evaluate_expr)
    elif isinstance(expr, Not):
        result = evaluate_not(expr, value, evaluate_expr)
    elif isinstance(expr, Negate):
        result = _evaluate_negation(expr, value)
    elif isinstance(expr, ArraySlice):
        result = _evaluate_array_slice(expr, value)
    elif isinstance(expr, Fold):
        result = _evaluate_fold(expr, value)
    elif isinstance(expr, ArrayConstruct):
        result = flatten_results(evaluate_expr(item, value) for item in expr.items)
    elif isinstance(expr, ObjectConstruct):
        result = _evaluate_object_construct(expr, value)
    elif isinstance(expr, WithEntries):
        result = _evaluate_with_entries(expr, value)
    elif isinstance(expr, Delete):
        result = delete_path(copy.deepcopy(value), expr.path.segments)
    elif isinstance(expr, Assignment):
        result = evaluate_assignment(expr, copy.deepcopy(value))
    if result is not _NOT_ATOMIC:
        return result
    raise QueryRuntimeError(f"Unsupported expression type: {type(expr).__name__}")


def evaluate_assignment(
    expr: Assignment, document: object, *, create_missing: bool = True
) -> object:
    """Assign the value expression's result into document in place.

    The value expression is evaluated against the document before it changes.
    Returns the document root, which differs from document only when the
    root itself is assigned.
    """
    new_value = to_json_value(evaluate_expr(expr.value, document))
    return assign_path(document, expr.target.segments, new_value, create_missing=create_missing)


def _evaluate_pipe(expr: Pipe, value: object) -> object:
    """Feed each stage the previous result, mapping stages over streams."""
    current = evaluate_expr(expr.stages[0], value)
    for stage in expr.stages[1:]:
        if current is EMPTY:
            return EMPTY
        if isinstance(current, Stream):
            current = Stream(flatten_results(evaluate_expr(stage, item) for item in current))
        else:
            current = evaluate_expr(stage, current)
    return current


def _evaluate_try(expr: TryCatch, value: object) -> object:
    """Evaluate body, falling back to the handler on the original input."""
    try:
        return evaluate_expr(expr.body, value)
    except QueryError as exc:
        logger.debug("try caught: %s", exc)
        if expr.handler is None:
            return None
        return evaluate_expr(expr.handler, value)


def _evaluate_alternative(expr: Alternative, value: object) -> object:
    """Return the left result unless it failed or was null, false or empty."""
    try:
        left = evaluate_expr(expr.left, value)
    except QueryError as exc:
        logger.debug("alternative left side failed: %s", exc)
        return evaluate_expr(expr.right, value)
    if isinstance(left, Stream):
        kept = [item for item in left if item is not None and item is not False]
        return Stream(kept) if kept else evaluate_expr(expr.right, value)
    if left is None or left is False or left is EMPTY:
        return evaluate_expr(expr.right, value)
    return left


def _evaluate_optional(expr: OptionalExpr, value: object) -> object:
    """Convert evaluation errors to null."""
    try:
        return evaluate_expr(expr.expr, value)
    except QueryError as exc:
        logger.debug("optional suppressed: %s", exc)
        return None


def _evaluate_conditional(expr: Conditional, value: object) -> object:
    if condition_holds(expr.condition, value, evaluate_expr):
        return evaluate_expr(expr.then_expr, value)
    if expr.else_expr is None:
        return None
    return evaluate_expr(expr.else_expr, value)


def _evaluate_binary_op(expr: BinaryOp, value: object) -> object:
    """Evaluate arithmetic over operands, broadcasting streams."""
    left = evaluate_expr(expr.left, value)
    right = evaluate_expr(expr.right, value)
    if left is EMPTY or right is EMPTY:
        return EMPTY
    results = [apply_arithmetic(expr.operator, a, b) for a, b in broadcast(left, right)]
    if isinstance(left, Stream) or isinstance(right, Stream):
        return Stream(results)
    return results[0]


def _evaluate_negation(expr: Negate, value: object) -> object:
    operand = evaluate_expr(expr.expr, value)
    if operand is EMPTY:
        return EMPTY
    if isinstance(operand, Stream):
        return Stream(negate(item) for item in operand)
    return negate(operand)


def _evaluate_array_slice(expr: ArraySlice, value: object) -> object:
    """Slice the input with clamped bounds."""
    if value is None:
        return None
    if not isinstance(value, (list, str)):
        raise QueryTypeError(f"Cannot slice {type_name(value)}")
    lower, upper = clamp_slice(len(value), expr.start, expr.end)
    return value[lower:upper]


def _evaluate_fold(expr: Fold, value: object) -> object:
    """Collect subquery results into one array."""
    if expr.expr is None:
        return []
    result = evaluate_expr(expr.expr, value)
    if result is EMPTY:
        return []
    if isinstance(result, Stream):
        return flatten_results(result)
    if isinstance(result, list):
        return result
    return [result]


def _evaluate_object_construct(expr: ObjectConstruct, value: object) -> object:
    """Build an object entry by entry; any entry without a result yields none."""
    output: dict[str, object] = {}
    for key, value_expr in expr.entries:
        result = evaluate_expr(value_expr, value)
        if result is EMPTY:
            return EMPTY
        output[key] = list(result) if isinstance(result, Stream) else result
    return output


def _evaluate_with_entries(expr: WithEntries, value: object) -> object:
    """Transform every `{key, value}` entry of an object and reassemble it.

    A transform producing an entry object replaces the entry, one producing
    no result drops it, and any other result becomes the entry's value.
    """
    if not isinstance(value, dict):
        raise QueryTypeError(f"with_entries requires an object, got {type_name(value)}")
    output: dict[str, object] = {}
    for key, item in value.items():
        result = evaluate_expr(expr.transform, {"key": key, "value": item})
        if result is EMPTY:
            continue
        if isinstance(result, dict) and "key" in result and "value" in result:
            if result["key"] is None:
                continue
            output[display_string(result["key"])] = result["value"]
            continue
        output[key] = list(result) if isinstance(result, Stream) else result
    return output

