"""Compiler entrypoints for query language."""

from __future__ import annotations

from collections.abc import Callable

from treeq.query_language.ast import Expr
from treeq.query_language.parser import parse_assignment, parse_query
from treeq.query_language.runtime import evaluate_assignment, evaluate_expr
from treeq.query_language.values import JsonValue, to_json_value


type CompiledQuery = Callable[[object], JsonValue]


def compile_expr(expr: Expr) -> CompiledQuery:
    """Compile expression into executable query callable."""

    def _compiled(value: object) -> JsonValue:
        return to_json_value(evaluate_expr(expr, value))

    return _compiled


def compile_query_text(query: str) -> CompiledQuery:
    """Parse and compile query text."""
    expr = parse_query(query)
    return compile_expr(expr)


def evaluate(value: object, query: str) -> JsonValue:
    """Run a read query against a value tree.

    Args:
        value: Decoded document
        query: Query text

    Returns:
        The query result; iterating paths are collected into an array and a
        query producing no output yields None.

    Raises:
        QueryError: On syntax or evaluation failure
    """
    return compile_query_text(query)(value)


def evaluate_write(value: object, query: str, *, create_missing: bool = True) -> JsonValue:
    """Apply a `PATH = VALUE` write query to value in place.

    Args:
        value: Decoded document, modified in place
        query: Assignment query text
        create_missing: Create absent intermediate objects and arrays

    Returns:
        The whole tree after the write. Assigning to `.` returns the new root.

    Raises:
        QueryError: On syntax or evaluation failure
    """
    assignment = parse_assignment(query)
    root = evaluate_assignment(assignment, value, create_missing=create_missing)
    return root  # type: ignore[return-value]
