"""Public API for query language parser/compiler/runtime."""

from treeq.query_language.compiler import (
    CompiledQuery,
    compile_expr,
    compile_query_text,
    evaluate,
    evaluate_write,
)
from treeq.query_language.errors import (
    DivisionByZeroError,
    ExecutionError,
    FunctionNotFoundError,
    IndexOutOfBoundsError,
    InvalidArgumentError,
    InvalidSyntaxError,
    KeyNotFoundError,
    QueryError,
    QueryParseError,
    QueryRuntimeError,
    QueryTypeError,
)
from treeq.query_language.parser import MAX_QUERY_DEPTH, parse_assignment, parse_query
from treeq.query_language.runtime import evaluate_expr
from treeq.query_language.values import EMPTY, JsonValue, Stream


__all__ = [
    "EMPTY",
    "MAX_QUERY_DEPTH",
    "CompiledQuery",
    "DivisionByZeroError",
    "ExecutionError",
    "FunctionNotFoundError",
    "IndexOutOfBoundsError",
    "InvalidArgumentError",
    "InvalidSyntaxError",
    "JsonValue",
    "KeyNotFoundError",
    "QueryError",
    "QueryParseError",
    "QueryRuntimeError",
    "QueryTypeError",
    "Stream",
    "compile_expr",
    "compile_query_text",
    "evaluate",
    "evaluate_expr",
    "evaluate_write",
    "parse_assignment",
    "parse_query",
]
