"""Errors for query parsing and execution."""

from __future__ import annotations


class QueryError(Exception):
    """Base exception for query failures."""

    message_prefix = "Query error: "

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.message_prefix}{detail}")


class QueryParseError(QueryError):
    """Raised when query text cannot be parsed."""


class QueryRuntimeError(QueryError):
    """Raised when query execution fails at runtime."""


class InvalidSyntaxError(QueryParseError):
    """Raised for malformed query shapes."""

    message_prefix = "Invalid query syntax: "


class ExecutionError(QueryRuntimeError):
    """Raised for generic runtime failures."""

    message_prefix = "Query execution failed: "


class QueryTypeError(QueryRuntimeError):
    """Raised when an operator or function receives the wrong kind of value."""

    message_prefix = "Type error: "


class IndexOutOfBoundsError(QueryRuntimeError):
    """Raised when an array index is out of range."""

    message_prefix = "Index out of bounds: "


class KeyNotFoundError(QueryRuntimeError):
    """Raised when an object key is missing."""

    message_prefix = "Key not found: "


class DivisionByZeroError(QueryRuntimeError):
    """Raised for division or modulo by zero."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        Exception.__init__(self, "Division by zero")


class FunctionNotFoundError(QueryRuntimeError):
    """Raised when a query calls an unknown function."""

    message_prefix = "Function not found: "


class InvalidArgumentError(QueryRuntimeError):
    """Raised when a function receives a bad argument."""

    message_prefix = "Invalid argument: "
