"""treeq - jq-style queries and edits over JSON, YAML and TOML documents."""

from treeq.documents import DocumentError, DocumentFormat, DocumentSession
from treeq.query_language import (
    QueryError,
    QueryParseError,
    QueryRuntimeError,
    compile_query_text,
    evaluate,
    evaluate_write,
    parse_query,
)


__version__ = "0.1.0"

__all__ = [
    "DocumentError",
    "DocumentFormat",
    "DocumentSession",
    "QueryError",
    "QueryParseError",
    "QueryRuntimeError",
    "__version__",
    "compile_query_text",
    "evaluate",
    "evaluate_write",
    "parse_query",
]
