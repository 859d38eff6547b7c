"""Parser turning query text into an AST.

Query text is classified by shape in a fixed order, the first matching form
wins:

 1. empty text (identity)
 2. `if ... end` conditional
 3. `try ... [catch ...]`
 4. top-level ` | ` pipe
 5. top-level ` // ` alternative
 6. trailing `?`
 7. `with_entries(...)`
 8. `del(...)`
 9. `[...]` slice or array construction
10. `{...}` object construction
11. built-in function, bare or called
12. logical, comparison and arithmetic operators
13. unknown `name(...)` call
14. unary minus before a path, group or call
15. literal value (only for text not starting with `.`)
16. path query
"""

from __future__ import annotations

import re
from collections.abc import Callable

from parsy import ParseError, Parser, alt, eof, regex

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
from treeq.query_language.errors import InvalidSyntaxError
from treeq.query_language.functions import BUILTIN_NAMES
from treeq.query_language.paths import (
    OPTIONAL_CHAIN,
    OPTIONAL_MARKER,
    PATH_PARSER,
    Field,
    Index,
    PathSegment,
    decode_string_token,
)
from treeq.query_language.scanner import (
    check_balanced,
    find_arithmetic_operator,
    find_assignment,
    find_comparison_operator,
    find_keyword,
    find_logical_operator,
    find_matching_end,
    find_top_level,
    is_wrapped,
    split_function_call,
    split_pipes,
    split_top_level,
    split_top_level_commas,
)


MAX_QUERY_DEPTH = 100

_SLICE_BODY = re.compile(r"\s*(-?\d*)\s*:\s*(-?\d*)\s*")
_BARE_KEY = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")


def _parse_line_and_column(line_info: str) -> tuple[int, int]:
    """Parse line and column from parsy line info string."""
    line_text, sep, column_text = line_info.partition(":")
    if sep == "":
        return (0, 0)
    if not line_text.isdigit() or not column_text.isdigit():
        return (0, 0)
    return (int(line_text), int(column_text))


def _format_parse_error(query: str, exc: ParseError) -> str:
    """Build parse error detail with a pointer into the query."""
    line_number, column_number = _parse_line_and_column(exc.line_info())
    query_lines = query.splitlines() or [query]
    error_line = query_lines[line_number] if 0 <= line_number < len(query_lines) else query
    pointer = " " * max(column_number, 0) + "^"
    return f"{exc}\n\n{error_line}\n{pointer}"


def _keyword(name: str) -> Parser:
    """Build a keyword parser with identifier boundary."""
    return regex(rf"{name}(?![A-Za-z0-9_])").desc(name)


def _number_literal(token: str) -> NumberLiteral:
    if re.fullmatch(r"-?\d+", token):
        return NumberLiteral(int(token))
    return NumberLiteral(float(token))


def _make_literal_parser() -> Parser:
    """Create the parser for scalar literal values."""
    ws = regex(r"\s*")
    true_literal = _keyword("true").result(BoolLiteral(True))
    false_literal = _keyword("false").result(BoolLiteral(False))
    null_literal = _keyword("null").result(NullLiteral())
    number_literal = regex(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?").map(_number_literal)
    string_literal = regex(r'"(?:[^"\\]|\\.)*"').map(
        lambda token: StringLiteral(decode_string_token(token))
    )
    bare_word = regex(r"[A-Za-z_][A-Za-z0-9_]*(?:\s+[A-Za-z0-9_]+)*").map(StringLiteral)
    choices = (true_literal, false_literal, null_literal, number_literal, string_literal, bare_word)
    return ws >> alt(*(choice << ws << eof for choice in choices))


LITERAL_PARSER = _make_literal_parser()


def parse_query(query: str) -> Expr:
    """Parse query text into an AST expression.

    Raises:
        InvalidSyntaxError: When the query is malformed or nested too deeply
    """
    check_balanced(query)
    return _parse(query, 0)


def parse_assignment(query: str) -> Assignment:
    """Parse a write query of the form `PATH = VALUE`."""
    check_balanced(query)
    return _parse_assignment(query.strip(), 0)


def _parse(text: str, depth: int) -> Expr:
    """Parse one sub-expression.

    Every operand, stage, argument and group is a sub-expression one level
    below its parent, so each term of a long operator chain adds a level.
    """
    if depth > MAX_QUERY_DEPTH:
        raise InvalidSyntaxError(
            f"Query exceeds maximum depth of {MAX_QUERY_DEPTH} nested sub-expressions"
        )
    query = text.strip()
    if not query:
        return Identity()
    for parse_form in _QUERY_FORMS:
        expr = parse_form(query, depth + 1)
        if expr is not None:
            return expr
    return _parse_path(query)


def _parse_operand(text: str, depth: int, operator: str) -> Expr:
    if not text.strip():
        raise InvalidSyntaxError(f"Missing operand for '{operator}'")
    return _parse(text, depth)


def _parse_recoverable(text: str, depth: int) -> Expr:
    """Parse a sub-query whose syntax errors surface only when evaluated."""
    try:
        return _parse(text, depth)
    except InvalidSyntaxError as exc:
        return Invalid(exc.detail)


def _parse_conditional(query: str, depth: int) -> Expr | None:
    if not query.startswith("if "):
        return None
    end_index = find_matching_end(query)
    if query[end_index + 3 :].strip():
        return None
    return _parse_branches(query[3:end_index], depth)


def _parse_branches(body: str, depth: int) -> Conditional:
    then_index = find_keyword(body, "then")
    if then_index < 0:
        raise InvalidSyntaxError("Missing 'then' in 'if' expression")
    condition = _parse_operand(body[:then_index], depth, "if")
    rest = body[then_index + 4 :]

    elif_index = find_keyword(rest, "elif")
    else_index = find_keyword(rest, "else")
    if elif_index >= 0 and (else_index < 0 or elif_index < else_index):
        then_expr = _parse(rest[:elif_index], depth)
        return Conditional(condition, then_expr, _parse_branches(rest[elif_index + 4 :], depth + 1))
    if else_index >= 0:
        then_expr = _parse(rest[:else_index], depth)
        return Conditional(condition, then_expr, _parse(rest[else_index + 4 :], depth))
    return Conditional(condition, _parse(rest, depth), None)


def _parse_try(query: str, depth: int) -> Expr | None:
    if not query.startswith("try "):
        return None
    body = query[4:]
    catch_index = find_keyword(body, "catch")
    if catch_index < 0:
        return TryCatch(_parse_recoverable(body, depth), None)
    handler = _parse(body[catch_index + 5 :], depth)
    return TryCatch(_parse_recoverable(body[:catch_index], depth), handler)


def _parse_pipe(query: str, depth: int) -> Expr | None:
    stages = split_pipes(query)
    if len(stages) == 1:
        return None
    return Pipe(tuple(_parse(stage, depth) for stage in stages))


def _parse_alternative(query: str, depth: int) -> Expr | None:
    index = find_top_level(query, " // ")
    if index < 0:
        return None
    left = _parse_recoverable(query[:index], depth)
    return Alternative(left, _parse_operand(query[index + 4 :], depth, "//"))


def _parse_optional_suffix(query: str, depth: int) -> Expr | None:
    if not query.endswith(OPTIONAL_MARKER):
        return None
    return OptionalExpr(_parse_recoverable(query[:-1], depth))


def _parse_with_entries(query: str, depth: int) -> Expr | None:
    if not query.startswith("with_entries("):
        return None
    call = split_function_call(query)
    if call is None:
        return None
    _name, argument = call
    if find_assignment(argument) >= 0:
        return WithEntries(_parse_assignment(argument.strip(), depth))
    return WithEntries(_parse(argument, depth))


def _parse_delete(query: str, depth: int) -> Expr | None:
    del depth
    if not query.startswith("del("):
        return None
    call = split_function_call(query)
    if call is None:
        return None
    return Delete(_parse_target(call[1]))


def _parse_array_form(query: str, depth: int) -> Expr | None:
    if not is_wrapped(query, "["):
        return None
    body = query[1:-1].strip()
    if not body:
        return Fold(None)

    bounds = _SLICE_BODY.fullmatch(body)
    if bounds is not None:
        start, end = (int(bound) if bound else None for bound in bounds.groups())
        if (start is not None and start < 0) or (end is not None and end < 0):
            raise InvalidSyntaxError(f"Slice bounds must be non-negative: [{body}]")
        return ArraySlice(start, end)

    items = split_top_level_commas(body)
    if len(items) == 1:
        return Fold(_parse(body, depth))
    if not all(items):
        raise InvalidSyntaxError(f"Empty element in array construction: {query}")
    return ArrayConstruct(tuple(_parse(item, depth) for item in items))


def _parse_object_form(query: str, depth: int) -> Expr | None:
    if not is_wrapped(query, "{"):
        return None
    body = query[1:-1].strip()
    if not body:
        return ObjectConstruct(())
    entries = split_top_level_commas(body)
    return ObjectConstruct(tuple(_parse_object_entry(entry, depth) for entry in entries))


def _parse_object_entry(entry: str, depth: int) -> tuple[str, Expr]:
    if not entry:
        raise InvalidSyntaxError("Empty entry in object construction")
    colon = find_top_level(entry, ":")
    if colon < 0:
        return _shorthand_entry(entry)
    key = _object_key(entry[:colon].strip())
    return (key, _parse_operand(entry[colon + 1 :], depth, ":"))


def _object_key(text: str) -> str:
    if _BARE_KEY.fullmatch(text):
        return text
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return decode_string_token(text)
    raise InvalidSyntaxError(f"Invalid object key: {text}")


def _shorthand_entry(entry: str) -> tuple[str, Expr]:
    """Build `{name}` / `{"name"}` / `{.a.b}` entries keyed by the last field."""
    if entry.startswith("."):
        path = _parse_path(entry)
        if isinstance(path, PathQuery) and path.segments:
            last = path.segments[-1]
            if isinstance(last, Field):
                return (last.name, path)
        raise InvalidSyntaxError(f"Object shorthand must end in a field: {entry}")
    key = _object_key(entry)
    return (key, PathQuery((Field(key),)))


def _parse_builtin_call(query: str, depth: int) -> Expr | None:
    if query in BUILTIN_NAMES:
        return FunctionCall(query, ())
    call = split_function_call(query)
    if call is None or call[0] not in BUILTIN_NAMES:
        return None
    name, arguments = call
    return FunctionCall(name, _parse_arguments(arguments, depth))


def _parse_arguments(text: str, depth: int) -> tuple[Expr, ...]:
    """Parse function arguments separated by top-level `;` or `,`."""
    if not text.strip():
        return ()
    arguments = [
        argument
        for group in split_top_level(text, ";")
        for argument in split_top_level_commas(group)
    ]
    return tuple(_parse_operand(argument, depth, ",") for argument in arguments)


def _parse_group(query: str, depth: int) -> Expr | None:
    if not is_wrapped(query, "("):
        return None
    return Group(_parse(query[1:-1], depth))


def _parse_operators(query: str, depth: int) -> Expr | None:
    logical = find_logical_operator(query)
    if logical is not None:
        index, operator = logical
        left = _parse_operand(query[:index], depth, operator)
        right = _parse_operand(query[index + len(operator) + 2 :], depth, operator)
        return LogicalOp(operator, left, right)

    if query.startswith("not "):
        return Not(_parse_operand(query[4:], depth, "not"))

    comparison = find_comparison_operator(query)
    if comparison is not None:
        index, operator = comparison
        left = _parse_operand(query[:index], depth, operator)
        right = _parse_operand(query[index + len(operator) :], depth, operator)
        return Comparison(operator, left, right)

    arithmetic = find_arithmetic_operator(query)
    if arithmetic is not None:
        index, operator = arithmetic
        left = _parse_operand(query[:index], depth, operator)
        right = _parse_operand(query[index + 1 :], depth, operator)
        return BinaryOp(operator, left, right)
    return None


def _parse_unknown_call(query: str, depth: int) -> Expr | None:
    del depth
    call = split_function_call(query)
    if call is None:
        return None
    return FunctionCall(call[0], ())


def _parse_negation(query: str, depth: int) -> Expr | None:
    """Parse unary minus applied to a path, group or function call."""
    if not query.startswith("-"):
        return None
    operand = query[1:].strip()
    if operand.startswith((".", "(")) or split_function_call(operand) is not None:
        return Negate(_parse(operand, depth))
    if operand in BUILTIN_NAMES:
        return Negate(FunctionCall(operand, ()))
    return None


def _parse_literal(query: str, depth: int) -> Expr | None:
    del depth
    if query.startswith((".", "if ", "try ")):
        return None
    try:
        result = LITERAL_PARSER.parse(query)
    except ParseError as exc:
        raise InvalidSyntaxError(_format_parse_error(query, exc)) from exc
    if isinstance(result, Expr):
        return result
    raise InvalidSyntaxError(f"Invalid literal: {query}")


def _parse_path(query: str) -> Expr:
    try:
        parts = PATH_PARSER.parse(query)
    except ParseError as exc:
        raise InvalidSyntaxError(_format_parse_error(query, exc)) from exc
    flat: list[PathSegment | str] = []
    for part in parts:
        if isinstance(part, tuple):
            flat.extend(part)
        else:
            flat.append(part)
    return _build_path(flat)


def _build_path(parts: list[PathSegment | str]) -> Expr:
    """Build a path query, wrapping segments before each `?` marker.

    After a `.?name` chain marker the remaining path is optional as a whole.
    """
    if OPTIONAL_CHAIN in parts:
        position = parts.index(OPTIONAL_CHAIN)
        tail = OptionalExpr(_build_path(parts[position + 1 :]))
        if position == 0:
            return tail
        return Pipe((_build_path(parts[:position]), tail))

    stages: list[Expr] = []
    current: list[PathSegment] = []
    for part in parts:
        if isinstance(part, PathSegment):
            current.append(part)
            continue
        stages.append(OptionalExpr(PathQuery(tuple(current))))
        current = []
    if not stages:
        return PathQuery(tuple(current))
    if current:
        stages.append(PathQuery(tuple(current)))
    return stages[0] if len(stages) == 1 else Pipe(tuple(stages))


def _parse_target(text: str) -> PathQuery:
    """Parse an assignment or deletion target made of fields and indexes."""
    target = text.strip()
    path = _parse_path(target)
    if not isinstance(path, PathQuery) or not all(
        isinstance(segment, (Field, Index)) for segment in path.segments
    ):
        raise InvalidSyntaxError(f"Path must consist of fields and indexes: {target}")
    return path


def _parse_assignment(query: str, depth: int) -> Assignment:
    index = find_assignment(query)
    if index < 0:
        raise InvalidSyntaxError(f"Expected an assignment of the form PATH = VALUE: {query}")
    value = _parse_operand(query[index + 3 :], depth + 1, "=")
    return Assignment(_parse_target(query[:index]), value)


_QUERY_FORMS: tuple[Callable[[str, int], Expr | None], ...] = (
    _parse_conditional,
    _parse_try,
    _parse_pipe,
    _parse_alternative,
    _parse_optional_suffix,
    _parse_with_entries,
    _parse_delete,
    _parse_array_form,
    _parse_object_form,
    _parse_builtin_call,
    _parse_group,
    _parse_operators,
    _parse_unknown_call,
    _parse_negation,
    _parse_literal,
)
