"""Sanity tests for query language parser."""

from __future__ import annotations

import pytest

from treeq.query_language import MAX_QUERY_DEPTH, parse_assignment, parse_query
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
from treeq.query_language.errors import InvalidSyntaxError, QueryParseError
from treeq.query_language.paths import (
    Field,
    Index,
    Iterate,
    RecursiveDescent,
    Slice,
    Wildcard,
)


def _path(*names: str) -> PathQuery:
    return PathQuery(tuple(Field(name) for name in names))


@pytest.mark.parametrize(
    "query",
    [
        ".",
        ".name",
        '.["odd key"]',
        ".users[0].name",
        ".items[]",
        ".items[*].id",
        "..name",
        ".[2:4]",
        ".users | map(select(.age >= 18))",
        'if .a then "x" elif .b then "y" else "z" end',
        'try error("boom") catch "caught"',
        '.missing // "default"',
        "{name: .user.name, age}",
        "[.items[] | .name]",
        "with_entries(.value = .value * 2)",
        "del(.a.b)",
        'test("^a"; "i")',
        "not .done",
        ".a and .b or .c",
        "(.a + 1) * 2",
    ],
)
def test_parse_query_accepts_supported_forms(query: str) -> None:
    """Representative queries parse without errors."""
    parse_query(query)


def test_empty_query_is_identity() -> None:
    """Empty and whitespace-only queries return the input."""
    assert parse_query("") == Identity()
    assert parse_query("   ") == Identity()


def test_dot_is_empty_path() -> None:
    """A lone dot is a path with no segments."""
    assert parse_query(".") == PathQuery(())


def test_path_segments() -> None:
    """Dotted and bracketed segments combine into one path."""
    assert parse_query('.users[0].name["first"]') == PathQuery(
        (Field("users"), Index(0), Field("name"), Field("first"))
    )
    assert parse_query(".items[-1]") == PathQuery((Field("items"), Index(-1)))
    assert parse_query(".items[]") == PathQuery((Field("items"), Iterate()))
    assert parse_query(".items[*]") == PathQuery((Field("items"), Wildcard()))
    assert parse_query(".items.*") == PathQuery((Field("items"), Wildcard()))
    assert parse_query(".items[1:3]") == PathQuery((Field("items"), Slice(1, 3)))
    assert parse_query("..name") == PathQuery((RecursiveDescent("name"),))
    assert parse_query("..") == PathQuery((RecursiveDescent(None),))


def test_hyphenated_field_is_not_subtraction() -> None:
    """Hyphens inside a key name stay part of the key."""
    assert parse_query(".foo-bar") == _path("foo-bar")


def test_pipe_preserves_stage_order() -> None:
    """Pipe stages keep their left-to-right order."""
    assert parse_query(".a | .b | length") == Pipe(
        (_path("a"), _path("b"), FunctionCall("length", ()))
    )


def test_builtin_call_arguments() -> None:
    """Arguments are separated by semicolons and parsed as sub-queries."""
    assert parse_query("map(.a)") == FunctionCall("map", (_path("a"),))
    assert parse_query('test("x"; "i")') == FunctionCall(
        "test", (StringLiteral("x"), StringLiteral("i"))
    )
    assert parse_query("keys") == FunctionCall("keys", ())


def test_unknown_call_parses_to_function_call() -> None:
    """Unknown functions are reported when evaluated, not when parsed."""
    assert parse_query("foo(1)") == FunctionCall("foo", ())


def test_literals() -> None:
    """Scalars parse into literal nodes, bare words into strings."""
    assert parse_query("42") == NumberLiteral(42)
    assert parse_query("-1.5") == NumberLiteral(-1.5)
    assert parse_query('"hi \\"there\\""') == StringLiteral('hi "there"')
    assert parse_query("true") == BoolLiteral(True)
    assert parse_query("false") == BoolLiteral(False)
    assert parse_query("null") == NullLiteral()
    assert parse_query("hello") == StringLiteral("hello")


def test_comparison_and_arithmetic_precedence() -> None:
    """Comparison splits before arithmetic, multiplication binds tighter."""
    assert parse_query(".a + 1 >= 3") == Comparison(
        ">=", BinaryOp("+", _path("a"), NumberLiteral(1)), NumberLiteral(3)
    )
    assert parse_query("1 + 2 * 3") == BinaryOp(
        "+", NumberLiteral(1), BinaryOp("*", NumberLiteral(2), NumberLiteral(3))
    )
    assert parse_query("1 - 2 - 3") == BinaryOp(
        "-", BinaryOp("-", NumberLiteral(1), NumberLiteral(2)), NumberLiteral(3)
    )


def test_logical_operators() -> None:
    """`or` binds looser than `and`; `not` is a prefix."""
    assert parse_query(".a and .b or .c") == LogicalOp(
        "or", LogicalOp("and", _path("a"), _path("b")), _path("c")
    )
    assert parse_query("not .a") == Not(_path("a"))


def test_group() -> None:
    """Parentheses produce a group node."""
    assert parse_query("(.a + 1) * 2") == BinaryOp(
        "*", Group(BinaryOp("+", _path("a"), NumberLiteral(1))), NumberLiteral(2)
    )


def test_conditional_chain() -> None:
    """`elif` nests a conditional in the else branch."""
    assert parse_query("if .a then 1 elif .b then 2 end") == Conditional(
        _path("a"), NumberLiteral(1), Conditional(_path("b"), NumberLiteral(2), None)
    )
    assert parse_query("if .a then 1 else 2 end") == Conditional(
        _path("a"), NumberLiteral(1), NumberLiteral(2)
    )


def test_conditional_followed_by_pipe() -> None:
    """A conditional can be a pipe stage."""
    assert parse_query("if .a then .b else .c end | length") == Pipe(
        (Conditional(_path("a"), _path("b"), _path("c")), FunctionCall("length", ()))
    )


def test_try_catch() -> None:
    """`try` bodies are recoverable and `catch` is optional."""
    assert parse_query("try .a catch 0") == TryCatch(_path("a"), NumberLiteral(0))
    assert parse_query("try .a") == TryCatch(_path("a"), None)


def test_try_body_syntax_error_is_deferred() -> None:
    """A malformed try body becomes an invalid node instead of failing the parse."""
    parsed = parse_query("try .a b catch 0")
    assert isinstance(parsed, TryCatch)
    assert isinstance(parsed.body, Invalid)


def test_alternative_and_optional() -> None:
    """`//` and the `?` suffix parse into their own nodes."""
    assert parse_query('.a // "d"') == Alternative(_path("a"), StringLiteral("d"))
    assert parse_query(".a.b?") == OptionalExpr(_path("a", "b"))
    assert parse_query(".a?.b") == Pipe((OptionalExpr(_path("a")), _path("b")))


def test_array_forms() -> None:
    """Brackets parse as slice, collection or construction by their body."""
    assert parse_query("[]") == Fold(None)
    assert parse_query("[2:4]") == ArraySlice(2, 4)
    assert parse_query("[:2]") == ArraySlice(None, 2)
    assert parse_query("[.a]") == Fold(_path("a"))
    assert parse_query("[.a, 1]") == ArrayConstruct((_path("a"), NumberLiteral(1)))


def test_negative_slice_bounds_rejected() -> None:
    """Top-level slices accept only non-negative bounds."""
    with pytest.raises(InvalidSyntaxError):
        parse_query("[-1:2]")


def test_object_construction() -> None:
    """Explicit, quoted and shorthand keys keep their order."""
    assert parse_query('{name: .user.name, "full name": .n, age, .x.y}') == ObjectConstruct(
        (
            ("name", _path("user", "name")),
            ("full name", _path("n")),
            ("age", _path("age")),
            ("y", _path("x", "y")),
        )
    )
    assert parse_query("{}") == ObjectConstruct(())


def test_invalid_object_key() -> None:
    """Keys must be names or quoted strings."""
    with pytest.raises(InvalidSyntaxError, match="Invalid object key"):
        parse_query("{1 2: .a}")


def test_with_entries_and_delete() -> None:
    """`with_entries` may hold an assignment; `del` takes a plain path."""
    assert parse_query("with_entries(.value = 1)") == WithEntries(
        Assignment(_path("value"), NumberLiteral(1))
    )
    assert parse_query("with_entries(.value)") == WithEntries(_path("value"))
    assert parse_query("del(.a[0])") == Delete(PathQuery((Field("a"), Index(0))))


def test_delete_requires_plain_path() -> None:
    """Iterating segments cannot be deleted."""
    with pytest.raises(InvalidSyntaxError, match="fields and indexes"):
        parse_query("del(.a[])")


@pytest.mark.parametrize(
    "query",
    [
        "if .x then 1",
        "if .x 1 end",
        "map(.a",
        ".a]",
        '"open',
        ".a b",
        ".a +",
        "[1, , 2]",
        "{a: }",
    ],
)
def test_malformed_queries_raise(query: str) -> None:
    """Malformed queries raise syntax errors."""
    with pytest.raises(InvalidSyntaxError):
        parse_query(query)


def test_syntax_errors_are_parse_errors() -> None:
    """Syntax errors belong to the parse error family."""
    with pytest.raises(QueryParseError, match="Invalid query syntax"):
        parse_query(".a b")


def test_nesting_depth_limit() -> None:
    """Deeply nested queries are rejected."""
    deep = "(" * (MAX_QUERY_DEPTH + 50) + "1" + ")" * (MAX_QUERY_DEPTH + 50)
    with pytest.raises(InvalidSyntaxError, match="maximum depth"):
        parse_query(deep)


def test_moderate_nesting_is_accepted() -> None:
    """Nesting well below the limit parses."""
    query = "(" * 10 + "1" + ")" * 10
    parse_query(query)


def test_parse_is_deterministic() -> None:
    """Parsing the same text twice yields equal trees."""
    query = ".users | map(select(.age >= 18)) | length"
    assert parse_query(query) == parse_query(query)


def test_parse_assignment() -> None:
    """Assignments split into a plain target and a value expression."""
    assert parse_assignment('.a.b = "x"') == Assignment(_path("a", "b"), StringLiteral("x"))
    assert parse_assignment(".items[0] = .x + 1") == Assignment(
        PathQuery((Field("items"), Index(0))), BinaryOp("+", _path("x"), NumberLiteral(1))
    )
    assert parse_assignment(". = 5") == Assignment(PathQuery(()), NumberLiteral(5))


@pytest.mark.parametrize("query", [".a", ".a[] = 1", "..a = 1", ".a ="])
def test_parse_assignment_rejects_invalid(query: str) -> None:
    """Writes need one `PATH = VALUE` with a plain target."""
    with pytest.raises(InvalidSyntaxError):
        parse_assignment(query)


def test_flat_operator_chain_counts_each_term() -> None:
    """Each operand of an operator chain is one sub-expression level."""
    parse_query(" + ".join(["1"] * 60))
    with pytest.raises(InvalidSyntaxError, match="maximum depth of 100 nested sub-expressions"):
        parse_query(" + ".join(["1"] * (MAX_QUERY_DEPTH + 20)))


def test_string_literal_escapes() -> None:
    """JSON escapes are decoded while regex escapes stay as written."""
    assert parse_query(r'"a\"b\\c\/d\n\t"') == StringLiteral('a"b\\c/d\n\t')
    assert parse_query(r'"é😀"') == StringLiteral("é\U0001f600")
    assert parse_query(r'"(\d{4})\.\w+\s"') == StringLiteral("(\\d{4})\\.\\w+\\s")


def test_builtin_arguments_split_on_commas() -> None:
    """Top-level commas separate arguments like semicolons do."""
    expected = FunctionCall("test", (StringLiteral("b"), StringLiteral("i")))
    assert parse_query('test("b", "i")') == expected
    assert parse_query('test("b"; "i")') == expected
    assert parse_query('has({a: 1, b: 2} | keys)') == FunctionCall(
        "has",
        (
            Pipe(
                (
                    ObjectConstruct((("a", NumberLiteral(1)), ("b", NumberLiteral(2)))),
                    FunctionCall("keys", ()),
                )
            ),
        ),
    )


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("-.a", Negate(_path("a"))),
        ("- .a.b", Negate(_path("a", "b"))),
        ("-(.a)", Negate(Group(_path("a")))),
        ("-length", Negate(FunctionCall("length", ()))),
        ("-.a + 1", BinaryOp("+", Negate(_path("a")), NumberLiteral(1))),
        ("-3", NumberLiteral(-3)),
    ],
)
def test_unary_minus(query: str, expected: object) -> None:
    """A leading minus negates paths, groups and calls."""
    assert parse_query(query) == expected


@pytest.mark.parametrize("query", ["-foo", "hello.world", "a+b", "1.2.3"])
def test_malformed_words_are_not_strings(query: str) -> None:
    """Only identifier-like words fall back to strings."""
    with pytest.raises(InvalidSyntaxError):
        parse_query(query)


def test_optional_chain_makes_rest_optional() -> None:
    """`.a.?b.c` keeps `.a` strict and makes `.b.c` optional."""
    assert parse_query(".user.?settings.theme") == Pipe(
        (_path("user"), OptionalExpr(_path("settings", "theme")))
    )
    assert parse_query(".?name") == OptionalExpr(_path("name"))
