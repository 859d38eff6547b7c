"""Tests for built-in query functions."""

from __future__ import annotations

import pytest

from treeq.query_language import (
    ExecutionError,
    InvalidArgumentError,
    QueryTypeError,
    evaluate,
)
from treeq.query_language.functions import ARG_FUNCTIONS, BUILTIN_NAMES, NO_ARG_FUNCTIONS


@pytest.mark.parametrize(
    ("value", "query", "expected"),
    [
        ({"b": 1, "a": 2}, "keys", ["a", "b"]),
        ([5, 6], "keys", [0, 1]),
        ({"a": 1, "b": 2}, "values", [1, 2]),
        ("abc", "length", 3),
        ([1, 2], "length", 2),
        ({"a": 1}, "length", 1),
        (None, "length", 0),
        (-5, "length", 5),
        ([], "type", "array"),
        ("s", "type", "string"),
        ([1, 2, 3], "reverse", [3, 2, 1]),
        ("abc", "reverse", "cba"),
        (None, "reverse", []),
        ([3, 1, 2], "sort", [1, 2, 3]),
        (["b", "a"], "sort", ["a", "b"]),
        ([2, None], "sort", [None, 2]),
        ([1, 2, 1, {"a": 1}, {"a": 1}], "unique", [1, 2, {"a": 1}]),
        ([1, [2, [3]]], "flatten", [1, 2, [3]]),
        ([1, [2, [3]]], "flatten(2)", [1, 2, 3]),
        ([1, 2, 3], "add", 6),
        (["a", "b"], "add", "ab"),
        ([[1], [2]], "add", [1, 2]),
        ([], "add", None),
        ([3, 1, 2], "min", 1),
        ([3, 1, 2], "max", 3),
        ([], "min", None),
        (True, "not", False),
        (0, "not", True),
    ],
)
def test_collection_functions(value: object, query: str, expected: object) -> None:
    """Collection built-ins return the expected values."""
    assert evaluate(value, query) == expected


def test_entries_round_trip() -> None:
    """to_entries and from_entries convert between objects and entry lists."""
    assert evaluate({"a": 1}, "to_entries") == [{"key": "a", "value": 1}]
    entries = [{"key": "a", "value": 1}, {"name": "b", "value": 2}]
    assert evaluate(entries, "from_entries") == {"a": 1, "b": 2}


def test_from_entries_requires_key() -> None:
    """Entries without a key or name are rejected."""
    with pytest.raises(InvalidArgumentError):
        evaluate([{"value": 1}], "from_entries")


@pytest.mark.parametrize(
    ("value", "query", "expected"),
    [
        (1.7, "floor", 1),
        (1.2, "ceil", 2),
        (2.5, "round", 3),
        (-2.5, "round", -3),
        (2.4, "round", 2),
        (-3, "abs", 3),
        (1, "tostring", "1"),
        ([1], "tostring", "[1]"),
        ("s", "tostring", "s"),
        ("42", "tonumber", 42),
        ("1.5", "tonumber", 1.5),
        (5, "tonumber", 5),
        ("  a  ", "trim", "a"),
        ("abcé", "ascii_upcase", "ABCé"),
        ("ABC", "ascii_downcase", "abc"),
    ],
)
def test_scalar_functions(value: object, query: str, expected: object) -> None:
    """Numeric and string built-ins convert their input."""
    assert evaluate(value, query) == expected


def test_tonumber_rejects_text() -> None:
    """Non-numeric text cannot be converted."""
    with pytest.raises(ExecutionError, match="Cannot convert"):
        evaluate("abc", "tonumber")


def test_numeric_functions_require_numbers() -> None:
    """Numeric built-ins reject strings."""
    with pytest.raises(QueryTypeError, match="floor requires a number"):
        evaluate("1", "floor")


def test_paths_and_leaf_paths() -> None:
    """Paths list every node; leaf paths only scalars and empty containers."""
    data = {"a": {"b": 1}, "c": [2], "d": {}}
    assert evaluate(data, "paths") == [[], ["a"], ["a", "b"], ["c"], ["c", "0"], ["d"]]
    assert evaluate(data, "leaf_paths") == [["a", "b"], ["c", "0"], ["d"]]


def test_objects_keeps_objects() -> None:
    """objects filters an array down to its objects."""
    assert evaluate([1, {"a": 1}, "x"], "objects") == [{"a": 1}]
    assert evaluate({"a": 1}, "objects") == {"a": 1}


def test_map_and_select() -> None:
    """map applies a sub-query per element, select filters."""
    assert evaluate([1, 2], "map(. * 2)") == [2, 4]
    assert evaluate([1, 2, 3], "map(select(. > 1))") == [2, 3]
    assert evaluate([[1, 2], [3]], "map(.[])") == [1, 2, 3]


def test_map_requires_array() -> None:
    """map only works on arrays."""
    with pytest.raises(QueryTypeError, match="map requires an array"):
        evaluate({"a": 1}, "map(.)")


def test_sort_by_is_stable() -> None:
    """Elements with equal keys keep their order."""
    data = [{"n": 2, "id": "x"}, {"n": 1, "id": "y"}, {"n": 2, "id": "z"}]
    assert evaluate(data, "sort_by(.n) | map(.id)") == ["y", "x", "z"]


def test_group_by_keeps_first_seen_order() -> None:
    """Groups appear in the order their key first occurs."""
    data = [{"k": "b", "v": 1}, {"k": "a", "v": 2}, {"k": "b", "v": 3}]
    assert evaluate(data, "group_by(.k)") == [
        [{"k": "b", "v": 1}, {"k": "b", "v": 3}],
        [{"k": "a", "v": 2}],
    ]


@pytest.mark.parametrize(
    ("value", "query", "expected"),
    [
        ({"a": 1}, 'has("a")', True),
        ({"a": 1}, 'has("z")', False),
        ([1], "has(0)", True),
        ([1], "has(1)", False),
        ("hello", 'contains("ell")', True),
        ([1, 2], "contains(2)", True),
        ([1, 2], "contains(3)", False),
        ("hello", 'startswith("he")', True),
        ("hello", 'endswith("lo")', True),
        ("a,b,c", 'split(",")', ["a", "b", "c"]),
        ("ab", 'split("")', ["a", "b"]),
        (["a", 1, None], 'join("-")', "a-1-null"),
        ("hello", 'test("^h")', True),
        ("hello", 'test("H"; "i")', True),
        ("hello", 'test("^x")', False),
        ("hello", 'indices("l")', [2, 3]),
        ([1, 2, 1], "indices(1)", [0, 2]),
        ("hello", 'index("l")', 2),
        ("hello", 'rindex("l")', 3),
        ("hello", 'index("z")', None),
        ("foobar", 'ltrimstr("foo")', "bar"),
        ("foobar", 'rtrimstr("bar")', "foo"),
        ("foobar", 'ltrimstr("x")', "foobar"),
        (5, 'ltrimstr("x")', 5),
        ({"a": 1}, "not(.a)", False),
    ],
)
def test_argument_functions(value: object, query: str, expected: object) -> None:
    """Built-ins taking arguments evaluate them against the input."""
    assert evaluate(value, query) == expected


def test_match_returns_details() -> None:
    """match reports offset, length, text and capture groups."""
    assert evaluate("hello", 'match("(l+)(o)")') == {
        "offset": 2,
        "length": 3,
        "string": "llo",
        "captures": ["ll", "o"],
    }
    assert evaluate("hello", 'match("z")') is None


@pytest.mark.parametrize(
    "query",
    ['test("[")', 'test("a"; "q")', "flatten(-1)", "startswith(1)"],
)
def test_invalid_arguments(query: str) -> None:
    """Bad patterns, flags and argument kinds are rejected."""
    value = "abc" if "flatten" not in query else [1]
    with pytest.raises(InvalidArgumentError):
        evaluate(value, query)


def test_contains_on_string_needs_string() -> None:
    """A string only contains strings."""
    with pytest.raises(QueryTypeError):
        evaluate("abc", "contains(1)")


def test_error_with_message() -> None:
    """error(msg) raises with the evaluated message."""
    with pytest.raises(ExecutionError, match="custom"):
        evaluate({}, 'error("custom")')
    with pytest.raises(ExecutionError, match="plain"):
        evaluate("plain", "error")


def test_builtin_registry_is_consistent() -> None:
    """Every registered name is known to the parser."""
    assert set(NO_ARG_FUNCTIONS) | set(ARG_FUNCTIONS) == BUILTIN_NAMES
    assert {"map", "select", "keys", "length", "sort_by"} <= BUILTIN_NAMES


EMAIL_PATTERN = r'test("^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")'


@pytest.mark.parametrize(
    ("value", "expected"),
    [("user@example.com", True), ("invalid-email", False), ("user@example", False)],
)
def test_regex_test_accepts_escapes(value: str, expected: bool) -> None:
    """Backslash escapes reach the regular expression unchanged."""
    assert evaluate(value, EMAIL_PATTERN) is expected


def test_match_with_escaped_class() -> None:
    """`\\d` in a pattern matches digits."""
    assert evaluate("year 2024", r'match("(\d{4})")') == {
        "offset": 5,
        "length": 4,
        "string": "2024",
        "captures": ["2024"],
    }


def test_regex_flags_after_comma() -> None:
    """Flags may follow the pattern after a comma."""
    assert evaluate("ABC", 'test("b", "i")') is True
    assert evaluate("ABC", 'test("b")') is False
