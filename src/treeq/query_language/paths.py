"""Path segments, the path grammar and read-time path traversal."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from parsy import Parser, eof, regex, seq, string

from treeq.query_language.errors import (
    IndexOutOfBoundsError,
    InvalidSyntaxError,
    KeyNotFoundError,
    QueryTypeError,
)
from treeq.query_language.values import Stream, flatten_results, type_name


OPTIONAL_MARKER = "?"
OPTIONAL_CHAIN = ".?"

_STRING_TOKEN = re.compile(r'"(?:[^"\\]|\\.)*"', re.DOTALL)
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
}


@dataclass(frozen=True, slots=True)
class PathSegment:
    """Base path segment type."""


@dataclass(frozen=True, slots=True)
class Field(PathSegment):
    """Object key access, `.name` or `["name"]`."""

    name: str


@dataclass(frozen=True, slots=True)
class Index(PathSegment):
    """Array element access; negative indexes count from the end."""

    index: int


@dataclass(frozen=True, slots=True)
class Wildcard(PathSegment):
    """All values of an object or array, `[*]` or `.*`."""


@dataclass(frozen=True, slots=True)
class Slice(PathSegment):
    """Array or string slice `[start:end]` with clamped bounds."""

    start: int | None
    end: int | None


@dataclass(frozen=True, slots=True)
class Iterate(PathSegment):
    """Element iterator `[]` feeding each element to later stages."""


@dataclass(frozen=True, slots=True)
class RecursiveDescent(PathSegment):
    """Recursive descent `..` or `..name`."""

    name: str | None


def _decode_escape(match: re.Match[str]) -> str:
    escape = match.group(1)
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if len(escape) == 5:
        return chr(int(escape[1:], 16))
    return match.group(0)


def decode_string_token(token: str) -> str:
    """Decode a double-quoted string literal token.

    JSON escapes are decoded. Any other backslash sequence, such as `\\d`, is
    kept as written so regular expressions pass through unchanged.
    """
    if not _STRING_TOKEN.fullmatch(token):
        raise InvalidSyntaxError(f"Invalid string literal {token}")
    decoded = _ESCAPE.sub(_decode_escape, token[1:-1])
    # \uXXXX pairs may encode a surrogate pair
    return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def _make_path_parser() -> Parser:
    """Create the parser for dotted and bracketed path expressions."""
    ws = regex(r"\s*")
    name = regex(r"[A-Za-z_][A-Za-z0-9_-]*")
    quoted = regex(r'"(?:[^"\\]|\\.)*"').map(decode_string_token)
    index = regex(r"-?\d+").map(int)
    bound = regex(r"\d+").map(int)

    left = string("[") >> ws
    right = ws >> string("]")
    iterate = (left >> string("]")).result(Iterate())
    wildcard = (left >> string("*") << right).result(Wildcard())
    quoted_field = (left >> quoted << right).map(Field)
    slice_bounds = seq(
        left >> bound.optional() << ws << string(":") << ws,
        bound.optional() << right,
    ).combine(Slice)
    element = (left >> index << right).map(Index)
    bracket = iterate | wildcard | quoted_field | slice_bounds | element

    recurse = (string("..") >> name.optional()).map(RecursiveDescent)
    dotted = string(".") >> (
        name.map(Field) | quoted.map(Field) | string("*").result(Wildcard()) | bracket
    )
    optional_mark = string(OPTIONAL_MARKER)
    # `.?name` makes the rest of the path optional
    optional_chain = (string(OPTIONAL_CHAIN) >> name).map(
        lambda key: (OPTIONAL_CHAIN, Field(key))
    )
    segment = recurse | optional_chain | dotted | bracket | optional_mark
    identity = string(".").result([])
    return (segment.at_least(1) | identity) << ws << eof


PATH_PARSER = _make_path_parser()


def step_segment(value: object, segment: PathSegment) -> object:
    """Apply one non-expanding segment to a value."""
    if isinstance(segment, Field):
        return _field(value, segment.name)
    if isinstance(segment, Index):
        return _element(value, segment.index)
    if isinstance(segment, Slice):
        return _slice(value, segment)
    raise QueryTypeError(f"Cannot apply {type(segment).__name__} segment here")


def _field(value: object, name: str) -> object:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise QueryTypeError(f'Cannot index {type_name(value)} with "{name}"')
    if name not in value:
        raise KeyNotFoundError(name)
    return value[name]


def list_position(items: list[object], index: int) -> int:
    """Resolve a possibly negative index into a list position.

    Raises:
        IndexOutOfBoundsError: When index falls outside the list
    """
    position = index + len(items) if index < 0 else index
    if not 0 <= position < len(items):
        raise IndexOutOfBoundsError(f"index {index} for array of length {len(items)}")
    return position


def _element(value: object, index: int) -> object:
    if value is None:
        return None
    if not isinstance(value, list):
        raise QueryTypeError(f"Cannot index {type_name(value)} with number")
    return value[list_position(value, index)]


def clamp_slice(length: int, start: int | None, end: int | None) -> tuple[int, int]:
    """Clamp optional non-negative slice bounds to a sequence length."""
    lower = min(start or 0, length)
    upper = length if end is None else min(end, length)
    return (lower, max(lower, upper))


def _slice(value: object, segment: Slice) -> object:
    if value is None:
        return None
    if not isinstance(value, (list, str)):
        raise QueryTypeError(f"Cannot slice {type_name(value)}")
    lower, upper = clamp_slice(len(value), segment.start, segment.end)
    return value[lower:upper]


def expand_segment(value: object, segment: PathSegment) -> list[object]:
    """Return the values an iterating segment visits."""
    if isinstance(segment, RecursiveDescent):
        found: list[object] = []
        _descend(value, segment.name, found)
        return found
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return list(value)
    raise QueryTypeError(f"Cannot iterate over {type_name(value)}")


def _descend(value: object, name: str | None, found: list[object]) -> None:
    """Collect values in pre-order, optionally only those under key `name`."""
    if name is None:
        found.append(value)
    if isinstance(value, dict):
        if name is not None and name in value:
            found.append(value[name])
        for child in value.values():
            _descend(child, name, found)
    elif isinstance(value, list):
        for child in value:
            _descend(child, name, found)


def resolve_path(value: object, segments: Sequence[PathSegment]) -> object:
    """Traverse value along segments.

    An iterator segment maps the remaining segments over every element and
    yields a stream; wildcards and recursive descent collect an array. Errors
    raised for any element abort the whole traversal.
    """
    current = value
    for position, segment in enumerate(segments):
        if isinstance(segment, (Iterate, Wildcard, RecursiveDescent)):
            rest = segments[position + 1 :]
            results = [resolve_path(item, rest) for item in expand_segment(current, segment)]
            if isinstance(segment, Iterate):
                return Stream(flatten_results(results))
            return [list(result) if isinstance(result, Stream) else result for result in results]
        current = step_segment(current, segment)
    return current
