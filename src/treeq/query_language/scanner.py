"""Nesting-aware scanners over raw query text.

Every scanner skips the contents of double-quoted strings (honouring
backslash escapes) and only reports structure found outside brackets.
The "top level" of a query is additionally outside any `if ... end` block.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from string import ascii_letters, digits

from treeq.query_language.errors import InvalidSyntaxError


COMPARISON_OPERATORS = ("==", "!=", ">=", "<=", ">", "<")

_WORD_CHARS = frozenset(ascii_letters + digits + "_")
_BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_BRACKET_PAIRS.values())
_FUNCTION_NAME = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\(")
_UNARY_CONTEXT = frozenset("+-*/%<>=!(,:[")


def _iter_code(text: str) -> Iterator[tuple[int, str]]:
    """Yield index and character for every position outside string literals."""
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
            continue
        yield index, char


def is_word_at(text: str, index: int, word: str) -> bool:
    """Return whether `word` occurs at index delimited by word boundaries."""
    if not text.startswith(word, index):
        return False
    if index > 0 and (text[index - 1] in _WORD_CHARS or text[index - 1] in ".$"):
        return False
    end = index + len(word)
    return end == len(text) or text[end] not in _WORD_CHARS


def _structure_mask(text: str) -> list[bool]:
    """Flag each position that lies at the top level of the query."""
    mask = [False] * len(text)
    depth = 0
    block_depth = 0
    skip_until = 0
    for index, char in _iter_code(text):
        if index < skip_until:
            continue
        if char in _BRACKET_PAIRS:
            mask[index] = depth == 0 and block_depth == 0
            depth += 1
            continue
        if char in _CLOSERS:
            depth = max(depth - 1, 0)
            mask[index] = depth == 0 and block_depth == 0
            continue
        if depth == 0 and is_word_at(text, index, "if"):
            block_depth += 1
            skip_until = index + 2
            continue
        if depth == 0 and block_depth > 0 and is_word_at(text, index, "end"):
            block_depth -= 1
            skip_until = index + 3
            continue
        mask[index] = depth == 0 and block_depth == 0
    return mask


def _is_top_level(mask: list[bool], index: int, length: int) -> bool:
    return all(mask[index : index + length])


def find_top_level(text: str, token: str, start: int = 0) -> int:
    """Return index of first top-level occurrence of token, or -1."""
    mask = _structure_mask(text)
    index = text.find(token, start)
    while index >= 0:
        if _is_top_level(mask, index, len(token)):
            return index
        index = text.find(token, index + 1)
    return -1


def rfind_top_level(text: str, token: str) -> int:
    """Return index of last top-level occurrence of token, or -1."""
    mask = _structure_mask(text)
    index = text.rfind(token)
    while index >= 0:
        if _is_top_level(mask, index, len(token)):
            return index
        index = text.rfind(token, 0, index + len(token) - 1)
    return -1


def split_top_level(text: str, separator: str) -> list[str]:
    """Split text on every top-level occurrence of separator."""
    parts: list[str] = []
    start = 0
    index = find_top_level(text, separator)
    while index >= 0:
        parts.append(text[start:index])
        start = index + len(separator)
        index = find_top_level(text, separator, start)
    parts.append(text[start:])
    return parts


def split_pipes(text: str) -> list[str]:
    """Split a query into pipe stages, preserving their order."""
    return [stage.strip() for stage in split_top_level(text, " | ")]


def split_top_level_commas(text: str) -> list[str]:
    """Split construction bodies on top-level commas."""
    return [part.strip() for part in split_top_level(text, ",")]


def find_keyword(text: str, keyword: str) -> int:
    """Return index of the first top-level keyword, or -1."""
    mask = _structure_mask(text)
    for index, _char in _iter_code(text):
        if mask[index] and is_word_at(text, index, keyword):
            return index
    return -1


def find_matching_end(text: str) -> int:
    """Return index of the `end` closing the `if` that starts text.

    Raises:
        InvalidSyntaxError: When no matching `end` exists
    """
    depth = 0
    for index, _char in _iter_code(text):
        if is_word_at(text, index, "if"):
            depth += 1
        elif is_word_at(text, index, "end"):
            depth -= 1
            if depth == 0:
                return index
    raise InvalidSyntaxError("Missing 'end' for 'if' expression")


def find_comparison_operator(text: str) -> tuple[int, str] | None:
    """Find the top-level comparison operator, checking `== != >= <= > <` in order."""
    mask = _structure_mask(text)
    for operator in COMPARISON_OPERATORS:
        index = text.find(operator)
        while index >= 0:
            follower = text[index + len(operator) : index + len(operator) + 1]
            single = len(operator) == 1
            if _is_top_level(mask, index, len(operator)) and not (single and follower == "="):
                return (index, operator)
            index = text.find(operator, index + 1)
    return None


def find_logical_operator(text: str) -> tuple[int, str] | None:
    """Find the rightmost top-level ` or `, then ` and `."""
    for operator in ("or", "and"):
        index = rfind_top_level(text, f" {operator} ")
        if index >= 0:
            return (index, operator)
    return None


def find_arithmetic_operator(text: str) -> tuple[int, str] | None:
    """Find the operator to split an arithmetic expression on.

    Scans right to left so that chains associate to the left. Additive
    operators bind last and are searched first; `+`/`-` only count as binary
    when preceded by whitespace or `)` and when an operand exists on both sides.
    """
    mask = _structure_mask(text)
    for index in range(len(text) - 1, 0, -1):
        char = text[index]
        if char not in "+-" or not mask[index]:
            continue
        if not (text[index - 1].isspace() or text[index - 1] == ")"):
            continue
        left = text[:index].rstrip()
        if not left or left[-1] in _UNARY_CONTEXT or not text[index + 1 :].strip():
            continue
        return (index, char)

    for index in range(len(text) - 1, 0, -1):
        char = text[index]
        if char not in "*/%" or not mask[index]:
            continue
        if char == "*" and text[index - 1] in ".[":
            continue
        if char == "/" and (text[index - 1] == "/" or text[index + 1 : index + 2] == "/"):
            continue
        if not text[:index].strip() or not text[index + 1 :].strip():
            continue
        return (index, char)
    return None


def find_assignment(text: str) -> int:
    """Return index of the first top-level ` = `, or -1."""
    return find_top_level(text, " = ")


def find_matching_close(text: str, open_index: int) -> int:
    """Return index of the bracket closing the one at open_index, or -1."""
    depth = 0
    for index, char in _iter_code(text):
        if index < open_index:
            continue
        if char in _BRACKET_PAIRS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth == 0:
                return index
    return -1


def is_wrapped(text: str, opener: str) -> bool:
    """Return whether text is entirely enclosed by one bracket pair."""
    closer = _BRACKET_PAIRS[opener]
    if len(text) < 2 or not text.startswith(opener) or not text.endswith(closer):
        return False
    return find_matching_close(text, 0) == len(text) - 1


def split_function_call(text: str) -> tuple[str, str] | None:
    """Split `name(args)` into the name and the raw argument text."""
    match = _FUNCTION_NAME.match(text)
    if match is None or not text.endswith(")"):
        return None
    open_index = match.end() - 1
    if find_matching_close(text, open_index) != len(text) - 1:
        return None
    return (match.group(1), text[open_index + 1 : -1])


def check_balanced(text: str) -> None:
    """Validate bracket nesting and string termination.

    Raises:
        InvalidSyntaxError: On unbalanced brackets or an unterminated string
    """
    stack: list[str] = []
    for _index, char in _iter_code(text):
        if char in _BRACKET_PAIRS:
            stack.append(_BRACKET_PAIRS[char])
        elif char in _CLOSERS:
            if not stack or stack.pop() != char:
                raise InvalidSyntaxError(f"Unbalanced '{char}' in query: {text}")
    if stack:
        raise InvalidSyntaxError(f"Missing '{stack[-1]}' in query: {text}")
    if _ends_inside_string(text):
        raise InvalidSyntaxError(f"Unterminated string in query: {text}")


def _ends_inside_string(text: str) -> bool:
    in_string = False
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif in_string and char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
    return in_string
