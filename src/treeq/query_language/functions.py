"""Built-in function library.

Each built-in consumes the current value. Built-ins taking sub-queries
receive their argument expressions unevaluated, together with the evaluator
used to run them against the current value or each element.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from functools import cmp_to_key

from treeq.query_language.arithmetic import apply_arithmetic, require_finite
from treeq.query_language.ast import Evaluator, Expr
from treeq.query_language.conditions import compare_order, condition_holds
from treeq.query_language.errors import (
    ExecutionError,
    FunctionNotFoundError,
    InvalidArgumentError,
    QueryTypeError,
)
from treeq.query_language.values import (
    EMPTY,
    display_string,
    flatten_results,
    is_number,
    is_truthy,
    to_json_value,
    type_name,
    values_equal,
)


logger = logging.getLogger("treeq")

type NoArgFunction = Callable[[object], object]
type ArgFunction = Callable[[object, tuple[Expr, ...], Evaluator], object]

_REGEX_FLAGS = {"i": re.IGNORECASE, "x": re.VERBOSE, "s": re.DOTALL, "g": 0}


def call_function(
    name: str, value: object, arguments: tuple[Expr, ...], evaluate: Evaluator
) -> object:
    """Dispatch a built-in by name and arity.

    Raises:
        FunctionNotFoundError: When name is not a built-in
        InvalidArgumentError: When the built-in does not take this many arguments
    """
    if arguments and name in ARG_FUNCTIONS:
        return ARG_FUNCTIONS[name](value, arguments, evaluate)
    if not arguments and name in NO_ARG_FUNCTIONS:
        return NO_ARG_FUNCTIONS[name](value)
    if name in ARG_FUNCTIONS:
        raise InvalidArgumentError(f"{name} requires an argument")
    if name in NO_ARG_FUNCTIONS:
        raise InvalidArgumentError(f"{name} does not accept an argument")
    raise FunctionNotFoundError(name)


def _ensure_arity(arguments: tuple[Expr, ...], expected: set[int], function_name: str) -> None:
    """Ensure function receives one of supported arities."""
    if len(arguments) in expected:
        return
    allowed = " or ".join(str(value) for value in sorted(expected))
    raise InvalidArgumentError(f"{function_name} expects {allowed} argument(s)")


def _argument_value(argument: Expr, value: object, evaluate: Evaluator) -> object:
    """Evaluate one argument expression against the current value."""
    result = evaluate(argument, value)
    if result is EMPTY:
        raise InvalidArgumentError("argument produced no value")
    return to_json_value(result)


def _single_argument(
    value: object, arguments: tuple[Expr, ...], evaluate: Evaluator, function_name: str
) -> object:
    _ensure_arity(arguments, {1}, function_name)
    return _argument_value(arguments[0], value, evaluate)


def _string_argument(
    value: object, arguments: tuple[Expr, ...], evaluate: Evaluator, function_name: str
) -> str:
    argument = _single_argument(value, arguments, evaluate, function_name)
    if not isinstance(argument, str):
        raise InvalidArgumentError(f"{function_name} expects a string, got {type_name(argument)}")
    return argument


def _require_array(value: object, function_name: str) -> list[object]:
    if not isinstance(value, list):
        raise QueryTypeError(f"{function_name} requires an array, got {type_name(value)}")
    return value


def _require_string(value: object, function_name: str) -> str:
    if not isinstance(value, str):
        raise QueryTypeError(f"{function_name} requires a string, got {type_name(value)}")
    return value


def _require_number(value: object, function_name: str) -> int | float:
    if not is_number(value):
        raise QueryTypeError(f"{function_name} requires a number, got {type_name(value)}")
    return require_finite(value, function_name)  # type: ignore[arg-type]


def _sort_values(values: list[object]) -> list[object]:
    return sorted(values, key=cmp_to_key(compare_order))


# Functions without arguments


def _func_keys(value: object) -> object:
    """Return sorted object keys or array indexes."""
    if isinstance(value, dict):
        return sorted(value)
    if isinstance(value, list):
        return list(range(len(value)))
    raise QueryTypeError(f"keys requires an object or array, got {type_name(value)}")


def _func_values(value: object) -> object:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return list(value)
    raise QueryTypeError(f"values requires an object or array, got {type_name(value)}")


def _func_length(value: object) -> object:
    """Return length of strings and collections, absolute value of numbers."""
    if value is None:
        return 0
    if isinstance(value, (str, list, dict)):
        return len(value)
    if is_number(value):
        return abs(value)
    raise QueryTypeError(f"{type_name(value)} has no length")


def _func_type(value: object) -> object:
    return type_name(value)


def _func_reverse(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return value[::-1]
    return list(reversed(_require_array(value, "reverse")))


def _func_sort(value: object) -> object:
    return _sort_values(_require_array(value, "sort"))


def _func_unique(value: object) -> object:
    """Return unique values preserving first-seen order."""
    output: list[object] = []
    for item in _require_array(value, "unique"):
        if not any(values_equal(item, seen) for seen in output):
            output.append(item)
    return output


def _func_flatten(value: object) -> object:
    return _flatten(_require_array(value, "flatten"), 1)


def _flatten(items: list[object], depth: int) -> list[object]:
    output: list[object] = []
    for item in items:
        if isinstance(item, list) and depth > 0:
            output.extend(_flatten(item, depth - 1))
        else:
            output.append(item)
    return output


def _func_add(value: object) -> object:
    """Fold array elements together with `+`."""
    items = _require_array(value, "add")
    if not items:
        return None
    total = items[0]
    for item in items[1:]:
        total = apply_arithmetic("+", total, item)
    return total


def _func_min(value: object) -> object:
    items = _require_array(value, "min")
    return min(items, key=cmp_to_key(compare_order)) if items else None


def _func_max(value: object) -> object:
    items = _require_array(value, "max")
    return max(items, key=cmp_to_key(compare_order)) if items else None


def _func_empty(value: object) -> object:
    del value
    return EMPTY


def _func_not(value: object) -> object:
    return not is_truthy(value)


def _func_to_entries(value: object) -> object:
    if not isinstance(value, dict):
        raise QueryTypeError(f"to_entries requires an object, got {type_name(value)}")
    return [{"key": key, "value": item} for key, item in value.items()]


def _func_from_entries(value: object) -> object:
    """Build an object from `{key, value}` entries; `name` is accepted for `key`."""
    output: dict[str, object] = {}
    for entry in _require_array(value, "from_entries"):
        if not isinstance(entry, dict):
            raise QueryTypeError(f"from_entries requires objects, got {type_name(entry)}")
        key = entry.get("key", entry.get("name"))
        if key is None:
            raise InvalidArgumentError("from_entries entry is missing a key")
        output[display_string(key)] = entry.get("value")
    return output


def _func_floor(value: object) -> object:
    return math.floor(_require_number(value, "floor"))


def _func_ceil(value: object) -> object:
    return math.ceil(_require_number(value, "ceil"))


def _func_round(value: object) -> object:
    """Round half away from zero."""
    number = _require_number(value, "round")
    rounded = math.floor(abs(number) + 0.5)
    return rounded if number >= 0 else -rounded


def _func_abs(value: object) -> object:
    return abs(_require_number(value, "abs"))


def _func_tostring(value: object) -> object:
    return display_string(value)


def _func_tonumber(value: object) -> object:
    if is_number(value):
        return value
    text = _require_string(value, "tonumber").strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError as exc:
        raise ExecutionError(f"Cannot convert {text!r} to number") from exc
    if not math.isfinite(number):
        raise ExecutionError(f"Cannot convert {text!r} to number")
    return number


def _func_trim(value: object) -> object:
    return _require_string(value, "trim").strip()


def _func_ascii_upcase(value: object) -> object:
    text = _require_string(value, "ascii_upcase")
    return "".join(char.upper() if char.isascii() else char for char in text)


def _func_ascii_downcase(value: object) -> object:
    text = _require_string(value, "ascii_downcase")
    return "".join(char.lower() if char.isascii() else char for char in text)


def _func_paths(value: object) -> object:
    """Return the path to every node, the root included, with text elements."""
    output: list[list[str]] = []
    _collect_paths(value, [], output, leaves_only=False)
    return output


def _func_leaf_paths(value: object) -> object:
    """Return paths to scalars and to empty containers, with text elements."""
    output: list[list[str]] = []
    _collect_paths(value, [], output, leaves_only=True)
    return output


def _collect_paths(
    value: object, prefix: list[str], output: list[list[str]], *, leaves_only: bool
) -> None:
    if isinstance(value, dict):
        children = [(str(key), child) for key, child in value.items()]
    elif isinstance(value, list):
        children = [(str(index), child) for index, child in enumerate(value)]
    else:
        output.append(prefix)
        return
    if not leaves_only or not children:
        output.append(prefix)
    for key, child in children:
        _collect_paths(child, [*prefix, key], output, leaves_only=leaves_only)


def _func_objects(value: object) -> object:
    """Keep objects: an object passes through, an array keeps its object elements."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _func_debug(value: object) -> object:
    """Log the input value and return it unchanged."""
    logger.info("%s", display_string(value))
    return value


def _func_error(value: object) -> object:
    raise ExecutionError(display_string(value))


# Functions with arguments


def _func_map(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    """Apply a subquery to each element, dropping elements with no result."""
    _ensure_arity(arguments, {1}, "map")
    items = _require_array(value, "map")
    return flatten_results(evaluate(arguments[0], item) for item in items)


def _func_select(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    """Filter by a condition.

    An array keeps the elements for which the condition holds. Any other
    input passes through when the condition holds, else produces no result.
    """
    _ensure_arity(arguments, {1}, "select")
    if isinstance(value, list):
        return [item for item in value if condition_holds(arguments[0], item, evaluate)]
    if condition_holds(arguments[0], value, evaluate):
        return value
    return EMPTY


def _sort_keys(
    items: list[object], key_expr: Expr, evaluate: Evaluator
) -> list[tuple[object, object]]:
    return [(to_json_value(evaluate(key_expr, item)), item) for item in items]


def _func_sort_by(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    _ensure_arity(arguments, {1}, "sort_by")
    keyed = _sort_keys(_require_array(value, "sort_by"), arguments[0], evaluate)
    ordered = sorted(keyed, key=cmp_to_key(lambda a, b: compare_order(a[0], b[0])))
    return [item for _key, item in ordered]


def _func_group_by(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    """Group elements by key value, groups in first-seen order."""
    _ensure_arity(arguments, {1}, "group_by")
    groups: list[tuple[object, list[object]]] = []
    for key, item in _sort_keys(_require_array(value, "group_by"), arguments[0], evaluate):
        for group_key, members in groups:
            if values_equal(group_key, key):
                members.append(item)
                break
        else:
            groups.append((key, [item]))
    return [members for _key, members in groups]


def _func_has(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    key = _single_argument(value, arguments, evaluate, "has")
    if isinstance(value, dict):
        return isinstance(key, str) and key in value
    if isinstance(value, list):
        return isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(value)
    return False


def _func_contains(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    needle = _single_argument(value, arguments, evaluate, "contains")
    if isinstance(value, str):
        if not isinstance(needle, str):
            raise QueryTypeError("contains on a string requires a string argument")
        return needle in value
    if isinstance(value, list):
        return any(values_equal(item, needle) for item in value)
    raise QueryTypeError(f"contains requires a string or array, got {type_name(value)}")


def _func_startswith(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    prefix = _string_argument(value, arguments, evaluate, "startswith")
    return _require_string(value, "startswith").startswith(prefix)


def _func_endswith(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    suffix = _string_argument(value, arguments, evaluate, "endswith")
    return _require_string(value, "endswith").endswith(suffix)


def _func_split(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    separator = _string_argument(value, arguments, evaluate, "split")
    text = _require_string(value, "split")
    if separator == "":
        return list(text)
    return text.split(separator)


def _func_join(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    separator = _string_argument(value, arguments, evaluate, "join")
    return separator.join(display_string(item) for item in _require_array(value, "join"))


def _compile_pattern(
    value: object, arguments: tuple[Expr, ...], evaluate: Evaluator, function_name: str
) -> re.Pattern[str]:
    """Compile the regex argument with optional jq-style flags."""
    _ensure_arity(arguments, {1, 2}, function_name)
    pattern = _argument_value(arguments[0], value, evaluate)
    if not isinstance(pattern, str):
        raise InvalidArgumentError(f"{function_name} expects a string pattern")
    flags_text = _argument_value(arguments[1], value, evaluate) if len(arguments) == 2 else ""
    if not isinstance(flags_text, str):
        raise InvalidArgumentError(f"{function_name} flags must be a string")
    flags = 0
    for flag in flags_text:
        if flag not in _REGEX_FLAGS:
            raise InvalidArgumentError(f"Unsupported regex flag: {flag}")
        flags |= _REGEX_FLAGS[flag]
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise InvalidArgumentError(f"Invalid regex: {exc}") from exc


def _func_test(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    pattern = _compile_pattern(value, arguments, evaluate, "test")
    return pattern.search(_require_string(value, "test")) is not None


def _func_match(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    """Return the first match as `{offset, length, string, captures}`, or null."""
    pattern = _compile_pattern(value, arguments, evaluate, "match")
    found = pattern.search(_require_string(value, "match"))
    if found is None:
        return None
    return {
        "offset": found.start(),
        "length": found.end() - found.start(),
        "string": found.group(0),
        "captures": [group for group in found.groups() if group is not None],
    }


def _indices(value: object, needle: object, function_name: str) -> list[int]:
    if isinstance(value, str):
        if not isinstance(needle, str) or not needle:
            raise QueryTypeError(f"{function_name} on a string requires a non-empty string")
        positions: list[int] = []
        position = value.find(needle)
        while position >= 0:
            positions.append(position)
            position = value.find(needle, position + 1)
        return positions
    if isinstance(value, list):
        return [index for index, item in enumerate(value) if values_equal(item, needle)]
    raise QueryTypeError(f"{function_name} requires a string or array, got {type_name(value)}")


def _func_indices(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    needle = _single_argument(value, arguments, evaluate, "indices")
    return _indices(value, needle, "indices")


def _func_index(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    needle = _single_argument(value, arguments, evaluate, "index")
    positions = _indices(value, needle, "index")
    return positions[0] if positions else None


def _func_rindex(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    needle = _single_argument(value, arguments, evaluate, "rindex")
    positions = _indices(value, needle, "rindex")
    return positions[-1] if positions else None


def _func_ltrimstr(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    prefix = _string_argument(value, arguments, evaluate, "ltrimstr")
    if isinstance(value, str) and value.startswith(prefix):
        return value[len(prefix) :]
    return value


def _func_rtrimstr(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    suffix = _string_argument(value, arguments, evaluate, "rtrimstr")
    if isinstance(value, str) and suffix and value.endswith(suffix):
        return value[: -len(suffix)]
    return value


def _func_flatten_depth(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    depth = _single_argument(value, arguments, evaluate, "flatten")
    if not isinstance(depth, int) or isinstance(depth, bool) or depth < 0:
        raise InvalidArgumentError("flatten depth must be a non-negative integer")
    return _flatten(_require_array(value, "flatten"), depth)


def _func_error_message(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    message = _single_argument(value, arguments, evaluate, "error")
    raise ExecutionError(display_string(message))


def _func_not_condition(value: object, arguments: tuple[Expr, ...], evaluate: Evaluator) -> object:
    _ensure_arity(arguments, {1}, "not")
    return not condition_holds(arguments[0], value, evaluate)


NO_ARG_FUNCTIONS: dict[str, NoArgFunction] = {
    "keys": _func_keys,
    "values": _func_values,
    "length": _func_length,
    "type": _func_type,
    "reverse": _func_reverse,
    "sort": _func_sort,
    "unique": _func_unique,
    "flatten": _func_flatten,
    "add": _func_add,
    "min": _func_min,
    "max": _func_max,
    "empty": _func_empty,
    "not": _func_not,
    "to_entries": _func_to_entries,
    "from_entries": _func_from_entries,
    "floor": _func_floor,
    "ceil": _func_ceil,
    "round": _func_round,
    "abs": _func_abs,
    "tostring": _func_tostring,
    "tonumber": _func_tonumber,
    "trim": _func_trim,
    "ascii_upcase": _func_ascii_upcase,
    "ascii_downcase": _func_ascii_downcase,
    "paths": _func_paths,
    "leaf_paths": _func_leaf_paths,
    "objects": _func_objects,
    "debug": _func_debug,
    "error": _func_error,
}

ARG_FUNCTIONS: dict[str, ArgFunction] = {
    "map": _func_map,
    "select": _func_select,
    "sort_by": _func_sort_by,
    "group_by": _func_group_by,
    "has": _func_has,
    "contains": _func_contains,
    "startswith": _func_startswith,
    "endswith": _func_endswith,
    "split": _func_split,
    "join": _func_join,
    "test": _func_test,
    "match": _func_match,
    "indices": _func_indices,
    "index": _func_index,
    "rindex": _func_rindex,
    "ltrimstr": _func_ltrimstr,
    "rtrimstr": _func_rtrimstr,
    "flatten": _func_flatten_depth,
    "error": _func_error_message,
    "not": _func_not_condition,
}

BUILTIN_NAMES = frozenset({*NO_ARG_FUNCTIONS, *ARG_FUNCTIONS})
