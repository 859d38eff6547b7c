"""Write-time path resolution: single-location assignment and deletion."""

from __future__ import annotations

from collections.abc import Sequence

from treeq.query_language.errors import KeyNotFoundError, QueryTypeError
from treeq.query_language.paths import Field, Index, PathSegment, list_position
from treeq.query_language.values import type_name


def assign_path(
    document: object,
    segments: Sequence[PathSegment],
    new_value: object,
    *,
    create_missing: bool = True,
) -> object:
    """Overwrite the location named by segments with new_value.

    Containers are modified in place and the (possibly replaced) root is
    returned. With create_missing, absent keys and null intermediates are
    filled with empty objects or arrays and an index equal to the array
    length appends.

    Raises:
        KeyNotFoundError: When an intermediate key is absent and not created
        IndexOutOfBoundsError: When an index falls outside its array
        QueryTypeError: When a segment does not fit the container it meets
    """
    if not segments:
        return new_value
    root = document
    if root is None and create_missing:
        root = _empty_container(segments[0])
    container = root
    for position, segment in enumerate(segments[:-1]):
        upcoming = segments[position + 1]
        container = _child_for_write(container, segment, upcoming, create_missing)
    _store(container, segments[-1], new_value, create_missing)
    return root


def delete_path(document: object, segments: Sequence[PathSegment]) -> object:
    """Remove the location named by segments, returning the modified root.

    A missing final key is ignored; array removal shifts later elements.
    """
    if not segments:
        return None
    container = document
    for segment in segments[:-1]:
        container = _child_for_write(container, segment, None, create_missing=False)
    last = segments[-1]
    if isinstance(last, Field):
        _require_kind(container, dict, last)
        container.pop(last.name, None)  # type: ignore[union-attr]
    elif isinstance(last, Index):
        _require_kind(container, list, last)
        del container[list_position(container, last.index)]  # type: ignore[arg-type]
    else:
        raise QueryTypeError(f"Cannot delete through {type(last).__name__} segment")
    return document


def _empty_container(segment: PathSegment) -> object:
    return [] if isinstance(segment, Index) else {}


def _require_kind(container: object, kind: type, segment: PathSegment) -> None:
    if isinstance(container, kind) and not isinstance(container, bool):
        return
    if isinstance(segment, Field):
        raise QueryTypeError(f'Cannot index {type_name(container)} with "{segment.name}"')
    raise QueryTypeError(f"Cannot index {type_name(container)} with number")


def _child_for_write(
    container: object,
    segment: PathSegment,
    upcoming: PathSegment | None,
    create_missing: bool,
) -> object:
    """Step into container, creating the child when allowed."""
    if isinstance(segment, Field):
        _require_kind(container, dict, segment)
        assert isinstance(container, dict)
        child = container.get(segment.name)
        if segment.name not in container and not create_missing:
            raise KeyNotFoundError(segment.name)
        if child is None and create_missing and upcoming is not None:
            child = container[segment.name] = _empty_container(upcoming)
        return child
    if isinstance(segment, Index):
        _require_kind(container, list, segment)
        assert isinstance(container, list)
        if create_missing and upcoming is not None and segment.index == len(container):
            container.append(_empty_container(upcoming))
        position = list_position(container, segment.index)
        child = container[position]
        if child is None and create_missing and upcoming is not None:
            child = container[position] = _empty_container(upcoming)
        return child
    raise QueryTypeError(f"Cannot write through {type(segment).__name__} segment")


def _store(container: object, segment: PathSegment, new_value: object, create_missing: bool) -> None:
    if isinstance(segment, Field):
        _require_kind(container, dict, segment)
        assert isinstance(container, dict)
        container[segment.name] = new_value
        return
    if isinstance(segment, Index):
        _require_kind(container, list, segment)
        assert isinstance(container, list)
        if create_missing and segment.index == len(container):
            container.append(new_value)
            return
        container[list_position(container, segment.index)] = new_value
        return
    raise QueryTypeError(f"Cannot write through {type(segment).__name__} segment")
