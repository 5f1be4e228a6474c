"""Recursive walks over nested state/batch trees.

Both visitors build dotted paths from the keys they descend through. List
elements are visited like mapping entries keyed by their index, so a list of
objects is reachable by ``path.0.field``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any


def _children(node: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(node, Mapping):
        for key, value in node.items():
            yield str(key), value
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield str(index), value


def _is_container(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    # Only lists of objects are descended into; a list of scalars is a value.
    return isinstance(value, list) and any(isinstance(item, Mapping) for item in value)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def visit_marked(tree: Any, marker: str, emit: Callable[[str, Mapping[str, Any]], None]) -> None:
    """Call ``emit(path, node)`` for every mapping node that has a ``marker`` field.

    Given ``{"a": {"n": {1: 2}, "b": {"n": 3}}}`` and marker ``"n"``, emits
    ``("a", {...})`` and ``("a.b", {"n": 3})``. Marked nodes are still
    descended into, so an emitted path may be an ancestor of another.
    """

    def rec(node: Any, path: str) -> None:
        for key, value in _children(node):
            key_path = _join(path, key)
            if isinstance(value, Mapping) and marker in value:
                emit(key_path, value)
            if _is_container(value):
                rec(value, key_path)

    rec(tree, "")


def visit_leaves(tree: Any, emit: Callable[[str, str, Any], None]) -> None:
    """Call ``emit(path, key, value)`` for every non-container value in ``tree``.

    ``path`` is the dotted path of the mapping holding the value and ``key`` is
    the value's own key. For a nested batch this yields
    ``(metric_path, source, series)`` triples.
    """

    def rec(node: Any, path: str) -> None:
        for key, value in _children(node):
            if _is_container(value):
                rec(value, _join(path, key))
            else:
                emit(path, key, value)

    rec(tree, "")
