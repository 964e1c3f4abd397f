# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Largest-id computation for a type.

A node contributes its key when:
    - its kind marker names the type, or
    - it has no marker and either carries the type's name field, or has no
      children and inherits the type from its nearest tagged ancestor.

Untagged containers are lists, and their keys are not item ids. Link
pseudo-nodes are not items either, but the items under them are scanned.

As soon as a non-numeric node key is met anywhere in the tree the numeric
maximum is abandoned and the result comes from a fallback policy applied
to the root level.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from ..identifiers import is_numeric_key, numeric_value
from ..node import children, declared_type, is_link_key, iter_nodes

MaxIdPolicy = Callable[[Mapping[Any, Any]], int]


def count_fallback(root: Mapping[Any, Any]) -> int:
    """Default policy: number of root entries minus one.

    Only yields a free id for purely sequential trees.
    """
    return len(root) - 1


class _NonNumeric:
    __slots__ = ()


_NON_NUMERIC = _NonNumeric()


def _scan(
    level: Mapping[Any, Any],
    type_: str,
    inherited: str | None,
    name_key: str,
) -> int | _NonNumeric:
    nodes = list(iter_nodes(level))
    for key, _node in nodes:
        if not is_numeric_key(key) and not is_link_key(key):
            return _NON_NUMERIC

    best = -1
    for key, node in nodes:
        own = declared_type(node)
        resolved = own or inherited
        sub = children(node)
        if own is not None:
            counts = own == type_
        else:
            counts = name_key in node or (not sub and resolved == type_)
        if counts and not is_link_key(key):
            best = max(best, numeric_value(key))
        if sub:
            found = _scan(sub, type_, resolved, name_key)
            if isinstance(found, _NonNumeric):
                return found
            best = max(best, found)
    return best


def max_id(
    root: Mapping[Any, Any] | None,
    type_: str,
    *,
    inherited: str | None = None,
    name_key: str | None = None,
    policy: MaxIdPolicy = count_fallback,
) -> int:
    """Return the largest id of ``type_`` in ``root``, or -1 if there is none.

    Args:
        root: The tree to scan.
        type_: The type whose ids are considered.
        inherited: Type assumed for untagged top-level nodes.
        name_key: Name field identifying untagged nodes of ``type_``.
            Defaults to ``'<type>_name'``.
        policy: Called with ``root`` when a non-numeric key is found.
    """
    if not root or not type_:
        return -1
    found = _scan(root, type_, inherited, name_key or f"{type_}_name")
    if isinstance(found, _NonNumeric):
        return policy(root)
    return found


def next_id(
    root: Mapping[Any, Any] | None,
    type_: str,
    **kwargs: Any,
) -> int:
    """Return ``max_id + 1``; 0 for an empty tree, -1 if no id was found."""
    if not root:
        return 0
    largest = max_id(root, type_, **kwargs)
    if largest < 0:
        return -1
    return largest + 1
