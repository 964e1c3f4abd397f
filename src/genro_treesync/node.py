# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tree node conventions.

A tree is a mapping from id to node, and a node is a plain dict:

    {
        'list': 'user',              # kind marker, value is the type tag
        'user_name': 'Staff',        # domain fields
        'data': {                    # children mapping
            11: {'user_name': 'Alice', 'dirty': {'user_name'}},
            12: {'user_name': 'Bob', 'is_new': True},
        },
    }

The kind marker is one of ``head`` (group header), ``item`` (single
record) or ``list`` (collection). A node without a marker inherits the
type of its nearest tagged ancestor.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, Mapping

KIND_HEAD = 'head'
KIND_ITEM = 'item'
KIND_LIST = 'list'
KINDS = (KIND_HEAD, KIND_ITEM, KIND_LIST)

DATA_KEY = 'data'
DIRTY_KEY = 'dirty'
IS_NEW_KEY = 'is_new'
ID_KEY_OVERRIDE = 'id_key'
NAME_KEY_OVERRIDE = 'name_key'
GROUPING_PREFIX = 'grouping'
LINK_PREFIX = 'link-'
PARENT_NAME = 'parent_name'

RESERVED_KEYS = frozenset(
    KINDS + (DATA_KEY, DIRTY_KEY, IS_NEW_KEY, ID_KEY_OVERRIDE, NAME_KEY_OVERRIDE)
)


class NodeState(str, Enum):
    """Synchronization state of a node, as derived from its markers."""

    CLEAN = 'clean'
    DIRTY = 'dirty'
    NEW = 'new'


def link_key(link_type: str) -> str:
    """Return the key of the link pseudo-node for ``link_type``."""
    return f"{LINK_PREFIX}{link_type}"


def is_link_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(LINK_PREFIX)


def is_node_key(key: Any) -> bool:
    """False for level keys that never denote a node (kind markers, grouping)."""
    if isinstance(key, str):
        return key not in KINDS and not key.startswith(GROUPING_PREFIX)
    return True


def declared_type(node: Any) -> str | None:
    """Return the type tag a node declares through its kind marker."""
    if not isinstance(node, dict):
        return None
    for kind in (KIND_LIST, KIND_ITEM, KIND_HEAD):
        tag = node.get(kind)
        if tag:
            return tag
    return None


def node_kind(node: Mapping[str, Any]) -> str:
    """Return the kind of a node: explicit marker first, else inferred.

    An untagged node holding children is a ``list``; any other untagged
    node is an ``item``.
    """
    for kind in (KIND_LIST, KIND_ITEM, KIND_HEAD):
        if node.get(kind):
            return kind
    return KIND_LIST if node.get(DATA_KEY) else KIND_ITEM


def children(node: Any) -> dict | None:
    """Return the children mapping of a node, or None."""
    if isinstance(node, dict):
        sub = node.get(DATA_KEY)
        if isinstance(sub, dict):
            return sub
    return None


def fields(node: Mapping[str, Any]) -> dict[str, Any]:
    """Return the domain fields of a node (bookkeeping keys stripped)."""
    return {k: v for k, v in node.items() if k not in RESERVED_KEYS}


def node_state(node: Mapping[str, Any]) -> NodeState:
    if node.get(IS_NEW_KEY):
        return NodeState.NEW
    if node.get(DIRTY_KEY):
        return NodeState.DIRTY
    return NodeState.CLEAN


def iter_nodes(level: Mapping[Any, Any]) -> Iterator[tuple[Any, dict]]:
    """Yield (key, node) pairs of a level, skipping non-node entries.

    Iterates over a copy of the items so the level may be mutated by the
    consumer.
    """
    for key, node in list(level.items()):
        if isinstance(node, dict) and is_node_key(key):
            yield key, node


class Location:
    """Where an id was found in a tree.

    Attributes:
        level: The children mapping holding the node.
        key: The key actually used in ``level`` (plain or marker-prefixed).
        parent: The node owning ``level``, or None when ``level`` is the root.

    Example:
        >>> tree = {99: {'list': 'bar', 'data': {11: {'list': 'foo'}}}}
        >>> loc = Location(tree[99]['data'], 11, tree[99])
        >>> loc.node
        {'list': 'foo'}
    """

    __slots__ = ('level', 'key', 'parent')

    def __init__(self, level: dict, key: Any, parent: dict | None = None) -> None:
        self.level = level
        self.key = key
        self.parent = parent

    def __repr__(self) -> str:
        return f"Location(key={self.key!r}, node={self.level.get(self.key)!r})"

    @property
    def node(self) -> dict:
        """The located node.

        Raises:
            KeyError: If the node has been removed since it was located.
        """
        return self.level[self.key]

    @property
    def container(self) -> dict:
        """The parent node, or the root level when there is none."""
        return self.parent if self.parent is not None else self.level
