# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeStore - In-memory mirror of a hierarchical backing store.

This module provides the TreeStore class, which holds a nested document
tree as returned by a backing store and offers the local operations the
synchronization layer builds on: search, insert, update with dirty
tracking, link-list maintenance and delete.

Tree format:
    The tree is a mapping from id to node. A node is a dict carrying an
    optional kind marker (``head``, ``item`` or ``list``) whose value is
    the node's type, domain fields, and an optional ``data`` mapping of
    children. See :mod:`genro_treesync.node`.

Identifiers:
    Ids may be ints, numeric strings or marker-prefixed strings ('+12').
    All spellings of the same number address the same node.

Error reporting:
    Operations return None (or False) on failure and record the reason in
    ``store.error``. With ``raise_on_error=True`` the typed exception
    (ValidationError, NotFoundError, TypeMismatchError) is raised instead.

Example:
    Basic usage::

        store = TreeStore(
            {99: {'list': 'user', 'data': {11: {'user_name': 'Alice'}}}},
            type='user',
        )
        store.update({'user_name': 'Alicia'}, id=11)
        store.locate('user', 11).node['dirty']   # {'user_name'}

        store.insert({'user_name': 'Bob'}, id=99, new_id=-1)  # key 12
        store.delete(11)
"""

from __future__ import annotations

import copy
from typing import Any, Iterable, Mapping

from .. import messages
from ..config import SyncConfig, runtime_config
from ..exceptions import (
    NotFoundError,
    TreeSyncError,
    TypeMismatchError,
    ValidationError,
)
from ..gateway.responses import unwrap
from ..identifiers import NodeId, find_key
from ..logging import get_logger
from ..node import (
    DATA_KEY,
    DIRTY_KEY,
    ID_KEY_OVERRIDE,
    IS_NEW_KEY,
    KIND_HEAD,
    KINDS,
    Location,
    NAME_KEY_OVERRIDE,
    NodeState,
    PARENT_NAME,
    RESERVED_KEYS,
    children,
    declared_type,
    iter_nodes,
    link_key,
    node_kind,
    node_state,
)
from .maxid import MaxIdPolicy, count_fallback, max_id as _max_id
from .subscription import SubscriptionBus, SubscriptionMixin

log = get_logger('store')

_INIT_FLAGS = ('auto_search', 'auto_callback', 'auto_refresh')


class TreeStore(SubscriptionMixin):
    """A hierarchical document tree with optimistic-sync bookkeeping.

    Attributes:
        data: The tree (mapping id -> node), or None when empty.
        type: Default type for operations, e.g. ``'user'``.
        id: Id of the item the top level represents, if any.
        id_key: Name of the id field, default ``'<type>_id'``.
        name_key: Name of the name field, default ``'<type>_name'``.
        fields: Column allow-list sent to the backing store.
        mode: ``'local'`` or ``'remote'``.
        message: Last informational message.
        error: Last error (generic text for server errors).
        error_server: Original error text reported by the backing store.
        max: Largest id found by the last max_id()/next_id() call, or the
            id reported by the backing store for a ``max`` query.
        last_insert_id: Id of the last item inserted/updated remotely.
        last_command: Last gateway command applied to this store.
    """

    __slots__ = (
        'data', 'type', 'id', 'id_key', 'name_key', 'fields', 'mode',
        'auto_search', 'auto_callback', 'auto_refresh', 'timeout',
        'message', 'error', 'error_server', 'max', 'last_insert_id',
        'last_command', 'last_term', '_bus', '_raise_on_error', '_max_id_policy',
    )

    #: Type used when none is passed to the constructor (set by subclasses).
    default_type: str = ''

    def __init__(
        self,
        data: dict | None = None,
        type: str = '',
        id: int | str | None = None,
        id_key: str | None = None,
        name_key: str | None = None,
        *,
        fields: list[str] | None = None,
        config: SyncConfig | None = None,
        raise_on_error: bool | None = None,
        max_id_policy: MaxIdPolicy | None = None,
    ) -> None:
        """Initialize a TreeStore.

        Args:
            data: Initial tree.
            type: Default type, e.g. ``'user'``.
            id: Id of the item the top level represents. Reset to None
                (with a warning) if it is not found in ``data``.
            id_key: Id field name. Default: ``'<type>_id'``.
            name_key: Name field name. Default: ``'<type>_name'``.
            fields: Column allow-list for backing-store requests. When it
                does not contain ``id_key``, its first entry becomes the id key.
            config: Settings; defaults to the environment-derived config.
            raise_on_error: Overrides ``config.raise_on_error``.
            max_id_policy: Replaces the non-numeric key fallback of max_id().
        """
        cfg = config or runtime_config()
        self.data = data or None
        self.type = type or self.default_type
        self.id = None
        self.id_key = id_key or (f"{self.type}_id" if self.type else '')
        self.name_key = name_key or (f"{self.type}_name" if self.type else '')
        self.fields = fields
        self.mode = cfg.mode
        self.auto_search = cfg.auto_search
        self.auto_callback = cfg.auto_callback
        self.auto_refresh = cfg.auto_refresh
        self.timeout = cfg.timeout
        self.message = ''
        self.error = ''
        self.error_server = ''
        self.max = -1
        self.last_insert_id: Any = None
        self.last_command: str | None = None
        self.last_term = ''
        self._bus = SubscriptionBus(self)
        self._raise_on_error = (
            cfg.raise_on_error if raise_on_error is None else raise_on_error
        )
        self._max_id_policy = max_id_policy or count_fallback

        self._apply_fields()
        if id is not None:
            self._set_id(id)

    def __repr__(self) -> str:
        size = len(self.data) if self.data else 0
        return f"TreeStore(type={self.type!r}, id={self.id!r}, nodes={size})"

    @property
    def raise_on_error(self) -> bool:
        return self._raise_on_error

    # ==================== Helpers ====================

    def _fail(self, exc: TreeSyncError, where: str) -> None:
        """Record a failure, log it, and raise it in strict mode."""
        self.error = str(exc)
        log.error("TreeStore.%s: %s", where, exc)
        if self._raise_on_error:
            raise exc

    def _notify(self) -> None:
        if self.auto_callback:
            self.execute()

    def _tree(self, data: dict | None) -> dict | None:
        return self.data if data is None else data

    def _name_key_for(self, type_: str) -> str:
        if type_ == self.type and self.name_key:
            return self.name_key
        return f"{type_}_name"

    def _id_key_for(self, type_: str) -> str:
        if type_ == self.type and self.id_key:
            return self.id_key
        return f"{type_}_id"

    def _apply_fields(self) -> None:
        if self.fields and self.id_key not in self.fields:
            self.id_key = self.fields[0]

    def _set_id(self, raw: Any) -> None:
        node_id = NodeId.coerce(raw)
        if node_id is None or not self._holds_top_id(node_id):
            log.warning("Id %r given, but not found in data. Resetting id to None.", raw)
            self.id = None
            return
        self.id = raw

    def _holds_top_id(self, node_id: NodeId) -> bool:
        """True if the id is a root key or a key under the first root node."""
        if not self.data:
            return False
        if find_key(self.data, node_id) is not None:
            return True
        first = next(iter(self.data.values()), None)
        return find_key(children(first), node_id) is not None

    # ==================== Search ====================

    def _search_id(
        self,
        level: dict,
        type_: str,
        node_id: NodeId,
        inherited: str | None,
        name_key: str,
        parent: dict | None,
        mismatches: list,
    ) -> Location | None:
        key = find_key(level, node_id)
        if key is not None and isinstance(level[key], dict):
            node = level[key]
            resolved = declared_type(node) or inherited
            if resolved == type_ or (resolved is None and name_key in node):
                return Location(level, key, parent)
            mismatches.append(key)
        for _key, node in iter_nodes(level):
            sub = children(node)
            if not sub:
                continue
            resolved = declared_type(node) or inherited
            sub_name_key = name_key
            if resolved == type_ and node.get(NAME_KEY_OVERRIDE):
                sub_name_key = node[NAME_KEY_OVERRIDE]
            found = self._search_id(
                sub, type_, node_id, resolved, sub_name_key, node, mismatches
            )
            if found is not None:
                return found
        return None

    def _search_type(
        self,
        level: dict,
        type_: str,
        inherited: str | None,
        name_key: str,
        parent: dict | None,
        want_parent: bool,
    ) -> list[dict] | dict | None:
        matches = []
        for _key, node in iter_nodes(level):
            resolved = declared_type(node) or inherited
            if resolved == type_ or (resolved is None and name_key in node):
                if node_kind(node) != KIND_HEAD:
                    matches.append(node)
        if matches:
            if want_parent:
                return parent if parent is not None else level
            return matches
        for _key, node in iter_nodes(level):
            sub = children(node)
            if not sub:
                continue
            resolved = declared_type(node) or inherited
            found = self._search_type(sub, type_, resolved, name_key, node, want_parent)
            if found:
                return found
        return None

    def _find(
        self,
        tree: dict | None,
        type_: str,
        id: Any,
        inherited: str | None = None,
        mismatches: list | None = None,
    ) -> Location | None:
        """Silent id search used by the operations themselves."""
        if not tree:
            return None
        node_id = NodeId.coerce(id)
        if node_id is None:
            return None
        return self._search_id(
            tree, type_, node_id,
            inherited if inherited is not None else (self.type or None),
            self._name_key_for(type_), None,
            mismatches if mismatches is not None else [],
        )

    def _require(self, tree: dict | None, type_: str, id: Any) -> Location:
        """Locate ``(type_, id)`` or raise NotFoundError/TypeMismatchError."""
        mismatches: list = []
        found = self._find(tree, type_, id, mismatches=mismatches)
        if found is not None:
            return found
        if mismatches:
            raise TypeMismatchError(messages.TYPE_MISMATCH.format(type=type_, id=id))
        raise NotFoundError(messages.ITEM_NOT_FOUND.format(type=type_, id=id))

    def _check_args(self, type_: str, id: Any, *, id_required: bool = True) -> None:
        if not type_:
            raise ValidationError(messages.TYPE_MISSING)
        if id is None:
            if id_required:
                raise ValidationError(messages.ID_MISSING)
            return
        NodeId.parse(id)

    def locate(
        self,
        type: str | None = None,
        id: Any = None,
        data: dict | None = None,
    ) -> Location | None:
        """Find where the node ``(type, id)`` lives.

        Depth-first, key-order traversal; the first match wins.

        Returns:
            A Location, or None if not found or on error.

        Raises:
            NotFoundError: Not found, in strict mode only.
            TypeMismatchError: The id exists only with another type tag,
                in strict mode only.
        """
        type_ = type or self.type
        try:
            self._check_args(type_, id)
            return self._require(self._tree(data), type_, id)
        except TypeMismatchError as exc:
            return self._fail(exc, 'locate')
        except NotFoundError:
            if self._raise_on_error:
                raise
            return None
        except ValidationError as exc:
            return self._fail(exc, 'locate')

    def search(
        self,
        type: str | None = None,
        id: Any = None,
        parent: bool = False,
        data: dict | None = None,
    ) -> Any:
        """Search the tree by id, or by type when ``id`` is None.

        Args:
            type: Type to search for. Default: the store's type.
            id: Id to search for. If None, performs a type search.
            parent: Return the parent container instead of the match.
            data: Tree to search. Default: the store's data.

        Returns:
            Id search: the children mapping holding the node (so that
            ``result[id]`` is the node), or with ``parent=True`` the node
            owning that mapping (the root mapping at top level).
            Type search: the matching non-header nodes of the first level
            where any occur, or with ``parent=True`` their container.
            None if nothing is found or on error.

        Example:
            >>> store = TreeStore({99: {'list': 'foo'}}, type='foo')
            >>> store.search('foo', '99')
            {99: {'list': 'foo'}}
        """
        tree = self._tree(data)
        type_ = type or self.type
        if not type_:
            return self._fail(ValidationError(messages.TYPE_MISSING), 'search')
        if not tree:
            return None
        if id is None:
            return self._search_type(
                tree, type_, self.type or None,
                self._name_key_for(type_), None, parent,
            )
        location = self.locate(type_, id, data=tree)
        if location is None:
            return None
        return location.container if parent else location.level

    # ==================== Max id ====================

    def max_id(self, type: str | None = None, data: dict | None = None) -> int:
        """Return the largest id of ``type`` in the tree, or -1.

        If any node key is non-numeric the configured fallback policy
        decides the result (default: root entry count minus one).

        An empty tree has no maximum and gives -1, not 0, so that -1
        always means "no id"; next_id() still starts an empty tree at 0.
        """
        type_ = type or self.type
        if not type_:
            return -1
        self.max = _max_id(
            self._tree(data), type_,
            inherited=self.type or None,
            name_key=self._name_key_for(type_),
            policy=self._max_id_policy,
        )
        return self.max

    def next_id(self, type: str | None = None, data: dict | None = None) -> int:
        """Return the next free id of ``type``.

        Returns:
            ``max_id + 1``; 0 for an empty tree; -1 if no id of the type
            exists in a non-empty tree.
        """
        tree = self._tree(data)
        if not tree:
            self.max = -1
            return 0
        largest = self.max_id(type, tree)
        return largest + 1 if largest >= 0 else -1

    # ==================== Insert ====================

    def _resolve_new_id(self, new_id: Any, type_: str, tree: dict) -> Any:
        if isinstance(new_id, int) and not isinstance(new_id, bool) and new_id < 0:
            generated = self.next_id(type_, tree)
            if generated < 0:
                raise ValidationError(messages.NEW_ID_NOT_FOUND.format(type=type_))
            return generated
        NodeId.parse(new_id)
        return new_id

    def _insert(
        self,
        payload: Mapping[str, Any] | None,
        type_: str,
        id: Any,
        new_id: Any,
        data: dict | None,
    ) -> dict:
        self._check_args(type_, id, id_required=False)
        if not payload:
            raise ValidationError(messages.NOTHING_TO_INSERT)
        tree = self._tree(data)
        fresh = tree is None
        if fresh:
            tree = {}
        owner = self._require(tree, type_, id).node if id is not None else None
        key = self._resolve_new_id(new_id, type_, tree) if new_id is not None else None
        # nothing is written before this point
        target = tree if owner is None else owner.setdefault(DATA_KEY, {})
        if key is not None:
            existing = find_key(target, key)
            target = target.setdefault(key if existing is None else existing, {})
        target.update(payload)
        if fresh:
            self.data = tree
        return target

    def insert(
        self,
        payload: Mapping[str, Any] | None,
        type: str | None = None,
        id: Any = None,
        new_id: Any = None,
        data: dict | None = None,
    ) -> dict | None:
        """Insert ``payload`` at a place given by ``type``, ``id`` and ``new_id``.

        Addressing modes:
            - no id, no new_id: the tree itself is merged with payload
            - no id, new_id: ``tree[new_id]`` is created/merged with payload
            - id, no new_id: the children mapping of node ``id`` is merged
              with payload
            - id, new_id: node ``id`` gets a child ``new_id`` holding payload

        A negative ``new_id`` is replaced by next_id(type). Existing data at
        the insertion point is overwritten.

        Returns:
            The mapping or node where payload was merged, or None on error
            (the tree is left unchanged).

        Example:
            >>> store.insert({'user_name': 'Bob'}, type='user', id=99, new_id=-1)
            {'user_name': 'Bob'}
        """
        try:
            return self._insert(payload, type or self.type, id, new_id, data)
        except TreeSyncError as exc:
            return self._fail(exc, 'insert')
        finally:
            self._notify()

    def insert_header(
        self,
        header: str | None,
        type: str | None = None,
        data: dict | None = None,
    ) -> dict | None:
        """Wrap the tree in a header node stored at key 0.

        The header node is ``{'head': type, '<type>_name': header,
        'data': <previous tree>}``. When ``data`` is given, that mapping is
        rewritten in place.

        Returns:
            The header node, or None if ``header`` is None or on error.
        """
        type_ = type or self.type
        if header is None:
            return None
        if not type_:
            return self._fail(ValidationError(messages.TYPE_MISSING), 'insert_header')
        tree = self._tree(data)
        header_node = {
            KIND_HEAD: type_,
            self._name_key_for(type_): header,
            DATA_KEY: dict(tree) if tree else {},
        }
        if data is None:
            self.data = {0: header_node}
        else:
            data.clear()
            data[0] = header_node
        self._notify()
        return header_node

    # ==================== Update ====================

    def _update(
        self,
        patch: Mapping[str, Any] | None,
        id: Any,
        type_: str,
        data: dict | None,
    ) -> dict:
        self._check_args(type_, id)
        if patch is None:
            raise ValidationError(messages.NOTHING_TO_UPDATE)
        tree = self._tree(data)
        if not tree:
            raise ValidationError(messages.DATA_MISSING)
        node = self._require(tree, type_, id).node
        dirty = set(node.get(DIRTY_KEY) or ())
        for field, value in patch.items():
            if field in RESERVED_KEYS:
                continue
            if field in node and node[field] == value:
                continue
            node[field] = value
            if field != PARENT_NAME:
                dirty.add(field)
        if dirty:
            node[DIRTY_KEY] = dirty
        else:
            node.pop(DIRTY_KEY, None)
        return node

    def update(
        self,
        patch: Mapping[str, Any] | None,
        id: Any,
        type: str | None = None,
        data: dict | None = None,
    ) -> dict | None:
        """Apply ``patch`` to the node ``(type, id)`` and track changed fields.

        Every field whose value differs from the current one is assigned
        and added to the node's ``dirty`` set (``parent_name`` excepted).
        ``dirty`` is removed when nothing is pending.

        Returns:
            The updated node, or None on error.
        """
        try:
            return self._update(patch, id, type or self.type, data)
        except TreeSyncError as exc:
            return self._fail(exc, 'update')
        finally:
            self._notify()

    # ==================== Delete ====================

    def _delete(self, id: Any, type_: str, data: dict | None) -> dict | None:
        self._check_args(type_, id)
        location = self._find(self._tree(data), type_, id)
        if location is None:
            self.message = messages.ITEM_NOT_FOUND.format(type=type_, id=id)
            return None
        del location.level[location.key]
        return location.level

    def delete(
        self,
        id: Any,
        type: str | None = None,
        data: dict | None = None,
    ) -> dict | None:
        """Remove the node ``(type, id)`` and its subtree.

        Deleting an absent id is a no-op.

        Returns:
            The mapping the node was removed from, or None if it was absent.
        """
        try:
            return self._delete(id, type or self.type, data)
        except ValidationError as exc:
            return self._fail(exc, 'delete')
        finally:
            self._notify()

    # ==================== Link lists ====================

    def _unlink(
        self, tree: dict, owner: dict, link_type: str, ids: Iterable[Any]
    ) -> None:
        """Delete each ``link_type`` item from the tree, wherever it lives."""
        for link_id in ids:
            found = self._find(tree, link_type, link_id)
            if found is None:
                text = messages.LINK_NOT_REMOVED.format(type=link_type, id=link_id)
                self.message = text
                log.warning("TreeStore.update_link_list: %s", text)
                continue
            del found.level[found.key]
        lkey = link_key(link_type)
        link_node = owner.get(lkey)
        if link_node is not None and not children(link_node):
            del owner[lkey]

    def _link(
        self,
        tree: dict,
        owner: dict,
        link_type: str,
        ids: Iterable[Any],
        source: dict | None,
        inherited: str | None,
        name_key: str | None,
    ) -> None:
        lkey = link_key(link_type)
        for link_id in ids:
            if self._find(tree, link_type, link_id) is not None:
                continue
            found = self._find(source, link_type, link_id, inherited=inherited)
            if found is None:
                text = messages.LINK_NOT_ADDED.format(type=link_type, id=link_id)
                self.message = text
                log.warning("TreeStore.update_link_list: %s", text)
                continue
            link_node = owner.get(lkey)
            if link_node is None:
                link_node = owner[lkey] = {
                    KIND_HEAD: link_type,
                    name_key or f"{link_type}_name": f"{link_type}s",
                    DATA_KEY: {},
                }
            link_node.setdefault(DATA_KEY, {})[found.key] = copy.deepcopy(found.node)

    def _update_link_list(
        self,
        link_type: str | None,
        id: Any,
        type_: str,
        select: Iterable[Any],
        unselect: Iterable[Any],
        new_data: dict | None,
        link_id: Any,
        name_key: str | None,
        data: dict | None,
    ) -> bool:
        if not link_type:
            raise ValidationError(messages.LINK_TYPE_MISSING)
        self._check_args(type_, id, id_required=False)
        select = list(select or ())
        unselect = list(unselect or ())
        if not select and not unselect and link_id is None:
            raise ValidationError(messages.LINK_ITEMS_MISSING)
        tree = self._tree(data)
        if tree is None:
            if id is not None:
                raise ValidationError(messages.DATA_MISSING)
            tree = {}
        if id is None:
            owner = tree
        else:
            owner = self._require(tree, type_, id).node.setdefault(DATA_KEY, {})
        if link_id is not None:
            self._unlink(tree, owner, link_type, [link_id])
            return True
        self._unlink(tree, owner, link_type, unselect)
        if new_data is not None:
            self._link(tree, owner, link_type, select, new_data, link_type, name_key)
        else:
            self._link(tree, owner, link_type, select, tree, None, name_key)
        if data is None and self.data is None and tree:
            self.data = tree
        return True

    def update_link_list(
        self,
        link_type: str | None,
        id: Any = None,
        type: str | None = None,
        select: Iterable[Any] = (),
        unselect: Iterable[Any] = (),
        new_data: dict | None = None,
        link_id: Any = None,
        name_key: str | None = None,
        data: dict | None = None,
    ) -> bool:
        """Maintain the ``link-<link_type>`` list under the node ``(type, id)``.

        Items of ``link_type`` with ids in ``unselect`` are deleted from the
        tree first, wherever they are. Then ids in ``select`` not present
        in the tree are copied from ``new_data`` (or from the tree) into
        the owner's link list, which is created on demand. An emptied link
        list is removed. Misses are logged as warnings and do not fail the
        operation.

        Args:
            link_type: Type of the linked items, e.g. ``'event'``.
            id: Owner node id. None links at the top level.
            type: Owner node type. Default: the store's type.
            select: Ids to link.
            unselect: Ids to unlink.
            new_data: Where to find items to link. Default: the tree.
            link_id: If given, only this id is unlinked.
            name_key: Name field for a newly created link pseudo-node.
            data: Tree to operate on. Default: the store's data.

        Returns:
            True on success, False on error.

        Example:
            >>> store.update_link_list('event', id=11, select=[4],
            ...                        new_data={4: {'event_name': 'Gig'}})
            True
        """
        try:
            return self._update_link_list(
                link_type, id, type or self.type, select, unselect,
                new_data, link_id, name_key, data,
            )
        except TreeSyncError as exc:
            self._fail(exc, 'update_link_list')
            return False
        finally:
            self._notify()

    # ==================== Sync bookkeeping ====================

    def mark_new(self, id: Any, type: str | None = None) -> dict | None:
        """Flag the node ``(type, id)`` as never persisted."""
        location = self.locate(type, id)
        if location is None:
            return None
        location.node[IS_NEW_KEY] = True
        return location.node

    def node_state(self, id: Any, type: str | None = None) -> NodeState | None:
        """Return the NodeState of ``(type, id)``, or None if not found."""
        location = self.locate(type, id)
        return None if location is None else node_state(location.node)

    def reconcile(
        self,
        id: Any,
        server_id: Any = None,
        type: str | None = None,
        data: dict | None = None,
    ) -> dict | None:
        """Commit a successful write of the node ``(type, id)``.

        The ``is_new`` and ``dirty`` markers are cleared. When
        ``server_id`` differs from ``id`` the node moves to the server key
        within its level, and its id field, if it has one, is set to
        ``server_id``.

        Returns:
            The node, or None if it was not found.
        """
        type_ = type or self.type
        location = self.locate(type_, id, data=data)
        if location is None:
            return None
        node = location.node
        node.pop(IS_NEW_KEY, None)
        node.pop(DIRTY_KEY, None)
        if server_id is None or server_id in KINDS:
            return node
        parsed = NodeId.coerce(server_id)
        if parsed is None or parsed == NodeId.coerce(id):
            return node
        level = location.level
        occupied = find_key(level, parsed)
        if occupied is not None:
            del level[occupied]
        new_key = parsed.value if parsed.is_numeric and not parsed.ordered else server_id
        level[new_key] = level.pop(location.key)
        id_field = node.get(ID_KEY_OVERRIDE) or self._id_key_for(type_)
        if id_field in node:
            node[id_field] = server_id
        return node

    # ==================== State ====================

    def snapshot(self) -> dict | None:
        """Return a deep copy of the tree for observers needing a stable view."""
        return copy.deepcopy(self.data)

    def init(self, options: Mapping[str, Any] | None) -> TreeStore | None:
        """Merge store state from ``options``, e.g. a backing-store reply.

        An outer envelope is unwrapped first. ``data`` is replaced only if
        present in ``options`` (or after a search, where a missing ``data``
        means no result). An incoming ``error`` is kept in ``error_server``
        and reported as a generic server error in remote mode.

        Returns:
            The store, or None if ``options`` is None.
        """
        if options is None:
            return self._fail(ValidationError(messages.OPTIONS_MISSING), 'init')
        options = unwrap(options)
        if not isinstance(options, Mapping):
            return self._fail(ValidationError(messages.OPTIONS_MISSING), 'init')

        if DATA_KEY in options or self.last_command == 'search':
            self.data = options.get(DATA_KEY) or None
        if options.get('type') and options['type'] != self.type:
            self.type = options['type']
            self.id_key = f"{self.type}_id"
            self.name_key = f"{self.type}_name"
        if options.get('id_key'):
            self.id_key = options['id_key']
        if options.get('name_key'):
            self.name_key = options['name_key']
        if 'fields' in options:
            self.fields = options['fields']
        for flag in _INIT_FLAGS:
            if flag in options:
                setattr(self, flag, bool(options[flag]))
        if 'message' in options:
            self.message = options['message'] or ''
            if self.message:
                log.info("TreeStore.init: %s", self.message)
        if 'error_server' in options:
            self.error_server = options['error_server'] or ''
        if 'error' in options:
            error = options['error'] or ''
            if error and self.mode == 'remote':
                self.error_server = error
                self.error = messages.SERVER_ERROR
            else:
                self.error = error
        self._apply_fields()
        if options.get('id') is not None:
            self._set_id(options['id'])
        return self
