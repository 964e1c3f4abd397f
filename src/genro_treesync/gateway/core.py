# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""SyncGateway - Persist TreeStore changes to a backing store.

The gateway turns store intents into SyncRequests, sends them through a
transport and folds the replies back into the store:

- search hydrates the store with the returned tree
- update sends new nodes whole and existing nodes as their dirty fields,
  then moves a placeholder node to the id assigned by the backing store
- update_link_list re-derives the link list from the returned tree
- delete only informs the backing store; the local node is kept

Every call ends in a success or failure handler. The default handlers
record ``message``, ``error`` and ``error_server`` on the store and notify
its observers. Caller-supplied handlers replace them and receive
``(gateway, response_or_failure, options)``.

Example:
    >>> store = TreeStore({11: {'user_name': 'Alice', 'is_new': True}}, type='user')
    >>> async with SyncGateway(store, LocalTransport(engine)) as gateway:
    ...     await gateway.update(11)
    >>> store.last_insert_id
    42
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Union

from .. import messages
from ..config import SyncConfig, runtime_config
from ..exceptions import (
    ConfigurationError,
    ConsistencyError,
    NotFoundError,
    ServerError,
    SyncTimeoutError,
    TreeSyncError,
    ValidationError,
)
from ..identifiers import NodeId
from ..logging import get_logger
from ..node import DIRTY_KEY, IS_NEW_KEY, KINDS, fields as node_fields
from .requests import MAX_SENTINEL, Command, SyncRequest
from .responses import SyncResponse
from .transports import Engine, HttpTransport, LocalTransport, Transport

if TYPE_CHECKING:
    from ..store import TreeStore

log = get_logger('gateway')

SuccessHandler = Callable[
    ['SyncGateway', SyncResponse, dict], Union[Any, Awaitable[Any]]
]
FailureHandler = Callable[
    ['SyncGateway', ServerError, dict], Union[Any, Awaitable[Any]]
]


async def _call(handler: Callable[..., Any], *args: Any) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class SyncGateway:
    """Asynchronous bridge between a TreeStore and its backing store.

    Calls are not queued: callers ``await`` each one to keep them ordered.

    Args:
        store: The store to keep in sync.
        transport: HttpTransport, LocalTransport or any object with
            ``send(request, timeout=...)`` and ``close()`` coroutines.
        config: Settings; defaults to the environment-derived config.
    """

    def __init__(
        self,
        store: TreeStore,
        transport: Transport,
        *,
        config: SyncConfig | None = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.config = config or runtime_config()

    @classmethod
    def from_config(
        cls,
        store: TreeStore,
        *,
        config: SyncConfig | None = None,
        engine: Engine | None = None,
    ) -> SyncGateway:
        """Build a gateway whose transport follows ``config.mode``.

        Raises:
            ConfigurationError: Remote mode without ``base_url``, or local
                mode without an engine.
        """
        cfg = config or runtime_config()
        if cfg.is_remote:
            if not cfg.base_url:
                raise ConfigurationError("Remote mode requires a base_url")
            transport: Transport = HttpTransport(cfg.base_url, timeout=cfg.timeout)
        else:
            if engine is None:
                raise ConfigurationError("Local mode requires an engine")
            transport = LocalTransport(engine)
        return cls(store, transport, config=cfg)

    def __repr__(self) -> str:
        return f"SyncGateway({self.store!r}, {type(self.transport).__name__})"

    async def __aenter__(self) -> SyncGateway:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the transport."""
        await self.transport.close()

    # ==================== Dispatch ====================

    def _reject(self, exc: TreeSyncError, where: str) -> bool:
        """Report a request that could not be built. Returns False."""
        self.store.error = str(exc)
        log.error("SyncGateway.%s: %s", where, exc)
        if self.store.raise_on_error:
            raise exc
        return False

    async def _dispatch(
        self,
        request: SyncRequest,
        options: dict[str, Any],
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> bool:
        store = self.store
        store.message = ''
        store.error = ''
        store.error_server = ''
        wait = options.get('timeout') or store.timeout
        log.debug("%s %s %r", request.command.value, request.type, request.params)
        try:
            payload = await asyncio.wait_for(
                self.transport.send(request, timeout=wait), wait
            )
            response = SyncResponse.from_payload(payload)
        except asyncio.TimeoutError:
            await _call(on_failure, self, SyncTimeoutError(request.command.value, wait), options)
            return True
        except ServerError as failure:
            await _call(on_failure, self, failure, options)
            return True
        await _call(on_success, self, response, options)
        return True

    def _absorb(self, response: SyncResponse, where: str) -> None:
        """Copy message and error state from a reply into the store."""
        store = self.store
        store.message = response.message
        if response.error:
            store.error_server = response.error
            store.error = messages.SERVER_ERROR
            log.error("SyncGateway.%s: %s", where, response.error)
        if store.message:
            log.info("SyncGateway.%s: %s", where, store.message)

    def _refresh(self, options: dict[str, Any]) -> None:
        if self.store.auto_refresh and options.get('auto_refresh') is not False:
            self.store.execute()

    def _type(self, type: str | None, where: str) -> str | None:
        type_ = type or self.store.type
        if not type_:
            self._reject(ValidationError(messages.TYPE_MISSING), where)
            return None
        return type_

    def _check_id(self, id: Any, where: str) -> bool:
        if id is None:
            return self._reject(ValidationError(messages.ID_ILLEGAL), where)
        try:
            NodeId.parse(id)
        except ValidationError as exc:
            return self._reject(exc, where)
        return True

    def _fields_body(self, fields_: Iterable[str] | None) -> dict[str, Any] | None:
        chosen = fields_ or self.store.fields
        return {'fields': list(chosen)} if chosen else None

    # ==================== Default handlers ====================

    def on_failure(self, gateway: SyncGateway, failure: ServerError, options: dict) -> None:
        """Default failure handler: record the failure and notify observers."""
        store = self.store
        store.error_server = failure.server_text
        store.error = messages.SERVER_ERROR
        log.error("SyncGateway: %s", failure.server_text)
        store.execute()

    def on_search(self, gateway: SyncGateway, response: SyncResponse, options: dict) -> None:
        store = self.store
        store.last_command = Command.SEARCH.value
        self._absorb(response, 'search')
        if response.data is None:
            type_ = options['type']
            if options.get('id') is not None:
                store.message = messages.NOT_FOUND_ONE.format(type=type_).capitalize()
            else:
                store.message = messages.NOT_FOUND_MANY.format(type=type_)
            log.info("SyncGateway.search: %s", store.message)
        if store.auto_search:
            store.init(response.as_options())
            self._refresh(options)

    def on_next_id(self, gateway: SyncGateway, response: SyncResponse, options: dict) -> None:
        store = self.store
        store.last_command = Command.SEARCH.value
        self._absorb(response, 'search_next_id')
        parsed = NodeId.coerce(response.id)
        store.max = parsed.value if parsed is not None and parsed.is_numeric else -1

    def on_update(self, gateway: SyncGateway, response: SyncResponse, options: dict) -> None:
        store = self.store
        store.last_command = (
            Command.INSERT.value if options.get('is_new') else Command.UPDATE.value
        )
        self._absorb(response, 'update')
        if not response.error:
            self._reconcile(response, options)
        self._refresh(options)

    def _reconcile(self, response: SyncResponse, options: dict) -> None:
        store = self.store
        client_id = options['client_id']
        server_id = response.id
        if server_id in KINDS:
            log.warning("SyncGateway.update: illegal id %r in reply", server_id)
            server_id = None
        elif server_id is not None:
            store.last_insert_id = server_id
        node = store.reconcile(client_id, server_id, options['type'], data=options['data'])
        if node is None:
            raise ConsistencyError(
                messages.SYSTEM_ERROR
                + messages.ITEM_NOT_FOUND.format(type=options['type'], id=client_id)
            )

    def on_update_link_list(
        self, gateway: SyncGateway, response: SyncResponse, options: dict
    ) -> None:
        store = self.store
        store.last_command = Command.UPDATE_LINK_LIST.value
        self._absorb(response, 'update_link_list')
        if not response.error:
            tree = options.get('data')
            store.update_link_list(
                options['link_type'],
                id=options['id'],
                type=options['type'],
                select=options['select'],
                unselect=options['unselect'],
                new_data=response.data if response.data is not None else (tree or store.data),
                link_id=options['link_id'],
                name_key=options.get('name_key'),
                data=tree,
            )
        self._refresh(options)

    def on_delete(self, gateway: SyncGateway, response: SyncResponse, options: dict) -> None:
        self.store.last_command = Command.DELETE.value
        self._absorb(response, 'delete')
        self._refresh(options)

    # ==================== Operations ====================

    async def search(
        self,
        type: str | None = None,
        id: Any = None,
        *,
        group_id: Any = None,
        link_type: str | None = None,
        header: bool | str | None = None,
        grouping: str | None = None,
        simple: bool | None = None,
        from_: int | None = None,
        num: int | None = None,
        order: str | None = None,
        direction: str | None = None,
        term: str | None = None,
        fields: Iterable[str] | None = None,
        auto_refresh: bool | None = None,
        timeout: float | None = None,
        on_success: SuccessHandler | None = None,
        on_failure: FailureHandler | None = None,
    ) -> bool:
        """Fetch one item (``id`` given) or a list of items of ``type``.

        With ``id='max'`` this is search_next_id().

        Args:
            type: Item type. Default: the store's type.
            id: Item id. None searches for a list.
            group_id: Restrict the search to a group.
            link_type: For groups, the type of items they group.
            header: Ask for a header node (True/False or header text).
            grouping: Grouping mode, e.g. ``'tabs'``.
            simple: Ask only for ids and names.
            from_: Pagination offset.
            num: Pagination size.
            order: Sort field.
            direction: ``'ASC'`` or ``'DESC'``.
            term: Full-text search term.
            fields: Column allow-list. Default: the store's ``fields``.
            auto_refresh: False suppresses observer notification.
            timeout: Seconds to wait. Default: the store's timeout.
            on_success: Replaces the default success handler.
            on_failure: Replaces the default failure handler.

        Returns:
            True if the request was sent, False otherwise.
        """
        if id == MAX_SENTINEL:
            return await self.search_next_id(
                type, fields=fields, timeout=timeout,
                on_success=on_success, on_failure=on_failure,
            )
        type_ = self._type(type, 'search')
        if type_ is None:
            return False
        if id is not None and not self._check_id(id, 'search'):
            return False
        if term:
            self.store.last_term = term
        params = {
            'id': id,
            'group_id': group_id,
            'group_type': link_type if type_ == 'group' else None,
            'header': header,
            'grouping': grouping or None,
            'simple': simple or None,
            'from': from_,
            'num': num or None,
            'order': order or None,
            'dir': direction or None,
            'term': term or None,
        }
        request = SyncRequest(Command.SEARCH, type_, params, self._fields_body(fields))
        options = {'type': type_, 'id': id, 'auto_refresh': auto_refresh, 'timeout': timeout}
        return await self._dispatch(
            request, options, on_success or self.on_search, on_failure or self.on_failure
        )

    async def search_next_id(
        self,
        type: str | None = None,
        *,
        fields: Iterable[str] | None = None,
        timeout: float | None = None,
        on_success: SuccessHandler | None = None,
        on_failure: FailureHandler | None = None,
    ) -> bool:
        """Ask the backing store for the next free id; it lands in ``store.max``."""
        type_ = self._type(type, 'search_next_id')
        if type_ is None:
            return False
        request = SyncRequest(
            Command.SEARCH, type_, {'id': MAX_SENTINEL}, self._fields_body(fields)
        )
        options = {'type': type_, 'id': MAX_SENTINEL, 'timeout': timeout}
        return await self._dispatch(
            request, options, on_success or self.on_next_id, on_failure or self.on_failure
        )

    async def update(
        self,
        id: Any,
        type: str | None = None,
        *,
        data: dict | None = None,
        is_new: bool | None = None,
        group_id: Any = None,
        auto_id: bool = False,
        link_type: str | None = None,
        link_id: Any = None,
        fields: Iterable[str] | None = None,
        auto_refresh: bool | None = None,
        timeout: float | None = None,
        on_success: SuccessHandler | None = None,
        on_failure: FailureHandler | None = None,
    ) -> bool:
        """Insert or update the node ``(type, id)`` in the backing store.

        A node flagged ``is_new`` (or ``is_new=True``) is inserted with all
        its fields; otherwise only its dirty fields are sent. On success
        the node's ``is_new`` and ``dirty`` markers are cleared and, if the
        backing store assigned another id, the node moves to that id.

        Args:
            id: Node id (a placeholder for new nodes).
            type: Node type. Default: the store's type.
            data: Tree holding the node. Default: the store's data.
            is_new: Force an insert.
            group_id: Put a new item into this group (not for groups).
            auto_id: Let the backing store assign the id.
            link_type: Type of an item to link the new item to.
            link_id: Id of an item to link the new item to.
            fields: Column allow-list. Default: the store's ``fields``.

        Returns:
            True if the request was sent. False on error, or when the node
            has nothing to send (``store.message`` says so and observers
            are notified).
        """
        store = self.store
        tree = store.data if data is None else data
        if not tree:
            return self._reject(ValidationError(messages.DATA_MISSING), 'update')
        type_ = self._type(type, 'update')
        if type_ is None or not self._check_id(id, 'update'):
            return False
        location = store.locate(type_, id, data=tree)
        if location is None:
            return self._reject(
                NotFoundError(messages.ITEM_NOT_FOUND.format(type=type_, id=id)), 'update'
            )
        node = location.node
        new = bool(is_new or node.get(IS_NEW_KEY))
        dirty = node.get(DIRTY_KEY)
        if not new and not dirty:
            store.message = messages.NOTHING_TO_UPDATE
            log.info("SyncGateway.update: %s", store.message)
            store.execute()
            return False

        if new:
            body = node_fields(node)
        else:
            body = {name: node.get(name) for name in sorted(dirty)}
        body.update(self._fields_body(fields) or {})
        params = {
            'id': id,
            'group_id': group_id if type_ != 'group' else None,
            'auto_id': '1' if auto_id else '0',
            'link_type': link_type if link_type and link_id is not None else None,
            'link_id': link_id if link_type and link_id is not None else None,
        }
        command = Command.INSERT if new else Command.UPDATE
        request = SyncRequest(command, type_, params, body)
        options = {
            'type': type_, 'id': id, 'client_id': id, 'data': tree, 'is_new': new,
            'auto_refresh': auto_refresh, 'timeout': timeout,
        }
        return await self._dispatch(
            request, options, on_success or self.on_update, on_failure or self.on_failure
        )

    async def update_link_list(
        self,
        link_type: str | None,
        id: Any = None,
        type: str | None = None,
        *,
        select: Iterable[Any] = (),
        unselect: Iterable[Any] = (),
        link_id: Any = None,
        search: bool = False,
        header: bool | str | None = None,
        grouping: str | None = None,
        name_key: str | None = None,
        data: dict | None = None,
        auto_refresh: bool | None = None,
        timeout: float | None = None,
        on_success: SuccessHandler | None = None,
        on_failure: FailureHandler | None = None,
    ) -> bool:
        """Link ``select`` and unlink ``unselect`` ids of ``link_type`` items.

        ``link_id`` alone unlinks a single item. On success the local link
        list is rebuilt from the tree returned by the backing store.

        Args:
            link_type: Type of the linked items.
            id: Owner item id. Default: the store's id.
            type: Owner item type. Default: the store's type.
            search: Ask the backing store to return the updated owner.
            header: Ask for a header node in the returned tree.
            grouping: Grouping mode of the returned tree.
            name_key: Name field for a newly created link pseudo-node.
            data: Tree holding the owner. Default: the store's data.

        Returns:
            True if the request was sent, False otherwise.
        """
        where = 'update_link_list'
        type_ = self._type(type, where)
        if type_ is None:
            return False
        if not link_type:
            return self._reject(ValidationError(messages.LINK_TYPE_MISSING), where)
        owner_id = id if id is not None else self.store.id
        if not self._check_id(owner_id, where):
            return False
        select = list(select or ())
        unselect = list(unselect or ())
        if link_id is not None:
            add, rem = None, [link_id]
        elif select or unselect:
            add, rem = select or None, unselect or None
        else:
            return self._reject(ValidationError(messages.LINK_ITEMS_MISSING), where)

        params = {
            'id': owner_id,
            'link_type': link_type,
            'add': add,
            'rem': rem,
            'sea': 'y' if search else None,
            'header': header or None,
            'grouping': grouping or None,
        }
        request = SyncRequest(Command.UPDATE_LINK_LIST, type_, params)
        options = {
            'type': type_, 'id': owner_id, 'link_type': link_type,
            'select': select, 'unselect': unselect, 'link_id': link_id,
            'name_key': name_key, 'data': data,
            'auto_refresh': auto_refresh, 'timeout': timeout,
        }
        return await self._dispatch(
            request, options,
            on_success or self.on_update_link_list, on_failure or self.on_failure,
        )

    async def delete(
        self,
        id: Any,
        type: str | None = None,
        *,
        is_new: bool = False,
        auto_refresh: bool | None = None,
        timeout: float | None = None,
        on_success: SuccessHandler | None = None,
        on_failure: FailureHandler | None = None,
    ) -> bool:
        """Delete the item ``(type, id)`` from the backing store.

        The local node is left alone; pair with TreeStore.delete(). A node
        that was never persisted (``is_new``) needs no request.

        Returns:
            True if the request was sent, False otherwise.
        """
        if is_new:
            return False
        type_ = self._type(type, 'delete')
        if type_ is None or not self._check_id(id, 'delete'):
            return False
        request = SyncRequest(Command.DELETE, type_, {'id': id, 'del': type_})
        options = {'type': type_, 'id': id, 'auto_refresh': auto_refresh, 'timeout': timeout}
        return await self._dispatch(
            request, options, on_success or self.on_delete, on_failure or self.on_failure
        )
