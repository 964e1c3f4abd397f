# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Backing-store request descriptors.

A SyncRequest is transport independent: LocalTransport hands it to the
embedded engine as is, HttpTransport flattens it with to_params() into the
query string the remote data service reads.

Example:
    >>> req = SyncRequest(Command.DELETE, 'user', {'id': 12, 'del': 'user'})
    >>> req.to_params()
    [('echo', 'y'), ('type', 'user'), ('cmd', 'del'), ('user_id', '12'), ('del', 'user')]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping
from urllib.parse import urlencode

from ..identifiers import NodeId


class Command(str, Enum):
    SEARCH = 'search'
    INSERT = 'insert'
    UPDATE = 'update'
    DELETE = 'delete'
    UPDATE_LINK_LIST = 'update-link-list'


_COMMAND_CODES = {
    Command.INSERT: 'ins',
    Command.UPDATE: 'upd',
    Command.UPDATE_LINK_LIST: 'upd',
    Command.DELETE: 'del',
}

#: Value of the id parameter asking for the next free id.
MAX_SENTINEL = 'max'


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, NodeId):
        return value.wire()
    if isinstance(value, (list, tuple, set, frozenset)):
        return ','.join(_scalar(v) for v in value)
    return str(value)


def encode_body(value: Any, prefix: str = '') -> Iterator[tuple[str, str]]:
    """Flatten nested data the way jQuery ``$.param`` does.

    Example:
        >>> list(encode_body({'fields': ['a', 'b'], 'x': {'y': 1}}))
        [('fields[]', 'a'), ('fields[]', 'b'), ('x[y]', '1')]
    """
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from encode_body(item, f"{prefix}[{key}]" if prefix else str(key))
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        for index, item in enumerate(items):
            if isinstance(item, (Mapping, list, tuple)):
                yield from encode_body(item, f"{prefix}[{index}]")
            else:
                yield from encode_body(item, f"{prefix}[]")
    elif value is None:
        yield prefix, ''
    else:
        yield prefix, _scalar(value)


@dataclass
class SyncRequest:
    """What to ask the backing store.

    Attributes:
        command: The operation.
        type: The item type addressed.
        params: Directives, keyed by their wire name. The ``id`` entry is
            sent as ``<type>_id``. None values are not sent.
        body: Item fields (insert/update) or the ``fields`` allow-list.
    """

    command: Command
    type: str
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None

    @property
    def id_key(self) -> str:
        return f"{self.type}_id"

    @property
    def id(self) -> Any:
        return self.params.get('id')

    def to_params(self) -> list[tuple[str, str]]:
        """Return the flat (name, value) query pairs."""
        pairs = [('echo', 'y'), ('type', self.type)]
        code = _COMMAND_CODES.get(self.command)
        if code:
            pairs.append(('cmd', code))
        for name, value in self.params.items():
            if value is None:
                continue
            pairs.append((self.id_key if name == 'id' else name, _scalar(value)))
        if self.body:
            pairs.extend(encode_body(self.body))
        return pairs

    def query_string(self) -> str:
        return urlencode(self.to_params())
