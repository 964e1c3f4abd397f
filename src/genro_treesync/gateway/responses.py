# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Backing-store replies.

A reply is a JSON object, optionally wrapped one level under the
``JSON_CODE`` envelope key::

    {"JSON_CODE": {"data": {...}, "error": "", "message": "", "id": 12}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..exceptions import TransportFailure

ENVELOPE_KEY = "JSON_CODE"


def unwrap(payload: Any) -> Any:
    """Remove the outer envelope, if present."""
    if isinstance(payload, Mapping) and ENVELOPE_KEY in payload:
        return payload[ENVELOPE_KEY]
    return payload


def is_empty(value: Any) -> bool:
    """True for None and empty containers or strings."""
    return value is None or (hasattr(value, '__len__') and len(value) == 0)


@dataclass
class SyncResponse:
    """An unwrapped reply.

    Attributes:
        data: The returned tree, or None when the reply carried nothing.
        error: Error text reported by the backing store ('' if none).
        message: Informational text.
        id: The id the reply refers to (the new id after an insert, the
            largest id for a ``max`` query).
        raw: The unwrapped reply mapping.
    """

    data: dict | None = None
    error: str = ''
    message: str = ''
    id: Any = None
    raw: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def from_payload(cls, payload: Any) -> SyncResponse:
        """Build a SyncResponse from a decoded JSON reply.

        Raises:
            TransportFailure: If the reply is not a JSON object.
        """
        body = unwrap(payload)
        if body is None:
            return cls()
        if not isinstance(body, Mapping):
            raise TransportFailure("Invalid response format", text=repr(body)[:200])
        data = body.get('data')
        return cls(
            data=None if is_empty(data) else data,
            error=body.get('error') or '',
            message=body.get('message') or '',
            id=body.get('id'),
            raw=dict(body),
        )

    def as_options(self) -> dict[str, Any]:
        """Return the reply as TreeStore.init() options (without error state)."""
        options = {k: v for k, v in self.raw.items() if k not in ('error', 'message')}
        options['data'] = self.data
        return options
