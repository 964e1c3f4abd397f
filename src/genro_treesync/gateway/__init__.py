# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Gateway package - Synchronization with a backing store.

- core: SyncGateway with search, update, update_link_list, delete
- requests: SyncRequest descriptor and query encoding
- responses: Envelope unwrapping and SyncResponse
- transports: HttpTransport (httpx) and LocalTransport (embedded engine)
"""

from .core import SyncGateway
from .requests import Command, SyncRequest
from .responses import ENVELOPE_KEY, SyncResponse, unwrap
from .transports import HttpTransport, LocalTransport

__all__ = [
    "SyncGateway",
    "Command",
    "SyncRequest",
    "SyncResponse",
    "ENVELOPE_KEY",
    "unwrap",
    "HttpTransport",
    "LocalTransport",
]
