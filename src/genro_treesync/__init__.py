# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-TreeSync - Hierarchical document trees kept in sync with a backing store.

A TreeStore mirrors nested records from a remote JSON service or a local
embedded engine, tracks local edits, and a SyncGateway persists them and
reconciles the replies.
"""

__version__ = "0.1.0"

from .config import SyncConfig, runtime_config
from .exceptions import (
    ConfigurationError,
    ConsistencyError,
    NotFoundError,
    ServerError,
    SyncTimeoutError,
    TransportFailure,
    TreeSyncError,
    TypeMismatchError,
    ValidationError,
)
from .gateway import (
    Command,
    HttpTransport,
    LocalTransport,
    SyncGateway,
    SyncRequest,
    SyncResponse,
)
from .identifiers import NodeId
from .node import Location, NodeState
from .registry import TypeRegistry
from .store import Subscription, SubscriptionBus, TreeStore

__all__ = [
    # Core classes
    "TreeStore",
    "NodeId",
    "Location",
    "NodeState",
    # Observers
    "Subscription",
    "SubscriptionBus",
    # Synchronization
    "SyncGateway",
    "SyncRequest",
    "SyncResponse",
    "Command",
    "HttpTransport",
    "LocalTransport",
    # Registry and configuration
    "TypeRegistry",
    "SyncConfig",
    "runtime_config",
    # Exceptions
    "TreeSyncError",
    "ValidationError",
    "NotFoundError",
    "TypeMismatchError",
    "ServerError",
    "SyncTimeoutError",
    "TransportFailure",
    "ConfigurationError",
    "ConsistencyError",
]
