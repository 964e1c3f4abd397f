# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeStore package - In-memory mirror of a backing store.

The package is organized into:
- core: Main TreeStore class with search, insert, update, link lists, delete
- maxid: Largest-id computation and its non-numeric fallback policy
- subscription: Observer registry with disposable subscription handles

Example:
    >>> from genro_treesync import TreeStore
    >>> store = TreeStore({99: {'data': {11: {}, 12: {}}}}, type='foo')
    >>> store.next_id()
    13
"""

from .core import TreeStore
from .maxid import count_fallback
from .subscription import Subscription, SubscriptionBus

__all__ = ["TreeStore", "Subscription", "SubscriptionBus", "count_fallback"]
