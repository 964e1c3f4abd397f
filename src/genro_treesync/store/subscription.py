# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Subscription system for TreeStore observers.

Observers (typically views) register a callback together with the context
they belong to. After a state-changing operation the owner calls
``execute()`` and every callback runs synchronously, in registration
order, receiving the owner and keyword parameters.

Example:
    >>> store = TreeStore({11: {'user_name': 'Alice'}}, type='user')
    >>> seen = []
    >>> handle = store.subscribe(lambda s, **kw: seen.append(kw), view, reason='init')
    >>> store.execute()
    >>> seen
    [{'reason': 'init'}]
    >>> handle.dispose()
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from .. import messages
from ..exceptions import ConfigurationError

SubscriberCallback = Callable[..., Any]


class Subscription:
    """Handle returned by SubscriptionBus.subscribe().

    Disposing the handle removes the registration. Handles can be used as
    context managers to scope a subscription to a block.
    """

    __slots__ = ('callback', 'context', 'params', '_bus')

    def __init__(
        self,
        bus: SubscriptionBus,
        callback: SubscriberCallback,
        context: Any,
        params: dict[str, Any],
    ) -> None:
        self._bus: SubscriptionBus | None = bus
        self.callback = callback
        self.context = context
        self.params = params

    def __repr__(self) -> str:
        name = getattr(self.callback, '__qualname__', repr(self.callback))
        state = 'active' if self.active else 'disposed'
        return f"Subscription({name}, {state})"

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    @property
    def active(self) -> bool:
        return self._bus is not None

    def dispose(self) -> None:
        """Remove this registration. Calling it twice is harmless."""
        if self._bus is not None:
            self._bus._discard(self)
            self._bus = None


class SubscriptionBus:
    """Ordered registry of (callback, context) pairs.

    Attributes:
        owner: The object passed as first argument to every callback.
    """

    __slots__ = ('owner', '_subscriptions')

    def __init__(self, owner: Any = None) -> None:
        self.owner = owner
        self._subscriptions: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions))

    def subscribe(
        self,
        callback: SubscriberCallback | None,
        context: Any = None,
        **params: Any,
    ) -> Subscription:
        """Register ``callback`` to be called by execute().

        Args:
            callback: Called as ``callback(owner, **params)``.
            context: The object the callback belongs to. Mandatory.
            **params: Default keyword parameters for this registration.

        Returns:
            A Subscription handle.

        Raises:
            ConfigurationError: If callback or context is missing.
        """
        if callback is None or context is None:
            raise ConfigurationError(messages.CALLBACK_MISSING)
        if not callable(callback):
            raise ConfigurationError(f"Callback {callback!r} is not callable")
        subscription = Subscription(self, callback, context, params)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, callback: SubscriberCallback | None = None) -> int:
        """Remove every registration of ``callback`` (all of them if None).

        Returns:
            The number of registrations removed.
        """
        removed = [
            s for s in self._subscriptions
            if callback is None or s.callback == callback
        ]
        for subscription in removed:
            subscription.dispose()
        return len(removed)

    def reset(self) -> None:
        """Remove all registrations."""
        for subscription in list(self._subscriptions):
            subscription.dispose()

    def execute(self, **params: Any) -> None:
        """Call every registered callback in registration order.

        Caller-supplied ``params`` replace the registration-time ones.
        Callbacks registered or disposed while executing take effect on
        the next call.
        """
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            kwargs = params if params else subscription.params
            subscription.callback(self.owner, **kwargs)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


class SubscriptionMixin:
    """Subscription API for classes owning a SubscriptionBus in ``_bus``."""

    __slots__ = ()

    _bus: SubscriptionBus

    @property
    def bus(self) -> SubscriptionBus:
        return self._bus

    def subscribe(
        self,
        callback: SubscriberCallback | None,
        context: Any = None,
        **params: Any,
    ) -> Subscription:
        """Register an observer callback. See SubscriptionBus.subscribe()."""
        return self._bus.subscribe(callback, context, **params)

    def unsubscribe(self, callback: SubscriberCallback | None = None) -> int:
        return self._bus.unsubscribe(callback)

    def reset_subscriptions(self) -> None:
        self._bus.reset()

    def execute(self, **params: Any) -> None:
        """Notify all observers."""
        self._bus.execute(**params)
