# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for the observer subscription system."""

import pytest

from genro_treesync import ConfigurationError, Subscription, SubscriptionBus, TreeStore


class TestSubscriptionBus:
    """Tests for SubscriptionBus."""

    def test_execute_in_order(self):
        """Test callbacks run in registration order with the owner."""
        owner = object()
        bus = SubscriptionBus(owner)
        calls = []
        bus.subscribe(lambda o, **kw: calls.append(('a', o)), context='view')
        bus.subscribe(lambda o, **kw: calls.append(('b', o)), context='view')
        bus.execute()
        assert calls == [('a', owner), ('b', owner)]

    def test_params(self):
        """Test registration params are passed and caller params replace them."""
        bus = SubscriptionBus()
        seen = []
        bus.subscribe(lambda o, **kw: seen.append(kw), context='view', reason='init')
        bus.execute()
        bus.execute(reason='refresh')
        assert seen == [{'reason': 'init'}, {'reason': 'refresh'}]

    def test_missing_callback_or_context(self):
        """Test callback and context are mandatory."""
        bus = SubscriptionBus()
        with pytest.raises(ConfigurationError, match="Callback function or context missing"):
            bus.subscribe(None, context='view')
        with pytest.raises(ConfigurationError):
            bus.subscribe(lambda o: None)
        with pytest.raises(ConfigurationError):
            bus.subscribe('not callable', context='view')

    def test_dispose(self):
        """Test a disposed subscription is no longer called."""
        bus = SubscriptionBus()
        calls = []
        handle = bus.subscribe(lambda o: calls.append(1), context='view')
        assert isinstance(handle, Subscription)
        handle.dispose()
        handle.dispose()
        bus.execute()
        assert calls == []
        assert len(bus) == 0
        assert not handle.active

    def test_context_manager(self):
        """Test a subscription scoped to a with block."""
        bus = SubscriptionBus()
        with bus.subscribe(lambda o: None, context='view'):
            assert len(bus) == 1
        assert len(bus) == 0

    def test_unsubscribe(self):
        """Test unsubscribe by callback and unsubscribe all."""
        bus = SubscriptionBus()

        def first(o):
            pass

        def second(o):
            pass

        bus.subscribe(first, context='a')
        bus.subscribe(first, context='b')
        bus.subscribe(second, context='a')
        assert bus.unsubscribe(first) == 2
        assert len(bus) == 1
        assert bus.unsubscribe() == 1
        assert len(bus) == 0

    def test_dispose_during_execute(self):
        """Test a callback disposed by an earlier one is skipped."""
        bus = SubscriptionBus()
        calls = []
        handles = []

        def first(o):
            calls.append('first')
            handles[1].dispose()

        handles.append(bus.subscribe(first, context='view'))
        handles.append(bus.subscribe(lambda o: calls.append('second'), context='view'))
        bus.execute()
        assert calls == ['first']

    def test_subscribe_during_execute(self):
        """Test a callback added while executing runs on the next call."""
        bus = SubscriptionBus()
        calls = []

        def first(o):
            calls.append('first')
            if len(calls) == 1:
                bus.subscribe(lambda o: calls.append('late'), context='view')

        bus.subscribe(first, context='view')
        bus.execute()
        assert calls == ['first']
        bus.execute()
        assert calls == ['first', 'first', 'late']


class TestStoreSubscriptions:
    """Tests for the subscription API on TreeStore."""

    def test_store_execute(self, recorder):
        """Test execute() notifies the store's observers."""
        store = TreeStore({1: {'user_name': 'A'}}, type='user')
        store.subscribe(recorder, context=self, reason='view')
        store.execute()
        assert recorder.calls == [(store, {'reason': 'view'})]
        assert store.bus.owner is store

    def test_reset_subscriptions(self, recorder):
        """Test reset_subscriptions() drops every observer."""
        store = TreeStore(type='user')
        store.subscribe(recorder, context=self)
        store.reset_subscriptions()
        store.execute()
        assert recorder.count == 0

    def test_repr(self):
        """Test Subscription representation."""
        store = TreeStore(type='user')

        def refresh(s):
            pass

        handle = store.subscribe(refresh, context=self)
        assert 'refresh' in repr(handle)
        assert 'active' in repr(handle)
        handle.dispose()
        assert 'disposed' in repr(handle)
