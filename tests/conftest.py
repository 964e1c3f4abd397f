# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures: clean configuration and an embedded engine double."""

import os

import pytest

from genro_treesync.config import reset_runtime_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Run every test with the default configuration."""
    for name in list(os.environ):
        if name.startswith('GENRO_TREESYNC_'):
            monkeypatch.delenv(name)
    reset_runtime_config()
    yield
    reset_runtime_config()


class FakeEngine:
    """Embedded engine double.

    Records every request and answers with the queued replies, in order.
    A queued exception is raised instead of returned.
    """

    def __init__(self, *replies):
        self.requests = []
        self.replies = list(replies)

    def queue(self, *replies):
        self.replies.extend(replies)

    def execute(self, request):
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else {'data': None, 'error': '', 'message': ''}
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def last(self):
        return self.requests[-1]


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def user_tree():
    """Users under a header, Alice with one linked event."""
    return {
        0: {
            'head': 'user',
            'user_name': 'Users',
            'data': {
                11: {
                    'user_name': 'Alice',
                    'user_email': 'alice@example.com',
                    'data': {
                        'link-event': {
                            'head': 'event',
                            'event_name': 'events',
                            'data': {4: {'event_name': 'Concert'}},
                        },
                    },
                },
                12: {'user_name': 'Bob', 'user_email': 'bob@example.com'},
            },
        },
    }


class Recorder:
    """Observer callback collecting its calls."""

    def __init__(self):
        self.calls = []

    def __call__(self, store, **params):
        self.calls.append((store, params))

    @property
    def count(self):
        return len(self.calls)


@pytest.fixture
def recorder():
    return Recorder()
