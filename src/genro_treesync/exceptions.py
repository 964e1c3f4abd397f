# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeSync exceptions."""

from __future__ import annotations


class TreeSyncError(Exception):
    """Base exception for TreeSync errors."""

    pass


class ValidationError(TreeSyncError, ValueError):
    """Raised when a type, id or payload is missing or malformed.

    Detected before any tree mutation or I/O takes place.
    """

    pass


class NotFoundError(TreeSyncError, KeyError):
    """Raised when an id or type is absent from the tree or backing store."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return str(self.args[0]) if self.args else ''


class TypeMismatchError(NotFoundError):
    """Raised when the node found at an id has a different type tag."""

    pass


class ConfigurationError(TreeSyncError):
    """Raised on invalid configuration or subscription misuse."""

    pass


class ConsistencyError(TreeSyncError, RuntimeError):
    """Raised when an internal invariant is broken (e.g. a node vanished mid-operation)."""

    pass


class ServerError(TreeSyncError):
    """Raised when the backing store reports an error.

    Attributes:
        server_text: The original text reported by the backing store.
    """

    def __init__(self, message: str, server_text: str = '') -> None:
        super().__init__(message)
        self.server_text = server_text or message


class TransportFailure(ServerError):
    """Raised when the transport fails (HTTP status, connection error, engine crash)."""

    def __init__(
        self,
        reason: str,
        status: int | None = None,
        text: str = '',
    ) -> None:
        self.reason = reason
        self.status = status
        self.text = text
        detail = f"{reason} ({status}). " if status is not None else f"{reason}. "
        super().__init__(detail + text, server_text=detail + text)


class SyncTimeoutError(ServerError):
    """Raised when the backing store does not answer within the timeout."""

    def __init__(self, operation: str, timeout: float | None = None) -> None:
        self.operation = operation
        self.timeout = timeout
        text = f"{operation} timed out"
        if timeout is not None:
            text += f" after {timeout:g}s"
        super().__init__(text, server_text=text)
