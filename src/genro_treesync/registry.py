# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Explicit type tag to store factory mapping.

Applications register one factory per domain type at startup and create
stores through the registry instead of looking classes up by name.

Example:
    >>> registry = TypeRegistry()
    >>> @registry.register('user')
    ... class UserStore(TreeStore):
    ...     default_type = 'user'
    >>> store = registry.create('user', data={11: {'user_name': 'Alice'}})
    >>> type(store).__name__
    'UserStore'
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from .exceptions import ConfigurationError
from .store import TreeStore

StoreFactory = Callable[..., TreeStore]


class TypeRegistry:
    """Mapping of type tags to store factories.

    Types without a registered factory fall back to ``default`` (plain
    TreeStore unless given), which receives ``type=<tag>``.
    """

    def __init__(self, default: StoreFactory | None = TreeStore) -> None:
        self._factories: dict[str, StoreFactory] = {}
        self.default = default

    def __contains__(self, type_: str) -> bool:
        return type_ in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def register(self, type_: str, factory: StoreFactory | None = None) -> Any:
        """Register ``factory`` for ``type_``.

        Without ``factory`` returns a decorator.

        Raises:
            ConfigurationError: If the type is empty or already registered.
        """
        if not type_:
            raise ConfigurationError("Cannot register a factory without a type")

        def decorator(target: StoreFactory) -> StoreFactory:
            if type_ in self._factories:
                raise ConfigurationError(f"Type '{type_}' is already registered")
            self._factories[type_] = target
            return target

        if factory is None:
            return decorator
        return decorator(factory)

    def unregister(self, type_: str) -> None:
        self._factories.pop(type_, None)

    def factory(self, type_: str) -> StoreFactory:
        """Return the factory for ``type_``.

        Raises:
            ConfigurationError: If nothing is registered and there is no default.
        """
        found = self._factories.get(type_)
        if found is not None:
            return found
        if self.default is None:
            raise ConfigurationError(f"No factory registered for type '{type_}'")
        return self.default

    def create(self, type_: str, **kwargs: Any) -> TreeStore:
        """Build a store for ``type_``."""
        kwargs.setdefault('type', type_)
        return self.factory(type_)(**kwargs)
