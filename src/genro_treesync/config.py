# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Runtime configuration.

Defaults can be overridden through ``GENRO_TREESYNC_*`` environment
variables:

    GENRO_TREESYNC_TIMEOUT          seconds before a backing-store call times out
    GENRO_TREESYNC_AUTO_SEARCH      hydrate the store from search results
    GENRO_TREESYNC_AUTO_CALLBACK    notify observers after local mutations
    GENRO_TREESYNC_AUTO_REFRESH     notify observers after gateway calls
    GENRO_TREESYNC_RAISE_ON_ERROR   raise instead of returning sentinels
    GENRO_TREESYNC_BASE_URL         URL of the remote data service
    GENRO_TREESYNC_MODE             'local' or 'remote'
    GENRO_TREESYNC_LOG_LEVEL        logging level name
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any

from .exceptions import ConfigurationError

_SUPPORTED_MODES = {"local", "remote"}
_ENV_PREFIX = "GENRO_TREESYNC_"


def _bool_from_env(name: str, value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on", "y"}:
        return True
    if value in {"0", "false", "no", "off", "n", ""}:
        return False
    raise ConfigurationError(f"Invalid boolean value '{value}' for {name}")


def _float_from_env(name: str, value: str | None, *, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid number '{value}' for {name}") from exc
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}")
    return parsed


def _normalise_mode(value: str | None) -> str:
    if value is None:
        return "local"
    value = value.strip().lower()
    if value not in _SUPPORTED_MODES:
        raise ConfigurationError(
            f"Unsupported mode '{value}'. Expected one of {sorted(_SUPPORTED_MODES)}."
        )
    return value


def _normalise_log_level(value: str | None) -> str:
    if value is None:
        return "WARNING"
    value = value.strip().upper()
    if not isinstance(logging.getLevelName(value), int):
        raise ConfigurationError(f"Unknown log level '{value}'")
    return value


@dataclass(frozen=True)
class SyncConfig:
    """Settings shared by TreeStore and SyncGateway.

    Attributes:
        timeout: Seconds to wait for a backing-store reply.
        auto_search: Hydrate the store with the data returned by a search.
        auto_callback: Notify observers after local insert/update/delete.
        auto_refresh: Notify observers after gateway calls complete.
        raise_on_error: Raise typed exceptions instead of returning
            None/False from local operations.
        base_url: URL of the remote data service (remote mode only).
        mode: ``'local'`` or ``'remote'``.
        log_level: Level name applied to the package loggers.
    """

    timeout: float = 10.0
    auto_search: bool = True
    auto_callback: bool = False
    auto_refresh: bool = True
    raise_on_error: bool = False
    base_url: str | None = None
    mode: str = "local"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        _normalise_mode(self.mode)
        _normalise_log_level(self.log_level)

    @property
    def is_remote(self) -> bool:
        return self.mode == "remote"

    def replace(self, **changes: Any) -> SyncConfig:
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> SyncConfig:
        env = os.environ if environ is None else environ

        def get(key: str) -> str | None:
            return env.get(_ENV_PREFIX + key)

        defaults = cls()
        return cls(
            timeout=_float_from_env("TIMEOUT", get("TIMEOUT"), default=defaults.timeout),
            auto_search=_bool_from_env(
                "AUTO_SEARCH", get("AUTO_SEARCH"), default=defaults.auto_search
            ),
            auto_callback=_bool_from_env(
                "AUTO_CALLBACK", get("AUTO_CALLBACK"), default=defaults.auto_callback
            ),
            auto_refresh=_bool_from_env(
                "AUTO_REFRESH", get("AUTO_REFRESH"), default=defaults.auto_refresh
            ),
            raise_on_error=_bool_from_env(
                "RAISE_ON_ERROR", get("RAISE_ON_ERROR"), default=defaults.raise_on_error
            ),
            base_url=get("BASE_URL") or None,
            mode=_normalise_mode(get("MODE")),
            log_level=_normalise_log_level(get("LOG_LEVEL")),
        )


@lru_cache(maxsize=1)
def runtime_config() -> SyncConfig:
    """Return the process-wide configuration, read once from the environment."""
    return SyncConfig.from_env()


def reset_runtime_config() -> None:
    """Forget the cached configuration (next call re-reads the environment)."""
    runtime_config.cache_clear()
