# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Package loggers honouring ``SyncConfig.log_level``."""

from __future__ import annotations

import logging

from . import config as ts_config


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``genro_treesync[.name]`` logger at the configured level."""
    logger_name = "genro_treesync" if name is None else f"genro_treesync.{name}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(ts_config.runtime_config().log_level)
    return logger
