# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""User-visible message texts.

Texts containing ``{type}`` or ``{id}`` are formatted with ``str.format``.
"""

from __future__ import annotations

SYSTEM_ERROR = "System error. "
CALLBACK_MISSING = "Callback function or context missing. "
OPTIONS_MISSING = "Options missing. "
DATA_MISSING = "Data missing. "
TYPE_MISSING = "Type missing. "
ID_MISSING = "Id missing. "
ID_ILLEGAL = "Id must be a positive integer or a string. "
LINK_TYPE_MISSING = "Link type missing. "
LINK_ITEMS_MISSING = "Nothing to add or remove. "
NEW_ID_NOT_FOUND = "Could not find new id for type {type}. "
ITEM_NOT_FOUND = "Could not find {type} item with id {id}. "
TYPE_MISMATCH = "Item with id {id} is not of type {type}. "
NOTHING_TO_INSERT = "Nothing to insert. "
NOTHING_TO_UPDATE = "Nothing to update. "
SERVER_ERROR = "Server error. "
NOT_FOUND_ONE = "{type} not found. "
NOT_FOUND_MANY = "No {type}s found. "
LINK_NOT_REMOVED = "Couldn't remove {type} item with id {id} (not found in data). "
LINK_NOT_ADDED = "Couldn't add {type} item with id {id} (not found in data). "
