# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Node identifiers.

Backing stores may coerce numeric-looking map keys to numbers and lose
their order. Keys whose order matters are therefore transmitted with a
leading marker character (``+``). Inside a tree the same node may thus be
keyed as ``12``, ``'12'`` or ``'+12'``.

NodeId folds all these spellings into one comparable value:

    >>> NodeId.parse('+12') == NodeId.parse(12)
    True
    >>> NodeId.parse('+12').ordered
    True
    >>> list(NodeId.parse(12).candidates())
    [12, '12', '+12']
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from .exceptions import ValidationError
from . import messages

ORDER_MARKER = '+'


def _as_int(raw: str) -> int | None:
    """Return the int value of a decimal string, or None."""
    text = raw.strip()
    if text[:1] in ('+', '-'):
        sign, digits = text[0], text[1:]
    else:
        sign, digits = '', text
    if not digits.isdigit():
        return None
    return -int(digits) if sign == '-' else int(digits)


class NodeId:
    """An identifier with one canonical comparable form.

    Attributes:
        value: ``int`` for numeric ids, ``str`` otherwise.
        ordered: True if the id carried the order-preserving marker.
    """

    __slots__ = ('value', 'ordered')

    def __init__(self, value: int | str, ordered: bool = False) -> None:
        self.value = value
        self.ordered = ordered

    @classmethod
    def parse(cls, raw: Any) -> NodeId:
        """Build a NodeId from an int, a numeric string or any other string.

        Raises:
            ValidationError: If ``raw`` is negative, empty, a bool, or
                neither int nor str.
        """
        if isinstance(raw, NodeId):
            return raw
        if isinstance(raw, bool) or not isinstance(raw, (int, str)):
            raise ValidationError(messages.ID_ILLEGAL + f"({raw!r})")
        if isinstance(raw, int):
            if raw < 0:
                raise ValidationError(messages.ID_ILLEGAL + f"({raw!r})")
            return cls(raw)
        if raw == '':
            raise ValidationError(messages.ID_MISSING)
        ordered = raw.startswith(ORDER_MARKER)
        number = _as_int(raw)
        if number is not None:
            if number < 0:
                raise ValidationError(messages.ID_ILLEGAL + f"({raw!r})")
            return cls(number, ordered)
        if ordered:
            return cls(raw[1:], True)
        return cls(raw)

    @classmethod
    def coerce(cls, raw: Any) -> NodeId | None:
        """Like parse(), but return None instead of raising."""
        try:
            return cls.parse(raw)
        except ValidationError:
            return None

    @property
    def is_numeric(self) -> bool:
        return isinstance(self.value, int)

    def candidates(self) -> Iterator[int | str]:
        """Yield the mapping keys that may hold this id, plain forms first."""
        if self.is_numeric:
            yield self.value
        yield str(self.value)
        yield f"{ORDER_MARKER}{self.value}"

    def wire(self) -> str:
        """Return the transport form of the id."""
        if self.ordered:
            return f"{ORDER_MARKER}{self.value}"
        return str(self.value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NodeId):
            return self.value == other.value
        if isinstance(other, (int, str)) and not isinstance(other, bool):
            parsed = NodeId.coerce(other)
            return parsed is not None and parsed.value == self.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"NodeId({self.wire()!r})"

    def __str__(self) -> str:
        return str(self.value)


def same_id(key: Any, other: Any) -> bool:
    """True if two keys denote the same node id."""
    left = NodeId.coerce(key)
    right = NodeId.coerce(other)
    return left is not None and right is not None and left == right


def find_key(mapping: Mapping[Any, Any] | None, node_id: Any) -> int | str | None:
    """Return the key under which ``node_id`` is stored in ``mapping``.

    Probes the plain forms before the marker-prefixed one. Returns None if
    ``mapping`` is empty or holds no spelling of the id.
    """
    if not mapping:
        return None
    parsed = NodeId.coerce(node_id)
    if parsed is None:
        return None
    for key in parsed.candidates():
        if key in mapping:
            return key
    return None


def is_numeric_key(key: Any) -> bool:
    """True for int keys and (marker-prefixed) decimal strings."""
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and _as_int(key) is not None


def numeric_value(key: Any) -> int | None:
    """Return the integer value of a numeric key, or None."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, str):
        return _as_int(key)
    return None
