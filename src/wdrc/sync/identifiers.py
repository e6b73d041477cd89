"""Conversion of prefixed entity ids (Q42, P31) to numeric ids."""

from __future__ import annotations

from wdrc.sync.errors import InvalidIdentifier


def decode_item_id(value: str) -> int:
    """Strip the one-letter prefix and return the numeric id.

    Raises InvalidIdentifier when the remainder is not an unsigned integer or is zero.
    """

    digits = value[1:]
    if not digits or not digits.isascii() or not digits.isdigit():
        raise InvalidIdentifier(value)
    numeric = int(digits)
    if numeric == 0:
        raise InvalidIdentifier(value)
    return numeric


def try_decode_item_id(value: str) -> int | None:
    """Like decode_item_id, but returns None for malformed ids."""

    try:
        return decode_item_id(value)
    except InvalidIdentifier:
        return None
