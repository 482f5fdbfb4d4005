"""Group-key ordering: lexical (byte-like) or numeric-aware."""

from __future__ import annotations

import re
from typing import Any, Literal

KeyMode = Literal["lexical", "numeric"]

_DIGITS = re.compile(r"([0-9]+)")


def as_key(key: Any) -> tuple:
    """Normalise a scalar or sequence group key to a tuple."""
    if isinstance(key, tuple):
        return key
    if isinstance(key, list):
        return tuple(key)
    return (key,)


def natural_key(text: str) -> tuple:
    """Split text so digit runs compare by value: ``file2 < file10``."""
    chunks = []
    for part in _DIGITS.split(text):
        if not part:
            continue
        if _DIGITS.fullmatch(part):
            chunks.append((0, int(part), ""))
        else:
            chunks.append((1, 0, part))
    return tuple(chunks)


def _component(value: Any, mode: KeyMode) -> tuple:
    if mode == "lexical":
        return (str(value),)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return ((0, value, ""),)
    return natural_key(str(value))


def sort_key(key: Any, mode: KeyMode = "lexical") -> tuple:
    """Total-order sort key for a group key under ``mode``.

    Numeric mode breaks ties between keys that compare equal by value
    (``"01"`` and ``"1"``) lexically, so distinct keys never tie.
    """
    if mode not in ("lexical", "numeric"):
        raise ValueError(f"unknown key mode: {mode!r}")
    parts = tuple(_component(v, mode) for v in as_key(key))
    if mode == "numeric":
        return (parts, tuple(str(v) for v in as_key(key)))
    return parts
