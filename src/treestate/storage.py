"""Restoration store — remembers the last value written under each key.

A development aid, not durable storage: entries live as long as the
process and are overwritten on every State.set(). The default store keeps
its entries in _anchor so they outlive a reload of this module.
"""

from __future__ import annotations

from typing import Iterator

from treestate import _anchor

_MISSING = object()


class RestorationStore:
    """Key -> last written value. Last write wins, nothing expires."""

    __slots__ = ("_entries",)

    def __init__(self, entries: dict[str, object] | None = None) -> None:
        self._entries = entries if entries is not None else {}

    def get(self, key: str, default: object = None) -> object:
        return self._entries.get(key, default)

    def put(self, key: str, value: object) -> None:
        self._entries[key] = value

    def lookup(self, key: str) -> tuple[bool, object]:
        """(found, value) — distinguishes a stored None from a missing key."""
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def clear(self) -> None:
        """Drop every entry. Meant for test harnesses."""
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"RestorationStore({len(self._entries)} entries)"


default_storage = RestorationStore(_anchor.restoration)
