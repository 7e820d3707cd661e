"""Ordered key/value snapshots and the databases that hold them."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator, Mapping
from typing import Any

from sortedcontainers import SortedDict, SortedSet

from .flags import DatabaseFlags

_KNOWN_FLAG_BITS = int(DatabaseFlags.DUP_SORT | DatabaseFlags.INTEGER_KEY)


def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _decode(text: Any) -> bytes:
    if not isinstance(text, str):
        raise ValueError("expected a base64 string")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 data: {exc}") from exc


class Snapshot:
    """A sorted map from byte keys to sorted sets of byte values.

    Copies share their data until one of them is modified.
    """

    __slots__ = ("_flags", "_map", "_owned")

    def __init__(self, flags: DatabaseFlags | int | None = None) -> None:
        self._flags = DatabaseFlags.NIL if flags is None else DatabaseFlags(flags)
        self._map: SortedDict = SortedDict()
        self._owned = True

    @property
    def flags(self) -> DatabaseFlags:
        return self._flags

    def copy(self) -> Snapshot:
        """Return a snapshot with the same contents, independent of this one."""
        other = Snapshot(self._flags)
        other._map = self._map
        other._owned = False
        self._owned = False
        return other

    def _writable(self) -> SortedDict:
        if not self._owned:
            self._map = SortedDict(
                (key, SortedSet(values)) for key, values in self._map.items()
            )
            self._owned = True
        return self._map

    def clear(self) -> None:
        """Remove every entry."""
        self._map = SortedDict()
        self._owned = True

    def get(self, key: bytes) -> bytes | None:
        """Return the first value stored under ``key``, or None."""
        values = self._map.get(bytes(key))
        if values:
            return values[0]
        return None

    def put(self, key: bytes, value: bytes) -> None:
        """Store ``value`` as the only value under ``key``."""
        self._writable()[bytes(key)] = SortedSet([bytes(value)])

    def put_dup(self, key: bytes, value: bytes) -> None:
        """Add ``value`` to the values stored under ``key``."""
        self._writable().setdefault(bytes(key), SortedSet()).add(bytes(value))

    def delete(self, key: bytes) -> bool:
        """Remove all values under ``key``; return whether any were present."""
        key = bytes(key)
        if key not in self._map:
            return False
        values = self._writable()[key]
        was_empty = not values
        values.clear()
        return not was_empty

    def delete_exact(self, key: bytes, value: bytes) -> bool:
        """Remove one value under ``key``; return whether it was present."""
        key = bytes(key)
        value = bytes(value)
        existing = self._map.get(key)
        if existing is None or value not in existing:
            return False
        self._writable()[key].discard(value)
        return True

    def items(self) -> Iterator[tuple[bytes, bytes]]:
        """Yield every (key, value) pair in key order, then value order."""
        current = self._map
        for key, values in current.items():
            for value in values:
                yield key, value

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible description of this snapshot."""
        return {
            "flags": int(self._flags),
            "entries": [
                [_encode(key), [_encode(value) for value in values]]
                for key, values in self._map.items()
            ],
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Snapshot:
        """Rebuild a snapshot from ``to_dict`` output; raise ValueError if malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("snapshot data must be a mapping")
        flags = data.get("flags")
        entries = data.get("entries")
        if not isinstance(flags, int) or isinstance(flags, bool):
            raise ValueError("snapshot flags must be an integer")
        if flags < 0 or flags & ~_KNOWN_FLAG_BITS:
            raise ValueError(f"unknown database flags: {flags}")
        if not isinstance(entries, list):
            raise ValueError("snapshot entries must be a list")
        snapshot = Snapshot(DatabaseFlags(flags))
        for entry in entries:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ValueError("each snapshot entry must be a [key, values] pair")
            key_text, value_texts = entry
            if not isinstance(value_texts, list):
                raise ValueError("snapshot values must be a list")
            snapshot._map[_decode(key_text)] = SortedSet(
                _decode(text) for text in value_texts
            )
        return snapshot

    def __repr__(self) -> str:
        return f"Snapshot(flags={self._flags!r}, keys={len(self._map)})"


class Database:
    """A named database holding the latest committed snapshot."""

    __slots__ = ("_snapshot",)

    def __init__(
        self,
        flags: DatabaseFlags | int | None = None,
        snapshot: Snapshot | None = None,
    ) -> None:
        self._snapshot = snapshot if snapshot is not None else Snapshot(flags)

    def snapshot(self) -> Snapshot:
        """Return a copy of the current snapshot."""
        return self._snapshot.copy()

    def replace(self, snapshot: Snapshot) -> Snapshot:
        """Install ``snapshot`` and return the one it replaces."""
        old, self._snapshot = self._snapshot, snapshot
        return old