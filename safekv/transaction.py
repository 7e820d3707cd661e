"""Read-only and read-write transactions over snapshots of an environment."""

from __future__ import annotations

import itertools
from collections.abc import Hashable, Iterator, Mapping
from typing import Any, Protocol

from .errors import DbIsForeignError, KeyValuePairNotFound, StoreError
from .flags import DatabaseFlags, WriteFlags
from .snapshot import Snapshot

KeyLike = bytes | bytearray | memoryview | str


class _SnapshotSource(Protocol):
    def snapshots(self) -> Mapping[Hashable, Snapshot]: ...

    def commit_snapshots(self, snapshots: Mapping[Hashable, Snapshot]) -> None: ...


def _as_bytes(data: KeyLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class RoCursor:
    """Iterates the (key, value) pairs of one snapshot in key order."""

    __slots__ = ("_snapshot",)

    def __init__(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot

    def __iter__(self) -> Iterator[tuple[bytes, bytes]]:
        return self._snapshot.items()

    def iter_from(self, key: KeyLike) -> Iterator[tuple[bytes, bytes]]:
        """Yield pairs whose key is equal to or greater than ``key``."""
        start = _as_bytes(key)
        return itertools.dropwhile(lambda pair: pair[0] < start, self._snapshot.items())

    def iter_dup_of(self, key: KeyLike) -> Iterator[tuple[bytes, bytes]]:
        """Yield every pair stored under exactly ``key``."""
        wanted = _as_bytes(key)
        return (pair for pair in self._snapshot.items() if pair[0] == wanted)


class _Transaction:
    """State handling shared by both kinds of transaction."""

    _env: _SnapshotSource
    _snapshots: dict[Hashable, Snapshot]
    _active: bool

    def _begin(self, env: _SnapshotSource) -> None:
        self._env = env
        self._snapshots = dict(env.snapshots())
        self._active = True

    @property
    def active(self) -> bool:
        """Whether the transaction has not yet been committed or aborted."""
        return self._active

    def _check_active(self) -> None:
        if not self._active:
            raise StoreError("transaction already finished")

    def _snapshot(self, db: Hashable) -> Snapshot:
        self._check_active()
        try:
            return self._snapshots[db]
        except KeyError:
            raise DbIsForeignError() from None

    def _lookup(self, db: Hashable, key: KeyLike) -> bytes:
        value = self._snapshot(db).get(_as_bytes(key))
        if value is None:
            raise KeyValuePairNotFound()
        return value

    def _finish(self) -> None:
        self._active = False
        self._snapshots = {}


class RoTransaction(_Transaction):
    """A read transaction over the snapshots committed when it began."""

    def __init__(self, env: _SnapshotSource) -> None:
        self._begin(env)

    def get(self, db: Hashable, key: KeyLike) -> bytes:
        """Return the value under ``key`` in ``db``; raise if it is missing."""
        return self._lookup(db, key)

    def open_ro_cursor(self, db: Hashable) -> RoCursor:
        """Return a cursor over the contents of ``db`` as this transaction sees them."""
        return RoCursor(self._snapshot(db))

    def abort(self) -> None:
        """Discard the transaction."""
        self._finish()

    def __enter__(self) -> RoTransaction:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.abort()


class RwTransaction(_Transaction):
    """A write transaction whose changes become visible only on commit.

    Leaving a ``with`` block without committing aborts the transaction.
    """

    def __init__(self, env: _SnapshotSource) -> None:
        self._begin(env)

    def get(self, db: Hashable, key: KeyLike) -> bytes:
        """Return the value under ``key`` in ``db``, including uncommitted changes."""
        return self._lookup(db, key)

    def put(
        self,
        db: Hashable,
        key: KeyLike,
        value: KeyLike,
        flags: WriteFlags | int = WriteFlags.NIL,
    ) -> None:
        """Store ``value`` under ``key``; duplicate-sorted databases keep both."""
        snapshot = self._snapshot(db)
        if snapshot.flags & DatabaseFlags.DUP_SORT:
            snapshot.put_dup(_as_bytes(key), _as_bytes(value))
        else:
            snapshot.put(_as_bytes(key), _as_bytes(value))

    def delete(self, db: Hashable, key: KeyLike, value: KeyLike | None = None) -> None:
        """Remove ``key``, or only ``value`` under it in a duplicate-sorted database."""
        snapshot = self._snapshot(db)
        if value is not None and snapshot.flags & DatabaseFlags.DUP_SORT:
            deleted = snapshot.delete_exact(_as_bytes(key), _as_bytes(value))
        else:
            deleted = snapshot.delete(_as_bytes(key))
        if not deleted:
            raise KeyValuePairNotFound()

    def clear_db(self, db: Hashable) -> None:
        """Remove every entry of ``db``."""
        self._snapshot(db).clear()

    def open_ro_cursor(self, db: Hashable) -> RoCursor:
        """Return a cursor over the contents of ``db`` as this transaction sees them."""
        return RoCursor(self._snapshot(db))

    def commit(self) -> None:
        """Install this transaction's snapshots in the environment."""
        self._check_active()
        snapshots = self._snapshots
        self._finish()
        self._env.commit_snapshots(snapshots)

    def abort(self) -> None:
        """Discard every change made in this transaction."""
        self._finish()

    def __enter__(self) -> RwTransaction:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self._active:
            self.abort()