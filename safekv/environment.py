"""Safe-mode environments: named databases kept in memory and saved to one file."""

from __future__ import annotations

import itertools
import json
import logging
import threading
import weakref
from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

from .errors import (
    DbIsForeignError,
    DbNotFoundError,
    DbsFull,
    DbsIllegalOpen,
    FileInvalid,
    StoreIOError,
    UnsuitableEnvironmentPath,
)
from .flags import DatabaseFlags, EnvironmentFlags
from .snapshot import Database, Snapshot
from .transaction import RoTransaction, RwTransaction

DEFAULT_DB_FILENAME = "data.safe.bin"

_log = logging.getLogger(__name__)
_environment_ids = itertools.count(1)


@dataclass(frozen=True)
class DatabaseHandle:
    """Identifies one database inside one environment."""

    environment: int
    index: int


@dataclass
class EnvironmentBuilder:
    """Settings used to open an environment.

    ``max_readers``, ``map_size``, ``enc_key`` and any flags are accepted but
    ignored by this backend.
    """

    flags: EnvironmentFlags | int = EnvironmentFlags.NIL
    max_readers: int | None = None
    max_dbs: int | None = None
    map_size: int | None = None
    enc_key: bytes | None = None
    make_dir_if_needed: bool = False
    discard_if_corrupted: bool = False

    def open(self, path: str | PathLike[str]) -> Environment:
        """Open the environment stored in the directory ``path``."""
        path = Path(path)
        if not path.is_dir():
            if not self.make_dir_if_needed:
                raise UnsuitableEnvironmentPath(path)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreIOError(str(exc)) from exc
        if self.enc_key is not None:
            _log.warning("set_enc_key is ignored by this storage backend.")
        env = Environment(
            path, self.flags, self.max_readers, self.max_dbs, self.map_size
        )
        env.read_from_disk(self.discard_if_corrupted)
        return env


class Environment:
    """A set of named databases, persisted to a single file on commit or sync."""

    def __init__(
        self,
        path: str | PathLike[str],
        flags: EnvironmentFlags | int = EnvironmentFlags.NIL,
        max_readers: int | None = None,
        max_dbs: int | None = None,
        map_size: int | None = None,
    ) -> None:
        flags = EnvironmentFlags(flags)
        if flags:
            _log.warning("Ignoring `flags=%r`", flags)
        if max_readers is not None:
            _log.warning("Ignoring `max_readers=%s`", max_readers)
        if map_size is not None:
            _log.warning("Ignoring `map_size=%s`", map_size)
        self._path = Path(path)
        self._max_dbs = max_dbs
        self._id = next(_environment_ids)
        self._lock = threading.RLock()
        self._arena: list[Database] = []
        self._names: dict[str | None, DatabaseHandle] = {}
        self._readers: weakref.WeakSet[RoTransaction] = weakref.WeakSet()

    @property
    def path(self) -> Path:
        return self._path

    def _data_file(self) -> Path:
        try:
            is_dir = self._path.stat() is not None and self._path.is_dir()
        except OSError as exc:
            raise StoreIOError(str(exc)) from exc
        return self._path / DEFAULT_DB_FILENAME if is_dir else self._path

    def _serialize(self) -> bytes:
        with self._lock:
            payload = {
                "databases": [
                    [name, self._arena[handle.index].snapshot().to_dict()]
                    for name, handle in self._names.items()
                ]
            }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    @staticmethod
    def _deserialize(data: bytes) -> list[tuple[str | None, Snapshot]]:
        payload = json.loads(data)
        if not isinstance(payload, dict):
            raise ValueError("environment data must be a mapping")
        databases = payload.get("databases")
        if not isinstance(databases, list):
            raise ValueError("environment databases must be a list")
        result = []
        for entry in databases:
            if not isinstance(entry, list) or len(entry) != 2:
                raise ValueError("each database must be a [name, snapshot] pair")
            name, snapshot_data = entry
            if name is not None and not isinstance(name, str):
                raise ValueError("database names must be strings or null")
            result.append((name, Snapshot.from_dict(snapshot_data)))
        return result

    def read_from_disk(self, discard_if_corrupted: bool = False) -> None:
        """Load the databases from disk, if the data file exists."""
        data_file = self._data_file()
        if not data_file.exists():
            return
        try:
            data = data_file.read_bytes()
        except OSError as exc:
            raise StoreIOError(str(exc)) from exc
        try:
            loaded = self._deserialize(data)
        except ValueError as exc:
            if not discard_if_corrupted:
                raise FileInvalid() from exc
            loaded = []
        with self._lock:
            self._arena = []
            self._names = {}
            for name, snapshot in loaded:
                self._names[name] = self._allocate(Database(snapshot=snapshot))

    def write_to_disk(self) -> None:
        """Save every database to the data file."""
        data_file = self._data_file()
        data = self._serialize()
        try:
            data_file.write_bytes(data)
        except OSError as exc:
            raise StoreIOError(str(exc)) from exc

    def _allocate(self, db: Database) -> DatabaseHandle:
        self._arena.append(db)
        return DatabaseHandle(self._id, len(self._arena) - 1)

    def _reader_active(self) -> bool:
        return any(txn.active for txn in list(self._readers))

    def snapshots(self) -> dict[Hashable, Snapshot]:
        """Return a copy of the committed snapshot of every database."""
        with self._lock:
            return {
                DatabaseHandle(self._id, index): db.snapshot()
                for index, db in enumerate(self._arena)
            }

    def commit_snapshots(self, snapshots: Mapping[Hashable, Snapshot]) -> None:
        """Install the given snapshots and save the environment to disk."""
        with self._lock:
            for handle in snapshots:
                if (
                    not isinstance(handle, DatabaseHandle)
                    or handle.environment != self._id
                    or not 0 <= handle.index < len(self._arena)
                ):
                    raise DbIsForeignError()
            for handle, snapshot in snapshots.items():
                self._arena[handle.index].replace(snapshot)
        self.write_to_disk()

    def get_dbs(self) -> list[str | None]:
        """Return the names of all databases, None standing for the default one."""
        with self._lock:
            return list(self._names)

    def open_db(self, name: str | None = None) -> DatabaseHandle:
        """Return the handle of an existing database."""
        if self._reader_active():
            raise DbsIllegalOpen()
        with self._lock:
            try:
                return self._names[name]
            except KeyError:
                raise DbNotFoundError() from None

    def create_db(
        self, name: str | None = None, flags: DatabaseFlags | int = DatabaseFlags.NIL
    ) -> DatabaseHandle:
        """Return the handle of a database, creating it if needed."""
        if self._reader_active():
            raise DbsIllegalOpen()
        with self._lock:
            named = sum(1 for key in self._names if key is not None)
            if (
                name is not None
                and self._max_dbs is not None
                and named >= self._max_dbs
            ):
                raise DbsFull()
            handle = self._names.get(name)
            if handle is None:
                handle = self._allocate(Database(DatabaseFlags(flags)))
                self._names[name] = handle
            return handle

    def begin_ro_txn(self) -> RoTransaction:
        """Start a read transaction over the committed data."""
        txn = RoTransaction(self)
        self._readers.add(txn)
        return txn

    def begin_rw_txn(self) -> RwTransaction:
        """Start a write transaction."""
        return RwTransaction(self)

    def sync(self, force: bool = False) -> None:
        """Save the environment to disk."""
        _log.warning("Ignoring `force=%s`", force)
        self.write_to_disk()

    def version(self) -> str:
        return "unknown"

    def load_ratio(self) -> float | None:
        """Always None: this backend never needs resizing."""
        _log.warning("`load_ratio()` is irrelevant for this storage backend.")
        return None

    def set_map_size(self, size: int) -> None:
        """Accepted and ignored by this backend."""
        _log.warning("`set_map_size(%s)` is ignored by this storage backend.", size)

    def files_on_disk(self) -> list[Path]:
        """Return the files that hold this environment's data."""
        return [self._path / DEFAULT_DB_FILENAME]

    def __repr__(self) -> str:
        return f"Environment(path={str(self._path)!r})"