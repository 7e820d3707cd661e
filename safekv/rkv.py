"""Environments with named databases, opened and closed as one unit."""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from .environment import DatabaseHandle, Environment, EnvironmentBuilder
from .errors import CloseError, DbsIllegalOpen, StoreIOError, open_during_transaction
from .flags import DatabaseFlags
from .transaction import RoTransaction, RwTransaction

DEFAULT_MAX_DBS = 10
ENCRYPTION_KEY_SIZE = 32


def canonicalize_path(path: str | PathLike[str]) -> Path:
    """Return the absolute, symlink-free form of an existing ``path``."""
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise StoreIOError(str(exc)) from exc


class Rkv:
    """An open environment together with the path it was opened from."""

    def __init__(self, path: str | PathLike[str], env: Environment) -> None:
        self._path = Path(path)
        self._env = env

    @property
    def path(self) -> Path:
        return self._path

    @property
    def environment(self) -> Environment:
        return self._env

    @staticmethod
    def environment_builder() -> EnvironmentBuilder:
        """Return a builder with default settings."""
        return EnvironmentBuilder()

    @staticmethod
    def new(path: str | PathLike[str]) -> Rkv:
        """Open an environment supporting up to ``DEFAULT_MAX_DBS`` named databases."""
        return Rkv.with_capacity(path, DEFAULT_MAX_DBS)

    @staticmethod
    def with_capacity(path: str | PathLike[str], max_dbs: int) -> Rkv:
        """Open an environment supporting up to ``max_dbs`` named databases."""
        return Rkv.from_builder(path, EnvironmentBuilder(max_dbs=max_dbs))

    @staticmethod
    def with_encryption_key_and_mapsize(
        path: str | PathLike[str], key: bytes, size: int
    ) -> Rkv:
        """Open an environment with an encryption key and a map size."""
        key = bytes(key)
        if len(key) != ENCRYPTION_KEY_SIZE:
            raise ValueError(
                f"encryption key must be {ENCRYPTION_KEY_SIZE} bytes, got {len(key)}"
            )
        builder = EnvironmentBuilder(
            enc_key=key, map_size=size, max_dbs=DEFAULT_MAX_DBS
        )
        return Rkv.from_builder(path, builder)

    @staticmethod
    def from_builder(path: str | PathLike[str], builder: EnvironmentBuilder) -> Rkv:
        """Open the environment at ``path`` with the settings of ``builder``."""
        return Rkv(path, builder.open(path))

    def get_dbs(self) -> list[str | None]:
        """Return the names of all created databases."""
        return self._env.get_dbs()

    def open_db(
        self,
        name: str | None = None,
        create: bool = False,
        flags: DatabaseFlags | int = DatabaseFlags.NIL,
    ) -> DatabaseHandle:
        """Open a database, creating it first when ``create`` is true.

        Creating a database must not run concurrently with other operations.
        """
        try:
            if create:
                return self._env.create_db(name, flags)
            return self._env.open_db(name)
        except DbsIllegalOpen:
            raise open_during_transaction() from None

    def read(self) -> RoTransaction:
        """Start a read transaction."""
        return self._env.begin_ro_txn()

    def write(self) -> RwTransaction:
        """Start a write transaction."""
        return self._env.begin_rw_txn()

    def sync(self, force: bool = False) -> None:
        """Flush the environment's data to disk."""
        self._env.sync(force)

    def version(self) -> str:
        return self._env.version()

    def load_ratio(self) -> float | None:
        """Return the share of used pages, or None if resizing never applies."""
        return self._env.load_ratio()

    def set_map_size(self, size: int) -> None:
        """Set the size of the memory map used by the environment."""
        self._env.set_map_size(size)

    def close(self, delete: bool = False) -> None:
        """Close the environment, removing its files when ``delete`` is true.

        The directory holding the files is kept.
        """
        files = self._env.files_on_disk()
        if delete:
            for file in files:
                try:
                    file.unlink()
                except OSError as exc:
                    raise CloseError(f"I/O error: {exc}") from exc

    def __repr__(self) -> str:
        return f"Rkv(path={str(self._path)!r})"