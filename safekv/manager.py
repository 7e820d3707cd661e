"""Keeps at most one open environment per path in a process."""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from os import PathLike
from pathlib import Path

from .environment import EnvironmentBuilder
from .errors import CloseError, EnvironmentStillOpen, StoreIOError
from .rkv import Rkv, canonicalize_path

PathArg = str | PathLike[str]


class Manager:
    """Hands out one shared environment per canonical path.

    Environments must be obtained through a manager rather than opened
    directly, so that each path is open at most once.
    """

    def __init__(self) -> None:
        self._environments: dict[Path, Rkv] = {}
        self._lock = threading.RLock()

    @staticmethod
    def singleton() -> Manager:
        """Return the process-wide manager."""
        return _SINGLETON

    def get(self, path: PathArg) -> Rkv | None:
        """Return the environment open at ``path``, or None."""
        canonical = canonicalize_path(path)
        with self._lock:
            return self._environments.get(canonical)

    def _get_or_open(self, path: PathArg, opener: Callable[[Path], Rkv]) -> Rkv:
        canonical = canonicalize_path(path)
        with self._lock:
            rkv = self._environments.get(canonical)
            if rkv is None:
                rkv = opener(canonical)
                self._environments[canonical] = rkv
            return rkv

    def get_or_create(self, path: PathArg, factory: Callable[[Path], Rkv]) -> Rkv:
        """Return the environment at ``path``, opening it with ``factory(path)``."""
        return self._get_or_open(path, factory)

    def get_or_create_with_capacity(
        self, path: PathArg, capacity: int, factory: Callable[[Path, int], Rkv]
    ) -> Rkv:
        """Return the environment at ``path``, opening it with ``factory(path, capacity)``."""
        return self._get_or_open(path, lambda canonical: factory(canonical, capacity))

    def get_or_create_from_builder(
        self,
        path: PathArg,
        builder: EnvironmentBuilder,
        factory: Callable[[Path, EnvironmentBuilder], Rkv],
    ) -> Rkv:
        """Return the environment at ``path``, opening it with ``factory(path, builder)``."""
        return self._get_or_open(path, lambda canonical: factory(canonical, builder))

    def _in_use(self, key: Path) -> bool:
        # Compare against an object referenced in exactly the way the manager
        # references its environment; any surplus means someone else holds it.
        shared = self._environments[key]
        probe = object()
        holder = {key: probe}
        in_use = sys.getrefcount(shared) > sys.getrefcount(probe)
        del holder
        return in_use

    def try_close(self, path: PathArg, delete: bool = False) -> None:
        """Close the environment at ``path`` if no one else still uses it."""
        try:
            canonical = canonicalize_path(path)
        except StoreIOError as exc:
            raise CloseError(str(exc)) from exc
        with self._lock:
            if canonical not in self._environments:
                return
            if self._in_use(canonical):
                raise EnvironmentStillOpen()
            rkv = self._environments.pop(canonical)
        rkv.close(delete)


_SINGLETON = Manager()