"""Exceptions raised by the store, its environments and its manager."""

from __future__ import annotations

import threading
from os import PathLike


class StoreError(Exception):
    """Base class of every error reported by a store or environment."""

    default_message = "store error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class DatabaseCorrupted(StoreError):
    default_message = "database corrupted"


class KeyValuePairNotFound(StoreError):
    default_message = "key/value pair not found"


class KeyValuePairBadSize(StoreError):
    default_message = "unsupported size of key/DB name/data"


class FileInvalid(StoreError):
    default_message = "file is not a valid database"


class MapFull(StoreError):
    default_message = "environment mapsize reached"


class DbsFull(StoreError):
    default_message = "environment maxdbs reached"


class ReadersFull(StoreError):
    default_message = "environment maxreaders reached"


class StoreIOError(StoreError):
    """An operating-system error met while reading or writing the store."""

    default_message = "I/O error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None if message is None else f"I/O error: {message}")


class UnsuitableEnvironmentPath(StoreError):
    """The environment path does not exist or is not a directory."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self.path = path
        super().__init__(
            f"environment path does not exist or not the right type: {str(path)!r}"
        )


class DataError(StoreError):
    """A stored value could not be encoded or decoded."""

    default_message = "data error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(None if message is None else f"data error: {message}")


class SafeModeError(StoreError):
    """An error specific to the safe-mode storage backend."""

    backend_name = "SafeModeError"

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = f"safe mode backend error: {self.backend_name} (safe mode)"
        super().__init__(message)


class EnvPoisonError(SafeModeError):
    backend_name = "EnvPoisonError"


class DbsIllegalOpen(SafeModeError):
    backend_name = "DbIllegalOpen"


class DbNotFoundError(SafeModeError):
    backend_name = "DbNotFoundError"


class DbIsForeignError(SafeModeError):
    backend_name = "DbIsForeignError"


class ReadTransactionAlreadyExists(StoreError):
    """A read transaction is already open in the given thread."""

    def __init__(self, thread_id: int) -> None:
        self.thread_id = thread_id
        super().__init__(f"read transaction already exists in thread {thread_id}")


class OpenAttemptedDuringTransaction(StoreError):
    """A database was opened while a transaction was active in the given thread."""

    def __init__(self, thread_id: int) -> None:
        self.thread_id = thread_id
        super().__init__(
            f"attempted to open DB during transaction in thread {thread_id}"
        )


def open_during_transaction() -> OpenAttemptedDuringTransaction:
    """Build the error for a database opened during a transaction in this thread."""
    return OpenAttemptedDuringTransaction(threading.get_ident())


def read_transaction_already_exists() -> ReadTransactionAlreadyExists:
    """Build the error for a second read transaction in this thread."""
    return ReadTransactionAlreadyExists(threading.get_ident())


class CloseError(Exception):
    """Base class of errors raised while closing an environment."""

    default_message = "close error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class EnvironmentStillOpen(CloseError):
    default_message = "close attempted while manager has an environment still open"


class UnknownEnvironmentStillOpen(CloseError):
    default_message = (
        "close attempted while an environment not known to the manager is still open"
    )


class MigrateError(Exception):
    """Base class of errors raised while migrating an environment."""

    default_message = "migrate error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class SourceEmpty(MigrateError):
    default_message = "source is empty"


class DestinationNotEmpty(MigrateError):
    default_message = "destination is not empty"