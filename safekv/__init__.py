"""Embedded key-value store with snapshot transactions and single-file persistence."""

__version__ = "0.1.0"

__all__ = ["errors", "flags", "snapshot", "transaction", "environment", "rkv", "manager"]