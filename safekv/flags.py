"""Flag sets understood by the safe-mode storage backend."""

from __future__ import annotations

import enum


class EnvironmentFlags(enum.IntFlag):
    """Environment flags; the safe-mode backend supports none."""

    NIL = 0


class DatabaseFlags(enum.IntFlag):
    """Per-database flags."""

    NIL = 0
    DUP_SORT = 0b0000_0001
    INTEGER_KEY = 0b0000_0010


class WriteFlags(enum.IntFlag):
    """Per-write flags; the safe-mode backend supports none."""

    NIL = 0