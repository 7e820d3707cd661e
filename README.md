# safekv

A small embedded key-value store. An environment is a directory holding one
data file, `data.safe.bin`; inside it live any number of named databases plus
an optional default (unnamed) one. Keys and values are bytes (strings are
accepted and encoded as UTF-8).

All access goes through transactions that work on snapshots:

- a read transaction (`RoTransaction`) sees the data committed when it began;
- a write transaction (`RwTransaction`) sees its own changes, and they become
  visible to new transactions, and are written to disk, only on `commit()`.
  Leaving a `with` block without committing aborts it.

## Install

    pip install safekv

## Usage

```python
from pathlib import Path

from safekv.manager import Manager
from safekv.rkv import Rkv

path = Path("/tmp/mydata")
path.mkdir(parents=True, exist_ok=True)   # the directory must already exist

# The manager keeps at most one open environment per canonical path.
manager = Manager.singleton()
env = manager.get_or_create(path, Rkv.new)

db = env.open_db("mydb", create=True)

with env.write() as writer:
    writer.put(db, b"greeting", b"hello")
    writer.commit()

with env.read() as reader:
    print(reader.get(db, b"greeting"))      # b'hello'
    for key, value in reader.open_ro_cursor(db):
        print(key, value)

del env                                      # drop our reference first
manager.try_close(path, delete=False)
```

### Opening environments

- `Rkv.new(path)` allows up to 10 named databases (`DEFAULT_MAX_DBS`);
  `Rkv.with_capacity(path, max_dbs)` sets another limit. The default database
  does not count against it.
- `Rkv.from_builder(path, builder)` takes an `EnvironmentBuilder` from
  `safekv.environment` (or `Rkv.environment_builder()`). Set
  `make_dir_if_needed=True` to create a missing directory, and
  `discard_if_corrupted=True` to start empty when the data file cannot be read.
- `Rkv.get_dbs()` lists database names, `None` standing for the default one.
- `Rkv.close(delete=True)` removes the data file but keeps the directory.

### Databases and cursors

`open_db(name, create=False, flags=DatabaseFlags.NIL)` returns a handle. With
`create=False` a missing database raises `DbNotFoundError`.

A database created with `DatabaseFlags.DUP_SORT` (from `safekv.flags`) keeps
a sorted set of values per key: `put` adds a value, `get` returns the smallest,
and `delete(db, key, value)` removes just that value.

`RoCursor` iterates `(key, value)` pairs in key order; `iter_from(key)` starts
at the first key equal to or greater than `key`, and `iter_dup_of(key)` yields
only the pairs under `key`.

### Manager

`Manager.singleton()` is a process-wide manager. `get`,
`get_or_create`, `get_or_create_with_capacity` and
`get_or_create_from_builder` return the one shared `Rkv` for a path (which must
exist). `try_close` raises `EnvironmentStillOpen` while anything besides the
manager still references that `Rkv`.

## Errors

Store failures raise subclasses of `safekv.errors.StoreError`, for example
`KeyValuePairNotFound` (a missing key on `get`, or on `delete`), `DbsFull`,
`UnsuitableEnvironmentPath`, `FileInvalid`, `StoreIOError`, `DbIsForeignError`
and `OpenAttemptedDuringTransaction` (opening a database while a read
transaction is active). Using a transaction after commit or abort raises
`StoreError`. Closing raises subclasses of `safekv.errors.CloseError`, such as
`EnvironmentStillOpen`.

## What it does not do

- Values are stored as raw bytes; there is no typed value encoding.
- There are no statistics or environment information calls. Map size, reader
  limits, environment flags, write flags and encryption keys are accepted but
  ignored, and `load_ratio()` always returns `None`.
- There are no command-line tools and no import or migration from other
  storage formats.
- Data lives in memory while open and is written whole to one file on each
  commit or `sync()`; it is not meant for very large data sets.

## Tests

    pip install safekv[test]
    pytest