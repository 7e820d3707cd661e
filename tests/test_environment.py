import logging

import pytest

from safekv.environment import DEFAULT_DB_FILENAME, Environment, EnvironmentBuilder
from safekv.errors import (
    DbIsForeignError,
    DbNotFoundError,
    DbsFull,
    DbsIllegalOpen,
    FileInvalid,
    KeyValuePairNotFound,
    UnsuitableEnvironmentPath,
)
from safekv.flags import DatabaseFlags


def test_open_missing_directory_fails(tmp_path):
    missing = tmp_path / "nope"
    with pytest.raises(UnsuitableEnvironmentPath) as info:
        EnvironmentBuilder().open(missing)
    assert info.value.path == missing
    assert not missing.exists()


def test_make_dir_if_needed(tmp_path):
    target = tmp_path / "a" / "b"
    env = EnvironmentBuilder(make_dir_if_needed=True).open(target)
    assert target.is_dir()
    assert env.get_dbs() == []


def test_create_and_list_dbs(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    env.create_db(None)
    env.create_db("s")
    assert env.get_dbs() == [None, "s"]
    assert env.open_db("s") == env.create_db("s")


def test_capacity_limits_named_dbs(tmp_path):
    env = EnvironmentBuilder(max_dbs=1).open(tmp_path)
    env.create_db("s")
    with pytest.raises(DbsFull):
        env.create_db("zzz")
    env.create_db(None)
    assert env.get_dbs() == ["s", None]


def test_zero_capacity_allows_default_db(tmp_path):
    env = EnvironmentBuilder(max_dbs=0).open(tmp_path)
    env.create_db(None)
    assert env.get_dbs() == [None]


def test_open_missing_db(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    with pytest.raises(DbNotFoundError):
        env.open_db("sk")


def test_open_during_read_transaction(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    env.create_db("sk")
    reader = env.begin_ro_txn()
    with pytest.raises(DbsIllegalOpen):
        env.open_db("sk")
    with pytest.raises(DbsIllegalOpen):
        env.create_db("other")
    reader.abort()
    assert env.open_db("sk") == env.create_db("sk")


def test_commit_is_visible_and_isolated(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    db = env.create_db("s")
    with env.begin_rw_txn() as writer:
        writer.put(db, "foo", b"1234")
        writer.commit()
    reader = env.begin_ro_txn()
    writer = env.begin_rw_txn()
    writer.put(db, "foo", b"999")
    assert reader.get(db, "foo") == b"1234"
    assert writer.get(db, "foo") == b"999"
    writer.commit()
    assert reader.get(db, "foo") == b"1234"
    reader.abort()
    with env.begin_ro_txn() as fresh:
        assert fresh.get(db, "foo") == b"999"


def test_aborted_write_is_discarded(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    db = env.create_db("s")
    with env.begin_rw_txn() as writer:
        writer.put(db, "foo", b"bar")
    with env.begin_ro_txn() as reader, pytest.raises(KeyValuePairNotFound):
        reader.get(db, "foo")


def test_data_persists_across_reopen(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    single = env.create_db("single")
    multi = env.create_db("multi", DatabaseFlags.DUP_SORT)
    with env.begin_rw_txn() as writer:
        writer.put(single, "foo", b"bar")
        writer.put(multi, "k", b"b")
        writer.put(multi, "k", b"a")
        writer.commit()

    reopened = EnvironmentBuilder().open(tmp_path)
    assert sorted(reopened.get_dbs()) == ["multi", "single"]
    single2 = reopened.open_db("single")
    multi2 = reopened.open_db("multi")
    with reopened.begin_ro_txn() as reader:
        assert reader.get(single2, "foo") == b"bar"
        assert list(reader.open_ro_cursor(multi2)) == [(b"k", b"a"), (b"k", b"b")]


def test_files_on_disk(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    assert env.files_on_disk() == [tmp_path / DEFAULT_DB_FILENAME]
    env.sync(True)
    assert (tmp_path / DEFAULT_DB_FILENAME).is_file()


def test_corrupted_file(tmp_path):
    (tmp_path / DEFAULT_DB_FILENAME).write_bytes(b"bogus")
    with pytest.raises(FileInvalid):
        EnvironmentBuilder().open(tmp_path)
    env = EnvironmentBuilder(discard_if_corrupted=True).open(tmp_path)
    assert env.get_dbs() == []


def test_foreign_database_handle(tmp_path):
    first = EnvironmentBuilder(make_dir_if_needed=True).open(tmp_path / "one")
    second = EnvironmentBuilder(make_dir_if_needed=True).open(tmp_path / "two")
    db = first.create_db("s")
    second.create_db("s")
    with second.begin_ro_txn() as reader, pytest.raises(DbIsForeignError):
        reader.get(db, "foo")


def test_db_created_after_transaction_began(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    writer = env.begin_rw_txn()
    db = env.create_db("late")
    with pytest.raises(DbIsForeignError):
        writer.put(db, "foo", b"bar")
    writer.abort()


def test_backend_information(tmp_path):
    env = EnvironmentBuilder().open(tmp_path)
    assert env.version() == "unknown"
    assert env.load_ratio() is None
    env.set_map_size(2 * 1024 * 1024)
    db = env.create_db("s")
    with env.begin_rw_txn() as writer:
        writer.put(db, "foo", b"bar")
        writer.commit()
    with env.begin_ro_txn() as reader:
        assert reader.get(db, "foo") == b"bar"


def test_ignored_settings_are_logged(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="safekv.environment"):
        env = EnvironmentBuilder(map_size=4096, enc_key=bytes(32)).open(tmp_path)
    assert "map_size=4096" in caplog.text
    assert "set_enc_key is ignored" in caplog.text
    assert env.get_dbs() == []


def test_environment_without_disk_data(tmp_path):
    env = Environment(tmp_path, max_dbs=2)
    env.read_from_disk(False)
    env.create_db("a")
    env.create_db("b")
    with pytest.raises(DbsFull):
        env.create_db("c")
    env.write_to_disk()
    reloaded = Environment(tmp_path)
    reloaded.read_from_disk(False)
    assert reloaded.get_dbs() == ["a", "b"]