import concurrent.futures
import os

import pytest

from pgactivity import StateStore, StateStoreError, Timeout, host_identity
from pgactivity.statestore import MAGIC


class TestStateStore:
    def setup_method(self):
        self.identity = host_identity("db1", 5432)

    def test_load_absent_entry(self, store):
        assert store.load(self.identity, "hit_ratio") is None
        assert not os.path.exists(store.path)

    def test_round_trip(self, store):
        value = {"timestamp": 1700000000.5, "counters": {"db": {"hit": 1, "read": 2}}}
        store.save(self.identity, "hit_ratio", value)
        assert store.load(self.identity, "hit_ratio") == value

    def test_other_entries_are_kept(self, store):
        store.save(self.identity, "a", 1)
        store.save(self.identity, "b", 2)
        store.save("default", "a", 3)
        assert store.load(self.identity, "a") == 1
        assert store.load(self.identity, "b") == 2
        assert store.load("default", "a") == 3

    def test_save_replaces_entry(self, store):
        store.save(self.identity, "a", 1)
        store.save(self.identity, "a", [1, 2])
        assert store.load(self.identity, "a") == [1, 2]

    def test_file_starts_with_marker(self, store):
        store.save(self.identity, "a", 1)
        with open(store.path) as f:
            assert f.readline() == MAGIC + "\n"

    def test_empty_file_is_empty_store(self, store):
        open(store.path, "w").close()
        assert store.load(self.identity, "a") is None
        store.save(self.identity, "a", 1)
        assert store.load(self.identity, "a") == 1

    def test_foreign_file_is_refused(self, store):
        with open(store.path, "w") as f:
            f.write("root:x:0:0:root:/root:/bin/bash\n")
        with pytest.raises(StateStoreError) as excinfo:
            store.save(self.identity, "a", 1)
        assert "not a pgactivity status file" in str(excinfo.value)
        with open(store.path) as f:
            assert f.read() == "root:x:0:0:root:/root:/bin/bash\n"

    def test_corrupted_file(self, store):
        with open(store.path, "w") as f:
            f.write(MAGIC + "\n{{{")
        with pytest.raises(StateStoreError):
            store.load(self.identity, "a")

    def test_wrong_structure(self, store):
        with open(store.path, "w") as f:
            f.write(MAGIC + "\n[1, 2, 3]\n")
        with pytest.raises(StateStoreError):
            store.load(self.identity, "a")

    def test_unserializable_value(self, store):
        with pytest.raises(StateStoreError):
            store.save(self.identity, "a", object())

    def test_unwritable_location(self, tmp_path):
        store = StateStore(str(tmp_path / "missing" / "status.data"))
        with pytest.raises(StateStoreError) as excinfo:
            store.save(self.identity, "a", 1)
        assert "status.data" in str(excinfo.value)

    def test_no_temporary_file_left(self, store, tmp_path):
        store.save(self.identity, "a", 1)
        assert sorted(os.listdir(tmp_path)) == ["status.data", "status.data.lock"]

    def test_interrupted_write_leaves_no_temporary_file(
        self, store, tmp_path, monkeypatch
    ):
        store.save(self.identity, "a", 1)

        def interrupted(src, dst):
            raise Timeout("1s")

        monkeypatch.setattr(os, "replace", interrupted)
        with pytest.raises(Timeout):
            store.save(self.identity, "a", 2)
        monkeypatch.undo()
        assert sorted(os.listdir(tmp_path)) == ["status.data", "status.data.lock"]
        assert store.load(self.identity, "a") == 1

    def test_concurrent_saves_of_different_entries(self, store):
        names = ["entry%d" % i for i in range(32)]

        def save(name):
            StateStore(store.path).save(self.identity, name, name.upper())

        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(save, names))

        for name in names:
            assert store.load(self.identity, name) == name.upper()


class TestHostIdentity:
    def test_host_and_port(self):
        assert host_identity("db1", 5433) == "host=db1 port=5433"

    def test_default_port(self):
        assert host_identity("db1") == "host=db1 port=5432"

    def test_service(self):
        assert host_identity("db1", 5432, "prod") == "service=prod"

    def test_ambient_connection(self):
        assert host_identity() == "default"

    def test_distinct_clusters(self):
        assert host_identity("db1", 5432) != host_identity("db1", 5433)
        assert host_identity("db1") != host_identity("db2")
