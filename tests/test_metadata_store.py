"""Tests for the on-disk metadata store."""
import json

import pytest

from thinlxc.core.errors import NotFoundError, StorageError
from thinlxc.core.metadata_store import MetadataStore
from thinlxc.models.container import Container


@pytest.fixture
def store(tmp_path):
    return MetadataStore(str(tmp_path / "containers"))


def container_in(store, name="c1", **kwargs):
    c = Container.new(str(store.containers_root), "/var/lib/lxc/baseCN", name, **kwargs)
    (store.containers_root / name).mkdir(parents=True)
    return c


class TestMetadataStore:

    def test_persist_then_load_is_equal(self, store):
        c = container_in(store, ip="10.0.3.246", ports="9999:8888", bind_mounts="/srv:/data")
        store.persist(c)
        assert store.load("c1") == c

    def test_record_location(self, store):
        c = container_in(store)
        store.persist(c)

        record = json.loads((store.containers_root / "c1" / ".metadata.json").read_text())
        assert record["name"] == "c1"
        assert record["hwaddr"] == c.hwaddr
        assert not (store.containers_root / "c1" / ".metadata.tmp").exists()

    def test_persist_without_root_fails(self, store):
        c = Container.new(str(store.containers_root), "/base", "ghost")
        with pytest.raises(StorageError):
            store.persist(c)

    def test_load_missing(self, store):
        with pytest.raises(NotFoundError):
            store.load("nope")

    def test_load_unparsable(self, store):
        (store.containers_root / "bad").mkdir(parents=True)
        (store.containers_root / "bad" / ".metadata.json").write_text("{not json")
        with pytest.raises(NotFoundError):
            store.load("bad")

    def test_load_incomplete_record(self, store):
        (store.containers_root / "bad").mkdir(parents=True)
        (store.containers_root / "bad" / ".metadata.json").write_text('{"name": "bad"}')
        with pytest.raises(NotFoundError):
            store.load("bad")

    def test_enumerate_skips_dirs_without_record(self, store):
        for name in ("b", "a"):
            store.persist(container_in(store, name))
        (store.containers_root / "partial").mkdir()
        (store.containers_root / "stray-file").write_text("")

        assert store.enumerate() == ["a", "b"]

    def test_enumerate_missing_root(self, store):
        assert store.enumerate() == []

    def test_exists(self, store):
        assert not store.exists("c1")
        container_in(store)
        assert store.exists("c1")
