import threading
from pathlib import Path

import pytest

from biomap.application.ports import KeyValueStore
from biomap.infrastructure.stores.kv_store import InMemoryKeyValueStore, SqlAlchemyKeyValueStore
from biomap.infrastructure.stores.sqlalchemy_db import SessionProvider


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryKeyValueStore()
        return
    kv = SqlAlchemyKeyValueStore("projects", db_url=f"sqlite:///{tmp_path / 'kv.db'}")
    yield kv
    kv.close()


def test_implements_port(store):
    assert isinstance(store, KeyValueStore)


def test_get_missing_key_returns_none(store):
    assert store.get("nope") is None


def test_set_overwrites_whole_document(store):
    store.set("project_1", {"id": "project_1", "description": "first", "extra": 1})
    store.set("project_1", {"id": "project_1", "description": "second"})

    assert store.get("project_1") == {"id": "project_1", "description": "second"}


def test_delete_is_idempotent(store):
    store.set("k", {"v": 1})

    store.delete("k")
    store.delete("k")

    assert store.get("k") is None


def test_get_all_preserves_insertion_order(store):
    for key in ("b", "a", "c"):
        store.set(key, {"key": key})

    assert list(store.get_all()) == ["b", "a", "c"]


def test_returned_values_are_copies(store):
    store.set("k", {"items": [1, 2]})

    value = store.get("k")
    value["items"].append(3)

    assert store.get("k") == {"items": [1, 2]}


def test_sqlalchemy_namespaces_are_isolated(tmp_path: Path):
    provider = SessionProvider(f"sqlite:///{tmp_path / 'shared.db'}")
    notes = SqlAlchemyKeyValueStore("notes", provider=provider)
    chat = SqlAlchemyKeyValueStore("chat", provider=provider)

    notes.set("same", {"from": "notes"})
    chat.set("same", {"from": "chat"})

    assert notes.get("same") == {"from": "notes"}
    assert chat.get("same") == {"from": "chat"}
    assert list(notes.get_all()) == ["same"]
    provider.dispose()


def test_sqlalchemy_store_creates_parent_directory(tmp_path: Path):
    db_path = tmp_path / "nested" / "dir" / "biomap.db"
    kv = SqlAlchemyKeyValueStore("projects", db_url=f"sqlite:///{db_path}")

    kv.set("k", {"v": 1})

    assert db_path.exists()
    kv.close()


def test_sqlalchemy_concurrent_first_writes_do_not_conflict(tmp_path: Path):
    kv = SqlAlchemyKeyValueStore("research_maps", db_url=f"sqlite:///{tmp_path / 'race.db'}")
    workers = 8
    errors = []

    for round_no in range(5):
        key = f"project_{round_no}"
        barrier = threading.Barrier(workers)

        def write(worker: int) -> None:
            barrier.wait()
            try:
                kv.set(key, {"writer": worker})
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert kv.get(key)["writer"] in range(workers)

    assert errors == []
    assert list(kv.get_all()) == [f"project_{i}" for i in range(5)]
    kv.close()


def test_sqlalchemy_overwrite_keeps_row_position(tmp_path: Path):
    kv = SqlAlchemyKeyValueStore("projects", db_url=f"sqlite:///{tmp_path / 'kv.db'}")
    kv.set("a", {"v": 1})
    kv.set("b", {"v": 2})

    kv.set("a", {"v": 3})

    assert kv.get_all() == {"a": {"v": 3}, "b": {"v": 2}}
    assert list(kv.get_all()) == ["a", "b"]
    kv.close()
