import pytest
from sqlmodel import create_engine
from boardide.db import init_db
from boardide.storage.documents import DocumentStore
from boardide.storage.kv import CapacityError, HandoffSlot, MemoryKeyValueStore, SqlKeyValueStore


@pytest.fixture(name="sql_kv")
def sql_kv_fixture(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'kv.db'}")
    init_db(engine)
    return SqlKeyValueStore(engine)


def test_memory_store_basics():
    kv = MemoryKeyValueStore()
    kv.set("b", "2")
    kv.set("a", "1")
    assert kv.get("a") == "1"
    assert kv.count() == 2
    assert [kv.key_at(i) for i in range(3)] == ["b", "a", None]
    kv.remove("b")
    kv.remove("missing")
    assert kv.count() == 1


def test_memory_quota_counts_replacement_once():
    kv = MemoryKeyValueStore(quota_bytes=10)
    kv.set("k", "12345")
    kv.set("k", "123456789")
    with pytest.raises(CapacityError):
        kv.set("k2", "x")


def test_sql_store_basics(sql_kv):
    sql_kv.set("b", "2")
    sql_kv.set("a", "1")
    sql_kv.set("a", "one")
    assert sql_kv.get("a") == "one"
    assert sql_kv.get("zzz") is None
    assert sql_kv.count() == 2
    assert [sql_kv.key_at(i) for i in range(3)] == ["a", "b", None]
    sql_kv.remove("a")
    assert sql_kv.count() == 1


def test_sql_store_quota(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'q.db'}")
    init_db(engine)
    kv = SqlKeyValueStore(engine, quota_bytes=20)
    kv.set("k", "x" * 10)
    with pytest.raises(CapacityError):
        kv.set("k2", "y" * 15)
    assert kv.get("k2") is None


def test_document_store_on_sql(sql_kv):
    store = DocumentStore(sql_kv, "EditorStorage:")
    file_id = store.create("blink.js", "const x = 1;", "0.3.1")
    store.update(file_id, {"content": "const x = 2;"})
    assert store.load(file_id).content == "const x = 2;"
    assert [f.id for f in store.list_files()] == [file_id]
    assert store.clear_all() == 1


def test_handoff_is_consumed():
    kv = MemoryKeyValueStore()
    slot = HandoffSlot(kv, "editorOpenFileId")
    slot.offer("file_1")
    assert slot.take() == "file_1"
    assert slot.take() is None
    assert kv.count() == 0
