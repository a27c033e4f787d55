import pytest

from bulk_ingest.errors import StoreError
from bulk_ingest.store.memory import MemoryContentStore
from bulk_ingest.store.sqlite import SQLiteContentStore


@pytest.fixture(params=["sqlite", "memory"])
def content_store(request, tmp_path):
    if request.param == "sqlite":
        s = SQLiteContentStore(str(tmp_path / "content.db"))
        yield s
        s.close()
    else:
        yield MemoryContentStore()


def test_put_overwrites(content_store):
    content_store.put_envelope("a", {"v": 1})
    content_store.put_envelope("a", {"v": 2})
    assert content_store.get_envelope("a") == {"v": 2}
    assert content_store.get_envelope("missing") is None


def test_list_pages_end_with_empty_page(content_store):
    for cid in ["site/c", "site/a", "site/b", "other/x", "Site/upper"]:
        content_store.put_envelope(cid, {})
    pages = list(content_store.list_content("site/", page_size=2))
    assert pages == [["site/a", "site/b"], ["site/c"], []]


def test_delete_ignores_unknown_ids(content_store):
    content_store.put_envelope("a", {})
    content_store.put_envelope("b", {})
    content_store.delete_envelopes(["a", "zzz"])
    assert content_store.get_envelope("a") is None
    assert content_store.get_envelope("b") == {}


def test_base_with_like_wildcards(content_store):
    content_store.put_envelope("a_b/1", {})
    content_store.put_envelope("axb/2", {})
    assert list(content_store.list_content("a_b/")) == [["a_b/1"], []]


def test_sqlite_persists_between_connections(tmp_path):
    path = str(tmp_path / "content.db")
    s = SQLiteContentStore(path)
    s.put_envelope("x", {"body": "kept"})
    s.close()
    s = SQLiteContentStore(path)
    assert s.get_envelope("x") == {"body": "kept"}
    s.close()


def test_sqlite_rejects_unserializable_envelope(tmp_path):
    s = SQLiteContentStore(str(tmp_path / "content.db"))
    with pytest.raises(StoreError):
        s.put_envelope("x", {"bad": object()})
    s.close()
