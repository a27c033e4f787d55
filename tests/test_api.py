import pytest
from fastapi.testclient import TestClient

from bulk_ingest.api.main import create_app
from bulk_ingest.config import Settings
from tests.helpers import FakeStore, make_archive


@pytest.fixture
def store():
    return FakeStore(existing=["site/A", "site/B", "site/C"])


@pytest.fixture
def client(store):
    app = create_app(Settings(concurrency=2, list_page_size=2, body_queue_size=2), store=store)
    return TestClient(app)


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


def test_bulk_upload_returns_no_content(client, store):
    archive = make_archive({
        "metadata/config.json": {"contentIDBase": "site/"},
        "metadata/keep.json": {"keep": ["site/C"]},
        "envelopes/site%2FB.json": {"body": "new"},
        "envelopes/site%2FD.json": {"body": "added"},
    })
    response = client.post("/bulkcontent", content=archive, headers={"X-Apikey-Name": "tester"})
    assert response.status_code == 204
    assert response.content == b""
    assert store.deleted == ["site/A"]
    assert sorted(store.envelopes) == ["site/B", "site/C", "site/D"]
    assert store.envelopes["site/D"] == {"body": "added"}


def test_streamed_body(client, store):
    archive = make_archive({f"envelopes/e{i}.json": {"i": i} for i in range(20)})

    def chunks():
        for i in range(0, len(archive), 512):
            yield archive[i:i + 512]

    response = client.post("/bulkcontent", content=chunks())
    assert response.status_code == 204
    assert len(store.put_calls) == 20


def test_corrupt_archive_is_client_error(client, store):
    response = client.post("/bulkcontent", content=b"definitely not a tarball" * 50)
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Unable to read archive"
    assert "cause" in body
    assert store.put_calls == []
    assert store.list_calls == []


def test_reconciliation_failure_is_server_error():
    store = FakeStore(existing=["site/A"], delete_error=True)
    client = TestClient(create_app(Settings(concurrency=2), store=store))
    archive = make_archive({"metadata/config.json": {"contentIDBase": "site/"}})
    response = client.post("/bulkcontent", content=archive)
    assert response.status_code == 500
    assert response.json()["message"] == "Unable to delete removed content"
    assert response.json()["cause"] == "deletion unavailable"


def test_missing_config_base_still_succeeds(client, store):
    archive = make_archive({"metadata/config.json": {}, "envelopes/x.json": {}})
    response = client.post("/bulkcontent", content=archive)
    assert response.status_code == 204
    assert store.list_calls == []
    assert store.deleted == []
