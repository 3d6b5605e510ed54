import json
from datetime import datetime, timezone

import pytest
import requests

from robes_core.reconciler import OutcomeKind, ScanReconciler
from robes_core.storage import (
    HTTPRecordStore, Record, RecordNotFound, RecordStatus, StoreError, StoreUnavailable,
)

BASE = "http://store.test"
DOCS = f"{BASE}/collections/robes/documents"
T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode("utf-8")
        self.text = self.content.decode("utf-8")

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeDocumentStore:
    """Minimal stand-in for requests.Session backed by a dict of documents."""

    def __init__(self, ready_after=0):
        self.docs = {}
        self.ready_after = ready_after
        self.ready_polls = 0
        self.calls = []
        self.offline = False
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        assert url == f"{BASE}/readyz"
        self.ready_polls += 1
        if self.offline:
            raise requests.ConnectionError("refused")
        if self.ready_polls <= self.ready_after:
            return FakeResponse(503, {"status": "starting"})
        return FakeResponse(200, {"status": "ok"})

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append((method, url, json, headers))
        if self.offline:
            raise requests.ConnectionError("refused")
        if method == "GET" and url == DOCS:
            return FakeResponse(200, {"documents": [
                {"key": k, "fields": v} for k, v in self.docs.items()
            ]})
        if method == "POST" and url == DOCS:
            key = f"doc{len(self.docs) + 1}"
            self.docs[key] = dict(json["fields"])
            return FakeResponse(201, {"key": key})
        if method == "PATCH" and url.startswith(DOCS + "/"):
            key = url.rsplit("/", 1)[1]
            if key not in self.docs:
                return FakeResponse(404, {"error": "not found"})
            self.docs[key].update(json["fields"])
            return FakeResponse(204)
        return FakeResponse(500, {"error": "unexpected"})

    def close(self):
        self.closed = True


def make_store(session, **kw):
    kw.setdefault("ready_timeout", 1.0)
    kw.setdefault("poll_interval", 0)
    return HTTPRecordStore(BASE, session=session, **kw)


async def test_append_load_and_update():
    backend = FakeDocumentStore()
    store = make_store(backend, token="tok")

    stored = await store.append(Record("H1", T0))
    assert stored.store_key == "doc1"
    assert backend.docs["doc1"]["id"] == "H1"
    assert backend.docs["doc1"]["status"] == "borrowed"
    assert backend.calls[0][3]["Authorization"] == "Bearer tok"

    await store.update_status("doc1", RecordStatus.RETURNED, T0)
    assert backend.docs["doc1"]["status"] == "returned"
    assert backend.docs["doc1"]["returnDate"] == "2024-05-01T09:00:00.000Z"

    loaded = await store.load_all()
    assert len(loaded) == 1
    assert loaded[0].store_key == "doc1"
    assert loaded[0].status is RecordStatus.RETURNED

    await store.close()
    assert backend.closed


async def test_readiness_is_polled_then_cached():
    backend = FakeDocumentStore(ready_after=2)
    store = make_store(backend)
    await store.load_all()
    await store.append(Record("H2", T0))
    assert backend.ready_polls == 3
    assert store.is_ready


async def test_not_ready_in_time_raises_store_unavailable():
    backend = FakeDocumentStore(ready_after=1000)
    store = make_store(backend, ready_timeout=0)
    with pytest.raises(StoreUnavailable):
        await store.load_all()
    assert not store.is_ready

    # handshake is retried after a failure
    backend.ready_after = 0
    assert await store.load_all() == []


async def test_unknown_key_raises_record_not_found():
    store = make_store(FakeDocumentStore())
    with pytest.raises(RecordNotFound):
        await store.update_status("ghost", RecordStatus.RETURNED, T0)


async def test_connection_errors_map_to_store_unavailable():
    backend = FakeDocumentStore()
    store = make_store(backend)
    await store.ensure_ready()
    backend.offline = True
    with pytest.raises(StoreUnavailable):
        await store.append(Record("H3", T0))


async def test_client_errors_map_to_store_error(monkeypatch):
    backend = FakeDocumentStore()
    monkeypatch.setattr(backend, "request", lambda *a, **kw: FakeResponse(400, {"error": "bad"}))
    store = make_store(backend)
    with pytest.raises(StoreError) as exc:
        await store.append(Record("H4", T0))
    assert not isinstance(exc.value, StoreUnavailable)


async def test_reconciler_over_http_store():
    backend = FakeDocumentStore()
    reconciler = ScanReconciler(make_store(backend))
    await reconciler.load()

    assert (await reconciler.handle_borrow_scan("NET-1")).kind is OutcomeKind.BORROWED
    assert (await reconciler.handle_borrow_scan("NET-1")).kind is OutcomeKind.REJECTED_ALREADY_BORROWED

    backend.offline = True
    failed = await reconciler.handle_return_scan("NET-1")
    assert failed.kind is OutcomeKind.FAILED
    assert reconciler.records[0].status is RecordStatus.BORROWED

    backend.offline = False
    assert (await reconciler.handle_return_scan("NET-1")).kind is OutcomeKind.RETURNED
    assert backend.docs["doc1"]["status"] == "returned"


async def test_non_object_readiness_body_means_not_ready(monkeypatch):
    backend = FakeDocumentStore()
    monkeypatch.setattr(backend, "get", lambda *a, **kw: FakeResponse(200, ["ok"]))
    reconciler = ScanReconciler(make_store(backend, ready_timeout=0))

    out = await reconciler.handle_borrow_scan("A1")
    assert out.kind is OutcomeKind.FAILED
    assert out.reason.startswith("StoreUnavailable")
    assert reconciler.records == ()


async def test_non_object_write_body_fails_the_scan(monkeypatch):
    backend = FakeDocumentStore()
    monkeypatch.setattr(backend, "request", lambda *a, **kw: FakeResponse(201, ["doc1"]))
    reconciler = ScanReconciler(make_store(backend))

    out = await reconciler.handle_borrow_scan("A2")
    assert out.kind is OutcomeKind.FAILED
    assert out.reason.startswith("StoreError")
    assert reconciler.records == ()


@pytest.mark.parametrize("listing", [
    ["not", "an", "object"],
    {"documents": "nope"},
    {"documents": [{"key": "doc1"}]},
    {"documents": [{"key": "doc1", "fields": {"id": "A3", "borrowDate": 12345}}]},
    {"documents": [{"key": "doc1", "fields": {"id": "A3", "borrowDate": "yesterday"}}]},
])
async def test_malformed_listing_raises_store_error(monkeypatch, listing):
    backend = FakeDocumentStore()
    monkeypatch.setattr(backend, "request", lambda *a, **kw: FakeResponse(200, listing))
    store = make_store(backend)
    with pytest.raises(StoreError):
        await store.load_all()
