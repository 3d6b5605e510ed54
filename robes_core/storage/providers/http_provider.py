# robes_core/storage/providers/http_provider.py
from __future__ import annotations
import asyncio
import time
from typing import Any, Dict, List, Optional

import requests

from robes_core.logger import get_logger
from robes_core.storage.models import Record, RecordStatus
from robes_core.storage.provider import RecordStore, RecordNotFound, StoreError, StoreUnavailable
from robes_core.utils import to_iso

log = get_logger("robes.Store.HTTP")


class HTTPRecordStore(RecordStore):
    """
    Remote document-collection store reached over HTTP.

    Endpoints (relative to ``base_url``):
      GET   /readyz                                   -> {"status": "ok"}
      GET   /collections/{collection}/documents       -> {"documents": [{"key", "fields"}]}
      POST  /collections/{collection}/documents       -> {"key"}
      PATCH /collections/{collection}/documents/{key} -> 404 when unknown

    Blocking ``requests`` calls run in a worker thread so the event loop
    suspends instead of stalling. Backend readiness is awaited once before
    first use; a successful handshake is cached, a failed one is retried on
    the next call.
    """
    name = "http"

    def __init__(
        self,
        base_url: str,
        collection: str = "robes",
        token: Optional[str] = None,
        ready_timeout: float = 10.0,
        poll_interval: float = 0.5,
        request_timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self._token = token
        self._ready: Optional[asyncio.Future] = None

    @property
    def documents_url(self) -> str:
        return f"{self.base_url}/collections/{self.collection}/documents"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # ------------------------------------------------------------------
    # Readiness handshake
    # ------------------------------------------------------------------
    async def ensure_ready(self) -> None:
        fut = self._ready
        if fut is None or (fut.done() and (fut.cancelled() or fut.exception() is not None)):
            fut = asyncio.ensure_future(self._wait_until_ready())
            self._ready = fut
        await fut

    @property
    def is_ready(self) -> bool:
        fut = self._ready
        return bool(fut and fut.done() and not fut.cancelled() and fut.exception() is None)

    async def _wait_until_ready(self) -> None:
        url = f"{self.base_url}/readyz"
        deadline = time.monotonic() + self.ready_timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                res = await asyncio.to_thread(
                    self.session.get, url, headers=self._headers(), timeout=self.request_timeout
                )
                body = res.json() if res.ok else None
                if isinstance(body, dict) and body.get("status") == "ok":
                    log.info(f"[HTTP READY] {url} after {attempts} attempt(s)")
                    return
                log.debug(f"[HTTP READY] {url} not ready: {res.status_code}")
            except (requests.RequestException, ValueError) as e:
                log.debug(f"[HTTP READY] {url} unreachable: {e}")

            if time.monotonic() >= deadline:
                log.error(f"[HTTP READY] gave up on {url} after {attempts} attempt(s)")
                raise StoreUnavailable(f"store at {self.base_url} not ready within {self.ready_timeout}s")
            await asyncio.sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    async def _request(self, method: str, url: str, payload: Optional[dict] = None,
                       key: Optional[str] = None) -> Any:
        await self.ensure_ready()
        log.debug(f"[HTTP {method}] → {url}")
        try:
            res = await asyncio.to_thread(
                self.session.request, method, url,
                json=payload, headers=self._headers(), timeout=self.request_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise StoreUnavailable(f"{method} {url}: {e}") from e
        except requests.RequestException as e:
            raise StoreError(f"{method} {url}: {e}") from e

        if res.status_code == 404 and key is not None:
            raise RecordNotFound(key)
        if res.status_code >= 500:
            raise StoreUnavailable(f"{method} {url}: {res.status_code} {res.text}")
        if not res.ok:
            raise StoreError(f"{method} {url}: {res.status_code} {res.text}")
        if not res.content:
            return None
        try:
            body = res.json()
        except ValueError as e:
            raise StoreError(f"{method} {url}: invalid JSON response") from e
        if not isinstance(body, dict):
            raise StoreError(f"{method} {url}: expected a JSON object, got {type(body).__name__}")
        return body

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    async def load_all(self) -> List[Record]:
        body = await self._request("GET", self.documents_url) or {}
        docs = body.get("documents", [])
        if not isinstance(docs, list):
            raise StoreError("documents listing is not a list")
        records = []
        for doc in docs:
            if not isinstance(doc, dict) or not isinstance(doc.get("fields"), dict):
                raise StoreError(f"malformed document in {self.collection}: {doc!r}")
            try:
                records.append(Record.from_document(doc["fields"], key=doc.get("key")))
            except ValueError as e:
                raise StoreError(f"malformed document {doc.get('key')!r}: {e}") from e
        log.info(f"[HTTP LOAD] {len(records)} record(s) from {self.collection}")
        return records

    async def append(self, record: Record) -> Record:
        body = await self._request("POST", self.documents_url, {"fields": record.to_document()}) or {}
        key = body.get("key")
        if not key:
            raise StoreError("store did not return a document key")
        return record.with_key(str(key))

    async def update_status(self, key: str, status: RecordStatus, returned_at) -> None:
        fields = {"status": status.value, "returnDate": to_iso(returned_at)}
        await self._request("PATCH", f"{self.documents_url}/{key}", {"fields": fields}, key=key)

    async def close(self) -> None:
        self.session.close()
