"""Shared builders and fakes for the test-suite."""
import io
import json
import tarfile
import threading
import time
from typing import Dict, Iterable, List, Optional

from bulk_ingest.errors import StoreError
from bulk_ingest.store.base import ContentStore


def make_archive(entries: Dict[str, object], directories: Iterable[str] = (), compress: bool = True) -> bytes:
    """
    Build a tar archive in memory. Values may be bytes, str, or anything JSON
    serializable (dumped as JSON).
    """
    buf = io.BytesIO()
    mode = "w:gz" if compress else "w"
    with tarfile.open(fileobj=buf, mode=mode) as tar:
        for d in directories:
            info = tarfile.TarInfo(d)
            info.type = tarfile.DIRTYPE
            tar.addfile(info)
        for path, value in entries.items():
            if isinstance(value, bytes):
                data = value
            elif isinstance(value, str):
                data = value.encode("utf-8")
            else:
                data = json.dumps(value).encode("utf-8")
            info = tarfile.TarInfo(path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeStore(ContentStore):
    """
    In-memory store that records every interaction.

    - fail_ids: puts for these IDs raise StoreError
    - delays: seconds to sleep inside put for a given ID
    - list_error / delete_error: raise StoreError from listing / deleting
    """
    def __init__(self, existing: Iterable[str] = (), fail_ids: Iterable[str] = (),
                 delays: Optional[Dict[str, float]] = None, list_error: bool = False,
                 delete_error: bool = False, put_delay: float = 0.0):
        self.envelopes: Dict[str, object] = {cid: {"existing": True} for cid in existing}
        self.fail_ids = set(fail_ids)
        self.delays = dict(delays or {})
        self.put_delay = put_delay
        self.list_error = list_error
        self.delete_error = delete_error

        self.lock = threading.Lock()
        self.events: List[tuple] = []
        self.put_calls: List[str] = []
        self.delete_calls: List[List[str]] = []
        self.list_calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def put_envelope(self, content_id, envelope):
        with self.lock:
            self.put_calls.append(content_id)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(content_id, self.put_delay)
            if delay:
                time.sleep(delay)
            if content_id in self.fail_ids:
                raise StoreError(f"put failed for {content_id}")
            with self.lock:
                self.envelopes[content_id] = envelope
        finally:
            with self.lock:
                self.in_flight -= 1
                self.events.append(("put", content_id))

    def list_content(self, base, page_size=100):
        with self.lock:
            self.list_calls.append(base)
            self.events.append(("list", base))
        if self.list_error:
            raise StoreError("listing unavailable")
        ids = sorted(cid for cid in self.envelopes if cid.startswith(base))
        for i in range(0, len(ids), page_size):
            yield ids[i:i + page_size]
        yield []

    def delete_envelopes(self, content_ids):
        ids = list(content_ids)
        with self.lock:
            self.delete_calls.append(ids)
            self.events.append(("delete", tuple(ids)))
        if self.delete_error:
            raise StoreError("deletion unavailable")
        with self.lock:
            for cid in ids:
                self.envelopes.pop(cid, None)

    def get_envelope(self, content_id):
        return self.envelopes.get(content_id)

    @property
    def deleted(self) -> List[str]:
        return [cid for call in self.delete_calls for cid in call]
