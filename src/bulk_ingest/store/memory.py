import copy
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional

from bulk_ingest.store.base import ContentStore


class MemoryContentStore(ContentStore):
    """Dict-backed store for development runs. Same semantics as the SQLite store."""

    def __init__(self, envelopes: Optional[Dict[str, Any]] = None):
        self._lock = threading.Lock()
        self._envelopes: Dict[str, Any] = dict(envelopes or {})

    def put_envelope(self, content_id: str, envelope: Any) -> None:
        with self._lock:
            self._envelopes[content_id] = copy.deepcopy(envelope)

    def list_content(self, base: str, page_size: int = 100) -> Iterator[List[str]]:
        page_size = max(1, int(page_size))
        with self._lock:
            ids = sorted(cid for cid in self._envelopes if cid.startswith(base))
        for i in range(0, len(ids), page_size):
            yield ids[i:i + page_size]
        yield []

    def delete_envelopes(self, content_ids: Iterable[str]) -> None:
        with self._lock:
            for cid in content_ids:
                self._envelopes.pop(cid, None)

    def get_envelope(self, content_id: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._envelopes.get(content_id))

    def content_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._envelopes)
