import json
import sqlite3
import threading
from typing import Any, Iterable, Iterator, List, Optional

from bulk_ingest.errors import StoreError
from bulk_ingest.store.base import ContentStore


class SQLiteContentStore(ContentStore):
    """
    Persistent content store using SQLite.
    Stores content_id -> JSON encoded envelope.
    Thread-safe: the ingestion workers share one connection behind a lock.
    """
    def __init__(self, db_path="content.db"):
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.lock = threading.Lock()
        self._init_table()

    def _init_table(self):
        with self.conn:
            self.conn.execute("""
            CREATE TABLE IF NOT EXISTS envelopes (
                content_id TEXT PRIMARY KEY,
                envelope TEXT NOT NULL,
                last_ts INTEGER
            )
            """)

    def put_envelope(self, content_id: str, envelope: Any) -> None:
        try:
            body = json.dumps(envelope)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Envelope for {content_id} is not serializable: {e}") from e
        with self.lock:
            try:
                # UPSERT so re-uploads overwrite in place
                self.conn.execute(
                    "INSERT INTO envelopes(content_id, envelope, last_ts) VALUES(?,?,strftime('%s','now')) "
                    "ON CONFLICT(content_id) DO UPDATE SET envelope=excluded.envelope, last_ts=strftime('%s','now')",
                    (content_id, body)
                )
                self.conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Unable to store {content_id}: {e}") from e

    def list_content(self, base: str, page_size: int = 100) -> Iterator[List[str]]:
        page_size = max(1, int(page_size))
        last = None
        while True:
            with self.lock:
                try:
                    if last is None:
                        cur = self.conn.execute(
                            "SELECT content_id FROM envelopes WHERE substr(content_id, 1, ?) = ? "
                            "ORDER BY content_id LIMIT ?",
                            (len(base), base, page_size)
                        )
                    else:
                        cur = self.conn.execute(
                            "SELECT content_id FROM envelopes WHERE substr(content_id, 1, ?) = ? AND content_id > ? "
                            "ORDER BY content_id LIMIT ?",
                            (len(base), base, last, page_size)
                        )
                    page = [row[0] for row in cur.fetchall()]
                except sqlite3.Error as e:
                    raise StoreError(f"Unable to list content under {base!r}: {e}") from e
            yield page
            if not page:
                return
            last = page[-1]

    def delete_envelopes(self, content_ids: Iterable[str]) -> None:
        ids = [(cid,) for cid in content_ids]
        if not ids:
            return
        with self.lock:
            try:
                with self.conn:
                    self.conn.executemany("DELETE FROM envelopes WHERE content_id=?", ids)
            except sqlite3.Error as e:
                raise StoreError(f"Unable to delete {len(ids)} envelope(s): {e}") from e

    def get_envelope(self, content_id: str) -> Optional[Any]:
        with self.lock:
            cur = self.conn.execute("SELECT envelope FROM envelopes WHERE content_id=?", (content_id,))
            row = cur.fetchone()
        if not row:
            return None
        return json.loads(row[0])

    def close(self):
        with self.lock:
            self.conn.close()
