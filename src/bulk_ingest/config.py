"""
Service configuration.

Values come from environment variables (a local .env file is honoured) with
the defaults below. Numeric values are clamped so a bad override can never
produce an empty worker pool or an unbounded body buffer.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from bulk_ingest.utils.constants import (
    DEFAULT_BODY_QUEUE_SIZE,
    DEFAULT_CONCURRENCY,
    DEFAULT_LIST_PAGE_SIZE,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_STORE_ATTEMPTS,
)

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


@dataclass
class Settings:
    """
    Attributes:
        concurrency: concurrent storage puts per request.
        store_attempts: attempts per storage put (1 disables retry).
        retry_backoff: base of the exponential backoff between attempts.
        list_page_size: page size requested from the store during reconciliation.
        body_queue_size: request body chunks buffered ahead of the archive decoder.
        db_path: SQLite content store location.
        dlq_dir: dead-letter directory for envelopes that failed to store.
        log_level: root log level.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    store_attempts: int = DEFAULT_STORE_ATTEMPTS
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE
    body_queue_size: int = DEFAULT_BODY_QUEUE_SIZE
    db_path: str = "content.db"
    dlq_dir: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.concurrency = max(1, int(self.concurrency))
        self.store_attempts = max(1, int(self.store_attempts))
        self.retry_backoff = max(0.0, float(self.retry_backoff))
        self.list_page_size = max(1, int(self.list_page_size))
        self.body_queue_size = max(1, int(self.body_queue_size))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            concurrency=_env_int("BULK_INGEST_CONCURRENCY", DEFAULT_CONCURRENCY),
            store_attempts=_env_int("BULK_INGEST_STORE_ATTEMPTS", DEFAULT_STORE_ATTEMPTS),
            retry_backoff=_env_float("BULK_INGEST_RETRY_BACKOFF", DEFAULT_RETRY_BACKOFF),
            list_page_size=_env_int("BULK_INGEST_LIST_PAGE_SIZE", DEFAULT_LIST_PAGE_SIZE),
            body_queue_size=_env_int("BULK_INGEST_BODY_QUEUE_SIZE", DEFAULT_BODY_QUEUE_SIZE),
            db_path=os.getenv("BULK_INGEST_DB_PATH", "content.db"),
            dlq_dir=os.getenv("BULK_INGEST_DLQ_DIR") or None,
            log_level=os.getenv("BULK_INGEST_LOG_LEVEL", "INFO").upper(),
        )


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
