from bulk_ingest.store.base import ContentStore
from bulk_ingest.store.memory import MemoryContentStore
from bulk_ingest.store.sqlite import SQLiteContentStore

__all__ = ["ContentStore", "MemoryContentStore", "SQLiteContentStore"]
