"""
Bulk ingestion of content-metadata envelopes from a tar archive.

Flow: archive stream -> BatchCoordinator -> (classifier -> config/keep
handling | IngestionQueue) -> end of stream -> reconciliation -> completion.
"""

from bulk_ingest.pipelines.batch import BatchCoordinator, BatchOutcome, RequestState
from bulk_ingest.pipelines.ingestion_queue import IngestionQueue, IngestionTask
from bulk_ingest.store.base import ContentStore

__all__ = [
    "BatchCoordinator",
    "BatchOutcome",
    "ContentStore",
    "IngestionQueue",
    "IngestionTask",
    "RequestState",
]
