"""
Batch coordination for one bulk upload.

The coordinator reads archive entries in order on a single thread, handles
config and keep directives itself, and hands parsed envelopes to an
IngestionQueue. Once the archive is exhausted and the queue has drained, the
reconciliation pass runs (when a content ID base was declared) and the
completion summary is produced. Every request ends in exactly one of: a
returned BatchOutcome, or a raised BulkIngestError.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from pydantic import BaseModel, Field, ValidationError

from bulk_ingest.config import Settings
from bulk_ingest.errors import ArchiveDecodeError, ParseError, ReconciliationError
from bulk_ingest.filters.archive import ArchiveEntry, iter_entries
from bulk_ingest.filters.classifier import EntryKind, classify
from bulk_ingest.filters.materializer import materialize
from bulk_ingest.pipelines.ingestion_queue import IngestionQueue, IngestionTask
from bulk_ingest.pipelines.reconcile import reconcile
from bulk_ingest.store.base import ContentStore
from bulk_ingest.utils.metrics import StorageMetrics

logger = logging.getLogger(__name__)


class ConfigDirective(BaseModel):
    contentIDBase: str = Field(min_length=1)


class KeepDirective(BaseModel):
    keep: List[Any]


class BatchOutcome(BaseModel):
    """Final counts reported once a batch completes successfully."""
    accepted_count: int
    failed_count: int
    deleted_count: int
    duration: float
    reconciled: bool
    avg_storage_latency: float = 0.0


@dataclass
class RequestState:
    content_id_base: Optional[str] = None
    envelope_count: int = 0
    failure_count: int = 0
    deletion_count: int = 0
    to_keep: Set[str] = field(default_factory=set)


def _describe(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ())) or "document"
    if err.get("type") == "missing":
        return f"Missing required key: {loc}"
    return f"Invalid value for {loc}: {err.get('msg')}"


class BatchCoordinator:
    def __init__(self, store: ContentStore, settings: Optional[Settings] = None, principal: str = "anonymous"):
        self.store = store
        self.settings = settings or Settings()
        self.principal = principal
        self.state = RequestState()
        self.metrics = StorageMetrics()
        self._start = None

    def run(self, fileobj) -> BatchOutcome:
        """
        Process one archive stream. Returns the completion outcome, or raises
        ArchiveDecodeError (client error) / ReconciliationError (server error).
        """
        self._start = time.time()
        # one RequestState per request
        self.state = RequestState()
        self.metrics = StorageMetrics()
        queue = IngestionQueue(
            self.store,
            concurrency=self.settings.concurrency,
            max_attempts=self.settings.store_attempts,
            retry_backoff=self.settings.retry_backoff,
            dlq_dir=self.settings.dlq_dir,
        )
        queue.start()

        try:
            for entry in iter_entries(fileobj):
                self._dispatch(entry, queue)
                self._collect(queue)
        except ArchiveDecodeError as e:
            queue.abort()
            queue.wait_for_drain()
            self._collect(queue)
            logger.info("Corrupted tarball uploaded apikeyName=%s err=%s cause=%s",
                        self.principal, e.message, e.cause)
            raise
        except Exception:
            queue.abort()
            queue.wait_for_drain()
            self._collect(queue)
            raise

        # in-flight storage may still be running after the last entry
        queue.close()
        queue.wait_for_drain()
        self._collect(queue)

        try:
            self._remove_deleted_content()
        except ReconciliationError as e:
            self._report_error(e.cause or e, None, "deleted content removal", fatal=True)
            raise

        return self._report_completion()

    def _elapsed(self) -> float:
        return time.time() - self._start

    def _report_error(self, err: BaseException, entry_path: Optional[str], description: str, fatal: bool = False):
        if fatal:
            logger.error("Fatal bulk upload problem: %s apikeyName=%s entryPath=%s err=%s totalReqDuration=%.3f",
                         description, self.principal, entry_path, err, self._elapsed())
        else:
            logger.warning("Bulk upload problem: %s apikeyName=%s entryPath=%s err=%s totalReqDuration=%.3f",
                           description, self.principal, entry_path, err, self._elapsed())

    def _dispatch(self, entry: ArchiveEntry, queue: IngestionQueue):
        if not entry.is_file:
            return

        logger.debug("Received entry for path %s", entry.path)
        classification = classify(entry.path)

        if classification.kind is EntryKind.CONFIG:
            self._handle_config(entry)
        elif classification.kind is EntryKind.KEEP:
            self._handle_keep(entry)
        elif classification.kind is EntryKind.ENVELOPE:
            self._handle_envelope(entry, classification.content_id, queue)
        else:
            logger.warning("%s entryPath=%s", classification.reason, entry.path)

    def _parse_directive(self, entry: ArchiveEntry, model, description: str) -> Optional[Any]:
        try:
            payload = materialize(entry)
        except ParseError as e:
            self._report_error(e, entry.path, description)
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            self._report_error(ParseError(_describe(e), path=entry.path), entry.path, description)
            return None

    def _handle_config(self, entry: ArchiveEntry):
        config = self._parse_directive(entry, ConfigDirective, "parsing config.json")
        if config is not None:
            self.state.content_id_base = config.contentIDBase

    def _handle_keep(self, entry: ArchiveEntry):
        keep = self._parse_directive(entry, KeepDirective, "parsing keep.json")
        if keep is None:
            return
        for content_id in keep.keep:
            if isinstance(content_id, str):
                self.state.to_keep.add(content_id)
            else:
                self._report_error(ParseError(f"Ignoring non-string content ID {content_id!r}", path=entry.path),
                                   entry.path, "parsing keep.json")

    def _handle_envelope(self, entry: ArchiveEntry, content_id: str, queue: IngestionQueue):
        # kept even if the envelope later fails to parse or store
        self.state.to_keep.add(content_id)

        try:
            envelope = materialize(entry)
        except ParseError as e:
            self.state.failure_count += 1
            self._report_error(e, entry.path, "parsing metadata envelope")
            return

        queue.submit(IngestionTask(content_id, envelope))

    def _collect(self, queue: IngestionQueue):
        for result in queue.results():
            if result.ok:
                self.state.envelope_count += 1
                self.metrics.record_success(result.elapsed)
                logger.debug("Envelope stored successfully contentID=%s envelopeCount=%d failureCount=%d "
                             "storageDuration=%.4f", result.content_id, self.state.envelope_count,
                             self.state.failure_count, result.elapsed)
            else:
                self.state.failure_count += 1
                self.metrics.record_error(result.elapsed)
                self._report_error(result.error, None, f"storing metadata envelope {result.content_id}")

    def _remove_deleted_content(self):
        if not self.state.content_id_base:
            logger.debug("Skipping content deletion.")
            return

        result = reconcile(self.store, self.state.content_id_base, self.state.to_keep,
                           page_size=self.settings.list_page_size)
        self.state.deletion_count = result.deletion_count

    def _report_completion(self) -> BatchOutcome:
        outcome = BatchOutcome(
            accepted_count=self.state.envelope_count,
            failed_count=self.state.failure_count,
            deleted_count=self.state.deletion_count,
            duration=self._elapsed(),
            reconciled=self.state.content_id_base is not None,
            avg_storage_latency=self.metrics.avg_latency,
        )
        logger.info("Bulk content upload completed successfully. apikeyName=%s acceptedCount=%d failedCount=%d "
                    "deletedCount=%d totalReqDuration=%.3f", self.principal, outcome.accepted_count,
                    outcome.failed_count, outcome.deleted_count, outcome.duration)
        return outcome
