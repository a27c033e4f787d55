import logging
import threading
import time
import traceback
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Iterator, List, Optional

from bulk_ingest.store.base import ContentStore
from bulk_ingest.utils.constants import DEFAULT_CONCURRENCY, SENTINEL
from bulk_ingest.utils.dlq import write_dlq
from bulk_ingest.utils.retry import call_with_retry
from bulk_ingest.utils.thread_log import log_end, log_start

logger = logging.getLogger(__name__)


@dataclass
class IngestionTask:
    content_id: str
    envelope: Any
    attempts: int = 0


@dataclass
class IngestionResult:
    content_id: str
    elapsed: float
    attempts: int
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IngestionQueue:
    """
    Fixed-size pool of worker threads storing envelopes.

    Workers never touch request state: every finished task is reported as an
    IngestionResult on a result queue which the coordinating thread drains
    with ``results()``. ``drained`` is set once ``close()`` has been called
    and no task is pending or in flight; closing an idle pool sets it
    immediately.
    """
    def __init__(self, store: ContentStore, concurrency: int = DEFAULT_CONCURRENCY, max_attempts: int = 1,
                 retry_backoff: float = 0.2, dlq_dir: Optional[str] = None):
        self.store = store
        self.concurrency = max(1, int(concurrency))
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff = float(retry_backoff)
        self.dlq_dir = dlq_dir

        self.drained = threading.Event()
        self.threads: List[threading.Thread] = []
        self._tasks: Queue = Queue()
        self._results: Queue = Queue()
        self._cond = threading.Condition()
        self._outstanding = 0
        self._closed = False

    def start(self):
        for i in range(self.concurrency):
            t = threading.Thread(target=self._worker, name=f"ingest-worker-{i}", daemon=True)
            t.start()
            self.threads.append(t)
        logger.debug("Started ingestion queue with %d worker(s)", self.concurrency)

    @property
    def outstanding(self) -> int:
        """Tasks submitted and not yet finished (pending plus in flight)."""
        with self._cond:
            return self._outstanding

    def submit(self, task: IngestionTask):
        with self._cond:
            if self._closed:
                raise RuntimeError("Ingestion queue is closed")
            self._outstanding += 1
        self._tasks.put(task)

    def close(self):
        """Mark end of input. No more tasks may be submitted."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            if self._outstanding == 0:
                self.drained.set()
            self._cond.notify_all()
        # one SENTINEL per worker so every worker exits once the queue empties
        for _ in self.threads:
            self._tasks.put(SENTINEL)

    def abort(self) -> int:
        """
        Discard tasks that have not started yet and close the queue.
        Tasks already in flight run to completion. Returns the number discarded.
        """
        discarded = 0
        sentinels = 0
        while True:
            try:
                item = self._tasks.get_nowait()
            except Empty:
                break
            self._tasks.task_done()
            if item is SENTINEL:
                sentinels += 1
                continue
            discarded += 1
            self._finish_one()
        for _ in range(sentinels):
            self._tasks.put(SENTINEL)
        self.close()
        if discarded:
            logger.debug("Discarded %d pending envelope(s)", discarded)
        return discarded

    def wait_for_drain(self, timeout: Optional[float] = None) -> bool:
        """Block until drained; then let the worker threads exit."""
        if not self.drained.wait(timeout):
            return False
        for t in self.threads:
            t.join(0.5)
        return True

    def results(self) -> Iterator[IngestionResult]:
        """Yield the results reported so far without blocking."""
        while True:
            try:
                yield self._results.get_nowait()
            except Empty:
                return

    def _finish_one(self):
        with self._cond:
            self._outstanding -= 1
            if self._closed and self._outstanding == 0:
                self.drained.set()
            self._cond.notify_all()

    def _store_task(self, task: IngestionTask):
        self.store.put_envelope(task.content_id, task.envelope)

    def _worker(self):
        while True:
            item = self._tasks.get()
            if item is SENTINEL:
                self._tasks.task_done()
                break

            log_start("store", item)
            start = time.time()
            error = None
            try:
                call_with_retry(self._store_task, item, max_attempts=self.max_attempts, backoff=self.retry_backoff)
            except Exception as e:
                error = e
                trace = traceback.format_exc()
                try:
                    write_dlq(item, str(e), exc_trace=trace, dlq_dir=self.dlq_dir)
                except OSError as dlq_e:
                    logger.warning("Failed to write dead-letter entry content_id=%s: %s", item.content_id, dlq_e)
            elapsed = time.time() - start
            log_end("store", item, status="done" if error is None else "error", elapsed=elapsed)

            # report before decrementing so a drained queue has every result queued
            self._results.put(IngestionResult(item.content_id, elapsed, item.attempts, error))
            self._finish_one()
            self._tasks.task_done()
