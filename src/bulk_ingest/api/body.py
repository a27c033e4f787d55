import threading
from queue import Full, Queue
from typing import Union

from bulk_ingest.errors import ArchiveDecodeError
from bulk_ingest.utils.constants import DEFAULT_BODY_QUEUE_SIZE, SENTINEL


class RequestBodyReader:
    """
    Blocking file-like view over a request body that arrives asynchronously.

    The event loop feeds chunks (through the thread pool, since ``feed`` may
    block while the bounded buffer is full); the archive decoder reads them on
    a worker thread. Once the reader is abandoned, further chunks are dropped
    so the feeding side never blocks on a consumer that has stopped reading.
    """
    def __init__(self, queue_size: int = DEFAULT_BODY_QUEUE_SIZE):
        self._chunks: Queue = Queue(maxsize=max(1, int(queue_size)))
        self._buffer = bytearray()
        self._abandoned = threading.Event()
        self._finished = False

    def feed(self, chunk: Union[bytes, BaseException, object]) -> bool:
        """Queue a chunk; returns False when the reader has been abandoned."""
        while not self._abandoned.is_set():
            try:
                self._chunks.put(chunk, timeout=0.1)
                return True
            except Full:
                continue
        return False

    def finish(self) -> bool:
        return self.feed(SENTINEL)

    def fail(self, exc: BaseException) -> bool:
        return self.feed(exc)

    def abandon(self):
        self._abandoned.set()

    def _pull(self):
        item = self._chunks.get()
        if item is SENTINEL:
            self._finished = True
        elif isinstance(item, BaseException):
            self._finished = True
            raise ArchiveDecodeError("Request body ended unexpectedly", item)
        else:
            self._buffer += item

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            while not self._finished:
                self._pull()
            size = len(self._buffer)
        while len(self._buffer) < size and not self._finished:
            self._pull()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data
