import threading

import pytest

from bulk_ingest.api.body import RequestBodyReader
from bulk_ingest.errors import ArchiveDecodeError


def test_reads_across_chunks():
    reader = RequestBodyReader(queue_size=4)
    reader.feed(b"abc")
    reader.feed(b"defg")
    reader.finish()
    assert reader.read(5) == b"abcde"
    assert reader.read(10) == b"fg"
    assert reader.read(10) == b""


def test_read_all():
    reader = RequestBodyReader()
    reader.feed(b"12")
    reader.feed(b"34")
    reader.finish()
    assert reader.read() == b"1234"


def test_failure_surfaces_as_decode_error():
    reader = RequestBodyReader()
    reader.feed(b"partial")
    reader.fail(ConnectionError("client went away"))
    with pytest.raises(ArchiveDecodeError):
        reader.read(100)


def test_abandon_unblocks_feeder():
    reader = RequestBodyReader(queue_size=1)
    assert reader.feed(b"first")
    results = []
    feeder = threading.Thread(target=lambda: results.append(reader.feed(b"second")))
    feeder.start()
    reader.abandon()
    feeder.join(2)
    assert not feeder.is_alive()
    assert results == [False]
