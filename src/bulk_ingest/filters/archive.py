"""
Incremental tar(.gz) decoding.

Entries are yielded one at a time while the underlying stream is still being
read, so an archive is never held in memory as a whole. In stream mode tarfile
reads forward only: each entry's content must be consumed before the next
entry is requested.

Gzip decoding is done here rather than by tarfile so that a truncated or
corrupted compressed stream is reported as an error instead of looking like
an early end of archive.
"""

import tarfile
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from bulk_ingest.errors import ArchiveDecodeError

GZIP_MAGIC = b"\x1f\x8b"
READ_SIZE = 64 * 1024


@dataclass
class ArchiveEntry:
    path: str
    is_file: bool
    stream: Optional[BinaryIO] = None
    size: Optional[int] = None


class ArchiveStream:
    """
    Read-only stream over a possibly gzip-compressed tar body.
    Compression is detected from the first bytes; anything else is passed
    through as a plain tar stream.
    """
    def __init__(self, raw):
        self._raw = raw
        self._buffer = bytearray()
        self._decompressor = None
        self._raw_eof = False
        self._detected = False

    def _detect(self):
        self._detected = True
        head = self._raw.read(READ_SIZE)
        if not head:
            self._raw_eof = True
            return
        if head[:2] == GZIP_MAGIC:
            self._decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
            self._decompress(head)
        else:
            self._buffer += head

    def _decompress(self, data: bytes):
        while data:
            try:
                self._buffer += self._decompressor.decompress(data)
            except zlib.error as e:
                raise ArchiveDecodeError("Corrupted compressed archive", e) from e
            if not self._decompressor.eof:
                return
            # concatenated gzip members; trailing NUL padding is tolerated
            data = self._decompressor.unused_data
            if not data.strip(b"\0"):
                self._decompressor = _FinishedDecompressor()
                return
            self._decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)

    def _fill(self):
        chunk = self._raw.read(READ_SIZE)
        if not chunk:
            self._raw_eof = True
            if self._decompressor is not None and not self._decompressor.eof:
                raise ArchiveDecodeError("Compressed archive ended unexpectedly")
            return
        if self._decompressor is not None:
            if isinstance(self._decompressor, _FinishedDecompressor):
                if chunk.strip(b"\0"):
                    raise ArchiveDecodeError("Unexpected data after the end of the compressed archive")
                return
            self._decompress(chunk)
        else:
            self._buffer += chunk

    def read(self, size: int = -1) -> bytes:
        if not self._detected:
            self._detect()
        if size is None or size < 0:
            while not self._raw_eof:
                self._fill()
            size = len(self._buffer)
        while len(self._buffer) < size and not self._raw_eof:
            self._fill()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


class _FinishedDecompressor:
    eof = True


def _check_trailer(tar: tarfile.TarFile):
    # tarfile stops at the first zero block or at a header it cannot parse;
    # only zero padding may follow a real end-of-archive marker.
    while True:
        try:
            chunk = tar.fileobj.read(READ_SIZE)
        except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
            raise ArchiveDecodeError("Unable to read archive", e) from e
        if not chunk:
            return
        if chunk.strip(b"\0"):
            raise ArchiveDecodeError("Invalid tar header in archive")


def iter_entries(fileobj) -> Iterator[ArchiveEntry]:
    """
    Yield ArchiveEntry objects in archive order.
    Raises ArchiveDecodeError when the stream is not a readable archive.
    """
    stream = ArchiveStream(fileobj)
    try:
        tar = tarfile.open(fileobj=stream, mode="r|")
    except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
        raise ArchiveDecodeError("Unable to read archive", e) from e

    with tar:
        while True:
            try:
                member = tar.next()
            except ArchiveDecodeError:
                raise
            except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
                raise ArchiveDecodeError("Unable to read archive", e) from e
            if member is None:
                break
            if member.isfile():
                yield ArchiveEntry(member.name, True, tar.extractfile(member), member.size)
            else:
                yield ArchiveEntry(member.name, False)
        _check_trailer(tar)
