import json
import tarfile
import zlib
from typing import Any

from bulk_ingest.errors import ParseError
from bulk_ingest.filters.archive import ArchiveEntry


def materialize(entry: ArchiveEntry) -> Any:
    """
    Read the entry's content to completion and parse it as JSON.

    Raises ParseError (carrying the entry path) when the content cannot be
    read, is shorter or longer than the size the archive declares, is not
    UTF-8, or is not valid JSON.
    """
    if entry.stream is None:
        raise ParseError("Entry has no content", path=entry.path)
    try:
        data = entry.stream.read()
    except (tarfile.TarError, EOFError, OSError, zlib.error) as e:
        raise ParseError("Unable to read entry", path=entry.path, cause=e) from e

    if entry.size is not None and len(data) != entry.size:
        raise ParseError(f"Expected {entry.size} bytes, read {len(data)}", path=entry.path)

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError("Entry is not valid UTF-8", path=entry.path, cause=e) from e

    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ParseError("Entry is not valid JSON", path=entry.path, cause=e) from e
