"""
Entry classification by path.

An entry directly inside a ``metadata`` directory is a directive
(``config.json`` or ``keep.json``); any other ``*.json`` file is an envelope
whose content ID is the percent-decoded base name without the suffix.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote

from bulk_ingest.utils.constants import CONFIG_ENTRY, ENVELOPE_SUFFIX, KEEP_ENTRY, METADATA_DIR


class EntryKind(str, Enum):
    CONFIG = "config"
    KEEP = "keep"
    ENVELOPE = "envelope"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Classification:
    kind: EntryKind
    content_id: Optional[str] = None
    reason: Optional[str] = None


def decode_content_id(base_name: str) -> str:
    """Strip the .json suffix and percent-decode. Raises ValueError on bad encoding."""
    encoded = base_name[:-len(ENVELOPE_SUFFIX)]
    return unquote(encoded, errors="strict")


def classify(path: str) -> Classification:
    dname = posixpath.dirname(path).split("/")[-1]
    bname = posixpath.basename(path)

    if dname == METADATA_DIR:
        if bname == CONFIG_ENTRY:
            return Classification(EntryKind.CONFIG)
        if bname == KEEP_ENTRY:
            return Classification(EntryKind.KEEP)
        return Classification(EntryKind.IGNORED, reason="Unrecognized metadata entry")

    if bname.endswith(ENVELOPE_SUFFIX):
        try:
            content_id = decode_content_id(bname)
        except UnicodeDecodeError:
            return Classification(EntryKind.IGNORED, reason="Content ID is not valid percent-encoded UTF-8")
        if not content_id:
            return Classification(EntryKind.IGNORED, reason="Empty content ID")
        return Classification(EntryKind.ENVELOPE, content_id=content_id)

    return Classification(EntryKind.IGNORED, reason="Unrecognized entry")
