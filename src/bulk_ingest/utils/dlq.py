import json
import logging
import os
import time
import uuid
from typing import Any, Optional

logger = logging.getLogger(__name__)


def write_dlq(task: Any, error: str, exc_trace: Optional[str] = None, dlq_dir: Optional[str] = None) -> Optional[str]:
    """
    Write a dead-letter entry for an envelope that could not be stored.
    Returns the written path, or None when dead-lettering is disabled.

    Stored fields:
      - content_id, attempts
      - error (string) and trace (full traceback string, optional)
      - ts, uuid
      - envelope (the parsed payload, so it can be replayed later)
    """
    if not dlq_dir:
        return None
    os.makedirs(dlq_dir, exist_ok=True)
    entry = {
        "content_id": getattr(task, "content_id", None),
        "attempts": getattr(task, "attempts", None),
        "error": error,
        "trace": exc_trace,
        "ts": time.time(),
        "uuid": uuid.uuid4().hex,
        "envelope": getattr(task, "envelope", None),
    }

    fname = f"dlq_{int(entry['ts'])}_{entry['uuid']}.json"
    out_path = os.path.join(dlq_dir, fname)
    with open(out_path, "w", encoding="utf-8") as fh:
        json.dump(entry, fh, indent=2, default=str)
    logger.debug("Wrote dead-letter entry content_id=%s path=%s", entry["content_id"], out_path)
    return out_path
