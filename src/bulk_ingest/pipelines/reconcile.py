"""
Deletion reconciliation.

Content under the batch's content ID base that is neither part of the batch
nor explicitly kept is removed from the store. The keep-set records which
IDs were present in the upload, not which were stored successfully, so an
envelope that failed to store is never deleted here.
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, List

from bulk_ingest.errors import ReconciliationError, StoreError
from bulk_ingest.store.base import ContentStore
from bulk_ingest.utils.constants import DEFAULT_LIST_PAGE_SIZE

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    existing_count: int = 0
    deleted: List[str] = field(default_factory=list)

    @property
    def deletion_count(self) -> int:
        return len(self.deleted)


def list_existing(store: ContentStore, content_id_base: str, page_size: int = DEFAULT_LIST_PAGE_SIZE) -> List[str]:
    """Collect every content ID under the base, stopping at the first empty page."""
    existing: List[str] = []
    try:
        for page in store.list_content(content_id_base, page_size):
            if not page:
                break
            logger.debug("Listed %d existing content ID(s) under %r", len(page), content_id_base)
            existing.extend(page)
    except StoreError as e:
        raise ReconciliationError("Unable to list existing content", e) from e
    return existing


def reconcile(store: ContentStore, content_id_base: str, to_keep: AbstractSet[str],
              page_size: int = DEFAULT_LIST_PAGE_SIZE) -> ReconcileResult:
    existing = list_existing(store, content_id_base, page_size)
    to_delete = [cid for cid in existing if cid not in to_keep]

    logger.debug("Deleting removed envelopes. deletionCount=%d", len(to_delete))
    if to_delete:
        try:
            store.delete_envelopes(to_delete)
        except StoreError as e:
            raise ReconciliationError("Unable to delete removed content", e) from e
        logger.debug("Envelopes deleted.")

    return ReconcileResult(existing_count=len(existing), deleted=to_delete)
