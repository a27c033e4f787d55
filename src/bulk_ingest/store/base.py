"""
Content store interface.

The bulk pipeline only needs three primitives from the store: put one
envelope, list the content IDs under a prefix page by page, and delete a set
of IDs. Implementations raise ``StoreError`` for every storage failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, List, Optional


class ContentStore(ABC):

    @abstractmethod
    def put_envelope(self, content_id: str, envelope: Any) -> None:
        """Store (or overwrite) the envelope for content_id."""

    @abstractmethod
    def list_content(self, base: str, page_size: int = 100) -> Iterator[List[str]]:
        """
        Yield pages of content IDs starting with ``base``, ordered by ID.
        The last page yielded is always empty.
        """

    @abstractmethod
    def delete_envelopes(self, content_ids: Iterable[str]) -> None:
        """Remove every listed content ID. Unknown IDs are ignored."""

    @abstractmethod
    def get_envelope(self, content_id: str) -> Optional[Any]:
        """Return the stored envelope or None."""
