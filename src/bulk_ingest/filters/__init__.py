from bulk_ingest.filters.archive import ArchiveEntry, iter_entries
from bulk_ingest.filters.classifier import Classification, EntryKind, classify
from bulk_ingest.filters.materializer import materialize

__all__ = ["ArchiveEntry", "Classification", "EntryKind", "classify", "iter_entries", "materialize"]
