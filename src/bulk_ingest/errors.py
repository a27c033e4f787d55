from typing import Any, Dict, Optional


class BulkIngestError(Exception):
    """
    Base error. Carries a human readable message, the underlying cause (if
    any) and the HTTP status class the request should be answered with.
    """
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_payload(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class ArchiveDecodeError(BulkIngestError):
    """Corrupt or truncated archive stream. Fatal, client class."""
    status_code = 400


class ReconciliationError(BulkIngestError):
    """Listing or deletion failed while reconciling. Fatal, server class."""
    status_code = 500


class ParseError(BulkIngestError):
    """An entry could not be read or parsed. Non-fatal."""
    status_code = 400

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.path = path

    def __str__(self):
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message


class StoreError(Exception):
    """Raised by content store implementations."""
