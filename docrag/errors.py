"""Exception hierarchy for the documentation retrieval engine.

Each failure kind the MCP server and CLI report to users has its own class,
so callers can tell "not ready" apart from "empty corpus" or a storage fault.
"""

from typing import Any


class DocRAGError(Exception):
    """Base exception for all docrag errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InitializationError(DocRAGError):
    """Raised when the embedding model or the storage layer fails to load."""


class DimensionMismatchError(InitializationError):
    """Raised when query vectors and the stored index disagree on dimension.

    This is a configuration fault (the index was built with a different
    model), so it is never retried.
    """

    def __init__(self, expected: int, actual: int, table: str | None = None) -> None:
        details: dict[str, Any] = {"expected": expected, "actual": actual}
        if table:
            details["table"] = table
        super().__init__(
            f"Embedding dimension {actual} does not match index dimension {expected}. "
            "Re-run ingestion with the configured embedding model.",
            details,
        )


class NotReadyError(DocRAGError):
    """Raised when a search is attempted before an index has been built."""

    def __init__(self, message: str = "Documentation index is not ready. Run ingestion first.") -> None:
        super().__init__(message)


class EmptyCorpusError(DocRAGError):
    """Raised when ingestion finds no chunk long enough to index."""


class InputValidationError(DocRAGError):
    """Raised when a query or limit is malformed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class StorageError(DocRAGError):
    """Raised when the vector store fails to connect, read or write."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details)


class TableNotFoundError(StorageError):
    """Raised when opening a table that has no live generation."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table not found: {table}", operation="open", table=table)


class EmbeddingError(DocRAGError):
    """Raised when the embedding backend fails on an input batch."""


class IngestionInProgressError(DocRAGError):
    """Raised when ingest() is called while another ingestion is running."""

    def __init__(self) -> None:
        super().__init__("An ingestion run is already in progress.")


class RecordStoreError(DocRAGError):
    """Raised when the remote record store request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
