"""
Error Taxonomy

Domain exceptions raised by the ingestion and retrieval pipeline.
The API layer maps each one to an HTTP status code.
"""

from __future__ import annotations


class LecternError(Exception):
    """Base class for all Lectern domain errors."""


class UnsupportedTypeError(LecternError):
    """Declared media type is not accepted; upload rejected before processing."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"File type not supported: '{mime_type}'")
        self.mime_type = mime_type


class FileTooLargeError(LecternError):
    """Upload exceeds the configured maximum size."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"File size {size} bytes exceeds limit of {limit / 1024 / 1024:g}MB"
        )
        self.size = size
        self.limit = limit


class ExtractionError(LecternError):
    """Text extraction failed for a structurally invalid file."""


class StorageError(LecternError):
    """Persistence layer unavailable or a query failed."""


class SelectionError(LecternError):
    """The relevance oracle could not be reached or rejected the request."""


class DocumentNotFoundError(LecternError):
    """No document exists under the requested id."""

    def __init__(self, document_id: object) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class InvalidQueryError(LecternError):
    """Chat query or search term is empty or too long."""
