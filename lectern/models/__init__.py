"""Models package — Pydantic schemas and SQLAlchemy ORM for the Lectern pipeline."""

from lectern.models.orm import ChunkRecord, ConversationRecord, DocumentRecord
from lectern.models.schemas import (
    ChunkMetadata,
    ChunkView,
    DocumentSummary,
    UploadedFile,
)

__all__ = [
    # Pydantic schemas (ingestion pipeline)
    "ChunkMetadata",
    "ChunkView",
    "DocumentSummary",
    "UploadedFile",
    # SQLAlchemy ORM (persistence layer)
    "ChunkRecord",
    "ConversationRecord",
    "DocumentRecord",
]
