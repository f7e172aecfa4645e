"""
Lectern Document Schemas

Pydantic models for the ingestion and retrieval pipeline.
Defines the in-memory records that flow between the extractor,
chunker, document store and relevance selector.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """
    A file as delivered by the upload boundary.

    Attributes:
        filename: Original name supplied by the client.
        mime_type: Declared media type (drives extraction dispatch).
        raw: File payload.
    """

    filename: str
    mime_type: str
    raw: bytes = Field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.raw)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class ChunkMetadata(BaseModel):
    """Denormalized snapshot stored alongside each chunk for display without a join."""

    filename: str
    chunk_number: int = Field(ge=1, description="1-based position (index + 1)")
    total_chunks: int = Field(ge=1)
    is_reference: bool


class ChunkView(BaseModel):
    """A stored chunk joined with its owning document's filename."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: UUID
    chunk_index: int
    content: str
    filename: str
    chunk_number: int
    total_chunks: int

    @property
    def label(self) -> str:
        """Human-readable position, e.g. ``notes.pdf (Part 2 of 5)``."""
        return f"{self.filename} (Part {self.chunk_number} of {self.total_chunks})"


class DocumentSummary(BaseModel):
    """Search result row: document fields without the full text."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    mime_type: str
    file_size: int
    is_reference: bool
    created_at: datetime
