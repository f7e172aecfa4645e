"""
Document API Schemas

Pydantic models for the document endpoints' request/response cycle.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response for the document upload endpoint."""

    id: UUID = Field(description="Document UUID (stable across re-uploads)")
    name: str = Field(description="Original filename")
    type: str = Field(description="Declared media type")
    size: int = Field(description="File size in bytes")
    chunks: int = Field(description="Number of chunks stored (0 for images)")
    is_image: bool
    is_reference: bool


class DocumentRead(BaseModel):
    """Full document, as returned by ``GET /documents/{id}``."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    content: str
    mime_type: str
    file_size: int
    is_reference: bool
    created_at: datetime
    updated_at: datetime | None = None


class DocumentSummaryRead(BaseModel):
    """Search hit without the document text."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    mime_type: str
    file_size: int
    is_reference: bool
    created_at: datetime


class TrainingFileResult(BaseModel):
    """Outcome for one file of a training batch."""

    model_config = ConfigDict(from_attributes=True)

    filename: str
    status: str = Field(description="'success' or 'error'")
    document_id: UUID | None = None
    chunks_count: int = 0
    error: str | None = None


class TrainingResponse(BaseModel):
    """Response of the training-directory ingestion endpoint."""

    results: list[TrainingFileResult]
