"""
Lectern Database Models

SQLAlchemy 2.0 ORM models for the document, chunk and conversation tables.

Tables:
    documents    — Uploaded files with extracted text (upsert keyed by id).
    chunks       — Ordered text segments of a document.
    chat_history — Write-once record of each answered query.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lectern.models.base import Base, TimestampMixin

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class DocumentRecord(TimestampMixin, Base):
    """
    Persistent storage for uploaded documents and images.

    Attributes:
        id: UUID primary key (generated Python-side, or supplied on re-upload).
        filename: Original filename, display only.
        content: Full extracted text (empty for images).
        mime_type: Declared media type that drove extraction.
        file_size: Raw upload size in bytes.
        is_reference: True for training documents used as retrieval context.
        original_content: Base64 payload, kept for images only.
        chunks: Related ChunkRecord instances (deleted with the document).
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_reference: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )
    original_content: Mapped[str | None] = mapped_column(Text, nullable=True)

    chunks: Mapped[list[ChunkRecord]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChunkRecord.chunk_index",
    )

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def __repr__(self) -> str:
        return f"<DocumentRecord(id={self.id!s:.8}, filename='{self.filename}')>"


class ChunkRecord(Base):
    """
    A contiguous text segment of a parent document.

    Attributes:
        id: UUID primary key.
        document_id: Foreign key to parent document (CASCADE delete).
        chunk_index: Zero-based position within the parent document.
        content: Chunk text.
        chunk_metadata: Denormalized snapshot
            ``{filename, chunk_number, total_chunks, is_reference}``.
    """

    __tablename__ = "chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_chunks_document_index"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )

    document: Mapped[DocumentRecord] = relationship(back_populates="chunks")

    def __repr__(self) -> str:
        return (
            f"<ChunkRecord(id={self.id!s:.8}, "
            f"doc={self.document_id!s:.8}, idx={self.chunk_index})>"
        )


class ConversationRecord(Base):
    """
    One answered chat query.

    Attributes:
        id: UUID primary key.
        user_message: The validated user query.
        bot_response: Model answer text.
        conversation_metadata: ``{has_image, output_tokens, timestamp}``.
    """

    __tablename__ = "chat_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_message: Mapped[str] = mapped_column(Text, nullable=False)
    bot_response: Mapped[str] = mapped_column(Text, nullable=False)
    conversation_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<ConversationRecord(id={self.id!s:.8})>"
