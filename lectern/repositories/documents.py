"""
Document Repository

Data access layer for documents and their chunks.
Provides upsert-by-id persistence, atomic chunk replacement,
substring search and the ordered reference-chunk listing consumed
by the relevance selector.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lectern.core.database import storage_errors
from lectern.core.exceptions import DocumentNotFoundError
from lectern.models.orm import ChunkRecord, DocumentRecord
from lectern.models.schemas import ChunkMetadata, ChunkView, DocumentSummary

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT: int = 10


class DocumentRepository:
    """
    Repository for document and chunk persistence.

    Every method takes the caller's ``AsyncSession`` (request-scoped in
    the API, opened by the service in batch jobs). Query failures roll
    back the session and raise StorageError; they are never retried here.

    Key guarantees:
        - ``put_document``: upsert keyed by id; the id never changes.
        - ``put_chunks`` / ``save_document_with_chunks``: a document's
          chunk set is replaced in one transaction, so readers see all
          of it or none of it.
        - ``get_all_chunks``: deterministic order (filename, document id,
          chunk index).
    """

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def put_document(
        self,
        session: AsyncSession,
        document: DocumentRecord,
    ) -> DocumentRecord:
        """Insert or overwrite a document by id, then commit."""
        async with storage_errors(session):
            stored = await self._upsert(session, document)
            await session.commit()
        return stored

    async def put_chunks(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        contents: Sequence[str],
    ) -> list[ChunkRecord]:
        """
        Replace a document's chunks with ``contents``, indexed 0..n-1.

        Raises:
            DocumentNotFoundError: If the owning document does not exist.
            StorageError: On any database failure (nothing is written).
        """
        async with storage_errors(session):
            document = await session.get(DocumentRecord, document_id)
            if document is None:
                raise DocumentNotFoundError(document_id)
            records = await self._replace_chunks(session, document, contents)
            await session.commit()
        return records

    async def save_document_with_chunks(
        self,
        session: AsyncSession,
        *,
        document: DocumentRecord,
        contents: Sequence[str],
    ) -> tuple[DocumentRecord, list[ChunkRecord]]:
        """
        Upsert a document and replace its chunks atomically.

        Args:
            session: Active async database session.
            document: DocumentRecord to insert or overwrite.
            contents: Chunk texts in document order.

        Returns:
            Tuple of (stored document, chunk records).
        """
        async with storage_errors(session):
            stored = await self._upsert(session, document)
            records = await self._replace_chunks(session, stored, contents)
            await session.commit()

        logger.info(
            "Saved document '%s' with %d chunks (id=%s, reference=%s)",
            stored.filename,
            len(records),
            stored.id,
            stored.is_reference,
        )
        return stored, records

    async def delete_document(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> bool:
        """
        Delete a document and its chunks.

        Returns:
            True if a document was deleted, False if none existed.
        """
        async with storage_errors(session):
            await session.execute(
                delete(ChunkRecord).where(ChunkRecord.document_id == document_id)
            )
            result = await session.execute(
                delete(DocumentRecord).where(DocumentRecord.id == document_id)
            )
            await session.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted document %s", document_id)
        return deleted

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def get_document(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> DocumentRecord | None:
        """Look up a document by its UUID."""
        async with storage_errors(session):
            return await session.get(DocumentRecord, document_id)

    async def get_chunks_by_document(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> Sequence[ChunkRecord]:
        """Get all chunks for a document, ordered by index."""
        stmt = (
            select(ChunkRecord)
            .where(ChunkRecord.document_id == document_id)
            .order_by(ChunkRecord.chunk_index)
        )
        async with storage_errors(session):
            result = await session.execute(stmt)
            return result.scalars().all()

    async def search(
        self,
        session: AsyncSession,
        term: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[DocumentSummary]:
        """
        Case-insensitive substring search over filename and content.

        ``%`` and ``_`` in ``term`` match literally.

        Returns:
            Document summaries ordered by filename, then id.
        """
        stmt = (
            select(DocumentRecord)
            .where(
                or_(
                    DocumentRecord.filename.icontains(term, autoescape=True),
                    DocumentRecord.content.icontains(term, autoescape=True),
                )
            )
            .order_by(DocumentRecord.filename, DocumentRecord.id)
            .limit(limit)
        )
        async with storage_errors(session):
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [DocumentSummary.model_validate(row) for row in rows]

    async def get_all_chunks(
        self,
        session: AsyncSession,
        reference_only: bool = True,
    ) -> list[ChunkView]:
        """
        List chunks joined with their owning filename.

        Args:
            session: Active async database session.
            reference_only: Restrict to chunks of reference documents.

        Returns:
            ChunkViews ordered by filename, document id, then chunk index.
        """
        stmt = select(ChunkRecord, DocumentRecord.filename).join(
            DocumentRecord, ChunkRecord.document_id == DocumentRecord.id
        )
        if reference_only:
            stmt = stmt.where(DocumentRecord.is_reference.is_(True))
        stmt = stmt.order_by(
            DocumentRecord.filename,
            DocumentRecord.id,
            ChunkRecord.chunk_index,
        )

        async with storage_errors(session):
            result = await session.execute(stmt)
            rows = result.all()

        return [
            ChunkView(
                id=str(chunk.id),
                document_id=chunk.document_id,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                filename=filename,
                chunk_number=chunk.chunk_metadata.get("chunk_number", chunk.chunk_index + 1),
                total_chunks=chunk.chunk_metadata.get("total_chunks", 1),
            )
            for chunk, filename in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers (no commit)
    # ------------------------------------------------------------------

    async def _upsert(
        self,
        session: AsyncSession,
        document: DocumentRecord,
    ) -> DocumentRecord:
        existing = await session.get(DocumentRecord, document.id) if document.id else None
        if existing is None:
            session.add(document)
            await session.flush()
            return document

        # Last writer wins on concurrent re-upload of the same id
        existing.filename = document.filename
        existing.content = document.content
        existing.mime_type = document.mime_type
        existing.file_size = document.file_size
        existing.is_reference = document.is_reference
        existing.original_content = document.original_content
        existing.updated_at = datetime.now(UTC)
        await session.flush()
        logger.info("Overwrote document %s ('%s')", existing.id, existing.filename)
        return existing

    async def _replace_chunks(
        self,
        session: AsyncSession,
        document: DocumentRecord,
        contents: Sequence[str],
    ) -> list[ChunkRecord]:
        await session.execute(
            delete(ChunkRecord).where(ChunkRecord.document_id == document.id)
        )
        total = len(contents)
        records = [
            ChunkRecord(
                document_id=document.id,
                chunk_index=i,
                content=content,
                chunk_metadata=ChunkMetadata(
                    filename=document.filename,
                    chunk_number=i + 1,
                    total_chunks=total,
                    is_reference=document.is_reference,
                ).model_dump(),
            )
            for i, content in enumerate(contents)
        ]
        session.add_all(records)
        await session.flush()
        return records
