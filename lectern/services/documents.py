"""
Document Service

Coordinates the ingestion lifecycle: validate → extract → chunk →
persist. Also serves lookups, search, image retrieval and the batch
ingestion of the training directory.

This is the single entry point for the API layer's document routes.
It composes TextExtractor, TextChunker and DocumentRepository.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from lectern.core.config import DOCX_MIME_TYPE, Settings
from lectern.core.exceptions import (
    DocumentNotFoundError,
    ExtractionError,
    FileTooLargeError,
    InvalidQueryError,
    StorageError,
    UnsupportedTypeError,
)
from lectern.models.orm import DocumentRecord
from lectern.models.schemas import DocumentSummary, UploadedFile
from lectern.repositories.documents import DocumentRepository
from lectern.services.chunking import TextChunker
from lectern.services.extraction import TextExtractor

logger = logging.getLogger(__name__)

# Stable ids for training files: same filename → same document id
TRAINING_NAMESPACE = uuid.UUID("6f1c1e0a-3f4e-4b8e-9a53-2d7c1b5e8a10")

# Checked before the platform mimetypes table, which varies between hosts
_EXTENSION_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": DOCX_MIME_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
}


def _guess_mime_type(path: Path) -> str:
    known = _EXTENSION_TYPES.get(path.suffix.lower())
    if known:
        return known
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"


class IngestResult(NamedTuple):
    """Return value of a successful ingestion."""

    document_id: uuid.UUID
    filename: str
    mime_type: str
    size: int
    chunks_count: int
    is_image: bool
    is_reference: bool


class ImageData(NamedTuple):
    """Stored image ready for vision input."""

    mime_type: str
    data: str  # base64


@dataclass
class ExtractedUpload:
    """A per-request attachment, processed but not persisted."""

    filename: str
    mime_type: str
    text: str = ""
    chunks: list[str] = field(default_factory=list)
    image: ImageData | None = None


@dataclass
class TrainingResult:
    """Outcome of ingesting one file from the training directory."""

    filename: str
    status: str  # "success" | "error"
    document_id: uuid.UUID | None = None
    chunks_count: int = 0
    error: str | None = None


class DocumentService:
    """
    Orchestrates document ingestion and retrieval.

    Usage::

        service = DocumentService(settings)
        async with database.session() as session:
            result = await service.ingest(session, upload, is_reference=True)
            hits = await service.search(session, "photosynthesis")
    """

    def __init__(
        self,
        settings: Settings,
        repository: DocumentRepository | None = None,
        extractor: TextExtractor | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        self._max_file_size = settings.MAX_FILE_SIZE
        self._allowed_types = frozenset(settings.ALLOWED_MIME_TYPES)
        self._training_dir = Path(settings.TRAINING_DOCS_DIR)
        self._repository = repository or DocumentRepository()
        self._extractor = extractor or TextExtractor()
        self._chunker = chunker or TextChunker(
            chunk_size=settings.CHUNK_SIZE,
            overlap_words=settings.CHUNK_OVERLAP,
        )

    @property
    def training_dir(self) -> Path:
        return self._training_dir

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_upload(self, upload: UploadedFile) -> None:
        """
        Reject uploads before any processing.

        Raises:
            UnsupportedTypeError: If the media type is not allowed.
            FileTooLargeError: If the payload exceeds MAX_FILE_SIZE.
        """
        if upload.mime_type not in self._allowed_types:
            raise UnsupportedTypeError(upload.mime_type)
        if upload.size_bytes > self._max_file_size:
            raise FileTooLargeError(upload.size_bytes, self._max_file_size)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(
        self,
        session: AsyncSession,
        upload: UploadedFile,
        *,
        is_reference: bool = False,
        document_id: uuid.UUID | None = None,
    ) -> IngestResult:
        """
        Process and store a document or image.

        Steps:
            1. Validate type and size.
            2. Extract text (worker thread; empty for images).
            3. Chunk (word overlap only for reference documents).
            4. Upsert document and replace its chunks in one transaction.

        Args:
            session: Active async database session.
            upload: File delivered by the upload boundary.
            is_reference: Store as a training document.
            document_id: Existing id to overwrite; a new one otherwise.

        Raises:
            UnsupportedTypeError, FileTooLargeError, ExtractionError,
            StorageError
        """
        self.validate_upload(upload)

        text = await asyncio.to_thread(self._extractor.extract, upload.raw, upload.mime_type)
        chunks = [] if upload.is_image else self._chunker.split_text(
            text, is_reference=is_reference
        )

        record = DocumentRecord(
            id=document_id or uuid.uuid4(),
            filename=upload.filename,
            content=text,
            mime_type=upload.mime_type,
            file_size=upload.size_bytes,
            is_reference=is_reference,
            # Images keep their payload for the model's vision input
            original_content=self._encode(upload.raw) if upload.is_image else None,
        )
        stored, chunk_records = await self._repository.save_document_with_chunks(
            session,
            document=record,
            contents=chunks,
        )

        return IngestResult(
            document_id=stored.id,
            filename=stored.filename,
            mime_type=stored.mime_type,
            size=stored.file_size,
            chunks_count=len(chunk_records),
            is_image=upload.is_image,
            is_reference=is_reference,
        )

    async def extract_upload(self, upload: UploadedFile) -> ExtractedUpload:
        """
        Process a chat attachment without persisting it.

        Documents are chunked without overlap; images are base64-encoded.
        """
        self.validate_upload(upload)

        if upload.is_image:
            return ExtractedUpload(
                filename=upload.filename,
                mime_type=upload.mime_type,
                image=ImageData(mime_type=upload.mime_type, data=self._encode(upload.raw)),
            )

        text = await asyncio.to_thread(self._extractor.extract, upload.raw, upload.mime_type)
        return ExtractedUpload(
            filename=upload.filename,
            mime_type=upload.mime_type,
            text=text,
            chunks=self._chunker.split_text(text, is_reference=False),
        )

    async def ingest_directory(
        self,
        session: AsyncSession,
        directory: Path | None = None,
    ) -> list[TrainingResult]:
        """
        Ingest every file in the training directory as a reference document.

        A file that cannot be read, validated, extracted or stored is
        reported and skipped; the rest of the batch continues. Re-running upserts each file under
        an id derived from its name.
        """
        directory = directory or self._training_dir
        if not directory.is_dir():
            raise FileNotFoundError(f"Training directory not found: {directory}")

        results: list[TrainingResult] = []
        for path in sorted(p for p in directory.iterdir() if p.is_file()):
            mime_type = _guess_mime_type(path)
            try:
                raw = await asyncio.to_thread(path.read_bytes)
                result = await self.ingest(
                    session,
                    UploadedFile(filename=path.name, mime_type=mime_type, raw=raw),
                    is_reference=True,
                    document_id=uuid.uuid5(TRAINING_NAMESPACE, path.name),
                )
            except (
                UnsupportedTypeError,
                FileTooLargeError,
                ExtractionError,
                StorageError,
                OSError,
            ) as exc:
                logger.warning("Skipping training file '%s': %s", path.name, exc)
                results.append(TrainingResult(filename=path.name, status="error", error=str(exc)))
                continue

            results.append(
                TrainingResult(
                    filename=path.name,
                    status="success",
                    document_id=result.document_id,
                    chunks_count=result.chunks_count,
                )
            )

        succeeded = sum(1 for r in results if r.status == "success")
        logger.info(
            "Processed training directory %s: %d succeeded, %d failed",
            directory,
            succeeded,
            len(results) - succeeded,
        )
        return results

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def get_document(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> DocumentRecord:
        """Raises DocumentNotFoundError if absent."""
        document = await self._repository.get_document(session, document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def get_image_data(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> ImageData:
        """
        Load a stored image for vision input.

        Raises:
            DocumentNotFoundError: If absent or not an image.
        """
        document = await self._repository.get_document(session, document_id)
        if document is None or not document.is_image or not document.original_content:
            raise DocumentNotFoundError(document_id)
        return ImageData(mime_type=document.mime_type, data=document.original_content)

    async def search(
        self,
        session: AsyncSession,
        term: str,
        limit: int = 10,
    ) -> list[DocumentSummary]:
        """Substring search over filename and content."""
        term = (term or "").strip()
        if not term:
            raise InvalidQueryError("Invalid search query")
        return await self._repository.search(session, term, limit)

    async def delete(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
    ) -> None:
        """Delete a document and, with it, all of its chunks."""
        if not await self._repository.delete_document(session, document_id):
            raise DocumentNotFoundError(document_id)

    @staticmethod
    def _encode(raw: bytes) -> str:
        return base64.b64encode(raw).decode("ascii")
