"""
Documents API Router

HTTP endpoints for document ingestion and lookup.

Endpoints:
    POST   /documents           — Upload (or re-upload) a document or image.
    GET    /documents/search    — Substring search on filename and content.
    POST   /documents/training  — Ingest the training directory.
    GET    /documents/{id}      — Fetch one document.
    DELETE /documents/{id}      — Delete a document and its chunks.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from lectern.api.deps import (
    get_db,
    get_document_service,
    read_upload,
    require_api_key,
    to_http_error,
)
from lectern.core.exceptions import (
    DocumentNotFoundError,
    ExtractionError,
    FileTooLargeError,
    InvalidQueryError,
    StorageError,
    UnsupportedTypeError,
)
from lectern.schemas.documents import (
    DocumentRead,
    DocumentSummaryRead,
    TrainingFileResult,
    TrainingResponse,
    UploadResponse,
)
from lectern.services.documents import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post(
    "",
    response_model=UploadResponse,
    summary="Upload a document or image",
    responses={
        413: {"description": "File exceeds the size limit"},
        415: {"description": "Media type not supported"},
        422: {"description": "File could not be parsed"},
    },
)
async def upload_document(
    file: UploadFile = File(...),
    is_reference: bool = Form(default=False),
    document_id: UUID | None = Form(default=None),
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> UploadResponse:
    """
    Extract, chunk and store an uploaded file.

    Passing an existing ``document_id`` overwrites that document and
    replaces its chunks.
    """
    upload = await read_upload(file)
    try:
        result = await service.ingest(
            db,
            upload,
            is_reference=is_reference,
            document_id=document_id,
        )
    except (UnsupportedTypeError, FileTooLargeError, ExtractionError, StorageError) as exc:
        logger.warning("Upload of '%s' rejected: %s", upload.filename, exc)
        raise to_http_error(exc) from exc

    return UploadResponse(
        id=result.document_id,
        name=result.filename,
        type=result.mime_type,
        size=result.size,
        chunks=result.chunks_count,
        is_image=result.is_image,
        is_reference=result.is_reference,
    )


@router.get(
    "/search",
    response_model=list[DocumentSummaryRead],
    summary="Search documents by filename or content",
)
async def search_documents(
    query: str = Query(..., description="Case-insensitive substring"),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> list[DocumentSummaryRead]:
    """Results are ordered by filename."""
    try:
        hits = await service.search(db, query, limit)
    except (InvalidQueryError, StorageError) as exc:
        raise to_http_error(exc) from exc
    return [DocumentSummaryRead.model_validate(hit.model_dump()) for hit in hits]


@router.post(
    "/training",
    response_model=TrainingResponse,
    summary="Ingest every file in the training directory",
)
async def process_training_docs(
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> TrainingResponse:
    """Files that fail are reported individually; the batch continues."""
    try:
        results = await service.ingest_directory(db)
    except FileNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StorageError as exc:
        raise to_http_error(exc) from exc
    return TrainingResponse(
        results=[TrainingFileResult.model_validate(r) for r in results],
    )


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> DocumentRead:
    """Retrieve a single document by id."""
    try:
        document = await service.get_document(db, document_id)
    except (DocumentNotFoundError, StorageError) as exc:
        raise to_http_error(exc) from exc
    return DocumentRead.model_validate(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> None:
    """Delete a document; its chunks go with it."""
    try:
        await service.delete(db, document_id)
    except (DocumentNotFoundError, StorageError) as exc:
        raise to_http_error(exc) from exc
