"""
Chat API Router

HTTP endpoints for answering queries and reading conversation history.

Endpoints:
    POST /chat           — Answer a query, optionally with an image or document.
    GET  /conversations  — Most recent stored exchanges.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from lectern.api.deps import (
    get_chat_service,
    get_db,
    get_document_service,
    read_upload,
    require_api_key,
    to_http_error,
)
from lectern.core.exceptions import LecternError
from lectern.schemas.chat import ChatResponse, ConversationRead, SourceReference
from lectern.services.chat import ChatService
from lectern.services.documents import DocumentService, ExtractedUpload, ImageData

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Answer a query",
    responses={
        400: {"description": "Query empty or too long"},
        404: {"description": "Referenced image not found"},
        413: {"description": "Attachment exceeds the size limit"},
        415: {"description": "Attachment type not supported"},
    },
)
async def chat(
    query: str = Form(...),
    include_context: bool = Form(default=True),
    image_id: UUID | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
    chat_service: ChatService = Depends(get_chat_service),
    documents: DocumentService = Depends(get_document_service),
) -> ChatResponse:
    """
    Answer ``query`` using the reference documents the selector picks.

    An uploaded image (or a stored one named by ``image_id``) is passed to
    the model as vision input. An uploaded document is extracted and sent
    as extra context without being stored.
    """
    image: ImageData | None = None
    attachment: ExtractedUpload | None = None

    try:
        chat_service.validate_query(query)
        if file is not None and file.filename:
            extracted = await documents.extract_upload(await read_upload(file))
            if extracted.image is not None:
                image = extracted.image
            else:
                attachment = extracted
        if image is None and image_id is not None:
            image = await documents.get_image_data(db, image_id)

        result = await chat_service.answer(
            db,
            query,
            image=image,
            attachment=attachment,
            include_context=include_context,
        )
    except LecternError as exc:
        logger.warning("Chat request rejected: %s", exc)
        raise to_http_error(exc) from exc

    return ChatResponse(
        id=result.id,
        response=result.response,
        has_image=result.has_image,
        output_tokens=result.output_tokens,
        is_mocked=result.is_mocked,
        sources=[
            SourceReference(
                chunk_id=chunk.id,
                filename=chunk.filename,
                chunk_number=chunk.chunk_number,
                total_chunks=chunk.total_chunks,
                preview=chunk.content[:100],
            )
            for chunk in result.sources
        ],
    )


@router.get(
    "/conversations",
    response_model=list[ConversationRead],
    summary="Recent conversation history",
)
async def list_conversations(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    chat_service: ChatService = Depends(get_chat_service),
) -> list[ConversationRead]:
    """Newest first."""
    try:
        records = await chat_service.get_history(db, limit)
    except LecternError as exc:
        raise to_http_error(exc) from exc
    return [ConversationRead.model_validate(record) for record in records]
