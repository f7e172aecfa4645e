"""
API Dependencies

FastAPI dependencies handing out the per-process services built in the
application lifespan (stored on ``app.state``), request-scoped sessions
and the shared-secret header check.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from lectern.core.exceptions import (
    DocumentNotFoundError,
    ExtractionError,
    FileTooLargeError,
    InvalidQueryError,
    StorageError,
    UnsupportedTypeError,
)
from lectern.models.schemas import UploadedFile
from lectern.services.chat import ChatService
from lectern.services.documents import DocumentService

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Usage::

        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with request.app.state.database.session() as session:
        yield session


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
) -> None:
    """Reject requests whose ``X-API-Key`` does not match REQUIRED_API_KEY."""
    expected = request.app.state.settings.REQUIRED_API_KEY
    if not x_api_key or not expected or not secrets.compare_digest(x_api_key, expected):
        logger.warning("API key validation failed for %s %s", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )


async def read_upload(file: UploadFile) -> UploadedFile:
    """Adapt a multipart upload to the pipeline's UploadedFile."""
    raw = await file.read()
    return UploadedFile(
        filename=file.filename or "unknown",
        mime_type=file.content_type or "application/octet-stream",
        raw=raw,
    )


def to_http_error(exc: Exception) -> HTTPException:
    """Map a domain error to the HTTP status the client sees."""
    if isinstance(exc, UnsupportedTypeError):
        return HTTPException(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc))
    if isinstance(exc, FileTooLargeError):
        return HTTPException(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc))
    if isinstance(exc, ExtractionError):
        return HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, InvalidQueryError):
        return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, DocumentNotFoundError):
        return HTTPException(status.HTTP_404_NOT_FOUND, detail="Document not found")
    if isinstance(exc, StorageError):
        return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
