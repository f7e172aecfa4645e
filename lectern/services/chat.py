"""
Chat Service

Answers a user query: loads reference chunks, asks the relevance
selector which ones matter, assembles the prompt context together with
any per-request attachment, calls the answer model and records the
exchange.

Degradation policy:
    - Selector failure → answer without reference context.
    - Conversation save failure → answer is still returned.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from lectern.core.exceptions import InvalidQueryError, SelectionError, StorageError
from lectern.models.orm import ConversationRecord
from lectern.models.schemas import ChunkView
from lectern.repositories.conversations import ConversationRepository
from lectern.repositories.documents import DocumentRepository
from lectern.services.documents import ExtractedUpload, ImageData
from lectern.services.llm import LLMService
from lectern.services.selection import RelevanceSelector

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH: int = 4000


@dataclass
class ChatResult:
    """Outcome of one answered query."""

    id: uuid.UUID
    response: str
    has_image: bool
    output_tokens: int
    is_mocked: bool
    sources: list[ChunkView] = field(default_factory=list)


def format_context(
    chunks: Sequence[ChunkView],
    attachment: ExtractedUpload | None = None,
) -> list[str]:
    """Render selected chunks and attachment text as prompt sections."""
    sections = [
        f"[Source: {chunk.filename}, part {chunk.chunk_number} of {chunk.total_chunks}]\n"
        f"{chunk.content}"
        for chunk in chunks
    ]
    if attachment is not None:
        total = len(attachment.chunks)
        sections.extend(
            f"[Uploaded document: {attachment.filename}, part {i} of {total}]\n{text}"
            for i, text in enumerate(attachment.chunks, 1)
        )
    return sections


class ChatService:
    """
    Orchestrates retrieval-augmented answering.

    Usage::

        chat = ChatService(selector, llm)
        result = await chat.answer(session, "Plan a lesson on fractions")
    """

    def __init__(
        self,
        selector: RelevanceSelector,
        llm: LLMService,
        documents: DocumentRepository | None = None,
        conversations: ConversationRepository | None = None,
    ) -> None:
        self._selector = selector
        self._llm = llm
        self._documents = documents or DocumentRepository()
        self._conversations = conversations or ConversationRepository()

    @staticmethod
    def validate_query(query: str | None) -> str:
        """
        Trim and bound the query.

        Raises:
            InvalidQueryError: If empty or longer than MAX_QUERY_LENGTH.
        """
        query = (query or "").strip()
        if not query:
            raise InvalidQueryError("Query cannot be empty")
        if len(query) > MAX_QUERY_LENGTH:
            raise InvalidQueryError(
                f"Query too long. Maximum length is {MAX_QUERY_LENGTH} characters"
            )
        return query

    async def select_context(
        self,
        session: AsyncSession,
        query: str,
    ) -> list[ChunkView]:
        """Relevant reference chunks, or none if the selector fails."""
        reference_chunks = await self._documents.get_all_chunks(session, reference_only=True)
        try:
            return await self._selector.select(query, reference_chunks)
        except SelectionError:
            logger.warning("Relevance selection failed; answering without reference context")
            return []

    async def answer(
        self,
        session: AsyncSession,
        query: str,
        *,
        image: ImageData | None = None,
        attachment: ExtractedUpload | None = None,
        include_context: bool = True,
    ) -> ChatResult:
        """
        Answer a query with optional image and document attachment.

        Args:
            session: Active async database session.
            query: Raw user query (validated here).
            image: Image for vision input (uploaded or stored).
            attachment: Per-request document, already extracted.
            include_context: Whether to consult reference documents.

        Raises:
            InvalidQueryError: If the query is empty or too long.
            StorageError: If reference chunks cannot be loaded.
        """
        query = self.validate_query(query)
        conversation_id = uuid.uuid4()

        sources = await self.select_context(session, query) if include_context else []
        context = format_context(sources, attachment)
        images = [image.data] if image is not None else None

        logger.info(
            "Answering query (sources=%d, sections=%d, image=%s)",
            len(sources),
            len(context),
            image is not None,
        )
        llm_response = await self._llm.generate_response(query, context, images)

        try:
            await self._conversations.save_conversation(
                session,
                conversation_id=conversation_id,
                query=query,
                response=llm_response.content,
                has_image=image is not None,
                output_tokens=llm_response.output_tokens,
            )
        except StorageError:
            logger.exception("Failed to save conversation %s", conversation_id)

        return ChatResult(
            id=conversation_id,
            response=llm_response.content,
            has_image=image is not None,
            output_tokens=llm_response.output_tokens,
            is_mocked=llm_response.is_mocked,
            sources=sources,
        )

    async def get_history(
        self,
        session: AsyncSession,
        limit: int = 10,
    ) -> Sequence[ConversationRecord]:
        return await self._conversations.get_history(session, limit)
