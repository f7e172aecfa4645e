"""
Conversation Repository

Write-once persistence of answered chat queries and history listing.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lectern.core.database import storage_errors
from lectern.models.orm import ConversationRecord


class ConversationRepository:
    """Repository for the ``chat_history`` table."""

    async def save_conversation(
        self,
        session: AsyncSession,
        *,
        conversation_id: uuid.UUID,
        query: str,
        response: str,
        has_image: bool,
        output_tokens: int,
    ) -> ConversationRecord:
        """Persist one exchange with its metadata blob."""
        record = ConversationRecord(
            id=conversation_id,
            user_message=query,
            bot_response=response,
            conversation_metadata={
                "has_image": has_image,
                "output_tokens": output_tokens,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        async with storage_errors(session):
            session.add(record)
            await session.commit()
        return record

    async def get_history(
        self,
        session: AsyncSession,
        limit: int = 10,
    ) -> Sequence[ConversationRecord]:
        """Most recent conversations first."""
        stmt = (
            select(ConversationRecord)
            .order_by(ConversationRecord.created_at.desc())
            .limit(limit)
        )
        async with storage_errors(session):
            result = await session.execute(stmt)
            return result.scalars().all()
