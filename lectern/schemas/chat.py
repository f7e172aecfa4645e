"""
Chat API Schemas

Pydantic models for the chat and conversation-history endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SourceReference(BaseModel):
    """Reference chunk injected into the prompt."""

    chunk_id: str
    filename: str
    chunk_number: int = Field(description="1-based position within the document")
    total_chunks: int
    preview: str = Field(description="First 100 chars of chunk content")


class ChatResponse(BaseModel):
    """Response from the chat endpoint."""

    id: UUID = Field(description="Conversation id")
    response: str = Field(description="Generated answer text")
    has_image: bool = False
    output_tokens: int = 0
    is_mocked: bool = Field(
        default=False,
        description="True if the answer model was unavailable and the reply is simulated",
    )
    sources: list[SourceReference] = Field(default_factory=list)


class ConversationRead(BaseModel):
    """One stored exchange."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    user_message: str
    bot_response: str
    metadata: dict[str, Any] = Field(validation_alias="conversation_metadata")
    created_at: datetime
