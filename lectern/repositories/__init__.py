"""Repositories package — data access for documents and conversations."""

from lectern.repositories.conversations import ConversationRepository
from lectern.repositories.documents import DocumentRepository

__all__ = ["ConversationRepository", "DocumentRepository"]
