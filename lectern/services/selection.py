"""
Relevance Selector

Chooses which stored reference chunks are relevant to a user query.
Ranking is delegated to an external oracle: every chunk is enumerated
in one prompt, the oracle returns ids, and the ids are resolved back to
chunk records. The oracle sits behind ``SelectionOracle`` so that an
embedding/similarity search can be substituted without changing callers.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from lectern.models.schemas import ChunkView

logger = logging.getLogger(__name__)


class SelectionOracle(Protocol):
    """Anything that maps a selection prompt to an ordered list of chunk ids."""

    async def select_ids(self, prompt: str) -> list[str]: ...


def build_selection_prompt(query: str, chunks: Sequence[ChunkView]) -> str:
    """Enumerate every chunk's id, source, position and content under the query."""
    listing = "\n".join(
        f"ID: {chunk.id}\n"
        f"From: {chunk.label}\n"
        f"Content: {chunk.content}\n"
        "---"
        for chunk in chunks
    )
    return (
        "You are a document chunk selector for a teaching AI assistant. "
        "Your task is to:\n"
        "1. Read the user's query\n"
        "2. Review all available document chunks\n"
        "3. Select ONLY the chunk IDs that contain information relevant "
        "to answering the query\n"
        "4. Return ONLY the chunk IDs, nothing else\n"
        "\n"
        f"User Query: {query}\n"
        "\n"
        "Available Chunks:\n"
        f"{listing}"
    )


class RelevanceSelector:
    """
    Selects the subset of reference chunks relevant to a query.

    Oracle failures propagate as SelectionError (no retry here);
    malformed oracle replies arrive as an empty id list.

    Usage::

        selector = RelevanceSelector(oracle)
        relevant = await selector.select("What is photosynthesis?", chunks)
    """

    def __init__(self, oracle: SelectionOracle) -> None:
        self._oracle = oracle

    async def select(
        self,
        query: str,
        chunks: Sequence[ChunkView],
    ) -> list[ChunkView]:
        """
        Return the chunks the oracle judged relevant, in the oracle's order.

        Ids not present in ``chunks`` are dropped, as are repeats.
        An empty ``chunks`` returns ``[]`` without calling the oracle.
        """
        if not chunks:
            logger.info("No reference chunks available; skipping selection")
            return []

        by_id = {chunk.id: chunk for chunk in chunks}
        prompt = build_selection_prompt(query, chunks)
        selected_ids = await self._oracle.select_ids(prompt)

        selected: list[ChunkView] = []
        seen: set[str] = set()
        for chunk_id in selected_ids:
            if chunk_id in seen:
                continue
            chunk = by_id.get(chunk_id)
            if chunk is None:
                logger.debug("Dropping unknown chunk id from oracle: %r", chunk_id)
                continue
            seen.add(chunk_id)
            selected.append(chunk)

        logger.info("Selected %d of %d reference chunks", len(selected), len(chunks))
        return selected
