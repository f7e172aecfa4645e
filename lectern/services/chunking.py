"""
Chunking Service

Splits extracted document text into bounded, overlap-aware chunks
suitable for prompt inclusion and relevance selection.

Algorithm:
    1. Split text into sentence-like units at ``.``, ``!`` or ``?``
       followed by whitespace (each unit keeps its trailing whitespace,
       so joining the units reproduces the text exactly).
    2. Greedily accumulate units; when the next unit would push the
       buffer past ``target_size`` characters, emit the buffer.
    3. Seed the next buffer with the last ``overlap_words`` words of the
       emitted one, then the unit that triggered the split.

A unit longer than ``target_size`` is never cut mid-sentence; it becomes
an oversized chunk of its own.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: int = 1000
DEFAULT_OVERLAP_WORDS: int = 20

_SENTENCE_END = re.compile(r"[.!?]+\s+")


def split_sentences(text: str) -> list[str]:
    """
    Split text into sentence-like units.

    Returns:
        Units whose concatenation equals ``text``. A text without any
        boundary is returned as a single unit.
    """
    units: list[str] = []
    start = 0
    for match in _SENTENCE_END.finditer(text):
        units.append(text[start : match.end()])
        start = match.end()
    if start < len(text):
        units.append(text[start:])
    return units


def _carry_words(buffer: str, count: int, unit: str, target_size: int) -> str:
    """Last ``count`` words of ``buffer``, dropping leading ones until
    carry, separator and ``unit`` fit in ``target_size``."""
    if count <= 0:
        return ""
    words = buffer.split()[-count:]
    while words and len(" ".join(words)) + 1 + len(unit) > target_size:
        words.pop(0)
    return " ".join(words)


def chunk_text(text: str, target_size: int, overlap_words: int = 0) -> list[str]:
    """
    Split ``text`` into ordered chunks of roughly ``target_size`` characters.

    Args:
        text: Extracted document text.
        target_size: Soft upper bound on chunk length, in characters.
        overlap_words: Words carried from the end of one chunk to the
            start of the next (0 disables overlap). Fewer are carried
            when the full carry would push the next chunk past
            ``target_size``.

    Returns:
        Stripped, non-empty chunk strings. Empty or whitespace-only text
        yields an empty list.

    Raises:
        ValueError: If ``target_size`` is not positive or
            ``overlap_words`` is negative.
    """
    if target_size <= 0:
        raise ValueError(f"target_size must be positive, got {target_size}")
    if overlap_words < 0:
        raise ValueError(f"overlap_words must be >= 0, got {overlap_words}")

    if not text or not text.strip():
        return []

    chunks: list[str] = []
    buffer = ""

    for unit in split_sentences(text):
        if buffer.strip() and len(buffer) + len(unit) > target_size:
            chunks.append(buffer.strip())
            carry = _carry_words(buffer, overlap_words, unit, target_size)
            buffer = f"{carry} {unit}" if carry else unit
        else:
            buffer += unit

    if buffer.strip():
        chunks.append(buffer.strip())

    return chunks


class TextChunker:
    """
    Chunking policy bound to the configured size and overlap.

    Reference documents are split with the configured word overlap;
    single-shot uploads are split without overlap.

    Usage::

        chunker = TextChunker(chunk_size=1000, overlap_words=20)
        texts = chunker.split_text(text, is_reference=True)

    Args:
        chunk_size: Target characters per chunk.
        overlap_words: Words shared between consecutive reference chunks.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap_words: int = DEFAULT_OVERLAP_WORDS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap_words < 0:
            raise ValueError(f"overlap_words must be >= 0, got {overlap_words}")
        self._chunk_size = chunk_size
        self._overlap_words = overlap_words

    @property
    def chunk_size(self) -> int:
        """Target characters per chunk."""
        return self._chunk_size

    @property
    def overlap_words(self) -> int:
        """Words shared between consecutive reference chunks."""
        return self._overlap_words

    def split_text(self, text: str, *, is_reference: bool) -> list[str]:
        """Chunk text, applying the word overlap only to reference documents."""
        overlap = self._overlap_words if is_reference else 0
        chunks = chunk_text(text, self._chunk_size, overlap)
        logger.debug(
            "Chunked %d chars into %d chunks (size=%d, overlap=%d words)",
            len(text),
            len(chunks),
            self._chunk_size,
            overlap,
        )
        return chunks
