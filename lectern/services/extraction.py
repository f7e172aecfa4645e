"""
Text Extraction Service

Converts an uploaded file's bytes into plain text, dispatching strictly
on the declared media type (no content sniffing).

Supported formats:
    - PDF: page text in order via PyMuPDF (fitz)
    - DOCX: paragraph text in document order via python-docx
    - Plain text / Markdown: UTF-8 decoding
    - Images: no text; the raw bytes are kept separately for vision input
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Callable
from enum import Enum

import docx
import fitz  # PyMuPDF
from docx.opc.exceptions import PackageNotFoundError

from lectern.core.config import DOCX_MIME_TYPE
from lectern.core.exceptions import ExtractionError, UnsupportedTypeError

logger = logging.getLogger(__name__)


class MediaKind(Enum):
    """Supported media families, one extraction handler each."""

    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"
    IMAGE = "image"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> MediaKind:
        """
        Classify a declared media type.

        Raises:
            UnsupportedTypeError: If the type belongs to no supported family.
        """
        normalized = mime_type.split(";", 1)[0].strip().lower()
        if normalized.startswith("image/"):
            return cls.IMAGE
        try:
            return _MIME_KINDS[normalized]
        except KeyError:
            raise UnsupportedTypeError(mime_type) from None


_MIME_KINDS: dict[str, MediaKind] = {
    "application/pdf": MediaKind.PDF,
    DOCX_MIME_TYPE: MediaKind.DOCX,
    "text/plain": MediaKind.TEXT,
    "text/markdown": MediaKind.TEXT,
}


class TextExtractor:
    """
    Pure bytes-to-text transform.

    This is *synchronous* and CPU-bound for PDF/DOCX; async callers
    should run it via ``asyncio.to_thread``.

    Usage::

        extractor = TextExtractor()
        text = extractor.extract(raw, "application/pdf")
    """

    def __init__(self) -> None:
        self._handlers: dict[MediaKind, Callable[[bytes], str]] = {
            MediaKind.PDF: self._extract_pdf,
            MediaKind.DOCX: self._extract_docx,
            MediaKind.TEXT: self._extract_text,
            MediaKind.IMAGE: self._extract_image,
        }

    def extract(self, raw: bytes, mime_type: str) -> str:
        """
        Extract plain text from ``raw`` according to ``mime_type``.

        Returns:
            Extracted text; empty string for images.

        Raises:
            UnsupportedTypeError: If the media type is not supported.
            ExtractionError: If the file cannot be decoded.
        """
        kind = MediaKind.from_mime_type(mime_type)
        text = self._handlers[kind](raw)
        logger.debug("Extracted %d chars from %s (%d bytes)", len(text), kind.value, len(raw))
        return text

    @staticmethod
    def _extract_pdf(raw: bytes) -> str:
        try:
            doc = fitz.open(stream=raw, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise ExtractionError(f"Invalid PDF: {exc}") from exc
        try:
            pages: list[str] = [page.get_text() for page in doc]
            return "\n".join(pages)
        finally:
            doc.close()

    @staticmethod
    def _extract_docx(raw: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(raw))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ExtractionError(f"Invalid DOCX: {exc}") from exc
        return "\n\n".join(paragraph.text for paragraph in document.paragraphs)

    @staticmethod
    def _extract_text(raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Text is not valid UTF-8: {exc}") from exc

    @staticmethod
    def _extract_image(raw: bytes) -> str:
        return ""
