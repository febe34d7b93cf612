"""Extractors for uploaded résumé and note files."""
from __future__ import annotations

import io
import logging
from typing import List

from docx import Document as DocxDocument
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from outreach.errors import ValidationError

from .format_detection import DocumentFormat
from .models import PageContent

LOGGER = logging.getLogger(__name__)


class PDFExtractor:
    """Extract the native text layer of PDF documents page by page."""

    def extract(self, data: bytes) -> List[PageContent]:
        try:
            reader = PdfReader(io.BytesIO(data))
        except Exception as error:
            raise ValidationError("Uploaded PDF could not be read", cause=error) from error

        pages: List[PageContent] = []
        char_offset = 0
        for index, page in enumerate(reader.pages, start=1):
            try:
                text = page.extract_text() or ""
            except (PdfReadError, KeyError, ValueError) as error:
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index, error)
                text = ""
            pages.append(PageContent(page_number=index, text=text, char_offset=char_offset))
            char_offset += len(text)
        return pages


class DocxExtractor:
    """Extract text from Microsoft Word documents, one line per paragraph."""

    def extract(self, data: bytes) -> List[PageContent]:
        try:
            document = DocxDocument(io.BytesIO(data))
        except Exception as error:
            raise ValidationError("Uploaded DOCX could not be read", cause=error) from error

        text = "\n".join(paragraph.text for paragraph in document.paragraphs)
        return [PageContent(page_number=1, text=text, char_offset=0)]


class TextExtractor:
    """Extract text from plaintext documents."""

    def extract(self, data: bytes, encoding: str = "utf-8") -> List[PageContent]:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError as error:
            raise ValidationError(f"Uploaded text is not valid {encoding}", cause=error) from error
        return [PageContent(page_number=1, text=text, char_offset=0)]


class ExtractorRegistry:
    """Dispatch raw bytes to the extractor for their format."""

    def __init__(self) -> None:
        self.pdf = PDFExtractor()
        self.docx = DocxExtractor()
        self.text = TextExtractor()

    def extract(self, data: bytes, document_format: DocumentFormat) -> List[PageContent]:
        if document_format is DocumentFormat.PDF:
            return self.pdf.extract(data)
        if document_format is DocumentFormat.DOCX:
            return self.docx.extract(data)
        return self.text.extract(data)
