"""High level ingestion pipeline entry point."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from outreach.errors import ValidationError
from outreach.models import Document, DocumentType
from outreach.telemetry import traced_duration

from .extractors import ExtractorRegistry
from .format_detection import DocumentFormatDetector
from .language import LanguageDetector
from .models import PreparedDocument
from .normalization import normalize_text
from .segmenter import DocumentSegmenter, SegmenterConfig

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestPipelineConfig:
    sub_chunk_chars: int = 400
    min_chunk_chars: int = 10
    max_upload_bytes: int = 10 * 1024 * 1024


def parse_document_type(value: DocumentType | str) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in DocumentType)
        raise ValidationError(f"Unknown document type {value!r}; expected one of: {allowed}", cause=exc) from exc


class IngestPipeline:
    """Pipeline orchestrating extraction, normalisation and segmentation."""

    def __init__(self, config: Optional[IngestPipelineConfig] = None) -> None:
        self.config = config or IngestPipelineConfig()
        self.extractors = ExtractorRegistry()
        self.segmenter = DocumentSegmenter(
            SegmenterConfig(
                sub_chunk_chars=self.config.sub_chunk_chars,
                min_chunk_chars=self.config.min_chunk_chars,
            )
        )
        self.language_detector = LanguageDetector()

    def prepare(
        self,
        *,
        owner_id: str,
        title: str,
        document_type: DocumentType | str,
        content: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> PreparedDocument:
        """Validate the request and turn it into a ``Document`` plus its segments."""

        if not owner_id or not owner_id.strip():
            raise ValidationError("owner_id is required")
        if not title or not title.strip():
            raise ValidationError("title is required")
        doc_type = parse_document_type(document_type)
        normalized = normalize_text(content or "")
        if not normalized:
            raise ValidationError("Document content is empty")

        document_metadata: Dict[str, Any] = dict(metadata or {})
        language = self.language_detector.detect(normalized)
        if language:
            document_metadata.setdefault("language", language)

        document = Document(
            id=uuid.uuid4().hex,
            owner_id=owner_id.strip(),
            title=title.strip(),
            document_type=doc_type,
            content=normalized,
            metadata=document_metadata,
        )
        with traced_duration(
            "ingest.segment",
            logger=LOGGER,
            document_id=document.id,
            document_type=doc_type.value,
        ):
            segments = self.segmenter.segment(normalized, doc_type)
        if not segments:
            raise ValidationError("Document produced no chunks")
        LOGGER.info("Prepared document %s (%s) with %s segments", document.id, doc_type.value, len(segments))
        return PreparedDocument(document=document, segments=segments)

    def extract_text(self, data: bytes, file_name: str, mime_type: Optional[str] = None) -> str:
        """Extract and join the text of an uploaded file."""

        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > self.config.max_upload_bytes:
            raise ValidationError(
                f"Uploaded file exceeds {self.config.max_upload_bytes // (1024 * 1024)} MB limit"
            )
        document_format = DocumentFormatDetector.detect(file_name, mime_type)
        LOGGER.info("Extracting %s as %s", file_name, document_format.value)
        pages = self.extractors.extract(data, document_format)
        text = "\n\n".join(page.text for page in pages if page.text and page.text.strip())
        if not text.strip():
            raise ValidationError(f"No text could be extracted from {file_name}")
        return text
