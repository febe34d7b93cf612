"""Data models used by the ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from outreach.models import Document


@dataclass(slots=True)
class PageContent:
    """Represents text extracted from a page in the source document."""

    page_number: int
    text: str
    char_offset: int


@dataclass(frozen=True, slots=True)
class SegmentedChunk:
    """Segmenter output: chunk text with its type tag and ordinal."""

    chunk_index: int
    content: str
    chunk_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PreparedDocument:
    """A validated document together with its embedding-ready segments."""

    document: Document
    segments: List[SegmentedChunk]
