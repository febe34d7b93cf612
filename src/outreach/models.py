"""Domain types shared across ingestion, storage, retrieval and synthesis."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List


class DocumentType(str, Enum):
    """Classification of a source document."""

    RESUME = "resume"
    PERSONAL_INFO = "personal_info"
    COMPANY_RESEARCH = "company_research"
    JOB_DESCRIPTION = "job_description"
    NOTE = "note"


class EmailType(str, Enum):
    """Kind of outreach email being generated."""

    APPLICATION = "application"
    COLD_OUTREACH = "cold_outreach"
    FOLLOW_UP = "follow_up"


GENERAL_CHUNK_TYPE = "general"

# Chunk-type vocabulary per document type. The first entry of each tuple is the
# segmenter's starting state (resume) or default (personal, company).
CHUNK_TYPES: Dict[DocumentType, tuple[str, ...]] = {
    DocumentType.RESUME: (
        "personal_details",
        "summary",
        "skills",
        "experience",
        "education",
        "achievements",
        "projects",
        GENERAL_CHUNK_TYPE,
    ),
    DocumentType.PERSONAL_INFO: ("background", "preferences", "goals", "strengths", "values"),
    DocumentType.COMPANY_RESEARCH: (
        "overview",
        "culture",
        "products",
        "tech_stack",
        "recent_news",
        "leadership",
    ),
    DocumentType.JOB_DESCRIPTION: (GENERAL_CHUNK_TYPE,),
    DocumentType.NOTE: (GENERAL_CHUNK_TYPE,),
}


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(slots=True)
class Document:
    """An owned piece of source material."""

    id: str
    owner_id: str
    title: str
    document_type: DocumentType
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous, semantically bounded excerpt of a document."""

    id: str
    document_id: str
    owner_id: str
    document_title: str
    document_type: DocumentType
    chunk_index: int
    chunk_type: str
    content: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """A stored chunk paired with its similarity to a query."""

    chunk_id: str
    document_id: str
    document_title: str
    document_type: str
    chunk_index: int
    chunk_type: str
    content: str
    similarity: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class DocumentSummary:
    """Listing view of a stored document derived from its chunks."""

    id: str
    title: str
    document_type: str
    chunk_count: int
    created_at: str


__all__ = [
    "CHUNK_TYPES",
    "Chunk",
    "Document",
    "DocumentSummary",
    "DocumentType",
    "EmailType",
    "GENERAL_CHUNK_TYPE",
    "RetrievalResult",
    "utc_now_iso",
]
