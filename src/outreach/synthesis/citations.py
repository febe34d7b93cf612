"""Source attribution for generated emails."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List

from outreach.models import RetrievalResult

PREVIEW_CHARS = 100
TOP_SOURCES = 5


@dataclass(frozen=True, slots=True)
class SourceCitation:
    document_title: str
    document_type: str
    chunk_type: str
    similarity_percent: int
    content_preview: str

    @classmethod
    def from_result(cls, result: RetrievalResult) -> "SourceCitation":
        return cls(
            document_title=result.document_title,
            document_type=result.document_type,
            chunk_type=result.chunk_type,
            similarity_percent=int(round(result.similarity * 100)),
            content_preview=result.content[:PREVIEW_CHARS] + "...",
        )


@dataclass(slots=True)
class CitationReport:
    total: int
    by_document: Dict[str, List[SourceCitation]]
    top_sources: List[SourceCitation]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_document": {
                title: [asdict(citation) for citation in citations]
                for title, citations in self.by_document.items()
            },
            "top_sources": [asdict(citation) for citation in self.top_sources],
        }


def build_citations(results: Iterable[RetrievalResult]) -> CitationReport:
    """One citation per consumed chunk, grouped by document title, plus the first five."""

    citations = [SourceCitation.from_result(result) for result in results]
    by_document: Dict[str, List[SourceCitation]] = {}
    for citation in citations:
        by_document.setdefault(citation.document_title, []).append(citation)
    return CitationReport(total=len(citations), by_document=by_document, top_sources=citations[:TOP_SOURCES])


__all__ = ["CitationReport", "SourceCitation", "build_citations"]
