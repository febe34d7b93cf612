"""Chunk store interface shared by the in-memory and Chroma backends."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from outreach.models import Chunk, DocumentSummary, DocumentType, RetrievalResult

DocumentTypeFilter = Optional[DocumentType | str]


def document_type_value(document_type: DocumentTypeFilter) -> str | None:
    if document_type is None:
        return None
    return DocumentType(document_type).value


def clamp_similarity(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def result_from_chunk(chunk: Chunk, similarity: float) -> RetrievalResult:
    metadata = dict(chunk.metadata)
    metadata.setdefault("created_at", chunk.created_at)
    return RetrievalResult(
        chunk_id=chunk.id,
        document_id=chunk.document_id,
        document_title=chunk.document_title,
        document_type=DocumentType(chunk.document_type).value,
        chunk_index=chunk.chunk_index,
        chunk_type=chunk.chunk_type,
        content=chunk.content,
        similarity=clamp_similarity(similarity),
        metadata=metadata,
    )


def newest_first(results: Iterable[RetrievalResult]) -> List[RetrievalResult]:
    """Order by creation time descending, keeping chunk order inside a document."""

    ordered = sorted(results, key=lambda item: (item.document_id, item.chunk_index))
    return sorted(ordered, key=lambda item: str(item.metadata.get("created_at", "")), reverse=True)


def summarize_documents(records: Iterable[Mapping[str, Any]]) -> List[DocumentSummary]:
    """Collapse per-chunk records into one summary per document, newest first."""

    summaries: Dict[str, DocumentSummary] = {}
    for record in records:
        document_id = str(record["document_id"])
        summary = summaries.get(document_id)
        if summary is None:
            summaries[document_id] = DocumentSummary(
                id=document_id,
                title=str(record.get("document_title", "")),
                document_type=str(record.get("document_type", "")),
                chunk_count=1,
                created_at=str(record.get("created_at", "")),
            )
        else:
            summary.chunk_count += 1
    return sorted(summaries.values(), key=lambda item: item.created_at, reverse=True)


class ChunkStore(ABC):
    """Persists chunks and answers owner-scoped vector similarity queries.

    Implementations raise ``StoreUnavailable`` when the backing store cannot be
    reached. All methods are blocking; async callers run them in a worker
    thread.
    """

    backend_name: str = "chunkstore"

    def insert(self, chunk: Chunk) -> str:
        return self.insert_many([chunk])[0]

    @abstractmethod
    def insert_many(self, chunks: Sequence[Chunk]) -> List[str]:
        """Persist ``chunks`` and return their ids in order."""

    @abstractmethod
    def query_similar(
        self,
        query_vector: Sequence[float],
        owner_id: str,
        document_type: DocumentTypeFilter = None,
        *,
        threshold: float = 0.0,
        limit: int = 10,
    ) -> List[RetrievalResult]:
        """Return chunks with similarity >= ``threshold``, best first, at most ``limit``."""

    @abstractmethod
    def list_all(
        self,
        owner_id: str,
        document_type: DocumentTypeFilter = None,
        *,
        limit: int = 100,
    ) -> List[RetrievalResult]:
        """Return the owner's chunks newest first, each with similarity 1.0."""

    @abstractmethod
    def list_documents(self, owner_id: str, document_type: DocumentTypeFilter = None) -> List[DocumentSummary]:
        """Return one summary per stored document of ``owner_id``."""

    @abstractmethod
    def delete_document(self, owner_id: str, document_id: str) -> int:
        """Delete every chunk of the document and return how many were removed."""

    @abstractmethod
    def count(self) -> int:
        """Total number of stored chunks; doubles as a readiness probe."""


__all__ = [
    "ChunkStore",
    "DocumentTypeFilter",
    "clamp_similarity",
    "document_type_value",
    "newest_first",
    "result_from_chunk",
    "summarize_documents",
]
