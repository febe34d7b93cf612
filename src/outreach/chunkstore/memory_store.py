"""In-memory chunk store using numpy cosine similarity."""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Sequence

import numpy as np

from outreach.models import Chunk, DocumentSummary, RetrievalResult
from outreach.telemetry import emit_chunkstore_event

from .base import (
    ChunkStore,
    DocumentTypeFilter,
    document_type_value,
    newest_first,
    result_from_chunk,
    summarize_documents,
)

LOGGER = logging.getLogger(__name__)


class InMemoryChunkStore(ChunkStore):
    """Keeps chunks in a dict guarded by a lock held only for local mutation."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._chunks: Dict[str, Chunk] = {}
        self._lock = threading.Lock()

    def insert_many(self, chunks: Sequence[Chunk]) -> List[str]:
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = chunk
        owner_id = chunks[0].owner_id if chunks else None
        emit_chunkstore_event("chunkstore.insert", backend=self.backend_name, count=len(chunks), owner_id=owner_id)
        return [chunk.id for chunk in chunks]

    def _snapshot(self, owner_id: str, document_type: DocumentTypeFilter) -> List[Chunk]:
        type_value = document_type_value(document_type)
        with self._lock:
            chunks = list(self._chunks.values())
        return [
            chunk
            for chunk in chunks
            if chunk.owner_id == owner_id and (type_value is None or chunk.document_type.value == type_value)
        ]

    def query_similar(
        self,
        query_vector: Sequence[float],
        owner_id: str,
        document_type: DocumentTypeFilter = None,
        *,
        threshold: float = 0.0,
        limit: int = 10,
    ) -> List[RetrievalResult]:
        if limit <= 0:
            return []
        candidates = self._snapshot(owner_id, document_type)
        if not candidates:
            return []

        query = np.asarray(query_vector, dtype=float)
        matrix = np.asarray([chunk.embedding for chunk in candidates], dtype=float)
        if matrix.shape[1] != query.shape[0]:
            raise ValueError(f"Vector dimension mismatch: {matrix.shape[1]} vs {query.shape[0]}")
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        similarities = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        order = np.argsort(-similarities, kind="stable")
        results: List[RetrievalResult] = []
        for index in order:
            similarity = float(similarities[index])
            if similarity < threshold:
                break
            results.append(result_from_chunk(candidates[index], similarity))
            if len(results) >= limit:
                break
        emit_chunkstore_event(
            "chunkstore.query",
            backend=self.backend_name,
            count=len(results),
            owner_id=owner_id,
            document_type=document_type_value(document_type),
        )
        return results

    def list_all(
        self,
        owner_id: str,
        document_type: DocumentTypeFilter = None,
        *,
        limit: int = 100,
    ) -> List[RetrievalResult]:
        if limit <= 0:
            return []
        results = [result_from_chunk(chunk, 1.0) for chunk in self._snapshot(owner_id, document_type)]
        return newest_first(results)[:limit]

    def list_documents(self, owner_id: str, document_type: DocumentTypeFilter = None) -> List[DocumentSummary]:
        records = [
            {
                "document_id": chunk.document_id,
                "document_title": chunk.document_title,
                "document_type": chunk.document_type.value,
                "created_at": chunk.created_at,
            }
            for chunk in self._snapshot(owner_id, document_type)
        ]
        return summarize_documents(records)

    def delete_document(self, owner_id: str, document_id: str) -> int:
        with self._lock:
            doomed = [
                chunk_id
                for chunk_id, chunk in self._chunks.items()
                if chunk.owner_id == owner_id and chunk.document_id == document_id
            ]
            for chunk_id in doomed:
                del self._chunks[chunk_id]
        LOGGER.info("Deleted %s chunks of document %s", len(doomed), document_id)
        emit_chunkstore_event("chunkstore.delete", backend=self.backend_name, count=len(doomed), owner_id=owner_id)
        return len(doomed)

    def count(self) -> int:
        with self._lock:
            return len(self._chunks)


__all__ = ["InMemoryChunkStore"]
