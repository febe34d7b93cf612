"""Chroma chunk store adapter."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import chromadb

from outreach.errors import StoreUnavailable
from outreach.models import Chunk, DocumentSummary, RetrievalResult
from outreach.telemetry import emit_chunkstore_event

from .base import (
    ChunkStore,
    DocumentTypeFilter,
    clamp_similarity,
    document_type_value,
    newest_first,
    summarize_documents,
)

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from chromadb.api import ClientAPI
    from chromadb.api.models.Collection import Collection

LOGGER = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "outreach_chunks"
DEFAULT_DISTANCE_METRIC = "cosine"

# Denormalised onto every record so results can be cited without a document lookup.
_RESERVED_KEYS = (
    "owner_id",
    "document_id",
    "document_title",
    "document_type",
    "chunk_index",
    "chunk_type",
    "created_at",
)


def _scalar_metadata(metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """Chroma only accepts str, int, float and bool metadata values."""

    cleaned: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key in _RESERVED_KEYS or value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            cleaned[key] = value
        else:
            cleaned[key] = str(value)
    return cleaned


def _where(owner_id: str, document_type: DocumentTypeFilter = None, **extra: str) -> Dict[str, Any]:
    clauses: List[Dict[str, Any]] = [{"owner_id": owner_id}]
    type_value = document_type_value(document_type)
    if type_value is not None:
        clauses.append({"document_type": type_value})
    clauses.extend({key: value} for key, value in extra.items())
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _result_from_record(
    chunk_id: str, document: Optional[str], metadata: Optional[Mapping[str, Any]], similarity: float
) -> RetrievalResult:
    metadata = dict(metadata or {})
    extra = {key: value for key, value in metadata.items() if key not in _RESERVED_KEYS}
    extra["created_at"] = metadata.get("created_at", "")
    return RetrievalResult(
        chunk_id=chunk_id,
        document_id=str(metadata.get("document_id", "")),
        document_title=str(metadata.get("document_title", "")),
        document_type=str(metadata.get("document_type", "")),
        chunk_index=int(metadata.get("chunk_index", 0)),
        chunk_type=str(metadata.get("chunk_type", "")),
        content=document or "",
        similarity=clamp_similarity(similarity),
        metadata=extra,
    )


class ChromaChunkStore(ChunkStore):
    """Adapter around a Chroma collection using cosine distance."""

    backend_name = "chroma"

    def __init__(
        self,
        persist_dir: str | Path | None = None,
        *,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        client: Optional["ClientAPI"] = None,
    ) -> None:
        self.collection_name = collection_name
        try:
            if client is None:
                path = Path(persist_dir or "chroma_db")
                path.mkdir(parents=True, exist_ok=True)
                client = chromadb.PersistentClient(path=str(path))
            self._client = client
            self._collection: "Collection" = client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": DEFAULT_DISTANCE_METRIC},
            )
        except Exception as exc:  # pragma: no cover - depends on chromadb runtime
            raise StoreUnavailable("Failed to initialise Chroma collection", cause=exc) from exc

    def insert_many(self, chunks: Sequence[Chunk]) -> List[str]:
        if not chunks:
            return []
        ids = [chunk.id for chunk in chunks]
        metadatas: List[Dict[str, Any]] = []
        for chunk in chunks:
            metadata = _scalar_metadata(chunk.metadata)
            metadata.update(
                owner_id=chunk.owner_id,
                document_id=chunk.document_id,
                document_title=chunk.document_title,
                document_type=chunk.document_type.value,
                chunk_index=chunk.chunk_index,
                chunk_type=chunk.chunk_type,
                created_at=chunk.created_at,
            )
            metadatas.append(metadata)
        try:
            self._collection.upsert(
                ids=ids,
                embeddings=[list(map(float, chunk.embedding)) for chunk in chunks],
                documents=[chunk.content for chunk in chunks],
                metadatas=metadatas,
            )
        except Exception as exc:
            emit_chunkstore_event(
                "chunkstore.insert", backend=self.backend_name, count=len(chunks), owner_id=chunks[0].owner_id, error=exc
            )
            raise StoreUnavailable("Failed to upsert chunks into Chroma", cause=exc) from exc
        emit_chunkstore_event("chunkstore.insert", backend=self.backend_name, count=len(ids), owner_id=chunks[0].owner_id)
        return ids

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
        try:
            if self._collection.count() == 0:
                return []
            result = self._collection.query(
                query_embeddings=[list(map(float, query_vector))],
                n_results=limit,
                where=_where(owner_id, document_type),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            emit_chunkstore_event(
                "chunkstore.query",
                backend=self.backend_name,
                count=0,
                owner_id=owner_id,
                document_type=document_type_value(document_type),
                error=exc,
            )
            raise StoreUnavailable("Chroma query failed", cause=exc) from exc

        ids = (result.get("ids") or [[]])[0]
        documents = (result.get("documents") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        results: List[RetrievalResult] = []
        for chunk_id, document, metadata, distance in zip(ids, documents, metadatas, distances):
            similarity = 1.0 - float(distance if distance is not None else 1.0)
            if similarity < threshold:
                continue
            results.append(_result_from_record(chunk_id, document, metadata, similarity))
        results.sort(key=lambda item: item.similarity, reverse=True)
        emit_chunkstore_event(
            "chunkstore.query",
            backend=self.backend_name,
            count=len(results),
            owner_id=owner_id,
            document_type=document_type_value(document_type),
        )
        return results[:limit]

    def _get(self, where: Dict[str, Any], include: List[str]) -> Dict[str, Any]:
        try:
            return self._collection.get(where=where, include=include)
        except Exception as exc:
            raise StoreUnavailable("Chroma read failed", cause=exc) from exc

    def list_all(
        self,
        owner_id: str,
        document_type: DocumentTypeFilter = None,
        *,
        limit: int = 100,
    ) -> List[RetrievalResult]:
        if limit <= 0:
            return []
        records = self._get(_where(owner_id, document_type), ["documents", "metadatas"])
        results = [
            _result_from_record(chunk_id, document, metadata, 1.0)
            for chunk_id, document, metadata in zip(
                records.get("ids") or [], records.get("documents") or [], records.get("metadatas") or []
            )
        ]
        return newest_first(results)[:limit]

    def list_documents(self, owner_id: str, document_type: DocumentTypeFilter = None) -> List[DocumentSummary]:
        records = self._get(_where(owner_id, document_type), ["metadatas"])
        return summarize_documents(metadata for metadata in records.get("metadatas") or [] if metadata)

    def delete_document(self, owner_id: str, document_id: str) -> int:
        records = self._get(_where(owner_id, document_id=document_id), ["metadatas"])
        ids = list(records.get("ids") or [])
        if not ids:
            return 0
        try:
            self._collection.delete(ids=ids)
        except Exception as exc:
            raise StoreUnavailable("Chroma delete failed", cause=exc) from exc
        LOGGER.info("Deleted %s chunks of document %s", len(ids), document_id)
        emit_chunkstore_event("chunkstore.delete", backend=self.backend_name, count=len(ids), owner_id=owner_id)
        return len(ids)

    def count(self) -> int:
        try:
            return int(self._collection.count())
        except Exception as exc:
            raise StoreUnavailable("Chroma count failed", cause=exc) from exc


__all__ = ["ChromaChunkStore"]
