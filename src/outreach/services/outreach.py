"""Service facade: document ingestion, search and grounded email generation."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from outreach.chunkstore import ChunkStore, get_chunk_store
from outreach.config import Settings, get_settings
from outreach.embeddings import EmbeddingModel, get_embedding_model
from outreach.errors import (
    DocumentNotFound,
    EmbeddingServiceError,
    OutreachError,
    StoreUnavailable,
    ValidationError,
)
from outreach.generation import TextGenerator, get_text_generator
from outreach.ingest import IngestPipeline, parse_document_type
from outreach.logging_config import AUDIT_LOGGER_NAME
from outreach.models import Chunk, Document, DocumentSummary, DocumentType, EmailType, RetrievalResult, utc_now_iso
from outreach.retrieval import Retriever, assemble, build_base_query, search
from outreach.retrieval.search import DEFAULT_LIMIT, DEFAULT_THRESHOLD
from outreach.synthesis import CitationReport, SynthesisOrchestrator
from outreach.telemetry import emit_exception, emit_ingest_event

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

T = TypeVar("T")


@dataclass(slots=True)
class IngestRequest:
    owner_id: str
    title: str
    document_type: DocumentType | str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class IngestResult:
    """Structured result returned from :meth:`OutreachService.ingest`."""

    document_id: str
    chunk_count: int
    title: str
    document_type: str
    chunk_types: List[str]
    duration_seconds: float


@dataclass(slots=True)
class EmailRequest:
    owner_id: str
    query: str
    target_company: Optional[str] = None
    target_role: Optional[str] = None
    focus_areas: List[str] = field(default_factory=list)
    email_type: EmailType | str = EmailType.APPLICATION


@dataclass(slots=True)
class EmailResult:
    """Structured result returned from :meth:`OutreachService.generate_email`."""

    subject: str
    body: str
    sources_note: str
    source_citations: CitationReport
    metadata: Dict[str, Any]


async def _bounded(
    func: Callable[..., T],
    *args: Any,
    timeout: float,
    error_cls: Type[OutreachError],
    what: str,
    **kwargs: Any,
) -> T:
    """Run a blocking call in a worker thread, mapping a timeout to ``error_cls``."""

    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise error_cls(f"{what} timed out after {timeout:.0f}s", cause=exc) from exc


class OutreachService:
    """High level orchestration for ingesting documents and generating outreach emails."""

    def __init__(
        self,
        *,
        store: ChunkStore,
        embedder: EmbeddingModel,
        generator: TextGenerator,
        pipeline: IngestPipeline | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.embedder = embedder
        self.generator = generator
        self.pipeline = pipeline or IngestPipeline()
        self.retriever = Retriever(
            store,
            embedder,
            query_timeout=self.settings.query_timeout_seconds,
            embedding_timeout=self.settings.embedding_timeout_seconds,
        )
        self.orchestrator = SynthesisOrchestrator(generator, timeout=self.settings.generation_timeout_seconds)

    async def ingest(self, request: IngestRequest) -> IngestResult:
        """Segment, embed and persist one document. Any failure is fatal to the document."""

        started = time.perf_counter()
        prepared = await asyncio.to_thread(
            self.pipeline.prepare,
            owner_id=request.owner_id,
            title=request.title,
            document_type=request.document_type,
            content=request.content,
            metadata=request.metadata,
        )
        document = prepared.document
        emit_ingest_event(
            "ingest.document.start",
            owner_id=document.owner_id,
            document_id=document.id,
            title=document.title,
            document_type=document.document_type.value,
            content_chars=len(document.content),
            language=document.metadata.get("language"),
        )

        try:
            embeddings = await _bounded(
                self.embedder.embed_texts,
                [segment.content for segment in prepared.segments],
                timeout=self.settings.embedding_timeout_seconds,
                error_cls=EmbeddingServiceError,
                what="Embedding",
            )
            chunks = [
                Chunk(
                    id=uuid.uuid4().hex,
                    document_id=document.id,
                    owner_id=document.owner_id,
                    document_title=document.title,
                    document_type=document.document_type,
                    chunk_index=segment.chunk_index,
                    chunk_type=segment.chunk_type,
                    content=segment.content,
                    embedding=list(vector),
                    metadata=dict(segment.metadata),
                    created_at=document.created_at,
                )
                for segment, vector in zip(prepared.segments, embeddings)
            ]
            await self._persist(document, chunks)
        except OutreachError as error:
            emit_exception(
                module=f"{__name__}.ingest",
                error=error,
                owner_id=document.owner_id,
                suggestion="Re-submit the document once the dependency recovers.",
            )
            raise

        duration = time.perf_counter() - started
        emit_ingest_event(
            "ingest.document.complete",
            owner_id=document.owner_id,
            document_id=document.id,
            title=document.title,
            document_type=document.document_type.value,
            content_chars=len(document.content),
            language=document.metadata.get("language"),
            chunks=len(chunks),
            duration_ms=duration * 1000.0,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "owner_id": document.owner_id,
                "document_id": document.id,
                "document_type": document.document_type.value,
                "chunk_count": len(chunks),
            }
        )
        return IngestResult(
            document_id=document.id,
            chunk_count=len(chunks),
            title=document.title,
            document_type=document.document_type.value,
            chunk_types=[chunk.chunk_type for chunk in chunks],
            duration_seconds=duration,
        )

    async def _persist(self, document: Document, chunks: List[Chunk]) -> None:
        """Store all chunks of ``document`` or none of them.

        A timed out write keeps running in its worker thread; it is awaited and
        rolled back before the failure is raised.
        """

        timeout = self.settings.query_timeout_seconds
        write = asyncio.ensure_future(asyncio.to_thread(self.store.insert_many, chunks))
        try:
            await asyncio.wait_for(asyncio.shield(write), timeout=timeout)
        except asyncio.TimeoutError as exc:
            await self._roll_back(write, document)
            raise StoreUnavailable(f"Chunk insert timed out after {timeout:.0f}s", cause=exc) from exc
        except OutreachError:
            await self._roll_back(write, document)
            raise

    async def _roll_back(self, write: asyncio.Future[Any], document: Document) -> None:
        await asyncio.wait([write])
        try:
            removed = await asyncio.to_thread(self.store.delete_document, document.owner_id, document.id)
        except OutreachError as exc:
            LOGGER.warning("Rollback of document %s failed: %s", document.id, exc)
            return
        if removed:
            LOGGER.info("Rolled back %s late chunks of document %s", removed, document.id)

    async def ingest_file(
        self,
        *,
        owner_id: str,
        title: str | None,
        document_type: DocumentType | str,
        file_name: str,
        data: bytes,
        mime_type: str | None = None,
        notes: str | None = None,
    ) -> IngestResult:
        """Extract text from an uploaded file and ingest it, with optional appended notes."""

        text = await asyncio.to_thread(self.pipeline.extract_text, data, file_name, mime_type)
        if notes and notes.strip():
            text = f"{text}\n\nAdditional Notes:\n{notes.strip()}"
        return await self.ingest(
            IngestRequest(
                owner_id=owner_id,
                title=title or file_name,
                document_type=document_type,
                content=text,
                metadata={"file_name": file_name, "file_size": len(data)},
            )
        )

    async def generate_email(self, request: EmailRequest) -> EmailResult:
        """Retrieve grounded context and synthesize an email with citations."""

        if not request.owner_id or not request.owner_id.strip():
            raise ValidationError("owner_id is required")
        if not request.query or not request.query.strip():
            raise ValidationError("query is required")
        try:
            email_type = EmailType(request.email_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown email type {request.email_type!r}", cause=exc) from exc

        req_id = uuid.uuid4().hex
        focus_areas = [area for area in request.focus_areas if area and area.strip()]
        search_query = build_base_query(
            request.query,
            target_company=request.target_company,
            target_role=request.target_role,
            focus_areas=focus_areas,
        )
        results = await self.retriever.retrieve(
            request.query,
            request.owner_id,
            target_company=request.target_company,
            target_role=request.target_role,
            focus_areas=focus_areas,
        )
        if not results:
            LOGGER.info("No grounding context for request %s; generating ungrounded email", req_id)

        bundle = assemble(results)
        try:
            synthesis = await self.orchestrator.synthesize(
                bundle,
                results,
                owner_id=request.owner_id,
                query=request.query,
                target_company=request.target_company,
                target_role=request.target_role,
                focus_areas=focus_areas,
                email_type=email_type,
                req_id=req_id,
            )
        except OutreachError as error:
            emit_exception(module=f"{__name__}.generation", error=error, req_id=req_id, owner_id=request.owner_id)
            raise

        AUDIT_LOGGER.info(
            {
                "event": "generate_email",
                "req_id": req_id,
                "owner_id": request.owner_id,
                "email_type": email_type.value,
                "sources": [result.chunk_id for result in results],
            }
        )
        return EmailResult(
            subject=synthesis.subject,
            body=synthesis.body,
            sources_note=synthesis.sources_note,
            source_citations=synthesis.citations,
            metadata={
                "chunks_used": len(results),
                "search_query": search_query,
                "generated_at": utc_now_iso(),
                "email_type": email_type.value,
                "req_id": req_id,
                "subject_recovered": synthesis.recovered,
            },
        )

    async def search(
        self,
        owner_id: str,
        *,
        query: str | None = None,
        document_type: DocumentType | str | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
    ) -> List[RetrievalResult]:
        doc_type = parse_document_type(document_type) if document_type else None
        try:
            return await search(
                self.store,
                self.embedder,
                owner_id=owner_id,
                query=query,
                document_type=doc_type,
                threshold=threshold,
                limit=limit,
                timeout=self.settings.query_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise StoreUnavailable("Similarity search timed out", cause=exc) from exc

    async def list_documents(
        self, owner_id: str, document_type: DocumentType | str | None = None
    ) -> List[DocumentSummary]:
        doc_type = parse_document_type(document_type) if document_type else None
        return await _bounded(
            self.store.list_documents,
            owner_id,
            doc_type,
            timeout=self.settings.query_timeout_seconds,
            error_cls=StoreUnavailable,
            what="Document listing",
        )

    async def delete_document(self, owner_id: str, document_id: str) -> int:
        removed = await _bounded(
            self.store.delete_document,
            owner_id,
            document_id,
            timeout=self.settings.query_timeout_seconds,
            error_cls=StoreUnavailable,
            what="Document delete",
        )
        if removed == 0:
            raise DocumentNotFound(f"Document {document_id} not found")
        AUDIT_LOGGER.info(
            {"event": "delete", "owner_id": owner_id, "document_id": document_id, "chunk_count": removed}
        )
        return removed

    async def readiness(self) -> Dict[str, Any]:
        """Probe the chunk store and the embedding backend."""

        chunks = await _bounded(
            self.store.count,
            timeout=self.settings.query_timeout_seconds,
            error_cls=StoreUnavailable,
            what="Store probe",
        )
        dimension = await _bounded(
            lambda: self.embedder.dimension,
            timeout=self.settings.embedding_timeout_seconds,
            error_cls=EmbeddingServiceError,
            what="Embedding probe",
        )
        return {
            "store": self.store.backend_name,
            "chunks": chunks,
            "embedding_model": self.embedder.model_name,
            "embedding_dimension": dimension,
            "generator": self.generator.name,
        }


@lru_cache()
def get_outreach_service() -> OutreachService:
    """FastAPI dependency returning the shared :class:`OutreachService` instance."""

    return OutreachService(
        store=get_chunk_store(),
        embedder=get_embedding_model(),
        generator=get_text_generator(),
    )


def reset_outreach_service_cache() -> None:
    get_outreach_service.cache_clear()


__all__ = [
    "EmailRequest",
    "EmailResult",
    "IngestRequest",
    "IngestResult",
    "OutreachService",
    "get_outreach_service",
    "reset_outreach_service_cache",
]
