"""API router exposing document ingest, listing, deletion and search."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, Field

from outreach.models import DocumentSummary, DocumentType, RetrievalResult
from outreach.services.outreach import IngestRequest, IngestResult, OutreachService, get_outreach_service

router = APIRouter(prefix="/owners", tags=["documents"])


class IngestBody(BaseModel):
    """Request body accepted by the JSON ingest endpoint."""

    title: str = Field(..., min_length=1, description="Human readable document title.")
    document_type: DocumentType = Field(..., description="Classification driving segmentation.")
    content: str = Field(..., description="Raw document text.")
    metadata: dict[str, Any] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    """Response body returned from the ingest endpoints."""

    status: str
    document_id: str
    chunk_count: int
    title: str
    document_type: str
    chunk_types: list[str]
    duration_seconds: float


class DocumentItem(BaseModel):
    id: str
    title: str
    document_type: str
    chunk_count: int
    created_at: str


class DocumentListResponse(BaseModel):
    documents: list[DocumentItem]


class DeleteResponse(BaseModel):
    status: str
    document_id: str
    deleted_chunks: int


class SearchBody(BaseModel):
    """Request body accepted by the search endpoint."""

    query: Optional[str] = Field(None, description="Free text; omit with threshold <= 0.1 to list everything.")
    document_type: Optional[DocumentType] = None
    threshold: float = Field(0.7, ge=0.0, le=1.0)
    limit: int = Field(10, ge=1, le=100)


class SearchResultItem(BaseModel):
    chunk_id: str
    document_id: str
    document_title: str
    document_type: str
    chunk_index: int
    chunk_type: str
    content: str
    similarity: float
    metadata: dict[str, Any]


class SearchResponse(BaseModel):
    results: list[SearchResultItem]
    total: int


def _ingest_response(result: IngestResult) -> IngestResponse:
    return IngestResponse(
        status="ok",
        document_id=result.document_id,
        chunk_count=result.chunk_count,
        title=result.title,
        document_type=result.document_type,
        chunk_types=result.chunk_types,
        duration_seconds=result.duration_seconds,
    )


def _serialise_document(summary: DocumentSummary) -> DocumentItem:
    return DocumentItem(
        id=summary.id,
        title=summary.title,
        document_type=summary.document_type,
        chunk_count=summary.chunk_count,
        created_at=summary.created_at,
    )


def _serialise_result(result: RetrievalResult) -> SearchResultItem:
    return SearchResultItem(
        chunk_id=result.chunk_id,
        document_id=result.document_id,
        document_title=result.document_title,
        document_type=result.document_type,
        chunk_index=result.chunk_index,
        chunk_type=result.chunk_type,
        content=result.content,
        similarity=result.similarity,
        metadata=dict(result.metadata),
    )


@router.post("/{owner_id}/documents", response_model=IngestResponse, status_code=201)
async def ingest_document(
    owner_id: str,
    body: IngestBody,
    service: OutreachService = Depends(get_outreach_service),
) -> IngestResponse:
    """Segment, embed and store a document supplied as text."""

    result = await service.ingest(
        IngestRequest(
            owner_id=owner_id,
            title=body.title,
            document_type=body.document_type,
            content=body.content,
            metadata=body.metadata,
        )
    )
    return _ingest_response(result)


@router.post("/{owner_id}/documents/upload", response_model=IngestResponse, status_code=201)
async def upload_document(
    owner_id: str,
    file: UploadFile = File(...),
    document_type: DocumentType = Form(DocumentType.RESUME),
    title: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    service: OutreachService = Depends(get_outreach_service),
) -> IngestResponse:
    """Extract text from an uploaded PDF, DOCX or text file and ingest it."""

    data = await file.read()
    result = await service.ingest_file(
        owner_id=owner_id,
        title=title,
        document_type=document_type,
        file_name=file.filename or "upload.txt",
        data=data,
        mime_type=file.content_type,
        notes=notes,
    )
    return _ingest_response(result)


@router.get("/{owner_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    owner_id: str,
    document_type: Optional[DocumentType] = Query(None),
    service: OutreachService = Depends(get_outreach_service),
) -> DocumentListResponse:
    documents = await service.list_documents(owner_id, document_type)
    return DocumentListResponse(documents=[_serialise_document(item) for item in documents])


@router.delete("/{owner_id}/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(
    owner_id: str,
    document_id: str,
    service: OutreachService = Depends(get_outreach_service),
) -> DeleteResponse:
    """Delete a document and, by cascade, all of its chunks."""

    removed = await service.delete_document(owner_id, document_id)
    return DeleteResponse(status="deleted", document_id=document_id, deleted_chunks=removed)


@router.post("/{owner_id}/documents/search", response_model=SearchResponse)
async def search_documents(
    owner_id: str,
    body: SearchBody,
    service: OutreachService = Depends(get_outreach_service),
) -> SearchResponse:
    results = await service.search(
        owner_id,
        query=body.query,
        document_type=body.document_type,
        threshold=body.threshold,
        limit=body.limit,
    )
    return SearchResponse(results=[_serialise_result(item) for item in results], total=len(results))
