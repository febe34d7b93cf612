"""API router exposing retrieve-and-synthesize email generation."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from outreach.models import EmailType
from outreach.services.outreach import EmailRequest, EmailResult, OutreachService, get_outreach_service

router = APIRouter(prefix="/owners", tags=["emails"])


class GenerateEmailBody(BaseModel):
    """Request body accepted by the email generation endpoint."""

    query: str = Field(..., min_length=1, description="What the email should accomplish.")
    target_company: Optional[str] = None
    target_role: Optional[str] = None
    focus_areas: list[str] = Field(default_factory=list)
    email_type: EmailType = EmailType.APPLICATION


class CitationItem(BaseModel):
    document_title: str
    document_type: str
    chunk_type: str
    similarity_percent: int
    content_preview: str


class CitationsPayload(BaseModel):
    total: int
    by_document: dict[str, list[CitationItem]]
    top_sources: list[CitationItem]


class GenerateEmailResponse(BaseModel):
    """Response payload for the email generation endpoint."""

    subject: str
    body: str
    sources_note: str
    source_citations: CitationsPayload
    metadata: dict[str, Any]


def _serialise(result: EmailResult) -> GenerateEmailResponse:
    return GenerateEmailResponse(
        subject=result.subject,
        body=result.body,
        sources_note=result.sources_note,
        source_citations=CitationsPayload(**result.source_citations.as_dict()),
        metadata=result.metadata,
    )


@router.post("/{owner_id}/emails", response_model=GenerateEmailResponse)
async def generate_email(
    owner_id: str,
    body: GenerateEmailBody,
    service: OutreachService = Depends(get_outreach_service),
) -> GenerateEmailResponse:
    """Generate a grounded outreach email from the owner's documents."""

    result = await service.generate_email(
        EmailRequest(
            owner_id=owner_id,
            query=body.query,
            target_company=body.target_company,
            target_role=body.target_role,
            focus_areas=body.focus_areas,
            email_type=body.email_type,
        )
    )
    return _serialise(result)
