"""Prompt → generation → parse → citations."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from outreach.errors import GenerationServiceError
from outreach.generation import TextGenerator
from outreach.models import EmailType, RetrievalResult
from outreach.retrieval.context import ContextBundle
from outreach.telemetry import emit_generation_request, emit_generation_result, emit_prompt_event

from .citations import CitationReport, build_citations
from .parser import parse_email_response
from .prompt_builder import SYSTEM_PROMPT, build_email_prompt, context_sections

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SynthesisResult:
    subject: str
    body: str
    sources_note: str
    citations: CitationReport
    recovered: bool = False


class SynthesisOrchestrator:
    """Render the prompt, call the generator once, and attach citations."""

    def __init__(
        self,
        generator: TextGenerator,
        *,
        timeout: float = 60.0,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.generator = generator
        self.timeout = timeout
        self.system_prompt = system_prompt

    async def synthesize(
        self,
        bundle: ContextBundle,
        results: Sequence[RetrievalResult],
        *,
        owner_id: str,
        query: str,
        target_company: Optional[str] = None,
        target_role: Optional[str] = None,
        focus_areas: Sequence[str] = (),
        email_type: EmailType = EmailType.APPLICATION,
        req_id: Optional[str] = None,
    ) -> SynthesisResult:
        req_id = req_id or uuid.uuid4().hex
        prompt = build_email_prompt(
            bundle,
            query=query,
            target_company=target_company,
            target_role=target_role,
            focus_areas=focus_areas,
            email_type=email_type,
        )
        emit_prompt_event(
            req_id=req_id,
            system_prompt=self.system_prompt,
            sections=[label for label, _ in context_sections(bundle, target_company)],
            prompt_len=len(prompt),
        )
        emit_generation_request(
            req_id=req_id,
            owner_id=owner_id,
            backend=self.generator.name,
            prompt_preview=prompt,
            prompt_len=len(prompt),
            sources=[result.chunk_id for result in results],
        )

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.generator.generate, self.system_prompt, prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationServiceError(
                f"Text generation timed out after {self.timeout:.0f}s", cause=exc
            ) from exc
        except GenerationServiceError:
            raise
        except Exception as exc:
            LOGGER.exception("Text generation failed for request %s", req_id)
            raise GenerationServiceError(f"Text generation failed: {exc}", cause=exc) from exc

        parsed = parse_email_response(response, target_role)
        emit_generation_result(
            req_id=req_id,
            owner_id=owner_id,
            backend=self.generator.name,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            response_preview=response,
            parsed=not parsed.recovered,
        )
        return SynthesisResult(
            subject=parsed.subject,
            body=parsed.body,
            sources_note=parsed.sources_note,
            citations=build_citations(results),
            recovered=parsed.recovered,
        )


__all__ = ["SynthesisOrchestrator", "SynthesisResult"]
