from __future__ import annotations

import time

import pytest

from outreach.errors import GenerationServiceError
from outreach.generation import MockTextGenerator, TextGenerator
from outreach.models import RetrievalResult
from outreach.retrieval import assemble
from outreach.synthesis import SYSTEM_PROMPT, SynthesisOrchestrator


def _results() -> list[RetrievalResult]:
    return [
        RetrievalResult(
            chunk_id="c-1",
            document_id="doc-1",
            document_title="Resume",
            document_type="resume",
            chunk_index=0,
            chunk_type="skills",
            content="Skills: Python, Go, Kubernetes",
            similarity=0.82,
        )
    ]


class SlowGenerator(TextGenerator):
    name = "slow"

    def generate(self, system_prompt: str, prompt: str) -> str:
        time.sleep(0.5)
        return "Subject: late"


@pytest.mark.anyio
async def test_synthesize_parses_output_and_cites_sources(generator) -> None:
    results = _results()
    orchestrator = SynthesisOrchestrator(generator)

    outcome = await orchestrator.synthesize(
        assemble(results),
        results,
        owner_id="owner-1",
        query="Apply for the backend role",
        target_company="Acme",
        target_role="Backend Engineer",
    )

    assert outcome.subject == "Backend Engineer at Acme"
    assert outcome.body == "Hello team,\nI build reliable systems."
    assert outcome.sources_note == "resume skills"
    assert outcome.citations.total == 1
    assert outcome.recovered is False

    system_prompt, prompt = generator.calls[0]
    assert system_prompt == SYSTEM_PROMPT
    assert "MY SKILLS:\nSkills: Python, Go, Kubernetes" in prompt


@pytest.mark.anyio
async def test_synthesize_recovers_from_missing_subject(generator) -> None:
    generator.response = "Hi there, I would love to chat."
    orchestrator = SynthesisOrchestrator(generator)

    outcome = await orchestrator.synthesize(
        assemble([]), [], owner_id="owner-1", query="Hello", target_role="SRE"
    )

    assert outcome.recovered is True
    assert outcome.subject == "Application for SRE"
    assert outcome.body == "Hi there, I would love to chat."
    assert outcome.citations.total == 0


@pytest.mark.anyio
async def test_generator_failure_becomes_generation_service_error(generator) -> None:
    generator.error = RuntimeError("quota exceeded")
    orchestrator = SynthesisOrchestrator(generator)

    with pytest.raises(GenerationServiceError) as excinfo:
        await orchestrator.synthesize(assemble([]), [], owner_id="owner-1", query="Hello")

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert len(generator.calls) == 1


@pytest.mark.anyio
async def test_generation_timeout_becomes_generation_service_error() -> None:
    orchestrator = SynthesisOrchestrator(SlowGenerator(), timeout=0.05)

    with pytest.raises(GenerationServiceError):
        await orchestrator.synthesize(assemble([]), [], owner_id="owner-1", query="Hello")


@pytest.mark.anyio
async def test_mock_generator_output_round_trips_through_parser() -> None:
    results = _results()
    orchestrator = SynthesisOrchestrator(MockTextGenerator())

    outcome = await orchestrator.synthesize(
        assemble(results),
        results,
        owner_id="owner-1",
        query="Apply",
        target_company="Acme",
        target_role="Backend Engineer",
    )

    assert outcome.subject == "Backend Engineer at Acme"
    assert "Backend Engineer opening at Acme" in outcome.body
    assert outcome.sources_note == "My Skills"
