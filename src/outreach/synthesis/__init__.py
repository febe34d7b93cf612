"""Synthesis: prompt construction, generation, response parsing and citations."""

from .citations import CitationReport, SourceCitation, build_citations
from .orchestrator import SynthesisOrchestrator, SynthesisResult
from .parser import ParsedEmail, parse_email_response
from .prompt_builder import SYSTEM_PROMPT, build_email_prompt

__all__ = [
    "CitationReport",
    "ParsedEmail",
    "SYSTEM_PROMPT",
    "SourceCitation",
    "SynthesisOrchestrator",
    "SynthesisResult",
    "build_citations",
    "build_email_prompt",
    "parse_email_response",
]
