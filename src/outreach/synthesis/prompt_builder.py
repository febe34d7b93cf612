"""Utilities for constructing the outreach email generation prompt."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from outreach.models import EmailType
from outreach.retrieval.context import ContextBundle

_SYSTEM_PROMPT_PATH = Path(__file__).resolve().parents[1] / "prompts" / "system.txt"

BEHAVIOURAL_DIRECTIVE = (
    "Generate a personalized, professional email that demonstrates strong alignment with the "
    "role and company. Include specific examples from the context above."
)

_EMAIL_TYPE_LABELS = {
    EmailType.APPLICATION: "application",
    EmailType.COLD_OUTREACH: "cold outreach",
    EmailType.FOLLOW_UP: "follow-up",
}


def _load_template(path: Path) -> str:
    """Read and trim the contents of a template file."""
    return path.read_text(encoding="utf-8").strip()


SYSTEM_PROMPT = _load_template(_SYSTEM_PROMPT_PATH)


def context_sections(bundle: ContextBundle, company: Optional[str] = None) -> List[Tuple[str, List[str]]]:
    """Return ``(label, entries)`` pairs for the populated prompt sections, in fixed order."""

    company_label = company or "the company"
    candidates = [
        ("MY SKILLS", bundle.resume["skills"]),
        ("MY EXPERIENCE", bundle.resume["experience"]),
        ("MY ACHIEVEMENTS", bundle.resume["achievements"]),
        ("MY GOALS", bundle.personal["goals"]),
        ("MY STRENGTHS", bundle.personal["strengths"]),
        (f"ABOUT {company_label}", bundle.company["overview"]),
        (f"{company_label} CULTURE", bundle.company["culture"]),
        ("ADDITIONAL CONTEXT", bundle.other),
    ]
    return [(label, entries) for label, entries in candidates if entries]


def build_email_prompt(
    bundle: ContextBundle,
    *,
    query: str,
    target_company: Optional[str] = None,
    target_role: Optional[str] = None,
    focus_areas: Sequence[str] = (),
    email_type: EmailType = EmailType.APPLICATION,
) -> str:
    """Compose the user prompt sent alongside ``SYSTEM_PROMPT``."""

    if query is None:
        raise ValueError("query must not be None")

    label = _EMAIL_TYPE_LABELS.get(EmailType(email_type), "application")
    lines = [
        f"Generate a {label} email based on the following request and context:",
        "",
        f"REQUEST: {query.strip()}",
        "",
        f"TARGET: {target_role or 'the role'} at {target_company or 'the company'}",
    ]
    focus = [area.strip() for area in focus_areas if area and area.strip()]
    if focus:
        lines.append(f"FOCUS AREAS: {', '.join(focus)}")
    lines.append("")

    for section_label, entries in context_sections(bundle, target_company):
        lines.append(f"{section_label}:")
        lines.extend(entries)
        lines.append("")

    lines.append(BEHAVIOURAL_DIRECTIVE)
    return "\n".join(lines)


__all__ = ["BEHAVIOURAL_DIRECTIVE", "SYSTEM_PROMPT", "build_email_prompt", "context_sections"]
