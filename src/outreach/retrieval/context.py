"""Reshape ranked retrieval results into fixed, named prompt slots."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from outreach.models import DocumentType, RetrievalResult

RESUME_KEYS = ("skills", "experience", "achievements", "education", "projects")
PERSONAL_KEYS = ("background", "preferences", "goals", "strengths", "values")
COMPANY_KEYS = ("overview", "culture", "products", "tech_stack", "recent_news", "leadership")

# document type -> (group name, recognised chunk types, default bucket)
_GROUPS = {
    DocumentType.RESUME.value: ("resume", RESUME_KEYS, "experience"),
    DocumentType.PERSONAL_INFO.value: ("personal", PERSONAL_KEYS, "background"),
    DocumentType.COMPANY_RESEARCH.value: ("company", COMPANY_KEYS, "overview"),
}


def _slots(keys: Iterable[str]) -> Dict[str, List[str]]:
    return {key: [] for key in keys}


@dataclass(slots=True)
class ContextBundle:
    """Retrieved chunk text grouped by document-type group and chunk type."""

    resume: Dict[str, List[str]] = field(default_factory=lambda: _slots(RESUME_KEYS))
    personal: Dict[str, List[str]] = field(default_factory=lambda: _slots(PERSONAL_KEYS))
    company: Dict[str, List[str]] = field(default_factory=lambda: _slots(COMPANY_KEYS))
    other: List[str] = field(default_factory=list)

    def group(self, name: str) -> Dict[str, List[str]]:
        return getattr(self, name)

    def is_empty(self) -> bool:
        groups = (self.resume, self.personal, self.company)
        return not self.other and not any(values for group in groups for values in group.values())

    def as_dict(self) -> Dict[str, object]:
        return {
            "resume": {key: list(values) for key, values in self.resume.items()},
            "personal": {key: list(values) for key, values in self.personal.items()},
            "company": {key: list(values) for key, values in self.company.items()},
            "other": list(self.other),
        }


def assemble(results: Iterable[RetrievalResult]) -> ContextBundle:
    """Route each result's content into its slot, preserving ranked order."""

    bundle = ContextBundle()
    for result in results:
        routing = _GROUPS.get(result.document_type)
        if routing is None:
            bundle.other.append(result.content)
            continue
        group_name, keys, default = routing
        key = result.chunk_type if result.chunk_type in keys else default
        bundle.group(group_name)[key].append(result.content)
    return bundle


__all__ = ["COMPANY_KEYS", "ContextBundle", "PERSONAL_KEYS", "RESUME_KEYS", "assemble"]
