"""Type-aware segmentation of document text into ordered, tagged chunks.

Each document type gets its own reducer over the document's lines or
paragraphs. Reducers are pure functions over local state so the segmenter can
be shared between threads without coordination.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Dict, List, Optional, Sequence, Tuple

from outreach.models import CHUNK_TYPES, GENERAL_CHUNK_TYPE, DocumentType

from .chunking import ChunkingConfig, RecursiveTextSplitter
from .models import SegmentedChunk

LOGGER = logging.getLogger(__name__)


def _keyword_pattern(*keywords: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(word) for word in keywords) + ")", re.IGNORECASE)


RESUME_SECTIONS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("summary", _keyword_pattern("summary", "objective")),
    ("skills", _keyword_pattern("skill", "technical")),
    ("experience", _keyword_pattern("experience", "work", "employment")),
    ("education", _keyword_pattern("education", "qualification")),
    ("achievements", _keyword_pattern("achievement", "award", "honor")),
    ("projects", _keyword_pattern("project", "portfolio")),
)
RESUME_DEFAULT_SECTION = "personal_details"

PERSONAL_CATEGORIES: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("preferences", _keyword_pattern("prefer", "like", "enjoy")),
    ("goals", _keyword_pattern("goal", "aspir", "aim")),
    ("strengths", _keyword_pattern("strength", "good at", "expert")),
    ("values", _keyword_pattern("value", "important", "principle")),
)
PERSONAL_DEFAULT_CATEGORY = "background"
PERSONAL_ORDER = (PERSONAL_DEFAULT_CATEGORY,) + tuple(name for name, _ in PERSONAL_CATEGORIES)

COMPANY_CATEGORIES: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("culture", _keyword_pattern("culture", "value", "mission")),
    ("products", _keyword_pattern("product", "service", "offering")),
    ("tech_stack", _keyword_pattern("tech", "stack", "technology")),
    ("recent_news", _keyword_pattern("news", "recent", "launch")),
    ("leadership", _keyword_pattern("ceo", "founder", "leadership")),
)
COMPANY_DEFAULT_CATEGORY = "overview"

_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_OR_LINE_END = ".!?\n"
_HEADER_DECORATION = "#*-•=_ \t"
_MAX_HEADER_WORDS = 3


def _classify(text: str, categories: Sequence[Tuple[str, re.Pattern[str]]]) -> Optional[str]:
    for name, pattern in categories:
        if pattern.search(text):
            return name
    return None


def _is_bare_header(line: str) -> bool:
    """Return True when ``line`` is only a section label such as ``Work Experience:``."""

    label, _, inline = line.partition(":")
    if inline.strip(_HEADER_DECORATION):
        return False
    cleaned = label.strip(_HEADER_DECORATION)
    if not cleaned or cleaned.endswith("."):
        return False
    return len(cleaned.split()) <= _MAX_HEADER_WORDS


@dataclass(frozen=True)
class _ResumeState:
    section: str = RESUME_DEFAULT_SECTION
    lines: Tuple[str, ...] = ()
    blocks: Tuple[Tuple[str, str], ...] = ()

    def flushed(self) -> Tuple[Tuple[str, str], ...]:
        if not self.lines:
            return self.blocks
        return self.blocks + ((self.section, "\n".join(self.lines)),)


def _resume_step(state: _ResumeState, line: str) -> _ResumeState:
    section = _classify(line.lower(), RESUME_SECTIONS)
    if section is None:
        return _ResumeState(state.section, state.lines + (line,), state.blocks)
    carried = () if _is_bare_header(line) else (line,)
    return _ResumeState(section, carried, state.flushed())


@dataclass(slots=True)
class SegmenterConfig:
    sub_chunk_chars: int = 400
    min_chunk_chars: int = 10
    fallback: ChunkingConfig = field(default_factory=ChunkingConfig)


class DocumentSegmenter:
    """Split document text into ``SegmentedChunk`` objects using per-type heuristics."""

    def __init__(self, config: SegmenterConfig | None = None) -> None:
        self.config = config or SegmenterConfig()
        self.splitter = RecursiveTextSplitter(self.config.fallback)

    def segment(self, text: str, document_type: DocumentType | str) -> List[SegmentedChunk]:
        document_type = DocumentType(document_type)
        if not text or not text.strip():
            return []

        if document_type is DocumentType.RESUME:
            pieces = self._segment_resume(text)
        elif document_type is DocumentType.PERSONAL_INFO:
            pieces = self._segment_personal(text)
        elif document_type is DocumentType.COMPANY_RESEARCH:
            pieces = self._segment_company(text)
        else:
            pieces = self._generic(text)

        vocabulary = CHUNK_TYPES[document_type]
        chunks: List[SegmentedChunk] = []
        for index, (content, chunk_type, metadata) in enumerate(pieces):
            if chunk_type not in vocabulary:
                LOGGER.warning("Unexpected chunk type %s for %s; tagging as general", chunk_type, document_type.value)
                chunk_type = GENERAL_CHUNK_TYPE
            chunks.append(
                SegmentedChunk(chunk_index=index, content=content, chunk_type=chunk_type, metadata=metadata)
            )
        LOGGER.debug("Segmented %s chars of %s into %s chunks", len(text), document_type.value, len(chunks))
        return chunks

    def _segment_resume(self, text: str) -> List[Tuple[str, str, Dict[str, object]]]:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        blocks = reduce(_resume_step, lines, _ResumeState()).flushed()

        pieces: List[Tuple[str, str, Dict[str, object]]] = []
        for section, block in blocks:
            for piece in self._sub_split(block):
                if len(piece) < self.config.min_chunk_chars:
                    continue
                pieces.append((piece, section, {"section": section}))

        if not pieces:
            LOGGER.info("No resume sections recognised; using fixed-size fallback split")
            return self._generic(text, method="fallback")
        return pieces

    def _sub_split(self, block: str) -> List[str]:
        """Break ``block`` at sentence or line ends found past half of the sub-chunk size."""

        size = self.config.sub_chunk_chars
        if len(block) <= size:
            return [block.strip()]

        pieces: List[str] = []
        start = 0
        while start < len(block):
            end = min(start + size, len(block))
            if end < len(block):
                window = block[start:end]
                cut = max(window.rfind(marker) for marker in _SENTENCE_OR_LINE_END)
                if cut >= size // 2:
                    end = start + cut + 1
            piece = block[start:end].strip()
            if piece:
                if pieces and len(piece) < self.config.min_chunk_chars:
                    pieces[-1] = f"{pieces[-1]} {piece}"
                else:
                    pieces.append(piece)
            start = end
        return pieces

    def _segment_personal(self, text: str) -> List[Tuple[str, str, Dict[str, object]]]:
        def step(state: Tuple[str, Dict[str, Tuple[str, ...]]], line: str):
            current, collected = state
            current = _classify(line.lower(), PERSONAL_CATEGORIES) or current
            return current, {**collected, current: collected.get(current, ()) + (line,)}

        lines = [line.strip() for line in text.splitlines() if line.strip()]
        _, collected = reduce(step, lines, (PERSONAL_DEFAULT_CATEGORY, {}))
        return [
            ("\n".join(collected[name]), name, {"section": name})
            for name in PERSONAL_ORDER
            if collected.get(name)
        ]

    def _segment_company(self, text: str) -> List[Tuple[str, str, Dict[str, object]]]:
        pieces: List[Tuple[str, str, Dict[str, object]]] = []
        paragraphs = [paragraph.strip() for paragraph in _PARAGRAPH_RE.split(text)]
        for paragraph in filter(None, paragraphs):
            category = _classify(paragraph.lower(), COMPANY_CATEGORIES) or COMPANY_DEFAULT_CATEGORY
            pieces.append((paragraph, category, {"section": category, "paragraph": len(pieces)}))
        return pieces

    def _generic(self, text: str, method: str | None = None) -> List[Tuple[str, str, Dict[str, object]]]:
        metadata: Dict[str, object] = {"section": GENERAL_CHUNK_TYPE}
        if method:
            metadata["method"] = method
        windows = self.splitter.split(text.strip())
        return [(window, GENERAL_CHUNK_TYPE, dict(metadata)) for window in windows]


_DEFAULT_SEGMENTER = DocumentSegmenter()


def segment(text: str, document_type: DocumentType | str) -> List[SegmentedChunk]:
    """Segment ``text`` with the default configuration."""

    return _DEFAULT_SEGMENTER.segment(text, document_type)


__all__ = [
    "COMPANY_CATEGORIES",
    "DocumentSegmenter",
    "PERSONAL_CATEGORIES",
    "RESUME_SECTIONS",
    "SegmenterConfig",
    "segment",
]
