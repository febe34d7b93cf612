"""Fixed-size recursive splitting used when no structural heuristic applies."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Tuple

_FALLBACK_SENTENCE_RE = re.compile(r"(.+?(?:[.!?](?=\s)|$))", re.DOTALL)
LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ChunkingConfig:
    chunk_chars: int = 500
    overlap_chars: int = 50


class RecursiveTextSplitter:
    """Split text into overlapping windows, breaking on paragraphs, sentences, then spaces."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def split(self, text: str) -> List[str]:
        pieces = [piece for piece, _, _ in self.split_with_offsets(text)]
        LOGGER.debug("Split %s chars into %s windows", len(text), len(pieces))
        return pieces

    def split_with_offsets(self, text: str) -> Iterator[Tuple[str, int, int]]:
        if not text:
            return
        chunk_chars = max(self.config.chunk_chars, 1)
        overlap_chars = max(min(self.config.overlap_chars, chunk_chars - 1), 0)
        text_length = len(text)
        start = 0
        while start < text_length:
            tentative_end = min(start + chunk_chars, text_length)
            chunk_end = self._find_semantic_break(text, start, tentative_end)
            if chunk_end <= start:
                chunk_end = tentative_end
            raw_chunk = text[start:chunk_end]
            stripped_chunk = raw_chunk.strip()
            if not stripped_chunk:
                start = chunk_end
                continue
            leading_ws = len(raw_chunk) - len(raw_chunk.lstrip())
            trailing_ws = len(raw_chunk) - len(raw_chunk.rstrip())
            final_start = start + leading_ws
            final_end = chunk_end - trailing_ws
            yield text[final_start:final_end], final_start, final_end
            if chunk_end >= text_length:
                break
            next_start = final_end - overlap_chars
            if next_start <= final_start:
                next_start = final_end
            start = max(start + 1, next_start)

    def _find_semantic_break(self, text: str, start: int, tentative_end: int) -> int:
        if tentative_end >= len(text):
            return len(text)
        segment = text[start:tentative_end]
        paragraph_break = segment.rfind("\n\n")
        if paragraph_break != -1 and paragraph_break >= self.config.chunk_chars // 3:
            return start + paragraph_break + 2
        sentence_break = self._find_sentence_break(segment)
        if sentence_break is not None and sentence_break >= self.config.chunk_chars // 4:
            return start + sentence_break
        word_break = segment.rfind(" ")
        if word_break != -1 and word_break >= self.config.chunk_chars // 4:
            return start + word_break
        return tentative_end

    @staticmethod
    def _find_sentence_break(segment: str) -> int | None:
        matches = [match for match in _FALLBACK_SENTENCE_RE.finditer(segment) if match.end() < len(segment)]
        if not matches:
            return None
        return matches[-1].end()
