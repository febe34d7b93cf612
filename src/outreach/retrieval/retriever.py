"""Multi-category retrieval: scoped fan-out, deduplication, ranking and capping."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from outreach.chunkstore import ChunkStore
from outreach.embeddings import EmbeddingModel
from outreach.models import DocumentType, RetrievalResult
from outreach.telemetry import emit_category_event, emit_retriever_event

LOGGER = logging.getLogger(__name__)

BOOST_TERMS = "experience skills achievements projects"
MAX_RESULTS = 15
FINGERPRINT_CHARS = 100


@dataclass(frozen=True, slots=True)
class CategoryPolicy:
    """How one document type is queried: augmentation, similarity floor and cap."""

    document_type: DocumentType
    augmentation: str
    threshold: float
    limit: int


# Order matters: on equal similarity the earlier category keeps a duplicate.
DEFAULT_POLICIES: Tuple[CategoryPolicy, ...] = (
    CategoryPolicy(DocumentType.RESUME, "skills experience achievements", 0.6, 8),
    CategoryPolicy(DocumentType.PERSONAL_INFO, "preferences goals strengths values", 0.6, 4),
    CategoryPolicy(DocumentType.COMPANY_RESEARCH, "", 0.7, 3),
    CategoryPolicy(DocumentType.JOB_DESCRIPTION, "requirements responsibilities", 0.6, 3),
    CategoryPolicy(DocumentType.NOTE, "", 0.6, 2),
)


def build_base_query(
    query: str,
    *,
    target_company: Optional[str] = None,
    target_role: Optional[str] = None,
    focus_areas: Iterable[str] = (),
) -> str:
    parts = [query, target_company or "", target_role or "", *focus_areas, BOOST_TERMS]
    return " ".join(part.strip() for part in parts if part and part.strip())


def normalize_content(content: str) -> str:
    return " ".join(content.lower().split())


def fingerprint(content: str, chars: int = FINGERPRINT_CHARS) -> str:
    """Lowercased, whitespace-collapsed prefix used to bucket candidate duplicates."""

    return normalize_content(content)[:chars]


def deduplicate(
    groups: Sequence[Sequence[RetrievalResult]], *, chars: int = FINGERPRINT_CHARS
) -> List[RetrievalResult]:
    """Drop repeated content across groups.

    Results sharing a fingerprint are only merged when one normalized content
    equals or contains the other; distinct chunks with a common prefix both
    survive. The higher similarity wins a merge and a tie keeps the result
    from the earlier group, so the outcome does not depend on completion order.
    """

    kept: List[Tuple[str, RetrievalResult]] = []
    buckets: Dict[str, List[int]] = {}
    for group in groups:
        for result in group:
            text = normalize_content(result.content)
            slots = buckets.setdefault(text[:chars], [])
            for slot in slots:
                seen, current = kept[slot]
                if text in seen or seen in text:
                    if result.similarity > current.similarity:
                        kept[slot] = (text, result)
                    break
            else:
                slots.append(len(kept))
                kept.append((text, result))
    return [result for _, result in kept]


def rank(results: Iterable[RetrievalResult], *, limit: int = MAX_RESULTS) -> List[RetrievalResult]:
    return sorted(results, key=lambda item: item.similarity, reverse=True)[:limit]


class Retriever:
    """Issue one scoped similarity query per document type and merge the results."""

    def __init__(
        self,
        store: ChunkStore,
        embedder: EmbeddingModel,
        *,
        policies: Sequence[CategoryPolicy] = DEFAULT_POLICIES,
        max_results: int = MAX_RESULTS,
        fingerprint_chars: int = FINGERPRINT_CHARS,
        query_timeout: float = 10.0,
        embedding_timeout: float = 30.0,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.policies = tuple(policies)
        self.max_results = max_results
        self.fingerprint_chars = fingerprint_chars
        self.query_timeout = query_timeout
        self.embedding_timeout = embedding_timeout

    async def retrieve(
        self,
        query: str,
        owner_id: str,
        *,
        target_company: Optional[str] = None,
        target_role: Optional[str] = None,
        focus_areas: Iterable[str] = (),
    ) -> List[RetrievalResult]:
        started = time.perf_counter()
        base_query = build_base_query(
            query, target_company=target_company, target_role=target_role, focus_areas=focus_areas
        )
        groups = await asyncio.gather(
            *(self._query_category(policy, base_query, owner_id) for policy in self.policies)
        )
        candidates = sum(len(group) for group in groups)
        unique = deduplicate(groups, chars=self.fingerprint_chars)
        ranked = rank(unique, limit=self.max_results)
        emit_retriever_event(
            owner_id=owner_id,
            query=base_query,
            candidates=candidates,
            unique=len(unique),
            results=[
                {
                    "chunk_id": result.chunk_id,
                    "document_type": result.document_type,
                    "chunk_type": result.chunk_type,
                    "similarity": round(result.similarity, 4),
                }
                for result in ranked
            ],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return ranked

    async def _query_category(
        self, policy: CategoryPolicy, base_query: str, owner_id: str
    ) -> List[RetrievalResult]:
        """Run one scoped query; any failure or timeout yields an empty list."""

        started = time.perf_counter()
        text = f"{base_query} {policy.augmentation}".strip()
        error: Optional[BaseException] = None
        results: List[RetrievalResult] = []
        try:
            vector = await asyncio.wait_for(
                asyncio.to_thread(self.embedder.embed, text), timeout=self.embedding_timeout
            )
            results = await asyncio.wait_for(
                asyncio.to_thread(
                    self.store.query_similar,
                    vector,
                    owner_id,
                    policy.document_type,
                    threshold=policy.threshold,
                    limit=policy.limit,
                ),
                timeout=self.query_timeout,
            )
            results = [item for item in results if item.similarity >= policy.threshold][: policy.limit]
        except Exception as exc:
            error = exc
            results = []
            LOGGER.warning(
                "Category %s query failed for owner %s: %s",
                policy.document_type.value,
                owner_id,
                exc.__class__.__name__,
            )
        emit_category_event(
            owner_id=owner_id,
            category=policy.document_type.value,
            threshold=policy.threshold,
            limit=policy.limit,
            results=len(results),
            duration_ms=(time.perf_counter() - started) * 1000.0,
            error=error,
        )
        return results


__all__ = [
    "BOOST_TERMS",
    "CategoryPolicy",
    "DEFAULT_POLICIES",
    "MAX_RESULTS",
    "Retriever",
    "build_base_query",
    "deduplicate",
    "fingerprint",
    "normalize_content",
    "rank",
]
