"""Single scoped similarity search, including the list-everything shortcut."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from outreach.chunkstore import ChunkStore
from outreach.chunkstore.base import DocumentTypeFilter
from outreach.embeddings import EmbeddingModel
from outreach.errors import ValidationError
from outreach.models import RetrievalResult

LOGGER = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7
DEFAULT_LIMIT = 10
# At or below this threshold an empty query means "everything the owner has".
LIST_ALL_THRESHOLD = 0.1


async def search(
    store: ChunkStore,
    embedder: EmbeddingModel,
    *,
    owner_id: str,
    query: Optional[str] = None,
    document_type: DocumentTypeFilter = None,
    threshold: float = DEFAULT_THRESHOLD,
    limit: int = DEFAULT_LIMIT,
    timeout: Optional[float] = None,
) -> List[RetrievalResult]:
    """Search the owner's chunks.

    With no query text and ``threshold <= 0.1`` the store's ``list_all`` path is
    used and every result carries similarity 1.0. With no query text and a
    higher threshold the request is rejected.
    """

    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("threshold must be between 0 and 1")
    if limit <= 0:
        raise ValidationError("limit must be positive")

    text = (query or "").strip()
    if not text:
        if threshold > LIST_ALL_THRESHOLD:
            raise ValidationError(
                f"Query is required for similarity search. Use threshold <= {LIST_ALL_THRESHOLD} to list all chunks."
            )
        LOGGER.info("Listing all chunks for owner %s", owner_id)
        return await asyncio.wait_for(
            asyncio.to_thread(store.list_all, owner_id, document_type, limit=limit), timeout=timeout
        )

    vector = await asyncio.wait_for(asyncio.to_thread(embedder.embed, text), timeout=timeout)
    return await asyncio.wait_for(
        asyncio.to_thread(
            store.query_similar, vector, owner_id, document_type, threshold=threshold, limit=limit
        ),
        timeout=timeout,
    )


__all__ = ["DEFAULT_LIMIT", "DEFAULT_THRESHOLD", "LIST_ALL_THRESHOLD", "search"]
