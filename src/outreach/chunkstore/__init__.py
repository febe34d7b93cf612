"""Chunk persistence behind a pluggable backend."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from outreach.config import Settings, get_settings
from outreach.errors import StoreUnavailable

from .base import ChunkStore
from .memory_store import InMemoryChunkStore

LOGGER = logging.getLogger(__name__)


def build_chunk_store(settings: Optional[Settings] = None) -> ChunkStore:
    settings = settings or get_settings()
    backend = settings.chunk_store
    if backend == "memory":
        return InMemoryChunkStore()
    if backend == "chroma":
        from .chroma_store import ChromaChunkStore

        LOGGER.info("Opening Chroma chunk store at %s", settings.chroma_persist_dir)
        return ChromaChunkStore(settings.chroma_persist_dir, collection_name=settings.chroma_collection)
    raise StoreUnavailable(f"Unsupported CHUNK_STORE backend: {backend!r}")


@lru_cache()
def get_chunk_store() -> ChunkStore:
    """Return a lazily initialised chunk store based on configuration."""

    return build_chunk_store()


def reset_chunk_store_cache() -> None:
    """Clear the cached chunk store (primarily for testing)."""

    get_chunk_store.cache_clear()


__all__ = [
    "ChunkStore",
    "InMemoryChunkStore",
    "build_chunk_store",
    "get_chunk_store",
    "reset_chunk_store_cache",
]
