"""Shared fixtures wiring the service to offline backends."""
from __future__ import annotations

import os
import tempfile
from typing import List, Optional, Tuple

import pytest

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="outreach-logs-"))
os.environ.setdefault("EMBEDDING_BACKEND", "hash")
os.environ.setdefault("GENERATION_BACKEND", "mock")
os.environ.setdefault("CHUNK_STORE", "memory")

from outreach.chunkstore import InMemoryChunkStore, reset_chunk_store_cache  # noqa: E402
from outreach.config import Settings, reset_settings_cache  # noqa: E402
from outreach.embeddings import EmbeddingModel, HashEmbeddingBackend, reset_embedding_model_cache  # noqa: E402
from outreach.generation import TextGenerator, reset_text_generator_cache  # noqa: E402
from outreach.models import Chunk, DocumentType  # noqa: E402
from outreach.services.outreach import OutreachService, reset_outreach_service_cache  # noqa: E402


class ScriptedTextGenerator(TextGenerator):
    """Returns a canned response and records every prompt it receives."""

    name = "scripted"

    def __init__(self, response: str = "", *, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    def generate(self, system_prompt: str, prompt: str) -> str:
        self.calls.append((system_prompt, prompt))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_caches():
    yield
    reset_settings_cache()
    reset_chunk_store_cache()
    reset_embedding_model_cache()
    reset_text_generator_cache()
    reset_outreach_service_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        embedding_backend="hash",
        generation_backend="mock",
        query_timeout_seconds=5.0,
        embedding_timeout_seconds=5.0,
        generation_timeout_seconds=5.0,
    )


@pytest.fixture
def embedder() -> EmbeddingModel:
    return EmbeddingModel(HashEmbeddingBackend(384), cache_ttl_seconds=60.0)


@pytest.fixture
def store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def generator() -> ScriptedTextGenerator:
    return ScriptedTextGenerator(
        "Subject: Backend Engineer at Acme\n\nHello team,\nI build reliable systems.\n"
        "SOURCES USED: resume skills"
    )


@pytest.fixture
def service(store, embedder, generator, settings) -> OutreachService:
    return OutreachService(store=store, embedder=embedder, generator=generator, settings=settings)


def _build_chunk(
    embedder: EmbeddingModel,
    content: str,
    *,
    chunk_id: str,
    owner_id: str = "owner-1",
    document_id: str = "doc-1",
    document_type: DocumentType = DocumentType.RESUME,
    chunk_type: str = "experience",
    chunk_index: int = 0,
    title: str = "Resume",
    created_at: str = "2024-01-01T00:00:00Z",
) -> Chunk:
    return Chunk(
        id=chunk_id,
        document_id=document_id,
        owner_id=owner_id,
        document_title=title,
        document_type=document_type,
        chunk_index=chunk_index,
        chunk_type=chunk_type,
        content=content,
        embedding=embedder.embed_texts([content])[0],
        metadata={"section": chunk_type},
        created_at=created_at,
    )


@pytest.fixture
def make_chunk(embedder):
    """Factory for chunks embedded with the test embedder."""

    def factory(content: str, **kwargs) -> Chunk:
        return _build_chunk(embedder, content, **kwargs)

    return factory
