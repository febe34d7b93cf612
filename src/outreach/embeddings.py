"""Embedding helpers backed by Sentence Transformers, OpenAI or feature hashing."""
from __future__ import annotations

import hashlib
import logging
import math
import re
import threading
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, List, Optional, Sequence

from openai import OpenAI

from outreach.cache import ExpiringCache
from outreach.config import Settings, get_settings
from outreach.errors import EmbeddingServiceError
from outreach.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class EmbeddingBackend(ABC):
    """A single text → vector operation over a batch of inputs."""

    name: str = "embedding"

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of the vectors produced by this backend."""

    @abstractmethod
    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input text, in order."""


class SentenceTransformerBackend(EmbeddingBackend):
    """Local SentenceTransformer model, loaded on first use."""

    def __init__(self, model_name: str, *, device: str | None = None) -> None:
        self.name = model_name
        self._device = device
        self._model: Any = None
        self._lock = threading.Lock()

    def _load(self) -> Any:
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                LOGGER.info("Loading sentence-transformers model %s", self.name)
                self._model = SentenceTransformer(self.name, device=self._device)
            return self._model

    @property
    def dimension(self) -> int:
        return int(self._load().get_sentence_embedding_dimension())

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings = self._load().encode(
            list(texts),
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        return embeddings.tolist()


class OpenAIEmbeddingBackend(EmbeddingBackend):
    """Hosted embeddings through the OpenAI API."""

    _DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(self, model_name: str, *, api_key: str | None = None, client: Any = None) -> None:
        self.name = model_name
        self._client = client or OpenAI(api_key=api_key)

    @property
    def dimension(self) -> int:
        return self._DIMENSIONS.get(self.name, 1536)

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        response = self._client.embeddings.create(model=self.name, input=list(texts))
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class HashEmbeddingBackend(EmbeddingBackend):
    """Deterministic bag-of-words vectors built with the hashing trick.

    Texts that share tokens get proportionally similar vectors, which keeps
    retrieval meaningful in offline development and tests.
    """

    name = "hash"

    def __init__(self, dimension: int = 384) -> None:
        self._dimension = max(8, dimension)

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        return [self._embed(str(text)) for text in texts]

    def _embed(self, text: str) -> List[float]:
        vector = [0.0] * self._dimension
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:8], "big") % self._dimension] += 1.0
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]


class EmbeddingModel:
    """Embedder facade: batches, telemetry, error wrapping and query caching."""

    def __init__(self, backend: EmbeddingBackend, *, cache_ttl_seconds: float = 300.0) -> None:
        self.backend = backend
        self._query_cache: ExpiringCache[str, List[float]] = ExpiringCache(cache_ttl_seconds)

    @property
    def model_name(self) -> str:
        return self.backend.name

    @property
    def dimension(self) -> int:
        try:
            return int(self.backend.dimension)
        except Exception as error:
            raise EmbeddingServiceError(
                f"Embedding backend {self.model_name} is unavailable", cause=error
            ) from error

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        started = time.perf_counter()
        try:
            embeddings = self.backend.embed_texts(texts)
        except Exception as error:
            emit_embeddings_event(
                model=self.model_name,
                count=len(texts),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            raise EmbeddingServiceError(
                f"Embedding backend {self.model_name} failed: {error}", cause=error
            ) from error

        if len(embeddings) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding backend returned {len(embeddings)} vectors for {len(texts)} texts"
            )
        emit_embeddings_event(
            model=self.model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return embeddings

    def embed(self, text: str) -> List[float]:
        """Embed a single text, memoising the vector for repeated queries."""

        cached = self._query_cache.get(text)
        if cached is not None:
            return cached
        vector = self.embed_texts([text])[0]
        self._query_cache.set(text, vector)
        return vector


def build_embedding_model(settings: Optional[Settings] = None) -> EmbeddingModel:
    settings = settings or get_settings()
    backend_name = settings.embedding_backend.lower()
    if backend_name == "hash":
        backend: EmbeddingBackend = HashEmbeddingBackend(settings.embedding_dimension)
    elif backend_name == "openai":
        if not settings.openai_api_key:
            raise EmbeddingServiceError("OPENAI_API_KEY is required for the openai embedding backend")
        backend = OpenAIEmbeddingBackend(settings.openai_embedding_model, api_key=settings.openai_api_key)
    elif backend_name in {"sentence-transformers", "sentence_transformers"}:
        backend = SentenceTransformerBackend(settings.embedding_model, device=settings.embedding_device)
    else:
        raise EmbeddingServiceError(f"Unknown embedding backend: {settings.embedding_backend}")
    LOGGER.info("Using %s embedding backend (%s)", backend_name, backend.name)
    return EmbeddingModel(backend, cache_ttl_seconds=settings.embedding_cache_ttl_seconds)


@lru_cache()
def get_embedding_model() -> EmbeddingModel:
    """Return a cached embedding model instance."""

    return build_embedding_model()


def reset_embedding_model_cache() -> None:
    """Clear the cached embedding model instance (primarily for testing)."""

    get_embedding_model.cache_clear()


__all__ = [
    "EmbeddingBackend",
    "EmbeddingModel",
    "HashEmbeddingBackend",
    "OpenAIEmbeddingBackend",
    "SentenceTransformerBackend",
    "build_embedding_model",
    "get_embedding_model",
    "reset_embedding_model_cache",
]
