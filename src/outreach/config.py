"""Environment-driven runtime configuration."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

LOGGER = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_OPENAI_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_OPENAI_CHAT_MODEL = "gpt-4"


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Snapshot of the configuration read from the process environment."""

    chunk_store: str = "memory"
    chroma_persist_dir: str = "chroma_db"
    chroma_collection: str = "outreach_chunks"

    embedding_backend: str = "sentence-transformers"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_device: str | None = None
    embedding_dimension: int = 384
    openai_api_key: str | None = None
    openai_embedding_model: str = DEFAULT_OPENAI_EMBEDDING_MODEL

    generation_backend: str = "mock"
    generation_model: str = DEFAULT_OPENAI_CHAT_MODEL
    generation_temperature: float = 0.7
    generation_max_tokens: int = 1000

    query_timeout_seconds: float = 10.0
    embedding_timeout_seconds: float = 30.0
    generation_timeout_seconds: float = 60.0
    embedding_cache_ttl_seconds: float = 300.0

    log_dir: str = "logs"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            chunk_store=_str_from_env("CHUNK_STORE", cls.chunk_store).lower(),
            chroma_persist_dir=_str_from_env("CHROMA_PERSIST_DIR", cls.chroma_persist_dir),
            chroma_collection=_str_from_env("CHROMA_COLLECTION", cls.chroma_collection),
            embedding_backend=_str_from_env("EMBEDDING_BACKEND", cls.embedding_backend).lower(),
            embedding_model=_str_from_env("EMBEDDING_MODEL", cls.embedding_model),
            embedding_device=os.getenv("EMBEDDING_DEVICE") or None,
            embedding_dimension=_int_from_env("EMBEDDING_DIMENSION", cls.embedding_dimension),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_embedding_model=_str_from_env("OPENAI_EMBEDDING_MODEL", cls.openai_embedding_model),
            generation_backend=_str_from_env("GENERATION_BACKEND", cls.generation_backend).lower(),
            generation_model=_str_from_env("GENERATION_MODEL", cls.generation_model),
            generation_temperature=_float_from_env("GENERATION_TEMPERATURE", cls.generation_temperature),
            generation_max_tokens=_int_from_env("GENERATION_MAX_TOKENS", cls.generation_max_tokens),
            query_timeout_seconds=_float_from_env("QUERY_TIMEOUT_SECONDS", cls.query_timeout_seconds),
            embedding_timeout_seconds=_float_from_env(
                "EMBEDDING_TIMEOUT_SECONDS", cls.embedding_timeout_seconds
            ),
            generation_timeout_seconds=_float_from_env(
                "GENERATION_TIMEOUT_SECONDS", cls.generation_timeout_seconds
            ),
            embedding_cache_ttl_seconds=_float_from_env(
                "EMBEDDING_CACHE_TTL_SECONDS", cls.embedding_cache_ttl_seconds
            ),
            log_dir=_str_from_env("LOG_DIR", cls.log_dir),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings snapshot."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
