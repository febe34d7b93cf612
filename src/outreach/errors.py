"""Error taxonomy shared by the ingest, retrieval and synthesis layers."""
from __future__ import annotations


class OutreachError(RuntimeError):
    """Base class for failures surfaced to callers with a stable kind label."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.__cause__ = cause

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(OutreachError):
    """Raised for malformed or missing input. Never retried."""

    kind = "validation_error"
    status_code = 400


class EmbeddingServiceError(OutreachError):
    """Raised when the embedding backend cannot produce vectors."""

    kind = "embedding_service_error"
    status_code = 502


class GenerationServiceError(OutreachError):
    """Raised when the text generation backend fails or times out."""

    kind = "generation_service_error"
    status_code = 502


class StoreUnavailable(OutreachError):
    """Raised when the chunk store backend cannot be initialised or queried."""

    kind = "store_unavailable"
    status_code = 503


class ParseError(OutreachError):
    """Raised when generated text lacks the expected line markers.

    Always recovered locally by the response parser.
    """

    kind = "parse_error"
    status_code = 500


class DocumentNotFound(OutreachError):
    """Raised when a document id is unknown for the requesting owner."""

    kind = "document_not_found"
    status_code = 404


__all__ = [
    "DocumentNotFound",
    "EmbeddingServiceError",
    "GenerationServiceError",
    "OutreachError",
    "ParseError",
    "StoreUnavailable",
    "ValidationError",
]
