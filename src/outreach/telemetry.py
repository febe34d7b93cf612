"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

LOGGER = logging.getLogger("outreach.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    owner_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if owner_id:
        event["owner_id"] = owner_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_ingest_event(
    step: str,
    *,
    owner_id: str,
    document_id: str,
    title: str,
    document_type: str,
    content_chars: int | None = None,
    language: str | None = None,
    chunks: int | None = None,
    duration_ms: float | None = None,
) -> None:
    details = {
        "document_id": document_id,
        "title": title,
        "document_type": document_type,
        "content_chars": content_chars,
        "language": language,
        "chunks": chunks,
    }
    log_event(LOGGER, step, owner_id=owner_id, duration_ms=duration_ms, details=details)


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    level = "error" if errors else "info"
    log_event(LOGGER, "embeddings.compute", level=level, duration_ms=duration_ms, details=details)


def emit_chunkstore_event(
    step: str,
    *,
    backend: str,
    count: int,
    owner_id: str | None = None,
    document_type: str | None = None,
    error: BaseException | None = None,
) -> None:
    details = {"backend": backend, "count": count, "document_type": document_type}
    level = "error" if error else "info"
    log_event(LOGGER, step, level=level, owner_id=owner_id, details=details, exc=error)


def emit_category_event(
    *,
    owner_id: str,
    category: str,
    threshold: float,
    limit: int,
    results: int,
    duration_ms: float,
    error: BaseException | None = None,
) -> None:
    details = {
        "category": category,
        "threshold": threshold,
        "limit": limit,
        "results": results,
    }
    level = "warning" if error else "info"
    log_event(
        LOGGER,
        "retriever.category",
        level=level,
        owner_id=owner_id,
        duration_ms=duration_ms,
        details=details,
        exc=error,
    )


def emit_retriever_event(
    *,
    owner_id: str,
    query: str,
    candidates: int,
    unique: int,
    results: list[dict[str, Any]],
    duration_ms: float,
) -> None:
    details = {
        "query_preview": query[:120],
        "candidates": candidates,
        "unique": unique,
        "results": results,
    }
    log_event(LOGGER, "retriever.search", owner_id=owner_id, duration_ms=duration_ms, details=details)


def emit_prompt_event(
    *,
    req_id: str,
    system_prompt: str,
    sections: Iterable[str],
    prompt_len: int,
) -> None:
    details = {
        "system_prompt_preview": system_prompt[:120],
        "sections": list(sections),
        "prompt_len": prompt_len,
    }
    log_event(LOGGER, "prompt.compose", req_id=req_id, details=details)


def emit_generation_request(
    *,
    req_id: str,
    owner_id: str,
    backend: str,
    prompt_preview: str,
    prompt_len: int,
    sources: Iterable[str],
) -> None:
    details = {
        "backend": backend,
        "prompt_preview": prompt_preview[:120],
        "prompt_len": prompt_len,
        "sources": list(sources),
    }
    log_event(LOGGER, "generation.request", req_id=req_id, owner_id=owner_id, details=details)


def emit_generation_result(
    *,
    req_id: str,
    owner_id: str,
    backend: str,
    duration_ms: float,
    response_preview: str,
    parsed: bool,
) -> None:
    details = {
        "backend": backend,
        "response_preview": response_preview[:120],
        "parsed": parsed,
    }
    log_event(
        LOGGER,
        "generation.result",
        req_id=req_id,
        owner_id=owner_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    owner_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        owner_id=owner_id,
        details=details,
        exc=error,
    )


def emit_app_startup_event(*, service: str, **settings: Any) -> None:
    log_event(LOGGER, "app.startup", details={"service": service, **settings})


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_app_startup_event",
    "emit_category_event",
    "emit_chunkstore_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_generation_request",
    "emit_generation_result",
    "emit_ingest_event",
    "emit_prompt_event",
    "emit_retriever_event",
    "log_event",
    "traced_duration",
]
