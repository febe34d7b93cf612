import logging
from typing import Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from outreach.api import documents_router, emails_router
from outreach.config import get_settings
from outreach.errors import OutreachError, ValidationError
from outreach.logging_config import configure_logging
from outreach.services.outreach import OutreachService, get_outreach_service
from outreach.telemetry import emit_app_startup_event, emit_exception

configure_logging(get_settings().log_dir)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Outreach RAG API")
app.include_router(documents_router)
app.include_router(emails_router)


@app.on_event("startup")
async def _log_startup() -> None:
    settings = get_settings()
    emit_app_startup_event(
        service=app.title,
        chunk_store=settings.chunk_store,
        embedding_backend=settings.embedding_backend,
        generation_backend=settings.generation_backend,
    )


@app.exception_handler(OutreachError)
async def _outreach_error_handler(request: Request, exc: OutreachError) -> JSONResponse:
    if exc.status_code >= 500:
        emit_exception(module=f"{__name__}.{request.url.path}", error=exc)
    else:
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return await _outreach_error_handler(request, ValidationError(problems or "Invalid request"))


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"


@app.get("/readyz", response_model=None)
async def readiness_probe(
    service: OutreachService = Depends(get_outreach_service),
) -> Union[dict[str, object], JSONResponse]:
    """Readiness probe that ensures the chunk store and embedding backend answer."""

    try:
        return await service.readiness()
    except OutreachError as exc:
        LOGGER.warning("Readiness check failed: %s", exc)
        return JSONResponse(status_code=503, content={"error": exc.to_dict()})
