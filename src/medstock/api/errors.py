"""Map domain errors onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from medstock.lot.errors import EventProcessingError, LotConflict

logger = structlog.get_logger(__name__)


def _error_body(exc: Exception) -> dict:
    return {"error": getattr(exc, "messages", None) or str(exc)}


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers for validation, conflict, not-found and transient failures."""

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": jsonable_errors(exc)})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=_error_body(exc))

    @app.exception_handler(LotConflict)
    async def conflict_handler(request: Request, exc: LotConflict):
        return JSONResponse(status_code=409, content=_error_body(exc))

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict_handler(request: Request, exc: ExpectedVersionError):
        logger.warning("Lot was changed by a concurrent writer", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=409, content={"error": "Lot was modified concurrently, retry the request"})

    @app.exception_handler(ObjectNotFoundError)
    async def not_found_handler(request: Request, exc: ObjectNotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc))

    @app.exception_handler(EventProcessingError)
    async def busy_handler(request: Request, exc: EventProcessingError):
        logger.warning("Request failed on a transient error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"error": str(exc)})


def jsonable_errors(exc: RequestValidationError) -> dict:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        messages.setdefault(field, []).append(error["msg"])
    return messages
