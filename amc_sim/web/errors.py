"""Translate domain and database errors into JSON error responses."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from amc_sim.core.errors import (
    DuplicateResourceError,
    FolioLimitExceededError,
    NoCandidatesError,
    NotFoundError,
    SimulationStateError,
    SipStateError,
    UnknownJobError,
)
from amc_sim.core.log import get_logger
from amc_sim.schemas.common import ErrorBody

LOGGER = get_logger(__name__)

_CONFLICT_ERRORS = (SimulationStateError, FolioLimitExceededError, SipStateError, NoCandidatesError)
_DUPLICATE_MARKERS = ("unique constraint", "duplicate entry", "duplicate key")


def _error(status_code: int, message: str, details: object = None) -> JSONResponse:
    body = ErrorBody(error=message, details=jsonable_encoder(details))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def is_duplicate_key(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return any(marker in message for marker in _DUPLICATE_MARKERS)


def register_exception_handlers(app: FastAPI, *, production: bool = False) -> None:
    """Install the error-to-status mapping on ``app``."""

    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", exc.errors())

    @app.exception_handler(ValueError)
    async def _bad_value(request: Request, exc: ValueError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(UnknownJobError)
    async def _unknown_job(request: Request, exc: UnknownJobError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    for error_type in _CONFLICT_ERRORS:

        @app.exception_handler(error_type)
        async def _conflict(request: Request, exc: Exception) -> JSONResponse:
            return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(DuplicateResourceError)
    async def _duplicate(request: Request, exc: DuplicateResourceError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, "Resource already exists")

    @app.exception_handler(IntegrityError)
    async def _integrity(request: Request, exc: IntegrityError) -> JSONResponse:
        if is_duplicate_key(exc):
            return _error(status.HTTP_409_CONFLICT, "Resource already exists")
        return _error(status.HTTP_400_BAD_REQUEST, "Referenced resource is invalid")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = "Internal server error" if production else str(exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
