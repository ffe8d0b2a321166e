import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError

from shared.core.exceptions import PersistenceError, PlazaError
from shared.helpers.json_response_helper import failure_envelope
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def _failure(message: str, status_code: str, http_status: int, data=None) -> JSONResponse:
    return JSONResponse(content=failure_envelope(message, status_code, data), status_code=http_status)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(PlazaError)
    async def plaza_exception_handler(request: Request, exc: PlazaError):
        if isinstance(exc, PersistenceError):
            logger.warning("Storage failure on %s %s (retryable=%s): %s",
                           request.method, request.url.path, exc.retryable, exc.message)
            data = {**(exc.data or {}), "retryable": exc.retryable}
            return _failure(exc.message, exc.status_code, exc.http_status, data)
        return _failure(exc.message, exc.status_code, exc.http_status, exc.data)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # error_response() already built the envelope
        if isinstance(exc.detail, dict) and "status_code" in exc.detail:
            return JSONResponse(content=jsonable_encoder(exc.detail), status_code=exc.status_code)
        return _failure(str(exc.detail), str(exc.status_code), exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _failure(str(exc), AppStatusCode.INVALID_INPUT, 422)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _failure(str(exc), AppStatusCode.OPERATION_FAILED, 500)
