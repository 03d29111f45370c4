"""Errors raised below the routes and the handlers that turn them into responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordNotFound(StoreError):
    status_code = 404


class InvalidInput(StoreError):
    status_code = 400


class PipelineError(StoreError):
    """Action not allowed from the application's current stage."""
    status_code = 409


async def store_error_handler(_: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def backend_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Backend request failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Backend request failed"})


def register_error_handlers(app) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(PyMongoError, backend_error_handler)
