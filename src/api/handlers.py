"""Exception handlers rendering every failure in the error envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.responses import error_response
from src.errors import DirectoryError

logger = logging.getLogger(__name__)


async def directory_error_handler(_: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, DirectoryError) else DirectoryError(str(exc))
    return JSONResponse(
        status_code=error.status_code,
        content=error_response(error.message, error.code),
    )


async def validation_error_handler(_: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    message = ", ".join(str(err.get("msg", "")) for err in errors) or "Invalid input"
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg"),
        }
        for err in errors
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_response(message, "VALIDATION_ERROR", details)),
    )


_HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: ("Route not found", "ROUTE_NOT_FOUND"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("Method not allowed", "METHOD_NOT_ALLOWED"),
}


async def http_error_handler(_: Request, exc: Exception) -> JSONResponse:
    """Routing failures (unknown path, wrong method) in the error envelope."""

    error = (
        exc
        if isinstance(exc, StarletteHTTPException)
        else StarletteHTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR)
    )
    message, code = _HTTP_ERROR_CODES.get(
        error.status_code, (str(error.detail), "HTTP_ERROR")
    )
    return JSONResponse(
        status_code=error.status_code,
        content=error_response(message, code),
        headers=error.headers,
    )


async def integrity_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(
        "Integrity violation on %s %s: %s", request.method, request.url.path, exc
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_response("Resource already exists", "DUPLICATE_RESOURCE"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("Server Error", "SERVER_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DirectoryError, directory_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
