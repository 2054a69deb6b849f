"""
Exception handlers mapping blob store errors to HTTP responses.

All error bodies share the shape ``{"error": {"code", "message", "details"}}``.
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from blobstore.errors import (
    BackendError,
    BlobStoreError,
    ConfigurationError,
    DecodeError,
    ObjectNotFoundError,
    OperationCancelledError,
)

logger = structlog.get_logger()

# Most specific classes first
ERROR_STATUS = (
    (DecodeError, status.HTTP_400_BAD_REQUEST),
    (ObjectNotFoundError, status.HTTP_404_NOT_FOUND),
    (OperationCancelledError, status.HTTP_409_CONFLICT),
    (BackendError, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: BlobStoreError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


async def blobstore_exception_handler(request: Request, exc: BlobStoreError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Blob store error",
        path=request.url.path,
        code=exc.code,
        message=exc.message,
        status_code=status_code,
    )
    return error_response(status_code, exc.code, exc.message, exc.details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        {"errors": jsonable_encoder(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(exc.status_code, "http_error", str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
    )
