"""
Top-level exception handlers. Every failure leaves the API as the standard
envelope; raw storage errors never reach the client.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from medrep_portal.config import get_settings
from medrep_portal.exceptions import PortalError, StorageError
from medrep_portal.responses import failure

logger = logging.getLogger(__name__)


def _field_errors(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        msg = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{'.'.join(loc) or 'body'}: {msg}")
    return messages


async def portal_error_handler(request: Request, exc: PortalError):
    return failure(exc.status_code, exc.message, exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return failure(400, "Validation failed", _field_errors(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail))


async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    error = StorageError()
    extra = {} if get_settings().is_production else {"error": str(exc)}
    return failure(error.status_code, error.message, **extra)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra = {} if get_settings().is_production else {"error": str(exc)}
    return failure(500, "Internal server error", **extra)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
