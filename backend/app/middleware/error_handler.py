from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import traceback
import logging
from typing import Dict, Any

from app.config import DEBUG
from services.error_types import (
    AuditServiceError,
    NotFoundError,
    PayloadTooLargeError,
    PreconditionError,
    ValidationError,
    log_error_with_context,
)

logger = logging.getLogger(__name__)

# Most specific first
STATUS_CODES = (
    (NotFoundError, 404),
    (PayloadTooLargeError, 413),
    (ValidationError, 400),
    (PreconditionError, 409),
)


def create_error_response(error_type: str, message: str) -> Dict[str, Any]:
    """Create structured error response"""
    return {
        "error": {
            "type": error_type,
            "message": message
        }
    }


def status_code_for(exc: AuditServiceError) -> int:
    for error_class, status_code in STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


async def audit_error_handler(request: Request, exc: AuditServiceError):
    status_code = status_code_for(exc)
    log_error_with_context(exc, {"method": request.method, "path": request.url.path})
    return JSONResponse(status_code=status_code, content=create_error_response(type(exc).__name__, exc.message))


async def traceback_exception_handler(request: Request, exc: Exception):
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(tb)

    if DEBUG:
        content = create_error_response("InternalServerError", tb)
    else:
        content = create_error_response("InternalServerError", "Internal server error")

    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AuditServiceError, audit_error_handler)
    app.add_exception_handler(Exception, traceback_exception_handler)
