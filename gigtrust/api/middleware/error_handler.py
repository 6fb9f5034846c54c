"""Global exception handling."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from gigtrust.shared.errors import (
    AuthenticationRequired,
    AuthorizationError,
    GigTrustError,
    NotFoundError,
    StateConflict,
    ValidationError,
)

logger = structlog.get_logger()

# Most specific first
_ERROR_STATUS: list[tuple[type[GigTrustError], int, str]] = [
    (ValidationError, 400, "bad_request"),
    (AuthenticationRequired, 401, "unauthorized"),
    (AuthorizationError, 403, "forbidden"),
    (NotFoundError, 404, "not_found"),
    (StateConflict, 409, "conflict"),
]


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    for error_type, status_code, error in _ERROR_STATUS:
        if isinstance(exc, error_type):
            logger.warning(error, request_id=request_id, error=exc.message, details=exc.details)
            content = {"error": error, "message": exc.message, "request_id": request_id}
            if exc.details:
                content["details"] = exc.details
            return JSONResponse(status_code=status_code, content=content)

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
