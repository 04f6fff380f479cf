"""
Exception handlers that render errors as ErrorResponse JSON.
"""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.service.error_mapping import map_error
from src.service.errors import ErrorType
from src.service.exceptions import ChefifyError
from src.service.models import ErrorResponse

logger = logging.getLogger(__name__)


def _format_error(
    status_code: int, message: str | None = None, error_type: ErrorType | None = None
) -> JSONResponse:
    content = ErrorResponse(
        error=error_type.error_code if error_type else None,
        error_type=error_type.error_type if error_type else None,
        message=message,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def chefify_error_handler(request: Request, exc: ChefifyError) -> JSONResponse:
    """Render an application error according to the error mapping."""
    mapping = map_error(exc)
    if mapping.http_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Error handling %s %s: %s", request.method, request.url.path, exc)
    return _format_error(mapping.http_code, str(exc), mapping.err_type)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render a request validation failure as a 400 error."""
    # location and message of each error only
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _format_error(
        status.HTTP_400_BAD_REQUEST,
        message or "Request validation failed",
        ErrorType.REQUEST_VALIDATION_FAILED,
    )


async def universal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render any other error as a 500 error without leaking its details."""
    if isinstance(exc, ChefifyError):
        return await chefify_error_handler(request, exc)
    logger.exception("Unhandled error for %s %s", request.method, request.url.path, exc_info=exc)
    return _format_error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
    )
