"""
Global error handling middleware.

WHAT: Translate exceptions to appropriate HTTP responses
WHY: Consistent error responses with proper status codes
HOW: FastAPI exception handlers for custom exceptions
"""

from datetime import datetime

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..integrations.types import (
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from ..utils.exceptions import (
    BusinessException,
    ClickTokenError,
    ConfigurationError,
    DestinationNotFoundError,
    DispatchValidationError,
    FieldShapeError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


async def upstream_error_handler(request: Request, exc: UpstreamError):
    """
    Handle UpstreamError escaping an endpoint.

    WHAT: Discord or Airtable failed
    WHY: The caller should retry later or check the collaborator
    HOW: 503 when the service timed out or is unreachable, 502 otherwise
    """
    if isinstance(exc, (UpstreamTimeoutError, UpstreamUnavailableError)):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_502_BAD_GATEWAY

    logger.error(f"Upstream error: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "message": str(exc),
            "details": {"service": exc.service, "status_code": exc.status_code},
            "timestamp": datetime.now().isoformat()
        }
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    WHAT: Request validation failed
    WHY: Invalid request payload
    HOW: Return 400 with field errors
    """
    logger.warning(f"Validation error: {exc.errors()}")

    # Clean up error details to be JSON serializable
    cleaned_errors = []
    for error in exc.errors():
        cleaned_error = {
            "type": error.get("type"),
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
        }
        if "ctx" in error:
            cleaned_error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        cleaned_errors.append(cleaned_error)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Missing order or sellers in payload"
            if _is_dispatch_request(request) else "Request validation failed",
            "details": cleaned_errors,
            "timestamp": datetime.now().isoformat()
        }
    )


def _is_dispatch_request(request: Request) -> bool:
    return request.url.path.rstrip("/").endswith("/offers")


async def business_exception_handler(request: Request, exc: BusinessException):
    """
    Handle BusinessException.

    WHAT: Domain error reached the HTTP layer
    WHY: Map the error to a status code the caller can act on
    HOW: Status code chosen by exception type
    """
    status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, (DispatchValidationError, ClickTokenError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, DestinationNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, FieldShapeError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, ConfigurationError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.warning(f"Business exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "details": exc.details,
            "timestamp": datetime.now().isoformat()
        }
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)

    logger.info("Exception handlers registered")
