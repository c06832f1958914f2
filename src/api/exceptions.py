"""Exception handlers for the moderation API.

Domain exceptions are translated into a single error envelope so clients see
a consistent shape regardless of where a request failed.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.domain.exceptions import (
    BusinessRuleViolation,
    DomainException,
    EntityNotFoundError,
    InvalidStateTransition,
    InvalidValueError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

# Most specific first
DOMAIN_STATUS_CODES = (
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (InvalidValueError, status.HTTP_400_BAD_REQUEST, "INVALID_VALUE"),
    (InvalidStateTransition, status.HTTP_409_CONFLICT, "INVALID_STATE"),
    (BusinessRuleViolation, status.HTTP_409_CONFLICT, "BUSINESS_RULE_VIOLATION"),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE, "PERSISTENCE_ERROR"),
)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create standardized error response format."""
    response = {
        "error": {"code": error_code, "message": message, "status_code": status_code},
        "success": False,
    }

    if details:
        response["error"]["details"] = details

    return response


def _classify(exc: DomainException) -> tuple[int, str]:
    for exc_type, status_code, error_code in DOMAIN_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code, error_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "DOMAIN_ERROR"


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions."""
    status_code, error_code = _classify(exc)

    logger.error(
        f"DomainException: {error_code} - {exc}",
        extra={
            "status_code": status_code,
            "error_code": error_code,
            "path": str(request.url),
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            status_code=status_code,
            message=str(exc),
            error_code=error_code,
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    error_code_mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "UNPROCESSABLE_ENTITY",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    error_code = error_code_mapping.get(exc.status_code, "HTTP_ERROR")

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            status_code=exc.status_code,
            message=str(exc.detail),
            error_code=error_code,
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    field_errors = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = {"message": error["msg"], "type": error["type"]}

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=create_error_response(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Request validation failed",
            error_code="VALIDATION_ERROR",
            details={"field_errors": field_errors},
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": str(request.url), "method": request.method},
        exc_info=True,
    )

    # Don't expose internal error details in production
    if request.app.state.settings.is_production:
        message = "Internal server error"
    else:
        message = f"{type(exc).__name__}: {str(exc)}"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=message,
            error_code="INTERNAL_SERVER_ERROR",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on ``app``."""
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
