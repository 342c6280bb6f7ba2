"""
Unified error handling for consistent API error responses.

All API errors should use these classes to ensure consistent response format:
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "detail": "Optional additional context"
    }
}

Domain exceptions (CoexpressionError) raised from services and repositories
are translated by coexpression_error_handler into the same shape.
"""

from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    CoexpressionError,
    CollaboratorUnavailableError,
    EntityNotFoundError,
    FetchFailureError,
    InvalidInputError,
)


class APIError(HTTPException):
    """
    Base API error class for consistent error responses.

    All API errors use this format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "detail": "Optional context"
        }
    }
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = message
        self.error_detail = detail
        super().__init__(
            status_code=status_code,
            detail={"code": code, "message": message, "detail": detail},
            headers=headers,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: Any, context: str | None = None):
        message = f"{resource} not found"
        detail = f'No {resource.lower()} matching "{identifier}"'
        if context:
            detail = f"{detail} in {context}"
        super().__init__(
            status_code=404,
            code="NOT_FOUND",
            message=message,
            detail=detail,
        )


class ValidationError(APIError):
    """Invalid input (400)."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            status_code=400,
            code="VALIDATION_ERROR",
            message=message,
            detail=detail,
        )


class ServiceUnavailableError(APIError):
    """Backing service unavailable (503)."""

    def __init__(self, service: str, message: str | None = None, detail: str | None = None):
        super().__init__(
            status_code=503,
            code="SERVICE_UNAVAILABLE",
            message=message or f"{service} is currently unavailable",
            detail=detail or f"The {service} service is not configured or experiencing issues",
        )


class ExternalServiceError(APIError):
    """External API error (502)."""

    def __init__(self, service: str, message: str, status_code: int = 502):
        super().__init__(
            status_code=status_code,
            code="EXTERNAL_API_ERROR",
            message=message,
            detail=f"Error from {service} API",
        )


def to_api_error(exc: CoexpressionError) -> APIError:
    """Map a domain exception onto its HTTP error."""
    if isinstance(exc, EntityNotFoundError):
        return NotFoundError("Gene", exc.identifier, context="expression data")
    if isinstance(exc, InvalidInputError):
        return ValidationError(exc.message, exc.details)
    if isinstance(exc, CollaboratorUnavailableError):
        return ServiceUnavailableError("database", message=exc.message)
    if isinstance(exc, FetchFailureError):
        return ExternalServiceError("Human Protein Atlas", exc.message)
    return APIError(status_code=500, code=exc.code, message=exc.message, detail=exc.details)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    FastAPI exception handler for APIError.

    Converts APIError exceptions to consistent JSON responses.
    """
    content = {
        "error": {
            "code": exc.code,
            "message": exc.message,
        }
    }
    if exc.error_detail:
        content["error"]["detail"] = exc.error_detail

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
    )


async def coexpression_error_handler(request: Request, exc: CoexpressionError) -> JSONResponse:
    """FastAPI exception handler for domain exceptions."""
    return await api_error_handler(request, to_api_error(exc))
