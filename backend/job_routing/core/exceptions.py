"""
Standardized exception handling for the routing engine and its API.

Provides consistent error responses across all endpoints with:
- Unique error codes for client-side handling
- Request tracking via request_id
- Detailed error messages with context
- HTTP status code alignment
"""
import math
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Standardized error response format."""
    code: str
    message: str
    status_code: int
    timestamp: str
    request_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Wrapper for error responses."""
    error: ErrorDetail


# =============================================================================
# Base Exception Classes
# =============================================================================

class AppException(Exception):
    """Base exception for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message or self.message
        self.details = details
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert exception to standardized error response."""
        return ErrorResponse(
            error=ErrorDetail(
                code=self.error_code,
                message=self.message,
                status_code=self.status_code,
                timestamp=datetime.utcnow().isoformat() + "Z",
                request_id=request_id,
                details=self.details,
            )
        )


# =============================================================================
# Client Errors (4xx)
# =============================================================================

class ValidationException(AppException):
    """Invalid input data."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    message = "Invalid input data"


class NotFoundException(AppException):
    """Resource not found."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


# =============================================================================
# Domain-Specific Exceptions
# =============================================================================

class InvalidLocationException(ValidationException):
    """Job coordinates are missing, unparseable or out of range."""
    error_code = "INVALID_LOCATION"
    message = "Job location is missing or invalid"

    def __init__(self, job_id: Optional[str] = None, reason: Optional[str] = None):
        detail = reason or "location is missing or invalid"
        super().__init__(
            message=f"Job '{job_id}': {detail}" if job_id else detail,
            details={"job_id": job_id, "reason": detail},
        )
        self.job_id = job_id
        self.reason = detail


class ConfigurationException(ValidationException):
    """Engine parameters that would silently produce meaningless results."""
    error_code = "CONFIGURATION_ERROR"
    message = "Invalid routing configuration"

    def __init__(self, parameter: str, value: Any, requirement: str):
        super().__init__(
            message=f"Invalid {parameter}={value!r}: {requirement}",
            details={"parameter": parameter, "value": _json_safe(value), "requirement": requirement},
        )
        self.parameter = parameter


def _json_safe(value: Any) -> Any:
    # JSON has no NaN or Infinity; error bodies must still serialize
    if isinstance(value, (bool, int, str)) or value is None:
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return repr(value)


class AnchorNotFoundException(NotFoundException):
    """Anchor job id is not part of the submitted job pool."""
    error_code = "ANCHOR_NOT_FOUND"
    message = "Anchor job not found"

    def __init__(self, job_id: str):
        super().__init__(
            message=f"Anchor job with ID '{job_id}' not found in job pool",
            details={"job_id": job_id},
        )


# =============================================================================
# Exception Handler Registration
# =============================================================================

def get_request_id(request: Request) -> str:
    """Extract or generate request ID."""
    return getattr(request.state, "request_id", None) or str(uuid4())


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all application exceptions with standardized format."""
    request_id = get_request_id(request)
    response = exc.to_response(request_id=request_id)

    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
        headers={"X-Request-ID": request_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id(request)

    import logging
    logger = logging.getLogger(__name__)
    logger.exception(f"Unhandled exception: {exc}", extra={"request_id": request_id})

    error = ErrorResponse(
        error=ErrorDetail(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred",
            status_code=500,
            timestamp=datetime.utcnow().isoformat() + "Z",
            request_id=request_id,
        )
    )

    return JSONResponse(
        status_code=500,
        content=error.model_dump(),
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
