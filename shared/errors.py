"""
Shared error handling for the Licensing Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel
from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class LicensingAccessException(Exception):
    """Base exception for Licensing Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthorizationError(LicensingAccessException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "AUTHORIZATION_ERROR"):
        super().__init__(code, message, details)


class ConflictError(LicensingAccessException):
    """State conflicts caused by a request that does not match current state."""

    status_code = 409

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class ValidationError(LicensingAccessException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "VALIDATION_ERROR"):
        super().__init__(code, message, details)


class ExternalServiceError(LicensingAccessException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
