"""
Custom exceptions for the Coach Orchestrator.

This module defines a hierarchy of exceptions that provide clear error
handling throughout the service. Each exception includes:
- A descriptive message that is safe to show to the caller
- An error code for API responses
- HTTP status code mapping
- Optional details for debugging
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    SERVICE_NOT_CONFIGURED = "SERVICE_NOT_CONFIGURED"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"

    # Athlete context errors
    ATHLETE_NOT_FOUND = "ATHLETE_NOT_FOUND"
    CONTEXT_FETCH_FAILED = "CONTEXT_FETCH_FAILED"

    # LLM errors
    LLM_SERVICE_UNAVAILABLE = "LLM_SERVICE_UNAVAILABLE"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_API_ERROR = "LLM_API_ERROR"


class CoachOrchestratorError(Exception):
    """
    Base exception for all Coach Orchestrator errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Request Errors (400/401/405)
# ============================================================================

class ValidationError(CoachOrchestratorError):
    """Raised when the inbound request shape is invalid."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=error_details,
        )


class AuthenticationError(CoachOrchestratorError):
    """Raised when the caller cannot be authenticated."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class MethodNotAllowedError(CoachOrchestratorError):
    """Raised for any verb other than POST on the orchestrator endpoint."""

    def __init__(self, method: str) -> None:
        super().__init__(
            message="Method not allowed",
            code=ErrorCode.METHOD_NOT_ALLOWED,
            status_code=405,
            details={"method": method},
        )


# ============================================================================
# Not Found / Fetch Errors (404/500)
# ============================================================================

class NotFoundError(CoachOrchestratorError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        message = f"{resource_type} not found: {resource_id}"
        error_details = details or {}
        error_details["resource_type"] = resource_type
        error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            status_code=404,
            details=error_details,
        )


class AthleteNotFoundError(NotFoundError):
    """Raised when no profile row exists for the requested athlete."""

    def __init__(self, athlete_id: str) -> None:
        super().__init__(resource_type="Athlete", resource_id=athlete_id)
        self.code = ErrorCode.ATHLETE_NOT_FOUND


class ContextFetchError(CoachOrchestratorError):
    """Raised when the athlete profile lookup itself fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CONTEXT_FETCH_FAILED,
            status_code=500,
            details=details,
        )


# ============================================================================
# Configuration / Deadline Errors
# ============================================================================

class ServiceNotConfiguredError(CoachOrchestratorError):
    """Raised when a required backing service has no configuration."""

    def __init__(
        self,
        message: str = "Server configuration error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.SERVICE_NOT_CONFIGURED,
            status_code=status_code,
            details=details,
        )


class OrchestratorTimeoutError(CoachOrchestratorError):
    """Raised when a request exceeds its overall deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            message="The coach took too long to respond. Please try again.",
            code=ErrorCode.TIMEOUT,
            status_code=504,
            details={"timeout_seconds": timeout_seconds},
        )


# ============================================================================
# LLM Service Errors (500/503)
# ============================================================================

class LLMError(CoachOrchestratorError):
    """Base class for LLM-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_API_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            details=details,
        )


class LLMServiceUnavailableError(LLMError):
    """Raised when the LLM service is unavailable or not configured."""

    def __init__(
        self,
        message: str = "AI service not configured",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
            status_code=503,
            details=details,
        )


class LLMRateLimitError(LLMError):
    """Raised when LLM rate limits are hit."""

    def __init__(
        self,
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if retry_after:
            error_details["retry_after_seconds"] = retry_after
        super().__init__(
            message="AI service rate limit exceeded. Please try again later.",
            code=ErrorCode.LLM_RATE_LIMITED,
            status_code=429,
            details=error_details,
        )


class LLMTimeoutError(LLMError):
    """Raised when an LLM request times out."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if timeout_seconds:
            error_details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message="AI request timed out",
            code=ErrorCode.LLM_TIMEOUT,
            status_code=504,
            details=error_details,
        )


class LLMResponseInvalidError(LLMError):
    """Raised when the LLM response cannot be interpreted."""

    def __init__(
        self,
        message: str = "Failed to parse AI response",
        raw_response: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if raw_response:
            error_details["raw_response_preview"] = raw_response[:500]
        super().__init__(
            message=message,
            code=ErrorCode.LLM_RESPONSE_INVALID,
            status_code=500,
            details=error_details,
        )
