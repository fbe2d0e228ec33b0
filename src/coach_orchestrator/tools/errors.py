"""Error taxonomy for tool execution.

Every failed tool call carries one of these codes. Validation codes are
produced before any upstream call; upstream codes come from the gateway
client; the per-tool fallbacks cover anything unclassified.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ToolErrorCode(str, Enum):
    """Closed set of tool failure codes reported back to the model."""

    # Input validation (never retried, no upstream call made)
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_EVENT_TYPE = "INVALID_EVENT_TYPE"
    INVALID_DATE = "INVALID_DATE"
    INVALID_PRIORITY = "INVALID_PRIORITY"
    NO_CREDENTIALS = "NO_CREDENTIALS"

    # Upstream gateway failures
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"

    # Per-tool fallbacks
    GET_ACTIVITIES_ERROR = "GET_ACTIVITIES_ERROR"
    GET_WELLNESS_ERROR = "GET_WELLNESS_ERROR"
    GET_EVENTS_ERROR = "GET_EVENTS_ERROR"
    CREATE_EVENT_ERROR = "CREATE_EVENT_ERROR"
    UPDATE_EVENT_ERROR = "UPDATE_EVENT_ERROR"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"


class ToolInputError(Exception):
    """Raised by validators when a tool input breaks a rule."""

    def __init__(self, message: str, code: ToolErrorCode = ToolErrorCode.INVALID_INPUT):
        self.message = message
        self.code = code
        super().__init__(message)


class IntervalsApiError(Exception):
    """Raised by the Intervals.icu client for any failed request.

    Attributes:
        message: Description safe to hand to the model
        status_code: HTTP status, or 0 when no response was received
        code: Upstream failure category
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        code: ToolErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"IntervalsApiError(code={self.code.value}, status={self.status_code}, message={self.message!r})"
