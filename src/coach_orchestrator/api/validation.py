"""
Validation of inbound orchestrator requests.

The body is parsed into OrchestratorRequestBody. Its structural checks run
before field parsing, in a fixed order, and the first failure wins so a
caller always sees the same message for the same malformed body.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from ..exceptions import ValidationError
from ..models.athlete_context import AthleteContext
from ..models.orchestrator import ROLE_USER, VALID_ROLES, ChatMessage, OrchestratorRequest


REQUEST_ERROR_TYPE = "invalid_request"


def _athlete_context_error(athlete_context: Any) -> Optional[str]:
    if not isinstance(athlete_context, dict):
        return "athlete_context must be an object"
    if not isinstance(athlete_context.get("athlete_id"), str):
        return "athlete_context.athlete_id must be a string"
    for list_field in ("active_goals", "active_constraints"):
        value = athlete_context.get(list_field)
        if value is not None and not isinstance(value, list):
            return f"athlete_context.{list_field} must be an array"
    checkin = athlete_context.get("recent_checkin")
    if checkin is not None and not isinstance(checkin, dict):
        return "athlete_context.recent_checkin must be an object"
    return None


def request_validation_error(body: Any) -> Optional[str]:
    """
    Return the first validation failure for a parsed request body.

    Returns:
        A human-readable message, or None if the body is valid
    """
    if not isinstance(body, dict):
        return "Request body must be a JSON object"

    messages = body.get("messages")
    if not isinstance(messages, list):
        return "messages array required"
    if not messages:
        return "messages array must not be empty"

    for i, message in enumerate(messages):
        if not isinstance(message, dict):
            return f"Invalid message at index {i}"
        if message.get("role") not in VALID_ROLES:
            return f'Invalid role at message index {i}: must be "user" or "assistant"'
        if not isinstance(message.get("content"), str):
            return f"Invalid content at message index {i}: must be a string"

    if messages[0]["role"] != ROLE_USER:
        return "First message must be from user"

    athlete_context = body.get("athlete_context")
    if athlete_context is not None:
        error = _athlete_context_error(athlete_context)
        if error:
            return error

    athlete_id = body.get("athlete_id")
    if athlete_id is not None and (not isinstance(athlete_id, str) or not athlete_id.strip()):
        return "athlete_id must be a non-empty string"

    if "stream" in body and not isinstance(body["stream"], bool):
        return "stream must be a boolean"

    return None


# ============================================================================
# Request Models
# ============================================================================

class ChatMessageBody(BaseModel):
    """One conversation message in the request body."""
    role: Literal["user", "assistant"]
    content: StrictStr


class AthleteContextBody(BaseModel):
    """Athlete context supplied by the caller; extra profile fields are kept."""
    model_config = ConfigDict(extra="allow")

    athlete_id: StrictStr
    active_goals: Optional[List[Dict[str, Any]]] = None
    active_constraints: Optional[List[Dict[str, Any]]] = None
    recent_checkin: Optional[Dict[str, Any]] = None


class OrchestratorRequestBody(BaseModel):
    """Request body for POST /ai-orchestrator."""
    messages: List[ChatMessageBody] = Field(..., min_length=1)
    athlete_context: Optional[AthleteContextBody] = None
    athlete_id: Optional[StrictStr] = None
    conversation_id: Optional[StrictStr] = Field(
        None,
        description="Optional conversation ID, echoed in logs only",
    )
    stream: StrictBool = False

    @model_validator(mode="before")
    @classmethod
    def check_structure(cls, data: Any) -> Any:
        error = request_validation_error(data)
        if error is not None:
            raise PydanticCustomError(REQUEST_ERROR_TYPE, "{reason}", {"reason": error})
        return data

    def to_request(self) -> OrchestratorRequest:
        """Convert to the orchestrator's request model."""
        context = None
        if self.athlete_context is not None:
            context = AthleteContext.from_dict(self.athlete_context.model_dump())
        return OrchestratorRequest(
            messages=[ChatMessage(role=m.role, content=m.content) for m in self.messages],
            athlete_context=context,
            athlete_id=self.athlete_id,
            conversation_id=self.conversation_id,
            stream=self.stream,
        )


def _first_error_message(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    if first["type"] == REQUEST_ERROR_TYPE:
        return first["msg"]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid {location}: {first['msg']}" if location else first["msg"]


def validate_request(body: Any) -> OrchestratorRequest:
    """
    Validate a parsed body and convert it to an OrchestratorRequest.

    Raises:
        ValidationError: With the first failure message
    """
    try:
        parsed = OrchestratorRequestBody.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(_first_error_message(e))
    return parsed.to_request()
