"""
Typed stream events emitted over SSE.

The event set is closed: content_delta, tool_calls, usage, done, error.
Each event class knows its tag and how to render its JSON payload, and
event_from_data() is the single place that turns a decoded payload back
into a typed event.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


CONTENT_DELTA = "content_delta"
TOOL_CALLS = "tool_calls"
USAGE = "usage"
DONE = "done"
ERROR = "error"


@dataclass(frozen=True)
class ContentDelta:
    text: str
    type = CONTENT_DELTA

    def to_data(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class ToolCallsEvent:
    tool_calls: Tuple[Dict[str, Any], ...]
    type = TOOL_CALLS

    def to_data(self) -> Dict[str, Any]:
        return {"type": self.type, "tool_calls": list(self.tool_calls)}


@dataclass(frozen=True)
class UsageEvent:
    input_tokens: int
    output_tokens: int
    type = USAGE

    def to_data(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }


@dataclass(frozen=True)
class DoneEvent:
    type = DONE

    def to_data(self) -> Dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    type = ERROR

    def to_data(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.error}


StreamEvent = Union[ContentDelta, ToolCallsEvent, UsageEvent, DoneEvent, ErrorEvent]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def event_from_data(data: Any) -> Optional[StreamEvent]:
    """
    Convert a decoded JSON payload into a typed stream event.

    Returns None when the payload is not an object, carries an unknown
    type tag, or lacks the fields its tag requires.
    """
    if not isinstance(data, dict):
        return None

    event_type = data.get("type")
    if event_type == CONTENT_DELTA:
        text = data.get("text")
        return ContentDelta(text=text) if isinstance(text, str) else None
    if event_type == TOOL_CALLS:
        calls = data.get("tool_calls")
        if not isinstance(calls, list):
            return None
        return ToolCallsEvent(tool_calls=tuple(calls))
    if event_type == USAGE:
        input_tokens = data.get("input_tokens")
        output_tokens = data.get("output_tokens")
        if not (_is_number(input_tokens) and _is_number(output_tokens)):
            return None
        return UsageEvent(input_tokens=input_tokens, output_tokens=output_tokens)
    if event_type == DONE:
        return DoneEvent()
    if event_type == ERROR:
        error = data.get("error")
        return ErrorEvent(error=error if isinstance(error, str) else "Unknown error")
    return None


def tool_calls_event(calls: List[Any]) -> ToolCallsEvent:
    """Build a tool_calls event from ToolCallResult records."""
    return ToolCallsEvent(tool_calls=tuple(call.to_dict() for call in calls))
