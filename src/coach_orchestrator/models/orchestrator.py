"""
Request, response and conversation-turn models for the orchestrator.

Turns are immutable: the agentic loop grows the conversation by building
a new tuple of turns each iteration instead of mutating a shared list.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .athlete_context import AthleteContext


ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
VALID_ROLES = (ROLE_USER, ROLE_ASSISTANT)


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation message from the caller."""

    role: str
    content: str


@dataclass(frozen=True)
class ToolUse:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultBlock:
    """The outcome of one tool invocation, as sent back to the model."""

    tool_use_id: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class Turn:
    """
    One entry of the conversation log sent to the provider.

    A user turn carries either text or tool results; an assistant turn
    carries text and/or the tool-use requests it made.
    """

    role: str
    text: str = ""
    tool_uses: Tuple[ToolUse, ...] = ()
    tool_results: Tuple[ToolResultBlock, ...] = ()

    @classmethod
    def from_message(cls, message: ChatMessage) -> "Turn":
        return cls(role=message.role, text=message.content)


@dataclass
class ToolCallResult:
    """
    Record of one executed tool call.

    Exactly one of result/error is meaningful, depending on success.
    """

    tool_name: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, tool_name: str, result: Any) -> "ToolCallResult":
        return cls(tool_name=tool_name, success=True, result=result)

    @classmethod
    def failed(cls, tool_name: str, error: str, code: str) -> "ToolCallResult":
        return cls(tool_name=tool_name, success=False, error=error, code=code)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"tool_name": self.tool_name, "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
            if self.code:
                data["code"] = self.code
        return data


@dataclass(frozen=True)
class Usage:
    """Token usage accumulated across provider calls."""

    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )

    def to_dict(self) -> Dict[str, int]:
        return {"input_tokens": self.input_tokens, "output_tokens": self.output_tokens}


@dataclass
class OrchestratorRequest:
    """
    A validated inbound orchestrator request.

    If athlete_context is absent and athlete_id is present, the context
    builder populates the context before the loop starts.
    """

    messages: List[ChatMessage]
    athlete_context: Optional[AthleteContext] = None
    athlete_id: Optional[str] = None
    conversation_id: Optional[str] = None
    stream: bool = False


@dataclass
class OrchestratorResponse:
    """The non-streaming terminal result of the agentic loop."""

    content: str
    tool_calls: List[ToolCallResult] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"content": self.content}
        # An empty tool-call list is omitted rather than sent as []
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        data["usage"] = self.usage.to_dict()
        return data
