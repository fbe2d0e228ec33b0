"""Data models for the Coach Orchestrator."""

from .athlete_context import (
    AthleteContext,
    CheckinSummary,
    Constraint,
    Goal,
    VALID_PRIORITIES,
    VALID_SEVERITIES,
)
from .orchestrator import (
    ChatMessage,
    OrchestratorRequest,
    OrchestratorResponse,
    ToolCallResult,
    ToolResultBlock,
    ToolUse,
    Turn,
    Usage,
)

__all__ = [
    "AthleteContext",
    "CheckinSummary",
    "Constraint",
    "Goal",
    "VALID_PRIORITIES",
    "VALID_SEVERITIES",
    "ChatMessage",
    "OrchestratorRequest",
    "OrchestratorResponse",
    "ToolCallResult",
    "ToolResultBlock",
    "ToolUse",
    "Turn",
    "Usage",
]
