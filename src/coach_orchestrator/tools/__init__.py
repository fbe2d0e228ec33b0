"""Coaching tools: catalog, validation, Intervals.icu gateway and executor."""

from .catalog import TOOL_DEFINITIONS, TOOL_NAMES, get_tool_definition
from .errors import IntervalsApiError, ToolErrorCode, ToolInputError
from .executor import ToolExecutor

__all__ = [
    "TOOL_DEFINITIONS",
    "TOOL_NAMES",
    "get_tool_definition",
    "IntervalsApiError",
    "ToolErrorCode",
    "ToolInputError",
    "ToolExecutor",
]
