"""Agentic loop."""

from .orchestrator import (
    AgenticLoop,
    ITERATION_CAP_MESSAGE,
    LoopState,
    MAX_TOOL_ITERATIONS,
)

__all__ = ["AgenticLoop", "ITERATION_CAP_MESSAGE", "LoopState", "MAX_TOOL_ITERATIONS"]
