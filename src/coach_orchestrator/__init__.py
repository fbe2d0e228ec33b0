"""Coach Orchestrator: athlete-aware, tool-using LLM coach served over SSE."""

__version__ = "0.1.0"
