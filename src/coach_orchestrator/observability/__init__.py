"""Langfuse observability for the agentic loop."""

from .langfuse_config import (
    create_span,
    end_span,
    end_trace,
    get_langfuse_client,
    is_langfuse_enabled,
    record_generation,
    shutdown_langfuse,
    start_trace,
)

__all__ = [
    "create_span",
    "end_span",
    "end_trace",
    "get_langfuse_client",
    "is_langfuse_enabled",
    "record_generation",
    "shutdown_langfuse",
    "start_trace",
]
