"""LLM provider access and prompt composition."""

from .prompts import compose_system_prompt, format_pace, format_race_time, format_swim_pace
from .providers import LLMClient, ProviderResponse, get_llm_client, reset_llm_client

__all__ = [
    "compose_system_prompt",
    "format_pace",
    "format_race_time",
    "format_swim_pace",
    "LLMClient",
    "ProviderResponse",
    "get_llm_client",
    "reset_llm_client",
]
