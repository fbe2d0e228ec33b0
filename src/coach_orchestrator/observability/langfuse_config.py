"""Langfuse configuration and tracing helpers.

Each orchestrator run becomes one trace. Provider calls are recorded as
generations and tool executions as spans inside it. Tracing is off unless
both LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY are set; every helper
accepts a None trace/span and does nothing with it, so callers never need
to check whether tracing is enabled.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from langfuse import Langfuse

from ..config import get_settings

logger = logging.getLogger(__name__)


def is_langfuse_enabled() -> bool:
    """Check if Langfuse is enabled.

    Returns:
        True if both the public and the secret key are configured.
    """
    settings = get_settings()
    return bool(settings.langfuse_public_key and settings.langfuse_secret_key)


@lru_cache(maxsize=1)
def get_langfuse_client() -> Optional[Langfuse]:
    """Get the Langfuse client singleton.

    Returns:
        Langfuse client if properly configured, None otherwise.
    """
    if not is_langfuse_enabled():
        logger.debug("Langfuse not configured: missing API keys")
        return None

    settings = get_settings()
    try:
        client = Langfuse(
            public_key=settings.langfuse_public_key,
            secret_key=settings.langfuse_secret_key,
            host=settings.langfuse_host,
        )
    except Exception as e:
        logger.warning(f"Failed to initialize Langfuse client: {e}")
        return None

    logger.info(f"Langfuse client initialized (host: {settings.langfuse_host})")
    return client


def start_trace(
    name: str,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    input_data: Optional[Any] = None,
    tags: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Start a trace for one orchestrator run.

    Returns:
        The trace object, or None when tracing is disabled.
    """
    client = get_langfuse_client()
    if client is None:
        return None

    try:
        trace = client.trace(
            name=name,
            user_id=user_id,
            session_id=session_id,
            input=input_data,
            tags=tags or [],
            metadata=metadata or {},
        )
    except Exception as e:
        logger.warning(f"Failed to create Langfuse trace: {e}")
        return None

    logger.debug(f"Created Langfuse trace: user={user_id}, name={name}")
    return trace


def end_trace(trace, output_data: Optional[Any] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Attach the final output to a trace."""
    if trace is None:
        return

    try:
        trace.update(output=output_data, metadata=metadata or {})
    except Exception as e:
        logger.warning(f"Failed to update Langfuse trace: {e}")


def create_span(
    trace,
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    input_data: Optional[Any] = None,
):
    """Create a span within a trace.

    Returns:
        The span object, or None when tracing is disabled.
    """
    if trace is None:
        return None

    try:
        return trace.span(
            name=name,
            metadata=metadata or {},
            input=input_data,
        )
    except Exception as e:
        logger.warning(f"Failed to create span: {e}")
        return None


def end_span(span, output_data: Optional[Any] = None, level: Optional[str] = None) -> None:
    """End a span with optional output data and level (e.g. "ERROR")."""
    if span is None:
        return

    kwargs: Dict[str, Any] = {"output": output_data}
    if level:
        kwargs["level"] = level
    try:
        span.end(**kwargs)
    except Exception as e:
        logger.warning(f"Failed to end span: {e}")


def record_generation(
    trace,
    name: str,
    model: Optional[str],
    input_data: Any,
    output: str,
    usage: Optional[Dict[str, int]] = None,
    metadata: Optional[Dict[str, Any]] = None,
):
    """Record one LLM call in the trace.

    Returns:
        The generation object, or None when tracing is disabled.
    """
    if trace is None:
        return None

    try:
        return trace.generation(
            name=name,
            model=model,
            input=input_data,
            output=output,
            usage=usage,
            metadata=metadata or {},
        )
    except Exception as e:
        logger.warning(f"Failed to record generation: {e}")
        return None


def shutdown_langfuse() -> None:
    """Flush pending traces and close the client.

    Call during application shutdown.
    """
    client = get_langfuse_client()
    if client:
        try:
            client.shutdown()
            logger.info("Langfuse client shutdown complete")
        except Exception as e:
            logger.warning(f"Error during Langfuse shutdown: {e}")

    get_langfuse_client.cache_clear()
