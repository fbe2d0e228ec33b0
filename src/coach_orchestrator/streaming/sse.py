"""
Server-side SSE encoding.

Each event is one frame: "event: <type>\\ndata: <json>\\n\\n". A successful
run emits, in order: tool_calls (only when tools ran), content_delta,
usage, done. Any failure emits a single error event instead and ends the
stream.
"""

import json
import logging
from typing import AsyncIterator, Awaitable, Callable, List

from ..exceptions import CoachOrchestratorError
from ..utils.log_sanitizer import sanitize_string
from ..models.orchestrator import OrchestratorResponse
from ..models.stream_events import (
    ContentDelta,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    UsageEvent,
    tool_calls_event,
)


logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
}

GENERIC_STREAM_ERROR = "An unexpected error occurred"


def format_sse(event: StreamEvent) -> str:
    """Serialize one event as an SSE frame."""
    return f"event: {event.type}\ndata: {json.dumps(event.to_data())}\n\n"


def response_events(response: OrchestratorResponse) -> List[StreamEvent]:
    """The event sequence for a completed, buffered response."""
    events: List[StreamEvent] = []
    if response.tool_calls:
        events.append(tool_calls_event(response.tool_calls))
    events.append(ContentDelta(text=response.content))
    events.append(
        UsageEvent(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
    )
    events.append(DoneEvent())
    return events


async def stream_orchestration(
    run: Callable[[], Awaitable[OrchestratorResponse]],
) -> AsyncIterator[str]:
    """
    Run the orchestration and yield its SSE frames.

    Errors become a single error frame with a caller-safe message.
    Cancellation (client disconnect) propagates and stops the run.
    """
    try:
        response = await run()
    except CoachOrchestratorError as e:
        logger.warning(f"[stream] Orchestration failed: {e.code.value} {e.message}")
        yield format_sse(ErrorEvent(error=sanitize_string(e.message)))
        return
    except Exception:
        logger.exception("[stream] Unhandled error during orchestration")
        yield format_sse(ErrorEvent(error=GENERIC_STREAM_ERROR))
        return

    for event in response_events(response):
        yield format_sse(event)
