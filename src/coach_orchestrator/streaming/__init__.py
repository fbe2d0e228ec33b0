"""SSE transport: server-side encoding and client-side decoding."""

from .client import OrchestratorClient, SSEDecoder, StreamCallbacks, parse_sse_line, read_sse_stream
from .sse import SSE_HEADERS, format_sse, response_events, stream_orchestration

__all__ = [
    "OrchestratorClient",
    "SSEDecoder",
    "StreamCallbacks",
    "parse_sse_line",
    "read_sse_stream",
    "SSE_HEADERS",
    "format_sse",
    "response_events",
    "stream_orchestration",
]
