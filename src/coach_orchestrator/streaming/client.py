"""
Client-side SSE decoding for orchestrator streams.

The decoder accepts arbitrary byte chunks, keeps any incomplete trailing
line until the next chunk arrives, and only acts on "data: " lines whose
JSON payload is a recognized stream event. Everything else (comments,
"event:" lines, malformed JSON, unknown types) is skipped.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, Callable, Dict, List, Optional, Sequence, Union

import httpx

from ..models.orchestrator import ChatMessage
from ..models.stream_events import (
    ContentDelta,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    event_from_data,
)


logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


class OrchestratorStreamError(Exception):
    """Raised (or passed to on_error) when a stream reports or hits an error."""
    pass


def parse_sse_line(line: str) -> Optional[StreamEvent]:
    """Parse one SSE line into an event, or None if it should be skipped."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    try:
        data = json.loads(line[len(DATA_PREFIX):])
    except json.JSONDecodeError:
        return None
    return event_from_data(data)


class SSEDecoder:
    """Incremental decoder from byte chunks to stream events."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: Union[bytes, str]) -> List[StreamEvent]:
        """Add a chunk and return the events completed by it."""
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return [event for event in map(parse_sse_line, lines) if event is not None]

    def flush(self) -> List[StreamEvent]:
        """Decode whatever is left once the stream has closed."""
        remaining = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [event for event in map(parse_sse_line, remaining.split("\n")) if event is not None]


@dataclass
class StreamCallbacks:
    """
    Callbacks invoked while reading a stream.

    Attributes:
        on_delta: Called with the accumulated text after each content_delta
        on_done: Called once with the full text when the stream completes
        on_error: Called once if the stream reports or hits an error
    """

    on_delta: Callable[[str], None]
    on_done: Callable[[str], None]
    on_error: Callable[[Exception], None]


async def read_sse_stream(chunks: AsyncIterable[Union[bytes, str]], callbacks: StreamCallbacks) -> str:
    """
    Consume an SSE byte stream, driving the callbacks.

    Exactly one of on_done/on_error is called. If the stream closes
    without a done event, on_done still receives the accumulated text.

    Returns:
        The accumulated content
    """
    decoder = SSEDecoder()
    full_content = ""

    def handle(event: StreamEvent) -> bool:
        """Apply one event; True when the stream is finished."""
        nonlocal full_content
        if isinstance(event, ContentDelta):
            full_content += event.text
            callbacks.on_delta(full_content)
        elif isinstance(event, ErrorEvent):
            callbacks.on_error(OrchestratorStreamError(event.error))
            return True
        elif isinstance(event, DoneEvent):
            callbacks.on_done(full_content)
            return True
        return False

    async for chunk in chunks:
        for event in decoder.feed(chunk):
            if handle(event):
                return full_content

    for event in decoder.flush():
        if handle(event):
            return full_content

    callbacks.on_done(full_content)
    return full_content


class OrchestratorClient:
    """
    Calls the orchestrator endpoint and streams the reply.

    Usage:
        client = OrchestratorClient("https://api.example.com", access_token)
        await client.stream_chat(messages, StreamCallbacks(on_delta, on_done, on_error))
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 180.0,
    ):
        self.url = f"{base_url.rstrip('/')}/ai-orchestrator"
        self.access_token = access_token
        self._http_client = http_client
        self.timeout = timeout

    def _payload(
        self,
        messages: Sequence[ChatMessage],
        athlete_context: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": True,
        }
        if athlete_context is not None:
            payload["athlete_context"] = athlete_context
        return payload

    async def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        callbacks: StreamCallbacks,
        athlete_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Send the conversation and drive callbacks from the SSE reply."""
        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            async with client.stream(
                "POST",
                self.url,
                json=self._payload(messages, athlete_context),
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Accept": "text/event-stream",
                },
            ) as response:
                if not response.is_success:
                    callbacks.on_error(
                        OrchestratorStreamError(f"Stream request failed: {response.status_code}")
                    )
                    return
                await read_sse_stream(response.aiter_bytes(), callbacks)
        except httpx.HTTPError as e:
            logger.warning(f"[client] Stream transport error: {e}")
            callbacks.on_error(OrchestratorStreamError(str(e) or "Unknown error during streaming"))
        finally:
            if self._http_client is None:
                await client.aclose()
