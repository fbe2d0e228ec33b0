"""
LLM provider client.

This module provides the provider interface used by the agentic loop:
- Tool-enabled chat requests built from the immutable turn log
- Automatic retry with exponential backoff
- Rate limit handling
- Mapping of provider failures onto LLM* exceptions
- Request/usage metrics
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
import asyncio
import json
import logging
import os
import threading
import time

from openai import AsyncOpenAI, APIError, RateLimitError, APIConnectionError

from ..config import get_settings
from ..exceptions import (
    LLMServiceUnavailableError,
    LLMRateLimitError,
    LLMTimeoutError,
    LLMResponseInvalidError,
    LLMError,
)
from ..models.orchestrator import ROLE_ASSISTANT, ToolUse, Turn, Usage


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderResponse:
    """
    One model reply, normalized away from the provider's wire format.

    Attributes:
        text_blocks: Text segments of the reply, in order
        tool_uses: Tool invocations the model requested
        stop_reason: Provider finish reason (informational)
        usage: Tokens consumed by this call
    """

    text_blocks: Tuple[str, ...] = ()
    tool_uses: Tuple[ToolUse, ...] = ()
    stop_reason: Optional[str] = None
    usage: Usage = field(default_factory=Usage)

    @property
    def text(self) -> str:
        return "\n\n".join(block for block in self.text_blocks if block)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        retryable_status_codes: Optional[set[int]] = None,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retryable_status_codes = retryable_status_codes or {429, 500, 502, 503, 504}

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


class LLMMetrics:
    """Track LLM usage metrics for the process lifetime."""

    def __init__(self) -> None:
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.retried_requests = 0
        self.total_tokens_input = 0
        self.total_tokens_output = 0
        self._request_times: list[float] = []

    def record_request(
        self,
        success: bool,
        retried: bool = False,
        input_tokens: int = 0,
        output_tokens: int = 0,
        duration_ms: Optional[float] = None,
    ) -> None:
        self.total_requests += 1
        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1
        if retried:
            self.retried_requests += 1
        self.total_tokens_input += input_tokens
        self.total_tokens_output += output_tokens
        if duration_ms is not None:
            self._request_times.append(duration_ms)
            # Keep only last 100 request times
            if len(self._request_times) > 100:
                self._request_times = self._request_times[-100:]

    @property
    def avg_request_time_ms(self) -> float:
        if not self._request_times:
            return 0.0
        return sum(self._request_times) / len(self._request_times)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "retried_requests": self.retried_requests,
            "total_tokens_input": self.total_tokens_input,
            "total_tokens_output": self.total_tokens_output,
            "avg_request_time_ms": round(self.avg_request_time_ms, 2),
        }


# ============================================================================
# Wire-format mapping
# ============================================================================

def to_openai_tools(tool_definitions: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert catalog definitions into OpenAI function tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool["description"],
                "parameters": tool["input_schema"],
            },
        }
        for tool in tool_definitions
    ]


def to_openai_messages(system: str, turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Render the turn log as OpenAI chat messages.

    Tool results become one "tool" message per result, keyed by the id of
    the tool call they answer.
    """
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system}]
    for turn in turns:
        if turn.role == ROLE_ASSISTANT:
            message: Dict[str, Any] = {"role": "assistant", "content": turn.text or None}
            if turn.tool_uses:
                message["tool_calls"] = [
                    {
                        "id": use.id,
                        "type": "function",
                        "function": {"name": use.name, "arguments": json.dumps(use.input)},
                    }
                    for use in turn.tool_uses
                ]
            messages.append(message)
        elif turn.tool_results:
            for result in turn.tool_results:
                messages.append(
                    {"role": "tool", "tool_call_id": result.tool_use_id, "content": result.content}
                )
        else:
            messages.append({"role": "user", "content": turn.text})
    return messages


def _parse_arguments(raw: Optional[str], tool_name: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Model sent unparseable arguments for {tool_name}: {raw[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def from_openai_response(response: Any) -> ProviderResponse:
    """Normalize an OpenAI chat completion into a ProviderResponse."""
    if not response.choices:
        raise LLMResponseInvalidError(message="Empty response from AI service")

    choice = response.choices[0]
    message = choice.message
    tool_uses = tuple(
        ToolUse(
            id=call.id,
            name=call.function.name,
            input=_parse_arguments(call.function.arguments, call.function.name),
        )
        for call in (message.tool_calls or [])
    )
    usage = Usage()
    if response.usage is not None:
        usage = Usage(
            input_tokens=response.usage.prompt_tokens or 0,
            output_tokens=response.usage.completion_tokens or 0,
        )
    return ProviderResponse(
        text_blocks=(message.content,) if message.content else (),
        tool_uses=tool_uses,
        stop_reason=choice.finish_reason,
        usage=usage,
    )


# ============================================================================
# Client
# ============================================================================

class LLMClient:
    """
    LLM client with retry logic, error mapping and metrics.

    Features:
    - Tool-enabled requests over the conversation turn log
    - Automatic retry with exponential backoff
    - Rate limit handling
    - Request metrics tracking
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        """
        Initialize the LLM client.

        Args:
            api_key: OpenAI API key (defaults to settings or env var)
            model: Model id (defaults to settings.llm_model)
            retry_config: Configuration for retry behavior

        Raises:
            LLMServiceUnavailableError: If no API key is configured
        """
        settings = get_settings()
        api_key = api_key or settings.openai_api_key or os.environ.get("OPENAI_API_KEY")

        if not api_key:
            raise LLMServiceUnavailableError(
                message="AI service not configured",
                details={"configuration_missing": "openai_api_key"},
            )

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model or settings.llm_model
        self.max_tokens = settings.llm_max_tokens
        self.temperature = settings.llm_temperature
        self.retry_config = retry_config or RetryConfig()
        self.metrics = LLMMetrics()
        self._logger = logger

    async def _execute_with_retry(
        self,
        operation: Callable[[], T],
        operation_name: str = "LLM request",
    ) -> T:
        """
        Execute an operation with retry logic.

        Args:
            operation: Async callable to execute
            operation_name: Name for logging

        Returns:
            The operation result

        Raises:
            LLMError: On unrecoverable failure
        """
        last_exception: Optional[Exception] = None
        retried = False

        for attempt in range(self.retry_config.max_retries + 1):
            start_time = time.time()

            try:
                result = await operation()
                duration_ms = (time.time() - start_time) * 1000
                self.metrics.record_request(
                    success=True,
                    retried=retried,
                    duration_ms=duration_ms,
                )
                return result

            except RateLimitError as e:
                last_exception = e
                retried = True
                retry_after = getattr(e, "retry_after", None)

                if attempt < self.retry_config.max_retries:
                    delay = retry_after if retry_after else self.retry_config.get_delay(attempt)
                    self._logger.warning(
                        f"{operation_name} rate limited. "
                        f"Retry {attempt + 1}/{self.retry_config.max_retries} "
                        f"in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                else:
                    self.metrics.record_request(success=False, retried=True)
                    raise LLMRateLimitError(
                        retry_after=int(retry_after) if retry_after else None,
                    )

            except APIConnectionError as e:
                last_exception = e
                retried = True

                if attempt < self.retry_config.max_retries:
                    delay = self.retry_config.get_delay(attempt)
                    self._logger.warning(
                        f"{operation_name} connection error. "
                        f"Retry {attempt + 1}/{self.retry_config.max_retries} "
                        f"in {delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    self.metrics.record_request(success=False, retried=True)
                    raise LLMServiceUnavailableError(
                        message="AI service is currently unavailable",
                        details={"reason": "connection_failed"},
                    )

            except APIError as e:
                last_exception = e
                status = getattr(e, "status_code", 500)

                if status in self.retry_config.retryable_status_codes:
                    retried = True
                    if attempt < self.retry_config.max_retries:
                        delay = self.retry_config.get_delay(attempt)
                        self._logger.warning(
                            f"{operation_name} API error (status {status}). "
                            f"Retry {attempt + 1}/{self.retry_config.max_retries} "
                            f"in {delay:.1f}s"
                        )
                        await asyncio.sleep(delay)
                    else:
                        self.metrics.record_request(success=False, retried=True)
                        raise LLMServiceUnavailableError(
                            message="AI service is currently unavailable",
                            details={"status_code": status},
                        )
                else:
                    self.metrics.record_request(success=False, retried=retried)
                    self._logger.error(f"{operation_name} API error (status {status}): {e}")
                    raise LLMError(
                        message="AI service request failed",
                        details={"status_code": status},
                    )

            except asyncio.TimeoutError as e:
                last_exception = e
                self.metrics.record_request(success=False, retried=retried)
                raise LLMTimeoutError()

        # Should not reach here, but just in case
        self.metrics.record_request(success=False, retried=True)
        raise LLMError(message=f"Operation failed after all retries: {last_exception}")

    async def create_message(
        self,
        system: str,
        turns: Sequence[Turn],
        tools: Sequence[Dict[str, Any]],
        timeout: Optional[float] = 60.0,
    ) -> ProviderResponse:
        """
        Send the conversation and tool catalog; return the model's next action.

        Args:
            system: System prompt
            turns: Conversation log, oldest first
            tools: Catalog tool definitions
            timeout: Per-call timeout in seconds

        Returns:
            The normalized model reply

        Raises:
            LLMError: On failure
        """
        messages = to_openai_messages(system, turns)
        openai_tools = to_openai_tools(tools)

        async def _make_request() -> ProviderResponse:
            kwargs: Dict[str, Any] = {
                "model": self.model,
                "messages": messages,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            }
            if openai_tools:
                kwargs["tools"] = openai_tools
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=timeout,
            )
            return from_openai_response(response)

        result = await self._execute_with_retry(_make_request, "create_message")
        self.metrics.total_tokens_input += result.usage.input_tokens
        self.metrics.total_tokens_output += result.usage.output_tokens
        return result

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics."""
        return self.metrics.to_dict()


# Singleton instance with thread-safe locking
_llm_client: Optional[LLMClient] = None
_llm_client_lock = threading.Lock()


def get_llm_client() -> LLMClient:
    """
    Get the LLM client singleton (thread-safe).

    Raises:
        LLMServiceUnavailableError: If the provider is not configured
    """
    global _llm_client
    if _llm_client is None:
        with _llm_client_lock:
            if _llm_client is None:
                _llm_client = LLMClient()
    return _llm_client


def get_llm_metrics() -> Optional[Dict[str, Any]]:
    """Metrics of the shared client, or None if it was never created."""
    client = _llm_client
    return client.get_metrics() if client is not None else None


def reset_llm_client() -> None:
    """Reset the LLM client singleton (for testing)."""
    global _llm_client
    with _llm_client_lock:
        _llm_client = None
