"""Tests for the agentic loop workflow."""

import json
from typing import List, Sequence
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coach_orchestrator.agents.orchestrator import (
    ITERATION_CAP_MESSAGE,
    MAX_TOOL_ITERATIONS,
    AgenticLoop,
    apply_iteration_cap,
    apply_model_response,
    apply_tool_results,
    initial_state,
    tool_result_block,
)
from coach_orchestrator.exceptions import LLMError
from coach_orchestrator.llm.providers import ProviderResponse
from coach_orchestrator.models.orchestrator import ChatMessage, ToolCallResult, ToolUse, Usage


MESSAGES = [ChatMessage(role="user", content="How is my form?")]


def _tool_response(*names: str, text: str = "") -> ProviderResponse:
    uses = tuple(ToolUse(id=f"call_{i}_{name}", name=name, input={}) for i, name in enumerate(names))
    return ProviderResponse(
        text_blocks=(text,) if text else (),
        tool_uses=uses,
        stop_reason="tool_calls",
        usage=Usage(input_tokens=100, output_tokens=20),
    )


def _text_response(text: str) -> ProviderResponse:
    return ProviderResponse(text_blocks=(text,), stop_reason="stop", usage=Usage(input_tokens=50, output_tokens=30))


def _advance(state, update):
    return {**state, **update}


class ScriptedProvider:
    """Returns queued responses and snapshots the turns it was sent."""

    model = "test-model"

    def __init__(self, responses: Sequence[ProviderResponse]):
        self.responses = list(responses)
        self.calls: List[tuple] = []

    async def create_message(self, system, turns, tools):
        self.calls.append(tuple(turns))
        return self.responses.pop(0)


class AlwaysToolProvider:
    """Requests a tool on every call."""

    def __init__(self):
        self.call_count = 0

    async def create_message(self, system, turns, tools):
        self.call_count += 1
        return _tool_response("get_wellness_data")


class EchoRunner:
    """Succeeds every tool call with a small payload."""

    def __init__(self):
        self.batches: List[List[str]] = []

    async def execute_all(self, tool_uses):
        self.batches.append([use.name for use in tool_uses])
        return [ToolCallResult.ok(use.name, {"ok": True}) for use in tool_uses]


class FailingRunner:
    """Fails every tool call for lack of credentials."""

    async def execute_all(self, tool_uses):
        return [ToolCallResult.failed(use.name, "no creds", "NO_CREDENTIALS") for use in tool_uses]


# ============================================================================
# Pure transitions
# ============================================================================

class TestTransitions:
    """Tests for the node state transitions."""

    def test_initial_state(self):
        state = initial_state("system", MESSAGES)
        assert state["iterations"] == 0
        assert state["pending"] == ()
        assert state["turns"][0].text == "How is my form?"
        assert state["trace"] is None

    def test_text_reply_sets_content(self):
        update = apply_model_response(initial_state("s", MESSAGES), _text_response("You're fresh."))
        assert update["content"] == "You're fresh."
        assert update["pending"] == ()
        assert update["iterations"] == 1
        assert "turns" not in update

    def test_tool_reply_sets_pending(self):
        start = initial_state("s", MESSAGES)
        state = _advance(start, apply_model_response(start, _tool_response("get_events", text="Checking.")))
        assert [use.name for use in state["pending"]] == ["get_events"]
        assert state["turns"][-1].role == "assistant"
        assert state["turns"][-1].text == "Checking."
        # Prior state is untouched
        assert len(start["turns"]) == 1

    def test_usage_accumulates(self):
        start = initial_state("s", MESSAGES)
        state = _advance(start, apply_model_response(start, _tool_response("get_events")))
        state = _advance(state, apply_model_response(state, _text_response("ok")))
        assert state["usage"] == Usage(input_tokens=150, output_tokens=50)
        assert state["iterations"] == 2

    def test_tool_results_append_user_turn(self):
        start = initial_state("s", MESSAGES)
        state = _advance(start, apply_model_response(start, _tool_response("get_events")))
        results = [ToolCallResult.ok("get_events", {"events": []})]
        state = _advance(state, apply_tool_results(state, results))
        assert state["pending"] == ()
        assert state["turns"][-1].role == "user"
        assert state["turns"][-1].tool_results[0].tool_use_id == "call_0_get_events"
        assert state["tool_calls"] == tuple(results)

    def test_iteration_cap_keeps_tool_calls(self):
        state = _advance(initial_state("s", MESSAGES), {
            "iterations": 5,
            "tool_calls": (ToolCallResult.ok("get_events", {}),),
        })
        assert apply_iteration_cap(state) == {"content": ITERATION_CAP_MESSAGE}

    def test_tool_result_block_for_failure(self):
        use = ToolUse(id="call_x", name="get_events")
        block = tool_result_block(use, ToolCallResult.failed("get_events", "no creds", "NO_CREDENTIALS"))
        assert block.is_error
        assert block.content == "Error: no creds"

    def test_tool_result_block_for_success(self):
        use = ToolUse(id="call_x", name="get_events")
        block = tool_result_block(use, ToolCallResult.ok("get_events", {"total": 2}))
        assert not block.is_error
        assert json.loads(block.content) == {"total": 2}


# ============================================================================
# Routing
# ============================================================================

class TestRouting:
    """Tests for the conditional edges of the workflow."""

    def test_routes_to_dispatch_when_tools_pending(self):
        loop = AgenticLoop(ScriptedProvider([]), EchoRunner())
        state = _advance(initial_state("s", MESSAGES), {"pending": (ToolUse(id="c", name="get_events"),)})
        assert loop._route_after_thinking(state) == "dispatch"

    def test_routes_to_finish_without_tools(self):
        loop = AgenticLoop(ScriptedProvider([]), EchoRunner())
        assert loop._route_after_thinking(initial_state("s", MESSAGES)) == "finish"

    def test_routes_to_limit_at_cap(self):
        loop = AgenticLoop(ScriptedProvider([]), EchoRunner(), max_iterations=3)
        assert loop._route_after_tools(_advance(initial_state("s", MESSAGES), {"iterations": 2})) == "continue"
        assert loop._route_after_tools(_advance(initial_state("s", MESSAGES), {"iterations": 3})) == "limit"


# ============================================================================
# AgenticLoop.run
# ============================================================================

class TestAgenticLoop:
    """Tests for AgenticLoop.run."""

    @pytest.mark.asyncio
    async def test_direct_answer_has_no_tool_calls(self):
        provider = ScriptedProvider([_text_response("Take an easy day.")])
        runner = EchoRunner()

        response = await AgenticLoop(provider, runner).run("system", MESSAGES)

        assert response.content == "Take an easy day."
        assert response.tool_calls == []
        assert response.usage == Usage(input_tokens=50, output_tokens=30)
        assert runner.batches == []
        assert "tool_calls" not in response.to_dict()

    @pytest.mark.asyncio
    async def test_one_tool_round(self):
        provider = ScriptedProvider([
            _tool_response("get_wellness_data"),
            _text_response("Your TSB is -5."),
        ])
        runner = EchoRunner()

        response = await AgenticLoop(provider, runner).run("system", MESSAGES)

        assert response.content == "Your TSB is -5."
        assert [c.tool_name for c in response.tool_calls] == ["get_wellness_data"]
        assert response.usage == Usage(input_tokens=150, output_tokens=50)
        second_call_turns = provider.calls[1]
        assert second_call_turns[-1].tool_results[0].tool_use_id == "call_0_get_wellness_data"

    @pytest.mark.asyncio
    async def test_parallel_tool_uses_run_in_one_batch(self):
        provider = ScriptedProvider([
            _tool_response("get_wellness_data", "get_events"),
            _text_response("Done."),
        ])
        runner = EchoRunner()

        response = await AgenticLoop(provider, runner).run("system", MESSAGES)

        assert runner.batches == [["get_wellness_data", "get_events"]]
        assert len(response.tool_calls) == 2

    @pytest.mark.asyncio
    async def test_failed_tools_do_not_stop_the_loop(self):
        provider = ScriptedProvider([_tool_response("get_events"), _text_response("Connect Intervals.icu first.")])

        response = await AgenticLoop(provider, FailingRunner()).run("system", MESSAGES)

        assert response.content == "Connect Intervals.icu first."
        assert response.tool_calls[0].code == "NO_CREDENTIALS"
        assert provider.calls[1][-1].tool_results[0].is_error

    @pytest.mark.asyncio
    async def test_caps_iterations(self):
        provider = AlwaysToolProvider()
        runner = EchoRunner()

        response = await AgenticLoop(provider, runner).run("system", MESSAGES)

        assert MAX_TOOL_ITERATIONS == 5
        assert provider.call_count == 5
        assert len(runner.batches) == 5
        assert len(response.tool_calls) == 5
        assert response.content == ITERATION_CAP_MESSAGE
        assert response.usage == Usage(input_tokens=500, output_tokens=100)

    @pytest.mark.asyncio
    async def test_custom_cap(self):
        provider = AlwaysToolProvider()
        response = await AgenticLoop(provider, EchoRunner(), max_iterations=2).run("system", MESSAGES)
        assert provider.call_count == 2
        assert response.content == ITERATION_CAP_MESSAGE

    @pytest.mark.asyncio
    async def test_answer_on_last_allowed_iteration_is_not_capped(self):
        responses = [_tool_response("get_events") for _ in range(4)] + [_text_response("Final plan.")]
        response = await AgenticLoop(ScriptedProvider(responses), EchoRunner()).run("system", MESSAGES)
        assert response.content == "Final plan."
        assert len(response.tool_calls) == 4

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        provider = AsyncMock()
        provider.create_message.side_effect = LLMError(message="AI service request failed")
        with pytest.raises(LLMError):
            await AgenticLoop(provider, EchoRunner()).run("system", MESSAGES)


# ============================================================================
# Tracing
# ============================================================================

class TestLoopTracing:
    """Tests for Langfuse tracing of loop runs."""

    @pytest.mark.asyncio
    async def test_records_generations_and_tool_spans(self):
        trace = MagicMock()
        provider = ScriptedProvider([_tool_response("get_events"), _text_response("Rest today.")])

        with patch("coach_orchestrator.agents.orchestrator.start_trace", return_value=trace) as start:
            response = await AgenticLoop(provider, FailingRunner(), user_id="user-1").run("system", MESSAGES)

        assert start.call_args.kwargs["user_id"] == "user-1"
        assert trace.generation.call_count == 2
        assert trace.generation.call_args_list[0].kwargs["model"] == "test-model"
        assert trace.generation.call_args_list[0].kwargs["usage"] == {"input": 100, "output": 20}
        trace.span.assert_called_once()
        assert trace.span.call_args.kwargs["name"] == "tool:get_events"
        span_end = trace.span.return_value.end.call_args.kwargs
        assert span_end["level"] == "ERROR"
        assert span_end["output"]["code"] == "NO_CREDENTIALS"
        trace.update.assert_called_once()
        assert trace.update.call_args.kwargs["output"] == response.content

    @pytest.mark.asyncio
    async def test_runs_without_tracing(self):
        provider = ScriptedProvider([_text_response("Hi.")])
        with patch("coach_orchestrator.agents.orchestrator.start_trace", return_value=None):
            response = await AgenticLoop(provider, EchoRunner()).run("system", MESSAGES)
        assert response.content == "Hi."
