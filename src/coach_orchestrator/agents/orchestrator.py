"""
Agentic loop driving the coaching conversation.

The loop is a LangGraph workflow that alternates between asking the model
for its next action and running the tools it requests:

    thinking --(tool uses)--> tool_dispatch --> thinking ... --> END
                                            \\--(cap reached)--> iteration_limit --> END

It finishes when the model replies without requesting tools, or when the
iteration cap is reached. Node bodies are pure transitions that return a
state update; the conversation log only ever grows by building a new
tuple of turns.
"""

import json
import logging
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple, TypedDict

from langgraph.graph import StateGraph, END

from ..llm.providers import ProviderResponse
from ..models.orchestrator import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ChatMessage,
    OrchestratorResponse,
    ToolCallResult,
    ToolResultBlock,
    ToolUse,
    Turn,
    Usage,
)
from ..observability import (
    create_span,
    end_span,
    end_trace,
    record_generation,
    start_trace,
)
from ..tools.catalog import TOOL_DEFINITIONS


logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 5

ITERATION_CAP_MESSAGE = (
    "I gathered data from multiple sources but reached my processing limit. "
    "Here is what I found so far. Please try rephrasing your question if you "
    "need more specific information."
)


class LLMProvider(Protocol):
    async def create_message(
        self,
        system: str,
        turns: Sequence[Turn],
        tools: Sequence[Dict[str, Any]],
    ) -> ProviderResponse:
        ...


class ToolRunner(Protocol):
    async def execute_all(self, tool_uses: Sequence[ToolUse]) -> Sequence[ToolCallResult]:
        ...


# ============================================================================
# State
# ============================================================================

class LoopState(TypedDict):
    """State for the agentic loop workflow."""
    # Input
    system: str

    # Conversation log sent to the provider, oldest first
    turns: Tuple[Turn, ...]

    # Processing
    iterations: int  # Provider round trips made so far
    pending: Tuple[ToolUse, ...]  # Tool uses awaiting execution

    # Output
    tool_calls: Tuple[ToolCallResult, ...]
    usage: Usage
    content: str

    # Langfuse trace for this run (None when tracing is off)
    trace: Optional[Any]


def initial_state(
    system: str,
    messages: Sequence[ChatMessage],
    trace: Optional[Any] = None,
) -> LoopState:
    return LoopState(
        system=system,
        turns=tuple(Turn.from_message(m) for m in messages),
        iterations=0,
        pending=(),
        tool_calls=(),
        usage=Usage(),
        content="",
        trace=trace,
    )


def to_response(state: LoopState) -> OrchestratorResponse:
    return OrchestratorResponse(
        content=state["content"],
        tool_calls=list(state["tool_calls"]),
        usage=state["usage"],
    )


# ============================================================================
# Transitions
# ============================================================================

def tool_result_block(tool_use: ToolUse, result: ToolCallResult) -> ToolResultBlock:
    """Wrap a tool outcome as the content the model sees."""
    if result.success:
        content = json.dumps(result.result, default=str)
    else:
        content = f"Error: {result.error}"
    return ToolResultBlock(tool_use_id=tool_use.id, content=content, is_error=not result.success)


def apply_model_response(state: LoopState, response: ProviderResponse) -> Dict[str, Any]:
    """Fold one model reply into the state.

    A reply without tool uses sets the final content; otherwise the
    assistant turn is logged and its tool uses become pending.
    """
    update: Dict[str, Any] = {
        "iterations": state["iterations"] + 1,
        "usage": state["usage"] + response.usage,
    }

    if not response.tool_uses:
        update["pending"] = ()
        update["content"] = response.text
        return update

    assistant_turn = Turn(role=ROLE_ASSISTANT, text=response.text, tool_uses=response.tool_uses)
    update["turns"] = state["turns"] + (assistant_turn,)
    update["pending"] = response.tool_uses
    return update


def apply_tool_results(state: LoopState, results: Sequence[ToolCallResult]) -> Dict[str, Any]:
    """Log the results of the pending tool uses as one user turn."""
    blocks = tuple(tool_result_block(use, result) for use, result in zip(state["pending"], results))
    return {
        "turns": state["turns"] + (Turn(role=ROLE_USER, tool_results=blocks),),
        "pending": (),
        "tool_calls": state["tool_calls"] + tuple(results),
    }


def apply_iteration_cap(state: LoopState) -> Dict[str, Any]:
    """Finish with the fixed message, keeping the tool calls gathered so far."""
    logger.warning(
        f"[orchestrator] Reached {state['iterations']} tool iterations; "
        f"returning {len(state['tool_calls'])} gathered tool calls"
    )
    return {"content": ITERATION_CAP_MESSAGE}


# ============================================================================
# Agentic Loop
# ============================================================================

class AgenticLoop:
    """
    LangGraph-based model/tool cycle for one request.

    Args:
        provider: LLM provider used for each thinking step
        tool_runner: Executes requested tools
        tools: Tool catalog advertised to the model
        max_iterations: Hard cap on provider round trips
        user_id: Caller id attached to the trace
    """

    def __init__(
        self,
        provider: LLMProvider,
        tool_runner: ToolRunner,
        tools: Sequence[Dict[str, Any]] = TOOL_DEFINITIONS,
        max_iterations: int = MAX_TOOL_ITERATIONS,
        user_id: Optional[str] = None,
    ):
        self.provider = provider
        self.tool_runner = tool_runner
        self.tools = tools
        self.max_iterations = max_iterations
        self.user_id = user_id
        self._graph = self._build_graph()

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow."""
        workflow = StateGraph(LoopState)

        workflow.add_node("thinking", self._think)
        workflow.add_node("tool_dispatch", self._dispatch_tools)
        workflow.add_node("iteration_limit", apply_iteration_cap)

        workflow.set_entry_point("thinking")
        workflow.add_conditional_edges(
            "thinking",
            self._route_after_thinking,
            {
                "dispatch": "tool_dispatch",
                "finish": END,
            }
        )
        workflow.add_conditional_edges(
            "tool_dispatch",
            self._route_after_tools,
            {
                "continue": "thinking",
                "limit": "iteration_limit",
            }
        )
        workflow.add_edge("iteration_limit", END)

        return workflow.compile()

    def _route_after_thinking(self, state: LoopState) -> str:
        """Dispatch tools if the model requested any."""
        return "dispatch" if state["pending"] else "finish"

    def _route_after_tools(self, state: LoopState) -> str:
        """Think again unless the iteration cap is reached."""
        return "limit" if state["iterations"] >= self.max_iterations else "continue"

    async def _think(self, state: LoopState) -> Dict[str, Any]:
        """Ask the model for its next action."""
        response = await self.provider.create_message(
            system=state["system"], turns=state["turns"], tools=self.tools
        )
        record_generation(
            state["trace"],
            name=f"thinking_{state['iterations'] + 1}",
            model=getattr(self.provider, "model", None),
            input_data={"turns": len(state["turns"])},
            output=response.text,
            usage={"input": response.usage.input_tokens, "output": response.usage.output_tokens},
            metadata={
                "stop_reason": response.stop_reason,
                "tool_uses": [use.name for use in response.tool_uses],
            },
        )
        return apply_model_response(state, response)

    async def _dispatch_tools(self, state: LoopState) -> Dict[str, Any]:
        """Run every pending tool use."""
        pending = state["pending"]
        logger.info(
            f"[orchestrator] Iteration {state['iterations']}: running "
            f"{', '.join(use.name for use in pending)}"
        )
        spans = [
            create_span(state["trace"], name=f"tool:{use.name}", input_data=use.input)
            for use in pending
        ]
        results = await self.tool_runner.execute_all(pending)
        for span, result in zip(spans, results):
            end_span(span, output_data=result.to_dict(), level=None if result.success else "ERROR")
        return apply_tool_results(state, results)

    async def run(self, system: str, messages: Sequence[ChatMessage]) -> OrchestratorResponse:
        """
        Run the loop to completion.

        Args:
            system: System prompt
            messages: Conversation from the caller, first message from the user

        Returns:
            Final content, every tool call made and total usage

        Raises:
            LLMError: If a provider call fails
        """
        trace = start_trace(
            name="ai_orchestrator",
            user_id=self.user_id,
            input_data=messages[-1].content if messages else None,
            metadata={"messages": len(messages)},
        )

        # Each iteration is at most two graph steps, plus the cap node
        final_state = await self._graph.ainvoke(
            initial_state(system, messages, trace),
            config={"recursion_limit": 2 * self.max_iterations + 3},
        )
        response = to_response(final_state)

        end_trace(
            trace,
            output_data=response.content,
            metadata={
                "iterations": final_state["iterations"],
                "tool_calls": len(response.tool_calls),
                **response.usage.to_dict(),
            },
        )
        logger.info(
            f"[orchestrator] Finished after {final_state['iterations']} iteration(s), "
            f"{len(response.tool_calls)} tool call(s), "
            f"{response.usage.input_tokens}+{response.usage.output_tokens} tokens"
        )
        return response
