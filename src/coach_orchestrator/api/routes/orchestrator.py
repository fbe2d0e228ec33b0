"""
AI orchestrator endpoint.

POST /ai-orchestrator runs one coaching turn. Checks happen in a fixed
order so callers can rely on which error they see first:
method, auth header, auth configuration, token, JSON, body shape,
athlete context, AI provider configuration.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ...agents.orchestrator import AgenticLoop
from ...config import get_settings
from ...exceptions import (
    CoachOrchestratorError,
    ContextFetchError,
    MethodNotAllowedError,
    OrchestratorTimeoutError,
    ValidationError,
)
from ...llm.prompts import compose_system_prompt
from ...models.athlete_context import AthleteContext
from ...models.orchestrator import OrchestratorRequest, OrchestratorResponse
from ...services.context_builder import build_athlete_context
from ...streaming.sse import SSE_HEADERS, stream_orchestration
from ...tools.executor import ToolExecutor
from ..deps import OrchestratorServices, get_orchestrator_services
from ..middleware.auth import CurrentUser, get_current_user
from ..middleware.rate_limit import limiter, orchestrator_rate_limit
from ..validation import validate_request


logger = logging.getLogger(__name__)

router = APIRouter()


async def _parse_json(request: Request) -> object:
    raw = await request.body()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON in request body")


async def resolve_athlete_context(
    orchestrator_request: OrchestratorRequest,
    services: OrchestratorServices,
    current_user: CurrentUser,
) -> Optional[AthleteContext]:
    """
    Use the supplied context, or build one when only an athlete_id is given.

    Raises:
        ContextFetchError: If the context cannot be built
    """
    if orchestrator_request.athlete_context is not None:
        return orchestrator_request.athlete_context
    if not orchestrator_request.athlete_id:
        return None

    store = services.context_store(current_user.access_token)
    try:
        return await build_athlete_context(store, orchestrator_request.athlete_id)
    except CoachOrchestratorError as e:
        raise ContextFetchError(
            message=f"Failed to fetch athlete context: {e.message}",
            details={"athlete_id": orchestrator_request.athlete_id},
        )


@router.post("/ai-orchestrator")
@limiter.limit(orchestrator_rate_limit)
async def orchestrate(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    services: OrchestratorServices = Depends(get_orchestrator_services),
):
    """
    Run the coaching agent for one conversation turn.

    Returns a JSON OrchestratorResponse, or an SSE stream of
    tool_calls/content_delta/usage/done events when stream is true.
    """
    orchestrator_request = validate_request(await _parse_json(request))
    context = await resolve_athlete_context(orchestrator_request, services, current_user)
    provider = services.llm_provider()

    executor = ToolExecutor(
        user_id=current_user.user_id,
        credential_store=services.credential_store(current_user.access_token),
        client_factory=services.intervals_client,
    )
    loop = AgenticLoop(provider=provider, tool_runner=executor, user_id=current_user.user_id)
    system_prompt = compose_system_prompt(context)
    timeout = get_settings().orchestrator_timeout_seconds

    logger.info(
        f"[orchestrator] user={current_user.user_id} messages={len(orchestrator_request.messages)} "
        f"context={'yes' if context else 'no'} stream={orchestrator_request.stream}"
    )

    async def run() -> OrchestratorResponse:
        try:
            return await asyncio.wait_for(
                loop.run(system_prompt, orchestrator_request.messages),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise OrchestratorTimeoutError(timeout)

    if orchestrator_request.stream:
        return StreamingResponse(
            stream_orchestration(run),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    response = await run()
    return JSONResponse(content=response.to_dict())


@router.api_route("/ai-orchestrator", methods=["GET", "PUT", "PATCH", "DELETE"])
async def orchestrate_method_not_allowed(request: Request):
    """Only POST (and CORS preflight) is supported."""
    raise MethodNotAllowedError(request.method)
