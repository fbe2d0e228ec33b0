"""Dependency injection for API routes."""

from dataclasses import dataclass
from typing import Callable

from supabase import ClientOptions, create_client

from ..agents.orchestrator import LLMProvider
from ..config import get_settings
from ..db.context_store import ContextStore, SupabaseContextStore
from ..exceptions import ServiceNotConfiguredError
from ..llm.providers import get_llm_client
from ..tools.credentials import CredentialStore, IntervalsCredentials, SupabaseCredentialStore
from ..tools.intervals_client import IntervalsClient


@dataclass
class OrchestratorServices:
    """
    Factories for the per-request collaborators of the orchestrator route.

    Each factory is called only at the point in the request where the
    collaborator is first needed, so configuration errors surface in a
    stable order (data store before AI provider).
    """

    context_store: Callable[[str], ContextStore]
    credential_store: Callable[[str], CredentialStore]
    llm_provider: Callable[[], LLMProvider]
    intervals_client: Callable[[IntervalsCredentials], IntervalsClient]


def supabase_context_store(access_token: str) -> ContextStore:
    """Context store whose queries run as the calling user."""
    settings = get_settings()
    return SupabaseContextStore.for_user(
        settings.supabase_url, settings.supabase_anon_key, access_token
    )


def supabase_credential_store(access_token: str) -> CredentialStore:
    """Credential store whose queries run as the calling user."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ServiceNotConfiguredError(
            details={"configuration_missing": "supabase_url/supabase_anon_key"},
        )
    options = ClientOptions(headers={"Authorization": f"Bearer {access_token}"})
    return SupabaseCredentialStore(
        create_client(settings.supabase_url, settings.supabase_anon_key, options=options)
    )


def settings_intervals_client(credentials: IntervalsCredentials) -> IntervalsClient:
    """Intervals.icu client using the configured gateway URL and timeout."""
    settings = get_settings()
    return IntervalsClient(
        credentials,
        base_url=settings.intervals_base_url,
        timeout=settings.intervals_timeout_seconds,
    )


def get_orchestrator_services() -> OrchestratorServices:
    """Get the production collaborators for the orchestrator route."""
    return OrchestratorServices(
        context_store=supabase_context_store,
        credential_store=supabase_credential_store,
        llm_provider=get_llm_client,
        intervals_client=settings_intervals_client,
    )
