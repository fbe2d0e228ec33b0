"""Read-only data access for athlete context lookups.

The context builder depends only on the ContextStore protocol, so tests
can pass an in-memory fake. SupabaseContextStore is the production
implementation: it queries with the caller's JWT so row-level security
scopes every read to the authenticated user.

Each lookup returns a StoreResult instead of raising, leaving the
fatal/non-fatal decision to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from supabase import Client, ClientOptions, create_client

from ..exceptions import ServiceNotConfiguredError


logger = logging.getLogger(__name__)


ATHLETE_COLUMNS = (
    "id, display_name, ftp_watts, weight_kg, running_threshold_pace_sec_per_km, "
    "css_sec_per_100m, max_heart_rate, lthr"
)
GOAL_COLUMNS = (
    "id, title, goal_type, target_date, priority, race_event_name, "
    "race_distance, race_target_time_seconds"
)
CONSTRAINT_COLUMNS = (
    "id, constraint_type, description, start_date, end_date, status, "
    "injury_body_part, injury_severity, injury_restrictions"
)
CHECKIN_COLUMNS = (
    "checkin_date, energy_level, sleep_quality, stress_level, "
    "muscle_soreness, resting_hr, hrv_ms"
)


@dataclass
class StoreResult:
    """Outcome of one lookup: data on success, error message on failure."""

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ContextStore(Protocol):
    """The four reads the context builder needs, keyed by athlete id."""

    async def get_athlete(self, athlete_id: str) -> StoreResult:
        """Profile row as a dict, or data=None when no row exists."""
        ...

    async def get_active_goals(self, athlete_id: str) -> StoreResult:
        """Goals with status active, ordered by priority."""
        ...

    async def get_active_constraints(self, athlete_id: str, today: str) -> StoreResult:
        """Constraints with status active and no end date or end_date >= today."""
        ...

    async def get_checkin(self, athlete_id: str, day: str) -> StoreResult:
        """The check-in row for the given day, or data=None."""
        ...


class SupabaseContextStore:
    """Supabase implementation of ContextStore.

    The supabase client is synchronous, so each query runs in a worker
    thread; that lets the builder's four lookups overlap.
    """

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def for_user(cls, url: str, anon_key: str, access_token: str) -> "SupabaseContextStore":
        """Create a store whose queries run as the given user."""
        if not url or not anon_key:
            raise ServiceNotConfiguredError(
                details={"configuration_missing": "supabase_url/supabase_anon_key"},
            )
        options = ClientOptions(headers={"Authorization": f"Bearer {access_token}"})
        return cls(create_client(url, anon_key, options=options))

    async def _run(self, description: str, query: Callable[[], Any]) -> StoreResult:
        try:
            response = await asyncio.to_thread(query)
        except Exception as e:
            logger.warning(f"[context_store] {description} failed: {e}")
            return StoreResult(error=str(e))
        return StoreResult(data=response.data)

    async def get_athlete(self, athlete_id: str) -> StoreResult:
        result = await self._run(
            "athlete lookup",
            lambda: self.client.table("athletes")
            .select(ATHLETE_COLUMNS)
            .eq("id", athlete_id)
            .limit(1)
            .execute(),
        )
        if result.ok:
            result.data = result.data[0] if result.data else None
        return result

    async def get_active_goals(self, athlete_id: str) -> StoreResult:
        return await self._run(
            "goals lookup",
            lambda: self.client.table("goals")
            .select(GOAL_COLUMNS)
            .eq("athlete_id", athlete_id)
            .eq("status", "active")
            .order("priority")
            .execute(),
        )

    async def get_active_constraints(self, athlete_id: str, today: str) -> StoreResult:
        return await self._run(
            "constraints lookup",
            lambda: self.client.table("constraints")
            .select(CONSTRAINT_COLUMNS)
            .eq("athlete_id", athlete_id)
            .eq("status", "active")
            .or_(f"end_date.is.null,end_date.gte.{today}")
            .execute(),
        )

    async def get_checkin(self, athlete_id: str, day: str) -> StoreResult:
        result = await self._run(
            "check-in lookup",
            lambda: self.client.table("daily_checkins")
            .select(CHECKIN_COLUMNS)
            .eq("athlete_id", athlete_id)
            .eq("checkin_date", day)
            .limit(1)
            .execute(),
        )
        if result.ok:
            result.data = result.data[0] if result.data else None
        return result
