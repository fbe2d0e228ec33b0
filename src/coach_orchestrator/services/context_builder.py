"""
Athlete context assembly.

Gathers the athlete profile, active goals, active constraints and today's
check-in concurrently and folds them into one AthleteContext. Only the
profile is required; goals and constraints are enrichment and degrade to
empty lists when their lookups fail.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..db.context_store import ContextStore, StoreResult
from ..exceptions import AthleteNotFoundError, ContextFetchError
from ..models.athlete_context import AthleteContext, CheckinSummary, Constraint, Goal


logger = logging.getLogger(__name__)


def utc_today() -> str:
    """Today's calendar date in UTC, as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


def is_constraint_active(row: Dict[str, Any], today: str) -> bool:
    """
    A constraint is active on `today` when its status is active and it has
    no end date or ends on or after today.

    Dates are ISO strings, so lexical comparison matches calendar order.
    """
    if row.get("status", "active") != "active":
        return False
    end_date = row.get("end_date")
    return not end_date or str(end_date)[:10] >= today


async def _skipped() -> StoreResult:
    return StoreResult()


def _settled(outcome: Any, label: str, athlete_id: str) -> StoreResult:
    """Turn a lookup that raised into an error StoreResult."""
    if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
        raise outcome
    if isinstance(outcome, Exception):
        logger.error(f"Lookup of {label} for athlete {athlete_id} raised: {outcome!r}")
        return StoreResult(error=str(outcome) or type(outcome).__name__)
    return outcome


def _rows(result: StoreResult, label: str, athlete_id: str) -> List[Dict[str, Any]]:
    if not result.ok:
        logger.warning(f"Failed to fetch {label} for athlete {athlete_id}: {result.error}")
        return []
    return [row for row in (result.data or []) if isinstance(row, dict)]


async def build_athlete_context(
    store: ContextStore,
    athlete_id: str,
    include_checkin: bool = True,
    today: Optional[str] = None,
) -> AthleteContext:
    """
    Build the full athlete context for a request.

    Args:
        store: Data access for the four lookups
        athlete_id: Profile to load
        include_checkin: Skip the check-in lookup when False
        today: UTC date override (YYYY-MM-DD); computed once if omitted

    Returns:
        The assembled AthleteContext

    Raises:
        ContextFetchError: If the profile lookup itself fails
        AthleteNotFoundError: If no profile row exists
    """
    today = today or utc_today()

    outcomes = await asyncio.gather(
        store.get_athlete(athlete_id),
        store.get_active_goals(athlete_id),
        store.get_active_constraints(athlete_id, today),
        store.get_checkin(athlete_id, today) if include_checkin else _skipped(),
        return_exceptions=True,
    )
    athlete_result, goals_result, constraints_result, checkin_result = (
        _settled(outcome, label, athlete_id)
        for outcome, label in zip(outcomes, ("athlete", "goals", "constraints", "check-in"))
    )

    if not athlete_result.ok:
        raise ContextFetchError(
            message=f"Failed to fetch athlete: {athlete_result.error}",
            details={"athlete_id": athlete_id},
        )
    athlete = athlete_result.data
    if not athlete:
        raise AthleteNotFoundError(athlete_id)

    goals = [Goal.from_dict(row) for row in _rows(goals_result, "goals", athlete_id)]
    constraints = [
        Constraint.from_dict(row)
        for row in _rows(constraints_result, "constraints", athlete_id)
        if is_constraint_active(row, today)
    ]

    checkin: Optional[CheckinSummary] = None
    if not checkin_result.ok:
        logger.warning(f"Failed to fetch check-in for athlete {athlete_id}: {checkin_result.error}")
    elif isinstance(checkin_result.data, dict):
        checkin = CheckinSummary.from_dict(checkin_result.data)

    context = AthleteContext.from_dict({**athlete, "athlete_id": athlete_id})
    context.active_goals = goals
    context.active_constraints = constraints
    context.recent_checkin = checkin

    logger.debug(
        f"Built context for athlete {athlete_id}: {len(goals)} goals, "
        f"{len(constraints)} constraints, checkin={'yes' if checkin else 'no'}"
    )
    return context
