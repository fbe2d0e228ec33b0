"""
Tool execution for the agentic loop.

ToolExecutor turns a model-requested {name, input} pair into a
ToolCallResult. The order of checks for every tool is:
1. Normalize field names and validate input (no network)
2. Resolve the caller's Intervals.icu credentials (NO_CREDENTIALS if absent)
3. Call the gateway and shape the response

Failures never raise out of execute(); they come back as failed results
carrying a ToolErrorCode so the model can adapt.
"""

import asyncio
import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..models.orchestrator import ToolCallResult, ToolUse
from .catalog import CREATE_EVENT, GET_ACTIVITIES, GET_EVENTS, GET_WELLNESS_DATA, UPDATE_EVENT
from .credentials import CredentialStore, IntervalsCredentials
from .errors import IntervalsApiError, ToolErrorCode, ToolInputError
from .event_validation import (
    VALID_EVENT_PRIORITIES,
    build_event_payload,
    format_event_response,
    normalize_input_field_names,
    validate_create_event_input,
    validate_update_event_input,
)
from .intervals_client import IntervalsClient


logger = logging.getLogger(__name__)

ClientFactory = Callable[[IntervalsCredentials], IntervalsClient]

DEFAULT_ACTIVITY_LIMIT = 10
MAX_ACTIVITY_LIMIT = 50
WELLNESS_DEFAULT_DAYS = 7
EVENTS_DEFAULT_DAYS = 14
MAX_EVENT_RANGE_DAYS = 90

DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EVENT_TYPE_NAMES = {
    "WORKOUT": "workout",
    "RACE": "race",
    "NOTE": "note",
    "REST_DAY": "rest_day",
    "TRAVEL": "travel",
}
EVENT_TYPE_FILTERS = frozenset(EVENT_TYPE_NAMES.values())


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_date_only(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string that names a real calendar day."""
    if not isinstance(value, str) or not DATE_ONLY_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================================
# Response shaping
# ============================================================================

def form_status(tsb: Optional[float]) -> Optional[str]:
    """Classify training form from TSB."""
    if tsb is None:
        return None
    if tsb > 5:
        return "fresh"
    if tsb < -10:
        return "fatigued"
    return "optimal"


def transform_activity(activity: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(activity.get("id")),
        "name": activity.get("name"),
        "type": activity.get("type"),
        "start_date": activity.get("start_date_local"),
        "duration": activity.get("moving_time"),
        "distance": activity.get("distance"),
        "tss": activity.get("icu_training_load"),
        "ctl": activity.get("icu_ctl"),
        "atl": activity.get("icu_atl"),
    }


def transform_wellness(row: Dict[str, Any]) -> Dict[str, Any]:
    ctl = row.get("ctl")
    atl = row.get("atl")
    sleep_secs = row.get("sleepSecs")
    return {
        "date": row.get("id"),
        "ctl": ctl,
        "atl": atl,
        "tsb": round(ctl - atl, 1) if _is_number(ctl) and _is_number(atl) else None,
        "ramp_rate": row.get("rampRate"),
        "resting_hr": row.get("restingHR"),
        "hrv": row.get("hrv"),
        "sleep_hours": round(sleep_secs / 3600, 1) if _is_number(sleep_secs) else None,
        "sleep_quality": row.get("sleepQuality"),
        "weight": row.get("weight"),
        "fatigue": row.get("fatigue"),
        "soreness": row.get("soreness"),
        "stress": row.get("stress"),
        "mood": row.get("mood"),
    }


def summarize_wellness(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not rows:
        return None

    latest = rows[-1]
    sleep = [r["sleep_hours"] for r in rows if r["sleep_hours"] is not None]
    hrv = [r["hrv"] for r in rows if _is_number(r["hrv"])]
    return {
        "current_ctl": latest["ctl"],
        "current_atl": latest["atl"],
        "current_tsb": latest["tsb"],
        "form_status": form_status(latest["tsb"]),
        "avg_sleep_hours": round(sum(sleep) / len(sleep), 1) if sleep else None,
        "avg_hrv": round(sum(hrv) / len(hrv)) if hrv else None,
        "days_included": len(rows),
    }


def transform_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Map an upstream event onto the domain calendar-event shape."""
    priority = event.get("event_priority")
    return {
        "id": str(event.get("id")),
        "name": event.get("name"),
        "type": EVENT_TYPE_NAMES.get(str(event.get("type", "")).upper(), "workout"),
        "start_date": event.get("start_date_local"),
        "end_date": event.get("end_date_local"),
        "description": event.get("description"),
        "category": event.get("category"),
        "planned_duration": event.get("moving_time"),
        "planned_tss": event.get("icu_training_load"),
        "planned_distance": event.get("distance"),
        "indoor": event.get("indoor"),
        "priority": priority if priority in VALID_EVENT_PRIORITIES else None,
    }


# ============================================================================
# Executor
# ============================================================================

class ToolExecutor:
    """
    Executes catalog tools on behalf of one authenticated athlete.

    Args:
        user_id: Authenticated caller whose credentials and calendar are used
        credential_store: Source of upstream credentials
        client_factory: Builds an IntervalsClient for given credentials
        today: Returns the current UTC date (overridable in tests)
    """

    def __init__(
        self,
        user_id: str,
        credential_store: CredentialStore,
        client_factory: Optional[ClientFactory] = None,
        today: Callable[[], date] = _utc_today,
    ):
        self.user_id = user_id
        self.credential_store = credential_store
        self.client_factory = client_factory or IntervalsClient
        self.today = today
        self._handlers: Dict[
            str, Tuple[Callable[[Dict[str, Any]], Awaitable[Any]], ToolErrorCode]
        ] = {
            GET_ACTIVITIES: (self._get_activities, ToolErrorCode.GET_ACTIVITIES_ERROR),
            GET_WELLNESS_DATA: (self._get_wellness_data, ToolErrorCode.GET_WELLNESS_ERROR),
            GET_EVENTS: (self._get_events, ToolErrorCode.GET_EVENTS_ERROR),
            CREATE_EVENT: (self._create_event, ToolErrorCode.CREATE_EVENT_ERROR),
            UPDATE_EVENT: (self._update_event, ToolErrorCode.UPDATE_EVENT_ERROR),
        }

    async def execute(self, tool_use: ToolUse) -> ToolCallResult:
        """Run one tool call, converting every failure into a failed result."""
        entry = self._handlers.get(tool_use.name)
        if entry is None:
            return ToolCallResult.failed(
                tool_use.name, f"Unknown tool: {tool_use.name}", ToolErrorCode.UNKNOWN_TOOL.value
            )

        handler, fallback_code = entry
        tool_input = tool_use.input if isinstance(tool_use.input, dict) else {}
        try:
            result = await handler(tool_input)
        except ToolInputError as e:
            logger.info(f"[tools] {tool_use.name} rejected input: {e.code.value} {e.message}")
            return ToolCallResult.failed(tool_use.name, e.message, e.code.value)
        except IntervalsApiError as e:
            logger.warning(f"[tools] {tool_use.name} upstream failure: {e.code.value} {e.message}")
            return ToolCallResult.failed(tool_use.name, e.message, e.code.value)
        except Exception as e:
            logger.exception(f"[tools] {tool_use.name} failed unexpectedly")
            message = str(e) or f"Failed to run {tool_use.name}"
            return ToolCallResult.failed(tool_use.name, message, fallback_code.value)

        return ToolCallResult.ok(tool_use.name, result)

    async def execute_all(self, tool_uses: Sequence[ToolUse]) -> List[ToolCallResult]:
        """Run independent tool calls concurrently; results keep request order."""
        return list(await asyncio.gather(*(self.execute(tool_use) for tool_use in tool_uses)))

    async def _require_credentials(self, action: str) -> IntervalsCredentials:
        credentials = await self.credential_store.get_intervals_credentials(self.user_id)
        if credentials is None:
            raise ToolInputError(
                f"Intervals.icu credentials not configured. Cannot {action} without API access.",
                ToolErrorCode.NO_CREDENTIALS,
            )
        return credentials

    # ------------------------------------------------------------------------
    # Read tools
    # ------------------------------------------------------------------------

    async def _get_activities(self, tool_input: Dict[str, Any]) -> Dict[str, Any]:
        raw_limit = tool_input.get("limit")
        limit = (
            int(min(max(1, raw_limit), MAX_ACTIVITY_LIMIT))
            if _is_number(raw_limit)
            else DEFAULT_ACTIVITY_LIMIT
        )
        oldest = tool_input.get("oldest") if isinstance(tool_input.get("oldest"), str) else None
        newest = tool_input.get("newest") if isinstance(tool_input.get("newest"), str) else None
        activity_type = tool_input.get("activity_type")
        if not isinstance(activity_type, str):
            activity_type = None

        credentials = await self._require_credentials("fetch activities")
        async with self.client_factory(credentials) as client:
            activities = await client.get_activities(oldest=oldest, newest=newest)

        if activity_type is not None:
            activities = [
                a for a in activities if str(a.get("type", "")).lower() == activity_type.lower()
            ]
        transformed = [transform_activity(a) for a in activities[:limit]]

        return {
            "activities": transformed,
            "total": len(transformed),
            "source": "intervals.icu",
            "filters_applied": {
                "limit": limit,
                "oldest": oldest,
                "newest": newest,
                "activity_type": activity_type,
            },
        }

    async def _get_wellness_data(self, tool_input: Dict[str, Any]) -> Dict[str, Any]:
        today = self.today()
        oldest = parse_date_only(tool_input.get("oldest")) or today - timedelta(days=WELLNESS_DEFAULT_DAYS)
        newest = parse_date_only(tool_input.get("newest")) or today
        if oldest > newest:
            oldest, newest = newest, oldest

        credentials = await self._require_credentials("fetch wellness data")
        async with self.client_factory(credentials) as client:
            rows = await client.get_wellness(oldest=oldest.isoformat(), newest=newest.isoformat())

        wellness = [transform_wellness(row) for row in rows]
        return {
            "wellness": wellness,
            "summary": summarize_wellness(wellness),
            "date_range": {"oldest": oldest.isoformat(), "newest": newest.isoformat()},
        }

    async def _get_events(self, tool_input: Dict[str, Any]) -> Dict[str, Any]:
        today = self.today()
        oldest = parse_date_only(tool_input.get("oldest")) or today
        newest = parse_date_only(tool_input.get("newest")) or today + timedelta(days=EVENTS_DEFAULT_DAYS)
        if oldest > newest:
            oldest, newest = newest, oldest
        if (newest - oldest).days + 1 > MAX_EVENT_RANGE_DAYS:
            oldest = newest - timedelta(days=MAX_EVENT_RANGE_DAYS - 1)

        types = None
        if isinstance(tool_input.get("types"), list):
            types = [t for t in tool_input["types"] if isinstance(t, str) and t in EVENT_TYPE_FILTERS]
            types = types or None
        category = tool_input.get("category") if isinstance(tool_input.get("category"), str) else None

        credentials = await self._require_credentials("fetch events")
        async with self.client_factory(credentials) as client:
            raw_events = await client.get_events(oldest=oldest.isoformat(), newest=newest.isoformat())

        events = [transform_event(e) for e in raw_events]
        if types:
            events = [e for e in events if e["type"] in types]
        if category is not None:
            events = [e for e in events if (e["category"] or "").lower() == category.lower()]

        return {
            "events": events,
            "total": len(events),
            "source": "intervals.icu",
            "date_range": {"oldest": oldest.isoformat(), "newest": newest.isoformat()},
            "filters_applied": {"types": types, "category": category},
        }

    # ------------------------------------------------------------------------
    # Write tools
    # ------------------------------------------------------------------------

    async def _create_event(self, tool_input: Dict[str, Any]) -> Dict[str, Any]:
        data = validate_create_event_input(normalize_input_field_names(tool_input))
        payload = build_event_payload(data)

        credentials = await self._require_credentials("create events")
        async with self.client_factory(credentials) as client:
            event = await client.create_event(payload)

        logger.info(f"[tools] Created event {event.get('id')} for user {self.user_id}")
        return format_event_response(event, "created")

    async def _update_event(self, tool_input: Dict[str, Any]) -> Dict[str, Any]:
        data = validate_update_event_input(normalize_input_field_names(tool_input))
        updates = build_event_payload(data)
        if not updates:
            raise ToolInputError("At least one field must be provided to update")

        credentials = await self._require_credentials("update events")
        async with self.client_factory(credentials) as client:
            event = await client.update_event(data["event_id"], updates)

        logger.info(f"[tools] Updated event {data['event_id']} for user {self.user_id}")
        return format_event_response(event, "updated")
