"""
Static catalog of tools exposed to the model.

Each definition is {name, description, input_schema}; the schema is a
JSON-schema object describing required fields and enumerated values.
"""

from typing import Any, Dict, List

from .event_validation import EVENT_SCHEMA_PROPERTIES


GET_ACTIVITIES = "get_activities"
GET_WELLNESS_DATA = "get_wellness_data"
GET_EVENTS = "get_events"
CREATE_EVENT = "create_event"
UPDATE_EVENT = "update_event"


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": GET_ACTIVITIES,
        "description": (
            "Get recent activities from the athlete's Intervals.icu account. Returns activity "
            "list with type, duration, distance, and training metrics."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "number",
                    "description": "Maximum number of activities to return (default: 10, max: 50)",
                },
                "oldest": {
                    "type": "string",
                    "description": "Oldest date to include (ISO 8601 format, e.g., 2026-01-01)",
                },
                "newest": {
                    "type": "string",
                    "description": "Newest date to include (ISO 8601 format, e.g., 2026-02-13)",
                },
                "activity_type": {
                    "type": "string",
                    "description": "Filter by activity type (Ride, Run, Swim, etc.)",
                },
            },
            "required": [],
        },
    },
    {
        "name": GET_WELLNESS_DATA,
        "description": (
            "Get wellness metrics from the athlete's Intervals.icu account. Returns daily "
            "wellness data including CTL/ATL/TSB (fitness/fatigue/form), resting HR, HRV, "
            "sleep, weight, and subjective metrics."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "oldest": {
                    "type": "string",
                    "description": "Start date (YYYY-MM-DD). Defaults to 7 days ago.",
                },
                "newest": {
                    "type": "string",
                    "description": "End date (YYYY-MM-DD). Defaults to today.",
                },
            },
            "required": [],
        },
    },
    {
        "name": GET_EVENTS,
        "description": (
            "Get upcoming calendar events from the athlete's Intervals.icu account. Returns "
            "planned workouts, races, rest days, and notes."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "oldest": {
                    "type": "string",
                    "description": "Start date (YYYY-MM-DD). Defaults to today.",
                },
                "newest": {
                    "type": "string",
                    "description": "End date (YYYY-MM-DD). Defaults to 14 days from today.",
                },
                "types": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Filter by event types: workout, race, note, rest_day, travel",
                },
                "category": {
                    "type": "string",
                    "description": "Filter by activity category (Ride, Run, Swim, etc.)",
                },
            },
            "required": [],
        },
    },
    {
        "name": CREATE_EVENT,
        "description": (
            "Create a new event on the athlete's Intervals.icu calendar. Use this to schedule "
            "workouts, races, rest days, or notes."
        ),
        "input_schema": {
            "type": "object",
            "properties": dict(EVENT_SCHEMA_PROPERTIES),
            "required": ["name", "type", "start_date"],
        },
    },
    {
        "name": UPDATE_EVENT,
        "description": (
            "Update an existing event on the athlete's Intervals.icu calendar. Use this to "
            "modify scheduled workouts, change dates, or update descriptions."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "event_id": {"type": "string", "description": "The ID of the event to update"},
                **EVENT_SCHEMA_PROPERTIES,
            },
            "required": ["event_id"],
        },
    },
]

TOOL_NAMES = frozenset(tool["name"] for tool in TOOL_DEFINITIONS)


def get_tool_definition(name: str) -> Dict[str, Any]:
    """Look up a tool definition by name.

    Raises:
        KeyError: If no tool has that name.
    """
    for tool in TOOL_DEFINITIONS:
        if tool["name"] == name:
            return tool
    raise KeyError(name)
