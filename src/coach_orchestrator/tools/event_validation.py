"""Validation and payload shaping for calendar-event write tools.

Model input may use either the upstream Intervals.icu field names
(start_date_local, moving_time, ...) or the domain names used elsewhere
in the app (start_date, planned_duration, ...). normalize_input_field_names
maps everything onto the upstream names first, so the validators below
only ever see one convention.
"""

import math
import re
from datetime import date
from typing import Any, Dict, Optional

from .errors import ToolErrorCode, ToolInputError


VALID_EVENT_TYPES = frozenset({"WORKOUT", "RACE", "NOTE", "REST_DAY", "TRAVEL"})
VALID_EVENT_PRIORITIES = frozenset({"A", "B", "C"})

# Date, optional time with optional seconds/fraction, optional Z or offset
ISO_8601_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
)

# Domain name -> upstream name
FIELD_ALIASES: Dict[str, str] = {
    "start_date": "start_date_local",
    "end_date": "end_date_local",
    "planned_duration": "moving_time",
    "planned_tss": "icu_training_load",
    "planned_distance": "distance",
    "priority": "event_priority",
}

STRING_FIELDS = (
    "name",
    "type",
    "start_date_local",
    "end_date_local",
    "description",
    "category",
    "event_priority",
)
NUMBER_FIELDS = ("moving_time", "icu_training_load", "distance")
BOOLEAN_FIELDS = ("indoor",)

DATE_EXAMPLE = '(e.g., "2026-02-20" or "2026-02-20T07:00:00")'


EVENT_SCHEMA_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "name": {"type": "string", "description": "Event name (e.g., 'Zone 2 Endurance Ride')"},
    "type": {
        "type": "string",
        "enum": sorted(VALID_EVENT_TYPES),
        "description": "Event type: WORKOUT, RACE, NOTE, REST_DAY, or TRAVEL",
    },
    "start_date": {
        "type": "string",
        "description": "Start date/time in ISO 8601 format (e.g., 2026-02-20 or 2026-02-20T07:00:00)",
    },
    "end_date": {"type": "string", "description": "End date/time for multi-day events (ISO 8601)"},
    "description": {"type": "string", "description": "Workout description or notes"},
    "category": {"type": "string", "description": "Activity category (Ride, Run, Swim, etc.)"},
    "planned_duration": {"type": "number", "description": "Planned duration in seconds"},
    "planned_tss": {"type": "number", "description": "Planned training stress score"},
    "planned_distance": {"type": "number", "description": "Planned distance in meters"},
    "indoor": {"type": "boolean", "description": "Whether this is an indoor workout"},
    "priority": {
        "type": "string",
        "enum": sorted(VALID_EVENT_PRIORITIES),
        "description": "Race priority (A = key race, B = important, C = training race)",
    },
}


def normalize_input_field_names(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map domain field names onto upstream names.

    When both spellings are present the upstream value is kept.
    """
    normalized = dict(raw)
    for domain_name, upstream_name in FIELD_ALIASES.items():
        if domain_name not in normalized:
            continue
        value = normalized.pop(domain_name)
        if normalized.get(upstream_name) is None:
            normalized[upstream_name] = value
    return normalized


def is_iso8601(value: Any) -> bool:
    return isinstance(value, str) and bool(ISO_8601_PATTERN.match(value))


def normalize_event_type(value: str) -> str:
    return value.upper()


def validate_event_type(value: Any) -> str:
    """Return the upper-cased event type, or raise INVALID_EVENT_TYPE."""
    if isinstance(value, str) and normalize_event_type(value) in VALID_EVENT_TYPES:
        return normalize_event_type(value)
    raise ToolInputError(
        f"Invalid event type: {value}. Must be one of: WORKOUT, RACE, NOTE, REST_DAY, TRAVEL",
        ToolErrorCode.INVALID_EVENT_TYPE,
    )


def validate_date_field(value: Any, field_name: str, required: bool) -> None:
    if value is None:
        if required:
            raise ToolInputError(
                f"{field_name} is required in ISO 8601 format {DATE_EXAMPLE}",
                ToolErrorCode.INVALID_DATE,
            )
        return

    if not is_iso8601(value):
        raise ToolInputError(
            f"{field_name} must be in ISO 8601 format {DATE_EXAMPLE}",
            ToolErrorCode.INVALID_DATE,
        )

    try:
        date.fromisoformat(value[:10])
    except ValueError:
        raise ToolInputError(f"Invalid date: {value}", ToolErrorCode.INVALID_DATE)


def validate_priority(value: Any) -> None:
    if value is None:
        return
    if not isinstance(value, str) or value not in VALID_EVENT_PRIORITIES:
        raise ToolInputError(
            f"Invalid event priority: {value}. Must be A, B, or C",
            ToolErrorCode.INVALID_PRIORITY,
        )


def validate_non_negative_number(value: Any, field_name: str, unit: Optional[str] = None) -> None:
    """Reject negative, non-finite and non-numeric values."""
    if value is None:
        return
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if not is_number or not math.isfinite(value) or value < 0:
        suffix = f" ({unit})" if unit else ""
        raise ToolInputError(f"{field_name} must be a non-negative number{suffix}")


def validate_non_blank_string(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ToolInputError(f"{field_name} is required and must be a non-empty string")


def validate_common_event_fields(data: Dict[str, Any]) -> None:
    """Checks shared by create and update, on already-normalized input."""
    validate_date_field(data.get("end_date_local"), "end_date_local", required=False)
    validate_priority(data.get("event_priority"))
    validate_non_negative_number(data.get("moving_time"), "moving_time", "seconds")
    validate_non_negative_number(data.get("icu_training_load"), "icu_training_load")
    validate_non_negative_number(data.get("distance"), "distance", "meters")


def validate_create_event_input(data: Dict[str, Any]) -> Dict[str, Any]:
    validate_non_blank_string(data.get("name"), "name")
    data["type"] = validate_event_type(data.get("type"))
    validate_date_field(data.get("start_date_local"), "start_date_local", required=True)
    validate_common_event_fields(data)
    return data


def validate_update_event_input(data: Dict[str, Any]) -> Dict[str, Any]:
    validate_non_blank_string(data.get("event_id"), "event_id")
    if data.get("type") is not None:
        data["type"] = validate_event_type(data["type"])
    if data.get("name") is not None and (
        not isinstance(data["name"], str) or not data["name"].strip()
    ):
        raise ToolInputError("name must be a non-empty string")
    validate_date_field(data.get("start_date_local"), "start_date_local", required=False)
    validate_common_event_fields(data)
    return data


def build_event_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only known fields whose values have the expected JSON type."""
    payload: Dict[str, Any] = {}
    for key in STRING_FIELDS:
        if isinstance(data.get(key), str):
            payload[key] = data[key]
    for key in NUMBER_FIELDS:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            payload[key] = value
    for key in BOOLEAN_FIELDS:
        if isinstance(data.get(key), bool):
            payload[key] = data[key]
    return payload


def format_event_response(event: Dict[str, Any], action: str) -> Dict[str, Any]:
    """Shape an upstream event into the write-tool result."""
    name = event.get("name")
    return {
        "event": {
            "id": str(event.get("id")),
            "name": name,
            "type": event.get("type"),
            "start_date_local": event.get("start_date_local"),
            "end_date_local": event.get("end_date_local"),
            "description": event.get("description"),
            "category": event.get("category"),
            "moving_time": event.get("moving_time"),
            "icu_training_load": event.get("icu_training_load"),
            "distance": event.get("distance"),
            "indoor": event.get("indoor"),
            "event_priority": event.get("event_priority"),
        },
        "message": f'Event "{name}" {action} successfully',
    }
