"""Tests for calendar-event input validation and payload shaping."""

import pytest

from coach_orchestrator.tools.errors import ToolErrorCode, ToolInputError
from coach_orchestrator.tools.event_validation import (
    build_event_payload,
    format_event_response,
    is_iso8601,
    normalize_input_field_names,
    validate_create_event_input,
    validate_update_event_input,
)


def _valid_create(**overrides):
    data = {"name": "Tempo Run", "type": "WORKOUT", "start_date_local": "2026-02-20T07:00:00"}
    data.update(overrides)
    return data


class TestNormalizeInputFieldNames:
    """Tests for domain -> upstream field mapping."""

    def test_maps_domain_names(self):
        result = normalize_input_field_names({
            "start_date": "2026-02-20",
            "planned_duration": 3600,
            "planned_tss": 55,
            "planned_distance": 10000,
            "priority": "A",
        })
        assert result == {
            "start_date_local": "2026-02-20",
            "moving_time": 3600,
            "icu_training_load": 55,
            "distance": 10000,
            "event_priority": "A",
        }

    def test_upstream_name_wins_when_both_present(self):
        result = normalize_input_field_names({"start_date": "2026-01-01", "start_date_local": "2026-02-02"})
        assert result == {"start_date_local": "2026-02-02"}

    def test_does_not_mutate_input(self):
        raw = {"start_date": "2026-01-01"}
        normalize_input_field_names(raw)
        assert raw == {"start_date": "2026-01-01"}


class TestIsIso8601:
    """Tests for the ISO 8601 shape check."""

    @pytest.mark.parametrize("value", [
        "2026-02-20",
        "2026-02-20T07:00",
        "2026-02-20T07:00:00",
        "2026-02-20T07:00:00.123",
        "2026-02-20T07:00:00Z",
        "2026-02-20T07:00:00+02:00",
    ])
    def test_accepts(self, value):
        assert is_iso8601(value)

    @pytest.mark.parametrize("value", ["20-02-2026", "2026/02/20", "tomorrow", "", 20260220, None])
    def test_rejects(self, value):
        assert not is_iso8601(value)


class TestValidateCreateEventInput:
    """Tests for create_event validation."""

    def test_valid_input_upper_cases_type(self):
        data = validate_create_event_input(_valid_create(type="workout"))
        assert data["type"] == "WORKOUT"

    def test_invalid_type(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(type="INVALID_TYPE"))
        assert exc_info.value.code == ToolErrorCode.INVALID_EVENT_TYPE
        assert "INVALID_TYPE" in exc_info.value.message

    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    def test_blank_name(self, name):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(name=name))
        assert exc_info.value.code == ToolErrorCode.INVALID_INPUT

    def test_missing_start_date(self):
        data = _valid_create()
        del data["start_date_local"]
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(data)
        assert exc_info.value.code == ToolErrorCode.INVALID_DATE
        assert "required" in exc_info.value.message

    def test_malformed_start_date(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(start_date_local="next tuesday"))
        assert exc_info.value.code == ToolErrorCode.INVALID_DATE

    def test_impossible_calendar_date(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(start_date_local="2026-02-30"))
        assert exc_info.value.code == ToolErrorCode.INVALID_DATE
        assert "Invalid date" in exc_info.value.message

    def test_invalid_priority(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(event_priority="D"))
        assert exc_info.value.code == ToolErrorCode.INVALID_PRIORITY

    def test_negative_moving_time(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_create_event_input(_valid_create(moving_time=-100))
        assert exc_info.value.code == ToolErrorCode.INVALID_INPUT
        assert "moving_time" in exc_info.value.message
        assert "seconds" in exc_info.value.message

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "60", True])
    def test_non_numeric_or_non_finite_distance(self, value):
        with pytest.raises(ToolInputError):
            validate_create_event_input(_valid_create(distance=value))

    def test_zero_is_allowed(self):
        data = validate_create_event_input(_valid_create(moving_time=0, distance=0))
        assert data["moving_time"] == 0


class TestValidateUpdateEventInput:
    """Tests for update_event validation."""

    def test_missing_event_id(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_update_event_input({"name": "New name"})
        assert exc_info.value.code == ToolErrorCode.INVALID_INPUT
        assert "event_id" in exc_info.value.message

    def test_partial_update_is_valid(self):
        data = validate_update_event_input({"event_id": "123", "moving_time": 1800})
        assert data["moving_time"] == 1800

    def test_type_is_validated_when_present(self):
        with pytest.raises(ToolInputError) as exc_info:
            validate_update_event_input({"event_id": "123", "type": "party"})
        assert exc_info.value.code == ToolErrorCode.INVALID_EVENT_TYPE

    def test_blank_name_rejected(self):
        with pytest.raises(ToolInputError):
            validate_update_event_input({"event_id": "123", "name": "  "})


class TestBuildEventPayload:
    """Tests for build_event_payload."""

    def test_keeps_only_known_typed_fields(self):
        payload = build_event_payload({
            "event_id": "123",
            "name": "Ride",
            "moving_time": 3600,
            "distance": "far",
            "indoor": True,
            "unexpected": "x",
        })
        assert payload == {"name": "Ride", "moving_time": 3600, "indoor": True}

    def test_bool_is_not_a_number(self):
        assert build_event_payload({"icu_training_load": True}) == {}


class TestFormatEventResponse:
    """Tests for format_event_response."""

    def test_message_and_stringified_id(self):
        response = format_event_response({"id": 987, "name": "Long Run", "type": "WORKOUT"}, "created")
        assert response["event"]["id"] == "987"
        assert response["message"] == 'Event "Long Run" created successfully'
