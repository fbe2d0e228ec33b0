"""Shared fixtures for the Coach Orchestrator test suite."""

from typing import Any, Dict

import pytest

from coach_orchestrator.models.athlete_context import AthleteContext


@pytest.fixture
def athlete_context_data() -> Dict[str, Any]:
    """A fully populated athlete context as it arrives in a request body."""
    return {
        "athlete_id": "athlete-123",
        "display_name": "Jordan",
        "ftp_watts": 250,
        "weight_kg": 70,
        "running_threshold_pace_sec_per_km": 270,
        "css_sec_per_100m": 95,
        "max_heart_rate": 188,
        "lthr": 168,
        "active_goals": [
            {
                "id": "goal-1",
                "title": "Ironman 70.3",
                "goal_type": "race",
                "target_date": "2026-06-14",
                "priority": "A",
                "race_event_name": "70.3 Barcelona",
                "race_distance": "70.3",
                "race_target_time_seconds": 19800,
            }
        ],
        "active_constraints": [
            {
                "id": "constraint-1",
                "type": "injury",
                "description": "Sore left achilles",
                "start_date": "2026-01-02",
                "injury_body_part": "achilles",
                "injury_severity": "moderate",
                "injury_restrictions": ["running", "jumping"],
            }
        ],
        "recent_checkin": {
            "date": "2026-01-10",
            "energy_level": 7,
            "sleep_quality": 6,
            "stress_level": 3,
            "muscle_soreness": 4,
            "resting_hr": 48,
            "hrv_ms": 65,
        },
    }


@pytest.fixture
def athlete_context(athlete_context_data) -> AthleteContext:
    return AthleteContext.from_dict(athlete_context_data)
