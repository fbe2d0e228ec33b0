"""Tests for system prompt composition and the pace/time formatters."""

import pytest

from coach_orchestrator.llm.prompts import (
    BASE_PROMPT,
    compose_system_prompt,
    format_constraint,
    format_pace,
    format_race_time,
    format_swim_pace,
)
from coach_orchestrator.models.athlete_context import AthleteContext, Constraint


# ============================================================================
# Formatters
# ============================================================================

class TestFormatters:
    """Tests for pace and race-time formatting."""

    @pytest.mark.parametrize("seconds,expected", [
        (300, "5:00/km"),
        (299.6, "5:00/km"),
        (270, "4:30/km"),
        (245.4, "4:05/km"),
    ])
    def test_format_pace(self, seconds, expected):
        assert format_pace(seconds) == expected

    def test_format_swim_pace(self):
        assert format_swim_pace(63) == "1:03/100m"
        assert format_swim_pace(95) == "1:35/100m"

    @pytest.mark.parametrize("seconds,expected", [
        (43200, "12:00:00"),
        (1830, "30:30"),
        (19800, "5:30:00"),
        (3599.5, "1:00:00"),
        (59, "0:59"),
    ])
    def test_format_race_time(self, seconds, expected):
        assert format_race_time(seconds) == expected


class TestFormatConstraint:
    """Tests for constraint rendering."""

    def test_injury_with_restrictions(self):
        constraint = Constraint(
            id="c1",
            type="injury",
            description="Sore knee",
            start_date="2026-01-01",
            injury_body_part="knee",
            injury_severity="severe",
            injury_restrictions=["running", "cycling"],
        )
        text = format_constraint(constraint)
        assert text.startswith("- [injury] Sore knee (2026-01-01 to ongoing)")
        assert "Body part: knee | Severity: severe" in text
        assert "Restrictions: no running, no cycling" in text

    def test_injury_without_restrictions(self):
        constraint = Constraint(id="c1", type="injury", description="Tight calf", injury_severity="mild")
        text = format_constraint(constraint)
        assert "Body part: unspecified | Severity: mild" in text
        assert "no specific restrictions listed" in text

    def test_injury_without_severity_is_single_line(self):
        constraint = Constraint(id="c1", type="injury", description="Old niggle")
        assert format_constraint(constraint) == "- [injury] Old niggle"

    def test_non_injury_with_end_date(self):
        constraint = Constraint(
            id="c2", type="travel", description="Work trip", end_date="2026-02-03"
        )
        assert format_constraint(constraint) == "- [travel] Work trip (? to 2026-02-03)"


# ============================================================================
# compose_system_prompt
# ============================================================================

class TestComposeSystemPrompt:
    """Tests for compose_system_prompt."""

    def test_no_context_returns_base_prompt(self):
        assert compose_system_prompt() == BASE_PROMPT
        assert compose_system_prompt(None) == BASE_PROMPT

    def test_base_prompt_lists_every_tool(self):
        for name in ("get_activities", "get_wellness_data", "get_events", "create_event", "update_event"):
            assert name in BASE_PROMPT

    def test_full_context_sections(self, athlete_context):
        prompt = compose_system_prompt(athlete_context)

        assert prompt.startswith(BASE_PROMPT)
        assert "## Athlete Context" in prompt
        assert "Athlete: Jordan" in prompt
        assert "FTP: 250W" in prompt
        assert "Weight: 70kg" in prompt
        assert "W/kg: 3.57" in prompt
        assert "- Running Threshold Pace: 4:30/km" in prompt
        assert "- CSS: 1:35/100m" in prompt
        assert "- Max HR: 188 bpm" in prompt
        assert "- LTHR: 168 bpm" in prompt
        assert "- Ironman 70.3 (Priority A) - Target: 2026-06-14" in prompt
        assert "Event: 70.3 Barcelona | Distance: 70.3 | Target: 5:30:00" in prompt
        assert "### Active Constraints (MUST RESPECT)" in prompt
        assert "Restrictions: no running, no jumping" in prompt
        assert "- Energy: 7/10" in prompt
        assert "- Resting HR: 48 bpm" in prompt
        assert "- HRV: 65 ms" in prompt

    def test_empty_sections_are_omitted(self):
        context = AthleteContext(athlete_id="a1", ftp_watts=200)
        prompt = compose_system_prompt(context)

        assert "FTP: 200W" in prompt
        assert "W/kg" not in prompt
        assert "### Fitness Thresholds" not in prompt
        assert "### Active Goals" not in prompt
        assert "### Active Constraints" not in prompt
        assert "### Today's Check-in" not in prompt

    @pytest.mark.parametrize("ftp,weight,expected", [
        (250, 80, "W/kg: 3.13"),
        (250, 70, "W/kg: 3.57"),
        (300, 75, "W/kg: 4"),
    ])
    def test_power_to_weight_rounds_half_up(self, ftp, weight, expected):
        context = AthleteContext(athlete_id="a1", ftp_watts=ftp, weight_kg=weight)
        assert expected in compose_system_prompt(context)

    def test_zero_weight_skips_power_to_weight(self):
        context = AthleteContext(athlete_id="a1", ftp_watts=200, weight_kg=0)
        assert "W/kg" not in compose_system_prompt(context)

    def test_non_race_goal_has_no_race_line(self):
        context = AthleteContext.from_dict({
            "athlete_id": "a1",
            "active_goals": [{"id": "g1", "title": "Build base", "goal_type": "fitness"}],
        })
        prompt = compose_system_prompt(context)
        assert "- Build base" in prompt
        assert "Event:" not in prompt

    def test_invalid_priority_is_dropped(self):
        context = AthleteContext.from_dict({
            "athlete_id": "a1",
            "active_goals": [{"id": "g1", "title": "Marathon", "priority": "Z"}],
        })
        prompt = compose_system_prompt(context)
        assert "- Marathon" in prompt
        assert "Priority" not in prompt.split("### Active Goals")[1]
