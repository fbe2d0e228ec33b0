"""
System prompt composition for the coaching assistant.

compose_system_prompt() renders the fixed coaching instructions and,
when an AthleteContext is available, appends the athlete's metrics,
thresholds, goals, constraints and today's check-in. Sections with no
data are left out entirely.
"""

import math
from typing import List, Optional, Union

from ..models.athlete_context import AthleteContext, CheckinSummary, Constraint, Goal


Number = Union[int, float]


BASE_PROMPT = """You are an AI endurance coaching assistant. You help athletes optimize their training through personalized advice based on their fitness data, goals, and daily readiness.

## Your Capabilities
You have access to tools that read and write the athlete's Intervals.icu training calendar:
- get_activities: Fetch recent workouts (rides, runs, swims, etc.)
- get_wellness_data: Fetch wellness metrics (CTL/ATL/TSB, HRV, sleep quality, readiness)
- get_events: Fetch scheduled events, planned workouts, and races
- create_event: Add a planned workout, race, note, rest day or travel entry to the calendar
- update_event: Change an existing calendar event

## Guidelines
1. **Use data to inform advice**: When discussing training load or recovery, fetch relevant data first.
2. **Respect constraints**: Never recommend training that violates athlete's stated constraints (injuries, time limits).
3. **Be specific**: Give concrete recommendations (e.g., "30-minute easy spin at <65% FTP" not "light exercise").
4. **Explain your reasoning**: Help athletes understand why you're making specific recommendations.
5. **Prioritize safety**: If unsure about injury implications, recommend consulting a professional.
6. **Confirm before writing**: Only create or change calendar events when the athlete asks for it.

## Injury Safety Rules
- ALWAYS check active injury constraints before recommending any workout
- For SEVERE injuries: only recommend activities that completely avoid the injured area
- For MODERATE injuries: recommend low-intensity alternatives; avoid aggravating movements
- For MILD injuries: allow training with modifications; suggest warm-up and monitoring
- Never recommend "pushing through" pain
- Suggest cross-training alternatives that don't stress the injured area
- When in doubt, recommend rest and consulting a physiotherapist

## Injury-Aware Recommendations
When making workout recommendations with active injuries:
1. Carefully review the athlete's active constraints to verify the workout is safe
2. If the workout would violate any constraints, suggest safer modifications or alternatives
3. Always mention the injury context in your recommendation reasoning

## Response Style
- Be conversational but concise
- Use bullet points for multi-part recommendations
- Include relevant metrics when discussing training load"""


# ============================================================================
# Formatting helpers
# ============================================================================

def _round_half_up(value: Number) -> int:
    return int(math.floor(value + 0.5))


def _num(value: Number) -> str:
    """Render a number without a trailing .0 for whole values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _minutes_seconds(total_seconds: Number) -> str:
    # Round first so 299.6s becomes 5:00 rather than 4:60
    minutes, secs = divmod(_round_half_up(total_seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_pace(sec_per_km: Number) -> str:
    """Format a running pace in seconds per km as M:SS/km."""
    return f"{_minutes_seconds(sec_per_km)}/km"


def format_swim_pace(sec_per_100m: Number) -> str:
    """Format a swim pace in seconds per 100m as M:SS/100m."""
    return f"{_minutes_seconds(sec_per_100m)}/100m"


def format_race_time(total_seconds: Number) -> str:
    """Format a race time as H:MM:SS, or MM:SS when under an hour."""
    remaining = _round_half_up(total_seconds)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_constraint(constraint: Constraint) -> str:
    """
    Render one constraint for the prompt.

    Injury constraints with a severity also list body part, severity and
    restrictions.
    """
    dates = ""
    if constraint.start_date or constraint.end_date:
        dates = f" ({constraint.start_date or '?'} to {constraint.end_date or 'ongoing'})"

    header = f"- [{constraint.type}] {constraint.description}{dates}"
    if constraint.type != "injury" or constraint.injury_severity is None:
        return header

    lines = [
        header,
        f"  Body part: {constraint.injury_body_part or 'unspecified'} | "
        f"Severity: {constraint.injury_severity}",
    ]
    if constraint.injury_restrictions:
        restrictions = ", ".join(f"no {r}" for r in constraint.injury_restrictions)
        lines.append(f"  Restrictions: {restrictions}")
    else:
        lines.append("  Restrictions: no specific restrictions listed")
    return "\n".join(lines)


# ============================================================================
# Context sections
# ============================================================================

def _athlete_metrics(context: AthleteContext) -> List[str]:
    parts = []
    if context.display_name:
        parts.append(f"Athlete: {context.display_name}")
    if context.ftp_watts is not None:
        parts.append(f"FTP: {_num(context.ftp_watts)}W")
    if context.weight_kg is not None:
        parts.append(f"Weight: {_num(context.weight_kg)}kg")
    if context.ftp_watts is not None and context.weight_kg is not None and context.weight_kg > 0:
        parts.append(f"W/kg: {_num(_round_half_up(context.ftp_watts / context.weight_kg * 100) / 100)}")
    return parts


def _fitness_thresholds(context: AthleteContext) -> List[str]:
    if not context.has_thresholds:
        return []

    parts = ["\n### Fitness Thresholds"]
    if context.running_threshold_pace_sec_per_km is not None:
        parts.append(
            f"- Running Threshold Pace: {format_pace(context.running_threshold_pace_sec_per_km)}"
        )
    if context.css_sec_per_100m is not None:
        parts.append(f"- CSS: {format_swim_pace(context.css_sec_per_100m)}")
    if context.max_heart_rate is not None:
        parts.append(f"- Max HR: {_num(context.max_heart_rate)} bpm")
    if context.lthr is not None:
        parts.append(f"- LTHR: {_num(context.lthr)} bpm")
    return parts


def _race_details(goal: Goal) -> Optional[str]:
    if goal.goal_type != "race":
        return None

    details = []
    if goal.race_event_name is not None:
        details.append(f"Event: {goal.race_event_name}")
    if goal.race_distance is not None:
        details.append(f"Distance: {goal.race_distance}")
    if goal.race_target_time_seconds is not None:
        details.append(f"Target: {format_race_time(goal.race_target_time_seconds)}")
    return f"  {' | '.join(details)}" if details else None


def _goals(goals: List[Goal]) -> List[str]:
    parts = ["\n### Active Goals"]
    for goal in goals:
        priority = f" (Priority {goal.priority})" if goal.priority else ""
        target = f" - Target: {goal.target_date}" if goal.target_date else ""
        parts.append(f"- {goal.title}{priority}{target}")
        race = _race_details(goal)
        if race is not None:
            parts.append(race)
    return parts


def _constraints(constraints: List[Constraint]) -> List[str]:
    return ["\n### Active Constraints (MUST RESPECT)"] + [
        format_constraint(c) for c in constraints
    ]


def _checkin(checkin: CheckinSummary) -> List[str]:
    parts = ["\n### Today's Check-in"]
    scored = (
        ("Energy", checkin.energy_level),
        ("Sleep", checkin.sleep_quality),
        ("Stress", checkin.stress_level),
        ("Soreness", checkin.muscle_soreness),
    )
    for label, value in scored:
        if value is not None:
            parts.append(f"- {label}: {_num(value)}/10")
    if checkin.resting_hr is not None:
        parts.append(f"- Resting HR: {_num(checkin.resting_hr)} bpm")
    if checkin.hrv_ms is not None:
        parts.append(f"- HRV: {_num(checkin.hrv_ms)} ms")
    return parts


def compose_system_prompt(context: Optional[AthleteContext] = None) -> str:
    """
    Build the system prompt, personalized when a context is given.

    Args:
        context: Athlete context, or None for the generic coach prompt

    Returns:
        The full system prompt text
    """
    if context is None:
        return BASE_PROMPT

    parts = [BASE_PROMPT, "\n## Athlete Context"]
    parts.extend(_athlete_metrics(context))
    parts.extend(_fitness_thresholds(context))
    if context.active_goals:
        parts.extend(_goals(context.active_goals))
    if context.active_constraints:
        parts.extend(_constraints(context.active_constraints))
    if context.recent_checkin is not None:
        parts.extend(_checkin(context.recent_checkin))

    return "\n".join(parts)
