"""
AthleteContext model for the Coach Orchestrator.

The context is the structured bundle handed to the prompt composer:
- Identity and fitness parameters from the athlete profile
- Active goals, ordered by priority
- Active constraints (injuries, travel, availability)
- Today's readiness check-in

It is built fresh per request and never persisted by the orchestrator.
"""

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Dict, FrozenSet, List, Optional


logger = logging.getLogger(__name__)

VALID_PRIORITIES: FrozenSet[str] = frozenset({"A", "B", "C"})
VALID_SEVERITIES: FrozenSet[str] = frozenset({"mild", "moderate", "severe"})


def validated_enum(value: Any, allowed: FrozenSet[str], field_name: str) -> Optional[str]:
    """Return value if it belongs to the closed set, otherwise None.

    Unknown values are dropped rather than coerced to a guess.
    """
    if value is None:
        return None
    if isinstance(value, str) and value in allowed:
        return value
    logger.debug(f"Dropping unrecognized {field_name} value: {value!r}")
    return None


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


@dataclass
class Goal:
    """An active training goal."""

    id: str
    title: str
    goal_type: Optional[str] = None
    target_date: Optional[str] = None
    priority: Optional[str] = None
    race_event_name: Optional[str] = None
    race_distance: Optional[str] = None
    race_target_time_seconds: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Goal":
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            goal_type=data.get("goal_type"),
            target_date=data.get("target_date"),
            priority=validated_enum(data.get("priority"), VALID_PRIORITIES, "priority"),
            race_event_name=data.get("race_event_name"),
            race_distance=data.get("race_distance"),
            race_target_time_seconds=_optional_number(data.get("race_target_time_seconds")),
        )


@dataclass
class Constraint:
    """
    An active training constraint.

    Attributes:
        type: Constraint category (injury, travel, availability, ...)
        injury_severity: One of mild/moderate/severe, only for injuries
        injury_restrictions: Activities the athlete must avoid
    """

    id: str
    type: str
    description: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    injury_body_part: Optional[str] = None
    injury_severity: Optional[str] = None
    injury_restrictions: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constraint":
        # Stored rows use constraint_type; inbound context uses type
        constraint_type = data.get("type") or data.get("constraint_type") or ""
        restrictions = data.get("injury_restrictions")
        if isinstance(restrictions, list):
            restrictions = [str(r) for r in restrictions]
        else:
            restrictions = None
        return cls(
            id=str(data.get("id", "")),
            type=str(constraint_type),
            description=str(data.get("description") or ""),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            injury_body_part=data.get("injury_body_part"),
            injury_severity=validated_enum(
                data.get("injury_severity"), VALID_SEVERITIES, "injury_severity"
            ),
            injury_restrictions=restrictions,
        )


@dataclass
class CheckinSummary:
    """Today's readiness check-in (at most one per athlete per day)."""

    date: str
    energy_level: Optional[float] = None
    sleep_quality: Optional[float] = None
    stress_level: Optional[float] = None
    muscle_soreness: Optional[float] = None
    resting_hr: Optional[float] = None
    hrv_ms: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckinSummary":
        return cls(
            date=str(data.get("date") or data.get("checkin_date") or ""),
            energy_level=_optional_number(data.get("energy_level")),
            sleep_quality=_optional_number(data.get("sleep_quality")),
            stress_level=_optional_number(data.get("stress_level")),
            muscle_soreness=_optional_number(data.get("muscle_soreness")),
            resting_hr=_optional_number(data.get("resting_hr")),
            hrv_ms=_optional_number(data.get("hrv_ms")),
        )


@dataclass
class AthleteContext:
    """
    Athlete context used to personalize the coach's system prompt.

    Attributes:
        athlete_id: Profile identifier
        display_name: Name shown to the coach
        ftp_watts: Cycling functional threshold power
        weight_kg: Body weight
        running_threshold_pace_sec_per_km: Threshold run pace (seconds per km)
        css_sec_per_100m: Swim critical speed (seconds per 100m)
        max_heart_rate: Maximum heart rate
        lthr: Lactate threshold heart rate
        active_goals: Goals with status active, priority ordered
        active_constraints: Constraints active today
        recent_checkin: Today's check-in, if any
    """

    athlete_id: str
    display_name: Optional[str] = None
    ftp_watts: Optional[float] = None
    weight_kg: Optional[float] = None
    running_threshold_pace_sec_per_km: Optional[float] = None
    css_sec_per_100m: Optional[float] = None
    max_heart_rate: Optional[float] = None
    lthr: Optional[float] = None
    active_goals: List[Goal] = field(default_factory=list)
    active_constraints: List[Constraint] = field(default_factory=list)
    recent_checkin: Optional[CheckinSummary] = None

    @property
    def has_thresholds(self) -> bool:
        """Whether any of the four threshold fields is present."""
        return any(
            value is not None
            for value in (
                self.running_threshold_pace_sec_per_km,
                self.css_sec_per_100m,
                self.max_heart_rate,
                self.lthr,
            )
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AthleteContext":
        """Build a context from a JSON object (inbound request or cache)."""
        goals = data.get("active_goals")
        goals = goals if isinstance(goals, list) else []
        constraints = data.get("active_constraints")
        constraints = constraints if isinstance(constraints, list) else []
        checkin = data.get("recent_checkin")
        return cls(
            athlete_id=str(data.get("athlete_id", "")),
            display_name=data.get("display_name"),
            ftp_watts=_optional_number(data.get("ftp_watts")),
            weight_kg=_optional_number(data.get("weight_kg")),
            running_threshold_pace_sec_per_km=_optional_number(
                data.get("running_threshold_pace_sec_per_km")
            ),
            css_sec_per_100m=_optional_number(data.get("css_sec_per_100m")),
            max_heart_rate=_optional_number(data.get("max_heart_rate")),
            lthr=_optional_number(data.get("lthr")),
            active_goals=[Goal.from_dict(g) for g in goals if isinstance(g, dict)],
            active_constraints=[
                Constraint.from_dict(c) for c in constraints if isinstance(c, dict)
            ],
            recent_checkin=CheckinSummary.from_dict(checkin) if isinstance(checkin, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)
