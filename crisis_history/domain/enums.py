"""Controlled enumerations for the crisis-history domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class SeverityLevel(str, Enum):
    """Classifier severity verdict, ordered none < low < medium < high < critical."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Canonical integer ordering (0–4) used for sorting and trends."""
        return _SEVERITY_RANK[self]

    @property
    def is_severe(self) -> bool:
        return self in (SeverityLevel.HIGH, SeverityLevel.CRITICAL)


_SEVERITY_RANK = {
    SeverityLevel.NONE: 0,
    SeverityLevel.LOW: 1,
    SeverityLevel.MEDIUM: 2,
    SeverityLevel.HIGH: 3,
    SeverityLevel.CRITICAL: 4,
}


class PatternType(str, Enum):
    TIME_BASED = "time_based"
    TRIGGER_BASED = "trigger_based"
    ESCALATION = "escalation"
    SEASONAL = "seasonal"
    CYCLICAL = "cyclical"


class PatternSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskTrend(str, Enum):
    """Direction of recent severities."""

    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Timeframe(str, Enum):
    """Prediction horizon requested by the caller (echoed, not scored)."""

    HOURS_24 = "24h"
    HOURS_48 = "48h"
    WEEK = "1week"
    MONTH = "1month"


class AlertType(str, Enum):
    PATTERN_DETECTED = "pattern_detected"
    ESCALATION_RISK = "escalation_risk"
    INTERVENTION_NEEDED = "intervention_needed"
    FOLLOW_UP_DUE = "follow_up_due"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"


class AnnotationKind(str, Enum):
    """The four post-hoc annotation kinds an entry may receive."""

    FALSE_POSITIVE = "false_positive"
    ESCALATION_OUTCOME = "escalation_outcome"
    INTERVENTION_RESULT = "intervention_result"
    FEEDBACK = "feedback"


class SortField(str, Enum):
    TIMESTAMP = "timestamp"
    SEVERITY = "severity"
    RISK = "risk"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CrisisCategory(str, Enum):
    """Category labels that the upstream classifier may emit."""

    SUICIDAL = "suicidal"
    SELF_HARM = "self-harm"
    SUBSTANCE_ABUSE = "substance-abuse"
    VIOLENCE = "violence"
    EMERGENCY = "emergency"
    GENERAL_DISTRESS = "general-distress"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @classmethod
    def for_hour(cls, hour: int) -> TimeOfDay:
        if 5 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 22:
            return cls.EVENING
        return cls.NIGHT


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_weekday(cls, weekday: int) -> DayOfWeek:
        """Map ``datetime.weekday()`` (Monday == 0) to a member."""
        return list(cls)[weekday]
