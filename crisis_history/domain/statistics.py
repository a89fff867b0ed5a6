"""Derived summaries of a user's history.

Neither model is persisted.  Both are recomputed from the event store on
demand and can always be replayed from it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from crisis_history.domain.enums import RiskTrend


class CrisisStatistics(BaseModel):
    """Point-in-time summary.  All rates are percentages (0–100)."""

    total_events: int = 0
    severity_distribution: dict[str, int] = Field(default_factory=dict)
    category_distribution: dict[str, int] = Field(default_factory=dict)
    false_positive_rate: float = 0.0
    average_response_time: float = Field(0.0, description="Mean escalation response time, minutes")
    escalation_rate: float = 0.0
    resolution_rate: float = 0.0
    intervention_success_rate: float = 0.0
    pattern_count: int = 0
    risk_trend: RiskTrend = RiskTrend.STABLE
    last_analysis: Optional[datetime] = None

    model_config = {"frozen": True}


class TriggerCount(BaseModel):
    trigger: str
    count: int

    model_config = {"frozen": True}


class TimeFrequency(BaseModel):
    time: str
    frequency: int

    model_config = {"frozen": True}


class HistoryAnalytics(BaseModel):
    """Longitudinal analytics over a user's history."""

    total_analyses: int
    average_risk: float
    risk_trend_value: float = Field(..., description="Slope of risk over the last 10 entries; positive = increasing")
    most_common_triggers: list[TriggerCount] = Field(default_factory=list)
    time_patterns: list[TimeFrequency] = Field(default_factory=list)
    intervention_effectiveness: dict[str, float] = Field(default_factory=dict)
    recovery_time: float = Field(0.0, description="Mean days from a severe event to the next calm one")
    relapse_probability: float = Field(0.0, ge=0.0, le=1.0)

    model_config = {"frozen": True}
