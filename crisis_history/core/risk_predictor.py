"""RiskPredictor — bounded risk score from recent history and mined patterns.

Score formula (accumulated from 0):
    + critical_weight   per critical entry in the last recent_critical_window
    + escalation_weight if the recent entries show an escalating severity run
    + frequency_weight  if more than frequency_threshold entries fall in the
                        frequency_window
    + predictive_value * pattern_weight for each pattern whose predictive
                        value exceeds pattern_threshold

Level mapping:  >= 70 critical, >= 50 high, >= 30 medium, else low.
Probability:    min(score / 100, 1.0).

Confidence depends only on how much evidence is available:
    0.5 baseline, +0.2 with >= 10 entries, +0.2 with >= 3 patterns,
    +0.1 with >= 30 entries, capped at 1.0.

The timeframe is echoed back unchanged; scoring does not vary by it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from crisis_history.core.trend import is_escalating
from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import RiskLevel, SeverityLevel, Timeframe
from crisis_history.domain.pattern import CrisisPattern
from crisis_history.domain.prediction import RiskPrediction

SAFETY_RECOMMENDATIONS = (
    "Ensure safety plan is updated and accessible",
    "Verify emergency contacts are current",
    "Consider 24/7 crisis support availability",
)


@dataclass(frozen=True)
class RiskWeights:
    """Configurable weights and windows for the risk score."""

    critical_weight: float = 30.0
    escalation_weight: float = 25.0
    frequency_weight: float = 20.0
    pattern_weight: float = 15.0

    recent_critical_window: timedelta = timedelta(days=7)
    frequency_window: timedelta = timedelta(days=30)
    frequency_threshold: int = 10
    pattern_threshold: float = 0.7

    # How many recent entries the predictor looks at
    history_limit: int = 30


class RiskPredictor:
    """Stateless risk scoring.  Same inputs always produce the same prediction."""

    def __init__(self, weights: RiskWeights | None = None) -> None:
        self._weights = weights or RiskWeights()

    @property
    def history_limit(self) -> int:
        return self._weights.history_limit

    def predict(
        self,
        history: list[CrisisHistoryEntry],
        patterns: list[CrisisPattern],
        timeframe: Timeframe,
        now: datetime,
    ) -> RiskPrediction:
        """Score *history* (most recent entries, oldest first) and *patterns*."""
        w = self._weights
        history = history[-w.history_limit:]

        score = 0.0
        factors: list[str] = []
        recommendations: list[str] = []
        based_on: list[str] = []

        recent_critical = sum(
            1 for e in history
            if e.severity == SeverityLevel.CRITICAL
            and self._is_recent(e, now, w.recent_critical_window)
        )
        if recent_critical > 0:
            score += recent_critical * w.critical_weight
            factors.append(f"{recent_critical} critical events in past week")
            recommendations.append("Immediate professional intervention recommended")

        if is_escalating(history):
            score += w.escalation_weight
            factors.append("Escalating severity pattern detected")
            recommendations.append("Increase monitoring frequency")

        frequency = sum(1 for e in history if self._is_recent(e, now, w.frequency_window))
        if frequency > w.frequency_threshold:
            score += w.frequency_weight
            factors.append(f"High frequency: {frequency} events in {w.frequency_window.days} days")
            recommendations.append("Daily check-ins recommended")

        for pattern in patterns:
            if pattern.predictive_value > w.pattern_threshold:
                score += pattern.predictive_value * w.pattern_weight
                factors.append(f"Pattern detected: {pattern.pattern}")
                based_on.append(pattern.pattern)
                recommendations.extend(pattern.recommendations)

        level = self._level_for(score)
        if level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            recommendations.extend(SAFETY_RECOMMENDATIONS)

        return RiskPrediction(
            risk_level=level,
            probability=min(score / 100, 1.0),
            timeframe=timeframe,
            factors=factors,
            recommendations=list(dict.fromkeys(recommendations)),
            confidence=self._confidence(history, patterns),
            based_on_patterns=based_on,
        )

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _level_for(score: float) -> RiskLevel:
        if score >= 70:
            return RiskLevel.CRITICAL
        if score >= 50:
            return RiskLevel.HIGH
        if score >= 30:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    @staticmethod
    def _confidence(history: list[CrisisHistoryEntry], patterns: list[CrisisPattern]) -> float:
        confidence = 0.5
        if len(history) >= 10:
            confidence += 0.2
        if len(patterns) >= 3:
            confidence += 0.2
        if len(history) >= 30:
            confidence += 0.1
        return round(min(confidence, 1.0), 4)

    @staticmethod
    def _is_recent(entry: CrisisHistoryEntry, now: datetime, window: timedelta) -> bool:
        return now - entry.timestamp < window
