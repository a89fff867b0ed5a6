"""HistoryAnalytics computation — longitudinal view over a user's history.

Pure: accepts entries (oldest first), returns a frozen HistoryAnalytics or
None for an empty history.
"""

from __future__ import annotations

from collections import Counter, defaultdict

from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import SeverityLevel
from crisis_history.domain.statistics import HistoryAnalytics, TimeFrequency, TriggerCount

TOP_N = 5
SLOPE_WINDOW = 10
RELAPSE_MIN_HISTORY = 5

_SECONDS_PER_DAY = 24 * 60 * 60
_CALM = (SeverityLevel.NONE, SeverityLevel.LOW)


def compute_analytics(entries: list[CrisisHistoryEntry]) -> HistoryAnalytics | None:
    if not entries:
        return None

    return HistoryAnalytics(
        total_analyses=len(entries),
        average_risk=sum(e.analysis.risk_level for e in entries) / len(entries),
        risk_trend_value=risk_slope(entries),
        most_common_triggers=_top_triggers(entries),
        time_patterns=_top_hours(entries),
        intervention_effectiveness=_intervention_effectiveness(entries),
        recovery_time=average_recovery_days(entries),
        relapse_probability=relapse_probability(entries),
    )


def risk_slope(entries: list[CrisisHistoryEntry]) -> float:
    """Least-squares slope of risk level against position, last 10 entries."""
    if len(entries) < 2:
        return 0.0

    risks = [e.analysis.risk_level for e in entries[-SLOPE_WINDOW:]]
    n = len(risks)
    sum_x = n * (n - 1) / 2
    sum_y = sum(risks)
    sum_xy = sum(i * r for i, r in enumerate(risks))
    sum_x2 = n * (n - 1) * (2 * n - 1) / 6
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def average_recovery_days(entries: list[CrisisHistoryEntry]) -> float:
    """Mean days from each severe entry to the next calm (none/low) entry."""
    recoveries: list[float] = []
    for i, entry in enumerate(entries[:-1]):
        if not entry.severity.is_severe:
            continue
        for later in entries[i + 1:]:
            if later.severity in _CALM:
                recoveries.append(
                    (later.timestamp - entry.timestamp).total_seconds() / _SECONDS_PER_DAY
                )
                break
    return sum(recoveries) / len(recoveries) if recoveries else 0.0


def relapse_probability(entries: list[CrisisHistoryEntry]) -> float:
    """Share of recoveries (severe -> calm) followed by a medium-or-worse entry."""
    if len(entries) < RELAPSE_MIN_HISTORY:
        return 0.0

    ranks = [e.severity.rank for e in entries]
    recoveries = 0
    relapses = 0
    for current, following, after in zip(ranks, ranks[1:], ranks[2:]):
        if current >= 3 and following <= 1:
            recoveries += 1
            if after >= 2:
                relapses += 1
    return relapses / recoveries if recoveries else 0.0


def _top_triggers(entries: list[CrisisHistoryEntry]) -> list[TriggerCount]:
    counts = Counter(e.trigger for e in entries if e.trigger)
    return [TriggerCount(trigger=t, count=c) for t, c in counts.most_common(TOP_N)]


def _top_hours(entries: list[CrisisHistoryEntry]) -> list[TimeFrequency]:
    counts = Counter(e.timestamp.hour for e in entries)
    return [TimeFrequency(time=f"{h}:00", frequency=c) for h, c in counts.most_common(TOP_N)]


def _intervention_effectiveness(entries: list[CrisisHistoryEntry]) -> dict[str, float]:
    outcomes: dict[str, list[int]] = defaultdict(list)
    for entry in entries:
        result = entry.intervention_result
        if result is not None:
            outcomes[result.intervention_type].append(1 if result.successful else 0)
    return {kind: sum(v) / len(v) for kind, v in outcomes.items()}
