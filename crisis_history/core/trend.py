"""Severity trend helpers shared by statistics and pattern mining."""

from __future__ import annotations

from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import RiskTrend

RECENT_WINDOW = 5


def recent_severity_ranks(
    entries: list[CrisisHistoryEntry],
    window: int = RECENT_WINDOW,
) -> list[int]:
    """Severity ranks (0–4) of the last *window* entries, oldest first."""
    return [e.severity.rank for e in entries[-window:]]


def count_increases(ranks: list[int]) -> int:
    """Number of adjacent steps where severity strictly rises."""
    return sum(1 for prev, curr in zip(ranks, ranks[1:]) if curr > prev)


def is_escalating(entries: list[CrisisHistoryEntry]) -> bool:
    """More than two rising steps across the last five entries.

    Needs at least three entries.
    """
    if len(entries) < 3:
        return False
    return count_increases(recent_severity_ranks(entries)) > 2


def risk_trend(entries: list[CrisisHistoryEntry]) -> RiskTrend:
    """Share of rising steps over the last five entries.

    > 60% rising is increasing, < 40% is decreasing.  Fewer than three
    entries is always stable.
    """
    if len(entries) < 3:
        return RiskTrend.STABLE

    ranks = recent_severity_ranks(entries)
    share = count_increases(ranks) / (len(ranks) - 1)
    if share > 0.6:
        return RiskTrend.INCREASING
    if share < 0.4:
        return RiskTrend.DECREASING
    return RiskTrend.STABLE
