"""Tests for StatisticsAggregator and the severity trend helpers."""

from datetime import timedelta

from crisis_history.core.statistics import StatisticsAggregator
from crisis_history.core.trend import count_increases, is_escalating, risk_trend
from crisis_history.domain.entry import AnnotationPatch
from crisis_history.domain.enums import RiskTrend

from tests.test_entry import _BASE, _entries, _entry_at


def _annotate(entry, **payload):
    return entry.annotate(AnnotationPatch.model_validate(payload))


class TestTrend:
    def test_count_increases(self) -> None:
        assert count_increases([0, 1, 1, 3, 2, 4]) == 3

    def test_fewer_than_three_entries_is_stable(self) -> None:
        assert risk_trend(_entries(["low", "critical"])) == RiskTrend.STABLE

    def test_rising_run_is_increasing(self) -> None:
        assert risk_trend(_entries(["none", "low", "medium", "high", "critical"])) == RiskTrend.INCREASING

    def test_flat_run_is_decreasing(self) -> None:
        # Zero rising steps counts as decreasing
        assert risk_trend(_entries(["medium"] * 5)) == RiskTrend.DECREASING

    def test_half_rising_is_stable(self) -> None:
        assert risk_trend(_entries(["low", "medium", "low", "medium", "low"])) == RiskTrend.STABLE

    def test_only_last_five_count(self) -> None:
        history = _entries(["none", "low", "medium", "high", "critical", "critical", "critical", "critical", "critical"])
        assert risk_trend(history) == RiskTrend.DECREASING

    def test_escalating_needs_more_than_two_increases(self) -> None:
        assert is_escalating(_entries(["low", "medium", "high"])) is False
        assert is_escalating(_entries(["none", "low", "medium", "high"])) is True


class TestStatisticsAggregator:
    def test_empty_history_defaults(self) -> None:
        stats = StatisticsAggregator().compute([])
        assert stats.total_events == 0
        assert stats.severity_distribution == {}
        assert stats.false_positive_rate == 0.0
        assert stats.risk_trend == RiskTrend.STABLE
        assert stats.last_analysis is None

    def test_distributions(self) -> None:
        history = [
            _entry_at(_BASE, "high", entry_id="a", detected_categories=["suicidal", "self-harm"]),
            _entry_at(_BASE + timedelta(hours=1), "high", entry_id="b", detected_categories=["suicidal"]),
            _entry_at(_BASE + timedelta(hours=2), "low", entry_id="c", detected_categories=[]),
        ]
        stats = StatisticsAggregator().compute(history, pattern_count=2)
        assert stats.total_events == 3
        assert stats.severity_distribution == {"high": 2, "low": 1}
        assert stats.category_distribution == {"suicidal": 2, "self-harm": 1}
        assert stats.pattern_count == 2
        assert stats.last_analysis == _BASE + timedelta(hours=2)

    def test_false_positive_rate_counts_flagged_entries(self) -> None:
        history = _entries(["low"] * 4)
        history[1] = _annotate(history[1], kind="false_positive")
        stats = StatisticsAggregator().compute(history)
        assert stats.total_events == 4
        assert stats.false_positive_rate == 25.0

    def test_escalation_and_resolution_rates(self) -> None:
        history = [
            _entry_at(_BASE + timedelta(hours=i), "high", entry_id=f"e{i}", escalation_required=i < 2)
            for i in range(4)
        ]
        history[0] = _annotate(
            history[0],
            kind="escalation_outcome",
            escalation_outcome={"response_time": 10, "resolved": True, "effectiveness": 7},
        )
        history[1] = _annotate(
            history[1],
            kind="escalation_outcome",
            escalation_outcome={"response_time": 20, "resolved": False, "effectiveness": 3},
        )
        stats = StatisticsAggregator().compute(history)
        assert stats.escalation_rate == 50.0
        assert stats.resolution_rate == 50.0
        assert stats.average_response_time == 15.0

    def test_intervention_success_rate(self) -> None:
        history = _entries(["medium"] * 3)
        history[0] = _annotate(
            history[0],
            kind="intervention_result",
            intervention_result={"intervention_type": "call", "successful": True, "duration": 15},
        )
        history[2] = _annotate(
            history[2],
            kind="intervention_result",
            intervention_result={"intervention_type": "chat", "successful": False, "duration": 5},
        )
        stats = StatisticsAggregator().compute(history)
        assert stats.intervention_success_rate == 50.0

    def test_no_escalations_gives_zero_resolution_rate(self) -> None:
        stats = StatisticsAggregator().compute(_entries(["low", "low"]))
        assert stats.escalation_rate == 0.0
        assert stats.resolution_rate == 0.0
        assert stats.average_response_time == 0.0

