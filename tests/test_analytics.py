"""Tests for longitudinal history analytics."""

from datetime import timedelta

import pytest

from crisis_history.core.analytics import (
    average_recovery_days,
    compute_analytics,
    relapse_probability,
    risk_slope,
)
from crisis_history.domain.entry import AnnotationPatch

from tests.test_entry import _BASE, _entries, _entry_at


def _with_risks(risks: list[float]):
    return [
        _entry_at(_BASE + timedelta(hours=i), "medium", entry_id=f"r{i}", risk_level=r)
        for i, r in enumerate(risks)
    ]


class TestRiskSlope:
    def test_single_entry_is_flat(self) -> None:
        assert risk_slope(_with_risks([5])) == 0.0

    def test_linear_rise(self) -> None:
        assert risk_slope(_with_risks([1, 2, 3, 4])) == pytest.approx(1.0)

    def test_only_last_ten_entries(self) -> None:
        risks = [100, 90] + [2.0] * 10
        assert risk_slope(_with_risks(risks)) == pytest.approx(0.0)


class TestRecoveryAndRelapse:
    def test_recovery_days(self) -> None:
        history = [
            _entry_at(_BASE, "high", entry_id="a"),
            _entry_at(_BASE + timedelta(days=2), "medium", entry_id="b"),
            _entry_at(_BASE + timedelta(days=3), "low", entry_id="c"),
        ]
        assert average_recovery_days(history) == pytest.approx(3.0)

    def test_no_recovery_is_zero(self) -> None:
        assert average_recovery_days(_entries(["high", "critical"])) == 0.0

    def test_relapse_needs_five_entries(self) -> None:
        assert relapse_probability(_entries(["high", "low", "high", "low"])) == 0.0

    def test_relapse_probability(self) -> None:
        # Two recoveries (high->low, critical->none); one is followed by medium
        history = _entries(["high", "low", "medium", "critical", "none", "none"])
        assert relapse_probability(history) == 0.5


class TestComputeAnalytics:
    def test_empty_history(self) -> None:
        assert compute_analytics([]) is None

    def test_full_summary(self) -> None:
        history = [
            _entry_at(_BASE, "high", trigger="work", entry_id="a", risk_level=8),
            _entry_at(_BASE + timedelta(days=1), "low", trigger="work", entry_id="b", risk_level=2),
            _entry_at(_BASE + timedelta(days=2), "medium", trigger="home", entry_id="c", risk_level=5),
        ]
        history[1] = history[1].annotate(AnnotationPatch.model_validate({
            "kind": "intervention_result",
            "intervention_result": {"intervention_type": "call", "successful": True, "duration": 20},
        }))
        analytics = compute_analytics(history)
        assert analytics.total_analyses == 3
        assert analytics.average_risk == pytest.approx(5.0)
        assert analytics.most_common_triggers[0].trigger == "work"
        assert analytics.most_common_triggers[0].count == 2
        assert analytics.time_patterns[0].time == "12:00"
        assert analytics.time_patterns[0].frequency == 3
        assert analytics.intervention_effectiveness == {"call": 1.0}
        assert analytics.recovery_time == pytest.approx(1.0)
