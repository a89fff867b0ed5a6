"""Tests for RiskPredictor scoring, level mapping and confidence."""

from datetime import timedelta

import pytest

from crisis_history.core.risk_predictor import SAFETY_RECOMMENDATIONS, RiskPredictor, RiskWeights
from crisis_history.domain.enums import PatternSeverity, PatternType, RiskLevel, Timeframe
from crisis_history.domain.pattern import CrisisPattern

from tests.test_entry import _BASE, _entry_at

NOW = _BASE + timedelta(days=1)


def _pattern(predictive_value: float, name: str = "Recurring trigger: work") -> CrisisPattern:
    return CrisisPattern(
        id=f"trigger_based:{name}",
        type=PatternType.TRIGGER_BASED,
        pattern=name,
        frequency=4,
        last_occurrence=_BASE,
        confidence=0.8,
        severity=PatternSeverity.HIGH,
        predictive_value=predictive_value,
        recommendations=["Develop coping strategies for work"],
    )


def _history(severities: list[str], ago: timedelta = timedelta(hours=2)):
    """Entries ending *ago* before NOW, one hour apart, oldest first."""
    n = len(severities)
    return [
        _entry_at(NOW - ago - timedelta(hours=n - 1 - i), s, entry_id=f"h{i}")
        for i, s in enumerate(severities)
    ]


@pytest.fixture
def predictor() -> RiskPredictor:
    return RiskPredictor()


class TestRiskScore:
    def test_empty_history_is_low(self, predictor: RiskPredictor) -> None:
        prediction = predictor.predict([], [], Timeframe.HOURS_24, now=NOW)
        assert prediction.risk_level == RiskLevel.LOW
        assert prediction.probability == 0.0
        assert prediction.factors == []
        assert prediction.confidence == 0.5

    def test_recent_critical_events(self, predictor: RiskPredictor) -> None:
        prediction = predictor.predict(_history(["critical", "low", "critical"]), [], Timeframe.HOURS_24, now=NOW)
        assert prediction.probability == 0.6
        assert prediction.risk_level == RiskLevel.HIGH
        assert "2 critical events in past week" in prediction.factors
        assert prediction.recommendations[0] == "Immediate professional intervention recommended"
        for rec in SAFETY_RECOMMENDATIONS:
            assert rec in prediction.recommendations

    def test_old_critical_events_do_not_count(self, predictor: RiskPredictor) -> None:
        history = _history(["critical"], ago=timedelta(days=8))
        prediction = predictor.predict(history, [], Timeframe.HOURS_24, now=NOW)
        assert prediction.probability == 0.0

    def test_escalation_adds_weight(self, predictor: RiskPredictor) -> None:
        prediction = predictor.predict(
            _history(["none", "low", "medium", "high"]), [], Timeframe.HOURS_24, now=NOW,
        )
        assert prediction.probability == 0.25
        assert prediction.risk_level == RiskLevel.LOW
        assert prediction.factors == ["Escalating severity pattern detected"]

    def test_high_frequency(self, predictor: RiskPredictor) -> None:
        prediction = predictor.predict(_history(["low"] * 11), [], Timeframe.HOURS_24, now=NOW)
        assert prediction.probability == 0.2
        assert "High frequency: 11 events in 30 days" in prediction.factors
        assert "Daily check-ins recommended" in prediction.recommendations

    def test_ten_events_is_not_high_frequency(self, predictor: RiskPredictor) -> None:
        prediction = predictor.predict(_history(["low"] * 10), [], Timeframe.HOURS_24, now=NOW)
        assert prediction.factors == []

    def test_predictive_patterns(self, predictor: RiskPredictor) -> None:
        patterns = [_pattern(0.9), _pattern(0.7, "Peak crisis time: 3:00-4:00")]
        prediction = predictor.predict([], patterns, Timeframe.HOURS_24, now=NOW)
        # Only predictive_value strictly above 0.7 contributes
        assert prediction.probability == pytest.approx(0.135)
        assert prediction.based_on_patterns == ["Recurring trigger: work"]
        assert prediction.factors == ["Pattern detected: Recurring trigger: work"]

    def test_probability_capped_and_critical(self, predictor: RiskPredictor) -> None:
        history = _history(["critical"] * 4)
        prediction = predictor.predict(history, [], Timeframe.HOURS_24, now=NOW)
        assert prediction.risk_level == RiskLevel.CRITICAL
        assert prediction.probability == 1.0

    def test_recommendations_deduplicated(self, predictor: RiskPredictor) -> None:
        patterns = [_pattern(0.9), _pattern(0.95, "Recurring trigger: home")]
        prediction = predictor.predict([], patterns, Timeframe.HOURS_24, now=NOW)
        assert prediction.recommendations.count("Develop coping strategies for work") == 1


class TestLevelAndConfidence:
    @pytest.mark.parametrize(
        "critical_count, expected",
        [(0, RiskLevel.LOW), (1, RiskLevel.MEDIUM), (2, RiskLevel.HIGH), (3, RiskLevel.CRITICAL)],
    )
    def test_level_thresholds(self, predictor: RiskPredictor, critical_count: int, expected: RiskLevel) -> None:
        history = _history(["critical"] * critical_count) if critical_count else []
        assert predictor.predict(history, [], Timeframe.HOURS_24, now=NOW).risk_level == expected

    def test_confidence_grows_with_evidence(self, predictor: RiskPredictor) -> None:
        patterns = [_pattern(0.1), _pattern(0.2), _pattern(0.3)]
        ten = predictor.predict(_history(["low"] * 10), patterns, Timeframe.HOURS_24, now=NOW)
        thirty = predictor.predict(_history(["low"] * 30), patterns, Timeframe.HOURS_24, now=NOW)
        assert ten.confidence == 0.9
        assert thirty.confidence == 1.0

    def test_timeframe_is_echoed_without_changing_score(self, predictor: RiskPredictor) -> None:
        history = _history(["critical", "high"])
        day = predictor.predict(history, [], Timeframe.HOURS_24, now=NOW)
        month = predictor.predict(history, [], Timeframe.MONTH, now=NOW)
        assert month.timeframe == Timeframe.MONTH
        assert day.model_copy(update={"timeframe": Timeframe.MONTH}) == month

    def test_same_inputs_same_prediction(self, predictor: RiskPredictor) -> None:
        history = _history(["low", "high", "critical"])
        patterns = [_pattern(0.9)]
        first = predictor.predict(history, patterns, Timeframe.WEEK, now=NOW)
        assert predictor.predict(history, patterns, Timeframe.WEEK, now=NOW) == first

    def test_history_limit_bounds_lookback(self) -> None:
        predictor = RiskPredictor(RiskWeights(history_limit=2))
        history = _history(["critical", "critical", "low", "low"])
        assert predictor.predict(history, [], Timeframe.HOURS_24, now=NOW).probability == 0.0
        assert predictor.history_limit == 2

    def test_custom_frequency_window_in_factor(self) -> None:
        predictor = RiskPredictor(RiskWeights(frequency_window=timedelta(days=14), frequency_threshold=2))
        prediction = predictor.predict(_history(["low"] * 3), [], Timeframe.HOURS_24, now=NOW)
        assert "High frequency: 3 events in 14 days" in prediction.factors
