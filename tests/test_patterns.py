"""Tests for PatternDetector — the five mining passes and their thresholds."""

from datetime import datetime, timedelta, timezone

from crisis_history.core.pattern_detector import PatternDetector
from crisis_history.domain.enums import PatternSeverity, PatternType

from tests.test_entry import _BASE, _entries, _entry_at


def _daily(count: int, hour: int = 12, trigger: str | None = None, step_days: float = 1.0):
    start = _BASE.replace(hour=hour)
    return [
        _entry_at(start + timedelta(days=i * step_days), "medium", trigger=trigger, entry_id=f"d{i}")
        for i in range(count)
    ]


def _of_type(patterns, pattern_type):
    return [p for p in patterns if p.type == pattern_type]


class TestTimePatterns:
    def test_two_events_in_an_hour_is_not_a_pattern(self) -> None:
        assert PatternDetector().detect_time_patterns(_daily(2)) == []

    def test_three_events_is_medium(self) -> None:
        patterns = PatternDetector().detect_time_patterns(_daily(3, hour=23))
        assert len(patterns) == 1
        p = patterns[0]
        assert p.id == "time_based:23"
        assert p.pattern == "Peak crisis time: 23:00-24:00"
        assert p.frequency == 3
        assert p.severity == PatternSeverity.MEDIUM
        assert p.confidence == 1.0
        assert p.recommendations == ["Increase monitoring during 23:00-24:00"]

    def test_five_events_is_high(self) -> None:
        patterns = PatternDetector().detect_time_patterns(_daily(5))
        assert patterns[0].severity == PatternSeverity.HIGH

    def test_confidence_and_predictive_value_are_shares(self) -> None:
        history = _daily(3, hour=9) + _daily(3, hour=18)
        patterns = PatternDetector().detect_time_patterns(history)
        assert [p.id for p in patterns] == ["time_based:9", "time_based:18"]
        assert patterns[0].confidence == 0.5
        assert patterns[0].predictive_value == 1.0

    def test_last_occurrence_is_latest_in_bucket(self) -> None:
        history = _daily(4)
        patterns = PatternDetector().detect_time_patterns(history)
        assert patterns[0].last_occurrence == history[-1].timestamp


class TestTriggerPatterns:
    def test_four_work_triggers_is_high(self) -> None:
        patterns = PatternDetector().detect_trigger_patterns(_daily(4, trigger="work"))
        assert len(patterns) == 1
        p = patterns[0]
        assert p.type == PatternType.TRIGGER_BASED
        assert p.id == "trigger_based:work"
        assert p.pattern == "Recurring trigger: work"
        assert p.frequency == 4
        assert p.severity == PatternSeverity.HIGH
        assert p.recommendations == [
            "Develop coping strategies for work",
            "Early intervention when work occurs",
        ]

    def test_two_occurrences_is_medium(self) -> None:
        history = _daily(2, trigger="family") + _daily(2, hour=3)
        patterns = PatternDetector().detect_trigger_patterns(history)
        assert patterns[0].severity == PatternSeverity.MEDIUM
        assert patterns[0].confidence == 1.0
        assert patterns[0].predictive_value == 0.75

    def test_single_occurrence_ignored(self) -> None:
        assert PatternDetector().detect_trigger_patterns(_daily(1, trigger="debt")) == []

    def test_entries_without_trigger_ignored(self) -> None:
        assert PatternDetector().detect_trigger_patterns(_daily(6)) == []


class TestEscalationPattern:
    def test_rising_run_emits_single_pattern(self) -> None:
        history = _entries(["none", "low", "medium", "high"])
        patterns = PatternDetector().detect_escalation_patterns(history)
        assert len(patterns) == 1
        p = patterns[0]
        assert p.id == "escalation:recent"
        assert p.severity == PatternSeverity.HIGH
        assert p.confidence == 0.8
        assert p.predictive_value == 0.9
        assert p.last_occurrence == history[-1].timestamp

    def test_two_increases_is_not_escalation(self) -> None:
        assert PatternDetector().detect_escalation_patterns(_entries(["low", "medium", "high"])) == []


class TestSeasonalPatterns:
    def test_below_twenty_entries_never_seasonal(self) -> None:
        history = [
            _entry_at(datetime(2025, 3, d, 10, tzinfo=timezone.utc), entry_id=f"m{d}")
            for d in range(1, 20)
        ]
        assert PatternDetector().detect_seasonal_patterns(history) == []

    def test_peak_month_detected(self) -> None:
        march = [
            _entry_at(datetime(2025, 3, d, 10, tzinfo=timezone.utc), entry_id=f"m{d}")
            for d in range(1, 13)
        ]
        spread = [
            _entry_at(datetime(2025, month, 15, 10, tzinfo=timezone.utc), entry_id=f"s{month}")
            for month in range(4, 12)
        ]
        patterns = PatternDetector().detect_seasonal_patterns(march + spread)
        assert len(patterns) == 1
        p = patterns[0]
        assert p.id == "seasonal:3"
        assert p.pattern == "Seasonal pattern: Higher risk in March"
        assert p.frequency == 12
        assert p.recommendations[0] == "Increase preventive measures in March"


class TestCyclicalPatterns:
    def test_weekly_rhythm(self) -> None:
        patterns = PatternDetector().detect_cyclical_patterns(_daily(10, step_days=7))
        assert len(patterns) == 1
        p = patterns[0]
        assert p.id == "cyclical:7"
        assert p.pattern == "Cyclical pattern: ~7 day intervals"
        assert p.frequency == 10

    def test_half_day_periods_round_up(self) -> None:
        patterns = PatternDetector().detect_cyclical_patterns(_daily(10, step_days=2.5))
        assert patterns[0].id == "cyclical:3"

    def test_sub_daily_intervals_ignored(self) -> None:
        assert PatternDetector().detect_cyclical_patterns(_entries(["low"] * 12)) == []

    def test_irregular_intervals_ignored(self) -> None:
        offsets = [0, 1, 2, 30, 31, 32, 80, 81, 82, 140]
        history = [
            _entry_at(_BASE + timedelta(days=d), entry_id=f"i{d}") for d in offsets
        ]
        assert PatternDetector().detect_cyclical_patterns(history) == []

    def test_needs_ten_entries(self) -> None:
        assert PatternDetector().detect_cyclical_patterns(_daily(9, step_days=7)) == []


class TestDetect:
    def test_all_passes_run(self) -> None:
        history = _daily(10, trigger="work", step_days=7)
        types = {p.type for p in PatternDetector().detect(history)}
        assert types == {PatternType.TIME_BASED, PatternType.TRIGGER_BASED, PatternType.CYCLICAL}

    def test_remine_of_same_history_is_identical(self) -> None:
        history = _daily(12, trigger="work", step_days=3)
        detector = PatternDetector()
        assert detector.detect(history) == detector.detect(list(history))

    def test_empty_history(self) -> None:
        assert PatternDetector().detect([]) == []
