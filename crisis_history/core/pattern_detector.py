"""PatternDetector — mines five independent pattern families from a history.

Design principles:
    1. Pure function: accepts the full entry list, returns a list of patterns.
    2. Every pass runs, even when earlier passes find nothing.
    3. Output is deterministic for a given history (ids are '<type>:<key>',
       last_occurrence is taken from the entries themselves), so a re-mine
       of an unchanged history yields an identical pattern set.

Passes:
    time_based    hour-of-day buckets with >= 3 events
    trigger_based contextual triggers recurring >= 2 times
    escalation    > 2 rising severity steps across the last 5 entries
    seasonal      calendar months above 1.5x the uniform share (>= 20 entries)
    cyclical      regular inter-event intervals (>= 10 entries)
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from datetime import datetime

from crisis_history.core.trend import is_escalating
from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import PatternSeverity, PatternType
from crisis_history.domain.pattern import CrisisPattern

logger = logging.getLogger(__name__)

TIME_MIN_COUNT = 3
TIME_HIGH_COUNT = 5
TRIGGER_MIN_COUNT = 2
TRIGGER_HIGH_COUNT = 4
SEASONAL_MIN_HISTORY = 20
SEASONAL_PEAK_FACTOR = 1.5
CYCLICAL_MIN_HISTORY = 10

_SECONDS_PER_DAY = 24 * 60 * 60


class PatternDetector:
    """Stateless pattern mining over a user's full history."""

    def detect(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        entries = self._readable(entries)
        patterns: list[CrisisPattern] = []
        patterns.extend(self.detect_time_patterns(entries))
        patterns.extend(self.detect_trigger_patterns(entries))
        patterns.extend(self.detect_escalation_patterns(entries))
        patterns.extend(self.detect_seasonal_patterns(entries))
        patterns.extend(self.detect_cyclical_patterns(entries))
        return patterns

    # ── Passes ───────────────────────────────────────────────────────────

    def detect_time_patterns(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        buckets: dict[int, list[datetime]] = defaultdict(list)
        for entry in entries:
            buckets[entry.timestamp.hour].append(entry.timestamp)

        total = len(entries)
        patterns = []
        for hour in sorted(buckets):
            stamps = buckets[hour]
            count = len(stamps)
            if count < TIME_MIN_COUNT:
                continue
            window = f"{hour}:00-{hour + 1}:00"
            patterns.append(CrisisPattern(
                id=f"{PatternType.TIME_BASED.value}:{hour}",
                type=PatternType.TIME_BASED,
                pattern=f"Peak crisis time: {window}",
                frequency=count,
                last_occurrence=max(stamps),
                confidence=min(count / total, 1.0),
                severity=PatternSeverity.HIGH if count >= TIME_HIGH_COUNT else PatternSeverity.MEDIUM,
                predictive_value=min(count / total * 2, 1.0),
                recommendations=[f"Increase monitoring during {window}"],
            ))
        return patterns

    def detect_trigger_patterns(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        buckets: dict[str, list[datetime]] = defaultdict(list)
        for entry in entries:
            if entry.trigger:
                buckets[entry.trigger].append(entry.timestamp)

        total = len(entries)
        patterns = []
        for trigger in sorted(buckets):
            stamps = buckets[trigger]
            count = len(stamps)
            if count < TRIGGER_MIN_COUNT:
                continue
            patterns.append(CrisisPattern(
                id=f"{PatternType.TRIGGER_BASED.value}:{trigger}",
                type=PatternType.TRIGGER_BASED,
                pattern=f"Recurring trigger: {trigger}",
                frequency=count,
                last_occurrence=max(stamps),
                confidence=min(count / total * 2, 1.0),
                severity=PatternSeverity.HIGH if count >= TRIGGER_HIGH_COUNT else PatternSeverity.MEDIUM,
                predictive_value=min(count / total * 1.5, 1.0),
                recommendations=[
                    f"Develop coping strategies for {trigger}",
                    f"Early intervention when {trigger} occurs",
                ],
            ))
        return patterns

    def detect_escalation_patterns(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        if not is_escalating(entries):
            return []
        return [CrisisPattern(
            id=f"{PatternType.ESCALATION.value}:recent",
            type=PatternType.ESCALATION,
            pattern="Severity escalation detected",
            frequency=1,
            last_occurrence=entries[-1].timestamp,
            confidence=0.8,
            severity=PatternSeverity.HIGH,
            predictive_value=0.9,
            recommendations=[
                "Immediate intervention needed",
                "Increase monitoring frequency",
                "Review treatment plan",
            ],
        )]

    def detect_seasonal_patterns(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        # Too little data to talk about seasons
        if len(entries) < SEASONAL_MIN_HISTORY:
            return []

        buckets: dict[int, list[datetime]] = defaultdict(list)
        for entry in entries:
            buckets[entry.timestamp.month].append(entry.timestamp)

        expected = len(entries) / 12
        patterns = []
        for month in sorted(buckets):
            stamps = buckets[month]
            if len(stamps) <= expected * SEASONAL_PEAK_FACTOR:
                continue
            name = calendar.month_name[month]
            patterns.append(CrisisPattern(
                id=f"{PatternType.SEASONAL.value}:{month}",
                type=PatternType.SEASONAL,
                pattern=f"Seasonal pattern: Higher risk in {name}",
                frequency=len(stamps),
                last_occurrence=max(stamps),
                confidence=0.7,
                severity=PatternSeverity.MEDIUM,
                predictive_value=0.6,
                recommendations=[
                    f"Increase preventive measures in {name}",
                    "Consider seasonal affective factors",
                ],
            ))
        return patterns

    def detect_cyclical_patterns(self, entries: list[CrisisHistoryEntry]) -> list[CrisisPattern]:
        if len(entries) < CYCLICAL_MIN_HISTORY:
            return []

        stamps = sorted(e.timestamp for e in entries)
        intervals = [
            (later - earlier).total_seconds() / _SECONDS_PER_DAY
            for earlier, later in zip(stamps, stamps[1:])
        ]
        mean = sum(intervals) / len(intervals)
        variance = sum((i - mean) ** 2 for i in intervals) / len(intervals)

        # Low spread around a period of more than a day
        if not (variance < mean * 0.5 and mean > 1):
            return []

        period = int(mean + 0.5)
        return [CrisisPattern(
            id=f"{PatternType.CYCLICAL.value}:{period}",
            type=PatternType.CYCLICAL,
            pattern=f"Cyclical pattern: ~{period} day intervals",
            frequency=len(entries),
            last_occurrence=stamps[-1],
            confidence=0.6,
            severity=PatternSeverity.MEDIUM,
            predictive_value=0.7,
            recommendations=[
                "Monitor for next predicted occurrence",
                "Implement preventive measures",
            ],
        )]

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _readable(entries: list[CrisisHistoryEntry]) -> list[CrisisHistoryEntry]:
        """Drop entries whose timestamp or severity cannot be read."""
        readable = []
        for entry in entries:
            try:
                entry.timestamp.hour
                entry.severity.rank
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed entry %s in pattern mining: %s",
                    getattr(entry, "id", "?"), exc,
                )
                continue
            readable.append(entry)
        return readable
