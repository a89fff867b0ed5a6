"""StatisticsAggregator — distributions, rates and trend over a history.

Pure: accepts entries, returns a frozen CrisisStatistics.  Entries that
cannot be read are skipped and logged; one bad record never sinks the
whole summary.
"""

from __future__ import annotations

import logging
from collections import Counter

from crisis_history.core.trend import risk_trend
from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.statistics import CrisisStatistics

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole else 0.0


class StatisticsAggregator:
    """Single-pass statistics over a user's history."""

    def compute(
        self,
        entries: list[CrisisHistoryEntry],
        pattern_count: int = 0,
    ) -> CrisisStatistics:
        if not entries:
            return CrisisStatistics(pattern_count=pattern_count)

        severity_counts: Counter[str] = Counter()
        category_counts: Counter[str] = Counter()
        false_positives = 0
        escalations = 0
        resolutions = 0
        response_total = 0.0
        response_count = 0
        interventions = 0
        successful_interventions = 0
        counted: list[CrisisHistoryEntry] = []

        for entry in entries:
            try:
                severity = entry.analysis.severity_level.value
                categories = [c.value for c in entry.analysis.detected_categories]
                escalation_required = entry.analysis.escalation_required
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed entry %s in statistics: %s",
                    getattr(entry, "id", "?"), exc,
                )
                continue

            counted.append(entry)
            severity_counts[severity] += 1
            category_counts.update(categories)

            if entry.false_positive:
                false_positives += 1
            if escalation_required:
                escalations += 1

            outcome = entry.escalation_outcome
            if outcome is not None:
                if outcome.resolved:
                    resolutions += 1
                response_total += outcome.response_time
                response_count += 1

            if entry.intervention_result is not None:
                interventions += 1
                if entry.intervention_result.successful:
                    successful_interventions += 1

        total = len(counted)
        return CrisisStatistics(
            total_events=total,
            severity_distribution=dict(severity_counts),
            category_distribution=dict(category_counts),
            false_positive_rate=_percent(false_positives, total),
            average_response_time=response_total / response_count if response_count else 0.0,
            escalation_rate=_percent(escalations, total),
            resolution_rate=_percent(resolutions, escalations),
            intervention_success_rate=_percent(successful_interventions, interventions),
            pattern_count=pattern_count,
            risk_trend=risk_trend(counted),
            last_analysis=counted[-1].timestamp if counted else None,
        )
