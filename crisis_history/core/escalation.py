"""AutoEscalationDecider — pure rule deciding when a human must be paged.

Escalate when either:
    - the newest entry is critical, or
    - at least 3 of the most recent 5 entries are high or critical.
"""

from __future__ import annotations

from datetime import datetime

from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import SeverityLevel
from crisis_history.domain.escalation import EscalationPage, EscalationTrigger

RECENT_WINDOW = 5
SEVERE_THRESHOLD = 3


class AutoEscalationDecider:
    """Stateless escalation rule and page builder."""

    def __init__(self, target_audience: str = "crisis-escalation-team") -> None:
        self._target_audience = target_audience

    def trigger_for(
        self,
        recent: list[CrisisHistoryEntry],
        new_entry: CrisisHistoryEntry,
    ) -> EscalationTrigger | None:
        """Which rule fires for *new_entry*, given the user's *recent* history.

        *recent* is the user's history, oldest first, already including
        *new_entry*.  Only the last five entries are considered.
        """
        if new_entry.severity == SeverityLevel.CRITICAL:
            return EscalationTrigger.CRITICAL_EVENT
        severe = sum(1 for e in recent[-RECENT_WINDOW:] if e.severity.is_severe)
        if severe >= SEVERE_THRESHOLD:
            return EscalationTrigger.REPEATED_HIGH_SEVERITY
        return None

    def should_escalate(
        self,
        recent: list[CrisisHistoryEntry],
        new_entry: CrisisHistoryEntry,
    ) -> bool:
        return self.trigger_for(recent, new_entry) is not None

    def build_page(
        self,
        new_entry: CrisisHistoryEntry,
        trigger: EscalationTrigger,
        now: datetime,
    ) -> EscalationPage:
        if trigger == EscalationTrigger.CRITICAL_EVENT:
            reason = "a critical-severity crisis event"
        else:
            reason = f"{SEVERE_THRESHOLD} or more high-severity events among the last {RECENT_WINDOW}"
        return EscalationPage(
            target_audience=self._target_audience,
            title="Auto-Escalation Triggered",
            message=f"User {new_entry.user_id} requires immediate attention: {reason}",
            user_id=new_entry.user_id,
            entry_id=new_entry.id,
            trigger=trigger,
            created_at=now,
        )
