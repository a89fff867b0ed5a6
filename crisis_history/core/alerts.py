"""AlertManager — derives time-bound alerts from recorded events.

Alerts are append-only.  Nothing is removed on write; expiry is applied
when alerts are read.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from crisis_history.domain.alert import CrisisAlert
from crisis_history.domain.entry import CrisisHistoryEntry
from crisis_history.domain.enums import AlertSeverity, AlertType
from crisis_history.foundation.identifiers import new_id

logger = logging.getLogger(__name__)

ESCALATION_ACTIONS = (
    "Contact crisis counselor",
    "Activate safety plan",
    "Notify emergency contacts",
)


class AlertManager:
    """Evaluates the fixed alert rules.

    Args:
        alert_lifetime: How long a derived alert stays active.
    """

    def __init__(self, alert_lifetime: timedelta = timedelta(hours=24)) -> None:
        self._alert_lifetime = alert_lifetime

    def derive(self, entry: CrisisHistoryEntry, now: datetime) -> list[CrisisAlert]:
        """Alerts raised by a newly recorded *entry*."""
        alerts: list[CrisisAlert] = []
        if entry.severity.is_severe:
            alerts.append(CrisisAlert(
                id=new_id("alert"),
                user_id=entry.user_id,
                type=AlertType.ESCALATION_RISK,
                severity=AlertSeverity.URGENT,
                message="High-risk crisis event detected requiring immediate attention",
                timestamp=now,
                action_required=True,
                suggested_actions=list(ESCALATION_ACTIONS),
                expires_at=now + self._alert_lifetime,
                entry_id=entry.id,
            ))
        for alert in alerts:
            logger.info(
                "Alert %s (%s/%s) raised for user %s",
                alert.id, alert.type.value, alert.severity.value, alert.user_id,
            )
        return alerts

    def delivery_failed(self, entry: CrisisHistoryEntry, now: datetime, reason: str) -> CrisisAlert:
        """Internal alert recorded when an escalation page could not be delivered."""
        return CrisisAlert(
            id=new_id("alert"),
            user_id=entry.user_id,
            type=AlertType.INTERVENTION_NEEDED,
            severity=AlertSeverity.CRITICAL,
            message=f"Escalation page could not be delivered: {reason}",
            timestamp=now,
            action_required=True,
            suggested_actions=["Contact user directly", "Page the on-call responder manually"],
            expires_at=now + self._alert_lifetime,
            entry_id=entry.id,
        )

    @staticmethod
    def active(alerts: list[CrisisAlert], now: datetime) -> list[CrisisAlert]:
        """Alerts whose expiry is unset or still in the future."""
        return [a for a in alerts if a.is_active(now)]
