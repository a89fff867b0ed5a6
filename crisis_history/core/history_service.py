"""CrisisHistoryService — the API surface of the crisis history core.

Wires the HistoryStore, PatternDetector, StatisticsAggregator,
RiskPredictor, AlertManager and AutoEscalationDecider together:

    record_event      append, schedule re-mine, derive alerts, decide escalation
    annotate_event    apply one post-hoc annotation, schedule re-mine
    query_history     filtered view of the user's history
    get_statistics    derived CrisisStatistics
    get_patterns      latest fully published pattern set
    predict_risk      stateless RiskPrediction
    get_active_alerts unexpired alerts
    get_analytics     longitudinal HistoryAnalytics

Collaborators are injected so tests can substitute doubles.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from crisis_history.core.alerts import AlertManager
from crisis_history.core.analytics import compute_analytics
from crisis_history.core.escalation import AutoEscalationDecider
from crisis_history.core.pattern_detector import PatternDetector
from crisis_history.core.risk_predictor import RiskPredictor
from crisis_history.core.statistics import StatisticsAggregator
from crisis_history.domain.alert import CrisisAlert
from crisis_history.domain.entry import (
    MAX_USER_ID_LENGTH,
    AnnotationPatch,
    ContextualData,
    CrisisAnalysis,
    CrisisHistoryEntry,
    HistoryFilter,
)
from crisis_history.domain.enums import AnnotationKind, Timeframe
from crisis_history.domain.errors import EntryValidationError, EscalationDeliveryError, NotFoundError
from crisis_history.domain.escalation import EscalationPage
from crisis_history.domain.pattern import CrisisPattern
from crisis_history.domain.prediction import RiskPrediction
from crisis_history.domain.statistics import CrisisStatistics, HistoryAnalytics
from crisis_history.foundation.clock import utc_now
from crisis_history.services.escalation_dispatcher import EscalationDispatcher
from crisis_history.services.mining import PatternMiningScheduler
from crisis_history.services.paging import Pager
from crisis_history.store.history_store import HistoryStore, StoreSummary

logger = logging.getLogger(__name__)


def _validated(model: type, value: Any, what: str) -> Any:
    """Coerce *value* into *model*, mapping pydantic errors to EntryValidationError."""
    if value is None or isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise EntryValidationError(f"invalid {what}: {exc}") from exc


class CrisisHistoryService:
    """Explicitly constructed service; one instance per deployment."""

    def __init__(
        self,
        store: HistoryStore,
        pager: Pager,
        detector: PatternDetector | None = None,
        aggregator: StatisticsAggregator | None = None,
        predictor: RiskPredictor | None = None,
        alert_manager: AlertManager | None = None,
        decider: AutoEscalationDecider | None = None,
        paging_timeout: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._detector = detector or PatternDetector()
        self._aggregator = aggregator or StatisticsAggregator()
        self._predictor = predictor or RiskPredictor()
        self._alert_manager = alert_manager or AlertManager()
        self._decider = decider or AutoEscalationDecider()
        self._clock = clock
        self._mining = PatternMiningScheduler(self._remine)
        self._dispatcher = EscalationDispatcher(
            pager, timeout=paging_timeout, on_failure=self._on_delivery_failure,
        )

    # ── Writes ───────────────────────────────────────────────────────────

    async def record_event(
        self,
        user_id: str,
        analysis: CrisisAnalysis | dict,
        contextual_data: ContextualData | dict | None = None,
    ) -> CrisisHistoryEntry:
        """Record a classifier verdict for *user_id*.

        Returns once the entry is persisted and its alerts are stored.
        Pattern re-mining and escalation paging continue in the background.
        The escalation page is dispatched before alerts are stored, so a
        failing alert write never suppresses it.
        """
        if not user_id or not user_id.strip():
            raise EntryValidationError("user_id must be a non-empty string")
        if len(user_id) > MAX_USER_ID_LENGTH:
            raise EntryValidationError(f"user_id must be at most {MAX_USER_ID_LENGTH} characters")
        analysis = _validated(CrisisAnalysis, analysis, "analysis")
        contextual_data = _validated(ContextualData, contextual_data, "contextual data")

        entry, snapshot = await self._store.append(user_id, analysis, contextual_data)
        self._mining.schedule(user_id)
        now = self._clock()

        recent = HistoryFilter().apply(list(snapshot))
        trigger = self._decider.trigger_for(recent, entry)
        if trigger is not None:
            logger.warning(
                "Auto-escalation for user %s (entry %s): %s",
                user_id, entry.id, trigger.value,
            )
            self._dispatcher.dispatch(self._decider.build_page(entry, trigger, now))

        await self._store.append_alerts(user_id, self._alert_manager.derive(entry, now))
        return entry

    async def annotate_event(
        self,
        user_id: str,
        entry_id: str,
        patch: AnnotationPatch | dict,
    ) -> CrisisHistoryEntry:
        patch = _validated(AnnotationPatch, patch, "annotation")
        entry = await self._store.annotate(user_id, entry_id, patch)
        if patch.kind == AnnotationKind.FALSE_POSITIVE:
            logger.info("False positive recorded: %s (user %s)", entry_id, user_id)
        self._mining.schedule(user_id)
        return entry

    # ── Reads ────────────────────────────────────────────────────────────

    async def query_history(
        self,
        user_id: str,
        history_filter: HistoryFilter | dict | None = None,
    ) -> list[CrisisHistoryEntry]:
        history_filter = _validated(HistoryFilter, history_filter, "history filter")
        return await self._store.query(user_id, history_filter)

    async def get_patterns(self, user_id: str) -> list[CrisisPattern]:
        """Latest pattern set, reflecting every write made before this call."""
        await self._mining.wait_for(user_id)
        patterns = await self._store.patterns(user_id)
        if patterns is None:
            # Cache was (re)hydrated since the last mine: replay from history
            patterns = await self._remine(user_id)
        return list(patterns)

    async def get_statistics(self, user_id: str) -> CrisisStatistics:
        entries = await self._store.entries(user_id)
        patterns = await self.get_patterns(user_id) if entries else []
        return self._aggregator.compute(entries, pattern_count=len(patterns))

    async def predict_risk(
        self,
        user_id: str,
        timeframe: Timeframe | str = Timeframe.HOURS_24,
    ) -> RiskPrediction:
        try:
            timeframe = Timeframe(timeframe)
        except ValueError as exc:
            raise EntryValidationError(f"unknown timeframe '{timeframe}'") from exc

        history = await self._store.query(
            user_id, HistoryFilter(limit=self._predictor.history_limit),
        )
        patterns = await self.get_patterns(user_id)
        return self._predictor.predict(history, patterns, timeframe, now=self._clock())

    async def get_active_alerts(self, user_id: str) -> list[CrisisAlert]:
        alerts = await self._store.alerts(user_id)
        return self._alert_manager.active(alerts, self._clock())

    async def get_analytics(self, user_id: str) -> HistoryAnalytics | None:
        return compute_analytics(await self._store.entries(user_id))

    async def should_escalate(self, user_id: str, entry: CrisisHistoryEntry) -> bool:
        """Re-evaluate the auto-escalation rule for *entry* against current history."""
        entries = await self._store.entries(user_id)
        for index, existing in enumerate(entries):
            if existing.id == entry.id:
                break
        else:
            raise NotFoundError(user_id, entry.id)
        recent = HistoryFilter().apply(entries[:index + 1])
        return self._decider.should_escalate(recent, entry)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def settle(self) -> None:
        """Wait for background mining and paging started so far."""
        await self._mining.wait_all()
        await self._dispatcher.drain()

    async def shutdown(self) -> None:
        """Drain in-flight pattern mining and escalation pages."""
        await self._mining.drain()
        await self._dispatcher.drain()
        logger.info("Crisis history service shut down cleanly")

    async def store_summary(self) -> StoreSummary:
        return await self._store.summary()

    @property
    def mining_in_flight(self) -> int:
        return self._mining.in_flight

    @property
    def pages_in_flight(self) -> int:
        return self._dispatcher.in_flight

    # ── Internals ────────────────────────────────────────────────────────

    async def _remine(self, user_id: str) -> tuple[CrisisPattern, ...]:
        return await self._store.remine(user_id, self._detector.detect)

    async def _on_delivery_failure(self, page: EscalationPage, error: EscalationDeliveryError) -> None:
        entries = await self._store.entries(page.user_id)
        entry = next((e for e in entries if e.id == page.entry_id), None)
        if entry is None:
            logger.error("Entry %s vanished before failure alert could be raised", page.entry_id)
            return
        alert = self._alert_manager.delivery_failed(entry, self._clock(), str(error))
        await self._store.append_alerts(page.user_id, [alert])
