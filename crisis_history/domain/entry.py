"""CrisisHistoryEntry — one ingested crisis-detection event.

An entry is created exactly once per classifier verdict and never deleted.
The classifier ``analysis`` and the time-of-day / day-of-week context are
fixed at creation.  Responders and users may later attach annotations
(false-positive flag, feedback, escalation outcome, intervention result);
each annotation kind is last-write-wins.

All models here are frozen.  Annotating an entry produces a new entry
object, which the store swaps in atomically.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from crisis_history.domain.enums import (
    AnnotationKind,
    CrisisCategory,
    DayOfWeek,
    SeverityLevel,
    SortField,
    SortOrder,
    TimeOfDay,
)
from crisis_history.foundation.clock import ensure_utc

MAX_USER_ID_LENGTH = 256


# ── Classifier verdict ───────────────────────────────────────────────────────

class CrisisAnalysis(BaseModel):
    """The upstream classifier's verdict, consumed as-is."""

    severity_level: SeverityLevel
    risk_level: float = Field(..., ge=0.0, description="Numeric risk score from the classifier")
    detected_categories: list[CrisisCategory] = Field(default_factory=list)
    escalation_required: bool = False

    model_config = {"frozen": True}

    @field_validator("detected_categories")
    @classmethod
    def categories_are_a_set(cls, v: list[CrisisCategory]) -> list[CrisisCategory]:
        # Categories are a set; keep first-seen order for stable output
        return list(dict.fromkeys(v))


# ── Context & annotations ────────────────────────────────────────────────────

class ContextualData(BaseModel):
    """Circumstances surrounding the event.

    ``time_of_day`` and ``day_of_week`` are filled from the entry timestamp
    when the caller does not supply them.
    """

    time_of_day: Optional[TimeOfDay] = None
    day_of_week: Optional[DayOfWeek] = None
    location: Optional[str] = Field(default=None, max_length=256)
    trigger: Optional[str] = Field(default=None, min_length=1, max_length=128)
    mood: Optional[str] = Field(default=None, max_length=64)
    stress_level: Optional[int] = Field(default=None, ge=1, le=10)

    model_config = {"frozen": True}


class UserFeedback(BaseModel):
    helpful: bool
    comment: Optional[str] = Field(default=None, max_length=2000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)

    model_config = {"frozen": True}


class EscalationOutcome(BaseModel):
    contacted: list[str] = Field(default_factory=list)
    response_time: float = Field(..., ge=0.0, description="Minutes until a responder engaged")
    resolved: bool
    effectiveness: int = Field(..., ge=1, le=10)
    follow_up_actions: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class InterventionResult(BaseModel):
    intervention_type: str = Field(..., min_length=1, max_length=128)
    successful: bool
    duration: float = Field(..., ge=0.0, description="Minutes")
    resources: list[str] = Field(default_factory=list)
    outcome: str = ""

    model_config = {"frozen": True}


class AnnotationPatch(BaseModel):
    """Exactly one post-hoc annotation to apply to an existing entry.

    For ``false_positive`` an optional ``comment`` is recorded as negative
    feedback (helpful=False, rating=1).
    """

    kind: AnnotationKind
    comment: Optional[str] = Field(default=None, max_length=2000)
    escalation_outcome: Optional[EscalationOutcome] = None
    intervention_result: Optional[InterventionResult] = None
    feedback: Optional[UserFeedback] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def payload_matches_kind(self) -> AnnotationPatch:
        payloads = {
            AnnotationKind.ESCALATION_OUTCOME: self.escalation_outcome,
            AnnotationKind.INTERVENTION_RESULT: self.intervention_result,
            AnnotationKind.FEEDBACK: self.feedback,
        }
        for kind, payload in payloads.items():
            if kind == self.kind and payload is None:
                raise ValueError(f"annotation '{kind.value}' requires a '{kind.value}' payload")
            if kind != self.kind and payload is not None:
                raise ValueError(f"'{kind.value}' payload given for annotation '{self.kind.value}'")
        return self


# ── Entry ────────────────────────────────────────────────────────────────────

class CrisisHistoryEntry(BaseModel):
    """One recorded crisis-detection event with its optional annotations."""

    id: str
    timestamp: datetime
    user_id: str = Field(..., min_length=1, max_length=MAX_USER_ID_LENGTH)
    analysis: CrisisAnalysis
    contextual_data: Optional[ContextualData] = None

    false_positive: bool = False
    user_feedback: Optional[UserFeedback] = None
    escalation_outcome: Optional[EscalationOutcome] = None
    intervention_result: Optional[InterventionResult] = None

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def severity(self) -> SeverityLevel:
        return self.analysis.severity_level

    @property
    def trigger(self) -> str | None:
        if self.contextual_data is None:
            return None
        return self.contextual_data.trigger

    def annotate(self, patch: AnnotationPatch) -> CrisisHistoryEntry:
        """Return a copy of this entry with *patch* applied.

        Only annotation fields change.  A repeated annotation of the same
        kind replaces the previous value wholesale (no field merging).
        """
        if patch.kind == AnnotationKind.FALSE_POSITIVE:
            update: dict = {"false_positive": True}
            if patch.comment:
                update["user_feedback"] = UserFeedback(
                    helpful=False, comment=patch.comment, rating=1,
                )
        elif patch.kind == AnnotationKind.ESCALATION_OUTCOME:
            update = {"escalation_outcome": patch.escalation_outcome}
        elif patch.kind == AnnotationKind.INTERVENTION_RESULT:
            update = {"intervention_result": patch.intervention_result}
        else:
            update = {"user_feedback": patch.feedback}
        return self.model_copy(update=update)


# ── Query filter ─────────────────────────────────────────────────────────────

class HistoryFilter(BaseModel):
    """Filter, sort and limit options for ``Query``.

    ``limit`` keeps the *last* N entries after sorting, so with the default
    insertion order it returns the most recent N.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    severities: list[SeverityLevel] = Field(default_factory=list)
    include_false_positives: bool = False
    sort_by: Optional[SortField] = None
    sort_order: SortOrder = SortOrder.ASC
    limit: Optional[int] = Field(default=None, ge=1)

    model_config = {"frozen": True}

    @field_validator("start", "end")
    @classmethod
    def bounds_are_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    def apply(self, entries: list[CrisisHistoryEntry]) -> list[CrisisHistoryEntry]:
        """Filter, sort and trim *entries* (which are in insertion order)."""
        selected = entries
        if not self.include_false_positives:
            selected = [e for e in selected if not e.false_positive]
        if self.start is not None:
            selected = [e for e in selected if e.timestamp >= self.start]
        if self.end is not None:
            selected = [e for e in selected if e.timestamp <= self.end]
        if self.severities:
            wanted = set(self.severities)
            selected = [e for e in selected if e.severity in wanted]

        if self.sort_by is not None:
            # sorted() is stable; reverse=True keeps ties in insertion order
            selected = sorted(
                selected,
                key=_SORT_KEYS[self.sort_by],
                reverse=self.sort_order == SortOrder.DESC,
            )

        if self.limit is not None:
            selected = selected[-self.limit:]
        return list(selected)


_SORT_KEYS = {
    SortField.TIMESTAMP: lambda e: e.timestamp,
    SortField.SEVERITY: lambda e: e.severity.rank,
    SortField.RISK: lambda e: e.analysis.risk_level,
}
