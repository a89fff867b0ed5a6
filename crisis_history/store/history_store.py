"""Per-user crisis history store with async-safe access and bounded caching.

Design notes:
    - The repository is the authoritative, append-only copy.  The store
      keeps a bounded LRU cache of per-user state on top of it and evicts
      users that are idle past the TTL or beyond the size bound.  Evicted
      users are rehydrated from the repository on their next access.
    - Each user has its own asyncio.Lock.  Writes (record, annotate) and
      pattern re-mining for that user are serialized by it.  Different
      users never contend.
    - Readers never take the lock.  They read immutable tuples that
      writers replace wholesale, so a reader sees either the state before
      a write or the state after it, never a write in progress.
    - A user that is being served is pinned and cannot be evicted.
    - Patterns are None until mined for the current cache generation.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from crisis_history.domain.alert import CrisisAlert
from crisis_history.domain.entry import (
    AnnotationPatch,
    ContextualData,
    CrisisAnalysis,
    CrisisHistoryEntry,
    HistoryFilter,
)
from crisis_history.domain.enums import DayOfWeek, TimeOfDay
from crisis_history.domain.errors import CrisisHistoryError, NotFoundError, PersistenceError
from crisis_history.domain.pattern import CrisisPattern
from crisis_history.foundation.clock import utc_now
from crisis_history.foundation.identifiers import new_id
from crisis_history.store.repository import HistoryRepository, InMemoryHistoryRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreSummary:
    """Aggregate cache observations.  Observability only."""

    __slots__ = ("cached_users", "cached_entries", "pinned_users", "mined_users")

    def __init__(
        self,
        cached_users: int = 0,
        cached_entries: int = 0,
        pinned_users: int = 0,
        mined_users: int = 0,
    ) -> None:
        self.cached_users = cached_users
        self.cached_entries = cached_entries
        self.pinned_users = pinned_users
        self.mined_users = mined_users

    def to_dict(self) -> dict:
        return {
            "cached_users": self.cached_users,
            "cached_entries": self.cached_entries,
            "pinned_users": self.pinned_users,
            "mined_users": self.mined_users,
        }


class _UserState:
    """Cached state for one user.  Tuples are swapped, never mutated."""

    __slots__ = ("lock", "hydrated", "entries", "patterns", "alerts", "last_access", "pins")

    def __init__(self, now: datetime) -> None:
        self.lock = asyncio.Lock()
        self.hydrated = False
        self.entries: tuple[CrisisHistoryEntry, ...] = ()
        self.patterns: tuple[CrisisPattern, ...] | None = None
        self.alerts: tuple[CrisisAlert, ...] = ()
        self.last_access = now
        self.pins = 0


class HistoryStore:
    """Async-safe event store for crisis history entries.

    Args:
        repository: Persistence collaborator; defaults to an in-memory one.
        max_cached_users: Upper bound on users held in the cache.
        idle_ttl: Users untouched for longer than this are evicted.
        persistence_timeout: Seconds allowed for any single repository call.
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        repository: HistoryRepository | None = None,
        max_cached_users: int = 10_000,
        idle_ttl: timedelta = timedelta(hours=1),
        persistence_timeout: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_cached_users < 1:
            raise ValueError("max_cached_users must be at least 1")

        self._repository = repository or InMemoryHistoryRepository()
        self._max_cached_users = max_cached_users
        self._idle_ttl = idle_ttl
        self._persistence_timeout = persistence_timeout
        self._clock = clock
        self._registry_lock = asyncio.Lock()
        self._users: OrderedDict[str, _UserState] = OrderedDict()

    # ── Writes ───────────────────────────────────────────────────────────

    async def append(
        self,
        user_id: str,
        analysis: CrisisAnalysis,
        contextual_data: ContextualData | None = None,
    ) -> tuple[CrisisHistoryEntry, tuple[CrisisHistoryEntry, ...]]:
        """Append a new entry for *user_id*.

        Returns the entry and the user's history snapshot that includes it.
        Repository failures propagate as PersistenceError and leave the
        cached history untouched.
        """
        async with self._user(user_id) as state:
            async with state.lock:
                now = self._clock()
                entry = CrisisHistoryEntry(
                    id=new_id(),
                    timestamp=now,
                    user_id=user_id,
                    analysis=analysis,
                    contextual_data=self._complete_context(contextual_data, now),
                )
                await self._persist(self._repository.append(entry), "append entry")
                state.entries = state.entries + (entry,)
                logger.info(
                    "Recorded entry %s for user %s (severity=%s, total=%d)",
                    entry.id, user_id, entry.severity.value, len(state.entries),
                )
                return entry, state.entries

    async def annotate(
        self,
        user_id: str,
        entry_id: str,
        patch: AnnotationPatch,
    ) -> CrisisHistoryEntry:
        """Apply *patch* to an existing entry.  Last write of a kind wins."""
        async with self._user(user_id) as state:
            async with state.lock:
                for index, existing in enumerate(state.entries):
                    if existing.id == entry_id:
                        break
                else:
                    raise NotFoundError(user_id, entry_id)

                updated = existing.annotate(patch)
                await self._persist(self._repository.replace(updated), "replace entry")
                entries = list(state.entries)
                entries[index] = updated
                state.entries = tuple(entries)
                logger.info(
                    "Annotated entry %s for user %s with %s",
                    entry_id, user_id, patch.kind.value,
                )
                return updated

    async def remine(
        self,
        user_id: str,
        detect: Callable[[list[CrisisHistoryEntry]], list[CrisisPattern]],
    ) -> tuple[CrisisPattern, ...]:
        """Recompute patterns from the full history and publish them atomically."""
        async with self._user(user_id) as state:
            async with state.lock:
                patterns = tuple(detect(list(state.entries)))
                state.patterns = patterns
                logger.info(
                    "Published %d pattern(s) for user %s from %d entries",
                    len(patterns), user_id, len(state.entries),
                )
                return patterns

    async def append_alerts(self, user_id: str, alerts: list[CrisisAlert]) -> None:
        if not alerts:
            return
        async with self._user(user_id) as state:
            async with state.lock:
                # Cache tracks the repository alert by alert, even if a later write fails
                for alert in alerts:
                    await self._persist(self._repository.append_alert(alert), "append alert")
                    state.alerts = state.alerts + (alert,)

    # ── Reads (lock-free snapshots) ──────────────────────────────────────

    async def entries(self, user_id: str) -> list[CrisisHistoryEntry]:
        """Full history for *user_id*, oldest first, false positives included."""
        async with self._user(user_id) as state:
            return list(state.entries)

    async def query(self, user_id: str, history_filter: HistoryFilter | None = None) -> list[CrisisHistoryEntry]:
        history_filter = history_filter or HistoryFilter()
        async with self._user(user_id) as state:
            return history_filter.apply(list(state.entries))

    async def patterns(self, user_id: str) -> tuple[CrisisPattern, ...] | None:
        """Published patterns, or None if none were mined since hydration."""
        async with self._user(user_id) as state:
            return state.patterns

    async def alerts(self, user_id: str) -> list[CrisisAlert]:
        async with self._user(user_id) as state:
            return list(state.alerts)

    async def summary(self) -> StoreSummary:
        async with self._registry_lock:
            states = list(self._users.values())
        return StoreSummary(
            cached_users=len(states),
            cached_entries=sum(len(s.entries) for s in states),
            pinned_users=sum(1 for s in states if s.pins),
            mined_users=sum(1 for s in states if s.patterns is not None),
        )

    # ── Internals ────────────────────────────────────────────────────────

    @asynccontextmanager
    async def _user(self, user_id: str) -> AsyncIterator[_UserState]:
        """Pin the cached state for *user_id*, hydrating it if needed."""
        async with self._registry_lock:
            now = self._clock()
            state = self._users.get(user_id)
            if state is None:
                state = _UserState(now)
                self._users[user_id] = state
            self._users.move_to_end(user_id)
            state.last_access = now
            state.pins += 1
            self._evict(now)

        try:
            if not state.hydrated:
                await self._hydrate(user_id, state)
            yield state
        finally:
            state.pins -= 1

    async def _hydrate(self, user_id: str, state: _UserState) -> None:
        async with state.lock:
            if state.hydrated:
                return
            entries = await self._persist(self._repository.list_for_user(user_id), "list entries")
            alerts = await self._persist(self._repository.list_alerts(user_id), "list alerts")
            state.entries = tuple(entries)
            state.alerts = tuple(alerts)
            state.hydrated = True
            logger.debug("Hydrated user %s with %d entries", user_id, len(entries))

    def _evict(self, now: datetime) -> None:
        """Must be called while holding self._registry_lock."""
        evicted = 0
        for user_id in list(self._users):
            state = self._users[user_id]
            over_bound = len(self._users) > self._max_cached_users
            idle = now - state.last_access > self._idle_ttl
            if not (over_bound or idle):
                # Remaining users are more recently used
                break
            if state.pins or state.lock.locked():
                continue
            del self._users[user_id]
            evicted += 1
        if evicted:
            logger.info("Evicted %d user(s) from history cache", evicted)

    async def _persist(self, call: Awaitable[T], action: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._persistence_timeout)
        except asyncio.TimeoutError as exc:
            raise PersistenceError(f"{action} timed out after {self._persistence_timeout}s") from exc
        except CrisisHistoryError:
            raise
        except Exception as exc:
            raise PersistenceError(f"{action} failed: {exc}") from exc

    @staticmethod
    def _complete_context(context: ContextualData | None, now: datetime) -> ContextualData:
        """Fill time-of-day and day-of-week from the entry timestamp when absent."""
        context = context or ContextualData()
        update = {}
        if context.time_of_day is None:
            update["time_of_day"] = TimeOfDay.for_hour(now.hour)
        if context.day_of_week is None:
            update["day_of_week"] = DayOfWeek.for_weekday(now.weekday())
        return context.model_copy(update=update) if update else context
