"""Persistence collaborators for crisis history.

The HistoryStore depends on this protocol only — swap implementations to
change the storage technology without touching the store logic.  Every
implementation must list a user's entries ordered by timestamp and replace
a single entry by id.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Protocol

from crisis_history.domain.alert import CrisisAlert
from crisis_history.domain.entry import CrisisHistoryEntry


class HistoryRepository(Protocol):
    """Append-capable, per-user-queryable store keyed by (user_id, entry_id)."""

    async def append(self, entry: CrisisHistoryEntry) -> None:
        """Persist a new entry."""
        ...

    async def replace(self, entry: CrisisHistoryEntry) -> None:
        """Overwrite the stored entry that has the same (user_id, id)."""
        ...

    async def list_for_user(self, user_id: str) -> list[CrisisHistoryEntry]:
        """All entries for *user_id*, ordered by timestamp."""
        ...

    async def append_alert(self, alert: CrisisAlert) -> None:
        ...

    async def list_alerts(self, user_id: str) -> list[CrisisAlert]:
        ...


class InMemoryHistoryRepository:
    """Process-local repository.  Also the test double for the store.

    Entries are never deleted.  This is the authoritative copy; the
    HistoryStore only caches derived per-user state on top of it.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[str, list[CrisisHistoryEntry]] = defaultdict(list)
        self._alerts: dict[str, list[CrisisAlert]] = defaultdict(list)

    async def append(self, entry: CrisisHistoryEntry) -> None:
        async with self._lock:
            self._entries[entry.user_id].append(entry)

    async def replace(self, entry: CrisisHistoryEntry) -> None:
        async with self._lock:
            entries = self._entries.get(entry.user_id, [])
            for i, existing in enumerate(entries):
                if existing.id == entry.id:
                    entries[i] = entry
                    return
            raise KeyError(f"{entry.user_id}/{entry.id}")

    async def list_for_user(self, user_id: str) -> list[CrisisHistoryEntry]:
        async with self._lock:
            # sorted() is stable: equal timestamps keep insertion order
            return sorted(self._entries.get(user_id, []), key=lambda e: e.timestamp)

    async def append_alert(self, alert: CrisisAlert) -> None:
        async with self._lock:
            self._alerts[alert.user_id].append(alert)

    async def list_alerts(self, user_id: str) -> list[CrisisAlert]:
        async with self._lock:
            return list(self._alerts.get(user_id, []))
