"""Error taxonomy for the crisis-history core.

    EntryValidationError     malformed input, rejected before any state change
    NotFoundError            unknown user or entry, surfaced to the caller
    PersistenceError         storage collaborator failure, always propagated
    EscalationDeliveryError  paging failure, logged and alerted, never rolls back
"""

from __future__ import annotations


class CrisisHistoryError(Exception):
    """Base class for every error raised by this package."""


class EntryValidationError(CrisisHistoryError):
    """Raised when input fails validation at the service boundary."""


class NotFoundError(CrisisHistoryError):
    """Raised when an entry does not exist or does not belong to the user."""

    def __init__(self, user_id: str, entry_id: str | None = None) -> None:
        self.user_id = user_id
        self.entry_id = entry_id
        if entry_id is None:
            msg = f"No history for user '{user_id}'"
        else:
            msg = f"Entry '{entry_id}' not found for user '{user_id}'"
        super().__init__(msg)


class PersistenceError(CrisisHistoryError):
    """Raised when the persistence collaborator fails."""


class EscalationDeliveryError(CrisisHistoryError):
    """Raised when the paging collaborator fails or times out."""
