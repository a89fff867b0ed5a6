"""Fire-and-forget delivery of escalation pages.

Delivery runs in a background task so Record returns without waiting on
the pager.  Failures are logged at CRITICAL and handed to the failure
callback (which records an internal alert).  They never roll back the
recorded event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from crisis_history.domain.errors import EscalationDeliveryError
from crisis_history.domain.escalation import EscalationPage
from crisis_history.services.paging import Pager

logger = logging.getLogger(__name__)

FailureHandler = Callable[[EscalationPage, EscalationDeliveryError], Awaitable[None]]


class EscalationDispatcher:
    """Delivers pages with a bounded timeout.

    Args:
        pager: Paging collaborator.
        timeout: Seconds allowed for one delivery attempt.
        on_failure: Called with the page and the error when delivery fails.
    """

    def __init__(
        self,
        pager: Pager,
        timeout: float = 10.0,
        on_failure: FailureHandler | None = None,
    ) -> None:
        self._pager = pager
        self._timeout = timeout
        self._on_failure = on_failure
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, page: EscalationPage) -> asyncio.Task:
        task = asyncio.create_task(self.deliver(page), name=f"page-{page.entry_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def deliver(self, page: EscalationPage) -> bool:
        """Deliver *page*; returns False when delivery failed."""
        try:
            await asyncio.wait_for(self._pager.send(page), timeout=self._timeout)
        except asyncio.TimeoutError:
            error = EscalationDeliveryError(f"pager timed out after {self._timeout}s")
        except EscalationDeliveryError as exc:
            error = exc
        except Exception as exc:
            error = EscalationDeliveryError(f"pager failed: {exc}")
        else:
            logger.info(
                "Escalation page sent for user %s (entry %s, trigger=%s)",
                page.user_id, page.entry_id, page.trigger.value,
            )
            return True

        logger.critical(
            "ESCALATION DELIVERY FAILED for user %s (entry %s): %s",
            page.user_id, page.entry_id, error,
        )
        if self._on_failure is not None:
            try:
                await self._on_failure(page, error)
            except Exception:
                logger.exception("Could not record delivery-failure alert for user %s", page.user_id)
        return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)
