"""The calendar collaborator contract.

The scheduling workflow never owns calendar rows; it only asks a backend to
create, list and delete events.  :class:`GoogleCalendarClient` is the real
implementation; :class:`DryRunCalendar` logs instead of writing.
"""

from __future__ import annotations

import itertools
import logging
from datetime import datetime
from typing import Protocol

from plan_ai.models.events import EventDraft

logger = logging.getLogger(__name__)


class CalendarBackend(Protocol):
    """Anything that can store calendar events for the signed-in user."""

    def create_event(self, draft: EventDraft) -> dict | None:
        """Create an event; ``None`` means it was skipped as a duplicate."""
        ...

    def list_events(self, time_min: datetime, time_max: datetime) -> list[dict]:
        """List event resources overlapping ``[time_min, time_max)``."""
        ...

    def delete_event(self, event_id: str) -> None:
        """Delete an event by id."""
        ...


class DryRunCalendar:
    """Calendar backend that records drafts without writing anywhere."""

    def __init__(self) -> None:
        self.drafts: list[EventDraft] = []
        self._ids = itertools.count(1)

    def create_event(self, draft: EventDraft) -> dict | None:
        self.drafts.append(draft)
        event_id = f"dry-run-{next(self._ids)}"
        logger.info(
            "[dry-run] would create '%s' (%s -> %s)",
            draft.title,
            draft.start_time.isoformat(),
            draft.end_time.isoformat(),
        )
        return {"id": event_id, "summary": draft.title}

    def list_events(self, time_min: datetime, time_max: datetime) -> list[dict]:
        return []

    def delete_event(self, event_id: str) -> None:
        logger.info("[dry-run] would delete event %s", event_id)
