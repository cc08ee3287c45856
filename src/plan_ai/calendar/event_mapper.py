"""Translate between plan-ai events and Google Calendar resources.

- :func:`map_to_google_event` -- :class:`~plan_ai.models.events.EventDraft`
  to an ``events().insert()`` body.
- :func:`summarize_google_event` -- a Google event resource to the flat
  ``{id, title, start_time, end_time, description}`` shape served by the
  HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from plan_ai.models.events import EventDraft


def map_to_google_event(draft: EventDraft, timezone: str) -> dict:
    """Convert a draft into a Google Calendar event body.

    Raises:
        ValueError: If the draft ends at or before its start.
    """
    if draft.end_time <= draft.start_time:
        raise ValueError(
            f"end_time ({draft.end_time.isoformat()}) must be after "
            f"start_time ({draft.start_time.isoformat()})"
        )

    body: dict = {
        "summary": draft.title,
        "start": {"dateTime": _as_local(draft.start_time, timezone), "timeZone": timezone},
        "end": {"dateTime": _as_local(draft.end_time, timezone), "timeZone": timezone},
    }
    if draft.description:
        body["description"] = draft.description
    return body


def summarize_google_event(event: dict) -> dict:
    """Flatten a Google Calendar event resource."""
    start = event.get("start", {})
    end = event.get("end", {})
    return {
        "id": event.get("id"),
        "title": event.get("summary", ""),
        "start_time": start.get("dateTime") or start.get("date"),
        "end_time": end.get("dateTime") or end.get("date"),
        "description": event.get("description", ""),
    }


def to_rfc3339(value: datetime, timezone: str) -> str:
    """Format *value* for API query parameters; naive values are local to *timezone*."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(timezone))
    return value.isoformat()


def _as_local(value: datetime, timezone: str) -> str:
    # Aware values are shifted into the calendar's zone; naive ones are
    # already wall-clock times there.
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
    return value.isoformat()
