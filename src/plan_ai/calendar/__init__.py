"""Calendar collaborator for plan-ai (Google Calendar)."""

from __future__ import annotations

from plan_ai.calendar.auth import get_calendar_credentials
from plan_ai.calendar.backend import CalendarBackend, DryRunCalendar
from plan_ai.calendar.client import GoogleCalendarClient
from plan_ai.calendar.event_mapper import map_to_google_event, summarize_google_event

__all__ = [
    "CalendarBackend",
    "DryRunCalendar",
    "GoogleCalendarClient",
    "get_calendar_credentials",
    "map_to_google_event",
    "summarize_google_event",
]
