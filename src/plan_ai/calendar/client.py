"""Google Calendar implementation of the calendar collaborator.

Provides :class:`GoogleCalendarClient`, a thin wrapper around the Google
Calendar v3 API covering the three operations the workflow needs:

- **Create** -- insert an event, skipping exact duplicates (same title,
  overlapping time) so re-running the weekly planner does not stack copies.
- **List** -- events within a time range, across all result pages.
- **Delete** -- by event id.

Every API call goes through :func:`~plan_ai.calendar.exceptions.with_retry`.
"""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from plan_ai.calendar.auth import get_calendar_credentials
from plan_ai.calendar.event_mapper import map_to_google_event, to_rfc3339
from plan_ai.calendar.exceptions import with_retry
from plan_ai.config import CalendarSettings
from plan_ai.models.events import EventDraft

logger = logging.getLogger(__name__)

# Window searched around a new event when checking for duplicates.
_DUPLICATE_WINDOW = timedelta(hours=12)

_PRIMARY_CALENDAR = "primary"


class GoogleCalendarClient:
    """Calendar backend over the Google Calendar API.

    Args:
        credentials: Valid Google OAuth 2.0 credentials.  Access is scoped
            to whoever authorised them.
        timezone: IANA timezone for naive datetimes
            (e.g. ``"America/Vancouver"``).
        service: Optional pre-built ``googleapiclient`` resource; pass a
            mock here in tests.
    """

    def __init__(
        self,
        credentials: Credentials,
        timezone: str,
        service: Any | None = None,
    ) -> None:
        self._credentials = credentials
        self._timezone = timezone
        self._service = service or build("calendar", "v3", credentials=credentials)

    @classmethod
    def from_settings(
        cls,
        settings: CalendarSettings,
        interactive: bool = True,
    ) -> GoogleCalendarClient:
        """Authorise with the configured OAuth files and build a client."""
        credentials = get_calendar_credentials(
            settings.credentials_path,
            settings.token_path,
            interactive=interactive,
        )
        return cls(credentials, timezone=settings.timezone)

    def _refresh_credentials(self) -> None:
        """Refresh the OAuth token and rebuild the service (used on 401)."""
        from google.auth.transport.requests import Request

        self._credentials.refresh(Request())
        self._service = build("calendar", "v3", credentials=self._credentials)
        logger.info("Calendar credentials refreshed")

    # ------------------------------------------------------------------
    # Collaborator operations
    # ------------------------------------------------------------------

    @with_retry()
    def create_event(self, draft: EventDraft) -> dict | None:
        """Insert *draft*, unless an identical event already exists.

        Returns:
            The created event resource, or ``None`` for a duplicate.
        """
        body = map_to_google_event(draft, self._timezone)

        existing = self._fetch_events(
            draft.start_time - _DUPLICATE_WINDOW,
            draft.end_time + _DUPLICATE_WINDOW,
        )
        duplicate = self._find_duplicate(draft, existing)
        if duplicate is not None:
            logger.info(
                "Skipping duplicate event '%s' (matches id=%s)",
                draft.title,
                duplicate.get("id", "?"),
            )
            return None

        created = (
            self._service.events()
            .insert(calendarId=_PRIMARY_CALENDAR, body=body)
            .execute()
        )
        logger.info("Created event '%s' (id=%s)", draft.title, created.get("id", "?"))
        return created

    @with_retry()
    def list_events(self, time_min: datetime, time_max: datetime) -> list[dict]:
        """List event resources between *time_min* and *time_max*."""
        events = self._fetch_events(time_min, time_max)
        logger.info(
            "Listed %d event(s) between %s and %s",
            len(events),
            time_min.isoformat(),
            time_max.isoformat(),
        )
        return events

    @with_retry()
    def delete_event(self, event_id: str) -> None:
        """Delete an event by id.

        Raises:
            CalendarNotFoundError: If the event does not exist.
        """
        self._service.events().delete(calendarId=_PRIMARY_CALENDAR, eventId=event_id).execute()
        logger.info("Deleted event (id=%s)", event_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fetch_events(self, time_min: datetime, time_max: datetime) -> list[dict]:
        # Not retried itself: every public caller already is.
        events: list[dict] = []
        page_token: str | None = None

        while True:
            response = (
                self._service.events()
                .list(
                    calendarId=_PRIMARY_CALENDAR,
                    timeMin=to_rfc3339(time_min, self._timezone),
                    timeMax=to_rfc3339(time_max, self._timezone),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
                .execute()
            )
            events.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if page_token is None:
                return events

    def _find_duplicate(self, draft: EventDraft, existing: list[dict]) -> dict | None:
        """Same title (case-insensitive) and overlapping time."""
        start = self._localize(draft.start_time)
        end = self._localize(draft.end_time)

        for event in existing:
            if event.get("summary", "").lower() != draft.title.lower():
                continue
            ex_start, ex_end = self._event_times(event)
            if ex_start is None or ex_end is None:
                continue
            if start < ex_end and ex_start < end:
                return event
        return None

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=ZoneInfo(self._timezone))
        return value

    def _event_times(self, event: dict) -> tuple[datetime | None, datetime | None]:
        """Start and end of a Google event resource (timed or all-day)."""
        times: list[datetime | None] = []
        for key in ("start", "end"):
            field = event.get(key, {})
            raw = field.get("dateTime") or field.get("date")
            parsed = None
            if raw is not None:
                with contextlib.suppress(ValueError):
                    parsed = self._localize(datetime.fromisoformat(raw))
            times.append(parsed)
        return times[0], times[1]
