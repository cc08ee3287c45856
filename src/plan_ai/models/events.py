"""Pydantic models for events extracted from model output.

Defines the structured data types that flow from the Gemini response to the
calendar collaborator:

- :class:`EventCandidate` -- one event as emitted by the model, with the
  ``date``/``time`` strings kept verbatim but validated by parsing.
- :class:`EventDraft` -- the creation payload handed to the calendar, with
  real ``datetime`` values and a default 60-minute duration applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_TITLE_LENGTH = 120

DEFAULT_DURATION = timedelta(minutes=60)

_DATE_FORMAT = "%Y-%m-%d"
_TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_clock(value: str) -> datetime:
    """Parse an ``HH:mm`` (or ``HH:mm:ss``) string.

    Returns:
        A ``datetime`` on 1900-01-01 carrying only the time of day.

    Raises:
        ValueError: If *value* matches none of the accepted formats.
    """
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"invalid time of day: {value!r}")


# ---------------------------------------------------------------------------
# EventCandidate -- raw model output for a single event
# ---------------------------------------------------------------------------


class EventCandidate(BaseModel):
    """A provisional event extracted from model output.

    Construction enforces the per-field requirements: a non-empty title
    (truncated to 120 characters), a ``YYYY-MM-DD`` date, an ``HH:mm``
    start time, and an optional ``HH:mm`` end time that must fall after the
    start.  Whether the event lies in the future is checked separately by
    the interpreter, against the clock at filtering time.

    Attributes:
        title: Short event title.
        date: Calendar date exactly as emitted by the model.
        time: Start time exactly as emitted by the model.
        end_time: End time (wire name ``endTime``), or ``None``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    date: str
    time: str
    end_time: str | None = Field(default=None, alias="endTime")

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> str:
        if value is None or isinstance(value, (dict, list)):
            raise ValueError("title is required")
        text = str(value).strip()
        if not text:
            raise ValueError("title is required")
        return text[:MAX_TITLE_LENGTH]

    @field_validator("date", mode="before")
    @classmethod
    def _check_date(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("date is required")
        text = value.strip()
        datetime.strptime(text, _DATE_FORMAT)
        return text

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("time is required")
        text = value.strip()
        parse_clock(text)
        return text

    @field_validator("end_time", mode="before")
    @classmethod
    def _check_end_time(cls, value: Any) -> str | None:
        # Models often emit "" or null for "no end time".
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if not isinstance(value, str):
            raise ValueError("endTime must be a string")
        text = value.strip()
        parse_clock(text)
        return text

    @model_validator(mode="after")
    def _end_after_start(self) -> EventCandidate:
        end = self.end
        if end is not None and end <= self.start:
            raise ValueError(
                f"endTime ({self.end_time}) must be after time ({self.time})"
            )
        return self

    @property
    def start(self) -> datetime:
        """The naive start instant (``date`` combined with ``time``)."""
        day = datetime.strptime(self.date, _DATE_FORMAT)
        clock = parse_clock(self.time)
        return day.replace(hour=clock.hour, minute=clock.minute, second=clock.second)

    @property
    def end(self) -> datetime | None:
        """The naive end instant, or ``None`` when no end time was given."""
        if self.end_time is None:
            return None
        clock = parse_clock(self.end_time)
        return self.start.replace(
            hour=clock.hour, minute=clock.minute, second=clock.second
        )

    def to_wire(self) -> dict[str, str]:
        """Serialise with the JSON field names used by the HTTP API."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# EventDraft -- creation payload for the calendar collaborator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventDraft:
    """A calendar creation request.

    Attributes:
        title: Event title.
        start_time: Event start.
        end_time: Event end; always after ``start_time``.
        description: Free-text description (may be empty).
    """

    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""

    @classmethod
    def from_candidate(
        cls,
        candidate: EventCandidate,
        duration: timedelta = DEFAULT_DURATION,
    ) -> EventDraft:
        """Build a draft, applying *duration* when the candidate has no end."""
        start = candidate.start
        end = candidate.end or start + duration
        return cls(title=candidate.title, start_time=start, end_time=end)
