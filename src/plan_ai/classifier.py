"""Lexical check for "one concrete, dated event" requests.

A best-effort heuristic deciding whether a message should go through the
direct single-event path instead of the weekly planner.  It looks for a
date signal (the word "on", a month name, a numeric date, or an ordinal
day) together with a time-of-day signal.

Known gap, kept on purpose: relative dates without any of those date
signals ("next Tuesday at 3pm") are not treated as direct and go to the
planner.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_MONTH_PREFIXES = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)

_NUMERIC_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}([/-]\d{2,4})?\b")
_ORDINAL_DAY_RE = re.compile(r"\b\d{1,2}(st|nd|rd|th)\b")
_TIME_RES = (
    re.compile(r"\b\d{1,2}(:\d{2})?\s?(am|pm)\b"),
    re.compile(r"\b\d{1,2}:\d{2}\b"),
)


@dataclass(frozen=True)
class DirectRequestSignal:
    """The lexical signals found in a message.

    Attributes:
        has_on_keyword: The message contains `` on `` (as in "on Friday").
        has_month: A month-name prefix appears anywhere in the message.
        has_numeric_date: A ``12/3``-style date or ordinal day was found.
        has_time: A clock time (``3pm``, ``3:30 pm``, ``15:00``) was found.
    """

    has_on_keyword: bool
    has_month: bool
    has_numeric_date: bool
    has_time: bool

    @property
    def is_direct(self) -> bool:
        """Date signal and time signal both present."""
        has_date = self.has_on_keyword or self.has_month or self.has_numeric_date
        return has_date and self.has_time


def classify_request(text: str) -> DirectRequestSignal:
    """Collect the lexical date/time signals in *text*."""
    lowered = text.lower()
    # Substring match, as in "mar" inside "market": a false positive still
    # needs a clock time to count, and the extraction step rejects it.
    return DirectRequestSignal(
        has_on_keyword=" on " in lowered,
        has_month=any(prefix in lowered for prefix in _MONTH_PREFIXES),
        has_numeric_date=bool(
            _NUMERIC_DATE_RE.search(lowered) or _ORDINAL_DAY_RE.search(lowered)
        ),
        has_time=any(pattern.search(lowered) for pattern in _TIME_RES),
    )


def is_direct_event_request(text: str) -> bool:
    """Shortcut for ``classify_request(text).is_direct``."""
    return classify_request(text).is_direct
