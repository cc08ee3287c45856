"""Data models for applying extracted events to the calendar.

Defines the structured outcome of handing a batch of
:class:`~plan_ai.models.events.EventCandidate` objects to the calendar
collaborator:

- :class:`ApplyResult` -- which events were added, which were skipped as
  duplicates, and which failed (with the error text).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from plan_ai.models.events import EventCandidate


@dataclass
class ApplyResult:
    """Aggregated result of adding candidates to the calendar.

    Attributes:
        added: Candidates the calendar accepted, in submission order.
        skipped: Candidates the calendar reported as duplicates.
        failures: Details of candidates that failed.  Each dict contains
            ``"event"`` (the title) and ``"error"`` keys.
    """

    added: list[EventCandidate] = field(default_factory=list)
    skipped: list[EventCandidate] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        """Number of events successfully added."""
        return len(self.added)

    @property
    def has_failures(self) -> bool:
        """Whether any event failed to be added."""
        return len(self.failures) > 0
