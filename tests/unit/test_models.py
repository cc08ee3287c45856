"""Tests for the event models in :mod:`plan_ai.models`."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from plan_ai.models.calendar import ApplyResult
from plan_ai.models.events import EventCandidate, EventDraft, parse_clock


class TestEventCandidate:
    def test_accepts_wire_alias(self) -> None:
        candidate = EventCandidate.model_validate(
            {"title": "Dentist", "date": "2024-12-02", "time": "13:00", "endTime": "14:00"}
        )

        assert candidate.end_time == "14:00"
        assert candidate.start == datetime(2024, 12, 2, 13, 0)
        assert candidate.end == datetime(2024, 12, 2, 14, 0)

    def test_accepts_field_name(self) -> None:
        candidate = EventCandidate(title="x", date="2024-12-02", time="13:00", end_time="13:30")

        assert candidate.to_wire()["endTime"] == "13:30"

    def test_title_stripped(self) -> None:
        candidate = EventCandidate(title="  Gym  ", date="2024-12-02", time="07:00")

        assert candidate.title == "Gym"

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_rejected(self, title: object) -> None:
        with pytest.raises(ValidationError):
            EventCandidate.model_validate({"title": title, "date": "2024-12-02", "time": "07:00"})

    @pytest.mark.parametrize("date", ["2024-13-01", "tomorrow", "", 20241202])
    def test_bad_date_rejected(self, date: object) -> None:
        with pytest.raises(ValidationError):
            EventCandidate.model_validate({"title": "x", "date": date, "time": "07:00"})

    @pytest.mark.parametrize("time", ["25:00", "7pm", ""])
    def test_bad_time_rejected(self, time: str) -> None:
        with pytest.raises(ValidationError):
            EventCandidate(title="x", date="2024-12-02", time=time)

    def test_seconds_accepted(self) -> None:
        candidate = EventCandidate(title="x", date="2024-12-02", time="07:00:30")

        assert candidate.start == datetime(2024, 12, 2, 7, 0, 30)

    @pytest.mark.parametrize("end_time", ["", None])
    def test_blank_end_time_is_none(self, end_time: object) -> None:
        candidate = EventCandidate.model_validate(
            {"title": "x", "date": "2024-12-02", "time": "07:00", "endTime": end_time}
        )

        assert candidate.end_time is None
        assert candidate.end is None
        assert "endTime" not in candidate.to_wire()

    @pytest.mark.parametrize("end_time", ["07:00", "06:30"])
    def test_end_not_after_start_rejected(self, end_time: str) -> None:
        with pytest.raises(ValidationError, match="must be after"):
            EventCandidate(title="x", date="2024-12-02", time="07:00", end_time=end_time)


class TestEventDraft:
    def test_default_duration_applied(self) -> None:
        candidate = EventCandidate(title="Gym", date="2024-03-21", time="18:00")

        draft = EventDraft.from_candidate(candidate)

        assert draft.start_time == datetime(2024, 3, 21, 18, 0)
        assert draft.end_time == datetime(2024, 3, 21, 19, 0)
        assert draft.title == "Gym"
        assert draft.description == ""

    def test_explicit_end_wins(self) -> None:
        candidate = EventCandidate(title="Run", date="2024-03-21", time="07:00", end_time="07:30")

        draft = EventDraft.from_candidate(candidate, timedelta(hours=2))

        assert draft.end_time == datetime(2024, 3, 21, 7, 30)

    def test_custom_duration(self) -> None:
        candidate = EventCandidate(title="Read", date="2024-03-21", time="20:00")

        draft = EventDraft.from_candidate(candidate, timedelta(minutes=30))

        assert draft.end_time == datetime(2024, 3, 21, 20, 30)


class TestParseClock:
    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="invalid time of day"):
            parse_clock("noon")


class TestApplyResult:
    def test_empty(self) -> None:
        result = ApplyResult()

        assert result.added_count == 0
        assert not result.has_failures

    def test_counts(self) -> None:
        candidate = EventCandidate(title="x", date="2024-03-21", time="10:00")
        result = ApplyResult(added=[candidate], failures=[{"event": "y", "error": "boom"}])

        assert result.added_count == 1
        assert result.has_failures
