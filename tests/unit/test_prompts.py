"""Tests for the Gemini prompt builders."""

from __future__ import annotations

from datetime import datetime

from plan_ai.models.chat import ChatTurn
from plan_ai.prompts import (
    PLAN_CONTEXT_TURNS,
    build_chat_contents,
    build_fallback_plan_prompt,
    build_plan_prompt,
    build_single_event_prompt,
    format_history,
)

NOW = datetime(2024, 3, 20, 9, 0)


class TestSingleEventPrompt:
    def test_contains_instruction_time_and_text(self) -> None:
        prompt = build_single_event_prompt("Dentist December 2nd 1-2pm", NOW)

        assert "Extract exactly ONE concrete event" in prompt
        assert "Current time: 2024-03-20T09:00:00" in prompt
        assert prompt.endswith("User: Dentist December 2nd 1-2pm")

    def test_asks_for_empty_object_without_date(self) -> None:
        prompt = build_single_event_prompt("something sometime", NOW)

        assert "return {}" in prompt
        assert '"endTime": "HH:mm"' in prompt


class TestChatContents:
    def test_appends_new_user_turn(self) -> None:
        history = [ChatTurn("user", "hi"), ChatTurn("model", "hello")]

        contents = build_chat_contents(history, "plan my week")

        assert contents == [
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "model", "parts": [{"text": "hello"}]},
            {"role": "user", "parts": [{"text": "plan my week"}]},
        ]

    def test_limited_to_last_turns(self) -> None:
        history = [ChatTurn("user", str(i)) for i in range(15)]

        contents = build_chat_contents(history, "latest", limit=10)

        assert len(contents) == 10
        assert contents[0]["parts"][0]["text"] == "6"
        assert contents[-1]["parts"][0]["text"] == "latest"

    def test_empty_history(self) -> None:
        contents = build_chat_contents([], "hello")

        assert contents == [{"role": "user", "parts": [{"text": "hello"}]}]


class TestPlanPrompt:
    def test_contains_role_datetime_and_history(self) -> None:
        history = [
            ChatTurn("user", "I work 9-5 and get home at 18:00"),
            ChatTurn("model", "Got it."),
        ]

        prompt = build_plan_prompt(history, NOW)

        assert prompt.startswith("You are an expert life planner assistant.")
        assert "Current datetime (ISO): 2024-03-20T09:00:00" in prompt
        assert "USER: I work 9-5 and get home at 18:00\nMODEL: Got it." in prompt
        assert "7-day plan" in prompt
        assert "Return [] if there is not enough information" in prompt

    def test_only_recent_history_included(self) -> None:
        history = [ChatTurn("user", f"turn-{i:02d}") for i in range(PLAN_CONTEXT_TURNS + 5)]

        prompt = build_plan_prompt(history, NOW)

        assert "turn-04" not in prompt
        assert "turn-05" in prompt
        assert f"turn-{PLAN_CONTEXT_TURNS + 4:02d}" in prompt


class TestFallbackPlanPrompt:
    def test_contains_time_and_quoted_request(self) -> None:
        prompt = build_fallback_plan_prompt("gym three times this week", NOW)

        assert prompt.startswith(
            "You are a scheduling assistant. Current ISO time: 2024-03-20T09:00:00."
        )
        assert "strictly JSON array" in prompt
        assert prompt.endswith('User request: "gym three times this week"')


class TestFormatHistory:
    def test_empty(self) -> None:
        assert format_history([]) == ""

    def test_roles_upper_cased(self) -> None:
        text = format_history([ChatTurn("user", "a"), ChatTurn("model", "b")])

        assert text == "USER: a\nMODEL: b"
