"""Prompt builders for the Gemini scheduling workflow.

Pure functions that render chat history and the current time into the
instructions sent to Gemini.  Four variants exist:

- single-event extraction (the direct fast path and ``/api/parse``),
- the conversational reply (role-tagged content list for streaming),
- the 7-day planner over the session history,
- the one-shot fallback planner used when planning fails.

None of these touch the network or the session store; callers pass the
history in.
"""

from __future__ import annotations

from datetime import datetime

from plan_ai.models.chat import ChatTurn

CHAT_CONTEXT_TURNS = 10
PLAN_CONTEXT_TURNS = 20


def build_single_event_prompt(user_text: str, now: datetime) -> str:
    """Build the prompt asking for exactly one concrete event.

    Args:
        user_text: The user's request, verbatim.
        now: Current time, embedded so relative dates ("tomorrow",
            "next Friday") can be resolved.

    Returns:
        The prompt string.  The model is asked for a single JSON object,
        or ``{}`` when the request carries no explicit date/time.
    """
    return f"""\
Extract exactly ONE concrete event from the user's request.
Return strictly JSON (no markdown). Schema:
{{
  "title": string,
  "date": "YYYY-MM-DD",    // absolute calendar date required
  "time": "HH:mm",         // start time 24h
  "endTime": "HH:mm"       // optional, if user gave an end time or duration
}}
Rules:
- Use the explicit date/time mentioned by the user (e.g., "December 2nd 1-2pm").
- If the request lacks a concrete date, return {{}}.
- Do not invent multiple events.
Current time: {now.isoformat()}
User: {user_text}"""


def build_chat_contents(
    history: list[ChatTurn],
    user_text: str,
    limit: int = CHAT_CONTEXT_TURNS,
) -> list[dict]:
    """Build the role-tagged content list for a streaming chat reply.

    The new user turn is appended to *history* and the result is limited
    to the last *limit* turns.

    Args:
        history: Prior turns, oldest first (must not already include
            *user_text*).
        user_text: The new user message.
        limit: Maximum number of turns sent, including the new one.

    Returns:
        A list of Gemini content dicts
        (``{"role": ..., "parts": [{"text": ...}]}``).
    """
    turns = [*history, ChatTurn(role="user", text=user_text)][-limit:]
    return [
        {
            "role": "model" if turn.role == "model" else "user",
            "parts": [{"text": turn.text}],
        }
        for turn in turns
    ]


def build_plan_prompt(history: list[ChatTurn], now: datetime) -> str:
    """Build the 7-day planner prompt from the session history.

    Args:
        history: Up to :data:`PLAN_CONTEXT_TURNS` turns, oldest first.
        now: Current time; every planned event must be after it.

    Returns:
        The prompt string asking for a JSON array of
        ``{"title", "date", "time"}`` objects.
    """
    return f"""\
You are an expert life planner assistant.
Current datetime (ISO): {now.isoformat()}

Conversation summary below (user goals, constraints, preferences):
{format_history(history[-PLAN_CONTEXT_TURNS:])}

Task:
- Produce a 7-day plan starting from the current date, with concrete events that fit the user's routine and constraints (work hours, commute, sleep, workout, social time, etc.).
- Prefer evening times if the user is busy during the day and arrives home at 18:00.
- Ensure events are all in the future.
- Keep reasonable durations (default 60 minutes unless stated otherwise).
- Include workouts, social calls, and any priorities mentioned by the user.

Output strictly JSON (no markdown), an array where each element is:
{{
  "title": string,
  "date": "YYYY-MM-DD",
  "time": "HH:mm"
}}
Return [] if there is not enough information to schedule anything.
"""


def build_fallback_plan_prompt(user_text: str, now: datetime) -> str:
    """Build the one-shot planner prompt used when the planner fails.

    Only the latest user message is sent; no history is involved.
    """
    return (
        f"You are a scheduling assistant. Current ISO time: {now.isoformat()}.\n"
        "Return strictly JSON array (no markdown). Each item: "
        '{"title": string, "date": "YYYY-MM-DD", "time": "HH:mm"}.\n'
        f'User request: "{user_text}"'
    )


def format_history(history: list[ChatTurn]) -> str:
    """Render turns as ``ROLE: text`` lines.

    Returns an empty string if *history* is empty.
    """
    return "\n".join(f"{turn.role.upper()}: {turn.text}" for turn in history)
