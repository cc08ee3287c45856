"""plan-ai: conversational calendar scheduling.

Chats with the user through Google Gemini, keeps short per-session memory,
and turns the conversation into calendar events -- either one explicitly
dated event or a week-long plan.
"""

from __future__ import annotations

__version__ = "0.1.0"

from plan_ai.classifier import classify_request, is_direct_event_request
from plan_ai.exceptions import GatewayError, MalformedResponseError, RateLimitError
from plan_ai.interpreter import extract_plan, extract_single_event
from plan_ai.memory import SessionMemoryStore
from plan_ai.models.chat import ChatTurn
from plan_ai.models.events import EventCandidate, EventDraft
from plan_ai.prompts import (
    build_chat_contents,
    build_fallback_plan_prompt,
    build_plan_prompt,
    build_single_event_prompt,
)

__all__ = [
    "ChatTurn",
    "EventCandidate",
    "EventDraft",
    "GatewayError",
    "MalformedResponseError",
    "RateLimitError",
    "SessionMemoryStore",
    "build_chat_contents",
    "build_fallback_plan_prompt",
    "build_plan_prompt",
    "build_single_event_prompt",
    "classify_request",
    "extract_plan",
    "extract_single_event",
    "is_direct_event_request",
]
