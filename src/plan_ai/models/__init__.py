"""Data models for plan-ai."""

from __future__ import annotations

from plan_ai.models.calendar import ApplyResult
from plan_ai.models.chat import ChatRole, ChatTurn
from plan_ai.models.events import EventCandidate, EventDraft

__all__ = [
    "ApplyResult",
    "ChatRole",
    "ChatTurn",
    "EventCandidate",
    "EventDraft",
]
