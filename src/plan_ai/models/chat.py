"""Chat memory data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ChatRole = Literal["user", "model"]


@dataclass(frozen=True)
class ChatTurn:
    """A single turn in a chat session.

    Attributes:
        role: ``"user"`` for submissions, ``"model"`` for completed replies.
        text: The turn text.
    """

    role: ChatRole
    text: str
