"""Fixtures for unit tests: a scripted Gemini gateway and a fixed clock."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from plan_ai.llm import GeminiGateway, ReplyStream
from plan_ai.memory import SessionMemoryStore
from plan_ai.service import SchedulingService

# 2024-03-20 is a Wednesday.
FIXED_NOW = datetime(2024, 3, 20, 9, 0)


class ScriptedGateway:
    """Stand-in for ``GeminiGateway`` that replays canned outputs.

    ``json_outputs`` feeds :meth:`complete_json` and ``replies`` feeds
    :meth:`complete_stream`, first in first out.  An exception instance in
    either list is raised instead of returned.  A reply given as a list of
    strings is streamed as those deltas; an exception inside such a list is
    raised mid-stream.
    """

    def __init__(self) -> None:
        self.json_outputs: list[object] = []
        self.replies: list[object] = []
        self.json_prompts: list[object] = []
        self.stream_contents: list[object] = []

    def complete_json(self, contents: object) -> str:
        self.json_prompts.append(contents)
        output = self.json_outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output  # type: ignore[return-value]

    def complete_stream(
        self,
        contents: object,
        on_complete: Callable[[str], None] | None = None,
    ) -> ReplyStream:
        self.stream_contents.append(contents)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        deltas = [reply] if isinstance(reply, str) else list(reply)  # type: ignore[arg-type]
        return ReplyStream(_chunks(deltas), on_complete=on_complete)


def _chunks(deltas: list[object]):
    for delta in deltas:
        if isinstance(delta, Exception):
            raise delta
        yield MagicMock(text=delta)


@pytest.fixture()
def now() -> datetime:
    """The fixed current time used by the scripted service."""
    return FIXED_NOW


@pytest.fixture()
def gateway() -> ScriptedGateway:
    """A gateway with empty scripts; tests fill ``json_outputs``/``replies``."""
    return ScriptedGateway()


@pytest.fixture()
def store() -> SessionMemoryStore:
    """An empty session store with the default bound of 10 turns."""
    return SessionMemoryStore()


@pytest.fixture()
def service(
    store: SessionMemoryStore,
    gateway: ScriptedGateway,
    now: datetime,
) -> SchedulingService:
    """A scheduling service wired to the scripted gateway and fixed clock."""
    return SchedulingService(
        store=store,
        gateway_factory=lambda: gateway,  # type: ignore[arg-type, return-value]
        clock=lambda: now,
    )


@pytest.fixture()
def sdk_gateway() -> GeminiGateway:
    """A real :class:`GeminiGateway` over a mocked ``genai.Client``.

    Tests script ``sdk_gateway._client.models`` to exercise the gateway's
    own error translation end to end.
    """
    with patch("plan_ai.llm.genai.Client"):
        return GeminiGateway(api_key="fake-key")


@pytest.fixture()
def sdk_service(
    sdk_gateway: GeminiGateway,
    store: SessionMemoryStore,
    now: datetime,
) -> SchedulingService:
    """A scheduling service wired to ``sdk_gateway`` and the fixed clock."""
    return SchedulingService(
        store=store,
        gateway_factory=lambda: sdk_gateway,
        clock=lambda: now,
    )
