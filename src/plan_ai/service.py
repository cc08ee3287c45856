"""Scheduling service shared by the HTTP routes and the chat assistant.

Every Gemini-backed operation of the workflow lives here exactly once:
streaming a chat reply into session memory, planning from the session
history, the one-shot fallback planner, and single-event parsing.  The
service owns no global state; the session store, a gateway factory and a
clock are injected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from functools import partial
from zoneinfo import ZoneInfo

from plan_ai.config import Settings, load_settings
from plan_ai.interpreter import decode_json_payload, extract_single_event, plan_from_payload
from plan_ai.llm import GeminiGateway, ReplyStream
from plan_ai.memory import SessionMemoryStore
from plan_ai.models.chat import ChatTurn
from plan_ai.models.events import EventCandidate
from plan_ai.prompts import (
    CHAT_CONTEXT_TURNS,
    PLAN_CONTEXT_TURNS,
    build_chat_contents,
    build_fallback_plan_prompt,
    build_plan_prompt,
    build_single_event_prompt,
)

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[], GeminiGateway]
Clock = Callable[[], datetime]


def default_gateway_factory() -> GeminiGateway:
    """Build a gateway from the environment, read at call time.

    Raises:
        ConfigError: If ``GEMINI_API_KEY`` is not set.
    """
    return GeminiGateway.from_settings(load_settings())


class SchedulingService:
    """Gemini-backed scheduling operations over a session store.

    Args:
        store: Session memory.  A fresh store is created if omitted.
        gateway_factory: Returns a :class:`GeminiGateway` per call so
            configuration is read when the call happens.  Defaults to
            :func:`default_gateway_factory`.
        clock: Returns "now".  Defaults to :meth:`datetime.now`.
        chat_history_limit: Turns kept per session and sent with each
            chat reply.
        plan_history_limit: Turns read when planning.
    """

    def __init__(
        self,
        store: SessionMemoryStore | None = None,
        gateway_factory: GatewayFactory | None = None,
        clock: Clock | None = None,
        chat_history_limit: int = CHAT_CONTEXT_TURNS,
        plan_history_limit: int = PLAN_CONTEXT_TURNS,
    ) -> None:
        if store is None:
            store = SessionMemoryStore(max_turns=chat_history_limit)
        self.store = store
        self._gateway_factory = gateway_factory or default_gateway_factory
        self._clock = clock or datetime.now
        self.chat_history_limit = chat_history_limit
        self.plan_history_limit = plan_history_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> SchedulingService:
        """Build a service using the configured history limits and timezone.

        "Now" is read in ``settings.timezone`` so relative dates in prompts
        and the future-event check follow the user's zone.
        """
        zone = ZoneInfo(settings.timezone)
        return cls(
            store=SessionMemoryStore(max_turns=settings.chat_history_limit),
            clock=partial(datetime.now, zone),
            chat_history_limit=settings.chat_history_limit,
            plan_history_limit=settings.plan_history_limit,
        )

    def now(self) -> datetime:
        """Current time according to the injected clock."""
        return self._clock()

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def stream_reply(self, session_id: str, user_text: str) -> ReplyStream:
        """Record the user turn and open a streaming reply.

        The reply is appended to the session as a model turn once the
        stream completes, and only if it is non-empty after trimming.
        Closing the stream early records nothing further; the user turn
        stays recorded.

        Raises:
            ConfigError: If the gateway cannot be configured (raised before
                the user turn is recorded).
            GatewayError: If the provider rejects the request outright.
        """
        gateway = self._gateway_factory()

        history = self.store.last_n(session_id, self.chat_history_limit)
        self.store.append(
            session_id,
            ChatTurn(role="user", text=user_text),
            self.chat_history_limit,
        )
        contents = build_chat_contents(history, user_text, limit=self.chat_history_limit)

        logger.info(
            "Session %s: streaming reply with %d turn(s) of context",
            session_id,
            len(contents),
        )
        return gateway.complete_stream(
            contents, on_complete=partial(self._record_reply, session_id)
        )

    def clear(self, session_id: str) -> None:
        """Drop the session's chat memory."""
        self.store.clear(session_id)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, session_id: str) -> list[EventCandidate]:
        """Ask Gemini for a 7-day plan based on the session history.

        Returns:
            Valid candidates strictly after the current time.  Empty when
            the model returns JSON that is not an array.

        Raises:
            MalformedResponseError: If the raw output is not JSON at all.
            GatewayError: On provider failure.
        """
        gateway = self._gateway_factory()
        history = self.store.last_n(session_id, self.plan_history_limit)
        prompt = build_plan_prompt(history, self.now())

        logger.info("Session %s: planning from %d turn(s)", session_id, len(history))
        raw_text = gateway.complete_json(prompt)
        payload = decode_json_payload(raw_text)
        return plan_from_payload(payload, self.now())

    def fallback_plan(self, user_text: str) -> list[EventCandidate]:
        """One-shot planning from the latest message alone.

        Raises:
            MalformedResponseError: If the raw output is not JSON at all.
            GatewayError: On provider failure.
        """
        gateway = self._gateway_factory()
        raw_text = gateway.complete_json(build_fallback_plan_prompt(user_text, self.now()))
        payload = decode_json_payload(raw_text)
        return plan_from_payload(payload, self.now())

    # ------------------------------------------------------------------
    # Single event
    # ------------------------------------------------------------------

    def parse_single(self, text: str) -> EventCandidate | None:
        """Extract one concrete future event from *text*, if there is one.

        Raises:
            GatewayError: On provider failure.  Bad model output yields
                ``None`` instead.
        """
        gateway = self._gateway_factory()
        raw_text = gateway.complete_json(build_single_event_prompt(text, self.now()))
        return extract_single_event(raw_text, self.now())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_reply(self, session_id: str, text: str) -> None:
        reply = text.strip()
        if not reply:
            logger.info("Session %s: empty reply, not recorded", session_id)
            return
        self.store.append(
            session_id,
            ChatTurn(role="model", text=reply),
            self.chat_history_limit,
        )
