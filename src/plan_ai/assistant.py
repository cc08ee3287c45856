"""Chat assistant: turns one user message into a reply plus calendar events.

Each submission runs through these stages:

1. **Record** -- append the user turn to session memory.
2. **Reply** -- stream Gemini's answer, forwarding each delta to the
   caller; the finished reply is recorded as a model turn.
3. **Direct extraction** -- when the message looks like one concrete, dated
   request, extract that single event and add it.  Done on success.
4. **Plan** -- otherwise ask for a plan from the conversation and add every
   valid future event, one at a time.

Failures never escape :meth:`ChatAssistant.submit`; each path ends in a
message for the chat transcript.  A failed reply aborts the submission; a
failed plan is retried once with a simpler prompt; a failed calendar insert
only affects that one event.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from plan_ai.calendar.backend import CalendarBackend
from plan_ai.classifier import is_direct_event_request
from plan_ai.config import ConfigError
from plan_ai.exceptions import GatewayError, MalformedResponseError
from plan_ai.models.calendar import ApplyResult
from plan_ai.models.events import DEFAULT_DURATION, EventCandidate, EventDraft
from plan_ai.service import SchedulingService

logger = logging.getLogger(__name__)

SubmissionPath = Literal["direct", "plan", "fallback", "error"]

HTML_ERROR_MESSAGE = "Server returned an HTML error page."

_HTML_RE = re.compile(r"<html|<!DOCTYPE", re.IGNORECASE)
_AUTH_FAILURE_RE = re.compile(r"unauthori[sz]ed|\b401\b", re.IGNORECASE)

# Errors a submission recovers from.  Anything else is a bug and propagates.
_RECOVERABLE = (GatewayError, MalformedResponseError, ConfigError)


def brief_error(message: str, content_type: str = "") -> str:
    """Shorten an error for the chat transcript.

    HTML error pages (detected by content type or by an ``<html``/
    ``<!DOCTYPE`` marker) are replaced with a fixed message so raw server
    pages never end up in the conversation.
    """
    if "text/html" in content_type.lower() or _HTML_RE.search(message):
        return HTML_ERROR_MESSAGE
    return message.strip() or "Unknown error"


@dataclass
class SubmissionResult:
    """Outcome of one :meth:`ChatAssistant.submit` call.

    Attributes:
        reply: The streamed assistant reply (empty if streaming failed).
        path: ``"direct"``, ``"plan"``, ``"fallback"``, or ``"error"``
            when the reply itself failed.
        applied: Calendar outcome for the extracted events.
        messages: Status messages for the chat transcript, in order.
    """

    reply: str = ""
    path: SubmissionPath = "error"
    applied: ApplyResult = field(default_factory=ApplyResult)
    messages: list[str] = field(default_factory=list)


class ChatAssistant:
    """Runs the reply / extract / plan workflow for chat submissions.

    Args:
        service: The shared scheduling service.
        calendar: Where extracted events are created.
        duration: Length given to events without an explicit end time.
    """

    def __init__(
        self,
        service: SchedulingService,
        calendar: CalendarBackend,
        duration: timedelta = DEFAULT_DURATION,
    ) -> None:
        self._service = service
        self._calendar = calendar
        self._duration = duration

    def submit(
        self,
        session_id: str,
        text: str,
        on_delta: Callable[[str], None] | None = None,
    ) -> SubmissionResult:
        """Process one user message end to end.

        Args:
            session_id: Chat session token.
            text: The user's message.
            on_delta: Receives reply fragments as they stream in.

        Returns:
            A :class:`SubmissionResult`; never raises for provider, parse,
            configuration, or calendar failures.
        """
        result = SubmissionResult()

        # --- Stages 1-2: record and reply ---------------------------------
        try:
            result.reply = self._stream_reply(session_id, text, on_delta)
        except _RECOVERABLE as exc:
            logger.error("Chat reply failed for session %s: %s", session_id, exc)
            result.messages.append(f"Chat failed. {brief_error(str(exc))}")
            return result

        # --- Stage 3: direct single-event extraction ----------------------
        if is_direct_event_request(text) and self._try_direct(text, result):
            return result

        # --- Stage 4: plan from the conversation --------------------------
        try:
            candidates = self._service.plan(session_id)
        except _RECOVERABLE as exc:
            logger.warning("Planning failed, re-prompting once: %s", exc)
            return self._fallback(text, exc, result)

        result.path = "plan"
        self._apply(candidates, result.applied)
        result.messages.extend(_plan_messages(result.applied))
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _stream_reply(
        self,
        session_id: str,
        text: str,
        on_delta: Callable[[str], None] | None,
    ) -> str:
        with self._service.stream_reply(session_id, text) as stream:
            for delta in stream:
                if on_delta is not None:
                    on_delta(delta)
            return stream.text

    def _try_direct(self, text: str, result: SubmissionResult) -> bool:
        """Attempt the direct path; ``False`` means fall through to planning."""
        try:
            candidate = self._service.parse_single(text)
        except _RECOVERABLE as exc:
            logger.warning("Direct single-event extraction failed: %s", exc)
            return False
        if candidate is None:
            logger.info("No single concrete event found, falling back to planner")
            return False

        try:
            created = self._calendar.create_event(
                EventDraft.from_candidate(candidate, self._duration)
            )
        except Exception as exc:
            logger.warning("Adding direct event '%s' failed: %s", candidate.title, exc)
            return False

        result.path = "direct"
        if created is None:
            result.applied.skipped.append(candidate)
            result.messages.append(f"Already on your calendar: {_describe(candidate)}.")
        else:
            result.applied.added.append(candidate)
            result.messages.append(f"Added 1 event: {_describe(candidate)}.")
        return True

    def _fallback(
        self,
        text: str,
        cause: Exception,
        result: SubmissionResult,
    ) -> SubmissionResult:
        result.path = "fallback"
        try:
            candidates = self._service.fallback_plan(text)
        except _RECOVERABLE as exc:
            logger.error("Fallback scheduling failed: %s", exc)
            result.messages.append(f"Scheduling failed. {brief_error(str(exc))}")
            return result

        self._apply(candidates, result.applied)
        applied = result.applied
        if applied.added:
            result.messages.append(f"Added {applied.added_count} event(s).")
            if applied.has_failures:
                result.messages.append(
                    f"Some adds failed. Are you signed in? {_failure_details(applied)}"
                )
            return result

        result.messages.append(f"Unable to schedule. Details: {brief_error(str(cause))}")
        return result

    def _apply(self, candidates: list[EventCandidate], applied: ApplyResult) -> None:
        """Create each candidate in turn; one failure never stops the rest."""
        for candidate in candidates:
            draft = EventDraft.from_candidate(candidate, self._duration)
            try:
                created = self._calendar.create_event(draft)
            except Exception as exc:
                logger.error("Failed to add event '%s': %s", candidate.title, exc)
                applied.failures.append({"event": candidate.title, "error": str(exc)})
                continue
            if created is None:
                applied.skipped.append(candidate)
            else:
                applied.added.append(candidate)

        logger.info(
            "Applied %d candidate(s): %d added, %d skipped, %d failed",
            len(candidates),
            applied.added_count,
            len(applied.skipped),
            len(applied.failures),
        )


# ---------------------------------------------------------------------------
# Message formatting
# ---------------------------------------------------------------------------


def _describe(candidate: EventCandidate) -> str:
    return f"{candidate.title} on {candidate.date} at {candidate.time}"


def _failure_details(applied: ApplyResult) -> str:
    return "; ".join(
        f"{failure['event']} ({brief_error(failure['error'])})" for failure in applied.failures
    )


def _plan_messages(applied: ApplyResult) -> list[str]:
    messages: list[str] = []
    if applied.added:
        lines = "\n".join(f"- {_describe(candidate)}" for candidate in applied.added)
        messages.append(f"Scheduled {applied.added_count} item(s):\n{lines}")
    if applied.skipped:
        messages.append(f"Skipped {len(applied.skipped)} item(s) already on your calendar.")
    if applied.has_failures:
        hint = ""
        if any(_AUTH_FAILURE_RE.search(f["error"]) for f in applied.failures):
            hint = " Please sign in and try again."
        messages.append(
            f"Note: {len(applied.failures)} add(s) failed.{hint} {_failure_details(applied)}"
        )
    return messages
