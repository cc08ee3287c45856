"""Interpretation of raw Gemini output into event candidates.

Model output is treated as untrusted text: it may be wrapped in markdown
fences, surrounded by explanatory prose, or not JSON at all.  The
functions here never raise on bad model output -- they return ``None`` or
an empty list so the caller can fall back to another path.  The one
exception is :func:`decode_json_payload`, which the plan endpoint uses to
tell "unparseable" apart from "parsed, but empty".
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from plan_ai.exceptions import MalformedResponseError
from plan_ai.models.events import EventCandidate

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

_DELIMITERS = {"[": "]", "{": "}"}


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def strip_code_fences(raw_text: str) -> str:
    """Remove a surrounding markdown code fence (```` ```json ... ``` ````)."""
    text = raw_text.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def decode_json_payload(raw_text: str) -> Any:
    """Decode model output as JSON, tolerating fences and surrounding prose.

    The whole (fence-stripped) text is tried first.  Failing that, only the
    blob spanning the outermost array or object delimiters is honored --
    whichever kind opens first is tried first.

    Args:
        raw_text: Raw model output.

    Returns:
        The decoded JSON value.

    Raises:
        MalformedResponseError: If the output is empty or no JSON blob in it
            can be decoded.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("Empty response from model", raw_response=raw_text or "")

    text = strip_code_fences(raw_text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    openers = sorted(
        (index, opener)
        for opener in _DELIMITERS
        if (index := text.find(opener)) != -1
    )
    for start, opener in openers:
        end = text.rfind(_DELIMITERS[opener])
        if end <= start:
            continue
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            continue

    raise MalformedResponseError("No JSON found in model output", raw_response=raw_text)


# ---------------------------------------------------------------------------
# Single event
# ---------------------------------------------------------------------------


def extract_single_event(raw_text: str, now: datetime) -> EventCandidate | None:
    """Interpret model output as exactly one event.

    Args:
        raw_text: Raw output of the single-event prompt.
        now: Current time; the event must start strictly after it.

    Returns:
        The candidate, or ``None`` if the output is empty (``{}``), not a
        JSON object, misses a required field, does not describe a valid
        instant, or lies in the past.
    """
    try:
        payload = decode_json_payload(raw_text)
    except MalformedResponseError as exc:
        logger.warning("Single-event output unparseable: %s", exc)
        return None

    if not isinstance(payload, dict) or not payload:
        logger.info("No concrete event in single-event output")
        return None

    candidate = _build_candidate(payload)
    if candidate is None:
        return None

    if not is_future(candidate, now):
        logger.info(
            "Discarding past event '%s' (%s %s)",
            candidate.title,
            candidate.date,
            candidate.time,
        )
        return None

    return candidate


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


def extract_plan(raw_text: str, now: datetime) -> list[EventCandidate]:
    """Interpret model output as a plan (a JSON array of events).

    Args:
        raw_text: Raw output of a planner prompt.
        now: Current time; only events strictly after it are kept.

    Returns:
        Valid future candidates in model order.  Empty if the output does
        not parse or is not an array.
    """
    try:
        payload = decode_json_payload(raw_text)
    except MalformedResponseError as exc:
        logger.warning("Plan output unparseable: %s", exc)
        return []
    return plan_from_payload(payload, now)


def plan_from_payload(payload: Any, now: datetime) -> list[EventCandidate]:
    """Validate and future-filter an already decoded plan payload.

    Non-array payloads yield an empty list; invalid elements are skipped.
    """
    if not isinstance(payload, list):
        logger.info("Plan output is not an array (%s)", type(payload).__name__)
        return []

    kept: list[EventCandidate] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        candidate = _build_candidate(item)
        if candidate is None:
            continue
        if not is_future(candidate, now):
            logger.debug("Dropping past plan item '%s'", candidate.title)
            continue
        kept.append(candidate)

    logger.info("Plan: %d of %d item(s) kept", len(kept), len(payload))
    return kept


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_future(candidate: EventCandidate, now: datetime) -> bool:
    """Whether *candidate* starts strictly after *now*.

    The candidate's naive instant is read in *now*'s timezone when *now*
    is timezone-aware.
    """
    start = candidate.start
    if now.tzinfo is not None:
        start = start.replace(tzinfo=now.tzinfo)
    return start > now


def _build_candidate(data: dict) -> EventCandidate | None:
    try:
        return EventCandidate.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "Skipping event '%s': validation failed: %s",
            data.get("title", "?"),
            "; ".join(err["msg"] for err in exc.errors()),
        )
        return None
