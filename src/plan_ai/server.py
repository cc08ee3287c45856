"""FastAPI application exposing the scheduling workflow over HTTP.

Routes (error bodies are always ``{"error": message}``):

- ``POST /api/chat`` -- stream a reply as chunked ``text/plain``.
- ``DELETE /api/chat`` -- forget a session's chat memory.
- ``POST /api/plan`` -- 7-day plan from the session history.
- ``POST /api/parse`` -- one concrete event from free text.
- ``GET|POST|DELETE /api/events`` -- calendar CRUD, forwarded to the
  calendar collaborator.
- ``GET /health``
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from plan_ai import __version__
from plan_ai.calendar.backend import CalendarBackend
from plan_ai.calendar.client import GoogleCalendarClient
from plan_ai.calendar.event_mapper import summarize_google_event
from plan_ai.calendar.exceptions import CalendarAPIError
from plan_ai.config import ConfigError, load_calendar_settings, load_settings
from plan_ai.exceptions import GatewayError, MalformedResponseError, RateLimitError
from plan_ai.models.events import DEFAULT_DURATION, EventDraft
from plan_ai.service import SchedulingService

logger = logging.getLogger(__name__)

# Window listed by GET /api/events when no range is given.
_LIST_PAST = timedelta(days=30)
_LIST_AHEAD = timedelta(days=90)


# -----------------------------
# Request bodies
# -----------------------------
class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_Body):
    session_id: str | None = Field(default=None, alias="sessionId")
    user_text: str | None = Field(default=None, alias="userText")


class SessionRequest(_Body):
    session_id: str | None = Field(default=None, alias="sessionId")


class ParseRequest(_Body):
    text: str | None = None


class EventCreateRequest(_Body):
    title: str = ""
    start_time: datetime
    end_time: datetime | None = None
    description: str = ""


class EventDeleteRequest(_Body):
    id: str = ""


# -----------------------------
# Utilities
# -----------------------------
def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _present(value: str | None) -> bool:
    return bool(value and value.strip())


def _gateway_error(exc: GatewayError) -> JSONResponse:
    if isinstance(exc, RateLimitError):
        return _error(str(exc), 429)
    return _error(str(exc), 500)


def _default_service() -> SchedulingService:
    try:
        settings = load_settings()
    except ConfigError as exc:
        # Gemini routes report the missing key per request.
        logger.warning("%s; using default history limits", exc)
        return SchedulingService()
    return SchedulingService.from_settings(settings)


def _default_calendar_factory() -> CalendarBackend:
    # The server must never block on a browser OAuth flow.
    return GoogleCalendarClient.from_settings(load_calendar_settings(), interactive=False)


# -----------------------------
# App factory
# -----------------------------
def create_app(
    service: SchedulingService | None = None,
    calendar: CalendarBackend | None = None,
    calendar_factory: Callable[[], CalendarBackend] | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        service: Scheduling service (and with it the session store).  A
            default one is built from :func:`~plan_ai.config.load_settings`
            if omitted; the Gemini key itself is read on every call.
        calendar: Calendar backend for ``/api/events``.
        calendar_factory: Builds the calendar backend on first use when
            *calendar* is not given.  Defaults to Google Calendar with the
            cached OAuth token.
    """
    if service is None:
        service = _default_service()
    calendar_factory = calendar_factory or _default_calendar_factory
    backend: dict[str, CalendarBackend] = {}
    if calendar is not None:
        backend["calendar"] = calendar

    def get_calendar() -> CalendarBackend:
        if "calendar" not in backend:
            backend["calendar"] = calendar_factory()
        return backend["calendar"]

    app = FastAPI(title="plan-ai", version=__version__)
    app.state.service = service

    @app.exception_handler(RequestValidationError)
    async def invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
        return _error(f"Invalid request: {detail}", 400)

    @app.exception_handler(ConfigError)
    async def config_error(_request: Request, exc: ConfigError) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _error(str(exc), 500)

    @app.exception_handler(CalendarAPIError)
    async def calendar_error(_request: Request, exc: CalendarAPIError) -> JSONResponse:
        return _error(str(exc), exc.status_code or 500)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True, "version": __version__, "sessions": len(service.store)}

    # --- chat ------------------------------------------------------------
    @app.post("/api/chat")
    def chat(req: ChatRequest) -> Response:
        if not _present(req.session_id):
            return _error("Invalid sessionId", 400)
        if not _present(req.user_text):
            return _error("Empty message", 400)

        try:
            stream = service.stream_reply(req.session_id, req.user_text)
        except GatewayError as exc:
            return _gateway_error(exc)

        # Pull the first delta now so provider errors still map to a status
        # code instead of a broken chunked body.
        try:
            first = next(stream, None)
        except GatewayError as exc:
            stream.close()
            return _gateway_error(exc)

        def body() -> Iterator[str]:
            with stream:
                if first is not None:
                    yield first
                try:
                    yield from stream
                except GatewayError as exc:
                    logger.error("Chat stream for session %s aborted: %s", req.session_id, exc)

        return StreamingResponse(
            body(),
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-store"},
        )

    @app.delete("/api/chat")
    def clear_chat(req: SessionRequest) -> Response:
        if not _present(req.session_id):
            return _error("Invalid sessionId", 400)
        service.clear(req.session_id)
        return Response(status_code=204)

    # --- plan / parse ----------------------------------------------------
    @app.post("/api/plan")
    def plan(req: SessionRequest) -> Response:
        if not _present(req.session_id):
            return _error("Invalid sessionId", 400)
        try:
            events = service.plan(req.session_id)
        except MalformedResponseError as exc:
            logger.warning("Plan output for session %s was not JSON: %s", req.session_id, exc)
            return _error("Failed to parse JSON from model", 502)
        except GatewayError as exc:
            return _gateway_error(exc)
        return JSONResponse([event.to_wire() for event in events])

    @app.post("/api/parse")
    def parse(req: ParseRequest) -> Response:
        if not _present(req.text):
            return _error("Invalid text", 400)
        try:
            candidate = service.parse_single(req.text)
        except GatewayError as exc:
            return _gateway_error(exc)
        return JSONResponse(candidate.to_wire() if candidate is not None else {})

    # --- calendar CRUD ---------------------------------------------------
    @app.get("/api/events")
    def list_events(start: datetime | None = None, end: datetime | None = None) -> Response:
        anchor = start or end or service.now()
        time_min = start or anchor - _LIST_PAST
        time_max = end or anchor + _LIST_AHEAD
        try:
            if time_max <= time_min:
                return _error("end must be after start", 400)
        except TypeError:
            return _error("start and end must both include a timezone, or neither", 400)
        events = get_calendar().list_events(time_min, time_max)
        return JSONResponse([summarize_google_event(event) for event in events])

    @app.post("/api/events")
    def create_event(req: EventCreateRequest) -> Response:
        title = req.title.strip()
        if not title:
            return _error("Title is required", 400)
        end_time = req.end_time or req.start_time + DEFAULT_DURATION
        try:
            if end_time <= req.start_time:
                return _error("end_time must be after start_time", 400)
        except TypeError:
            return _error("start_time and end_time must both include a timezone, or neither", 400)

        draft = EventDraft(
            title=title,
            start_time=req.start_time,
            end_time=end_time,
            description=req.description,
        )
        created = get_calendar().create_event(draft)
        if created is None:
            return _error("Event already exists", 409)
        return JSONResponse(summarize_google_event(created), status_code=201)

    @app.delete("/api/events")
    def delete_event(req: EventDeleteRequest) -> Response:
        if not req.id.strip():
            return _error("Invalid id", 400)
        get_calendar().delete_event(req.id)
        return Response(status_code=204)

    return app
