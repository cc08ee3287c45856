"""Entry point for ``python -m plan_ai`` (also installed as ``plan-ai``).

Subcommands:
    serve -- Run the HTTP API with uvicorn.
    chat  -- Interactive terminal chat that schedules into Google Calendar.

Exit codes:
    0 -- Clean exit (including end of input in ``chat``).
    1 -- Configuration or calendar authorisation error.
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid

import uvicorn

from plan_ai.assistant import ChatAssistant, SubmissionResult
from plan_ai.calendar.backend import CalendarBackend, DryRunCalendar
from plan_ai.calendar.client import GoogleCalendarClient
from plan_ai.calendar.exceptions import CalendarAPIError
from plan_ai.config import ConfigError, Settings, load_calendar_settings, load_settings
from plan_ai.log import setup_logging, uvicorn_log_config
from plan_ai.server import create_app
from plan_ai.service import SchedulingService

logger = logging.getLogger(__name__)

_CLEAR_COMMAND = "/clear"
_QUIT_COMMANDS = {"/quit", "/exit"}


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with ``serve`` and ``chat`` subcommands."""
    parser = argparse.ArgumentParser(
        prog="plan-ai",
        description="Chat with an assistant that schedules your calendar.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- "serve" --------------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port.")
    serve_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    # --- "chat" ---------------------------------------------------------
    chat_parser = subparsers.add_parser("chat", help="Interactive terminal chat.")
    chat_parser.add_argument(
        "--session",
        default=None,
        help="Session id to use (default: a new random id).",
    )
    chat_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Extract events but do not write to Google Calendar.",
    )
    chat_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    return parser


def _build_service(settings: Settings | None) -> SchedulingService:
    if settings is None:
        return SchedulingService()
    return SchedulingService.from_settings(settings)


def _handle_serve(args: argparse.Namespace) -> int:
    """Run the HTTP server until interrupted."""
    settings: Settings | None
    try:
        settings = load_settings()
    except ConfigError as exc:
        # Requests will report the missing key; the server can still start.
        logger.warning("%s; Gemini-backed routes will fail until it is set", exc)
        settings = None

    level = "DEBUG" if args.verbose else "INFO"
    if settings is not None and not args.verbose:
        level = settings.log_level
        setup_logging(level)

    app = create_app(service=_build_service(settings))
    logger.info("Serving plan-ai on http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_config=uvicorn_log_config(level))
    return 0


def _handle_chat(args: argparse.Namespace) -> int:
    """Run the interactive chat loop."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not args.verbose:
        setup_logging(settings.log_level)

    calendar: CalendarBackend
    if args.dry_run:
        calendar = DryRunCalendar()
    else:
        try:
            calendar = GoogleCalendarClient.from_settings(load_calendar_settings())
        except CalendarAPIError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    service = _build_service(settings)
    assistant = ChatAssistant(service, calendar)
    session_id = args.session or uuid.uuid4().hex

    print(f"Session {session_id}. Type {_CLEAR_COMMAND} to forget, /quit to leave.")
    while True:
        try:
            line = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not line:
            continue
        if line in _QUIT_COMMANDS:
            return 0
        if line == _CLEAR_COMMAND:
            service.clear(session_id)
            print("(memory cleared)")
            continue

        print("assistant> ", end="", flush=True)
        result = assistant.submit(session_id, line, on_delta=_print_delta)
        print_submission(result)


def _print_delta(delta: str) -> None:
    print(delta, end="", flush=True)


def print_submission(result: SubmissionResult) -> None:
    """Print the status messages that follow a streamed reply."""
    if result.reply and not result.reply.endswith("\n"):
        print()
    for message in result.messages:
        print(f"  * {message}")


def main(argv: list[str] | None = None) -> int:
    """Run the plan-ai CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging("DEBUG" if args.verbose else "INFO")

    if args.command == "serve":
        return _handle_serve(args)
    return _handle_chat(args)


if __name__ == "__main__":
    raise SystemExit(main())
