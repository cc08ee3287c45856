"""OAuth 2.0 credentials for the Google Calendar collaborator.

Uses the desktop-application flow from ``google-auth-oauthlib``: a cached
token is reused while valid, refreshed when expired, and replaced through
the browser flow as a last resort.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from plan_ai.calendar.exceptions import CalendarAuthError

logger = logging.getLogger(__name__)

SCOPES: list[str] = ["https://www.googleapis.com/auth/calendar.events"]
"""Event read/write access; calendar-level settings are never touched."""


def get_calendar_credentials(
    credentials_path: Path | str,
    token_path: Path | str,
    interactive: bool = True,
) -> Credentials:
    """Return valid calendar credentials, refreshing or re-authorising.

    Args:
        credentials_path: OAuth client secrets (``credentials.json``).
        token_path: Cached user token (``token.json``); written whenever new
            or refreshed credentials are obtained.
        interactive: Whether the browser flow may be launched.  The HTTP
            server passes ``False`` so it never blocks on a browser.

    Raises:
        CalendarAuthError: If no valid token is available and the browser
            flow is not allowed or cannot start.
    """
    credentials_path = Path(credentials_path)
    token_path = Path(token_path)

    creds = _load_token(token_path)
    if creds is not None and creds.valid:
        logger.info("Using cached calendar token from %s", token_path)
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
        except Exception as exc:
            logger.warning("Calendar token refresh failed: %s", exc)
        else:
            _save_token(creds, token_path)
            logger.info("Calendar token refreshed")
            return creds

    if not interactive:
        raise CalendarAuthError(
            f"Unauthorized: no valid calendar token at {token_path}; "
            "run `plan-ai chat` once to sign in"
        )

    if not credentials_path.exists():
        raise CalendarAuthError(f"OAuth client secrets file not found: {credentials_path}")

    logger.info("Starting browser-based OAuth flow")
    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=SCOPES)
    creds = flow.run_local_server(port=0)
    _save_token(creds, token_path)
    return creds


def _load_token(token_path: Path) -> Credentials | None:
    if not token_path.exists():
        return None
    try:
        return Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (json.JSONDecodeError, ValueError, KeyError) as exc:
        logger.warning("Ignoring unreadable token at %s: %s", token_path, exc)
        return None


def _save_token(creds: Credentials, token_path: Path) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.info("Calendar token saved to %s", token_path)
