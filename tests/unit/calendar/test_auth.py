"""Tests for Google Calendar OAuth 2.0 credentials.

``get_calendar_credentials`` tries, in order: the cached token, a token
refresh, and the installed-app browser flow.  The HTTP server calls it with
``interactive=False`` so the last step becomes an authorization error.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from plan_ai.calendar.auth import SCOPES, _load_token, get_calendar_credentials
from plan_ai.calendar.exceptions import CalendarAuthError


def _patch_token(creds: MagicMock | None):
    return patch("plan_ai.calendar.auth._load_token", return_value=creds)


class TestCachedToken:
    def test_valid_token_reused(
        self, oauth_files: tuple[Path, Path], mock_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files

        with _patch_token(mock_credentials) as mock_load, patch(
            "plan_ai.calendar.auth.InstalledAppFlow"
        ) as mock_flow:
            result = get_calendar_credentials(secrets, token)

        mock_load.assert_called_once_with(token)
        mock_flow.from_client_secrets_file.assert_not_called()
        assert result is mock_credentials

    def test_paths_accepted_as_strings(
        self, oauth_files: tuple[Path, Path], mock_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files

        with _patch_token(mock_credentials) as mock_load:
            get_calendar_credentials(str(secrets), str(token))

        mock_load.assert_called_once_with(token)

    def test_missing_token_file(self, oauth_files: tuple[Path, Path]) -> None:
        _, token = oauth_files

        assert _load_token(token) is None

    def test_unreadable_token_ignored(self, oauth_files: tuple[Path, Path]) -> None:
        _, token = oauth_files
        token.write_text("not json")

        assert _load_token(token) is None


class TestRefresh:
    def test_refresh_saves_token(
        self, oauth_files: tuple[Path, Path], mock_expired_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files

        with _patch_token(mock_expired_credentials), patch(
            "plan_ai.calendar.auth.InstalledAppFlow"
        ) as mock_flow:
            result = get_calendar_credentials(secrets, token)

        mock_expired_credentials.refresh.assert_called_once()
        mock_flow.from_client_secrets_file.assert_not_called()
        assert result is mock_expired_credentials
        assert token.read_text() == '{"token": "refreshed"}'

    def test_refresh_works_non_interactive(
        self, oauth_files: tuple[Path, Path], mock_expired_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files

        with _patch_token(mock_expired_credentials):
            result = get_calendar_credentials(secrets, token, interactive=False)

        assert result is mock_expired_credentials

    def test_failed_refresh_falls_back_to_browser(
        self,
        oauth_files: tuple[Path, Path],
        make_credentials: Callable[..., MagicMock],
    ) -> None:
        secrets, token = oauth_files
        expired = make_credentials(valid=False, token_json="{}")
        expired.refresh.side_effect = Exception("invalid_grant")
        fresh = make_credentials(valid=True, token_json='{"token": "new"}')

        with _patch_token(expired), patch("plan_ai.calendar.auth.InstalledAppFlow") as mock_flow:
            mock_flow.from_client_secrets_file.return_value.run_local_server.return_value = fresh
            result = get_calendar_credentials(secrets, token)

        assert result is fresh
        assert token.read_text() == '{"token": "new"}'

    def test_failed_refresh_non_interactive_raises(
        self, oauth_files: tuple[Path, Path], mock_expired_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files
        mock_expired_credentials.refresh.side_effect = Exception("invalid_grant")

        with _patch_token(mock_expired_credentials), pytest.raises(
            CalendarAuthError, match="Unauthorized"
        ):
            get_calendar_credentials(secrets, token, interactive=False)


class TestBrowserFlow:
    def test_flow_launched_with_event_scope(
        self, oauth_files: tuple[Path, Path], mock_credentials: MagicMock
    ) -> None:
        secrets, token = oauth_files

        with patch("plan_ai.calendar.auth.InstalledAppFlow") as mock_flow:
            mock_flow.from_client_secrets_file.return_value.run_local_server.return_value = (
                mock_credentials
            )
            result = get_calendar_credentials(secrets, token)

        mock_flow.from_client_secrets_file.assert_called_once_with(str(secrets), scopes=SCOPES)
        assert SCOPES == ["https://www.googleapis.com/auth/calendar.events"]
        assert result is mock_credentials
        assert token.read_text() == '{"token": "fake"}'

    def test_missing_client_secrets(self, tmp_path: Path) -> None:
        with pytest.raises(CalendarAuthError, match="not found"):
            get_calendar_credentials(tmp_path / "missing.json", tmp_path / "token.json")

    def test_non_interactive_never_opens_browser(self, oauth_files: tuple[Path, Path]) -> None:
        secrets, token = oauth_files

        with patch("plan_ai.calendar.auth.InstalledAppFlow") as mock_flow:
            with pytest.raises(CalendarAuthError) as exc_info:
                get_calendar_credentials(secrets, token, interactive=False)

        mock_flow.from_client_secrets_file.assert_not_called()
        assert exc_info.value.status_code == 401
