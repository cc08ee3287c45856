"""Fixtures for the Google Calendar collaborator tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, create_autospec

import pytest
from google.oauth2.credentials import Credentials


def _credentials(*, valid: bool, token_json: str) -> MagicMock:
    creds = create_autospec(Credentials, instance=True)
    creds.valid = valid
    creds.expired = not valid
    creds.refresh_token = "fake-refresh-token"
    creds.to_json.return_value = token_json
    return creds


@pytest.fixture()
def make_credentials() -> Callable[..., MagicMock]:
    """Factory for autospecced ``Credentials`` mocks.

    ``make_credentials(valid=False)`` gives an expired token that still has
    a refresh token.
    """
    return _credentials


@pytest.fixture()
def mock_credentials() -> MagicMock:
    """A currently valid token."""
    return _credentials(valid=True, token_json='{"token": "fake"}')


@pytest.fixture()
def mock_expired_credentials() -> MagicMock:
    """An expired token that can be refreshed."""
    return _credentials(valid=False, token_json='{"token": "refreshed"}')


@pytest.fixture()
def oauth_files(tmp_path: Path) -> tuple[Path, Path]:
    """``(client_secrets, token)`` paths; only the client secrets file exists."""
    secrets = tmp_path / "credentials.json"
    secrets.write_text('{"installed": {"client_id": "fake", "client_secret": "fake"}}')
    return secrets, tmp_path / "token.json"
