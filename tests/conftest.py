"""Shared test fixtures."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from gcal.config import CALENDAR_SCOPES


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point GCAL_CONFIG_DIR at an empty temporary directory."""
    directory = tmp_path / "gcal-config"
    monkeypatch.setenv("GCAL_CONFIG_DIR", str(directory))
    monkeypatch.delenv("GCAL_AUTH_TIMEOUT", raising=False)
    # registered so a value set by main() is removed after the test
    monkeypatch.setenv("OAUTHLIB_RELAX_TOKEN_SCOPE", "")
    monkeypatch.delenv("OAUTHLIB_RELAX_TOKEN_SCOPE")
    return directory


@pytest.fixture
def secret_file(tmp_path):
    """Create a mock installed-app client secret."""
    creds = {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }
    path = tmp_path / "secret.json"
    with open(path, "w") as f:
        json.dump(creds, f)
    return path


def write_token(path, *, expiry, scopes=None, refresh_token="test-refresh-token"):
    """Write a token file in the authorized-user layout."""
    token = {
        "token": "test-access-token",
        "refresh_token": refresh_token,
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "test-client-id.apps.googleusercontent.com",
        "client_secret": "test-client-secret",
        "scopes": list(CALENDAR_SCOPES if scopes is None else scopes),
        "type": "Bearer",
        "expiry": expiry,
    }
    with open(path, "w") as f:
        json.dump(token, f)
    return path


@pytest.fixture
def make_token(tmp_path):
    """Factory for token files; see write_token."""

    def _make(**kwargs):
        kwargs.setdefault("expiry", "2099-01-01T00:00:00Z")
        return write_token(tmp_path / "store.json", **kwargs)

    return _make


@pytest.fixture
def valid_token(tmp_path):
    """Token file that expires far in the future."""
    return write_token(tmp_path / "store.json", expiry="2099-01-01T00:00:00Z")


@pytest.fixture
def expired_token(tmp_path):
    """Token file that expired an hour ago but can be refreshed."""
    expiry = datetime.now(timezone.utc) - timedelta(hours=1)
    return write_token(
        tmp_path / "store.json",
        expiry=expiry.replace(tzinfo=None).isoformat() + "Z",
    )
