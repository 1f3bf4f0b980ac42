"""Tests for the on-disk token cache."""

import json
import stat
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from gcal.config import CALENDAR_SCOPES
from gcal.google import StoredToken, TokenStore, load_client_secret


@pytest.fixture
def secret(secret_file):
    return load_client_secret(secret_file)


@pytest.fixture
def token():
    return StoredToken(
        access_token="access",
        refresh_token="refresh",
        expires_at=datetime(2030, 6, 1, 12, 30, tzinfo=timezone.utc),
        scopes=frozenset(CALENDAR_SCOPES),
    )


class TestStoredToken:
    """Test token expiry and scope checks."""

    def test_not_expired(self, token):
        """Should be valid before expiry."""
        assert token.is_expired(now=datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)) is False

    def test_expired(self, token):
        """Should be expired after expiry."""
        assert token.is_expired(now=datetime(2030, 6, 1, 13, 0, tzinfo=timezone.utc)) is True

    def test_expiring_soon_counts_as_expired(self, token):
        """Should treat tokens inside the clock-skew window as expired."""
        now = token.expires_at - timedelta(seconds=30)
        assert token.is_expired(now=now) is True

    def test_no_expiry_never_expires(self):
        """Should never expire without an expiry timestamp."""
        assert StoredToken(access_token="a").is_expired() is False

    def test_covers_subset(self, token):
        """Should satisfy any subset of its scopes."""
        assert token.covers([]) is True
        assert token.covers(CALENDAR_SCOPES[:1]) is True
        assert token.covers(CALENDAR_SCOPES) is True

    def test_does_not_cover_extra_scope(self, token):
        """Should not satisfy scopes it wasn't granted."""
        assert token.covers(["https://www.googleapis.com/auth/drive"]) is False

    def test_from_authlib_keeps_previous_refresh_token(self, token):
        """Should carry over refresh token and scopes omitted by a refresh response."""
        refreshed = StoredToken.from_authlib(
            {"access_token": "new", "expires_at": 1900000000, "token_type": "Bearer"},
            fallback=token,
        )
        assert refreshed.access_token == "new"
        assert refreshed.refresh_token == "refresh"
        assert refreshed.scopes == token.scopes
        assert refreshed.expires_at == datetime.fromtimestamp(1900000000, tz=timezone.utc)

    def test_from_authlib_scope_string(self):
        """Should split a space-separated scope string."""
        parsed = StoredToken.from_authlib({"access_token": "a", "scope": "one two"})
        assert parsed.scopes == frozenset({"one", "two"})


class TestTokenStore:
    """Test token persistence."""

    def test_load_missing(self, tmp_path):
        """Should return None when no token file exists."""
        assert TokenStore(tmp_path / "store.json").load() is None

    def test_round_trip(self, tmp_path, token, secret):
        """Should read back the same access token, expiry and scopes."""
        store = TokenStore(tmp_path / "store.json")
        store.save(token, secret)

        loaded = store.load()
        assert loaded == token

    def test_saved_layout_is_authorized_user_json(self, tmp_path, token, secret):
        """Should write the google-auth authorized user layout."""
        path = tmp_path / "store.json"
        TokenStore(path).save(token, secret)

        data = json.loads(path.read_text())
        assert data["token"] == "access"
        assert data["client_id"] == secret.client_id
        assert data["token_uri"] == "https://oauth2.googleapis.com/token"
        assert data["expiry"] == "2030-06-01T12:30:00Z"
        assert data["scopes"] == sorted(CALENDAR_SCOPES)

    def test_saved_file_is_private(self, tmp_path, token, secret):
        """Should restrict the token file to the owner."""
        path = tmp_path / "store.json"
        TokenStore(path).save(token, secret)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_save_creates_directory(self, tmp_path, token, secret):
        """Should create the configuration directory if needed."""
        path = tmp_path / "nested" / "store.json"
        TokenStore(path).save(token, secret)
        assert path.exists()

    def test_failed_write_keeps_previous_token(self, tmp_path, token, secret):
        """Should leave the previous file intact when a write fails."""
        path = tmp_path / "cache" / "store.json"
        store = TokenStore(path)
        store.save(token, secret)
        before = path.read_text()

        replacement = StoredToken(access_token="other", scopes=token.scopes)
        with (
            patch("gcal.google.token_store.json.dump", side_effect=RuntimeError("disk full")),
            pytest.raises(RuntimeError, match="disk full"),
        ):
            store.save(replacement, secret)

        assert path.read_text() == before
        assert sorted(p.name for p in path.parent.iterdir()) == ["store.json"]

    def test_load_epoch_expiry(self, make_token):
        """Should accept epoch-second expiries."""
        path = make_token(expiry=1900000000)
        loaded = TokenStore(path).load()
        assert loaded.expires_at == datetime.fromtimestamp(1900000000, tz=timezone.utc)

    def test_load_malformed(self, tmp_path):
        """Should ignore a corrupt token file."""
        path = tmp_path / "store.json"
        path.write_text("{broken")
        assert TokenStore(path).load() is None

    def test_load_missing_access_token(self, tmp_path):
        """Should ignore a token file without an access token."""
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"refresh_token": "r"}))
        assert TokenStore(path).load() is None

    def test_clear(self, valid_token):
        """Should delete the token file once."""
        store = TokenStore(valid_token)
        assert store.clear() is True
        assert store.exists() is False
        assert store.clear() is False
