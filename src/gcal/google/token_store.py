"""Persisted OAuth token cache.

The token file uses the google-auth "authorized user" layout so it can also
be read with ``Credentials.from_authorized_user_file``:

    {
      "token": "...",
      "refresh_token": "...",
      "token_uri": "https://oauth2.googleapis.com/token",
      "client_id": "...",
      "client_secret": "...",
      "scopes": ["https://www.googleapis.com/auth/calendar", ...],
      "type": "Bearer",
      "expiry": "2024-01-01T00:00:00Z"
    }

Writes go to a temporary file in the same directory which then replaces the
store, so an interrupted write never clobbers a previously valid token.
Concurrent gcal processes sharing one store are not coordinated.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gcal.config import ensure_directory_exists

if TYPE_CHECKING:
    from google.oauth2.credentials import Credentials

    from gcal.google.secret import ClientSecret

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as expired
EXPIRY_SKEW = timedelta(seconds=60)


def _parse_expiry(value: Any) -> datetime | None:
    """Parse an expiry stored as ISO-8601 text or epoch seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    raise ValueError(f"Unsupported expiry value: {value!r}")


def _format_expiry(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


@dataclass(frozen=True)
class StoredToken:
    """An OAuth token as cached on disk."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    scopes: frozenset[str] = frozenset()
    token_type: str = "Bearer"

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check expiry. Tokens without an expiry never expire."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - EXPIRY_SKEW

    def covers(self, scopes: Iterable[str]) -> bool:
        """True if every requested scope was granted to this token."""
        return set(scopes).issubset(self.scopes)

    @classmethod
    def from_authlib(
        cls, token: dict[str, Any], fallback: StoredToken | None = None
    ) -> StoredToken:
        """Build from an Authlib token dict.

        Refresh responses usually omit the refresh token and sometimes the
        scope; those are carried over from ``fallback``.
        """
        scope = token.get("scope")
        if isinstance(scope, str):
            scopes = frozenset(scope.split())
        elif scope:
            scopes = frozenset(scope)
        else:
            scopes = fallback.scopes if fallback else frozenset()

        refresh_token = token.get("refresh_token") or (
            fallback.refresh_token if fallback else None
        )

        return cls(
            access_token=token["access_token"],
            refresh_token=refresh_token,
            expires_at=_parse_expiry(token.get("expires_at")),
            scopes=scopes,
            token_type=token.get("token_type", "Bearer"),
        )

    @classmethod
    def from_google_credentials(cls, creds: Credentials) -> StoredToken:
        """Build from google-auth credentials returned by the installed-app flow."""
        expires_at = None
        if creds.expiry is not None:
            expires_at = creds.expiry.replace(tzinfo=timezone.utc)

        scopes = getattr(creds, "granted_scopes", None) or creds.scopes or []
        if isinstance(scopes, str):
            scopes = scopes.split()

        return cls(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expires_at=expires_at,
            scopes=frozenset(scopes),
        )

    def to_authlib(self) -> dict[str, Any]:
        """Token dict for ``OAuth2Session(token=...)``."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_at": self.expires_at.timestamp() if self.expires_at else None,
            "scope": " ".join(sorted(self.scopes)),
        }


class TokenStore:
    """Load and atomically persist a StoredToken at a fixed path."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoredToken | None:
        """Load token from storage.

        Returns:
            The cached token, or None if absent or unreadable.
        """
        if not self.path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)

            token = StoredToken(
                access_token=data["token"],
                refresh_token=data.get("refresh_token"),
                expires_at=_parse_expiry(data.get("expiry")),
                scopes=frozenset(data.get("scopes") or []),
                token_type=data.get("type", "Bearer"),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return None

        logger.info(f"Loaded token with scopes: {sorted(token.scopes)}")
        return token

    def save(self, token: StoredToken, secret: ClientSecret) -> None:
        """Persist ``token``, replacing the previous file atomically."""
        payload = {
            "token": token.access_token,
            "refresh_token": token.refresh_token,
            "token_uri": secret.token_uri,
            "client_id": secret.client_id,
            "client_secret": secret.client_secret,
            "scopes": sorted(token.scopes),
            "type": token.token_type,
            "expiry": _format_expiry(token.expires_at),
        }

        ensure_directory_exists(self.path)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        logger.info(f"Token saved with scopes: {sorted(token.scopes)}")

    def clear(self) -> bool:
        """Delete the token file. Returns True if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
