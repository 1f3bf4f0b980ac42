"""OAuth client secret loading."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from gcal.google.exceptions import CredentialsMalformedError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class ClientSecret:
    """OAuth client credentials downloaded from Google Cloud Console."""

    client_id: str
    client_secret: str
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI
    redirect_uris: tuple[str, ...] = field(default_factory=tuple)
    kind: str = "installed"

    def to_client_config(self) -> dict:
        """Client config in the layout ``InstalledAppFlow.from_client_config`` expects."""
        return {
            self.kind: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": list(self.redirect_uris) or ["http://localhost"],
            }
        }


def load_client_secret(path: str | Path) -> ClientSecret:
    """Load OAuth client credentials from file.

    Both the "installed" and "web" layouts are accepted.

    Raises:
        CredentialsNotFoundError: If the file doesn't exist.
        CredentialsMalformedError: If the file isn't a usable client secret.
    """
    path = Path(path)
    if not path.exists():
        raise CredentialsNotFoundError(str(path))

    try:
        with open(path) as f:
            creds = json.load(f)
    except json.JSONDecodeError as e:
        raise CredentialsMalformedError(str(path), f"invalid JSON ({e})") from e
    except OSError as e:
        raise CredentialsMalformedError(str(path), str(e)) from e

    if not isinstance(creds, dict):
        raise CredentialsMalformedError(str(path), "expected a JSON object")

    if "installed" in creds:
        kind = "installed"
    elif "web" in creds:
        kind = "web"
    else:
        raise CredentialsMalformedError(str(path), "expected 'installed' or 'web' key")

    app_creds = creds[kind]
    if not isinstance(app_creds, dict):
        raise CredentialsMalformedError(str(path), f"'{kind}' must be a JSON object")

    missing = [key for key in ("client_id", "client_secret") if not app_creds.get(key)]
    if missing:
        raise CredentialsMalformedError(str(path), f"missing {', '.join(missing)}")

    logger.debug(f"Loaded {kind} client secret from {path}")
    return ClientSecret(
        client_id=app_creds["client_id"],
        client_secret=app_creds["client_secret"],
        auth_uri=app_creds.get("auth_uri", DEFAULT_AUTH_URI),
        token_uri=app_creds.get("token_uri", DEFAULT_TOKEN_URI),
        redirect_uris=tuple(app_creds.get("redirect_uris", [])),
        kind=kind,
    )
