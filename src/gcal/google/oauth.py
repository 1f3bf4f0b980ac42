"""Google OAuth management using Authlib.

This module drives the token lifecycle for the calendar CLI:
- Cached tokens are reused while valid and covering the requested scopes
- Expired tokens are refreshed once with Authlib and persisted
- Otherwise the installed-app flow runs, either through a loopback
  redirect (browser) or by pasting the redirect URL (console)

Credentials live in the gcal configuration directory by default:
    ~/.gcal/secret.json - OAuth client credentials
    ~/.gcal/store.json  - OAuth tokens
"""

import logging
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import requests
from authlib.integrations.requests_client import OAuth2Session, OAuthError
from authlib.oauth2 import OAuth2Error
from google.oauth2.credentials import Credentials as GoogleCredentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from gcal.config import CALENDAR_SCOPES, get_secret_path, get_store_path
from gcal.google.exceptions import (
    AuthorizationFlowError,
    ScopeMismatchError,
    TokenRefreshError,
)
from gcal.google.secret import ClientSecret, load_client_secret
from gcal.google.token_store import StoredToken, TokenStore

logger = logging.getLogger(__name__)


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the installed-app authorization flow, token caching and refresh,
    and Google API service creation.

    Example:
        >>> auth = GoogleOAuth()
        >>> token = auth.ensure_token()  # prompts only when needed
        >>> service = auth.build_service("calendar", "v3")
    """

    REVOKE_URL = "https://oauth2.googleapis.com/revoke"
    CONSOLE_REDIRECT_URI = "http://localhost"

    def __init__(
        self,
        scopes: list[str] | None = None,
        secret_path: str | Path | None = None,
        token_path: str | Path | None = None,
        interactive: bool = True,
        open_browser: bool = True,
        timeout: int | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            scopes: Full scope URLs. Defaults to the calendar scopes.
            secret_path: Path to OAuth client secret. Defaults to ~/.gcal/secret.json.
            token_path: Path to store/load tokens. Defaults to ~/.gcal/store.json.
            interactive: Whether authorization may prompt the user.
            open_browser: Use the loopback browser flow. When False the user
                pastes the redirect URL instead.
            timeout: Seconds to wait for the browser redirect (None waits forever).

        Raises:
            CredentialsNotFoundError: If the client secret file is missing.
            CredentialsMalformedError: If the client secret can't be parsed.
        """
        self.secret_path = Path(secret_path) if secret_path else get_secret_path()
        self.token_path = Path(token_path) if token_path else get_store_path()
        self.required_scopes = list(scopes or CALENDAR_SCOPES)
        self.interactive = interactive
        self.open_browser = open_browser
        self.timeout = timeout

        self.secret: ClientSecret = load_client_secret(self.secret_path)
        self.store = TokenStore(self.token_path)

        self.session = OAuth2Session(
            client_id=self.secret.client_id,
            client_secret=self.secret.client_secret,
            scope=" ".join(self.required_scopes),
            redirect_uri=self.CONSOLE_REDIRECT_URI,
            token_endpoint=self.secret.token_uri,
            token_endpoint_auth_method="client_secret_post",
        )

        self._token: StoredToken | None = None
        self._state: str | None = None
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

    @property
    def client_id(self) -> str:
        return self.secret.client_id

    # =========================================================================
    # Token lifecycle
    # =========================================================================

    def ensure_token(self) -> StoredToken:
        """Return a valid token, refreshing or authorizing only when needed.

        Raises:
            AuthorizationFlowError: If interactive authorization fails.
            ScopeMismatchError: If the user granted fewer scopes than required.
        """
        if self._token is not None and not self._token.is_expired():
            return self._token

        token = self._token or self.store.load()

        if token is not None and not token.covers(self.required_scopes):
            missing = set(self.required_scopes) - token.scopes
            logger.warning(f"Token missing required scopes: {sorted(missing)}")
            token = None

        if token is not None and not token.is_expired():
            self._token = token
            return token

        if token is not None and token.refresh_token:
            logger.info("Token expired, refreshing...")
            try:
                self._token = self.refresh(token)
                return self._token
            except TokenRefreshError as e:
                logger.warning(f"{e}; starting new authorization flow")

        self._token = self.authorize()
        return self._token

    def is_authorized(self) -> bool:
        """Check if a cached token covers the required scopes.

        Expired tokens still count when they can be refreshed.
        """
        token = self._token or self.store.load()
        if token is None or not token.covers(self.required_scopes):
            return False
        return not token.is_expired() or bool(token.refresh_token)

    def refresh(self, token: StoredToken) -> StoredToken:
        """Refresh ``token`` against the token endpoint and persist the result.

        Raises:
            TokenRefreshError: If the provider rejects the refresh or is unreachable.
        """
        if not token.refresh_token:
            raise TokenRefreshError("Token has no refresh token")

        self.session.token = token.to_authlib()
        try:
            result = self.session.refresh_token(
                self.secret.token_uri,
                refresh_token=token.refresh_token,
            )
        except (OAuthError, OAuth2Error, requests.RequestException) as e:
            raise TokenRefreshError(f"Failed to refresh token: {e}") from e

        refreshed = StoredToken.from_authlib(dict(result), fallback=token)
        self._persist(refreshed)

        self.last_refresh = datetime.now()
        self.refresh_count += 1
        return refreshed

    def authorize(self) -> StoredToken:
        """Run the interactive installed-app flow and persist the new token.

        Blocks until the user completes (or abandons) the consent screen.
        KeyboardInterrupt propagates and leaves the token file untouched.
        """
        if not self.interactive:
            raise AuthorizationFlowError(
                "Google Calendar requires authorization. Run gcal from a terminal to sign in."
            )

        if self.open_browser:
            token = self._run_local_server()
        else:
            token = self._run_console_flow()

        missing = set(self.required_scopes) - token.scopes
        if missing:
            raise ScopeMismatchError(missing)

        self._persist(token)
        return token

    def _persist(self, token: StoredToken) -> None:
        self.store.save(token, self.secret)
        self._token = token

    def _run_local_server(self) -> StoredToken:
        """Loopback flow: open a browser and wait for Google's redirect."""
        flow = InstalledAppFlow.from_client_config(
            self.secret.to_client_config(),
            scopes=self.required_scopes,
        )
        started = time.monotonic()
        try:
            creds = flow.run_local_server(
                host="localhost",
                port=0,
                open_browser=True,
                timeout_seconds=self.timeout,
                authorization_prompt_message="Please visit this URL to authorize gcal: {url}",
                success_message="Authorization complete. You may close this tab.",
                access_type="offline",
                prompt="consent",
            )
        except AttributeError as e:
            # run_local_server has no redirect to parse when the wait times out
            if self.timeout and time.monotonic() - started >= self.timeout:
                raise AuthorizationFlowError(
                    f"No authorization response received within {self.timeout} seconds"
                ) from e
            raise AuthorizationFlowError(f"Authorization failed: {e}") from e
        except Exception as e:
            raise AuthorizationFlowError(f"Authorization failed: {e}") from e

        if creds is None or not creds.token:
            raise AuthorizationFlowError("Authorization did not return a token")

        return StoredToken.from_google_credentials(creds)

    def _run_console_flow(self) -> StoredToken:
        """Console flow: the user pastes the redirect URL back."""
        url = self.get_authorization_url()
        print("Visit this URL to authorize gcal:")
        print(url)
        print()

        try:
            redirect_url = input("Paste redirect URL: ").strip()
        except EOFError as e:
            raise AuthorizationFlowError("No redirect URL provided") from e

        if not redirect_url:
            raise AuthorizationFlowError("No redirect URL provided")

        return self.fetch_token(redirect_url)

    def get_authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        authorization_url, state = self.session.create_authorization_url(
            self.secret.auth_uri,
            access_type="offline",
            prompt="consent",
        )

        self._state = state
        return authorization_url

    def fetch_token(self, authorization_response: str) -> StoredToken:
        """Exchange the redirect URL from the consent screen for a token.

        Raises:
            AuthorizationFlowError: If access was denied or the exchange failed.
        """
        try:
            token = self.session.fetch_token(
                self.secret.token_uri,
                authorization_response=authorization_response,
                state=self._state,
            )
        except (OAuthError, OAuth2Error, requests.RequestException) as e:
            raise AuthorizationFlowError(f"Authorization failed: {e}") from e

        stored = StoredToken.from_authlib(dict(token))
        if not stored.scopes:
            # Google omits "scope" when it matches the request
            stored = replace(stored, scopes=frozenset(self.required_scopes))
        return stored

    # =========================================================================
    # API access
    # =========================================================================

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with a valid token.
        """
        token = self.ensure_token()

        expiry = None
        if token.expires_at is not None:
            # google-auth compares against naive UTC
            expiry = token.expires_at.astimezone(timezone.utc).replace(tzinfo=None)

        return GoogleCredentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=self.secret.token_uri,
            client_id=self.secret.client_id,
            client_secret=self.secret.client_secret,
            scopes=self.required_scopes,
            expiry=expiry,
        )

    def build_service(self, service_name: str = "calendar", version: str = "v3"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service.
            version: API version.

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def revoke_token(self) -> bool:
        """Revoke the current token and clear local storage.

        Returns:
            True if a local token was removed.
        """
        token = self._token or self.store.load()
        if token is None:
            logger.warning("No token to revoke")
            return self.store.clear()

        try:
            requests.post(
                self.REVOKE_URL,
                params={"token": token.refresh_token or token.access_token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
        except requests.RequestException as e:
            logger.warning(f"Failed to revoke token remotely: {e}")

        self._token = None
        removed = self.store.clear()
        logger.info("Token revoked successfully")
        return removed

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the cached token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        token = self._token or self.store.load()
        if token is None:
            return {"status": "no_token"}

        if token.expires_at is not None:
            expires_in = token.expires_at - datetime.now(timezone.utc)
            expires_str = str(max(expires_in, timedelta(0))).split(".")[0]
        else:
            expires_str = "unknown"

        return {
            "status": "expired" if token.is_expired() else "valid",
            "scopes": sorted(token.scopes),
            "missing_scopes": sorted(set(self.required_scopes) - token.scopes),
            "expires_in": expires_str,
            "has_refresh_token": bool(token.refresh_token),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }
