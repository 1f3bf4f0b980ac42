"""Google OAuth authentication utilities."""

from gcal.google.exceptions import (
    AuthorizationFlowError,
    CredentialsError,
    CredentialsMalformedError,
    CredentialsNotFoundError,
    GoogleAuthError,
    ScopeMismatchError,
    TokenError,
    TokenRefreshError,
)
from gcal.google.oauth import GoogleOAuth
from gcal.google.secret import ClientSecret, load_client_secret
from gcal.google.token_store import StoredToken, TokenStore

__all__ = [
    "GoogleOAuth",
    "ClientSecret",
    "load_client_secret",
    "StoredToken",
    "TokenStore",
    "GoogleAuthError",
    "CredentialsError",
    "CredentialsNotFoundError",
    "CredentialsMalformedError",
    "TokenError",
    "AuthorizationFlowError",
    "TokenRefreshError",
    "ScopeMismatchError",
]
