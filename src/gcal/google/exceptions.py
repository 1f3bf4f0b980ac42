"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class CredentialsError(GoogleAuthError):
    """Raised when the OAuth client secret cannot be used."""

    pass


class CredentialsNotFoundError(CredentialsError):
    """Raised when OAuth credentials file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console."
        )


class CredentialsMalformedError(CredentialsError):
    """Raised when the OAuth credentials file can't be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid credentials file at {path}: {reason}")


class TokenError(GoogleAuthError):
    """Raised when there's an issue with the OAuth token."""

    pass


class AuthorizationFlowError(TokenError):
    """Raised when interactive authorization is aborted, denied or times out."""

    pass


class TokenRefreshError(TokenError):
    """Raised when an expired token can't be refreshed."""

    pass


class ScopeMismatchError(TokenError):
    """Raised when token scopes don't match required scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(f"Token missing required scopes: {sorted(missing_scopes)}")
