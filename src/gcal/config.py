"""Centralized configuration and filesystem layout.

All local state lives in a single configuration directory:
    ~/.gcal/secret.json  - Google OAuth client credentials (user supplied)
    ~/.gcal/store.json   - Google OAuth tokens (written by gcal)

The directory can be moved with the GCAL_CONFIG_DIR environment variable.
Values are read from the environment on every call so tests and wrappers
can redirect them without reloading the module.
"""

import os
from pathlib import Path

CONFIG_DIR_NAME = ".gcal"
SECRET_FILE_NAME = "secret.json"
STORE_FILE_NAME = "store.json"

DEFAULT_CALENDAR_ID = "primary"
DEFAULT_AUTH_TIMEOUT = 300

# Scopes requested for every invocation
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events.readonly",
]


def get_absolute_path(relative: str | Path, base: str | Path | None = None) -> Path:
    """Resolve a path relative to the user's home directory.

    Args:
        relative: Path fragment such as ".gcal/secret.json".
        base: Directory to resolve against. Defaults to the home directory.

    Returns:
        Absolute path.
    """
    root = Path(base).expanduser() if base else Path.home()
    return (root / relative).absolute()


def ensure_directory_exists(path: str | Path) -> Path:
    """Create the parent directory of ``path`` if it doesn't exist.

    The file itself is never created.

    Returns:
        The path, unchanged.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding secret.json and store.json."""
    override = os.environ.get("GCAL_CONFIG_DIR")
    if override:
        return Path(override).expanduser().absolute()
    return get_absolute_path(CONFIG_DIR_NAME)


def get_secret_path() -> Path:
    return get_config_dir() / SECRET_FILE_NAME


def get_store_path() -> Path:
    return get_config_dir() / STORE_FILE_NAME


def get_auth_timeout() -> int | None:
    """Seconds to wait for the OAuth redirect, or None to wait forever."""
    raw = os.environ.get("GCAL_AUTH_TIMEOUT")
    if raw is None or not raw.strip():
        return DEFAULT_AUTH_TIMEOUT

    try:
        timeout = int(raw)
    except ValueError:
        raise ValueError(f"GCAL_AUTH_TIMEOUT must be an integer, got {raw!r}") from None

    return timeout if timeout > 0 else None
