"""Tests for configuration and filesystem helpers."""

from pathlib import Path

import pytest

from gcal.config import (
    DEFAULT_AUTH_TIMEOUT,
    ensure_directory_exists,
    get_absolute_path,
    get_auth_timeout,
    get_config_dir,
    get_secret_path,
    get_store_path,
)


class TestPaths:
    """Test path resolution."""

    def test_absolute_path_under_home(self, monkeypatch, tmp_path):
        """Should resolve relative paths against the home directory."""
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_absolute_path(".gcal/secret.json") == tmp_path / ".gcal" / "secret.json"

    def test_absolute_path_with_base(self, tmp_path):
        """Should resolve against an explicit base."""
        assert get_absolute_path("a/b.json", base=tmp_path) == tmp_path / "a" / "b.json"

    def test_default_config_dir(self, monkeypatch, tmp_path):
        """Should default to ~/.gcal."""
        monkeypatch.delenv("GCAL_CONFIG_DIR", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_config_dir() == tmp_path / ".gcal"

    def test_config_dir_override(self, config_dir):
        """Should honor GCAL_CONFIG_DIR."""
        assert get_secret_path() == config_dir / "secret.json"
        assert get_store_path() == config_dir / "store.json"

    def test_ensure_directory_exists(self, tmp_path):
        """Should create the parent directory but not the file."""
        path = tmp_path / "x" / "y" / "secret.json"
        assert ensure_directory_exists(path) == path
        assert path.parent.is_dir()
        assert not path.exists()

    def test_ensure_directory_exists_idempotent(self, tmp_path):
        """Should succeed when the directory already exists."""
        path = Path(tmp_path) / "secret.json"
        ensure_directory_exists(path)
        ensure_directory_exists(path)
        assert tmp_path.is_dir()


class TestAuthTimeout:
    """Test GCAL_AUTH_TIMEOUT parsing."""

    def test_default(self, monkeypatch):
        """Should use the default when unset."""
        monkeypatch.delenv("GCAL_AUTH_TIMEOUT", raising=False)
        assert get_auth_timeout() == DEFAULT_AUTH_TIMEOUT

    def test_override(self, monkeypatch):
        """Should read seconds from the environment."""
        monkeypatch.setenv("GCAL_AUTH_TIMEOUT", "45")
        assert get_auth_timeout() == 45

    def test_zero_disables(self, monkeypatch):
        """Should wait forever when set to zero."""
        monkeypatch.setenv("GCAL_AUTH_TIMEOUT", "0")
        assert get_auth_timeout() is None

    def test_invalid(self, monkeypatch):
        """Should reject non-integers."""
        monkeypatch.setenv("GCAL_AUTH_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="GCAL_AUTH_TIMEOUT"):
            get_auth_timeout()
