"""Tests for config file storage."""

import json
import os
import stat
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

import pytest

from src.oauth.config_store import UNKNOWN_OBTAINED_AT, AppConfig, ConfigStore
from src.oauth.exceptions import ConfigStoreError
from src.oauth.models import Session


class TestAppConfig:
    """Tests for AppConfig class."""

    def test_defaults(self):
        """A fresh config is signed out with the default interval."""
        config = AppConfig()

        assert config.access_token is None
        assert config.session is None
        assert config.selected_repos == []
        assert config.refresh_interval_minutes == 60

    def test_with_session_sets_token(self):
        """with_session stores the token and when it was obtained."""
        obtained = datetime(2026, 1, 25, 10, 0, 0, tzinfo=timezone.utc)
        config = AppConfig(selected_repos=["octo/repo"]).with_session(
            Session(access_token="tok_1", obtained_at=obtained)
        )

        assert config.access_token == "tok_1"
        assert config.obtained_at == obtained.isoformat()
        assert config.selected_repos == ["octo/repo"]
        assert config.session == Session(access_token="tok_1", obtained_at=obtained)

    def test_with_session_none_clears(self):
        """with_session(None) clears only the credential."""
        config = AppConfig(access_token="tok_1", selected_repos=["octo/repo"])

        cleared = config.with_session(None)

        assert cleared.access_token is None
        assert cleared.obtained_at is None
        assert cleared.selected_repos == ["octo/repo"]
        assert config.access_token == "tok_1"

    def test_session_with_naive_timestamp(self):
        """A naive obtained_at is read as UTC."""
        config = AppConfig(access_token="tok", obtained_at="2026-01-25T10:00:00")

        assert config.session.obtained_at.tzinfo is not None

    def test_session_with_unreadable_timestamp(self):
        """An unreadable obtained_at does not lose the token."""
        config = AppConfig(access_token="tok", obtained_at="yesterday")

        assert config.session.access_token == "tok"

    @pytest.mark.parametrize("obtained_at", [None, "yesterday"])
    def test_session_timestamp_is_stable(self, obtained_at):
        """A missing or unreadable obtained_at reads the same on every access."""
        config = AppConfig(access_token="tok", obtained_at=obtained_at)

        first = config.session
        second = config.session

        assert first == second
        assert first.obtained_at == UNKNOWN_OBTAINED_AT

    def test_round_trip_dict(self):
        """to_dict output loads back through from_dict."""
        config = AppConfig(access_token="tok", selected_repos=["a/b"], refresh_interval_minutes=15)

        assert AppConfig.from_dict(config.to_dict()) == config

    def test_from_dict_tolerates_missing_keys(self):
        """Older files with fewer keys load with defaults."""
        config = AppConfig.from_dict({"access_token": "tok"})

        assert config.access_token == "tok"
        assert config.refresh_interval_minutes == 60

    def test_from_dict_rejects_unknown_keys(self):
        """Unknown keys are a TypeError."""
        with pytest.raises(TypeError):
            AppConfig.from_dict({"bogus": 1})

    def test_from_dict_rejects_wrong_types(self):
        """Wrong field types are a ValueError."""
        with pytest.raises(ValueError):
            AppConfig.from_dict({"selected_repos": "a/b"})

        with pytest.raises(ValueError):
            AppConfig.from_dict({"access_token": 42})


class TestConfigStore:
    """Tests for ConfigStore class."""

    @pytest.fixture
    def temp_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def store(self, temp_dir):
        return ConfigStore(str(temp_dir / "github-security-alerts" / "config.json"))

    def test_load_missing_file_returns_defaults(self, store):
        """A first run loads defaults."""
        assert store.exists() is False
        assert store.load() == AppConfig()

    def test_save_and_load(self, store):
        """Saved config loads back."""
        config = AppConfig(access_token="tok_1", selected_repos=["octo/repo"])

        store.save(config)

        assert store.exists() is True
        assert store.load() == config

    def test_save_creates_directory(self, store):
        """save creates the application directory."""
        store.save(AppConfig())

        assert store.config_file.parent.is_dir()

    def test_saved_file_is_plain_json(self, store):
        """The file is readable JSON with the expected keys."""
        store.save(AppConfig(access_token="tok_1"))

        data = json.loads(store.config_file.read_text())
        assert data["access_token"] == "tok_1"
        assert data["selected_repos"] == []
        assert data["refresh_interval_minutes"] == 60

    @pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
    def test_saved_file_is_user_only(self, store):
        """The file is chmod 600."""
        store.save(AppConfig(access_token="tok_1"))

        mode = stat.S_IMODE(os.stat(store.config_file).st_mode)
        assert mode == 0o600

    def test_load_invalid_json_returns_defaults(self, store):
        """A corrupted file loads as defaults."""
        store.config_file.parent.mkdir(parents=True)
        store.config_file.write_text("{not json")

        assert store.load() == AppConfig()

    def test_load_wrong_shape_returns_defaults(self, store):
        """A JSON file of the wrong shape loads as defaults."""
        store.config_file.parent.mkdir(parents=True)
        store.config_file.write_text("[1, 2, 3]")

        assert store.load() == AppConfig()

    def test_update_applies_change(self, store):
        """update loads, changes and saves in one step."""
        store.save(AppConfig(selected_repos=["octo/repo"]))

        saved = store.update(lambda current: current.with_session(Session("tok_2")))

        assert saved.access_token == "tok_2"
        assert store.load().access_token == "tok_2"
        assert store.load().selected_repos == ["octo/repo"]

    def test_save_failure_raises(self, store):
        """An I/O failure on save raises ConfigStoreError."""
        with mock.patch("builtins.open", side_effect=PermissionError("read-only")):
            with pytest.raises(ConfigStoreError, match="read-only"):
                store.save(AppConfig())
