"""
Config file storage for the tray application.

This module provides file-based persistence of the single stored GitHub
credential and the user's preferences. The file is plaintext JSON with
user-only permissions. A missing or unreadable file loads as defaults, so
a first run and a corrupted file both start signed out.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import ConfigStoreError
from .models import Session

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_MINUTES = 60

# Reported for a stored token whose obtained_at is missing or unreadable.
UNKNOWN_OBTAINED_AT = datetime.fromtimestamp(0, timezone.utc)


@dataclass
class AppConfig:
    """
    Persisted application config.

    Attributes:
        access_token: Stored GitHub access token (None when signed out)
        obtained_at: ISO timestamp of when the token was obtained
        selected_repos: Repositories (owner/name) watched for alerts
        refresh_interval_minutes: Alert polling interval
    """

    access_token: Optional[str] = None
    obtained_at: Optional[str] = None
    selected_repos: List[str] = field(default_factory=list)
    refresh_interval_minutes: int = DEFAULT_REFRESH_INTERVAL_MINUTES

    @property
    def session(self) -> Optional[Session]:
        """The stored session, if any."""
        if not self.access_token:
            return None
        obtained = UNKNOWN_OBTAINED_AT
        if self.obtained_at:
            try:
                obtained = datetime.fromisoformat(self.obtained_at)
            except ValueError:
                logger.warning(f"Ignoring unreadable obtained_at: {self.obtained_at!r}")
        if obtained.tzinfo is None:
            obtained = obtained.replace(tzinfo=timezone.utc)
        return Session(access_token=self.access_token, obtained_at=obtained)

    def with_session(self, session: Optional[Session]) -> "AppConfig":
        """Copy of this config holding ``session`` (None clears it)."""
        if session is None:
            return replace(self, access_token=None, obtained_at=None)
        return replace(
            self,
            access_token=session.access_token,
            obtained_at=session.obtained_at.isoformat(),
        )

    def to_dict(self) -> dict:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """
        Create AppConfig from dictionary, tolerating missing keys.

        Args:
            data: Dictionary with config fields

        Returns:
            AppConfig instance

        Raises:
            TypeError: If the data is not a mapping or has unknown fields
            ValueError: If a field has the wrong type
        """
        if not isinstance(data, dict):
            raise TypeError(f"config must be a JSON object, got {type(data).__name__}")
        config = cls(**data)
        if config.access_token is not None and not isinstance(config.access_token, str):
            raise ValueError("access_token must be a string")
        if not isinstance(config.selected_repos, list):
            raise ValueError("selected_repos must be a list")
        if not isinstance(config.refresh_interval_minutes, int):
            raise ValueError("refresh_interval_minutes must be an integer")
        return config


class ConfigStore:
    """
    File-based config storage (plaintext JSON).

    All reads and writes go through one lock, held only for the file
    operation itself. The lock is never exposed: callers read with ``load``,
    do any network I/O, then write with ``save`` or ``update``.
    """

    def __init__(self, config_file: str):
        """
        Initialize config storage.

        Args:
            config_file: Path to the config file
        """
        self.config_file = Path(config_file)
        self._lock = threading.Lock()

    def _ensure_directory(self) -> None:
        """Create parent directory if needed."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

    def _set_secure_permissions(self) -> None:
        """Set file permissions to user-only read/write (600)."""
        try:
            self.config_file.chmod(0o600)
            logger.debug(f"Set secure permissions (600) on {self.config_file}")
        except (OSError, PermissionError) as e:
            logger.warning(f"Could not set secure permissions: {e}")

    def load(self) -> AppConfig:
        """
        Load config from file.

        Returns:
            AppConfig from the file, or defaults if the file is missing or
            invalid (logs a warning for invalid files)
        """
        with self._lock:
            return self._load_unlocked()

    def _load_unlocked(self) -> AppConfig:
        if not self.config_file.exists():
            logger.debug(f"No config file found at {self.config_file}")
            return AppConfig()

        try:
            with open(self.config_file, "r") as f:
                data = json.load(f)
            config = AppConfig.from_dict(data)
            logger.debug(f"Config loaded from {self.config_file}")
            return config
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(
                f"Invalid config file at {self.config_file}, using defaults: {e}"
            )
            return AppConfig()
        except (IOError, OSError) as e:
            logger.warning(f"Could not read config file: {e}")
            return AppConfig()

    def save(self, config: AppConfig) -> None:
        """
        Save config to file.

        Args:
            config: Config to save

        Raises:
            ConfigStoreError: If save operation fails
        """
        with self._lock:
            self._save_unlocked(config)

    def update(self, change: Callable[[AppConfig], AppConfig]) -> AppConfig:
        """
        Load, change and save the config as one locked step.

        ``change`` runs with the lock held and must not do network I/O.

        Args:
            change: Function returning the new config from the current one

        Returns:
            The saved config

        Raises:
            ConfigStoreError: If save operation fails
        """
        with self._lock:
            config = change(self._load_unlocked())
            self._save_unlocked(config)
            return config

    def _save_unlocked(self, config: AppConfig) -> None:
        try:
            self._ensure_directory()
            with open(self.config_file, "w") as f:
                json.dump(config.to_dict(), f, indent=2)

            self._set_secure_permissions()
            logger.info(f"Config saved to {self.config_file}")
        except (IOError, OSError) as e:
            logger.error(f"Failed to save config: {e}")
            raise ConfigStoreError(f"Failed to save config: {e}") from e

    def exists(self) -> bool:
        """
        Check if config file exists.

        Returns:
            True if config file exists, False otherwise
        """
        return self.config_file.exists()
