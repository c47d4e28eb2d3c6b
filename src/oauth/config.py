"""
OAuth configuration for GitHub sign-in.

This module provides configuration management for the OAuth 2.0
authorization-code flow against GitHub. Configuration can be loaded from
environment variables or provided programmatically.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import ConfigurationError

APP_DIR_NAME = "github-security-alerts"


def default_config_file() -> str:
    """
    Location of the persisted application config.

    Returns:
        ``%APPDATA%`` on Windows, ``$XDG_CONFIG_HOME`` (or ``~/.config``)
        elsewhere, joined with the application directory and ``config.json``
    """
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
    else:
        base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return str(Path(base) / APP_DIR_NAME / "config.json")


@dataclass
class GitHubOAuthConfig:
    """
    Configuration for GitHub OAuth 2.0.

    The redirect listener only ever binds the loopback interface, so the
    redirect URI registered with the GitHub OAuth App must be
    ``http://127.0.0.1:<callback_port><callback_path>``.

    Attributes:
        client_id: OAuth App client ID
        client_secret: OAuth App client secret
        callback_host: Loopback host for the redirect listener
        callback_port: Port for the redirect listener (default: 8765)
        callback_path: URL path for the redirect (default: /callback)
        authorization_url: GitHub authorization endpoint
        token_url: GitHub token endpoint
        user_url: Authenticated "who am I" endpoint
        scopes: Requested OAuth scopes
        user_agent: User-Agent header sent to the GitHub API
        config_file: Path of the persisted application config
        callback_timeout: Seconds to wait for the browser redirect
        request_timeout: Seconds before an HTTP call is abandoned
    """

    # From the GitHub OAuth App settings page; only sign-in needs them
    client_id: str
    client_secret: str

    # Redirect listener
    callback_host: str = "127.0.0.1"
    callback_port: int = 8765
    callback_path: str = "/callback"

    # GitHub endpoints
    authorization_url: str = "https://github.com/login/oauth/authorize"
    token_url: str = "https://github.com/login/oauth/access_token"
    user_url: str = "https://api.github.com/user"

    scopes: Tuple[str, ...] = ("repo", "security_events", "read:org")
    user_agent: str = "github-security-alerts"

    config_file: str = field(default_factory=default_config_file)

    callback_timeout: float = 300.0
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not isinstance(self.callback_port, int) or not (
            1 <= self.callback_port <= 65535
        ):
            raise ConfigurationError(
                f"callback_port must be between 1 and 65535, got {self.callback_port}"
            )

        if not self.callback_path.startswith("/"):
            raise ConfigurationError(
                f"callback_path must start with '/', got {self.callback_path!r}"
            )

        if self.callback_timeout <= 0:
            raise ConfigurationError("callback_timeout must be positive")

        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")

    @property
    def has_credentials(self) -> bool:
        """Whether both OAuth App credentials are set."""
        return bool(self.client_id) and bool(self.client_secret)

    def require_credentials(self) -> None:
        """
        Check that the OAuth App credentials needed for sign-in are set.

        Raises:
            ConfigurationError: If the client ID or secret is empty
        """
        if not self.has_credentials:
            raise ConfigurationError(
                "Missing GitHub OAuth credentials. Set environment variables:\n"
                "  GITHUB_CLIENT_ID=your_client_id\n"
                "  GITHUB_CLIENT_SECRET=your_client_secret\n"
                "\n"
                "Register an OAuth App at: https://github.com/settings/developers"
            )

    @property
    def redirect_uri(self) -> str:
        """
        Full redirect URI for the OAuth callback.

        Returns:
            Loopback redirect URI (e.g., http://127.0.0.1:8765/callback)
        """
        return f"http://{self.callback_host}:{self.callback_port}{self.callback_path}"

    @property
    def scope_string(self) -> str:
        """Scopes joined the way GitHub expects them (space separated)."""
        return " ".join(self.scopes)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "GitHubOAuthConfig":
        """
        Load configuration from environment variables.

        Environment variables (all optional; sign-in needs the first two):
            GITHUB_CLIENT_ID: OAuth App client ID
            GITHUB_CLIENT_SECRET: OAuth App client secret
            GITHUB_CALLBACK_PORT: Redirect listener port (default: 8765)
            GITHUB_CALLBACK_PATH: Redirect path (default: /callback)
            GHALERTS_CONFIG_FILE: Config file path (default: per-user config dir)

        Args:
            config_file: Explicit config file path, wins over the environment

        Returns:
            GitHubOAuthConfig instance

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        port_value = os.environ.get("GITHUB_CALLBACK_PORT", "8765")
        try:
            callback_port = int(port_value)
        except ValueError as e:
            raise ConfigurationError(
                f"GITHUB_CALLBACK_PORT must be an integer, got {port_value!r}"
            ) from e

        return cls(
            client_id=os.environ.get("GITHUB_CLIENT_ID", ""),
            client_secret=os.environ.get("GITHUB_CLIENT_SECRET", ""),
            callback_port=callback_port,
            callback_path=os.environ.get("GITHUB_CALLBACK_PATH", "/callback"),
            config_file=config_file
            or os.environ.get("GHALERTS_CONFIG_FILE")
            or default_config_file(),
        )
