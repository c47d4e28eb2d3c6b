"""
OAuth 2.0 module for GitHub sign-in.

This module provides the OAuth 2.0 Authorization Code flow used by the
tray application to obtain and keep a single GitHub access token for the
local user.

The flow runs entirely on the user's machine:
- A loopback listener (127.0.0.1) catches the browser redirect
- The code is exchanged for an access token at GitHub's token endpoint
- The token is stored in the per-user config file

Public API:
    GitHubOAuthConfig: OAuth configuration management
    AppConfig: Persisted config (credential + preferences)
    ConfigStore: File-based config persistence
    RedirectListener: Single-shot loopback redirect listener
    TokenExchanger: Authorization-code exchange
    IdentityVerifier: Token verification via GET /user
    SessionManager: High-level session interface

Exceptions:
    AuthError: Base exception
    ConfigurationError: Configuration error
    PortUnavailableError: Redirect port cannot be bound
    AcquisitionInProgressError: Sign-in already running
    DeniedError: Authorization denied in the browser
    TimedOutError: No redirect before the deadline
    CancelledError: Sign-in cancelled
    InvalidTokenError: Token failed verification
    ConfigStoreError: Config file operation failed
    ExchangeError: Code exchange failed (NetworkError, HttpError,
        MalformedResponseError)
"""

from .auth_server import ListenerHandle, RedirectListener
from .config import GitHubOAuthConfig
from .config_store import AppConfig, ConfigStore
from .exceptions import (
    AcquisitionInProgressError,
    AuthError,
    CancelledError,
    ConfigStoreError,
    ConfigurationError,
    DeniedError,
    ExchangeError,
    HttpError,
    InvalidTokenError,
    MalformedResponseError,
    NetworkError,
    PortUnavailableError,
    TimedOutError,
)
from .identity import IdentityVerifier
from .models import AuthorizationOutcome, AuthorizationResult, Identity, Session
from .session_manager import SessionManager
from .token_exchange import TokenExchanger

__all__ = [
    # Configuration
    "GitHubOAuthConfig",
    # Storage
    "AppConfig",
    "ConfigStore",
    # Session types
    "Session",
    "Identity",
    "AuthorizationOutcome",
    "AuthorizationResult",
    # Redirect listener
    "RedirectListener",
    "ListenerHandle",
    # HTTP collaborators
    "TokenExchanger",
    "IdentityVerifier",
    # Session manager
    "SessionManager",
    # Exceptions
    "AuthError",
    "ConfigurationError",
    "PortUnavailableError",
    "AcquisitionInProgressError",
    "DeniedError",
    "TimedOutError",
    "CancelledError",
    "InvalidTokenError",
    "ConfigStoreError",
    "ExchangeError",
    "NetworkError",
    "HttpError",
    "MalformedResponseError",
]
