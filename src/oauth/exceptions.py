"""
Exception classes for GitHub session acquisition.

This module defines the exception hierarchy for every failure the sign-in
flow can report. Transport failures (``NetworkError``) are kept apart from
protocol failures (``HttpError``, ``MalformedResponseError``) so callers can
tell "no network" from "server rejected". A user denying access in the
browser is reported as ``DeniedError`` and should be shown as a dismissible
message, not treated as a crash.
"""

from typing import Optional


class AuthError(Exception):
    """Base exception for all session acquisition errors."""

    pass


class ConfigurationError(AuthError):
    """OAuth configuration error (missing or invalid configuration)."""

    pass


class PortUnavailableError(AuthError):
    """The loopback redirect listener could not bind its port."""

    def __init__(self, port: int, reason: str = ""):
        self.port = port
        self.reason = reason
        message = f"Cannot listen for the OAuth redirect on port {port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AcquisitionInProgressError(AuthError):
    """A sign-in attempt is already running; attempts must be serialized."""

    pass


class DeniedError(AuthError):
    """The user (or GitHub) refused the authorization request."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authorization denied: {reason}")


class TimedOutError(AuthError):
    """No redirect arrived before the caller's deadline."""

    pass


class CancelledError(AuthError):
    """The sign-in attempt was cancelled before a redirect arrived."""

    pass


class InvalidTokenError(AuthError):
    """A supplied access token failed the identity check."""

    pass


class ConfigStoreError(AuthError):
    """Config file operation failed (file I/O error)."""

    pass


class ExchangeError(AuthError):
    """Failed to exchange the authorization code for an access token."""

    pass


class NetworkError(ExchangeError):
    """Transport failure talking to the token endpoint."""

    pass


class HttpError(ExchangeError):
    """Token endpoint answered with a non-success status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Token endpoint returned HTTP {status}: {body}")


class MalformedResponseError(ExchangeError):
    """Token endpoint answered 2xx but the body is not a token response."""

    def __init__(self, body: str, detail: Optional[str] = None):
        self.body = body
        self.detail = detail
        message = f"Malformed token response: {body}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
