"""
Session data types shared by the sign-in flow.

``AuthorizationResult`` is what the redirect listener hands back once per
attempt; ``Session`` is the single credential the application keeps.
The pydantic models validate the payloads GitHub returns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AuthorizationOutcome(Enum):
    """Terminal outcomes of one redirect-listener attempt."""

    CODE = "code"  # Redirect carried an authorization code
    DENIED = "denied"  # Redirect carried an OAuth error
    TIMED_OUT = "timed_out"  # Caller's deadline passed first
    CANCELLED = "cancelled"  # Caller cancelled the attempt


@dataclass(frozen=True)
class AuthorizationResult:
    """
    Result of one authorization attempt.

    Build instances through the classmethods so ``code`` is only set for
    ``CODE`` and ``reason`` only for ``DENIED``.

    Attributes:
        outcome: Which terminal outcome occurred
        code: Authorization code (CODE only)
        reason: OAuth ``error`` value (DENIED only)
    """

    outcome: AuthorizationOutcome
    code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def with_code(cls, code: str) -> "AuthorizationResult":
        return cls(AuthorizationOutcome.CODE, code=code)

    @classmethod
    def denied(cls, reason: str) -> "AuthorizationResult":
        return cls(AuthorizationOutcome.DENIED, reason=reason)

    @classmethod
    def timed_out(cls) -> "AuthorizationResult":
        return cls(AuthorizationOutcome.TIMED_OUT)

    @classmethod
    def cancelled(cls) -> "AuthorizationResult":
        return cls(AuthorizationOutcome.CANCELLED)

    @property
    def success(self) -> bool:
        """Whether the attempt produced an authorization code."""
        return self.outcome is AuthorizationOutcome.CODE


@dataclass(frozen=True)
class Session:
    """
    The stored GitHub credential.

    Attributes:
        access_token: Bearer token for API calls
        obtained_at: When the token was obtained (timezone-aware UTC)
    """

    access_token: str
    obtained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"Session(access_token='***', obtained_at={self.obtained_at.isoformat()})"


class TokenResponse(BaseModel):
    """Success body of the token endpoint."""

    access_token: str = Field(..., min_length=1)
    token_type: str
    scope: str


class Identity(BaseModel):
    """The authenticated GitHub user, as returned by ``GET /user``."""

    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
