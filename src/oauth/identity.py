"""Identity check against GitHub's authenticated ``/user`` endpoint."""

import logging
from typing import Optional

import requests
from pydantic import ValidationError

from .models import Identity

logger = logging.getLogger(__name__)

DEFAULT_USER_URL = "https://api.github.com/user"


class IdentityVerifier:
    """
    Verifies an access token by asking GitHub who it belongs to.

    A 2xx answer means the token is valid; anything else (including a
    transport failure) means it is not. ``verify`` never raises for those
    cases: it returns None and logs why.
    """

    def __init__(
        self,
        user_url: str = DEFAULT_USER_URL,
        user_agent: str = "github-security-alerts",
        timeout: float = 30.0,
        session: "requests.Session | None" = None,
    ):
        self.user_url = user_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._http = session or requests

    def verify(self, token: str) -> Optional[Identity]:
        """
        Check a token with one authenticated request.

        Args:
            token: Access token to check

        Returns:
            Identity if the token is valid, None otherwise
        """
        try:
            response = self._http.get(
                self.user_url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github+json",
                    "User-Agent": self.user_agent,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Identity check failed (network): {e}")
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(f"Identity check rejected: HTTP {response.status_code}")
            return None

        try:
            identity = Identity.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Identity check returned an unreadable body: {e}")
            return None

        logger.debug(f"Token belongs to {identity.login}")
        return identity
