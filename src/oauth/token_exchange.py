"""
Authorization-code exchange against GitHub's token endpoint.

This module turns the code caught by the redirect listener into an access
token. It makes exactly one request per call: retries, if wanted, are the
caller's policy.
"""

import logging
import re

import requests
from pydantic import ValidationError

from .exceptions import HttpError, MalformedResponseError, NetworkError
from .models import TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://github.com/login/oauth/access_token"

# Matches the token value in JSON or form-encoded bodies.
_TOKEN_VALUE = re.compile(r'(access_token"?\s*[:=]\s*"?)[^"&\s,}]+')


def redact_token(body: str) -> str:
    """Body text safe to log, with any access_token value masked."""
    return _TOKEN_VALUE.sub(r"\1***", body)


class TokenExchanger:
    """
    Exchanges authorization codes for access tokens.

    Failures are split by kind:
    - NetworkError: the request never got an HTTP answer
    - HttpError: the endpoint answered with a non-2xx status
    - MalformedResponseError: a 2xx answer that is not a token response
      (GitHub reports bad or expired codes this way, with an ``error`` field)
    """

    def __init__(
        self,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = 30.0,
        session: "requests.Session | None" = None,
    ):
        """
        Initialize token exchanger.

        Args:
            token_url: Token endpoint URL
            timeout: Request timeout in seconds
            session: requests session to use (module-level requests if omitted)
        """
        self.token_url = token_url
        self.timeout = timeout
        self._http = session or requests

    def exchange(
        self, code: str, client_id: str, client_secret: str, redirect_uri: str
    ) -> str:
        """
        Exchange an authorization code for an access token.

        Args:
            code: Code received by the redirect listener
            client_id: OAuth App client ID
            client_secret: OAuth App client secret
            redirect_uri: Redirect URI used in the authorization request

        Returns:
            The ``access_token`` field, verbatim

        Raises:
            NetworkError: On transport failure
            HttpError: On a non-success status
            MalformedResponseError: If the body is not a token response
        """
        logger.info("Exchanging authorization code for access token")

        try:
            response = self._http.post(
                self.token_url,
                headers={"Accept": "application/json"},
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error during token exchange: {e}")
            raise NetworkError(f"Network error during token exchange: {e}") from e

        body = response.text
        if not 200 <= response.status_code < 300:
            logger.error(
                f"Token exchange failed: {response.status_code} - {redact_token(body)}"
            )
            raise HttpError(response.status_code, body)

        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Invalid response from token endpoint: {redact_token(body)}")
            raise MalformedResponseError(body, detail=str(e).splitlines()[0]) from e

        logger.info(f"Obtained access token (type={payload.token_type}, scope={payload.scope!r})")
        return payload.access_token
