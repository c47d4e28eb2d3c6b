"""Tests for the token identity check."""

from unittest import mock

import pytest
import requests

from src.oauth.identity import IdentityVerifier


class TestIdentityVerifier:
    """Tests for IdentityVerifier class."""

    @pytest.fixture
    def http(self):
        return mock.Mock()

    @pytest.fixture
    def verifier(self, http):
        return IdentityVerifier("https://api.github.test/user", timeout=5.0, session=http)

    def test_valid_token(self, verifier, http):
        """A 2xx answer yields the identity."""
        http.get.return_value = mock.Mock(
            status_code=200,
            json=mock.Mock(return_value={"login": "octocat", "name": "The Octocat", "id": 1}),
        )

        identity = verifier.verify("tok_1")

        assert identity.login == "octocat"
        assert identity.name == "The Octocat"

    def test_sends_bearer_and_user_agent(self, verifier, http):
        """The check sends the token and the application's User-Agent."""
        http.get.return_value = mock.Mock(
            status_code=200, json=mock.Mock(return_value={"login": "octocat"})
        )

        verifier.verify("tok_1")

        _, kwargs = http.get.call_args
        assert http.get.call_args[0][0] == "https://api.github.test/user"
        assert kwargs["headers"]["Authorization"] == "Bearer tok_1"
        assert kwargs["headers"]["User-Agent"] == "github-security-alerts"
        assert kwargs["timeout"] == 5.0

    def test_unauthorized(self, verifier, http):
        """A 401 means the token is not valid."""
        http.get.return_value = mock.Mock(status_code=401)

        assert verifier.verify("bad-token") is None

    def test_network_failure(self, verifier, http):
        """A transport failure is reported as not valid, without raising."""
        http.get.side_effect = requests.ConnectionError("offline")

        assert verifier.verify("tok_1") is None

    def test_unreadable_body(self, verifier, http):
        """A 2xx answer without a login is treated as not valid."""
        http.get.return_value = mock.Mock(
            status_code=200, json=mock.Mock(side_effect=ValueError("not json"))
        )

        assert verifier.verify("tok_1") is None

    def test_body_without_login(self, verifier, http):
        """A JSON body missing ``login`` is treated as not valid."""
        http.get.return_value = mock.Mock(
            status_code=200, json=mock.Mock(return_value={"message": "hi"})
        )

        assert verifier.verify("tok_1") is None
