"""Tests for the authorization-code exchange."""

from unittest import mock

import pytest
import requests

from src.oauth.exceptions import HttpError, MalformedResponseError, NetworkError
from src.oauth.token_exchange import TokenExchanger, redact_token


def _response(status_code=200, json_data=None, text=""):
    response = mock.Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


class TestTokenExchanger:
    """Tests for TokenExchanger class."""

    @pytest.fixture
    def http(self):
        """Mock requests session."""
        return mock.Mock()

    @pytest.fixture
    def exchanger(self, http):
        return TokenExchanger(
            "https://github.test/login/oauth/access_token", timeout=5.0, session=http
        )

    def test_exchange_success(self, exchanger, http):
        """A token response yields the access token verbatim."""
        http.post.return_value = _response(
            json_data={"access_token": "tok_1", "token_type": "bearer", "scope": "repo"},
            text='{"access_token": "tok_1"}',
        )

        token = exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        assert token == "tok_1"

    def test_exchange_sends_one_form_post(self, exchanger, http):
        """The request is a single JSON-accepting form POST."""
        http.post.return_value = _response(
            json_data={"access_token": "tok_1", "token_type": "bearer", "scope": ""}
        )

        exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        http.post.assert_called_once_with(
            "https://github.test/login/oauth/access_token",
            headers={"Accept": "application/json"},
            data={
                "client_id": "cid",
                "client_secret": "csecret",
                "code": "abc123",
                "redirect_uri": "http://127.0.0.1:8765/callback",
            },
            timeout=5.0,
        )

    def test_network_failure(self, exchanger, http):
        """A transport failure raises NetworkError."""
        http.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(NetworkError, match="connection refused"):
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

    def test_timeout_is_network_failure(self, exchanger, http):
        """A request timeout is also a NetworkError."""
        http.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(NetworkError):
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

    def test_http_error_status(self, exchanger, http):
        """A non-2xx answer raises HttpError with status and body."""
        http.post.return_value = _response(status_code=500, text="Internal Server Error")

        with pytest.raises(HttpError) as exc_info:
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        assert exc_info.value.status == 500
        assert exc_info.value.body == "Internal Server Error"

    def test_bad_verification_code(self, exchanger, http):
        """GitHub's 200 error body is a malformed token response."""
        body = '{"error": "bad_verification_code"}'
        http.post.return_value = _response(
            json_data={"error": "bad_verification_code"}, text=body
        )

        with pytest.raises(MalformedResponseError) as exc_info:
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        assert exc_info.value.body == body

    def test_non_json_body(self, exchanger, http):
        """A 2xx body that is not JSON raises MalformedResponseError."""
        http.post.return_value = _response(text="<html>oops</html>")

        with pytest.raises(MalformedResponseError) as exc_info:
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        assert exc_info.value.body == "<html>oops</html>"

    def test_empty_access_token(self, exchanger, http):
        """An empty access_token is not a token response."""
        http.post.return_value = _response(
            json_data={"access_token": "", "token_type": "bearer", "scope": ""}
        )

        with pytest.raises(MalformedResponseError):
            exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

    def test_token_not_logged_on_malformed_body(self, exchanger, http, caplog):
        """A token in a rejected body is masked in the log but kept on the error."""
        body = '{"access_token": "gho_secret", "token_type": "bearer"}'
        http.post.return_value = _response(
            json_data={"access_token": "gho_secret", "token_type": "bearer"}, text=body
        )

        with caplog.at_level("ERROR", logger="src.oauth.token_exchange"):
            with pytest.raises(MalformedResponseError) as exc_info:
                exchanger.exchange("abc123", "cid", "csecret", "http://127.0.0.1:8765/callback")

        assert "gho_secret" not in caplog.text
        assert '"access_token": "***"' in caplog.text
        assert exc_info.value.body == body

    def test_uses_requests_module_by_default(self):
        """Without a session the module-level requests API is used."""
        with mock.patch("src.oauth.token_exchange.requests.post") as post:
            post.return_value = _response(
                json_data={"access_token": "tok_1", "token_type": "bearer", "scope": ""}
            )
            token = TokenExchanger().exchange("abc", "cid", "csecret", "http://x/cb")

        assert token == "tok_1"
        assert post.call_args[0][0] == "https://github.com/login/oauth/access_token"


class TestRedactToken:
    """Tests for redact_token."""

    def test_json_body(self):
        assert redact_token('{"access_token":"gho_1","scope":""}') == '{"access_token":"***","scope":""}'

    def test_form_body(self):
        assert redact_token("access_token=gho_1&scope=repo") == "access_token=***&scope=repo"

    def test_body_without_token(self):
        body = '{"error": "bad_verification_code"}'
        assert redact_token(body) == body
