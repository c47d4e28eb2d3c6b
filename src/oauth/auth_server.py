"""
Loopback redirect listener for GitHub OAuth.

This module provides the single-shot HTTP listener that catches the browser
redirect at the end of the authorization-code flow. It binds the loopback
interface only, serves on a worker thread so the UI event loop is never
blocked, and resolves exactly once: with the authorization code, with the
OAuth error GitHub sent back, on the caller's timeout, or on cancellation.
Whatever the outcome, the port is released before ``await_result`` returns.
"""

import html
import logging
import threading
from socketserver import ThreadingMixIn
from concurrent.futures import Future
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask, Response, request

from .exceptions import PortUnavailableError
from .models import AuthorizationResult

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"

# Accept-loop poll interval; bounds how long shutdown can take.
POLL_INTERVAL = 0.1

# Seconds a connection may sit idle before its request thread drops it.
REQUEST_TIMEOUT = 5.0

# Upper bound on waiting for the accept loop to exit on close.
SHUTDOWN_TIMEOUT = 2.0

_PAGE = """<html>
<head><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">
    <h1 style="color: {color};">{title}</h1>
    {body}
    <p style="margin-top: 30px; color: #666;">You can close this window.</p>
    {script}
</body>
</html>"""


def _page(title: str, color: str, body: str, close_window: bool = False) -> str:
    script = "<script>setTimeout(() => window.close(), 2000)</script>" if close_window else ""
    return _PAGE.format(title=title, color=color, body=body, script=script)


SUCCESS_PAGE = _page(
    "Authorization Successful",
    "#4caf50",
    "<p>GitHub Security Alerts is now connected to your GitHub account.</p>",
    close_window=True,
)

WAITING_PAGE = _page(
    "Waiting for GitHub",
    "#666",
    "<p>Waiting for the GitHub authorization redirect.</p>",
)


def denied_page(error: str) -> str:
    """Error page for an OAuth ``error`` redirect."""
    return _page(
        "Authorization Failed",
        "#d32f2f",
        f"<p><strong>Error:</strong> {html.escape(error)}</p>",
    )


class _QuietRequestHandler(WSGIRequestHandler):
    """Routes per-request access logs to debug level and times out idle sockets."""

    timeout = REQUEST_TIMEOUT

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        logger.debug("redirect listener: " + format, *args)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """
    WSGI server answering each connection on its own daemon thread.

    A browser pre-connect that never sends a request only ties up its own
    thread until REQUEST_TIMEOUT, never the accept loop.
    """

    daemon_threads = True
    block_on_close = False

    def handle_error(self, request, client_address) -> None:
        logger.debug(
            f"redirect listener: dropped connection from {client_address}", exc_info=True
        )


class ListenerHandle:
    """
    A bound, running redirect listener.

    The handle owns the server socket and the worker thread. It resolves
    once; later resolutions are ignored. ``future`` completes with the same
    ``AuthorizationResult`` that ``RedirectListener.await_result`` returns.

    Attributes:
        port: Port actually bound (useful when started with port 0)
        expected_path: Path of the authoritative redirect
        future: Future completed with the terminal result
    """

    def __init__(self, server: WSGIServer, expected_path: str):
        self.port: int = server.server_address[1]
        self.expected_path = expected_path
        self.future: "Future[AuthorizationResult]" = Future()
        self._server = server
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._resolved = threading.Event()
        self._result: Optional[AuthorizationResult] = None
        self._closed = False

    @property
    def result(self) -> Optional[AuthorizationResult]:
        """Terminal result, or None while still waiting."""
        return self._result

    @property
    def closed(self) -> bool:
        """Whether the port has been released."""
        return self._closed

    def resolve(self, result: AuthorizationResult) -> bool:
        """
        Record the terminal result if none was recorded yet.

        Returns:
            True if this call set the result, False if one already existed
        """
        with self._lock:
            if self._result is not None:
                return False
            self._result = result
            self.future.set_result(result)
        self._resolved.set()
        logger.info(f"Redirect listener resolved: {result.outcome.value}")
        return True

    def wait(self, timeout: float) -> bool:
        """Block until resolved or ``timeout`` seconds pass."""
        return self._resolved.wait(timeout)

    def cancel(self) -> None:
        """
        Cancel the attempt and release the port.

        Safe to call from any thread except the listener's own worker, and
        safe to call more than once.
        """
        self.resolve(AuthorizationResult.cancelled())
        self.close()

    def close(self) -> None:
        """Stop the accept loop and close the socket."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if self._thread is not None:
            # Returns once the accept loop has exited (within POLL_INTERVAL).
            self._server.shutdown()
            self._thread.join(timeout=SHUTDOWN_TIMEOUT)
            if self._thread.is_alive():
                logger.warning(f"Redirect listener thread on port {self.port} did not exit")
        self._server.server_close()
        logger.info(f"Redirect listener on port {self.port} closed")

    def _serve(self) -> None:
        try:
            self._server.serve_forever(poll_interval=POLL_INTERVAL)
        except Exception as e:
            logger.error(f"Redirect listener error: {e}")
            self.resolve(AuthorizationResult.cancelled())

    def _start(self) -> None:
        self._thread = threading.Thread(
            target=self._serve, name=f"oauth-redirect-{self.port}", daemon=True
        )
        self._thread.start()


class RedirectListener:
    """
    Single-shot loopback listener for the OAuth redirect.

    The listener:
    1. Binds 127.0.0.1 on the requested port (fails fast if taken)
    2. Answers every non-matching request with a neutral waiting page
    3. Resolves on the first matching request carrying ``code`` or ``error``
    4. Ignores malformed matching requests and keeps listening
    5. Releases the port on resolution, timeout or cancellation

    Example:
        listener = RedirectListener()
        handle = listener.start(8765, "/callback")
        webbrowser.open(url)
        result = listener.await_result(handle, timeout=300)
    """

    def __init__(self, host: str = LOOPBACK_HOST):
        self.host = host

    def build_app(self, handle_ref: "list[ListenerHandle]", expected_path: str) -> Flask:
        """
        Build the Flask app serving the redirect.

        Args:
            handle_ref: One-element list filled with the handle once bound
            expected_path: Path of the authoritative redirect

        Returns:
            Flask application
        """
        app = Flask(__name__)
        app.logger.setLevel(logging.WARNING)  # Suppress Flask logs
        expected = expected_path.rstrip("/")

        def handle_any(path: str) -> Response:
            handle = handle_ref[0]
            if request.path.rstrip("/") != expected:
                return _html(WAITING_PAGE)
            return self._handle_callback(handle)

        app.add_url_rule("/", "redirect_root", handle_any, defaults={"path": ""})
        app.add_url_rule("/<path:path>", "redirect_any", handle_any)
        return app

    def _handle_callback(self, handle: ListenerHandle) -> Response:
        """Handle a request on the redirect path."""
        if handle.result is not None:
            # Already resolved: never accept a second authoritative request
            return _html(WAITING_PAGE)

        code = request.args.get("code")
        if code:
            if handle.resolve(AuthorizationResult.with_code(code)):
                logger.info("Authorization code received")
                return _html(SUCCESS_PAGE)
            return _html(WAITING_PAGE)

        error = request.args.get("error")
        if error:
            if handle.resolve(AuthorizationResult.denied(error)):
                logger.warning(f"OAuth error in redirect: {error}")
                return _html(denied_page(error), status=400)
            return _html(WAITING_PAGE)

        logger.warning("Redirect without code or error; still waiting")
        return _html(WAITING_PAGE)

    def start(self, port: int, expected_path: str) -> ListenerHandle:
        """
        Bind the listener and start its accept loop on a worker thread.

        Args:
            port: Loopback port to bind (0 lets the OS pick one)
            expected_path: Path of the authoritative redirect

        Returns:
            ListenerHandle for awaiting or cancelling

        Raises:
            PortUnavailableError: If the port cannot be bound
        """
        handle_ref: "list[ListenerHandle]" = []
        app = self.build_app(handle_ref, expected_path)

        try:
            server = make_server(
                self.host,
                port,
                app,
                server_class=_ThreadingWSGIServer,
                handler_class=_QuietRequestHandler,
            )
        except OSError as e:
            logger.error(f"Cannot bind redirect listener on {self.host}:{port}: {e}")
            raise PortUnavailableError(port, str(e)) from e

        handle = ListenerHandle(server, expected_path)
        handle_ref.append(handle)
        handle._start()

        logger.info(
            f"Redirect listener started on http://{self.host}:{handle.port}{expected_path}"
        )
        return handle

    def await_result(self, handle: ListenerHandle, timeout: float) -> AuthorizationResult:
        """
        Wait for the terminal result and release the port.

        Args:
            handle: Handle returned by ``start``
            timeout: Maximum seconds to wait

        Returns:
            AuthorizationResult (CODE, DENIED, TIMED_OUT or CANCELLED)
        """
        logger.info(f"Waiting for OAuth redirect (timeout: {timeout}s)")

        try:
            if not handle.wait(timeout):
                if handle.resolve(AuthorizationResult.timed_out()):
                    logger.warning(f"Timeout waiting for redirect after {timeout}s")
        finally:
            handle.close()

        return handle.result


def _html(page: str, status: int = 200) -> Response:
    return Response(page, status=status, content_type="text/html")
