"""
Session manager for GitHub sign-in.

This module provides the main interface for session operations in the
application. It coordinates the redirect listener, the code exchange and
the identity check, and it is the only writer of the stored credential.
"""

import logging
import threading
import webbrowser
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Optional
from urllib.parse import urlencode

from .auth_server import ListenerHandle, RedirectListener
from .config import GitHubOAuthConfig
from .config_store import AppConfig, ConfigStore
from .exceptions import (
    AcquisitionInProgressError,
    AuthError,
    CancelledError,
    ConfigStoreError,
    DeniedError,
    InvalidTokenError,
    TimedOutError,
)
from .identity import IdentityVerifier
from .models import AuthorizationOutcome, AuthorizationResult, Identity, Session
from .token_exchange import TokenExchanger

logger = logging.getLogger(__name__)


class SessionManager:
    """
    High-level manager for the single stored GitHub session.

    Sign-in is split in two so a UI can open the browser between the steps:
    ``start_acquisition`` binds the redirect listener and returns the URL to
    open, ``complete_acquisition`` waits for the redirect and exchanges the
    code. ``acquire_session`` does both. Only one attempt may run at a time.

    Example:
        manager = SessionManager()
        session = manager.acquire_session()
        identity = manager.current_identity()
    """

    def __init__(
        self,
        config: Optional[GitHubOAuthConfig] = None,
        store: Optional[ConfigStore] = None,
        listener: Optional[RedirectListener] = None,
        exchanger: Optional[TokenExchanger] = None,
        verifier: Optional[IdentityVerifier] = None,
    ):
        """
        Initialize session manager.

        Args:
            config: OAuth configuration (loads from environment if not provided)
            store: Config storage (created from config.config_file if not provided)
            listener: Redirect listener
            exchanger: Token exchanger
            verifier: Identity verifier
        """
        self.config = config or GitHubOAuthConfig.from_env()
        self.store = store or ConfigStore(self.config.config_file)
        self.listener = listener or RedirectListener(self.config.callback_host)
        self.exchanger = exchanger or TokenExchanger(
            self.config.token_url, timeout=self.config.request_timeout
        )
        self.verifier = verifier or IdentityVerifier(
            self.config.user_url,
            user_agent=self.config.user_agent,
            timeout=self.config.request_timeout,
        )

        self._state_lock = threading.Lock()
        self._active: Optional[ListenerHandle] = None
        self._completing = False
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Interactive sign-in
    # ------------------------------------------------------------------

    def build_authorization_url(self) -> str:
        """
        Build the GitHub authorization URL.

        Returns:
            Complete authorization URL with query parameters
        """
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "scope": self.config.scope_string,
        }
        return f"{self.config.authorization_url}?{urlencode(params)}"

    @property
    def acquisition_active(self) -> bool:
        """Whether a sign-in attempt currently holds the listener."""
        with self._state_lock:
            return self._active is not None

    def start_acquisition(self) -> str:
        """
        Bind the redirect listener for a new sign-in attempt.

        Returns:
            Authorization URL to open in the user's browser

        Raises:
            ConfigurationError: If the OAuth App credentials are not set
            AcquisitionInProgressError: If an attempt is already running
            PortUnavailableError: If the redirect port cannot be bound
        """
        self.config.require_credentials()
        with self._state_lock:
            if self._active is not None:
                raise AcquisitionInProgressError("A sign-in attempt is already in progress")
            self._active = self.listener.start(
                self.config.callback_port, self.config.callback_path
            )

        logger.info("Sign-in attempt started")
        return self.build_authorization_url()

    def complete_acquisition(self, timeout: Optional[float] = None) -> Session:
        """
        Wait for the redirect and turn its code into a stored session.

        Args:
            timeout: Seconds to wait for the redirect (config default if None)

        Returns:
            The new Session, already persisted

        Raises:
            AuthError: If no attempt was started
            AcquisitionInProgressError: If another caller is already completing
            DeniedError: If the redirect carried an OAuth error
            TimedOutError: If no redirect arrived in time
            CancelledError: If the attempt was cancelled
            ExchangeError: If the code exchange failed (prior session untouched)
            ConfigStoreError: If the new session could not be saved
        """
        with self._state_lock:
            handle = self._active
            if handle is None:
                raise AuthError("No sign-in attempt in progress; call start_acquisition first")
            if self._completing:
                raise AcquisitionInProgressError("This sign-in attempt is already being completed")
            self._completing = True

        try:
            wait = timeout if timeout is not None else self.config.callback_timeout
            result = self.listener.await_result(handle, wait)
            return self._finish(result)
        finally:
            with self._state_lock:
                self._active = None
                self._completing = False

    def cancel_acquisition(self) -> bool:
        """
        Cancel the running sign-in attempt, releasing the redirect port.

        Returns:
            True if an attempt was cancelled, False if none was running
        """
        with self._state_lock:
            handle = self._active
            if handle is not None and not self._completing:
                self._active = None

        if handle is None:
            return False

        handle.cancel()
        logger.info("Sign-in attempt cancelled")
        return True

    def acquire_session(
        self, open_browser: bool = True, timeout: Optional[float] = None
    ) -> Session:
        """
        Run the complete sign-in flow.

        This orchestrates the full process:
        1. Binds the loopback redirect listener
        2. Opens the browser on the authorization URL
        3. Receives the code from the redirect
        4. Exchanges the code for an access token
        5. Saves the session

        Args:
            open_browser: Whether to open the browser automatically
            timeout: Seconds to wait for the redirect (config default if None)

        Returns:
            The new Session

        Raises:
            AuthError: Any failure listed on start_acquisition and
                complete_acquisition
        """
        url = self.start_acquisition()
        try:
            self._present_url(url, open_browser)
        except BaseException:
            self.cancel_acquisition()
            raise
        return self.complete_acquisition(timeout)

    def acquire_session_async(
        self, open_browser: bool = True, timeout: Optional[float] = None
    ) -> "Future[Session]":
        """
        Run the sign-in flow without blocking the caller.

        The listener is bound synchronously, so AcquisitionInProgressError
        and PortUnavailableError are raised here, not through the future.

        Returns:
            Future resolving to the Session or raising the AuthError
        """
        url = self.start_acquisition()
        try:
            self._present_url(url, open_browser)
            executor = self._get_executor()
            return executor.submit(self.complete_acquisition, timeout)
        except BaseException:
            self.cancel_acquisition()
            raise

    def _present_url(self, url: str, open_browser: bool) -> None:
        logger.info(f"Authorize the application by visiting: {url}")
        if not open_browser:
            return
        try:
            webbrowser.open(url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser automatically: {e}")

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._state_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="oauth-acquire"
                )
            return self._executor

    def _finish(self, result: AuthorizationResult) -> Session:
        """Map a listener result to a stored session or an AuthError."""
        if result.outcome is AuthorizationOutcome.DENIED:
            logger.warning(f"Authorization denied: {result.reason}")
            raise DeniedError(result.reason or "unknown")
        if result.outcome is AuthorizationOutcome.TIMED_OUT:
            raise TimedOutError("No authorization redirect received before the timeout")
        if result.outcome is AuthorizationOutcome.CANCELLED:
            raise CancelledError("Sign-in was cancelled")

        access_token = self.exchanger.exchange(
            result.code,
            self.config.client_id,
            self.config.client_secret,
            self.config.redirect_uri,
        )
        session = Session(access_token=access_token)
        self.store.update(lambda current: current.with_session(session))
        logger.info("✅ Sign-in complete! Session saved.")
        return session

    # ------------------------------------------------------------------
    # Non-interactive paths
    # ------------------------------------------------------------------

    def set_session_from_token(self, token: str) -> Identity:
        """
        Store a user-supplied access token after verifying it.

        Args:
            token: Personal access token

        Returns:
            Identity the token belongs to

        Raises:
            InvalidTokenError: If the identity check fails (nothing is saved)
            ConfigStoreError: If the session could not be saved
        """
        token = token.strip()
        if not token:
            raise InvalidTokenError("Token cannot be empty")

        identity = self.verifier.verify(token)
        if identity is None:
            raise InvalidTokenError("Invalid token")

        session = Session(access_token=token)
        self.store.update(lambda current: current.with_session(session))
        logger.info(f"Session set from token for {identity.login}")
        return identity

    def current_identity(self) -> Optional[Identity]:
        """
        Verify the stored session and return who it belongs to.

        A session that fails verification is treated as revoked: it is
        cleared and None is returned. None therefore means "signed out",
        not that an error occurred.

        Returns:
            Identity if signed in with a working token, None otherwise
        """
        session = self.store.load().session
        if session is None:
            return None

        identity = self.verifier.verify(session.access_token)
        if identity is not None:
            return identity

        stale_token = session.access_token

        def clear_if_unchanged(current: AppConfig) -> AppConfig:
            # A newer session saved meanwhile must survive
            if current.access_token != stale_token:
                return current
            return current.with_session(None)

        try:
            self.store.update(clear_if_unchanged)
            logger.info("Stored session failed verification; signed out")
        except ConfigStoreError as e:
            logger.warning(f"Could not clear stale session: {e}")
        return None

    def get_session(self) -> Optional[Session]:
        """Stored session, without verifying it."""
        return self.store.load().session

    def get_token(self) -> Optional[str]:
        """Stored access token, without verifying it."""
        session = self.get_session()
        return session.access_token if session else None

    def is_authorized(self) -> bool:
        """
        Check if a session is stored.

        Returns:
            True if a session is stored (not verified), False otherwise
        """
        return self.get_session() is not None

    def get_status(self) -> dict:
        """
        Get current authentication status, verifying the stored session.

        Returns:
            Dictionary with:
            - authenticated: bool
            - username: GitHub login (None when not authenticated)
        """
        identity = self.current_identity()
        return {
            "authenticated": identity is not None,
            "username": identity.login if identity else None,
        }

    def revoke(self) -> None:
        """
        Sign out locally.

        Clears the stored session and the repository selection, which only
        makes sense for the account it was made with. The token itself is
        not revoked on GitHub.
        """
        self.store.update(
            lambda current: replace(current.with_session(None), selected_repos=[])
        )
        logger.info("Session revoked locally. Sign-in required.")

    def close(self) -> None:
        """Cancel any running attempt and stop the background worker."""
        self.cancel_acquisition()
        with self._state_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)
