"""
Visibility coordinator for the tray-anchored window.

Serializes every visibility input (tray clicks, menu items, focus changes,
pause requests from popups, grace timer expiry) through one lock and
performs the resulting window effects while still holding it.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol

from .policy import HidePolicy
from .state import (
    Effect,
    Event,
    FocusEvent,
    GraceExpired,
    PauseRequest,
    PresentationRequest,
    PresentationSource,
    ResumeRequest,
    ShowCompleted,
    VisibilitySnapshot,
    VisibilityState,
    reconcile,
    transition,
)

logger = logging.getLogger(__name__)


class WindowPort(Protocol):
    """Operations the coordinator needs from the platform window."""

    def show(self) -> None:
        ...

    def hide(self) -> None:
        ...

    def is_visible(self) -> bool:
        ...

    def position_near(self, anchor: Any) -> None:
        ...

    def on_focus_changed(self, callback: Callable[[bool], None]) -> None:
        ...

    def on_indicator_click(self, callback: Callable[[], None]) -> None:
        ...


class VisibilityCoordinator:
    """
    Owns the window's visibility state.

    Effects run under the coordinator's lock, so a hide decision and the
    hide itself cannot interleave with a pause or a focus change. The lock
    is re-entrant because showing a window can deliver a focus event on the
    same thread.

    Example:
        coordinator = VisibilityCoordinator(window, HidePolicy.from_env())
        coordinator.request(PresentationSource.TRAY_CLICK)
        coordinator.pause()   # popup opened
        coordinator.resume()  # popup closed
    """

    def __init__(
        self,
        window: WindowPort,
        policy: Optional[HidePolicy] = None,
        anchor: Any = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        """
        Initialize the coordinator.

        Args:
            window: Window to drive
            policy: Hide policy (platform default with env overrides if None)
            anchor: Tray anchor passed to ``window.position_near``
            clock: Monotonic clock in seconds
            timer_factory: ``threading.Timer`` compatible factory for the
                grace timer
        """
        self.window = window
        self.policy = policy or HidePolicy.from_env()
        self.anchor = anchor
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._snapshot = VisibilitySnapshot()
        self._timer = None

    @property
    def snapshot(self) -> VisibilitySnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> VisibilityState:
        return self.snapshot.state

    @property
    def paused(self) -> bool:
        return self.snapshot.pause.active

    def set_anchor(self, anchor: Any) -> None:
        """Remember where the tray icon is, for the next show."""
        with self._lock:
            self.anchor = anchor

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def request(self, source: PresentationSource) -> VisibilityState:
        """
        Handle a show or hide request.

        A tray click first aligns the state with ``window.is_visible()`` so
        the toggle acts on what the user actually sees.

        Args:
            source: Where the request came from

        Returns:
            State after the request
        """
        with self._lock:
            if source is PresentationSource.TRAY_CLICK:
                self._reconcile()
            return self._dispatch(PresentationRequest(source, self._clock()))

    def toggle(self) -> VisibilityState:
        return self.request(PresentationSource.TRAY_CLICK)

    def show(self) -> VisibilityState:
        return self.request(PresentationSource.MENU_SHOW)

    def hide(self) -> VisibilityState:
        return self.request(PresentationSource.MENU_HIDE)

    def activate(self) -> VisibilityState:
        """Bring the window forward for a second launch of the app."""
        return self.request(PresentationSource.EXTERNAL_ACTIVATION)

    def close_requested(self) -> VisibilityState:
        """Window close button: hide instead of exiting."""
        return self.request(PresentationSource.CLOSE_REQUESTED)

    def focus_changed(self, gained: bool) -> VisibilityState:
        return self._dispatch(FocusEvent(gained, self._clock()))

    def pause(self) -> VisibilityState:
        """Suspend auto-hide while a popup (e.g. a picker) is open."""
        return self._dispatch(PauseRequest(self._clock()))

    def resume(self) -> VisibilityState:
        """Re-enable auto-hide after the popup closes."""
        return self._dispatch(ResumeRequest(self._clock()))

    def close(self) -> None:
        """Stop any pending grace timer."""
        with self._lock:
            self._cancel_timer()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reconcile(self) -> None:
        visible = self.window.is_visible()
        snapshot, effects = reconcile(self._snapshot, visible)
        if snapshot.state is not self._snapshot.state:
            logger.debug(
                f"Window reported visible={visible}; "
                f"state {self._snapshot.state.value} -> {snapshot.state.value}"
            )
        self._snapshot = snapshot
        self._apply(effects, snapshot.pending_hide)

    def _dispatch(self, event: Event) -> VisibilityState:
        with self._lock:
            previous = self._snapshot.state
            self._snapshot, effects = transition(self._snapshot, event, self.policy)
            if self._snapshot.state is not previous:
                logger.debug(
                    f"{type(event).__name__}: {previous.value} -> {self._snapshot.state.value}"
                )
            self._apply(effects, self._snapshot.pending_hide)

            if Effect.SHOW in effects and self._snapshot.state is VisibilityState.SHOWING:
                self._dispatch(ShowCompleted(self._clock()))
            return self._snapshot.state

    def _apply(self, effects, pending_hide: Optional[int]) -> None:
        for effect in effects:
            if effect is Effect.POSITION:
                self.window.position_near(self.anchor)
            elif effect is Effect.SHOW:
                self.window.show()
            elif effect is Effect.HIDE:
                self.window.hide()
            elif effect is Effect.SCHEDULE_HIDE:
                self._schedule_hide(pending_hide)
            elif effect is Effect.CANCEL_HIDE:
                self._cancel_timer()

    def _schedule_hide(self, generation: int) -> None:
        self._cancel_timer()
        timer = self._timer_factory(
            self.policy.grace_delay, self._grace_expired, args=(generation,)
        )
        timer.daemon = True
        self._timer = timer
        timer.start()
        logger.debug(f"Hide {generation} scheduled in {self.policy.grace_delay}s")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _grace_expired(self, generation: int) -> None:
        with self._lock:
            if self._snapshot.pending_hide == generation:
                self._timer = None
            self._dispatch(GraceExpired(generation, self._clock()))
