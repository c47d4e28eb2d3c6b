"""
State machine for the anchored window's visibility.

Everything here is pure: ``transition`` takes the current snapshot and one
event and returns the next snapshot plus the side effects to perform. The
coordinator owns the lock and performs the effects; this module never
touches a window or a clock.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

from .policy import HidePolicy


class VisibilityState(Enum):
    """
    Visibility of the anchored window.

    SUPPRESSED means focus was lost while a popup inside the window held a
    pause request, so the window stays up instead of auto-hiding.
    """

    HIDDEN = "hidden"
    SHOWING = "showing"  # Show requested, effects in flight
    VISIBLE = "visible"
    SUPPRESSED = "suppressed"  # Focus lost while paused; still on screen


class PresentationSource(Enum):
    """Inputs that can ask for the window to be shown or hidden."""

    TRAY_CLICK = "tray_click"
    MENU_SHOW = "menu_show"
    MENU_HIDE = "menu_hide"
    EXTERNAL_ACTIVATION = "external_activation"  # Second process launch
    CLOSE_REQUESTED = "close_requested"  # Window close button


class Effect(Enum):
    """Side effects the coordinator performs after a transition."""

    POSITION = "position"
    SHOW = "show"
    HIDE = "hide"
    SCHEDULE_HIDE = "schedule_hide"
    CANCEL_HIDE = "cancel_hide"


SHOW_SOURCES = frozenset(
    {
        PresentationSource.TRAY_CLICK,
        PresentationSource.MENU_SHOW,
        PresentationSource.EXTERNAL_ACTIVATION,
    }
)

HIDE_SOURCES = frozenset(
    {
        PresentationSource.TRAY_CLICK,
        PresentationSource.MENU_HIDE,
        PresentationSource.CLOSE_REQUESTED,
    }
)

ON_SCREEN = frozenset(
    {VisibilityState.SHOWING, VisibilityState.VISIBLE, VisibilityState.SUPPRESSED}
)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PresentationRequest:
    source: PresentationSource
    timestamp: float


@dataclass(frozen=True)
class FocusEvent:
    gained: bool
    timestamp: float


@dataclass(frozen=True)
class PauseRequest:
    timestamp: float


@dataclass(frozen=True)
class ResumeRequest:
    timestamp: float


@dataclass(frozen=True)
class ShowCompleted:
    timestamp: float


@dataclass(frozen=True)
class GraceExpired:
    generation: int
    timestamp: float


Event = Union[
    PresentationRequest, FocusEvent, PauseRequest, ResumeRequest, ShowCompleted, GraceExpired
]


# ----------------------------------------------------------------------
# State
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PauseToken:
    """
    Auto-hide pause set by popups inside the window.

    Attributes:
        active: Whether a pause request is in force
        focus_lost_at: When focus was last lost (None once regained)
    """

    active: bool = False
    focus_lost_at: Optional[float] = None


@dataclass(frozen=True)
class VisibilitySnapshot:
    """
    Everything the coordinator guards, as one immutable value.

    Attributes:
        state: Current visibility state
        pause: Pause token
        shown_at: When the window was last shown (None outside the
            debounce window)
        pending_hide: Generation of the scheduled hide, if one is pending
        hide_generation: Last generation handed out
    """

    state: VisibilityState = VisibilityState.HIDDEN
    pause: PauseToken = field(default_factory=PauseToken)
    shown_at: Optional[float] = None
    pending_hide: Optional[int] = None
    hide_generation: int = 0


Transition = Tuple[VisibilitySnapshot, Tuple[Effect, ...]]


def _cancel(snapshot: VisibilitySnapshot) -> Tuple[Effect, ...]:
    return (Effect.CANCEL_HIDE,) if snapshot.pending_hide is not None else ()


def _hidden(snapshot: VisibilitySnapshot) -> VisibilitySnapshot:
    return replace(
        snapshot,
        state=VisibilityState.HIDDEN,
        shown_at=None,
        pending_hide=None,
        pause=replace(snapshot.pause, focus_lost_at=None),
    )


def _on_request(snapshot: VisibilitySnapshot, event: PresentationRequest) -> Transition:
    source = event.source

    if snapshot.state is VisibilityState.HIDDEN:
        if source not in SHOW_SOURCES:
            return snapshot, ()
        showing = replace(
            snapshot,
            state=VisibilityState.SHOWING,
            shown_at=event.timestamp,
            pending_hide=None,
            pause=replace(snapshot.pause, focus_lost_at=None),
        )
        return showing, _cancel(snapshot) + (Effect.POSITION, Effect.SHOW)

    if source in HIDE_SOURCES:
        return _hidden(snapshot), _cancel(snapshot) + (Effect.HIDE,)

    # Show request while already on screen: bring it forward
    return snapshot, (Effect.POSITION, Effect.SHOW)


def _on_show_completed(snapshot: VisibilitySnapshot, event: ShowCompleted) -> Transition:
    if snapshot.state is not VisibilityState.SHOWING:
        return snapshot, ()
    return replace(snapshot, state=VisibilityState.VISIBLE, shown_at=event.timestamp), ()


def _on_focus(
    snapshot: VisibilitySnapshot, event: FocusEvent, policy: HidePolicy
) -> Transition:
    if event.gained:
        regained = replace(
            snapshot,
            state=VisibilityState.VISIBLE,
            shown_at=None,
            pending_hide=None,
            pause=replace(snapshot.pause, focus_lost_at=None),
        )
        return regained, _cancel(snapshot)

    lost = replace(snapshot, pause=replace(snapshot.pause, focus_lost_at=event.timestamp))

    if snapshot.state in (VisibilityState.HIDDEN, VisibilityState.SUPPRESSED):
        return lost, ()

    if snapshot.pause.active:
        return (
            replace(lost, state=VisibilityState.SUPPRESSED, pending_hide=None),
            _cancel(snapshot),
        )

    if (
        snapshot.shown_at is not None
        and event.timestamp - snapshot.shown_at < policy.debounce_floor
    ):
        # Focus loss right after showing (e.g. double delivery during the
        # show animation) is not a dismissal
        return lost, ()

    if not policy.deferred_hide:
        return _hidden(snapshot), _cancel(snapshot) + (Effect.HIDE,)

    generation = snapshot.hide_generation + 1
    scheduled = replace(
        lost,
        state=VisibilityState.VISIBLE,
        pending_hide=generation,
        hide_generation=generation,
    )
    return scheduled, (Effect.SCHEDULE_HIDE,)


def _on_grace_expired(snapshot: VisibilitySnapshot, event: GraceExpired) -> Transition:
    if snapshot.pending_hide != event.generation:
        # Superseded or cancelled
        return snapshot, ()

    still_lost = snapshot.pause.focus_lost_at is not None
    if still_lost and not snapshot.pause.active:
        return _hidden(snapshot), (Effect.HIDE,)

    return replace(snapshot, pending_hide=None), ()


def _on_pause(snapshot: VisibilitySnapshot, event: PauseRequest) -> Transition:
    paused = replace(snapshot, pause=replace(snapshot.pause, active=True))
    if snapshot.pending_hide is None:
        return paused, ()
    # Focus is already lost and a hide was pending: hold the window up
    return (
        replace(paused, state=VisibilityState.SUPPRESSED, pending_hide=None),
        (Effect.CANCEL_HIDE,),
    )


def _on_resume(snapshot: VisibilitySnapshot, event: ResumeRequest) -> Transition:
    resumed = replace(snapshot, pause=replace(snapshot.pause, active=False), pending_hide=None)
    if snapshot.state is VisibilityState.SUPPRESSED:
        # Window never hid, so nothing to show again
        resumed = replace(resumed, state=VisibilityState.VISIBLE)
    return resumed, _cancel(snapshot)


def transition(
    snapshot: VisibilitySnapshot, event: Event, policy: HidePolicy
) -> Transition:
    """
    Compute the next snapshot and side effects for one event.

    Every event is accepted in every state; events that make no sense in
    the current state leave the snapshot unchanged.

    Args:
        snapshot: Current snapshot
        event: Incoming event
        policy: Platform hide policy

    Returns:
        Tuple of (next snapshot, effects in execution order)

    Raises:
        TypeError: If ``event`` is not one of the known event types
    """
    if isinstance(event, PresentationRequest):
        return _on_request(snapshot, event)
    if isinstance(event, FocusEvent):
        return _on_focus(snapshot, event, policy)
    if isinstance(event, ShowCompleted):
        return _on_show_completed(snapshot, event)
    if isinstance(event, GraceExpired):
        return _on_grace_expired(snapshot, event)
    if isinstance(event, PauseRequest):
        return _on_pause(snapshot, event)
    if isinstance(event, ResumeRequest):
        return _on_resume(snapshot, event)
    raise TypeError(f"Unknown visibility event: {event!r}")


def reconcile(snapshot: VisibilitySnapshot, window_visible: bool) -> Transition:
    """
    Align the snapshot with what the window reports.

    Used before toggling on a tray click, since the window can be hidden or
    shown behind the coordinator's back (e.g. by the window manager).

    Args:
        snapshot: Current snapshot
        window_visible: Whether the window says it is visible

    Returns:
        Tuple of (aligned snapshot, effects)
    """
    on_screen = snapshot.state in ON_SCREEN
    if on_screen and not window_visible:
        return _hidden(snapshot), _cancel(snapshot)
    if not on_screen and window_visible:
        return replace(snapshot, state=VisibilityState.VISIBLE, shown_at=None), ()
    return snapshot, ()
