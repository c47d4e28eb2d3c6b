"""
Presentation module for the tray-anchored window.

Decides when the window is shown or hidden in response to tray clicks,
menu items, focus changes and popups that pause auto-hide.

Public API:
    VisibilityCoordinator: Serializes inputs and drives the window
    WindowPort: Operations the coordinator needs from a window
    HidePolicy: Platform timing for auto-hide
    TrayController: Tray menu and indicator wiring
    transition: Pure state transition function
"""

from .coordinator import VisibilityCoordinator, WindowPort
from .policy import HidePolicy, HidePolicySettings
from .state import (
    Effect,
    FocusEvent,
    GraceExpired,
    PauseRequest,
    PauseToken,
    PresentationRequest,
    PresentationSource,
    ResumeRequest,
    ShowCompleted,
    VisibilitySnapshot,
    VisibilityState,
    reconcile,
    transition,
)
from .tray import MENU_HIDE, MENU_ITEMS, MENU_QUIT, MENU_SHOW, TrayController, title_for, tooltip_for

__all__ = [
    # Coordinator
    "VisibilityCoordinator",
    "WindowPort",
    # Policy
    "HidePolicy",
    "HidePolicySettings",
    # State machine
    "VisibilityState",
    "VisibilitySnapshot",
    "PauseToken",
    "PresentationSource",
    "Effect",
    "PresentationRequest",
    "FocusEvent",
    "PauseRequest",
    "ResumeRequest",
    "ShowCompleted",
    "GraceExpired",
    "transition",
    "reconcile",
    # Tray
    "TrayController",
    "MENU_ITEMS",
    "MENU_SHOW",
    "MENU_HIDE",
    "MENU_QUIT",
    "tooltip_for",
    "title_for",
]
