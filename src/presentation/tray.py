"""Tray icon wiring: menu items, indicator clicks and status texts."""

import logging
from typing import Callable, Optional

from .coordinator import VisibilityCoordinator, WindowPort
from .state import PresentationSource

logger = logging.getLogger(__name__)

MENU_SHOW = "show"
MENU_HIDE = "hide"
MENU_QUIT = "quit"

# (item id, label) in display order
MENU_ITEMS = (
    (MENU_SHOW, "Show Window"),
    (MENU_HIDE, "Hide Window"),
    (MENU_QUIT, "Quit"),
)

TOOLTIP_PREFIX = "GitHub Security Alerts"
TITLE_PREFIX = "GitHub Alerts"


def tooltip_for(alert_count: Optional[int]) -> str:
    """
    Tray tooltip for an alert count.

    Args:
        alert_count: Number of open alerts (None or 0 when there are none)

    Returns:
        Tooltip text
    """
    if not alert_count:
        return f"{TOOLTIP_PREFIX} - No alerts"
    return f"{TOOLTIP_PREFIX} - {alert_count} alert(s)!"


def title_for(alert_count: Optional[int]) -> str:
    """Window title for an alert count."""
    if not alert_count:
        return TITLE_PREFIX
    return f"{TITLE_PREFIX} - {alert_count} alert(s)"


class TrayController:
    """
    Connects the tray icon and its menu to the visibility coordinator.

    A left click on the indicator toggles the window, the menu shows or
    hides it, and ``quit`` hands control back to the application.
    """

    def __init__(
        self,
        window: WindowPort,
        coordinator: VisibilityCoordinator,
        on_quit: Callable[[], None],
    ):
        self.window = window
        self.coordinator = coordinator
        self.on_quit = on_quit

    def bind(self) -> None:
        """Register the window callbacks with the coordinator."""
        self.window.on_indicator_click(self.handle_indicator_click)
        self.window.on_focus_changed(self.coordinator.focus_changed)
        logger.debug("Tray callbacks bound")

    def handle_indicator_click(self) -> None:
        self.coordinator.request(PresentationSource.TRAY_CLICK)

    def handle_menu(self, item_id: str) -> bool:
        """
        Handle a tray menu selection.

        Args:
            item_id: One of MENU_SHOW, MENU_HIDE, MENU_QUIT

        Returns:
            True if the item was handled, False for unknown ids
        """
        if item_id == MENU_SHOW:
            self.coordinator.request(PresentationSource.MENU_SHOW)
        elif item_id == MENU_HIDE:
            self.coordinator.request(PresentationSource.MENU_HIDE)
        elif item_id == MENU_QUIT:
            logger.info("Quit requested from tray menu")
            self.coordinator.close()
            self.on_quit()
        else:
            logger.debug(f"Ignoring unknown tray menu item: {item_id}")
            return False
        return True
