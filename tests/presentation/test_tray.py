"""Tests for tray wiring and status texts."""

from unittest import mock

import pytest

from src.presentation.coordinator import VisibilityCoordinator
from src.presentation.state import PresentationSource
from src.presentation.tray import (
    MENU_HIDE,
    MENU_ITEMS,
    MENU_QUIT,
    MENU_SHOW,
    TrayController,
    title_for,
    tooltip_for,
)


class TestStatusTexts:
    """Tests for tooltip and title texts."""

    @pytest.mark.parametrize("count", [None, 0])
    def test_no_alerts(self, count):
        assert tooltip_for(count) == "GitHub Security Alerts - No alerts"
        assert title_for(count) == "GitHub Alerts"

    def test_with_alerts(self):
        assert tooltip_for(3) == "GitHub Security Alerts - 3 alert(s)!"
        assert title_for(3) == "GitHub Alerts - 3 alert(s)"


class TestTrayController:
    """Tests for TrayController class."""

    @pytest.fixture
    def window(self):
        return mock.Mock()

    @pytest.fixture
    def coordinator(self):
        return mock.Mock(spec=VisibilityCoordinator)

    @pytest.fixture
    def on_quit(self):
        return mock.Mock()

    @pytest.fixture
    def tray(self, window, coordinator, on_quit):
        return TrayController(window, coordinator, on_quit)

    def test_menu_items(self):
        """The menu offers show, hide and quit in that order."""
        assert [item_id for item_id, _ in MENU_ITEMS] == [MENU_SHOW, MENU_HIDE, MENU_QUIT]

    def test_bind_registers_callbacks(self, tray, window, coordinator):
        """bind routes indicator clicks and focus changes to the coordinator."""
        tray.bind()

        click_callback = window.on_indicator_click.call_args[0][0]
        focus_callback = window.on_focus_changed.call_args[0][0]

        click_callback()
        coordinator.request.assert_called_once_with(PresentationSource.TRAY_CLICK)

        focus_callback(False)
        coordinator.focus_changed.assert_called_once_with(False)

    def test_menu_show(self, tray, coordinator):
        assert tray.handle_menu(MENU_SHOW) is True
        coordinator.request.assert_called_once_with(PresentationSource.MENU_SHOW)

    def test_menu_hide(self, tray, coordinator):
        assert tray.handle_menu(MENU_HIDE) is True
        coordinator.request.assert_called_once_with(PresentationSource.MENU_HIDE)

    def test_menu_quit(self, tray, coordinator, on_quit):
        """quit stops the grace timer and hands control back."""
        assert tray.handle_menu(MENU_QUIT) is True
        coordinator.close.assert_called_once()
        on_quit.assert_called_once()

    def test_unknown_menu_item(self, tray, coordinator, on_quit):
        """Unknown ids are ignored."""
        assert tray.handle_menu("settings") is False
        coordinator.request.assert_not_called()
        on_quit.assert_not_called()
