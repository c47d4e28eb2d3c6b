"""
Platform hide policy for the anchored window.

Linux window managers deliver focus changes late and sometimes twice around
a show, so Linux uses a longer debounce floor and defers the hide by a
short grace delay. Other platforms hide as soon as focus is lost.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

LINUX_DEBOUNCE_FLOOR = 1.0
DEFAULT_DEBOUNCE_FLOOR = 0.5
GRACE_DELAY = 0.3


class HidePolicySettings(BaseSettings):
    """Environment overrides for the hide policy.

    Attributes:
        debounce_floor: Seconds after a show during which focus loss is ignored
        grace_delay: Seconds to wait before a deferred hide
        deferred_hide: Whether to defer the hide by ``grace_delay``
    """

    debounce_floor: Optional[float] = None
    grace_delay: Optional[float] = None
    deferred_hide: Optional[bool] = None

    class Config:
        """Pydantic configuration."""
        env_prefix = "GHALERTS_WINDOW_"


@dataclass(frozen=True)
class HidePolicy:
    """
    Timing rules for auto-hiding the window on focus loss.

    Attributes:
        debounce_floor: Seconds after a show during which focus loss is ignored
        grace_delay: Seconds a deferred hide waits before re-checking focus
        deferred_hide: Whether focus loss schedules a hide instead of hiding
    """

    debounce_floor: float = DEFAULT_DEBOUNCE_FLOOR
    grace_delay: float = GRACE_DELAY
    deferred_hide: bool = False

    def __post_init__(self):
        """Validate timing values."""
        if self.debounce_floor < 0:
            raise ValueError("debounce_floor cannot be negative")
        if self.grace_delay <= 0:
            raise ValueError("grace_delay must be positive")

    @classmethod
    def for_platform(cls, platform: Optional[str] = None) -> "HidePolicy":
        """
        Default policy for a platform.

        Args:
            platform: ``sys.platform`` style name (current platform if None)

        Returns:
            HidePolicy for that platform
        """
        platform = platform or sys.platform
        if platform.startswith("linux"):
            return cls(debounce_floor=LINUX_DEBOUNCE_FLOOR, deferred_hide=True)
        return cls(debounce_floor=DEFAULT_DEBOUNCE_FLOOR, deferred_hide=False)

    @classmethod
    def from_env(cls, platform: Optional[str] = None) -> "HidePolicy":
        """
        Platform policy with ``GHALERTS_WINDOW_*`` overrides applied.

        Args:
            platform: ``sys.platform`` style name (current platform if None)

        Returns:
            HidePolicy instance

        Raises:
            ValueError: If an override is malformed or out of range
        """
        base = cls.for_platform(platform)
        settings = HidePolicySettings()
        policy = cls(
            debounce_floor=(
                settings.debounce_floor
                if settings.debounce_floor is not None
                else base.debounce_floor
            ),
            grace_delay=(
                settings.grace_delay if settings.grace_delay is not None else base.grace_delay
            ),
            deferred_hide=(
                settings.deferred_hide
                if settings.deferred_hide is not None
                else base.deferred_hide
            ),
        )
        if policy != base:
            logger.info(f"Window hide policy overridden from environment: {policy}")
        return policy
