"""App Store — the desktop UI mode and the mode to return to.

Switching into a transient mode (the ninja command bar) remembers the
mode that was active, so dismissing it can restore the previous layout.
"""

import logging
from enum import Enum

from src.stores.base import ObservableStore

logger = logging.getLogger(__name__)


class UIMode(str, Enum):
    FULL = "full"
    COPILOT = "copilot"
    NINJA = "ninja"


class AppStore(ObservableStore):
    name = "app"

    def __init__(self, initial_mode: UIMode = UIMode.FULL) -> None:
        super().__init__()
        self._mode = UIMode(initial_mode)
        self._previous_mode: UIMode | None = None

    @property
    def ui_mode(self) -> UIMode:
        return self._mode

    @property
    def previous_mode(self) -> UIMode | None:
        return self._previous_mode

    def snapshot(self) -> tuple[UIMode, UIMode | None]:
        return self._mode, self._previous_mode

    def switch_mode(self, mode: UIMode | str) -> None:
        """Switch mode, remembering the current one. Same-mode is a no-op."""
        mode = UIMode(mode)
        if mode is self._mode:
            return
        self._previous_mode = self._mode
        self._mode = mode
        self._notify()

    def restore_previous_mode(self) -> UIMode:
        """Return to the remembered mode, if any.

        Returns:
            The mode active after the call.
        """
        if self._previous_mode is None:
            logger.debug("No remembered mode; staying in %s", self._mode.value)
            return self._mode
        self._mode, self._previous_mode = self._previous_mode, None
        logger.info("Restored UI mode %s", self._mode.value)
        self._notify()
        return self._mode
